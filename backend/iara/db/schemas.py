"""
Pydantic validation schemas
"""
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field
from typing import Optional, List, Dict, Any, Union
from datetime import datetime
from uuid import UUID

# ============================================================================
# User Schemas
# ============================================================================

class UserRegister(BaseModel):
    """Registration schema"""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    display_name: str = Field(
        ..., min_length=2, max_length=255,
        validation_alias=AliasChoices("display_name", "displayName"),
    )


class UserLogin(BaseModel):
    """Login schema"""
    email: EmailStr
    password: str


class UserOut(BaseModel):
    id: UUID
    email: str
    display_name: Optional[str] = None
    role: str
    is_active: bool
    email_confirmed: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserAdminUpdate(BaseModel):
    role: Optional[str] = Field(None, pattern="^(user|admin)$")
    is_active: Optional[bool] = None


class AdminBootstrapRequest(BaseModel):
    user_id: UUID = Field(..., validation_alias=AliasChoices("user_id", "userId"))


# ============================================================================
# Approval Schemas
# ============================================================================

class ApprovalRequest(BaseModel):
    user_id: UUID = Field(..., validation_alias=AliasChoices("user_id", "userId"))
    email: EmailStr
    display_name: str = Field(
        ..., min_length=1, max_length=255,
        validation_alias=AliasChoices("display_name", "displayName"),
    )


class ApprovalDecision(BaseModel):
    user_id: UUID = Field(..., validation_alias=AliasChoices("user_id", "userId"))
    action: str = Field(..., pattern="^(approve|reject)$")


class ApprovalOut(BaseModel):
    id: UUID
    user_id: UUID
    email: str
    display_name: Optional[str] = None
    status: str
    approved_by: Optional[str] = None
    approval_date: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Case Schemas
# ============================================================================

class AttachmentIn(BaseModel):
    """Descriptor of an already-uploaded file"""
    filename: str = Field(..., min_length=1, max_length=255)
    file_url: Optional[str] = Field(None, validation_alias=AliasChoices("file_url", "url"))
    content_type: str
    file_size: int = Field(..., ge=0)
    storage_key: Optional[str] = None


class CaseCreateRequest(BaseModel):
    # Bounds are enforced in case_service so that non-API callers get them too
    title: Optional[str] = None
    description: Optional[str] = None
    attachments: List[AttachmentIn] = []


class ProcessCaseRequest(BaseModel):
    case_id: str = Field(..., validation_alias=AliasChoices("caseId", "case_id"))
    prompt: Optional[str] = Field(None, max_length=20000)


class AttachmentResponse(BaseModel):
    id: UUID
    filename: str
    file_url: Optional[str] = None
    content_type: Optional[str] = None
    file_size: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AIResponseOut(BaseModel):
    id: UUID
    response_text: str
    model_used: Optional[str] = None
    processing_time: Optional[int] = None
    confidence_score: Optional[float] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CaseResponse(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    description: str
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CaseListItem(CaseResponse):
    attachment_count: int = 0
    response_count: int = 0


class CaseDetailResponse(CaseResponse):
    attachments: List[AttachmentResponse] = []
    ai_responses: List[AIResponseOut] = []
    latest_response: Optional[AIResponseOut] = None


class ProcessingLogOut(BaseModel):
    id: UUID
    case_id: UUID
    user_id: UUID
    status: str
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    ai_response: Optional[str] = None
    model_used: Optional[str] = None
    processing_time: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# AI / Extraction Schemas
# ============================================================================

class AnalysisFile(BaseModel):
    name: str
    type: Optional[str] = None
    size: Optional[int] = 0
    extracted_text: Optional[str] = Field(
        None, validation_alias=AliasChoices("extractedText", "extracted_text"),
    )


class AIAnalysisRequest(BaseModel):
    prompt: Optional[str] = None
    files: List[AnalysisFile] = []


class AIAnalysisResult(BaseModel):
    summary: str
    analysis: str
    recommendations: List[str]


class ConnectionTestRequest(BaseModel):
    provider: Optional[str] = None
    api_key: Optional[str] = Field(None, validation_alias=AliasChoices("apiKey", "api_key"))
    model: Optional[str] = None


class FileProcessingRequest(BaseModel):
    file: Optional[str] = None  # base64
    filename: Optional[str] = None
    type: Optional[str] = None


class PdfExtractionRequest(BaseModel):
    # Base64 string or a raw byte array
    file: Union[str, List[int], None] = None
    filename: Optional[str] = None


# ============================================================================
# Settings Schemas
# ============================================================================

class AISettingsIn(BaseModel):
    provider: str = Field(..., pattern="^(openai|anthropic|openrouter|deepseek|groq)$")
    model: str = Field(..., min_length=1, max_length=255)
    temperature: Optional[float] = Field(0.3, ge=0, le=2)
    max_tokens: Optional[int] = Field(4000, ge=1, le=200000)
    api_key: Optional[str] = Field(None, validation_alias=AliasChoices("api_key", "apiKey"))


class AISettingsOut(BaseModel):
    provider: str
    model: str
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    has_api_key: bool = False
    updated_at: Optional[datetime] = None


class PromptIn(BaseModel):
    prompt_text: str = Field(
        ..., min_length=1, max_length=20000,
        validation_alias=AliasChoices("prompt_text", "promptText", "prompt"),
    )


class SystemSettingsIn(BaseModel):
    values: Dict[str, Optional[str]]


class SystemSettingsOut(BaseModel):
    values: Dict[str, Any]
