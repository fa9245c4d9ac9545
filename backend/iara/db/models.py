"""
SQLAlchemy ORM Models
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TIMESTAMP,
    Uuid,
)
from sqlalchemy.orm import relationship

from iara.db.database import Base

# ============================================================================
# Enums
# ============================================================================

class UserRole(str, enum.Enum):
    """User roles"""
    user = "user"
    admin = "admin"

class ApprovalStatus(str, enum.Enum):
    """Registration approval status"""
    pending = "pending"
    approved = "approved"
    rejected = "rejected"

class CaseStatus(str, enum.Enum):
    """Case status: pending -> processing -> completed | failed"""
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"

class ProcessingLogStatus(str, enum.Enum):
    processing = "processing"
    completed = "completed"
    failed = "failed"

class AIProvider(str, enum.Enum):
    openai = "openai"
    anthropic = "anthropic"
    openrouter = "openrouter"
    deepseek = "deepseek"
    groq = "groq"


# ============================================================================
# Models
# ============================================================================

class User(Base):
    """Registered user / profile"""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Authentication
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=True)

    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.user)
    is_active = Column(Boolean, nullable=False, default=True)
    # Set only by an approved UserApproval
    email_confirmed = Column(Boolean, nullable=False, default=False)

    last_login_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    cases = relationship("Case", back_populates="user", cascade="all, delete-orphan")
    approvals = relationship("UserApproval", back_populates="user", cascade="all, delete-orphan")
    ai_settings = relationship("AISettings", back_populates="user", uselist=False, cascade="all, delete-orphan")
    default_prompt = relationship("DefaultPrompt", back_populates="user", uselist=False, cascade="all, delete-orphan")


class UserApproval(Base):
    """Admin-gated registration record"""
    __tablename__ = "user_approvals"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    email = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=True)
    status = Column(SQLEnum(ApprovalStatus), nullable=False, default=ApprovalStatus.pending)

    approved_by = Column(String(255), nullable=True)
    approval_date = Column(TIMESTAMP, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="approvals")


class Case(Base):
    """Case submitted for AI analysis"""
    __tablename__ = "cases"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(SQLEnum(CaseStatus), nullable=False, default=CaseStatus.pending)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="cases")
    attachments = relationship(
        "Attachment", back_populates="case", cascade="all, delete-orphan",
        order_by="Attachment.created_at",
    )
    ai_responses = relationship(
        "AIResponse", back_populates="case", cascade="all, delete-orphan",
        order_by="AIResponse.created_at.desc()",
    )
    processing_logs = relationship(
        "AIProcessingLog", back_populates="case", cascade="all, delete-orphan",
        order_by="AIProcessingLog.created_at.desc()",
    )

    __table_args__ = (
        Index("idx_cases_user_created", "user_id", "created_at"),
    )


class Attachment(Base):
    """Uploaded file metadata linked to a case"""
    __tablename__ = "attachments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)

    filename = Column(String(255), nullable=False)
    file_url = Column(Text, nullable=True)
    storage_key = Column(String(500), nullable=True)
    content_type = Column(String(100), nullable=True)
    file_size = Column(BigInteger, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)

    case = relationship("Case", back_populates="attachments")


class AIResponse(Base):
    """One row per successful processing attempt"""
    __tablename__ = "ai_responses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)

    response_text = Column(Text, nullable=False)
    model_used = Column(String(255), nullable=True)
    processing_time = Column(Integer, nullable=True)  # milliseconds
    confidence_score = Column(Float, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)

    case = relationship("Case", back_populates="ai_responses")


class AIProcessingLog(Base):
    """Append-only audit trail of processing attempts"""
    __tablename__ = "ai_processing_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    status = Column(SQLEnum(ProcessingLogStatus), nullable=False)
    error_code = Column(String(100), nullable=True)
    error_message = Column(Text, nullable=True)
    ai_response = Column(Text, nullable=True)
    model_used = Column(String(255), nullable=True)
    processing_time = Column(Integer, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    case = relationship("Case", back_populates="processing_logs")


class AISettings(Base):
    """Per-user provider preference"""
    __tablename__ = "ai_settings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    provider = Column(SQLEnum(AIProvider), nullable=False, default=AIProvider.openai)
    model = Column(String(255), nullable=False, default="gpt-4o-mini")
    temperature = Column(Float, nullable=True, default=0.3)
    max_tokens = Column(Integer, nullable=True, default=4000)
    # Fernet ciphertext, never returned by the API
    api_key_encrypted = Column(Text, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="ai_settings")


class DefaultPrompt(Base):
    __tablename__ = "default_prompts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    prompt_text = Column(Text, nullable=False)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="default_prompt")


class SystemSetting(Base):
    """Admin-managed key/value configuration"""
    __tablename__ = "system_settings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(Text, nullable=True)
    updated_by = Column(String(255), nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
