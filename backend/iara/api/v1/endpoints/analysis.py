"""
AI analysis endpoints
"""
from fastapi import APIRouter, Depends

from iara.api.v1.deps import get_current_user
from iara.db.models import User
from iara.db.schemas import AIAnalysisRequest, ConnectionTestRequest
from iara.services.ai_service import ai_service

router = APIRouter()


@router.post("/ai-analysis")
def analyze_files(
    payload: AIAnalysisRequest,
    current_user: User = Depends(get_current_user),
):
    """
    Analyse extracted file contents. Falls back to the rule-based report
    when no provider answers, so a valid request always succeeds.
    """
    providers = ai_service.resolve_providers(current_user.ai_settings)
    result = ai_service.analyze(payload.prompt, payload.files, providers=providers)
    return {"success": True, **result}


@router.post("/test-ai-connection")
def test_ai_connection(
    payload: ConnectionTestRequest,
    current_user: User = Depends(get_current_user),
):
    return ai_service.test_connection(payload.provider, payload.api_key, payload.model)
