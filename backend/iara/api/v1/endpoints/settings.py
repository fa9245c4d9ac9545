"""
Per-user settings endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from iara.api.v1.deps import get_current_user
from iara.db.database import get_db
from iara.db.models import User
from iara.db.schemas import AISettingsIn, PromptIn
from iara.services.settings_service import SettingsService

router = APIRouter()


@router.get("/ai")
def get_ai_settings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return {"success": True, "settings": SettingsService.get_ai_settings(db, current_user)}


@router.put("/ai")
def save_ai_settings(
    payload: AISettingsIn,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    The API key is stored encrypted and only reported back as has_api_key.
    """
    return {"success": True, "settings": SettingsService.save_ai_settings(db, current_user, payload)}


@router.delete("/ai")
def reset_ai_settings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return {"success": True, "settings": SettingsService.reset_ai_settings(db, current_user)}


@router.get("/prompt")
def get_prompt(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return {"success": True, **SettingsService.get_prompt(db, current_user)}


@router.put("/prompt")
def save_prompt(
    payload: PromptIn,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return {"success": True, **SettingsService.save_prompt(db, current_user, payload.prompt_text)}
