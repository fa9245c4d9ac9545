"""
Per-user AI settings, per-user default prompt and admin system settings
"""
from typing import Dict, Optional

from sqlalchemy.orm import Session

from iara.core.config import settings
from iara.core.logger import logger
from iara.core.security import encrypt_secret
from iara.db.models import AIProvider, AISettings, DefaultPrompt, SystemSetting, User
from iara.db.schemas import AISettingsIn, AISettingsOut
from iara.services.ai_templates import DEFAULT_PROMPT
from iara.services.llm_providers import default_model

SYSTEM_DEFAULT_PROMPT_KEY = "default_prompt"


class SettingsService:

    @staticmethod
    def _ai_settings_out(row: Optional[AISettings]) -> AISettingsOut:
        if row is None:
            return AISettingsOut(
                provider=AIProvider.openai.value,
                model=default_model(AIProvider.openai.value),
                temperature=settings.AI_TEMPERATURE,
                max_tokens=settings.AI_MAX_TOKENS,
                has_api_key=False,
            )
        return AISettingsOut(
            provider=getattr(row.provider, "value", row.provider),
            model=row.model,
            temperature=row.temperature,
            max_tokens=row.max_tokens,
            has_api_key=bool(row.api_key_encrypted),
            updated_at=row.updated_at,
        )

    @staticmethod
    def get_ai_settings(db: Session, user: User) -> AISettingsOut:
        row = db.query(AISettings).filter(AISettings.user_id == user.id).first()
        return SettingsService._ai_settings_out(row)

    @staticmethod
    def save_ai_settings(db: Session, user: User, data: AISettingsIn) -> AISettingsOut:
        """
        Upsert the user's provider preference.
        api_key None keeps the stored key, an empty string clears it.
        """
        row = db.query(AISettings).filter(AISettings.user_id == user.id).first()
        if row is None:
            row = AISettings(user_id=user.id)
            db.add(row)

        row.provider = AIProvider(data.provider)
        row.model = data.model.strip()
        row.temperature = data.temperature
        row.max_tokens = data.max_tokens
        if data.api_key is not None:
            key = data.api_key.strip()
            row.api_key_encrypted = encrypt_secret(key) if key else None

        db.commit()
        db.refresh(row)
        logger.info("AI settings saved for user %s (provider %s)", user.id, data.provider)
        return SettingsService._ai_settings_out(row)

    @staticmethod
    def reset_ai_settings(db: Session, user: User) -> AISettingsOut:
        deleted = db.query(AISettings).filter(AISettings.user_id == user.id).delete()
        db.commit()
        if deleted:
            logger.info("AI settings reset for user %s", user.id)
        return SettingsService._ai_settings_out(None)

    @staticmethod
    def get_prompt(db: Session, user: User) -> Dict[str, object]:
        row = db.query(DefaultPrompt).filter(DefaultPrompt.user_id == user.id).first()
        if row is None:
            return {"prompt_text": SettingsService.system_prompt(db), "is_custom": False}
        return {"prompt_text": row.prompt_text, "is_custom": True}

    @staticmethod
    def save_prompt(db: Session, user: User, prompt_text: str) -> Dict[str, object]:
        row = db.query(DefaultPrompt).filter(DefaultPrompt.user_id == user.id).first()
        if row is None:
            row = DefaultPrompt(user_id=user.id, prompt_text=prompt_text)
            db.add(row)
        else:
            row.prompt_text = prompt_text
        db.commit()
        logger.info("Default prompt saved for user %s", user.id)
        return {"prompt_text": row.prompt_text, "is_custom": True}

    @staticmethod
    def get_system_settings(db: Session) -> Dict[str, Optional[str]]:
        return {row.key: row.value for row in db.query(SystemSetting).order_by(SystemSetting.key).all()}

    @staticmethod
    def update_system_settings(
        db: Session, admin: User, values: Dict[str, Optional[str]]
    ) -> Dict[str, Optional[str]]:
        """A None value deletes the key."""
        for key, value in values.items():
            row = db.query(SystemSetting).filter(SystemSetting.key == key).first()
            if value is None:
                if row is not None:
                    db.delete(row)
                continue
            if row is None:
                db.add(SystemSetting(key=key, value=value, updated_by=admin.email))
            else:
                row.value = value
                row.updated_by = admin.email
        db.commit()
        logger.info("System settings updated by %s: %s", admin.email, ", ".join(sorted(values)))
        return SettingsService.get_system_settings(db)

    @staticmethod
    def system_prompt(db: Session) -> str:
        row = db.query(SystemSetting).filter(SystemSetting.key == SYSTEM_DEFAULT_PROMPT_KEY).first()
        if row is not None and (row.value or "").strip():
            return row.value
        return DEFAULT_PROMPT

    @staticmethod
    def resolve_analysis_prompt(db: Session, user: User, explicit: Optional[str] = None) -> str:
        """Request prompt, then user prompt, then system prompt, then the built-in one."""
        if explicit and explicit.strip():
            return explicit.strip()
        row = db.query(DefaultPrompt).filter(DefaultPrompt.user_id == user.id).first()
        if row is not None and row.prompt_text.strip():
            return row.prompt_text
        return SettingsService.system_prompt(db)
