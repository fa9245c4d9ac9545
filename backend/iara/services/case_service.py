# iara/services/case_service.py
"""
Case lifecycle: create -> process -> read / delete.

Status moves pending -> processing -> completed | failed and never back.
The pending -> processing step is a compare-and-set, so at most one
processing attempt per case can be in flight.
"""
import time
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from iara.core.config import settings
from iara.core.logger import logger
from iara.db.models import (
    AIProcessingLog,
    AIResponse,
    Attachment,
    Case,
    CaseStatus,
    ProcessingLogStatus,
    User,
)
from iara.db.schemas import (
    AIResponseOut,
    AttachmentIn,
    AttachmentResponse,
    CaseDetailResponse,
    CaseListItem,
    CaseResponse,
)
from iara.services.ai_service import ai_service
from iara.services.s3_service import s3_service
from iara.services.settings_service import SettingsService
from iara.utils.exceptions import (
    CaseNotFoundError,
    CaseStateConflictError,
    NotFoundError,
    UpstreamProviderError,
    ValidationError,
)
from iara.utils.validators import (
    is_case_id,
    validate_case_id,
    validate_content_type,
    validate_description,
    validate_file_size,
    validate_title,
)

REAL_PROVIDER_CONFIDENCE = 0.85
MOCK_CONFIDENCE = 0.60


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class CaseService:
    """
    Service layer for case-related business logic.
    """

    @staticmethod
    def create_case(
        db: Session,
        user: User,
        title: Any,
        description: Any,
        attachments: Sequence[AttachmentIn] = (),
    ) -> Case:
        """
        Validate everything first, then insert the case and its attachments
        in one transaction.
        """
        title = validate_title(title)
        description = validate_description(description)

        rows = []
        for item in attachments:
            content_type = validate_content_type(item.content_type)
            validate_file_size(item.filename, item.file_size, settings.CASE_ATTACHMENT_MAX_BYTES)
            file_url = item.file_url
            if not file_url and item.storage_key:
                file_url = s3_service.object_url(item.storage_key)
            if not file_url:
                raise ValidationError(f"Attachment {item.filename} has no url")
            rows.append(dict(
                filename=item.filename,
                file_url=file_url,
                storage_key=item.storage_key,
                content_type=content_type,
                file_size=item.file_size,
            ))

        case = Case(
            user_id=user.id,
            title=title,
            description=description,
            status=CaseStatus.pending,
        )
        try:
            db.add(case)
            db.flush()
            for row in rows:
                db.add(Attachment(case_id=case.id, **row))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to create case for user %s: %s", user.id, str(e))
            raise

        db.refresh(case)
        logger.info("Case created: %s (%d attachments) by user %s", case.id, len(rows), user.id)
        return case

    @staticmethod
    def get_owned_case(db: Session, user: User, case_id: Any) -> Case:
        """Cases of other users are reported as missing."""
        if isinstance(case_id, UUID):
            case_uuid = case_id
        else:
            case_ref = validate_case_id(case_id)
            if not is_case_id(case_ref):
                raise CaseNotFoundError(case_ref)
            case_uuid = UUID(case_ref)

        case = db.query(Case).filter(Case.id == case_uuid, Case.user_id == user.id).first()
        if not case:
            raise CaseNotFoundError(str(case_uuid))
        return case

    @staticmethod
    def process_case(
        db: Session,
        user: User,
        case_id: Any,
        prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        case = CaseService.get_owned_case(db, user, case_id)

        claimed = db.execute(
            update(Case)
            .where(Case.id == case.id, Case.status == CaseStatus.pending)
            .values(status=CaseStatus.processing)
            .execution_options(synchronize_session=False)
        ).rowcount
        if claimed != 1:
            db.rollback()
            db.refresh(case)
            raise CaseStateConflictError(str(case.id), case.status.value)
        db.commit()
        db.refresh(case)
        logger.info("Case %s: pending -> processing", case.id)

        started = time.monotonic()
        try:
            default_prompt = SettingsService.resolve_analysis_prompt(db, user, prompt)
            providers = ai_service.resolve_providers(user.ai_settings)
            reply = ai_service.complete_for_case(case, default_prompt, providers)
        except UpstreamProviderError as e:
            CaseService._mark_failed(db, case, user, "UPSTREAM_PROVIDER_ERROR", e.detail, _elapsed_ms(started))
            raise
        except Exception as e:
            db.rollback()
            CaseService._mark_failed(db, case, user, "PROCESSING_ERROR", str(e), _elapsed_ms(started))
            raise

        processing_time = _elapsed_ms(started)
        try:
            db.add(AIResponse(
                case_id=case.id,
                response_text=reply.text,
                model_used=reply.model,
                processing_time=processing_time,
                confidence_score=MOCK_CONFIDENCE if reply.synthetic else REAL_PROVIDER_CONFIDENCE,
            ))
            db.add(AIProcessingLog(
                case_id=case.id,
                user_id=user.id,
                status=ProcessingLogStatus.completed,
                ai_response=reply.text,
                model_used=reply.model,
                processing_time=processing_time,
            ))
            case.status = CaseStatus.completed
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            CaseService._mark_failed(db, case, user, "PERSISTENCE_ERROR", str(e), processing_time)
            raise

        logger.info(
            "Case %s: processing -> completed in %dms (model %s)",
            case.id, processing_time, reply.model,
        )
        return {
            "response": reply.text,
            "processing_time": processing_time,
            "model_used": reply.model,
        }

    @staticmethod
    def _mark_failed(
        db: Session,
        case: Case,
        user: User,
        error_code: str,
        error_message: Optional[str],
        processing_time: int,
    ) -> None:
        case_id = case.id
        case.status = CaseStatus.failed
        db.add(AIProcessingLog(
            case_id=case_id,
            user_id=user.id,
            status=ProcessingLogStatus.failed,
            error_code=error_code,
            error_message=error_message or "Unknown error",
            processing_time=processing_time,
        ))
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Case %s: could not record failure log, forcing status to failed", case_id)
            db.execute(
                update(Case)
                .where(Case.id == case_id, Case.status == CaseStatus.processing)
                .values(status=CaseStatus.failed)
                .execution_options(synchronize_session=False)
            )
            db.commit()
        logger.error("Case %s: processing -> failed (%s: %s)", case_id, error_code, error_message)

    @staticmethod
    def list_cases(db: Session, user: User) -> List[CaseListItem]:
        attachment_counts = (
            db.query(Attachment.case_id, func.count(Attachment.id).label("n"))
            .group_by(Attachment.case_id)
            .subquery()
        )
        response_counts = (
            db.query(AIResponse.case_id, func.count(AIResponse.id).label("n"))
            .group_by(AIResponse.case_id)
            .subquery()
        )
        rows = (
            db.query(
                Case,
                func.coalesce(attachment_counts.c.n, 0),
                func.coalesce(response_counts.c.n, 0),
            )
            .outerjoin(attachment_counts, attachment_counts.c.case_id == Case.id)
            .outerjoin(response_counts, response_counts.c.case_id == Case.id)
            .filter(Case.user_id == user.id)
            .order_by(Case.created_at.desc())
            .all()
        )
        return [
            CaseListItem(
                **CaseResponse.model_validate(case).model_dump(),
                attachment_count=attachment_count,
                response_count=response_count,
            )
            for case, attachment_count, response_count in rows
        ]

    @staticmethod
    def get_case_detail(db: Session, user: User, case_id: Any) -> CaseDetailResponse:
        case = CaseService.get_owned_case(db, user, case_id)
        responses = [AIResponseOut.model_validate(r) for r in case.ai_responses]
        return CaseDetailResponse(
            **CaseResponse.model_validate(case).model_dump(),
            attachments=[AttachmentResponse.model_validate(a) for a in case.attachments],
            ai_responses=responses,
            latest_response=responses[0] if responses else None,
        )

    @staticmethod
    def delete_case(db: Session, user: User, case_id: Any) -> None:
        """Hard delete. Dependent rows go with the case; stored objects are removed best-effort."""
        case = CaseService.get_owned_case(db, user, case_id)
        storage_keys = [a.storage_key for a in case.attachments if a.storage_key]

        db.delete(case)
        db.commit()
        logger.info("Case deleted: %s by user %s", case_id, user.id)

        for key in storage_keys:
            s3_service.delete_file(key)

    @staticmethod
    def list_processing_logs(db: Session, user: User, case_id: Any) -> List[AIProcessingLog]:
        case = CaseService.get_owned_case(db, user, case_id)
        return (
            db.query(AIProcessingLog)
            .filter(AIProcessingLog.case_id == case.id)
            .order_by(AIProcessingLog.created_at.desc())
            .all()
        )

    @staticmethod
    def attachment_download_url(db: Session, user: User, case_id: Any, attachment_id: UUID) -> str:
        case = CaseService.get_owned_case(db, user, case_id)
        attachment = next((a for a in case.attachments if a.id == attachment_id), None)
        if attachment is None:
            raise NotFoundError(f"Attachment {attachment_id} not found")
        if not attachment.storage_key:
            return attachment.file_url
        return s3_service.generate_download_url(attachment.storage_key)
