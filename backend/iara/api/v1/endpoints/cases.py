"""
Case management endpoints
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from iara.api.v1.deps import get_current_user
from iara.db.database import get_db
from iara.db.models import User
from iara.db.schemas import (
    CaseCreateRequest,
    CaseResponse,
    ProcessCaseRequest,
    ProcessingLogOut,
)
from iara.services.case_service import CaseService

router = APIRouter()

# ============================================================================
# Lifecycle
# ============================================================================

@router.post("/create-case")
def create_case(
    payload: CaseCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Create a pending case from already-uploaded attachments.
    """
    case = CaseService.create_case(
        db, current_user, payload.title, payload.description, payload.attachments
    )
    return {"success": True, "case": CaseResponse.model_validate(case)}


@router.post("/process-case")
def process_case(
    payload: ProcessCaseRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Run the analysis for a pending case and store the answer.
    """
    result = CaseService.process_case(db, current_user, payload.case_id, payload.prompt)
    return {"success": True, "message": "Case processed successfully", **result}


# ============================================================================
# Reads
# ============================================================================

@router.get("/get-cases")
def get_cases(
    case_id: Optional[str] = Query(None, alias="caseId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Without caseId: the caller's cases, newest first, with counts.
    With caseId: one case with attachments and AI responses.
    """
    if case_id:
        return {"success": True, "case": CaseService.get_case_detail(db, current_user, case_id)}
    return {"success": True, "cases": CaseService.list_cases(db, current_user)}


@router.get("/cases/{case_id}/processing-logs")
def get_processing_logs(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    logs = CaseService.list_processing_logs(db, current_user, case_id)
    return {"success": True, "logs": [ProcessingLogOut.model_validate(log) for log in logs]}


@router.get("/cases/{case_id}/attachments/{attachment_id}/download")
def download_attachment(
    case_id: UUID,
    attachment_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    url = CaseService.attachment_download_url(db, current_user, case_id, attachment_id)
    return {"success": True, "url": url}


@router.delete("/cases/{case_id}")
def delete_case(
    case_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    CaseService.delete_case(db, current_user, case_id)
    return {"success": True, "message": "Case deleted"}
