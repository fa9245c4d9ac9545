"""
Admin panel endpoints
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from iara.api.v1.deps import require_admin
from iara.core.logger import logger
from iara.db.database import get_db
from iara.db.models import (
    AIProcessingLog,
    AIResponse,
    ApprovalStatus,
    Case,
    CaseStatus,
    ProcessingLogStatus,
    User,
    UserApproval,
    UserRole,
)
from iara.db.schemas import (
    ApprovalOut,
    ProcessingLogOut,
    SystemSettingsIn,
    SystemSettingsOut,
    UserAdminUpdate,
    UserOut,
)
from iara.services.settings_service import SettingsService
from iara.utils.exceptions import NotFoundError, ValidationError

router = APIRouter()

# ============================================================================
# Users & approvals
# ============================================================================

@router.get("/users")
def list_users(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    users = db.query(User).order_by(User.created_at.desc()).all()
    return {"success": True, "users": [UserOut.model_validate(u) for u in users]}


@router.patch("/users/{user_id}")
def update_user(
    user_id: UUID,
    payload: UserAdminUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    if user.id == admin.id and (payload.role == "user" or payload.is_active is False):
        raise ValidationError("Admins cannot demote or deactivate themselves")

    if payload.role is not None:
        user.role = UserRole(payload.role)
    if payload.is_active is not None:
        user.is_active = payload.is_active
    db.commit()
    db.refresh(user)

    logger.info("User %s updated by %s: role=%s active=%s", user.email, admin.email, user.role.value, user.is_active)
    return {"success": True, "user": UserOut.model_validate(user)}


@router.get("/approvals")
def list_approvals(
    status: Optional[ApprovalStatus] = Query(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    query = db.query(UserApproval)
    if status is not None:
        query = query.filter(UserApproval.status == status)
    approvals = query.order_by(UserApproval.created_at.desc()).all()
    return {"success": True, "approvals": [ApprovalOut.model_validate(a) for a in approvals]}


# ============================================================================
# Monitoring
# ============================================================================

@router.get("/processing-logs")
def list_processing_logs(
    case_id: Optional[UUID] = Query(None),
    status: Optional[ProcessingLogStatus] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    query = db.query(AIProcessingLog)
    if case_id is not None:
        query = query.filter(AIProcessingLog.case_id == case_id)
    if status is not None:
        query = query.filter(AIProcessingLog.status == status)
    logs = query.order_by(AIProcessingLog.created_at.desc()).limit(limit).all()
    return {"success": True, "logs": [ProcessingLogOut.model_validate(log) for log in logs]}


@router.get("/stats")
def get_stats(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    cases_by_status = {s.value: 0 for s in CaseStatus}
    for status, count in db.query(Case.status, func.count(Case.id)).group_by(Case.status).all():
        cases_by_status[status.value] = count

    avg_time = db.query(func.avg(AIResponse.processing_time)).scalar()

    return {
        "success": True,
        "stats": {
            "total_users": db.query(func.count(User.id)).scalar(),
            "pending_approvals": db.query(func.count(UserApproval.id))
                .filter(UserApproval.status == ApprovalStatus.pending).scalar(),
            "total_cases": sum(cases_by_status.values()),
            "cases_by_status": cases_by_status,
            "total_responses": db.query(func.count(AIResponse.id)).scalar(),
            "total_processing_logs": db.query(func.count(AIProcessingLog.id)).scalar(),
            "failed_processing_logs": db.query(func.count(AIProcessingLog.id))
                .filter(AIProcessingLog.status == ProcessingLogStatus.failed).scalar(),
            "avg_processing_time_ms": round(float(avg_time), 1) if avg_time is not None else None,
        },
    }


# ============================================================================
# System settings
# ============================================================================

@router.get("/system-settings")
def get_system_settings(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return {"success": True, **SystemSettingsOut(values=SettingsService.get_system_settings(db)).model_dump()}


@router.put("/system-settings")
def update_system_settings(
    payload: SystemSettingsIn,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    values = SettingsService.update_system_settings(db, admin, payload.values)
    return {"success": True, **SystemSettingsOut(values=values).model_dump()}
