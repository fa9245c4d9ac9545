"""
Approval workflow endpoints
"""
import html
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from iara.api.v1.deps import require_admin
from iara.core.logger import logger
from iara.core.security import verify_approval_token
from iara.db.database import get_db
from iara.db.models import User
from iara.db.schemas import (
    AdminBootstrapRequest,
    ApprovalDecision,
    ApprovalOut,
    ApprovalRequest,
    UserOut,
)
from iara.services.approval_service import ApprovalService
from iara.utils.exceptions import PermissionDeniedError, ValidationError

router = APIRouter()


def _html_page(title: str, body: str, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(
        f"""<html>
  <body style="font-family: Arial, sans-serif; padding: 20px;">
    <h2>{html.escape(title)}</h2>
    {body}
  </body>
</html>""",
        status_code=status_code,
    )


@router.post("/request-approval")
def request_approval(payload: ApprovalRequest, db: Session = Depends(get_db)):
    approval = ApprovalService.request_approval(
        db, payload.user_id, payload.email, payload.display_name
    )
    return {
        "success": True,
        "message": "Approval request sent",
        "approval": ApprovalOut.model_validate(approval),
    }


@router.post("/approve-user")
def approve_user(
    payload: ApprovalDecision,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    approval = ApprovalService.decide(db, payload.user_id, payload.action, approver=admin.email)
    return {"success": True, "approval": ApprovalOut.model_validate(approval)}


@router.get("/approve-user", response_class=HTMLResponse)
def approve_user_link(
    user_id: Optional[str] = Query(None, alias="userId"),
    action: Optional[str] = Query(None),
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """
    Target of the approve/reject links in the admin notification email.
    Answers with a small HTML page instead of JSON.
    """
    try:
        if not user_id or not action:
            raise ValidationError("Missing required parameters")
        try:
            user_uuid = UUID(user_id)
        except ValueError:
            raise ValidationError("Invalid userId")
        if not token or not verify_approval_token(token, user_id, action):
            raise PermissionDeniedError("Invalid or expired approval link")

        approval = ApprovalService.decide(db, user_uuid, action, approver="admin")
    except HTTPException as e:
        logger.warning("Approval link rejected for user %s: %s", user_id, e.detail)
        return _html_page("Erro", f"<p>{html.escape(str(e.detail))}</p>", e.status_code)

    approved = action == "approve"
    body = (
        f"<p><strong>Nome:</strong> {html.escape(approval.display_name or '')}</p>\n"
        f"    <p><strong>Email:</strong> {html.escape(approval.email)}</p>\n"
        f"    <p><strong>Ação:</strong> {'Aprovado' if approved else 'Rejeitado'} em "
        f"{datetime.utcnow().strftime('%d/%m/%Y %H:%M')} UTC</p>"
    )
    return _html_page("Usuário Aprovado" if approved else "Usuário Rejeitado", body)


@router.post("/admin/bootstrap")
def bootstrap_admin(payload: AdminBootstrapRequest, db: Session = Depends(get_db)):
    """Promote the first admin. Refused once an admin exists."""
    user = ApprovalService.bootstrap_admin(db, payload.user_id)
    return {
        "success": True,
        "message": "Admin user created",
        "user": UserOut.model_validate(user),
    }
