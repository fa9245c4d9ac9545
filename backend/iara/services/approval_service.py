"""
Registration, login and the admin-gated approval workflow
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from iara.core.logger import logger
from iara.core.security import get_password_hash, verify_password
from iara.db.models import ApprovalStatus, User, UserApproval, UserRole
from iara.services.notification_service import notification_service
from iara.utils.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


class ApprovalService:

    @staticmethod
    def register(db: Session, email: str, password: str, display_name: str) -> User:
        """Create an unconfirmed user with a pending approval and notify the admin."""
        email = email.strip().lower()
        if db.query(User).filter(User.email == email).first():
            raise ConflictError("Email already registered")

        user = User(
            email=email,
            password_hash=get_password_hash(password),
            display_name=display_name.strip(),
            role=UserRole.user,
            email_confirmed=False,
        )
        db.add(user)
        db.flush()
        db.add(UserApproval(
            user_id=user.id,
            email=email,
            display_name=user.display_name,
            status=ApprovalStatus.pending,
        ))
        db.commit()
        db.refresh(user)

        logger.info("User registered: %s (pending approval)", email)
        notification_service.notify_admin_new_registration(str(user.id), email, user.display_name)
        return user

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> User:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise PermissionDeniedError("User account is deactivated")
        if not user.email_confirmed:
            latest = ApprovalService.latest_approval(db, user.id)
            if latest is not None and latest.status == ApprovalStatus.rejected:
                raise PermissionDeniedError("Registration was not approved")
            raise PermissionDeniedError("Registration is pending admin approval")

        user.last_login_at = datetime.utcnow()
        db.commit()
        return user

    @staticmethod
    def latest_approval(db: Session, user_id: UUID) -> Optional[UserApproval]:
        return (
            db.query(UserApproval)
            .filter(UserApproval.user_id == user_id)
            .order_by(UserApproval.created_at.desc())
            .first()
        )

    @staticmethod
    def request_approval(db: Session, user_id: UUID, email: str, display_name: str) -> UserApproval:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        if user.email != email.strip().lower():
            raise ValidationError("Email does not match the registered user")
        if user.email_confirmed:
            raise ConflictError("User is already approved")

        pending = (
            db.query(UserApproval)
            .filter(UserApproval.user_id == user_id, UserApproval.status == ApprovalStatus.pending)
            .first()
        )
        if pending:
            raise ConflictError("An approval request is already pending")

        approval = UserApproval(
            user_id=user.id,
            email=user.email,
            display_name=display_name.strip(),
            status=ApprovalStatus.pending,
        )
        db.add(approval)
        db.commit()
        db.refresh(approval)

        logger.info("Approval requested for user %s", user.id)
        notification_service.notify_admin_new_registration(str(user.id), user.email, approval.display_name)
        return approval

    @staticmethod
    def decide(db: Session, user_id: UUID, action: str, approver: str) -> UserApproval:
        """Move the user's single pending approval to approved or rejected."""
        if action not in ("approve", "reject"):
            raise ValidationError("action must be 'approve' or 'reject'")

        approval = (
            db.query(UserApproval)
            .filter(UserApproval.user_id == user_id, UserApproval.status == ApprovalStatus.pending)
            .order_by(UserApproval.created_at.desc())
            .first()
        )
        if not approval:
            raise NotFoundError("Approval request not found or already processed")

        approved = action == "approve"
        approval.status = ApprovalStatus.approved if approved else ApprovalStatus.rejected
        approval.approved_by = approver
        approval.approval_date = datetime.utcnow()
        if approved:
            approval.user.email_confirmed = True
        db.commit()
        db.refresh(approval)

        logger.info("Approval for user %s %s by %s", user_id, approval.status.value, approver)
        notification_service.notify_user_decision(approval.email, approval.display_name, approved)
        return approval

    @staticmethod
    def bootstrap_admin(db: Session, user_id: UUID) -> User:
        """First-admin creation; refused once any admin exists."""
        if db.query(User).filter(User.role == UserRole.admin).first():
            raise ConflictError("An admin user already exists")

        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")

        user.role = UserRole.admin
        user.is_active = True
        user.email_confirmed = True
        for approval in user.approvals:
            if approval.status == ApprovalStatus.pending:
                approval.status = ApprovalStatus.approved
                approval.approved_by = "system"
                approval.approval_date = datetime.utcnow()
        db.commit()
        db.refresh(user)

        logger.info("User %s promoted to first admin", user.email)
        return user
