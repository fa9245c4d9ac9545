# iara/api/v1/deps.py

from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from iara.core.security import decode_token
from iara.db.database import get_db
from iara.db.models import User, UserRole
from iara.utils.exceptions import AuthenticationError, PermissionDeniedError

# auto_error=False so a missing header is reported as our own 401 envelope
security = HTTPBearer(auto_error=False)

# ============================================================================
# JWT Dependency
# ============================================================================

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Validate the bearer token and return the current user.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authorization token not found")

    try:
        payload = decode_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.PyJWTError:
        raise AuthenticationError("Invalid token")

    # Approval-link tokens share the signing key but are not sessions
    if payload.get("purpose"):
        raise AuthenticationError("Invalid token")

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError("Invalid token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise PermissionDeniedError("User account is deactivated")

    if not user.email_confirmed:
        raise PermissionDeniedError("Registration is pending admin approval")

    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.admin:
        raise PermissionDeniedError("Admin role required")
    return current_user
