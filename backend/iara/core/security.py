"""
Password hashing, JWT issuing and secret encryption
"""
import base64
import hashlib
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import jwt
from cryptography.fernet import Fernet, InvalidToken
from passlib.context import CryptContext

from iara.core.config import settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

APPROVAL_TOKEN_PURPOSE = "approval"


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(plain_password, password_hash)
    except (ValueError, TypeError):
        return False


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed bearer token. `data` must carry `sub`."""
    to_encode = dict(data)
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Raises jwt.PyJWTError on bad signature or expiry."""
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def create_approval_token(user_id: str, action: str) -> str:
    """
    Signed token embedded in the approve/reject links mailed to the admin.
    Bound to one user and one action.
    """
    return create_access_token(
        {"sub": str(user_id), "action": action, "purpose": APPROVAL_TOKEN_PURPOSE},
        expires_delta=timedelta(hours=settings.APPROVAL_LINK_EXPIRE_HOURS),
    )


def verify_approval_token(token: str, user_id: str, action: str) -> bool:
    try:
        payload = decode_token(token)
    except jwt.PyJWTError:
        return False
    return (
        payload.get("purpose") == APPROVAL_TOKEN_PURPOSE
        and payload.get("sub") == str(user_id)
        and payload.get("action") == action
    )


def _fernet() -> Fernet:
    key = (settings.SECRETS_ENCRYPTION_KEY or "").strip()
    if not key:
        digest = hashlib.sha256(settings.JWT_SECRET_KEY.encode("utf-8")).digest()
        key = base64.urlsafe_b64encode(digest).decode("ascii")
    return Fernet(key.encode("utf-8"))


def encrypt_secret(value: str) -> str:
    return _fernet().encrypt(value.encode("utf-8")).decode("ascii")


def decrypt_secret(value: str) -> Optional[str]:
    """Returns None when the ciphertext was produced with another key."""
    try:
        return _fernet().decrypt(value.encode("ascii")).decode("utf-8")
    except (InvalidToken, ValueError):
        return None
