"""
Authentication endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from iara.api.v1.deps import get_current_user
from iara.core.logger import logger
from iara.core.security import create_access_token
from iara.db.database import get_db
from iara.db.models import User
from iara.db.schemas import UserLogin, UserOut, UserRegister
from iara.services.approval_service import ApprovalService

router = APIRouter()


@router.post("/register")
def register(payload: UserRegister, db: Session = Depends(get_db)):
    """
    Create an account. It stays unusable until an admin approves it.
    """
    user = ApprovalService.register(db, payload.email, payload.password, payload.display_name)
    return {
        "success": True,
        "message": "Registration received and pending admin approval",
        "user": UserOut.model_validate(user),
    }


@router.post("/login")
def login(payload: UserLogin, db: Session = Depends(get_db)):
    user = ApprovalService.authenticate(db, payload.email, payload.password)
    token = create_access_token({"sub": str(user.id), "role": user.role.value})
    logger.info("User logged in: %s", user.email)
    return {
        "success": True,
        "access_token": token,
        "token_type": "bearer",
        "user": UserOut.model_validate(user),
    }


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {"success": True, "user": UserOut.model_validate(current_user)}
