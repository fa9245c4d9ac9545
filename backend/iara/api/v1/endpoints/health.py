"""
Health and readiness checks: database and object storage.
"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from iara.core.config import settings
from iara.core.logger import logger
from iara.db.database import get_db
from iara.services.llm_providers import providers_from_env
from iara.services.s3_service import s3_service

router = APIRouter()


def _check_db(db: Session) -> tuple[str, str]:
    """Returns (status, detail). Status is 'ok' or 'error'."""
    try:
        db.execute(text("SELECT 1"))
        return "ok", "Database reachable"
    except SQLAlchemyError as e:
        return "error", f"Database: {str(e)}"


@router.get("/ready")
def readiness(db: Session = Depends(get_db)):
    db_status, db_detail = _check_db(db)
    s3_status, s3_detail = s3_service.check_bucket()

    if db_status != "ok" or s3_status != "ok":
        logger.warning("Readiness degraded: db=%s s3=%s", db_detail, s3_detail)

    return {
        "status": "ok" if db_status == "ok" and s3_status == "ok" else "degraded",
        "app": settings.APP_NAME,
        "checks": {
            "database": {"status": db_status, "detail": db_detail},
            "storage": {"status": s3_status, "detail": s3_detail},
        },
        # Without providers every analysis is answered by the synthetic fallback
        "ai_providers": [p.name for p in providers_from_env()],
    }
