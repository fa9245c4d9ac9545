# backend/iara/api/v1/endpoints/upload.py

"""
Upload Endpoints

Stores one attachment in object storage and returns the descriptor that
create-case expects.
"""

from fastapi import APIRouter, Depends, File, UploadFile

from iara.api.v1.deps import get_current_user
from iara.core.config import settings
from iara.core.logger import logger
from iara.db.models import User
from iara.services.s3_service import s3_service
from iara.utils.exceptions import ValidationError
from iara.utils.validators import validate_content_type, validate_file_size

router = APIRouter()


@router.post("/upload")
def upload_file(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
):
    filename = (file.filename or "").strip()
    if not filename:
        raise ValidationError("filename is required")

    content_type = validate_content_type(file.content_type)

    # At most cap + 1 bytes are read
    max_bytes = settings.CASE_ATTACHMENT_MAX_BYTES
    data = file.file.read(max_bytes + 1)
    validate_file_size(filename, len(data), max_bytes)

    descriptor = s3_service.upload_file(data, filename, content_type)
    logger.info("User %s uploaded %s", current_user.id, descriptor["storage_key"])
    return {"success": True, "file": descriptor}
