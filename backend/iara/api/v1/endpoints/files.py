"""
Text extraction endpoints
"""
from fastapi import APIRouter, Depends

from iara.api.v1.deps import get_current_user
from iara.core.logger import logger
from iara.db.models import User
from iara.db.schemas import FileProcessingRequest, PdfExtractionRequest
from iara.services.extraction_service import EXTRACTION_KINDS, decode_payload, extraction_service
from iara.utils.exceptions import ValidationError

router = APIRouter()


@router.post("/file-processing")
def process_file(
    payload: FileProcessingRequest,
    current_user: User = Depends(get_current_user),
):
    if not payload.file or not payload.filename:
        raise ValidationError("file and filename are required")
    if payload.type not in EXTRACTION_KINDS:
        raise ValidationError(f"Unsupported file type: {payload.type}")

    data = decode_payload(payload.file, payload.filename)
    text = extraction_service.extract(data, payload.filename, payload.type)
    logger.info("Extracted %s (%s, %d bytes) for user %s", payload.filename, payload.type, len(data), current_user.id)
    return {"success": True, "text": text, "filename": payload.filename}


@router.post("/extract-pdf-text")
def extract_pdf_text(
    payload: PdfExtractionRequest,
    current_user: User = Depends(get_current_user),
):
    filename = payload.filename or "documento.pdf"
    data = decode_payload(payload.file, filename)
    text = extraction_service.extract_pdf_text(data, filename)
    return {"success": True, "text": text, "filename": filename}
