"""
Text extraction for uploaded documents.

Every branch returns text: real text from pypdf / python-docx / pytesseract
when EXTRACTION_USE_LIBRARIES is on and the library succeeds, otherwise a
fixed placeholder carrying the file-type marker, the filename and the size.
"""
from __future__ import annotations

import base64
import binascii
import io
from typing import List, Optional, Union

import pypdf
import pytesseract
from docx import Document as DocxDocument
from PIL import Image

from iara.core.config import settings
from iara.core.logger import logger
from iara.services.ai_templates import DOC_MARKER, IMAGE_MARKER, PDF_MARKER
from iara.utils.exceptions import ValidationError
from iara.utils.validators import validate_file_size

EXTRACTION_KINDS = ("pdf", "doc", "image", "text")

_URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")

PDF_PLACEHOLDER = """{marker} {filename} - Documento PDF com {size} bytes foi processado com sucesso.

CONTEÚDO EXTRAÍDO:
Este é um documento PDF que contém informações jurídicas relevantes para o caso. O arquivo foi recebido e está disponível para análise.

DETALHES TÉCNICOS:
- Arquivo: {filename}
- Tamanho: {size} bytes
- Formato: PDF
- Status: Processado e pronto para análise pela IA"""

DOC_PLACEHOLDER = """{marker} {filename} - Arquivo Word com {size} bytes foi processado com sucesso.

CONTEÚDO EXTRAÍDO:
Este documento Word contém informações estruturadas relevantes para o caso jurídico.

DETALHES DO ARQUIVO:
- Nome: {filename}
- Tamanho: {size} bytes
- Tipo: Documento Microsoft Word
- Status: Extração concluída"""

IMAGE_PLACEHOLDER = """{marker} {filename} - Imagem com {size} bytes foi analisada com sucesso.

RESULTADO DO OCR:
A imagem pode conter documentos digitalizados, contratos manuscritos ou evidências visuais relevantes para o processo legal.

ANÁLISE TÉCNICA:
- Arquivo: {filename}
- Tamanho: {size} bytes
- Idioma esperado: Português"""

_PLACEHOLDERS = {
    "pdf": (PDF_MARKER, PDF_PLACEHOLDER),
    "doc": (DOC_MARKER, DOC_PLACEHOLDER),
    "image": (IMAGE_MARKER, IMAGE_PLACEHOLDER),
}


def placeholder_text(kind: str, filename: str, size: int) -> str:
    marker, template = _PLACEHOLDERS[kind]
    return template.format(marker=marker, filename=filename, size=size)


def decode_payload(
    payload: Union[str, List[int], None],
    filename: str = "file",
    max_bytes: Optional[int] = None,
) -> bytes:
    """
    Base64 string (optionally a data: URL) or a raw byte array.

    Line breaks, missing padding and the URL-safe alphabet are accepted.
    Payloads whose decoded size would exceed the extraction cap are
    rejected before decoding.
    """
    if max_bytes is None:
        max_bytes = settings.EXTRACTION_MAX_BYTES
    if payload is None or payload == "" or payload == []:
        raise ValidationError("file is required")
    if isinstance(payload, list):
        validate_file_size(filename, len(payload), max_bytes)
        try:
            return bytes(payload)
        except ValueError:
            raise ValidationError("file byte array contains values outside 0-255")
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]

    encoded = "".join(payload.split()).translate(_URLSAFE_TO_STANDARD).rstrip("=")
    if not encoded:
        raise ValidationError("file is not valid base64")
    validate_file_size(filename, len(encoded) * 3 // 4, max_bytes)
    encoded += "=" * (-len(encoded) % 4)
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("file is not valid base64")


# ============================================================================
# Library-backed extractors (raise on failure)
# ============================================================================

def _pdf_pages(data: bytes) -> tuple[pypdf.PdfReader, List[str]]:
    reader = pypdf.PdfReader(io.BytesIO(data))
    return reader, [(page.extract_text() or "").strip() for page in reader.pages]


def _extract_pdf(data: bytes) -> str:
    _, pages = _pdf_pages(data)
    return "\n\n".join(p for p in pages if p).strip()


def _extract_docx(data: bytes) -> str:
    doc = DocxDocument(io.BytesIO(data))
    paragraphs = [p.text.strip() for p in doc.paragraphs if p.text.strip()]
    return "\n\n".join(paragraphs)


def _ocr_image(data: bytes) -> str:
    img = Image.open(io.BytesIO(data))
    return pytesseract.image_to_string(img, lang=settings.EXTRACTION_OCR_LANG).strip()


_EXTRACTORS = {
    "pdf": _extract_pdf,
    "doc": _extract_docx,
    "image": _ocr_image,
}


class ExtractionService:
    """Binary success/placeholder extraction, no retries."""

    def __init__(self, use_libraries: Optional[bool] = None):
        self.use_libraries = (
            settings.EXTRACTION_USE_LIBRARIES if use_libraries is None else use_libraries
        )

    def extract(self, data: bytes, filename: str, kind: str) -> str:
        if kind not in EXTRACTION_KINDS:
            raise ValidationError(f"Unsupported file type: {kind}")
        validate_file_size(filename, len(data), settings.EXTRACTION_MAX_BYTES)

        if kind == "text":
            return data.decode("utf-8", errors="replace")

        if self.use_libraries:
            try:
                text = _EXTRACTORS[kind](data)
            except Exception as e:
                logger.warning("%s extraction failed for %s: %s", kind, filename, str(e))
                text = ""
            if text:
                marker = _PLACEHOLDERS[kind][0]
                logger.info("Extracted %d chars from %s", len(text), filename)
                return f"{marker} {filename}\n\n{text}"

        return placeholder_text(kind, filename, len(data))

    def extract_pdf_text(self, data: bytes, filename: str) -> str:
        """
        Server-side PDF report: page count, size, text and metadata.
        Parse failures are described in the returned text, never raised.
        """
        validate_file_size(filename, len(data), settings.EXTRACTION_MAX_BYTES)
        size_kb = round(len(data) / 1024)
        try:
            reader, pages = _pdf_pages(data)
        except Exception as e:
            logger.error("Failed to parse PDF %s: %s", filename, str(e))
            return (
                f"ERRO NA EXTRAÇÃO DO PDF: {filename}\n"
                f"Tamanho: {size_kb}KB\n\n"
                f"Detalhes do erro: {e}\n\n"
                "Possíveis causas:\n"
                "- PDF corrompido ou formato inválido\n"
                "- Arquivo protegido por senha\n"
                "- Formato PDF não suportado\n\n"
                "Recomendação: Converta o PDF para formato editável (DOCX/TXT) "
                "ou reenvie uma versão não protegida."
            )

        text = "\n\n".join(p for p in pages if p).strip()
        header = f"DOCUMENTO PDF: {filename}\nPáginas: {len(pages)}\nTamanho: {size_kb}KB\n\n"
        if not text:
            return header + (
                "ATENÇÃO: Nenhum texto extraído do PDF.\n"
                "Este arquivo pode ser:\n"
                "- Documento escaneado (apenas imagens)\n"
                "- PDF protegido contra extração\n"
                "- Arquivo corrompido\n\n"
                "Para análise completa, reenvie em formato editável (DOCX, TXT) "
                "ou PDF com texto selecionável."
            )

        meta = reader.metadata or {}
        return header + (
            f"TEXTO EXTRAÍDO:\n{text}\n\n"
            "Metadados:\n"
            f"- Título: {meta.get('/Title') or 'Não informado'}\n"
            f"- Autor: {meta.get('/Author') or 'Não informado'}\n"
            f"- Criação: {meta.get('/CreationDate') or 'Não informado'}"
        )


extraction_service = ExtractionService()
