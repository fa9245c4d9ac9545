import base64
import io

import pytest
from docx import Document
from fastapi import HTTPException
from pypdf import PdfWriter

from iara.core.config import settings
from iara.services.extraction_service import ExtractionService, decode_payload, placeholder_text


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def blank_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=595, height=842)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


def docx_bytes(*paragraphs: str) -> bytes:
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.mark.parametrize(
    "kind, marker",
    [
        ("pdf", "[PDF PROCESSADO]"),
        ("doc", "[DOCUMENTO WORD PROCESSADO]"),
        ("image", "[IMAGEM PROCESSADA VIA OCR]"),
    ],
)
def test_placeholder_without_libraries(kind, marker):
    service = ExtractionService(use_libraries=False)
    text = service.extract(b"x" * 1234, "arquivo.bin", kind)

    assert text == placeholder_text(kind, "arquivo.bin", 1234)
    assert text.startswith(f"{marker} arquivo.bin")
    assert "1234 bytes" in text


def test_unreadable_file_falls_back_to_placeholder():
    service = ExtractionService(use_libraries=True)
    for kind in ("pdf", "doc", "image"):
        text = service.extract(b"not a real document", "broken", kind)
        assert text == placeholder_text(kind, "broken", 19)


def test_docx_text_is_extracted():
    service = ExtractionService(use_libraries=True)
    text = service.extract(docx_bytes("Cláusula primeira", "", "Cláusula segunda"), "contrato.docx", "doc")

    assert text == "[DOCUMENTO WORD PROCESSADO] contrato.docx\n\nCláusula primeira\n\nCláusula segunda"


def test_plain_text_is_decoded():
    service = ExtractionService()
    assert service.extract("Petição inicial".encode("utf-8"), "p.txt", "text") == "Petição inicial"


def test_unknown_kind_is_rejected():
    with pytest.raises(HTTPException) as exc:
        ExtractionService().extract(b"abc", "a.xls", "spreadsheet")
    assert exc.value.status_code == 400


def test_extraction_size_cap(monkeypatch):
    monkeypatch.setattr(settings, "EXTRACTION_MAX_BYTES", 10)
    service = ExtractionService(use_libraries=False)

    assert service.extract(b"x" * 10, "ok.pdf", "pdf").startswith("[PDF PROCESSADO]")
    with pytest.raises(HTTPException) as exc:
        service.extract(b"x" * 11, "big.pdf", "pdf")
    assert exc.value.status_code == 413


def test_decode_payload_variants():
    assert decode_payload(b64(b"hello")) == b"hello"
    assert decode_payload("data:application/pdf;base64," + b64(b"%PDF")) == b"%PDF"
    assert decode_payload([104, 105]) == b"hi"


@pytest.mark.parametrize("payload", [None, "", [], "***not base64***", [256]])
def test_decode_payload_rejects_bad_input(payload):
    with pytest.raises(HTTPException) as exc:
        decode_payload(payload)
    assert exc.value.status_code == 400


def test_decode_payload_accepts_wrapped_lines():
    raw = bytes(range(256)) * 4
    wrapped = base64.encodebytes(raw).decode("ascii")

    assert "\n" in wrapped.strip()
    assert decode_payload(wrapped) == raw
    assert decode_payload("data:application/pdf;base64,\r\n" + wrapped.replace("\n", "\r\n")) == raw


@pytest.mark.parametrize("encoded, raw", [("YWI", b"ab"), ("YQ", b"a"), ("YWI=", b"ab"), ("YQ===", b"a")])
def test_decode_payload_restores_padding(encoded, raw):
    assert decode_payload(encoded) == raw


def test_decode_payload_accepts_urlsafe_alphabet():
    raw = bytes([0xFB, 0xFF, 0xFE, 0x3E])
    assert base64.urlsafe_b64encode(raw) == b"-__-Pg=="

    assert decode_payload("-__-Pg") == raw
    assert decode_payload("+//+Pg==") == raw


def test_decode_payload_rejects_oversized_string_before_decoding(monkeypatch):
    def fail_decode(*args, **kwargs):
        raise AssertionError("oversized payload was decoded")

    monkeypatch.setattr(settings, "EXTRACTION_MAX_BYTES", 10)
    encoded = b64(b"x" * 30)
    monkeypatch.setattr(base64, "b64decode", fail_decode)

    with pytest.raises(HTTPException) as exc:
        decode_payload(encoded, "big.pdf")
    assert exc.value.status_code == 413
    assert exc.value.detail.startswith("File big.pdf exceeds the maximum size")


def test_decode_payload_rejects_oversized_byte_array(monkeypatch):
    monkeypatch.setattr(settings, "EXTRACTION_MAX_BYTES", 4)

    with pytest.raises(HTTPException) as exc:
        decode_payload([1, 2, 3, 4, 5], "big.pdf")
    assert exc.value.status_code == 413


def test_decode_payload_accepts_payload_at_the_cap(monkeypatch):
    monkeypatch.setattr(settings, "EXTRACTION_MAX_BYTES", 10)

    assert decode_payload(b64(b"x" * 10)) == b"x" * 10
    assert decode_payload(b64(b"x" * 10).rstrip("=")) == b"x" * 10
    assert decode_payload([7] * 10) == bytes([7] * 10)


def test_pdf_report_without_text():
    text = ExtractionService().extract_pdf_text(blank_pdf(), "scan.pdf")

    assert text.startswith("DOCUMENTO PDF: scan.pdf\nPáginas: 1\n")
    assert "ATENÇÃO: Nenhum texto extraído do PDF." in text


def test_pdf_report_on_corrupt_file():
    text = ExtractionService().extract_pdf_text(b"garbage bytes", "bad.pdf")

    assert text.startswith("ERRO NA EXTRAÇÃO DO PDF: bad.pdf")
    assert "Possíveis causas:" in text


# ============================================================================
# Endpoints
# ============================================================================

def test_file_processing_endpoint(client, headers, monkeypatch):
    monkeypatch.setattr(settings, "EXTRACTION_USE_LIBRARIES", False)
    resp = client.post(
        "/api/v1/file-processing",
        json={"file": b64(b"%PDF-1.4 fake"), "filename": "inicial.pdf", "type": "pdf"},
        headers=headers,
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["filename"] == "inicial.pdf"
    assert body["text"].startswith("[PDF PROCESSADO] inicial.pdf")


def test_file_processing_requires_fields(client, headers):
    resp = client.post("/api/v1/file-processing", json={"filename": "a.pdf", "type": "pdf"}, headers=headers)
    assert resp.status_code == 400


def test_file_processing_unknown_type(client, headers):
    resp = client.post(
        "/api/v1/file-processing",
        json={"file": b64(b"abc"), "filename": "a.xls", "type": "excel"},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Unsupported file type: excel"


def test_file_processing_requires_auth(client):
    resp = client.post("/api/v1/file-processing", json={"file": b64(b"a"), "filename": "a.txt", "type": "text"})
    assert resp.status_code == 401


def test_extract_pdf_text_accepts_byte_array(client, headers):
    resp = client.post(
        "/api/v1/extract-pdf-text",
        json={"file": list(blank_pdf()), "filename": "scan.pdf"},
        headers=headers,
    )

    assert resp.status_code == 200
    assert "Nenhum texto extraído" in resp.json()["text"]


def test_extract_pdf_text_default_filename(client, headers):
    resp = client.post("/api/v1/extract-pdf-text", json={"file": b64(b"garbage")}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["filename"] == "documento.pdf"
    assert resp.json()["text"].startswith("ERRO NA EXTRAÇÃO DO PDF: documento.pdf")


def test_file_processing_accepts_wrapped_base64(client, headers):
    resp = client.post(
        "/api/v1/file-processing",
        json={"file": base64.encodebytes(b"linha um\n" * 20).decode("ascii"), "filename": "notas.txt", "type": "text"},
        headers=headers,
    )

    assert resp.status_code == 200
    assert resp.json()["text"] == "linha um\n" * 20


def test_file_processing_rejects_oversized_payload(client, headers, monkeypatch):
    monkeypatch.setattr(settings, "EXTRACTION_MAX_BYTES", 10)
    resp = client.post(
        "/api/v1/file-processing",
        json={"file": b64(b"x" * 30), "filename": "grande.txt", "type": "text"},
        headers=headers,
    )

    assert resp.status_code == 413
    assert resp.json()["success"] is False
    assert resp.json()["error"].startswith("File grande.txt exceeds the maximum size")


def test_extract_pdf_text_rejects_oversized_byte_array(client, headers, monkeypatch):
    monkeypatch.setattr(settings, "EXTRACTION_MAX_BYTES", 10)
    resp = client.post(
        "/api/v1/extract-pdf-text",
        json={"file": [37] * 11, "filename": "scan.pdf"},
        headers=headers,
    )

    assert resp.status_code == 413
