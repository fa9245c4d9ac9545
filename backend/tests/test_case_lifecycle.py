import json
import uuid

import httpx
import pytest
from sqlalchemy import event, func
from sqlalchemy.exc import OperationalError

from conftest import TestingSessionLocal, auth_headers, openai_reply
from iara.core.config import settings
from iara.db.models import (
    AIProcessingLog,
    AIResponse,
    Attachment,
    Case,
    CaseStatus,
    ProcessingLogStatus,
)

NDA = {
    "filename": "nda.pdf",
    "content_type": "application/pdf",
    "file_size": 120000,
    "url": "https://store/abc.pdf",
}


def count(db, model):
    return db.query(func.count(model.id)).scalar()


def create_case(client, headers, title="Contract review",
                description="Please review attached NDA for risky clauses", attachments=None):
    return client.post(
        "/api/v1/create-case",
        json={
            "title": title,
            "description": description,
            "attachments": [NDA] if attachments is None else attachments,
        },
        headers=headers,
    )


# ============================================================================
# CreateCase
# ============================================================================

def test_create_case_starts_pending_with_attachment(client, db, headers):
    resp = create_case(client, headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["case"]["status"] == "pending"
    assert count(db, Case) == 1
    assert count(db, Attachment) == 1
    assert count(db, AIResponse) == 0

    attachment = db.query(Attachment).one()
    assert attachment.file_url == "https://store/abc.pdf"
    assert attachment.content_type == "application/pdf"


def test_create_case_trims_title_and_description(client, headers):
    resp = create_case(client, headers, title="   Lease   ", description="  Ten chars!  ")
    assert resp.status_code == 200
    assert resp.json()["case"]["title"] == "Lease"
    assert resp.json()["case"]["description"] == "Ten chars!"


@pytest.mark.parametrize("title", ["", "   ", "ab", "  ab  ", "x" * 201])
def test_create_case_rejects_title_out_of_bounds(client, db, headers, title):
    resp = create_case(client, headers, title=title)
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert count(db, Case) == 0


@pytest.mark.parametrize("description", ["", "too short", "   nine c   ", "d" * 5001])
def test_create_case_rejects_description_out_of_bounds(client, db, headers, description):
    resp = create_case(client, headers, description=description)
    assert resp.status_code == 400
    assert count(db, Case) == 0


@pytest.mark.parametrize(
    "title, stored",
    [("abc", "abc"), ("  abc  ", "abc"), ("t" * 200, "t" * 200), ("  " + "t" * 200 + "  ", "t" * 200)],
)
def test_create_case_accepts_title_at_bounds(client, db, headers, title, stored):
    resp = create_case(client, headers, title=title)
    assert resp.status_code == 200
    assert resp.json()["case"]["title"] == stored
    assert db.query(Case).one().title == stored


@pytest.mark.parametrize(
    "description, stored",
    [
        ("d" * 10, "d" * 10),
        ("   ten chars!   ", "ten chars!"),
        ("d" * 5000, "d" * 5000),
        ("\n" + "d" * 5000 + "\t ", "d" * 5000),
    ],
)
def test_create_case_accepts_description_at_bounds(client, db, headers, description, stored):
    resp = create_case(client, headers, description=description)
    assert resp.status_code == 200
    assert resp.json()["case"]["description"] == stored
    assert db.query(Case).one().description == stored


def test_create_case_rejects_non_string_title(client, db, headers):
    resp = create_case(client, headers, title=12345)
    assert resp.status_code == 400
    assert count(db, Case) == 0


@pytest.mark.parametrize("content_type", ["application/zip", "text/html", "video/mp4", ""])
def test_create_case_rejects_unsupported_media(client, db, headers, content_type):
    attachments = [NDA, dict(NDA, filename="bad", content_type=content_type)]
    resp = create_case(client, headers, attachments=attachments)

    assert resp.status_code == 415
    assert count(db, Case) == 0
    assert count(db, Attachment) == 0


def test_create_case_accepts_every_allowed_type(client, db, headers):
    types = [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
        "image/jpeg",
        "image/png",
        "image/gif",
    ]
    attachments = [dict(NDA, filename=f"f{i}", content_type=t) for i, t in enumerate(types)]
    resp = create_case(client, headers, attachments=attachments)

    assert resp.status_code == 200
    assert count(db, Attachment) == len(types)


def test_create_case_rejects_attachment_over_50mb(client, db, headers):
    big = dict(NDA, file_size=50 * 1024 * 1024 + 1)
    resp = create_case(client, headers, attachments=[big])

    assert resp.status_code == 413
    assert count(db, Case) == 0


def test_create_case_accepts_attachment_of_exactly_50mb(client, headers):
    resp = create_case(client, headers, attachments=[dict(NDA, file_size=50 * 1024 * 1024)])
    assert resp.status_code == 200


def test_create_case_requires_authentication(client, db):
    resp = create_case(client, {})
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Authorization token not found"}
    assert count(db, Case) == 0


# ============================================================================
# ProcessCase
# ============================================================================

def test_process_case_without_providers_uses_mock(client, db, headers):
    case_id = create_case(client, headers).json()["case"]["id"]

    resp = client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["model_used"] == "mock-ai"
    assert "## Análise do Caso: Contract review" in body["response"]
    assert isinstance(body["processing_time"], int)

    case = db.query(Case).one()
    assert case.status == CaseStatus.completed
    response = db.query(AIResponse).one()
    assert response.model_used == "mock-ai"
    assert response.confidence_score == pytest.approx(0.60)
    log = db.query(AIProcessingLog).one()
    assert log.status == ProcessingLogStatus.completed
    assert str(log.case_id) == case_id


def test_process_case_with_provider_stores_reply(client, db, headers, provider_stub, monkeypatch):
    monkeypatch.setattr(settings, "DEEPSEEK_API_KEY", "sk-deepseek")
    provider_stub.responder = lambda request: httpx.Response(200, json=openai_reply("Parecer completo"))
    case_id = create_case(client, headers).json()["case"]["id"]

    resp = client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["response"] == "Parecer completo"
    assert resp.json()["model_used"] == "deepseek-chat"

    request = provider_stub.requests[0]
    assert str(request.url) == "https://api.deepseek.com/v1/chat/completions"
    assert request.headers["authorization"] == "Bearer sk-deepseek"
    sent = json.loads(request.content)
    assert sent["temperature"] == 0.3
    assert sent["max_tokens"] == 4000
    user_message = sent["messages"][-1]["content"]
    assert "TÍTULO: Contract review" in user_message
    assert "nda.pdf (application/pdf)" in user_message

    assert db.query(Case).one().status == CaseStatus.completed
    assert db.query(AIResponse).one().confidence_score == pytest.approx(0.85)
    assert count(db, AIProcessingLog) == 1


def test_process_case_upstream_failure_marks_failed(client, db, headers, provider_stub, monkeypatch):
    monkeypatch.setattr(settings, "DEEPSEEK_API_KEY", "sk-deepseek")
    provider_stub.responder = lambda request: httpx.Response(503, text="overloaded")
    case_id = create_case(client, headers).json()["case"]["id"]

    resp = client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)

    assert resp.status_code == 502
    assert resp.json()["success"] is False
    assert "deepseek" in resp.json()["error"]

    assert db.query(Case).one().status == CaseStatus.failed
    assert count(db, AIResponse) == 0
    log = db.query(AIProcessingLog).one()
    assert log.status == ProcessingLogStatus.failed
    assert log.error_code == "UPSTREAM_PROVIDER_ERROR"
    assert log.error_message


def test_process_case_marks_failed_when_failure_log_cannot_be_written(client, db, headers, provider_stub, monkeypatch):
    monkeypatch.setattr(settings, "DEEPSEEK_API_KEY", "sk-deepseek")
    provider_stub.responder = lambda request: httpx.Response(503, text="overloaded")
    case_id = create_case(client, headers).json()["case"]["id"]

    def reject_failure_log(session, flush_context, instances):
        if any(isinstance(obj, AIProcessingLog) for obj in session.new):
            raise OperationalError("INSERT INTO ai_processing_logs", {}, Exception("database is locked"))

    event.listen(TestingSessionLocal, "before_flush", reject_failure_log)
    try:
        resp = client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)
    finally:
        event.remove(TestingSessionLocal, "before_flush", reject_failure_log)

    assert resp.status_code == 502
    assert db.query(Case).one().status == CaseStatus.failed
    assert count(db, AIProcessingLog) == 0

    retry = client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)
    assert retry.status_code == 409
    assert "failed" in retry.json()["error"]


def test_process_case_network_error_marks_failed(client, db, headers, provider_stub, monkeypatch):
    monkeypatch.setattr(settings, "GROQ_API_KEY", "gsk-test")

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider_stub.responder = refuse
    case_id = create_case(client, headers).json()["case"]["id"]

    resp = client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)

    assert resp.status_code == 502
    assert db.query(Case).one().status == CaseStatus.failed


def test_process_case_falls_through_to_next_provider(client, db, headers, provider_stub, monkeypatch):
    monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", "sk-ant")
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-openai")

    def respond(request):
        if request.url.host == "api.anthropic.com":
            return httpx.Response(500, text="boom")
        return httpx.Response(200, json=openai_reply("from openai", model="gpt-4-turbo-preview"))

    provider_stub.responder = respond
    case_id = create_case(client, headers).json()["case"]["id"]

    resp = client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["model_used"] == "gpt-4-turbo-preview"
    assert [r.url.host for r in provider_stub.requests] == ["api.anthropic.com", "api.openai.com"]


def test_process_case_failure_can_fall_back_to_mock(client, db, headers, provider_stub, monkeypatch):
    monkeypatch.setattr(settings, "DEEPSEEK_API_KEY", "sk-deepseek")
    monkeypatch.setattr(settings, "AI_FALLBACK_ON_PROVIDER_FAILURE", True)
    provider_stub.responder = lambda request: httpx.Response(401, text="bad key")
    case_id = create_case(client, headers).json()["case"]["id"]

    resp = client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["model_used"] == "mock-ai"
    assert db.query(AIResponse).one().confidence_score == pytest.approx(0.60)


@pytest.mark.parametrize("final_status", ["completed", "failed"])
def test_process_case_rejects_non_pending_case(client, db, headers, final_status):
    case_id = create_case(client, headers).json()["case"]["id"]
    case = db.query(Case).one()
    case.status = CaseStatus(final_status)
    db.commit()

    resp = client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)

    assert resp.status_code == 409
    assert count(db, AIResponse) == 0
    assert count(db, AIProcessingLog) == 0
    db.expire_all()
    assert db.query(Case).one().status == CaseStatus(final_status)


def test_process_case_twice_appends_nothing_second_time(client, db, headers):
    case_id = create_case(client, headers).json()["case"]["id"]

    first = client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)
    second = client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)

    assert first.status_code == 200
    assert second.status_code == 409
    assert count(db, AIResponse) == 1
    assert count(db, AIProcessingLog) == 1


def test_process_case_unknown_case(client, headers):
    resp = client.post("/api/v1/process-case", json={"caseId": str(uuid.uuid4())}, headers=headers)
    assert resp.status_code == 404


def test_process_case_malformed_case_id_is_not_found(client, db, headers):
    resp = client.post("/api/v1/process-case", json={"caseId": "not-a-uuid"}, headers=headers)
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Case not-a-uuid not found"}
    assert count(db, AIProcessingLog) == 0


def test_process_case_blank_case_id(client, headers):
    resp = client.post("/api/v1/process-case", json={"caseId": "   "}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "caseId is required"


def test_get_case_malformed_case_id_is_not_found(client, headers):
    create_case(client, headers)

    resp = client.get("/api/v1/get-cases", params={"caseId": "12345"}, headers=headers)
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_process_case_of_another_user_is_not_found(client, db, headers, other_user):
    case_id = create_case(client, headers).json()["case"]["id"]

    resp = client.post("/api/v1/process-case", json={"caseId": case_id}, headers=auth_headers(other_user))

    assert resp.status_code == 404
    assert db.query(Case).one().status == CaseStatus.pending


def test_process_case_uses_explicit_prompt(client, headers):
    case_id = create_case(client, headers).json()["case"]["id"]

    resp = client.post(
        "/api/v1/process-case",
        json={"caseId": case_id, "prompt": "Analise apenas os riscos contratuais."},
        headers=headers,
    )

    assert resp.json()["response"].startswith("Analise apenas os riscos contratuais.")


# ============================================================================
# Reads and delete
# ============================================================================

def test_get_cases_lists_own_cases_with_counts(client, headers, other_user):
    first = create_case(client, headers, title="First case").json()["case"]["id"]
    create_case(client, headers, title="Second case", attachments=[])
    create_case(client, auth_headers(other_user), title="Not mine")
    client.post("/api/v1/process-case", json={"caseId": first}, headers=headers)

    resp = client.get("/api/v1/get-cases", headers=headers)

    assert resp.status_code == 200
    cases = {c["title"]: c for c in resp.json()["cases"]}
    assert set(cases) == {"First case", "Second case"}
    assert cases["First case"]["attachment_count"] == 1
    assert cases["First case"]["response_count"] == 1
    assert cases["Second case"]["attachment_count"] == 0
    assert cases["Second case"]["response_count"] == 0


def test_get_cases_empty(client, headers):
    resp = client.get("/api/v1/get-cases", headers=headers)
    assert resp.json() == {"success": True, "cases": []}


def test_get_case_detail_embeds_attachments_and_latest_response(client, headers):
    case_id = create_case(client, headers).json()["case"]["id"]
    client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)

    resp = client.get("/api/v1/get-cases", params={"caseId": case_id}, headers=headers)

    case = resp.json()["case"]
    assert case["status"] == "completed"
    assert [a["filename"] for a in case["attachments"]] == ["nda.pdf"]
    assert len(case["ai_responses"]) == 1
    assert case["latest_response"]["model_used"] == "mock-ai"


def test_get_case_detail_not_found(client, headers):
    resp = client.get("/api/v1/get-cases", params={"caseId": str(uuid.uuid4())}, headers=headers)
    assert resp.status_code == 404


def test_delete_case_cascades(client, db, headers, fake_s3):
    attachments = [dict(NDA, storage_key="1700000000000_abc123xyz.pdf")]
    case_id = create_case(client, headers, attachments=attachments).json()["case"]["id"]
    client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)
    assert count(db, AIResponse) == 1

    resp = client.delete(f"/api/v1/cases/{case_id}", headers=headers)

    assert resp.status_code == 200
    assert count(db, Case) == 0
    assert count(db, Attachment) == 0
    assert count(db, AIResponse) == 0
    assert count(db, AIProcessingLog) == 0
    assert fake_s3.deleted == ["1700000000000_abc123xyz.pdf"]


def test_delete_case_of_another_user_is_refused(client, db, headers, other_user):
    case_id = create_case(client, headers).json()["case"]["id"]

    resp = client.delete(f"/api/v1/cases/{case_id}", headers=auth_headers(other_user))

    assert resp.status_code == 404
    assert count(db, Case) == 1


def test_processing_logs_endpoint(client, headers):
    case_id = create_case(client, headers).json()["case"]["id"]
    client.post("/api/v1/process-case", json={"caseId": case_id}, headers=headers)

    resp = client.get(f"/api/v1/cases/{case_id}/processing-logs", headers=headers)

    logs = resp.json()["logs"]
    assert len(logs) == 1
    assert logs[0]["status"] == "completed"
    assert logs[0]["model_used"] == "mock-ai"
