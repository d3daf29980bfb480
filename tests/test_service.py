"""
Tests for the FastAPI service.

Validates:
- /health liveness
- /flows catalog and per-flow visibility
- /report/pdf returns an attachment with a safe filename
- Serialization failures map to HTTP 500 with the error dict
"""

import pytest
from fastapi.testclient import TestClient

from kycreport.report.render_pdf import ReportDocument
from kycreport.service.main import app


@pytest.fixture
def client():
    return TestClient(app)


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers


class TestFlows:

    def test_list(self, client):
        flows = client.get("/flows").json()["flows"]
        assert flows["BASIC_IDV"] == ["idDocument", "selfie"]
        assert "Default" in flows

    def test_simple_kyc(self, client):
        body = client.get("/flows/SimpleKYC").json()
        assert body["resolved"] == "SimpleKYC"
        assert body["visibility"]["address"] is False
        assert body["visibility"]["phone"] is True
        assert body["placeholder"] == "Not collected (flow)"

    def test_unknown_resolves_default(self, client):
        body = client.get("/flows/Nope").json()
        assert body["resolved"] == "Default"
        assert body["required_steps"] == ["phone", "email", "idDocument", "selfie", "proofOfAddress"]


class TestReportPdf:

    def test_pdf_attachment(self, client, applicant, verification_results):
        response = client.post("/report/pdf", json={
            "applicant": applicant,
            "verification_results": verification_results,
            "client_name": "Acme Bank",
        })
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == (
            'attachment; filename="NOBIS-Verification-Report-Jane-Doe.pdf"'
        )
        assert response.content.startswith(b"%PDF")

    def test_results_optional(self, client):
        response = client.post("/report/pdf", json={"applicant": {"name": "Zoë Ünal"}})
        assert response.status_code == 200
        assert 'filename="NOBIS-Verification-Report-Zoe-Unal.pdf"' in response.headers["content-disposition"]

    def test_missing_applicant_is_422(self, client):
        assert client.post("/report/pdf", json={"verification_results": []}).status_code == 422

    def test_serialization_failure_is_500(self, client, monkeypatch):
        def boom(self, *args, **kwargs):
            raise RuntimeError("encoder exploded")

        monkeypatch.setattr(ReportDocument, "output", boom)
        response = client.post("/report/pdf", json={"applicant": {"name": "Jane"}})
        assert response.status_code == 500
        detail = response.json()["detail"]
        assert detail["code"] == "KR_SERIALIZATION_FAILED"
        assert detail["request_id"]
