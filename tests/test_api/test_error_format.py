"""
Tests for the uniform error envelope and request guards.
"""

import uuid

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from buscai.config import settings
from buscai.dependencies import get_billing_service
from buscai.errors import AppError, register_error_handlers
from buscai.main import create_app
from buscai.services.billing import BillingService
from tests.conftest import FakeBillingRepo, FakeCompanyRepo


@pytest.fixture
def client():
    app = create_app()
    app.dependency_overrides[get_billing_service] = lambda: BillingService(FakeBillingRepo(), FakeCompanyRepo())
    return TestClient(app)


def owner_headers(company_id=None):
    headers = {"X-User-Id": str(uuid.uuid4())}
    if company_id:
        headers["X-Company-Id"] = str(company_id)
    return headers


class TestErrorEnvelope:
    def test_unknown_route(self, client):
        response = client.get("/api/v1/nope")
        assert response.status_code == 404
        assert response.json() == {"error": {"code": "HTTP_ERROR", "message": "Not Found", "status": 404}}

    def test_missing_actor(self, client):
        response = client.get("/api/v1/billing/wallet")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_malformed_actor(self, client):
        response = client.get("/api/v1/billing/wallet", headers={"X-User-Id": "not-a-uuid"})
        assert response.status_code == 401

    def test_validation_error(self, client):
        response = client.post(
            "/api/v1/billing/recharges", json={"amount_cents": -5}, headers=owner_headers(uuid.uuid4())
        )
        body = response.json()["error"]
        assert response.status_code == 400
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"][0]["loc"][-1] == "amount_cents"

    def test_company_not_linked(self, client):
        response = client.get("/api/v1/billing/wallet", headers=owner_headers())
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "company_not_linked"

    def test_read_only_mode(self, client, monkeypatch):
        monkeypatch.setattr(settings, "READONLY_MODE", True)
        response = client.post(
            "/api/v1/billing/credits", json={"amount_cents": 100}, headers=owner_headers(uuid.uuid4())
        )
        assert response.status_code == 503
        assert response.json()["error"] == {"code": "READ_ONLY", "message": "read_only_mode", "status": 503}

    def test_api_key_enforced_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "API_KEY", "secret")
        response = client.get("/api/v1/billing/wallet", headers=owner_headers(uuid.uuid4()))
        assert response.status_code == 401


class TestHandlers:
    def build(self):
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/conflict")
        async def conflict():
            raise AppError(409, "duplicate_company", code="DEDUPE_CONFLICT", details={"dedupe_hits": []})

        @app.get("/boom")
        async def boom():
            raise RuntimeError("kaboom")

        return TestClient(app, raise_server_exceptions=False)

    def test_details_included(self):
        response = self.build().get("/conflict")
        assert response.status_code == 409
        assert response.json()["error"]["details"] == {"dedupe_hits": []}

    def test_unexpected_error_hides_message(self):
        response = self.build().get("/boom")
        assert response.status_code == 500
        assert response.json() == {"error": {"code": "UNEXPECTED_ERROR", "message": "Erro interno", "status": 500}}
