"""
Search routes over in-memory repositories, including read-only mode.
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from buscai.config import settings
from buscai.dependencies import get_billing_service, get_search_service
from buscai.main import create_app
from buscai.services.auction import AuctionService
from buscai.services.billing import BillingService
from buscai.services.search import SearchService
from tests.conftest import FakeAudit, FakeCompanyRepo, make_company


@pytest.fixture
def bidder(city, niche, auction_repo, billing_repo):
    company = make_company(trade_name="Bidder", city_id=city.id, whatsapp="+5511988887777")
    auction_repo.add_config(company.id, city.id, niche.id, bid_position1_cents=500)
    billing_repo.seed_wallet(company.id, 10_000)
    return company


@pytest.fixture
def client(search_repo, catalog_repo, auction_repo, billing_repo, bidder):
    company_repo = FakeCompanyRepo(bidder)
    billing_service = BillingService(billing_repo, company_repo)
    service = SearchService(
        search_repo,
        catalog_repo,
        company_repo,
        AuctionService(auction_repo, company_repo, billing_repo, search_repo),
        billing_service,
        FakeAudit(),
    )
    app = create_app()
    app.dependency_overrides[get_search_service] = lambda: service
    app.dependency_overrides[get_billing_service] = lambda: billing_service
    return TestClient(app)


class TestSearchApi:
    def test_search_then_click(self, client, city, niche, bidder, search_repo):
        response = client.post("/api/v1/search", json={"city_id": str(city.id), "niche_id": str(niche.id)})
        assert response.status_code == 200
        search_id = response.json()["search_id"]

        click = client.get(
            f"/api/v1/search/{search_id}/click",
            params={"company_id": str(bidder.id)},
            follow_redirects=False,
        )
        assert click.status_code == 302
        assert click.headers["location"] == "https://wa.me/5511988887777"
        assert [e.type for e in search_repo.events] == ["click_whatsapp"]


class TestReadOnlyApi:
    @pytest.fixture(autouse=True)
    def read_only(self, monkeypatch):
        monkeypatch.setattr(settings, "READONLY_MODE", True)

    def test_search_still_answers(self, client, city, niche, bidder, search_repo, billing_repo):
        response = client.post(
            "/api/v1/search", json={"city_id": str(city.id), "niche_id": str(niche.id), "source": "whatsapp"}
        )
        assert response.status_code == 200
        assert response.json()["results"][0]["company"]["id"] == str(bidder.id)
        assert search_repo.searches == {}
        assert billing_repo.transactions == []

    def test_click_still_redirects(self, client, bidder, search_repo):
        click = client.get(
            f"/api/v1/search/{uuid.uuid4()}/click",
            params={"company_id": str(bidder.id), "type": "click_call"},
            follow_redirects=False,
        )
        assert click.status_code == 302
        assert click.headers["location"].startswith("tel:+")
        assert search_repo.events == []

    def test_event_accepted_without_write(self, client, bidder, search_repo):
        response = client.post(
            f"/api/v1/search/{uuid.uuid4()}/events",
            json={"type": "click_call", "company_id": str(bidder.id)},
        )
        assert response.status_code == 204
        assert search_repo.events == []

    def test_wallet_writes_still_blocked(self, client, bidder):
        response = client.post(
            "/api/v1/billing/credits",
            json={"amount_cents": 500, "company_id": str(bidder.id)},
            headers={"X-User-Id": str(uuid.uuid4()), "X-User-Role": "admin"},
        )
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "READ_ONLY"
