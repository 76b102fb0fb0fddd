"""
Tests for company search: paid positions, organic fill and charging.
"""

import uuid
from types import SimpleNamespace

import pytest

from buscai.config import settings
from buscai.errors import AppError
from buscai.services.auction import AuctionService
from buscai.services.billing import BillingService
from buscai.services.notifications import NotificationService
from buscai.services.search import SearchService
from tests.conftest import FakeCatalogRepo, FakeCompanyRepo, make_company


@pytest.fixture
def market(city, niche, auction_repo, billing_repo):
    """Three bidders and three organic listings in one city/niche."""
    bidders = [make_company(trade_name=f"Bidder {i}", city_id=city.id) for i in range(3)]
    organic = [
        make_company(trade_name=name, quality_score=score, city_id=city.id, whatsapp="+5511977770000")
        for name, score in (("Organica A", 90), ("Organica B", 80), ("Organica C", 10))
    ]
    for bidder, bid in zip(bidders, (500, 400, 300)):
        auction_repo.add_config(bidder.id, city.id, niche.id, bid_position1_cents=bid)
        billing_repo.seed_wallet(bidder.id, 10_000)
    auction_repo.organic = organic
    return bidders, organic


@pytest.fixture
def company_repo(market):
    bidders, organic = market
    return FakeCompanyRepo(*bidders, *organic)


@pytest.fixture
def service(search_repo, catalog_repo, company_repo, auction_repo, billing_repo, audit, notification_repo):
    billing_service = BillingService(billing_repo, company_repo)
    auction_service = AuctionService(auction_repo, company_repo, billing_repo, search_repo)
    notifications = NotificationService(notification_repo, company_repo)
    return SearchService(
        search_repo, catalog_repo, company_repo, auction_service, billing_service, audit, notifications
    )


class TestSearch:
    async def test_paid_then_organic(self, service, city, niche, market):
        bidders, organic = market
        response = await service.search(city.id, niche.id, source="web")

        paid = [r for r in response.results if r.is_paid]
        assert [r.position for r in paid] == [1]
        assert paid[0].company.id == bidders[0].id
        free = [r for r in response.results if not r.is_paid]
        assert [r.position for r in free] == [4, 5]
        assert [r.company.trade_name for r in free] == ["Organica A", "Organica B"]

    async def test_web_search_is_not_charged(self, service, city, niche, billing_repo, market):
        bidders, _ = market
        response = await service.search(city.id, niche.id, source="web")
        assert all(r.charged_amount_cents == 0 for r in response.results)
        assert billing_repo.wallets[bidders[0].id].balance_cents == 10_000

    async def test_whatsapp_search_charges_once(self, service, city, niche, billing_repo, search_repo, market):
        bidders, _ = market
        response = await service.search(city.id, niche.id, source="whatsapp")
        assert response.results[0].charged_amount_cents == 500
        assert billing_repo.wallets[bidders[0].id].balance_cents == 9_500
        impressions = [e for e in search_repo.events if e.type == "impression"]
        assert len(impressions) == 1

    async def test_failed_charge_demotes_result(self, service, city, niche, billing_repo, search_repo, audit, market):
        bidders, _ = market
        await service.search(city.id, niche.id, source="whatsapp")
        search_id = search_repo.results[0].search_id
        row = search_repo.results[0]
        billing_repo.wallets[bidders[0].id].balance_cents = 0

        search_repo.events.clear()
        await service._apply_impression_charges(search_id, [row])

        assert not row.is_paid
        assert search_repo.events == []
        assert "search_impression_failed" in audit.types()

    async def test_auction_disabled_is_all_organic(self, service, city, niche, monkeypatch):
        monkeypatch.setattr(settings, "AUCTION_DISABLED", True)
        response = await service.search(city.id, niche.id)
        assert not any(r.is_paid for r in response.results)
        assert response.results[0].position == 1

    async def test_daily_budget_exhausted(self, service, city, niche, auction_repo, search_repo, market):
        bidders, _ = market
        config = next(c for c in auction_repo.configs.values() if c.company_id == bidders[0].id)
        config.daily_budget_cents = 1000
        search_repo.spend[bidders[0].id] = 1000

        response = await service.search(city.id, niche.id)
        assert response.results[0].company.id == bidders[1].id

    async def test_unknown_city_is_audited(self, service, niche, audit):
        with pytest.raises(AppError) as exc:
            await service.search(uuid.uuid4(), niche.id)
        assert exc.value.message == "city_not_found"
        assert audit.types() == ["search_error"]


class TestPublicSearch:
    async def test_resolves_city_and_niche_from_text(self, service, search_repo, city, niche):
        response = await service.public_search("sao paulo", "pizzaria perto de mim")
        assert response.city_id == city.id
        assert response.niche_id == niche.id

    async def test_city_with_state(self, service, city):
        city_row = await service._resolve_city("São Paulo - SP")
        assert city_row.id == city.id

    async def test_city_with_comma_suffix(self, service, city):
        city_row = await service._resolve_city("Sao Paulo, SP")
        assert city_row.id == city.id

    async def test_state_suffix_must_match(self, service):
        with pytest.raises(AppError) as exc:
            await service._resolve_city("São Paulo - RJ")
        assert exc.value.message == "city_not_found"

    async def test_hyphenated_city_name(self, service, catalog_repo):
        embu = SimpleNamespace(id=uuid.uuid4(), name="Embu-Guaçu", state="SP", is_active=True)
        catalog_repo.cities[embu.id] = embu
        city_row = await service._resolve_city("embu-guacu")
        assert city_row.id == embu.id

    async def test_unknown_niche(self, service):
        with pytest.raises(AppError) as exc:
            await service.public_search("São Paulo", "encanador")
        assert exc.value.message == "niche_not_found"


class TestTracking:
    async def test_click_requires_company(self, service, city, niche):
        response = await service.search(city.id, niche.id)
        with pytest.raises(AppError) as exc:
            await service.track_event(response.search_id, "click_whatsapp")
        assert exc.value.message == "company_id_required"

    async def test_impression_recorded_once(self, service, search_repo, city, niche, market):
        bidders, _ = market
        response = await service.search(city.id, niche.id)
        await service.track_event(response.search_id, "impression", bidders[0].id)
        await service.track_event(response.search_id, "impression", bidders[0].id)
        assert len([e for e in search_repo.events if e.type == "impression"]) == 1

    async def test_redirect_to_whatsapp(self, service, search_repo, audit, city, niche, market):
        _, organic = market
        response = await service.search(city.id, niche.id)
        url = await service.build_tracking_redirect(response.search_id, organic[0].id, "click_whatsapp")
        assert url == "https://wa.me/5511977770000"
        assert search_repo.events[-1].type == "click_whatsapp"

    async def test_redirect_to_phone(self, service, city, niche, market):
        bidders, _ = market
        response = await service.search(city.id, niche.id)
        url = await service.build_tracking_redirect(response.search_id, bidders[0].id, "click_call")
        assert url == "tel:+5511999990000"

    async def test_unknown_search(self, service, market):
        bidders, _ = market
        with pytest.raises(AppError) as exc:
            await service.build_tracking_redirect(uuid.uuid4(), bidders[0].id, "click_call")
        assert exc.value.status_code == 404

    async def test_click_notifies_company(self, service, search_repo, notification_repo, city, niche, market):
        _, organic = market
        response = await service.search(city.id, niche.id)
        await service.build_tracking_redirect(response.search_id, organic[0].id, "click_whatsapp")
        titles = [n.title for n in notification_repo.notifications if n.company_id == organic[0].id]
        assert titles == ["Clique no WhatsApp"]
        assert search_repo.savepoints == ["released"]

    async def test_tracking_failure_still_redirects(self, service, search_repo, city, niche, market):
        _, organic = market
        response = await service.search(city.id, niche.id)
        search_repo.fail_events = True

        url = await service.build_tracking_redirect(response.search_id, organic[0].id, "click_whatsapp")

        assert url == "https://wa.me/5511977770000"
        assert search_repo.savepoints == ["rolled_back"]


class TestReadOnlyMode:
    @pytest.fixture(autouse=True)
    def read_only(self, monkeypatch):
        monkeypatch.setattr(settings, "READONLY_MODE", True)

    async def test_search_answers_without_writes(
        self, service, city, niche, search_repo, billing_repo, audit, notification_repo, market
    ):
        bidders, _ = market
        response = await service.search(city.id, niche.id, source="whatsapp")

        assert response.results[0].company.id == bidders[0].id
        assert response.results[0].charged_amount_cents == 0
        assert search_repo.searches == {}
        assert search_repo.results == []
        assert billing_repo.transactions == []
        assert billing_repo.wallets[bidders[0].id].balance_cents == 10_000
        assert audit.events == []
        assert notification_repo.notifications == []

    async def test_redirect_still_works(self, service, search_repo, market):
        _, organic = market
        url = await service.build_tracking_redirect(uuid.uuid4(), organic[0].id, "click_whatsapp")
        assert url == "https://wa.me/5511977770000"
        assert search_repo.events == []

    async def test_events_are_dropped(self, service, search_repo, market):
        bidders, _ = market
        await service.track_event(uuid.uuid4(), "impression", bidders[0].id)
        assert search_repo.events == []


class TestAuctionAlerts:
    async def test_outbid_bidders_are_notified(self, service, city, niche, notification_repo, market):
        bidders, _ = market
        await service.search(city.id, niche.id)

        alerts = notification_repo.notifications
        assert {n.company_id for n in alerts} == {bidders[1].id, bidders[2].id}
        assert all(n.dedupe_key.startswith("outbid_") for n in alerts)
        assert alerts[0].message == "Outro anunciante superou seu lance em Pizzaria - São Paulo/SP."

    async def test_alerts_fire_once_per_day(self, service, city, niche, notification_repo, market):
        await service.search(city.id, niche.id)
        await service.search(city.id, niche.id)
        assert len(notification_repo.notifications) == 2

    async def test_daily_limit_is_not_reported_as_outbid(
        self, service, city, niche, auction_repo, search_repo, notification_repo, market
    ):
        bidders, _ = market
        config = next(c for c in auction_repo.configs.values() if c.company_id == bidders[0].id)
        config.daily_budget_cents = 1000
        search_repo.spend[bidders[0].id] = 1000

        await service.search(city.id, niche.id)

        by_company = {n.company_id: n for n in notification_repo.notifications}
        assert by_company[bidders[0].id].dedupe_key == f"daily_limit_{config.id}"
        assert by_company[bidders[0].id].severity == "high"
        assert bidders[1].id not in by_company
        assert by_company[bidders[2].id].dedupe_key.startswith("outbid_")

    async def test_insufficient_funds_alert(self, service, city, niche, billing_repo, notification_repo, market):
        bidders, _ = market
        billing_repo.wallets[bidders[0].id].balance_cents = 100

        await service.search(city.id, niche.id)

        alert = next(n for n in notification_repo.notifications if n.company_id == bidders[0].id)
        assert alert.category == "financial"
        assert alert.title == "Saldo insuficiente"

    async def test_muted_category_is_skipped(self, service, city, niche, notification_repo, market):
        bidders, _ = market
        preferences = await notification_repo.create_default_preferences(bidders[1].id)
        preferences.visibility_enabled = False

        await service.search(city.id, niche.id)

        assert {n.company_id for n in notification_repo.notifications} == {bidders[2].id}

    async def test_low_balance_after_charge(self, service, city, niche, billing_repo, notification_repo, market):
        bidders, _ = market
        billing_repo.wallets[bidders[0].id].balance_cents = 2400

        await service.search(city.id, niche.id, source="whatsapp")

        assert billing_repo.wallets[bidders[0].id].balance_cents == 1900
        keys = [n.dedupe_key for n in notification_repo.notifications if n.company_id == bidders[0].id]
        assert keys == ["balance_low"]
