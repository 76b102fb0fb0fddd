"""
Tests for auction config management and summaries.
"""

import pytest

from buscai.errors import AppError
from buscai.schemas.auction import AuctionConfigRequest
from buscai.schemas.common import Actor
from buscai.services.auction import AuctionService, summary_status
from tests.conftest import FakeCompanyRepo, make_company


@pytest.fixture
def company(owner):
    return make_company(owner_id=owner.user_id)


@pytest.fixture
def actor(owner, company):
    return Actor(user_id=owner.user_id, company_id=company.id)


@pytest.fixture
def service(auction_repo, company, billing_repo, search_repo):
    return AuctionService(auction_repo, FakeCompanyRepo(company), billing_repo, search_repo)


class TestSummaryStatus:
    def test_balance_first(self):
        assert summary_status(0, False, True, 100, 500) == "insufficient_balance"

    def test_budget_pause(self):
        assert summary_status(100, True, True, 100, 100) == "paused_by_limit"

    def test_budget_ignored_without_pause(self):
        assert summary_status(100, True, False, 100, 100) == "active"

    def test_manual_pause(self):
        assert summary_status(100, False, True, None, 0) == "paused"


class TestUpsertConfig:
    async def test_create_manual(self, service, actor, city, niche):
        result = await service.upsert_config(actor, AuctionConfigRequest(
            city_id=city.id, niche_id=niche.id, bid_position1_cents=300, daily_budget_cents=2000,
        ))
        assert result.mode == "manual"
        assert result.bid_position1_cents == 300
        assert [s.type for s in result.slots] == ["auction"] * 3 + ["organic"] * 2

    async def test_same_market_updates_existing(self, service, auction_repo, actor, city, niche):
        first = await service.upsert_config(actor, AuctionConfigRequest(
            city_id=city.id, niche_id=niche.id, bid_position1_cents=300,
        ))
        second = await service.upsert_config(actor, AuctionConfigRequest(
            city_id=city.id, niche_id=niche.id, bid_position2_cents=200,
        ))
        assert first.id == second.id
        assert second.bid_position1_cents == 300
        assert second.bid_position2_cents == 200
        assert len(auction_repo.configs) == 1

    async def test_smart_stored_as_auto_and_clears_bids(self, service, actor, city, niche):
        await service.upsert_config(actor, AuctionConfigRequest(
            city_id=city.id, niche_id=niche.id, bid_position1_cents=300,
        ))
        result = await service.upsert_config(actor, AuctionConfigRequest(
            city_id=city.id, niche_id=niche.id, mode="smart", target_position=2,
        ))
        assert result.mode == "auto"
        assert result.target_position == 2
        assert result.bid_position1_cents is None

    async def test_manual_with_target_rejected(self, service, actor, city, niche):
        with pytest.raises(AppError) as exc:
            await service.upsert_config(actor, AuctionConfigRequest(
                city_id=city.id, niche_id=niche.id, target_position=1,
            ))
        assert exc.value.message == "invalid_target_position"

    async def test_owner_without_company(self, service, owner, city, niche):
        with pytest.raises(AppError) as exc:
            await service.upsert_config(owner, AuctionConfigRequest(city_id=city.id, niche_id=niche.id))
        assert exc.value.message == "company_not_linked"


class TestMarket:
    async def test_slots_show_heads_and_organic(self, service, auction_repo, company, city, niche):
        rival = make_company(trade_name="Rival")
        auction_repo.add_config(company.id, city.id, niche.id, bid_position1_cents=300)
        auction_repo.organic = [rival]
        overview = await service.list_slots(city.id, niche.id)
        assert overview.slots[0].company_id == company.id
        assert overview.slots[0].bid_cents == 300
        assert overview.slots[1].company_id is None
        assert overview.slots[3].trade_name == "Rival"

    async def test_summary(self, service, auction_repo, billing_repo, search_repo, actor, company, city, niche):
        auction_repo.add_config(company.id, city.id, niche.id, bid_position1_cents=300, daily_budget_cents=1000)
        billing_repo.seed_wallet(company.id, 5000)
        search_repo.spend[company.id] = 600
        search_repo.performance = {"impressions": 4, "clicks": 1, "avg_paid_position": 1.0}

        summary = await service.get_summary(actor, company.id, city.id, niche.id)

        assert summary.status == "active"
        assert summary.today_spent_cents == 600
        assert summary.ctr == 0.25
        assert summary.wallet_balance_cents == 5000
        assert len(summary.market_slots) == 5
