"""
Tests for the analytics dashboard aggregates.
"""

import uuid
from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient

from buscai.dependencies import get_analytics_service
from buscai.domain import auction as engine
from buscai.errors import AppError
from buscai.main import create_app
from buscai.schemas.common import Actor
from buscai.services.analytics import AnalyticsService, dashboard_range, parse_period
from tests.conftest import NOW, FakeCompanyRepo, make_company


class FakeAnalyticsRepo:
    def __init__(self):
        self.positions = []
        self.niches = []
        self.clicks = {}
        self.hours = []
        self.days = []
        self.spent = 0
        self.windows = []

    async def appearances_by_position(self, company_id, start, end, city_id=None, niche_id=None):
        self.windows.append((start, end))
        return self.positions

    async def appearances_by_niche(self, company_id, start, end, city_id=None):
        return self.niches

    async def clicks_by_type(self, company_id, start, end, city_id=None, niche_id=None):
        return self.clicks

    async def clicks_by_hour(self, company_id, start, end, tz_name, city_id=None, niche_id=None):
        return self.hours

    async def clicks_by_day(self, company_id, start, end, tz_name, city_id=None, niche_id=None):
        return self.days

    async def search_spend(self, company_id, start, end):
        return self.spent


class FakeRankingSource:
    def __init__(self, ranking=None):
        self.ranking = ranking or engine.Ranking()
        self.calls = []

    async def get_search_ranking(self, city_id, niche_id):
        self.calls.append((city_id, niche_id))
        return self.ranking, {}


@pytest.fixture
def company(owner):
    return make_company(owner_id=owner.user_id)


@pytest.fixture
def analytics_repo():
    return FakeAnalyticsRepo()


@pytest.fixture
def company_repo(company):
    return FakeCompanyRepo(company)


@pytest.fixture
def rankings():
    return FakeRankingSource()


@pytest.fixture
def service(analytics_repo, company_repo, rankings):
    return AnalyticsService(analytics_repo, company_repo, rankings)


class TestRange:
    def test_period_counts_today(self):
        start, end = dashboard_range("7", now=NOW)
        assert start == datetime(2026, 3, 4, 3, 0, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 11, 3, 0, tzinfo=timezone.utc)

    def test_explicit_dates(self):
        start, end = dashboard_range(start=date(2026, 2, 1), end=date(2026, 2, 28), now=NOW)
        assert start == datetime(2026, 2, 1, 3, 0, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 1, 3, 0, tzinfo=timezone.utc)

    def test_period_wins_over_start(self):
        start, _ = dashboard_range("1d", start=date(2026, 1, 1), now=NOW)
        assert start == datetime(2026, 3, 10, 3, 0, tzinfo=timezone.utc)

    def test_inverted_range_rejected(self):
        with pytest.raises(AppError) as exc:
            dashboard_range(start=date(2026, 3, 12), end=date(2026, 3, 1), now=NOW)
        assert exc.value.message == "invalid_range"

    @pytest.mark.parametrize("raw,days", [("30d", 30), ("abc", 7), (None, 7), ("0", 7), ("9999", 366)])
    def test_parse_period(self, raw, days):
        assert parse_period(raw) == days


class TestDashboard:
    async def test_totals_and_ratios(self, service, analytics_repo, owner, company):
        analytics_repo.positions = [(1, True, 6), (2, True, 4), (4, False, 10)]
        analytics_repo.niches = [("Pizzaria", 20)]
        analytics_repo.clicks = {"click_call": 3, "click_whatsapp": 2}
        analytics_repo.spent = 1000

        result = await service.dashboard(owner, company.id, period="7", now=NOW)

        assert result.appearances.total == 20
        assert result.appearances.auction == {"pos1": 6, "pos2": 4, "pos3": 0}
        assert result.appearances.organic == {"pos4": 10, "pos5": 0}
        assert result.actions.total_clicks == 5
        assert result.actions.ctr == 0.25
        assert result.costs.cost_per_appearance_cents == 100.0
        assert result.costs.cost_per_click_cents == 200.0
        assert result.appearances.by_niche[0].niche == "Pizzaria"

    async def test_empty_window(self, service, owner, company):
        result = await service.dashboard(owner, company.id, now=NOW)
        assert result.actions.ctr == 0.0
        assert result.costs.cost_per_click_cents == 0.0
        assert result.best_hour is None
        assert result.best_day_of_week is None

    async def test_best_hour_and_weekday(self, service, analytics_repo, owner, company):
        analytics_repo.hours = [(9, 1), (19, 4), (21, 2)]
        # 2026-03-09 is a Monday
        analytics_repo.days = [(date(2026, 3, 2), 2), (date(2026, 3, 9), 2), (date(2026, 3, 10), 3)]

        result = await service.dashboard(owner, company.id, now=NOW)

        assert result.best_hour == "19h"
        assert result.best_day_of_week == "Segunda"
        assert [b.hour for b in result.actions.clicks_by_hour] == [9, 19, 21]

    async def test_current_position_from_ranking(self, service, rankings, company_repo, owner, company):
        niche_id = uuid.uuid4()
        await company_repo.link_niche(company.id, niche_id)
        rankings.ranking = engine.Ranking(paid={2: [engine.Candidate(
            config_id=uuid.uuid4(), company_id=company.id, mode="manual", bid_cents=300, created_at=NOW,
        )]})

        result = await service.dashboard(owner, company.id, now=NOW)

        assert result.current_position == 2
        assert rankings.calls == [(company.city_id, niche_id)]

    async def test_organic_position(self, service, rankings, owner, company):
        rankings.ranking = engine.Ranking(organic_pool=[
            engine.OrganicCompany(company_id=uuid.uuid4(), trade_name="Outra"),
            engine.OrganicCompany(company_id=company.id, trade_name=company.trade_name),
        ])
        result = await service.dashboard(owner, company.id, niche_id=uuid.uuid4(), now=NOW)
        assert result.current_position == 5

    async def test_no_niche_no_position(self, service, rankings, owner, company):
        result = await service.dashboard(owner, company.id, now=NOW)
        assert result.current_position is None
        assert rankings.calls == []

    async def test_other_owner_forbidden(self, service, company):
        with pytest.raises(AppError) as exc:
            await service.dashboard(Actor(user_id=uuid.uuid4()), company.id, now=NOW)
        assert exc.value.status_code == 403


class TestDashboardApi:
    def test_route_resolves_company_from_headers(self, analytics_repo, company_repo, rankings, owner, company):
        app = create_app()
        app.dependency_overrides[get_analytics_service] = lambda: AnalyticsService(
            analytics_repo, company_repo, rankings
        )
        analytics_repo.clicks = {"click_call": 1}
        response = TestClient(app).get(
            "/api/v1/analytics/dashboard",
            params={"period": "30d"},
            headers={"X-User-Id": str(owner.user_id), "X-Company-Id": str(company.id)},
        )
        assert response.status_code == 200
        assert response.json()["actions"]["calls"] == 1
        start, end = analytics_repo.windows[0]
        assert (end - start).days == 30
