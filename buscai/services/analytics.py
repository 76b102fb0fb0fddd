"""
Company analytics dashboard: appearances, clicks and spend over a
window of São Paulo business days.
"""

import re
import uuid
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

import structlog

from buscai.config import settings
from buscai.domain import auction as engine
from buscai.domain.periods import business_date, business_day_range
from buscai.errors import AppError
from buscai.schemas.analytics import (
    ActionBreakdown,
    AppearanceBreakdown,
    CostBreakdown,
    DashboardResponse,
    DayBucket,
    HourBucket,
    NicheBucket,
)
from buscai.schemas.common import Actor
from buscai.services.access import ensure_company_access

logger = structlog.get_logger(__name__)

DEFAULT_PERIOD_DAYS = 7
MAX_PERIOD_DAYS = 366

WEEKDAYS = ("Segunda", "Terça", "Quarta", "Quinta", "Sexta", "Sábado", "Domingo")


def parse_period(period: Optional[str]) -> int:
    """'30', '30d' and friends; anything unparseable falls back to a week."""
    match = re.search(r"(\d+)", period or "")
    days = int(match.group(1)) if match else DEFAULT_PERIOD_DAYS
    if days <= 0:
        days = DEFAULT_PERIOD_DAYS
    return min(days, MAX_PERIOD_DAYS)


def dashboard_range(
    period: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    now: Optional[datetime] = None,
    tz_name: Optional[str] = None,
) -> tuple[datetime, datetime]:
    """
    [start, end) in UTC covering whole business days.
    A period of N days ends on `end` (default today) and includes it.
    An explicit start is used only when no period is given.
    """
    tz = ZoneInfo(tz_name or settings.TIMEZONE)
    last = end or business_date(now, tz_name)
    if start is not None and not period:
        first = start
    else:
        first = last - timedelta(days=parse_period(period) - 1)
    if first > last:
        raise AppError(400, "invalid_range")

    range_start, _ = business_day_range(datetime.combine(first, time(12), tzinfo=tz), tz_name)
    _, range_end = business_day_range(datetime.combine(last, time(12), tzinfo=tz), tz_name)
    return range_start, range_end


def ratio(numerator: int, denominator: int) -> float:
    return round(numerator / denominator, 4) if denominator else 0.0


class AnalyticsService:
    def __init__(self, analytics_repo, company_repo, auction_service):
        self.analytics_repo = analytics_repo
        self.company_repo = company_repo
        self.auction_service = auction_service

    async def dashboard(
        self,
        actor: Actor,
        company_id: uuid.UUID,
        period: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        city_id: Optional[uuid.UUID] = None,
        niche_id: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None,
    ) -> DashboardResponse:
        company = await ensure_company_access(actor, self.company_repo, company_id)
        window_start, window_end = dashboard_range(period, start, end, now)
        tz_name = settings.TIMEZONE
        repo = self.analytics_repo

        appearances = AppearanceBreakdown()
        for position, is_paid, total in await repo.appearances_by_position(
            company_id, window_start, window_end, city_id, niche_id
        ):
            appearances.total += total
            bucket = appearances.auction if is_paid else appearances.organic
            key = f"pos{position}"
            bucket[key] = bucket.get(key, 0) + total
        appearances.by_niche = [
            NicheBucket(niche=label, total=total)
            for label, total in await repo.appearances_by_niche(company_id, window_start, window_end, city_id)
        ]

        clicks = await repo.clicks_by_type(company_id, window_start, window_end, city_id, niche_id)
        by_hour = await repo.clicks_by_hour(company_id, window_start, window_end, tz_name, city_id, niche_id)
        by_day = await repo.clicks_by_day(company_id, window_start, window_end, tz_name, city_id, niche_id)
        actions = ActionBreakdown(
            calls=clicks.get("click_call", 0),
            whatsapp=clicks.get("click_whatsapp", 0),
            clicks_by_hour=[HourBucket(hour=hour, total=total) for hour, total in by_hour],
            clicks_by_day=[DayBucket(date=day, total=total) for day, total in by_day],
        )
        actions.total_clicks = actions.calls + actions.whatsapp
        actions.ctr = ratio(actions.total_clicks, appearances.total)

        spent = await repo.search_spend(company_id, window_start, window_end)
        paid_appearances = sum(appearances.auction.values())
        costs = CostBreakdown(
            total_spent_cents=spent,
            cost_per_appearance_cents=ratio(spent, paid_appearances),
            cost_per_click_cents=ratio(spent, actions.total_clicks),
        )

        best_hour = max(by_hour, key=lambda bucket: bucket[1], default=None)
        weekday_totals = Counter()
        for day, total in by_day:
            weekday_totals[day.weekday()] += total
        best_day = weekday_totals.most_common(1)

        main_niche = niche_id
        if main_niche is None:
            niche_ids = await self.company_repo.niche_ids(company_id)
            main_niche = niche_ids[0] if niche_ids else None
        current_position = await self.current_position(company_id, city_id or company.city_id, main_niche)

        logger.info(
            "analytics_dashboard",
            company_id=str(company_id),
            start=window_start.isoformat(),
            end=window_end.isoformat(),
            appearances=appearances.total,
            clicks=actions.total_clicks,
        )
        return DashboardResponse(
            company_id=company_id,
            start=window_start,
            end=window_end,
            appearances=appearances,
            actions=actions,
            costs=costs,
            best_day_of_week=WEEKDAYS[best_day[0][0]] if best_day else None,
            best_hour=f"{best_hour[0]:02d}h" if best_hour else None,
            current_position=current_position,
        )

    async def current_position(
        self, company_id: uuid.UUID, city_id: Optional[uuid.UUID], niche_id: Optional[uuid.UUID]
    ) -> Optional[int]:
        """Where the company would land in a search right now, ignoring budgets."""
        if city_id is None or niche_id is None:
            return None
        ranking, _ = await self.auction_service.get_search_ranking(city_id, niche_id)
        for position in engine.PAID_POSITIONS:
            if any(c.company_id == company_id for c in ranking.paid.get(position, [])):
                return position
        for index, company in enumerate(ranking.organic_pool[:len(engine.ORGANIC_POSITIONS)]):
            if company.company_id == company_id:
                return engine.ORGANIC_POSITIONS[index]
        return None
