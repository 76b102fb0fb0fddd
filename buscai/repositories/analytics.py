"""
Read-only aggregates behind the company analytics dashboard.
Hours and days are bucketed in the business timezone.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from buscai.models.tables import Niche, Search, SearchEvent, SearchResult, Transaction

CLICK_TYPES = ("click_whatsapp", "click_call")


class AnalyticsRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _scope(query, start: datetime, end: datetime, city_id=None, niche_id=None):
        query = query.where(Search.created_at >= start, Search.created_at < end)
        if city_id:
            query = query.where(Search.city_id == city_id)
        if niche_id:
            query = query.where(Search.niche_id == niche_id)
        return query

    async def appearances_by_position(
        self,
        company_id: uuid.UUID,
        start: datetime,
        end: datetime,
        city_id: Optional[uuid.UUID] = None,
        niche_id: Optional[uuid.UUID] = None,
    ) -> list[tuple[int, bool, int]]:
        """(position, is_paid, count) for every result row the company got."""
        query = (
            select(SearchResult.position, SearchResult.is_paid, func.count(SearchResult.id))
            .join(Search, Search.id == SearchResult.search_id)
            .where(SearchResult.company_id == company_id)
            .group_by(SearchResult.position, SearchResult.is_paid)
        )
        result = await self.session.execute(self._scope(query, start, end, city_id, niche_id))
        return [(int(row[0]), bool(row[1]), int(row[2])) for row in result.all()]

    async def appearances_by_niche(
        self, company_id: uuid.UUID, start: datetime, end: datetime, city_id: Optional[uuid.UUID] = None
    ) -> list[tuple[str, int]]:
        query = (
            select(Niche.label, func.count(SearchResult.id))
            .join(Search, Search.id == SearchResult.search_id)
            .join(Niche, Niche.id == Search.niche_id)
            .where(SearchResult.company_id == company_id)
            .group_by(Niche.label)
            .order_by(func.count(SearchResult.id).desc())
        )
        result = await self.session.execute(self._scope(query, start, end, city_id))
        return [(row[0], int(row[1])) for row in result.all()]

    async def clicks_by_type(
        self,
        company_id: uuid.UUID,
        start: datetime,
        end: datetime,
        city_id: Optional[uuid.UUID] = None,
        niche_id: Optional[uuid.UUID] = None,
    ) -> dict[str, int]:
        query = (
            select(SearchEvent.type, func.count(SearchEvent.id))
            .join(Search, Search.id == SearchEvent.search_id)
            .where(SearchEvent.company_id == company_id, SearchEvent.type.in_(CLICK_TYPES))
            .group_by(SearchEvent.type)
        )
        result = await self.session.execute(self._scope(query, start, end, city_id, niche_id))
        return {row[0]: int(row[1]) for row in result.all()}

    async def clicks_by_hour(
        self,
        company_id: uuid.UUID,
        start: datetime,
        end: datetime,
        tz_name: str,
        city_id: Optional[uuid.UUID] = None,
        niche_id: Optional[uuid.UUID] = None,
    ) -> list[tuple[int, int]]:
        hour = func.extract("hour", func.timezone(tz_name, SearchEvent.created_at))
        query = (
            select(hour, func.count(SearchEvent.id))
            .join(Search, Search.id == SearchEvent.search_id)
            .where(SearchEvent.company_id == company_id, SearchEvent.type.in_(CLICK_TYPES))
            .group_by(hour)
            .order_by(hour)
        )
        result = await self.session.execute(self._scope(query, start, end, city_id, niche_id))
        return [(int(row[0]), int(row[1])) for row in result.all()]

    async def clicks_by_day(
        self,
        company_id: uuid.UUID,
        start: datetime,
        end: datetime,
        tz_name: str,
        city_id: Optional[uuid.UUID] = None,
        niche_id: Optional[uuid.UUID] = None,
    ) -> list[tuple[date, int]]:
        day = cast(func.timezone(tz_name, SearchEvent.created_at), Date)
        query = (
            select(day, func.count(SearchEvent.id))
            .join(Search, Search.id == SearchEvent.search_id)
            .where(SearchEvent.company_id == company_id, SearchEvent.type.in_(CLICK_TYPES))
            .group_by(day)
            .order_by(day)
        )
        result = await self.session.execute(self._scope(query, start, end, city_id, niche_id))
        return [(row[0], int(row[1])) for row in result.all()]

    async def search_spend(self, company_id: uuid.UUID, start: datetime, end: datetime) -> int:
        """Confirmed impression debits in the window, in cents."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Transaction.amount_cents), 0)).where(
                Transaction.company_id == company_id,
                Transaction.type == "search_debit",
                Transaction.status == "confirmed",
                Transaction.occurred_at >= start,
                Transaction.occurred_at < end,
            )
        )
        return int(result.scalar() or 0)
