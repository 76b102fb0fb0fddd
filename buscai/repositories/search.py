"""
Searches, their results, tracking events and the spend/performance
aggregates derived from them.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from buscai.models.tables import Search, SearchEvent, SearchResult


class SearchRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_search(self, **fields) -> Search:
        search = Search(**fields)
        self.session.add(search)
        await self.session.flush()
        return search

    async def get_search(self, search_id: uuid.UUID) -> Optional[Search]:
        return await self.session.get(Search, search_id)

    async def add_results(self, results: list[SearchResult]) -> list[SearchResult]:
        self.session.add_all(results)
        await self.session.flush()
        return results

    def savepoint(self):
        """Nested transaction: a failure inside rolls back only this block."""
        return self.session.begin_nested()

    async def mark_result_unpaid(self, result: SearchResult) -> None:
        result.is_paid = False
        result.charged_amount_cents = 0
        await self.session.flush()

    async def find_event(
        self, search_id: uuid.UUID, company_id: Optional[uuid.UUID], event_type: str
    ) -> Optional[SearchEvent]:
        query = select(SearchEvent).where(
            SearchEvent.search_id == search_id,
            SearchEvent.type == event_type,
        )
        if company_id is None:
            query = query.where(SearchEvent.company_id.is_(None))
        else:
            query = query.where(SearchEvent.company_id == company_id)
        result = await self.session.execute(query.limit(1))
        return result.scalars().first()

    async def add_event(
        self, search_id: uuid.UUID, company_id: Optional[uuid.UUID], event_type: str
    ) -> SearchEvent:
        event = SearchEvent(search_id=search_id, company_id=company_id, type=event_type)
        self.session.add(event)
        await self.session.flush()
        return event

    async def delete_event(self, event_id: uuid.UUID) -> None:
        await self.session.execute(delete(SearchEvent).where(SearchEvent.id == event_id))

    async def paid_spend_by_company(
        self,
        company_ids: list[uuid.UUID],
        city_id: uuid.UUID,
        niche_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> dict[uuid.UUID, int]:
        """Charged cents per company for paid results in one market and window."""
        if not company_ids:
            return {}
        result = await self.session.execute(
            select(SearchResult.company_id, func.coalesce(func.sum(SearchResult.charged_amount_cents), 0))
            .join(Search, Search.id == SearchResult.search_id)
            .where(
                SearchResult.company_id.in_(company_ids),
                SearchResult.is_paid.is_(True),
                Search.city_id == city_id,
                Search.niche_id == niche_id,
                Search.created_at >= start,
                Search.created_at < end,
            )
            .group_by(SearchResult.company_id)
        )
        return {row[0]: int(row[1]) for row in result.all()}

    async def paid_performance(
        self,
        company_id: uuid.UUID,
        city_id: uuid.UUID,
        niche_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> dict:
        """Paid impressions, clicks and mean paid position for the window."""
        paid = await self.session.execute(
            select(func.count(SearchResult.id), func.avg(SearchResult.position))
            .join(Search, Search.id == SearchResult.search_id)
            .where(
                SearchResult.company_id == company_id,
                SearchResult.is_paid.is_(True),
                Search.city_id == city_id,
                Search.niche_id == niche_id,
                Search.created_at >= start,
                Search.created_at < end,
            )
        )
        impressions, avg_position = paid.one()

        clicks = await self.session.execute(
            select(func.count(SearchEvent.id))
            .join(Search, Search.id == SearchEvent.search_id)
            .where(
                SearchEvent.company_id == company_id,
                SearchEvent.type.in_(["click_whatsapp", "click_call"]),
                Search.city_id == city_id,
                Search.niche_id == niche_id,
                SearchEvent.created_at >= start,
                SearchEvent.created_at < end,
            )
        )
        return {
            "impressions": int(impressions or 0),
            "clicks": int(clicks.scalar() or 0),
            "avg_paid_position": float(avg_position) if avg_position is not None else None,
        }
