"""
Cities and niches lookups.
"""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buscai.models.tables import City, Niche


class CatalogRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_cities(self, active_only: bool = True) -> list[City]:
        query = select(City)
        if active_only:
            query = query.where(City.is_active.is_(True))
        result = await self.session.execute(query.order_by(City.name))
        return list(result.scalars().all())

    async def list_niches(self, active_only: bool = True) -> list[Niche]:
        query = select(Niche)
        if active_only:
            query = query.where(Niche.is_active.is_(True))
        result = await self.session.execute(query.order_by(Niche.label))
        return list(result.scalars().all())

    async def get_city(self, city_id: uuid.UUID) -> Optional[City]:
        return await self.session.get(City, city_id)

    async def get_niche(self, niche_id: uuid.UUID) -> Optional[Niche]:
        return await self.session.get(Niche, niche_id)
