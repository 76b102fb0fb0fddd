"""
Auction config persistence and the market snapshots the ranking engine needs.
"""

import uuid
from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from buscai.models.tables import AuctionConfig, Company, CompanyNiche


def _has_contact():
    return or_(
        and_(Company.phone.is_not(None), Company.phone != ""),
        and_(Company.whatsapp.is_not(None), Company.whatsapp != ""),
    )


class AuctionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_config(self, config_id: uuid.UUID) -> Optional[AuctionConfig]:
        return await self.session.get(AuctionConfig, config_id)

    async def find_config(
        self, company_id: uuid.UUID, city_id: uuid.UUID, niche_id: uuid.UUID
    ) -> Optional[AuctionConfig]:
        result = await self.session.execute(
            select(AuctionConfig).where(
                AuctionConfig.company_id == company_id,
                AuctionConfig.city_id == city_id,
                AuctionConfig.niche_id == niche_id,
            )
        )
        return result.scalars().first()

    async def list_configs(
        self,
        company_id: Optional[uuid.UUID] = None,
        city_id: Optional[uuid.UUID] = None,
        niche_id: Optional[uuid.UUID] = None,
    ) -> list[AuctionConfig]:
        query = select(AuctionConfig)
        if company_id:
            query = query.where(AuctionConfig.company_id == company_id)
        if city_id:
            query = query.where(AuctionConfig.city_id == city_id)
        if niche_id:
            query = query.where(AuctionConfig.niche_id == niche_id)
        result = await self.session.execute(query.order_by(AuctionConfig.created_at))
        return list(result.scalars().all())

    async def save_config(self, config: AuctionConfig) -> AuctionConfig:
        self.session.add(config)
        await self.session.flush()
        return config

    async def active_configs_for_market(
        self, city_id: uuid.UUID, niche_id: uuid.UUID
    ) -> list[AuctionConfig]:
        """Active configs whose company is active, in the city and reachable."""
        result = await self.session.execute(
            select(AuctionConfig)
            .join(Company, Company.id == AuctionConfig.company_id)
            .where(
                AuctionConfig.city_id == city_id,
                AuctionConfig.niche_id == niche_id,
                AuctionConfig.is_active.is_(True),
                Company.status == "active",
                Company.city_id == city_id,
                Company.participates_in_auction.is_(True),
                _has_contact(),
            )
            .order_by(AuctionConfig.created_at)
        )
        return list(result.scalars().all())

    async def organic_pool(self, city_id: uuid.UUID, niche_id: uuid.UUID) -> list[Company]:
        """Reachable companies of the market without an active paid config."""
        active_config_companies = (
            select(AuctionConfig.company_id)
            .where(
                AuctionConfig.city_id == city_id,
                AuctionConfig.niche_id == niche_id,
                AuctionConfig.is_active.is_(True),
            )
        )
        result = await self.session.execute(
            select(Company)
            .join(CompanyNiche, CompanyNiche.company_id == Company.id)
            .where(
                Company.city_id == city_id,
                CompanyNiche.niche_id == niche_id,
                Company.status.in_(["active", "pending"]),
                _has_contact(),
                Company.id.not_in(active_config_companies),
            )
            .order_by(Company.created_at)
        )
        return list(result.scalars().all())
