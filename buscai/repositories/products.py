"""
Product plans, subscriptions, payment methods and offers.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from buscai.models.tables import Company, PaymentMethod, ProductOffer, ProductPlan, Subscription


class ProductRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Plans ────────────────────────────────────────────────

    async def list_plans(self, active_only: bool = True) -> list[ProductPlan]:
        query = select(ProductPlan)
        if active_only:
            query = query.where(ProductPlan.is_active.is_(True))
        result = await self.session.execute(query.order_by(ProductPlan.monthly_price_cents))
        return list(result.scalars().all())

    async def get_plan(self, plan_id: uuid.UUID) -> Optional[ProductPlan]:
        return await self.session.get(ProductPlan, plan_id)

    # ── Subscriptions ────────────────────────────────────────

    async def get_subscription(self, company_id: uuid.UUID) -> Optional[Subscription]:
        result = await self.session.execute(
            select(Subscription).where(Subscription.company_id == company_id)
        )
        return result.scalars().first()

    async def save_subscription(self, subscription: Subscription) -> Subscription:
        self.session.add(subscription)
        await self.session.flush()
        return subscription

    async def due_subscriptions(self, now: datetime, limit: int = 200) -> list[Subscription]:
        result = await self.session.execute(
            select(Subscription)
            .where(Subscription.status == "active", Subscription.current_period_end <= now)
            .order_by(Subscription.current_period_end)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def expired_grace(self, now: datetime) -> list[Subscription]:
        result = await self.session.execute(
            select(Subscription).where(
                Subscription.status == "past_due",
                Subscription.grace_until.is_not(None),
                Subscription.grace_until <= now,
            )
        )
        return list(result.scalars().all())

    async def get_payment_method(self, method_id: uuid.UUID) -> Optional[PaymentMethod]:
        return await self.session.get(PaymentMethod, method_id)

    # ── Offers ───────────────────────────────────────────────

    async def count_active_offers(self, company_id: uuid.UUID) -> int:
        result = await self.session.execute(
            select(func.count(ProductOffer.id)).where(
                ProductOffer.company_id == company_id,
                ProductOffer.is_active.is_(True),
            )
        )
        return int(result.scalar() or 0)

    async def create_offer(self, **fields) -> ProductOffer:
        offer = ProductOffer(**fields)
        self.session.add(offer)
        await self.session.flush()
        return offer

    async def get_offer(self, company_id: uuid.UUID, offer_id: uuid.UUID) -> Optional[ProductOffer]:
        result = await self.session.execute(
            select(ProductOffer).where(
                ProductOffer.id == offer_id,
                ProductOffer.company_id == company_id,
            )
        )
        return result.scalars().first()

    async def list_offers(
        self, company_id: uuid.UUID, limit: int = 20, offset: int = 0
    ) -> tuple[list[ProductOffer], int]:
        query = select(ProductOffer).where(ProductOffer.company_id == company_id)
        total = (await self.session.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar() or 0
        result = await self.session.execute(
            query.order_by(ProductOffer.created_at.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total

    async def save_offer(self, offer: ProductOffer) -> ProductOffer:
        self.session.add(offer)
        await self.session.flush()
        return offer

    async def searchable_offers(
        self, city_id: uuid.UUID, niche_id: Optional[uuid.UUID], created_since: datetime
    ) -> list[tuple[ProductOffer, Company]]:
        """
        Offers visible in product search: active offer from an active company
        holding an active subscription on an active plan, created recently.
        """
        query = (
            select(ProductOffer, Company)
            .join(Company, Company.id == ProductOffer.company_id)
            .join(Subscription, Subscription.company_id == ProductOffer.company_id)
            .join(ProductPlan, ProductPlan.id == Subscription.plan_id)
            .where(
                ProductOffer.city_id == city_id,
                ProductOffer.is_active.is_(True),
                ProductOffer.created_at >= created_since,
                Company.status == "active",
                Subscription.status == "active",
                ProductPlan.is_active.is_(True),
            )
        )
        if niche_id:
            query = query.where(ProductOffer.niche_id == niche_id)
        result = await self.session.execute(query)
        return [(row[0], row[1]) for row in result.all()]
