"""
Product plans, company subscriptions and product offers.

Offers are gated by an active subscription on an active plan and by the
plan's max_active_offers. Offers are searchable for PRODUCT_OFFER_TTL_HOURS
after creation (or after their last renewal).
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional

import structlog

from buscai.config import settings
from buscai.domain.periods import add_months, utcnow
from buscai.domain.text import count_token_matches, minimum_token_matches, tokenize_search
from buscai.errors import AppError
from buscai.models.tables import ProductOffer, Subscription
from buscai.observability.metrics import product_searches_total
from buscai.schemas.common import Actor
from buscai.schemas.products import (
    ChangeSubscriptionResponse,
    OfferCreateRequest,
    OfferListResponse,
    OfferResponse,
    OfferUpdateRequest,
    PlanResponse,
    ProductSearchCompany,
    ProductSearchItem,
    ProductSearchResponse,
    SelfSubscriptionResponse,
    SubscriptionResponse,
)
from buscai.services.access import ensure_company_access, resolve_company_id

logger = structlog.get_logger(__name__)


def rank_offers(
    rows: list[tuple[ProductOffer, object]],
    query: Optional[str],
    limit: int,
) -> list[tuple[ProductOffer, object]]:
    """
    Filter by query tokens and order by price, then match strength, then age.
    Multi-token queries fall back to a single matching token when the
    stricter threshold leaves nothing.
    """
    tokens = tokenize_search(query or "")
    scored = [
        (offer, company, count_token_matches(tokens, offer.title, offer.description))
        for offer, company in rows
    ]
    if tokens:
        required = minimum_token_matches(len(tokens))
        matched = [item for item in scored if item[2] >= required]
        if not matched and required > 1:
            matched = [item for item in scored if item[2] >= 1]
        scored = matched

    scored.sort(key=lambda item: (item[0].price_cents, -item[2], item[0].created_at))
    return [(offer, company) for offer, company, _ in scored[:limit]]


class ProductService:
    def __init__(self, product_repo, company_repo, catalog_repo, audit):
        self.product_repo = product_repo
        self.company_repo = company_repo
        self.catalog_repo = catalog_repo
        self.audit = audit

    # ── Plans & Subscriptions ────────────────────────────────

    async def list_plans(self) -> list[PlanResponse]:
        plans = await self.product_repo.list_plans()
        return [PlanResponse.model_validate(p) for p in plans]

    async def get_subscription(self, actor: Actor, company_id: Optional[uuid.UUID] = None) -> SelfSubscriptionResponse:
        company_id = company_id or actor.company_id
        if company_id is None:
            return SelfSubscriptionResponse()
        await ensure_company_access(actor, self.company_repo, company_id)
        subscription = await self.product_repo.get_subscription(company_id)
        if subscription is None:
            return SelfSubscriptionResponse()
        plan = await self.product_repo.get_plan(subscription.plan_id)
        return SelfSubscriptionResponse(
            plan=PlanResponse.model_validate(plan) if plan else None,
            status=subscription.status,
            subscription=SubscriptionResponse.model_validate(subscription),
        )

    async def change_subscription(
        self, actor: Actor, plan_id: uuid.UUID, company_id: Optional[uuid.UUID] = None
    ) -> ChangeSubscriptionResponse:
        """
        Same active plan: nothing changes.
        Cheaper plan while active: scheduled for the next period.
        Anything else: switch now and start a fresh period.
        """
        company_id = resolve_company_id(actor, company_id)
        await ensure_company_access(actor, self.company_repo, company_id)

        plan = await self.product_repo.get_plan(plan_id)
        if plan is None or not plan.is_active:
            raise AppError(400, "invalid_plan")

        current = await self.product_repo.get_subscription(company_id)
        if current is not None and current.status == "active" and current.plan_id == plan_id:
            return ChangeSubscriptionResponse(
                subscription_id=current.id,
                plan_id=plan_id,
                status=current.status,
                scheduled_plan_id=current.scheduled_plan_id,
                changed=False,
            )

        if current is not None and current.status == "active":
            current_plan = await self.product_repo.get_plan(current.plan_id)
            if current_plan is not None and plan.monthly_price_cents < current_plan.monthly_price_cents:
                current.scheduled_plan_id = plan_id
                await self.product_repo.save_subscription(current)
                logger.info(
                    "subscription_downgrade_scheduled",
                    company_id=str(company_id),
                    plan_id=str(plan_id),
                    effective_at=current.current_period_end.isoformat(),
                )
                return ChangeSubscriptionResponse(
                    subscription_id=current.id,
                    plan_id=current.plan_id,
                    status=current.status,
                    scheduled_plan_id=plan_id,
                )

        now = utcnow()
        subscription = current or Subscription(company_id=company_id)
        subscription.plan_id = plan_id
        subscription.status = "active"
        subscription.scheduled_plan_id = None
        subscription.grace_until = None
        subscription.cancelled_at = None
        subscription.current_period_start = now
        subscription.current_period_end = add_months(now, 1)
        subscription = await self.product_repo.save_subscription(subscription)
        logger.info("subscription_changed", company_id=str(company_id), plan_id=str(plan_id))
        return ChangeSubscriptionResponse(
            subscription_id=subscription.id,
            plan_id=plan_id,
            status=subscription.status,
        )

    # ── Offers ───────────────────────────────────────────────

    async def _ensure_active_subscription(self, company_id: uuid.UUID):
        subscription = await self.product_repo.get_subscription(company_id)
        if subscription is None:
            raise AppError(400, "subscription_required")
        if subscription.status != "active":
            raise AppError(400, "subscription_plan_inactive")
        plan = await self.product_repo.get_plan(subscription.plan_id)
        if plan is None or not plan.is_active:
            raise AppError(400, "subscription_plan_inactive")
        return plan

    async def _ensure_offer_limit(self, company_id: uuid.UUID, plan) -> None:
        count = await self.product_repo.count_active_offers(company_id)
        if count >= plan.max_active_offers:
            raise AppError(400, "product_limit_reached")

    async def _get_offer(self, company_id: uuid.UUID, offer_id: uuid.UUID) -> ProductOffer:
        offer = await self.product_repo.get_offer(company_id, offer_id)
        if offer is None:
            raise AppError(404, "product_offer_not_found", code="NOT_FOUND")
        return offer

    async def list_offers(
        self, actor: Actor, company_id: Optional[uuid.UUID] = None, limit: int = 20, offset: int = 0
    ) -> OfferListResponse:
        company_id = resolve_company_id(actor, company_id)
        await ensure_company_access(actor, self.company_repo, company_id)
        offers, total = await self.product_repo.list_offers(company_id, limit=limit, offset=offset)
        return OfferListResponse(
            items=[OfferResponse.model_validate(o) for o in offers],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def create_offer(
        self, actor: Actor, payload: OfferCreateRequest, company_id: Optional[uuid.UUID] = None
    ) -> OfferResponse:
        company_id = resolve_company_id(actor, company_id)
        await ensure_company_access(actor, self.company_repo, company_id)
        plan = await self._ensure_active_subscription(company_id)
        await self._ensure_offer_limit(company_id, plan)

        offer = await self.product_repo.create_offer(
            company_id=company_id,
            city_id=payload.city_id,
            niche_id=payload.niche_id,
            title=payload.title.strip(),
            description=payload.description,
            price_cents=payload.price_cents,
            original_price_cents=payload.original_price_cents,
            is_active=True,
            created_at=utcnow(),
        )
        logger.info("product_offer_created", company_id=str(company_id), offer_id=str(offer.id))
        return OfferResponse.model_validate(offer)

    async def get_offer(
        self, actor: Actor, offer_id: uuid.UUID, company_id: Optional[uuid.UUID] = None
    ) -> OfferResponse:
        company_id = resolve_company_id(actor, company_id)
        await ensure_company_access(actor, self.company_repo, company_id)
        return OfferResponse.model_validate(await self._get_offer(company_id, offer_id))

    async def update_offer(
        self,
        actor: Actor,
        offer_id: uuid.UUID,
        payload: OfferUpdateRequest,
        company_id: Optional[uuid.UUID] = None,
    ) -> OfferResponse:
        company_id = resolve_company_id(actor, company_id)
        await ensure_company_access(actor, self.company_repo, company_id)
        offer = await self._get_offer(company_id, offer_id)

        if payload.is_active and not offer.is_active:
            plan = await self._ensure_active_subscription(company_id)
            await self._ensure_offer_limit(company_id, plan)

        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(offer, field, value)
        offer.updated_at = utcnow()
        offer = await self.product_repo.save_offer(offer)
        return OfferResponse.model_validate(offer)

    async def deactivate_offer(
        self, actor: Actor, offer_id: uuid.UUID, company_id: Optional[uuid.UUID] = None
    ) -> OfferResponse:
        """Soft delete: the record stays, only is_active flips."""
        company_id = resolve_company_id(actor, company_id)
        await ensure_company_access(actor, self.company_repo, company_id)
        offer = await self._get_offer(company_id, offer_id)
        offer.is_active = False
        offer.updated_at = utcnow()
        offer = await self.product_repo.save_offer(offer)
        logger.info("product_offer_deactivated", company_id=str(company_id), offer_id=str(offer_id))
        return OfferResponse.model_validate(offer)

    async def renew_offer(
        self, actor: Actor, offer_id: uuid.UUID, company_id: Optional[uuid.UUID] = None
    ) -> OfferResponse:
        """Restart the visibility window of an active offer."""
        company_id = resolve_company_id(actor, company_id)
        await ensure_company_access(actor, self.company_repo, company_id)
        offer = await self._get_offer(company_id, offer_id)
        if not offer.is_active:
            raise AppError(400, "product_inactive")
        now = utcnow()
        offer.created_at = now
        offer.updated_at = now
        offer = await self.product_repo.save_offer(offer)
        await self.audit.record("product_offer_renewed", {
            "offer_id": str(offer_id),
            "company_id": str(company_id),
        })
        return OfferResponse.model_validate(offer)

    # ── Search ───────────────────────────────────────────────

    async def search_offers(
        self,
        city_id: uuid.UUID,
        niche_id: Optional[uuid.UUID] = None,
        query: Optional[str] = None,
        limit: int = 5,
        now: Optional[datetime] = None,
    ) -> ProductSearchResponse:
        if await self.catalog_repo.get_city(city_id) is None:
            raise AppError(404, "city_not_found", code="NOT_FOUND")
        if niche_id and await self.catalog_repo.get_niche(niche_id) is None:
            raise AppError(404, "niche_not_found", code="NOT_FOUND")

        limit = min(limit or settings.PRODUCT_SEARCH_LIMIT, settings.PRODUCT_SEARCH_LIMIT)
        ttl = timedelta(hours=settings.PRODUCT_OFFER_TTL_HOURS)
        now = now or utcnow()

        rows = await self.product_repo.searchable_offers(city_id, niche_id, now - ttl)
        rows = [(o, c) for o, c in rows if o.is_active and o.created_at >= now - ttl]
        ranked = rank_offers(rows, query, limit)

        product_searches_total.inc()
        await self.audit.record("search_performed", {
            "source": "product",
            "city_id": str(city_id),
            "niche_id": str(niche_id) if niche_id else None,
            "query_length": len(query or ""),
            "results_count": len(ranked),
        })

        items = [
            ProductSearchItem(
                id=offer.id,
                title=offer.title,
                price_cents=offer.price_cents,
                valid_until=offer.created_at + ttl,
                company=ProductSearchCompany(
                    id=company.id,
                    name=company.trade_name,
                    phone=company.phone,
                    address=company.address,
                ),
            )
            for offer, company in ranked
        ]
        return ProductSearchResponse(items=items, total=len(items))
