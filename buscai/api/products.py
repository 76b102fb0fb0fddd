"""
/api/v1/products endpoints: plans, the company subscription, product
offers and the public product search.
"""

import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status

from buscai.dependencies import get_actor, get_product_service, require_admin, verify_api_key, writable
from buscai.errors import AppError
from buscai.schemas.common import Actor
from buscai.schemas.products import (
    ChangeSubscriptionRequest,
    ChangeSubscriptionResponse,
    OfferCreateRequest,
    OfferListResponse,
    OfferResponse,
    OfferUpdateRequest,
    PlanResponse,
    ProductSearchRequest,
    ProductSearchResponse,
    SelfSubscriptionResponse,
)
from buscai.services.products import ProductService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/products", tags=["products"], dependencies=[Depends(verify_api_key)])


# ── Plans & Subscription ─────────────────────────────────────

@router.get("/plans", response_model=list[PlanResponse])
async def list_plans(service: ProductService = Depends(get_product_service)):
    return await service.list_plans()


@router.get("/subscription", response_model=SelfSubscriptionResponse)
async def get_subscription(
    company_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
):
    return await service.get_subscription(actor, company_id)


@router.post("/subscription", response_model=ChangeSubscriptionResponse, dependencies=[Depends(writable)])
async def change_subscription(
    body: ChangeSubscriptionRequest,
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
):
    return await service.change_subscription(actor, body.plan_id, body.company_id)


@router.post(
    "/subscription/renewals",
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(writable), Depends(require_admin)],
)
async def enqueue_renewals():
    """Queue a renewal cycle on the worker."""
    from buscai.worker.jobs import enqueue_subscription_renewal

    try:
        job_id = enqueue_subscription_renewal()
    except Exception as e:
        logger.warning("enqueue_failed", job="subscription_renewal", error=str(e))
        raise AppError(503, "queue_unavailable", code="QUEUE_UNAVAILABLE")
    return {"job_id": job_id, "status": "queued"}


# ── Offers ───────────────────────────────────────────────────

@router.get("/offers", response_model=OfferListResponse)
async def list_offers(
    company_id: Optional[uuid.UUID] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
):
    return await service.list_offers(actor, company_id, limit=limit, offset=offset)


@router.post(
    "/offers",
    response_model=OfferResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(writable)],
)
async def create_offer(
    body: OfferCreateRequest,
    company_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
):
    return await service.create_offer(actor, body, company_id)


@router.get("/offers/{offer_id}", response_model=OfferResponse)
async def get_offer(
    offer_id: uuid.UUID,
    company_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
):
    return await service.get_offer(actor, offer_id, company_id)


@router.patch("/offers/{offer_id}", response_model=OfferResponse, dependencies=[Depends(writable)])
async def update_offer(
    offer_id: uuid.UUID,
    body: OfferUpdateRequest,
    company_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
):
    return await service.update_offer(actor, offer_id, body, company_id)


@router.delete("/offers/{offer_id}", response_model=OfferResponse, dependencies=[Depends(writable)])
async def deactivate_offer(
    offer_id: uuid.UUID,
    company_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
):
    """Deactivate; the offer record is kept."""
    return await service.deactivate_offer(actor, offer_id, company_id)


@router.post("/offers/{offer_id}/renew", response_model=OfferResponse, dependencies=[Depends(writable)])
async def renew_offer(
    offer_id: uuid.UUID,
    company_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: ProductService = Depends(get_product_service),
):
    return await service.renew_offer(actor, offer_id, company_id)


# ── Search ───────────────────────────────────────────────────

@router.post("/search", response_model=ProductSearchResponse)
async def search_offers(body: ProductSearchRequest, service: ProductService = Depends(get_product_service)):
    return await service.search_offers(body.city_id, body.niche_id, body.query, body.limit)
