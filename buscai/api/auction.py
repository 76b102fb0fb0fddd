"""
/api/v1/auction endpoints: company bid configs, market slots and the
per-company daily summary.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from buscai.dependencies import get_actor, get_auction_service, verify_api_key, writable
from buscai.schemas.auction import (
    AuctionConfigRequest,
    AuctionConfigResponse,
    AuctionSummary,
    SlotOverview,
)
from buscai.schemas.common import Actor
from buscai.services.access import resolve_company_id
from buscai.services.auction import AuctionService

router = APIRouter(prefix="/api/v1/auction", tags=["auction"], dependencies=[Depends(verify_api_key)])


@router.get("/configs", response_model=list[AuctionConfigResponse])
async def list_configs(
    company_id: Optional[uuid.UUID] = Query(None),
    city_id: Optional[uuid.UUID] = Query(None),
    niche_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: AuctionService = Depends(get_auction_service),
):
    return await service.list_configs(actor, company_id, city_id, niche_id)


@router.post("/configs", response_model=AuctionConfigResponse, dependencies=[Depends(writable)])
async def upsert_config(
    body: AuctionConfigRequest,
    actor: Actor = Depends(get_actor),
    service: AuctionService = Depends(get_auction_service),
):
    """Create or update the config for (company, city, niche)."""
    return await service.upsert_config(actor, body)


@router.get("/slots", response_model=SlotOverview)
async def list_slots(
    city_id: uuid.UUID = Query(...),
    niche_id: uuid.UUID = Query(...),
    actor: Actor = Depends(get_actor),
    service: AuctionService = Depends(get_auction_service),
):
    return await service.list_slots(city_id, niche_id)


@router.get("/summary", response_model=AuctionSummary)
async def get_summary(
    city_id: uuid.UUID = Query(...),
    niche_id: uuid.UUID = Query(...),
    company_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: AuctionService = Depends(get_auction_service),
):
    return await service.get_summary(actor, resolve_company_id(actor, company_id), city_id, niche_id)
