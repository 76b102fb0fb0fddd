"""
/api/v1/search endpoints.
Search runs the auction and charges paid impressions for charged sources;
event tracking records impressions and contact clicks. In read-only mode
these endpoints keep answering but persist nothing.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse

from buscai.dependencies import get_search_service, verify_api_key
from buscai.schemas.search import PublicSearchRequest, SearchRequest, SearchResponse, TrackEventRequest
from buscai.services.search import SearchService

router = APIRouter(
    prefix="/api/v1/search",
    tags=["search"],
    dependencies=[Depends(verify_api_key)],
)


@router.post("", response_model=SearchResponse)
async def search_companies(body: SearchRequest, service: SearchService = Depends(get_search_service)):
    return await service.search(body.city_id, body.niche_id, query=body.query, source=body.source)


@router.post("/public", response_model=SearchResponse)
async def public_search(body: PublicSearchRequest, service: SearchService = Depends(get_search_service)):
    """Free-text search: city by name, niche inferred from the text."""
    return await service.public_search(body.city, body.text, niche_hint=body.niche, source=body.source)


@router.post("/{search_id}/events", status_code=status.HTTP_204_NO_CONTENT)
async def track_event(
    search_id: uuid.UUID,
    body: TrackEventRequest,
    service: SearchService = Depends(get_search_service),
):
    await service.track_event(search_id, body.type, body.company_id)


@router.get("/{search_id}/click")
async def track_click(
    search_id: uuid.UUID,
    company_id: uuid.UUID = Query(...),
    type: str = Query("click_whatsapp"),
    service: SearchService = Depends(get_search_service),
):
    """Record a click and redirect to WhatsApp or the phone dialer."""
    url = await service.build_tracking_redirect(search_id, company_id, type)
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)
