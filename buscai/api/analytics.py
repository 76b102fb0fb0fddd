"""
/api/v1/analytics endpoints.
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from buscai.dependencies import get_actor, get_analytics_service, verify_api_key
from buscai.schemas.analytics import DashboardResponse
from buscai.schemas.common import Actor
from buscai.services.access import resolve_company_id
from buscai.services.analytics import AnalyticsService

router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"], dependencies=[Depends(verify_api_key)])


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    company_id: Optional[uuid.UUID] = Query(None),
    period: Optional[str] = Query(None, max_length=8, description="Days back including today, e.g. 7 or 30d"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    city_id: Optional[uuid.UUID] = Query(None),
    niche_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return await service.dashboard(
        actor,
        resolve_company_id(actor, company_id),
        period=period,
        start=start,
        end=end,
        city_id=city_id,
        niche_id=niche_id,
    )
