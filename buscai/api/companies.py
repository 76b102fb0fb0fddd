"""
/api/v1/admin/companies endpoints: directory curation for admins.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from buscai.dependencies import get_company_service, require_admin, verify_api_key, writable
from buscai.schemas.common import Actor
from buscai.schemas.companies import (
    CompanyCreateRequest,
    CompanyListResponse,
    CompanyResponse,
    CompanyUpdateRequest,
    DedupeHit,
    DedupePreviewRequest,
)
from buscai.services.companies import CompanyService

router = APIRouter(
    prefix="/api/v1/admin/companies",
    tags=["admin-companies"],
    dependencies=[Depends(verify_api_key)],
)


@router.get("", response_model=CompanyListResponse)
async def list_companies(
    q: Optional[str] = Query(None, max_length=120),
    city_id: Optional[uuid.UUID] = Query(None),
    niche_id: Optional[uuid.UUID] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(require_admin),
    service: CompanyService = Depends(get_company_service),
):
    return await service.list_companies(
        actor, q=q, city_id=city_id, niche_id=niche_id, status=status_filter, limit=limit, offset=offset
    )


@router.post("/dedupe", response_model=list[DedupeHit])
async def dedupe_preview(
    body: DedupePreviewRequest,
    actor: Actor = Depends(require_admin),
    service: CompanyService = Depends(get_company_service),
):
    return await service.dedupe_preview(actor, body)


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(
    company_id: uuid.UUID,
    actor: Actor = Depends(require_admin),
    service: CompanyService = Depends(get_company_service),
):
    return await service.get_company(actor, company_id)


@router.post(
    "",
    response_model=CompanyResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(writable)],
)
async def create_company(
    body: CompanyCreateRequest,
    actor: Actor = Depends(require_admin),
    service: CompanyService = Depends(get_company_service),
):
    """Create a company; 409 with dedupe hits unless `force` is set."""
    return await service.create(actor, body)


@router.patch("/{company_id}", response_model=CompanyResponse, dependencies=[Depends(writable)])
async def update_company(
    company_id: uuid.UUID,
    body: CompanyUpdateRequest,
    actor: Actor = Depends(require_admin),
    service: CompanyService = Depends(get_company_service),
):
    return await service.update(actor, company_id, body)
