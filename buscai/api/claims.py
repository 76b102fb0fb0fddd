"""
/api/v1/claims endpoints: listing candidates, requesting and following up
on ownership claims, and the admin review queue.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from buscai.dependencies import get_actor, get_claim_service, require_admin, verify_api_key, writable
from buscai.schemas.claims import (
    ClaimCandidate,
    ClaimNext,
    ClaimRequestCreate,
    ClaimRequestResponse,
    ClaimResponse,
    ClaimReviewRequest,
    ConfirmCnpjRequest,
)
from buscai.schemas.common import Actor
from buscai.services.claims import ClaimService

router = APIRouter(prefix="/api/v1/claims", tags=["claims"], dependencies=[Depends(verify_api_key)])


@router.get("/candidates", response_model=list[ClaimCandidate])
async def list_candidates(
    city_id: uuid.UUID = Query(...),
    q: Optional[str] = Query(None, max_length=120),
    actor: Actor = Depends(get_actor),
    service: ClaimService = Depends(get_claim_service),
):
    return await service.list_candidates(city_id, q)


@router.get("", response_model=list[ClaimResponse])
async def list_my_claims(
    actor: Actor = Depends(get_actor),
    service: ClaimService = Depends(get_claim_service),
):
    return await service.list_mine(actor)


@router.post(
    "",
    response_model=ClaimRequestResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(writable)],
)
async def request_claim(
    body: ClaimRequestCreate,
    actor: Actor = Depends(get_actor),
    service: ClaimService = Depends(get_claim_service),
):
    return await service.request_claim(actor, body.company_id, body.phone)


@router.post("/{request_id}/cnpj", response_model=ClaimNext, dependencies=[Depends(writable)])
async def confirm_cnpj(
    request_id: uuid.UUID,
    body: ConfirmCnpjRequest,
    actor: Actor = Depends(get_actor),
    service: ClaimService = Depends(get_claim_service),
):
    return await service.confirm_cnpj(actor, request_id, body.message)


@router.post("/{request_id}/cancel", response_model=ClaimResponse, dependencies=[Depends(writable)])
async def cancel_claim(
    request_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    service: ClaimService = Depends(get_claim_service),
):
    return await service.cancel_claim(actor, request_id)


# ── Admin ────────────────────────────────────────────────────

@router.get("/admin/pending", response_model=list[ClaimResponse])
async def list_pending(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(require_admin),
    service: ClaimService = Depends(get_claim_service),
):
    return await service.list_pending(actor, limit=limit, offset=offset)


@router.post("/admin/{request_id}/review", response_model=ClaimResponse, dependencies=[Depends(writable)])
async def review_claim(
    request_id: uuid.UUID,
    body: ClaimReviewRequest,
    actor: Actor = Depends(require_admin),
    service: ClaimService = Depends(get_claim_service),
):
    return await service.review_claim(actor, request_id, body.approve, body.notes)
