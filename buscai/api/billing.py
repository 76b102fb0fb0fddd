"""
/api/v1/billing endpoints: wallet, ledger, recharges and credit purchases.
"""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from buscai.dependencies import get_actor, get_billing_service, verify_api_key, writable
from buscai.schemas.billing import (
    CoverageResult,
    PurchaseCreditsRequest,
    PurchaseCreditsResponse,
    RechargeConfirmResponse,
    RechargeIntentRequest,
    RechargeIntentResponse,
    TransactionResponse,
    WalletResponse,
)
from buscai.schemas.common import Actor
from buscai.services.access import resolve_company_id
from buscai.services.billing import BillingService

router = APIRouter(prefix="/api/v1/billing", tags=["billing"], dependencies=[Depends(verify_api_key)])


@router.get("/wallet", response_model=WalletResponse)
async def get_wallet(
    company_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: BillingService = Depends(get_billing_service),
):
    return await service.get_wallet(actor, resolve_company_id(actor, company_id))


@router.get("/transactions", response_model=list[TransactionResponse])
async def list_transactions(
    company_id: Optional[uuid.UUID] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    actor: Actor = Depends(get_actor),
    service: BillingService = Depends(get_billing_service),
):
    return await service.list_transactions(actor, resolve_company_id(actor, company_id), start=start, end=end)


@router.get("/coverage", response_model=CoverageResult)
async def get_coverage(
    amount_cents: int = Query(..., gt=0),
    company_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: BillingService = Depends(get_billing_service),
):
    """Can the wallet cover `amount_cents` after reservations."""
    return await service.get_coverage(actor, resolve_company_id(actor, company_id), amount_cents)


@router.post(
    "/recharges",
    response_model=RechargeIntentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(writable)],
)
async def create_recharge(
    body: RechargeIntentRequest,
    actor: Actor = Depends(get_actor),
    service: BillingService = Depends(get_billing_service),
):
    """Open a pending recharge; the balance moves only on confirmation."""
    company_id = resolve_company_id(actor, body.company_id)
    return await service.create_recharge_intent(actor, company_id, body.amount_cents, body.method)


@router.post(
    "/recharges/{recharge_id}/confirm",
    response_model=RechargeConfirmResponse,
    dependencies=[Depends(writable)],
)
async def confirm_recharge(
    recharge_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    service: BillingService = Depends(get_billing_service),
):
    return await service.confirm_recharge(actor, recharge_id)


@router.post("/credits", response_model=PurchaseCreditsResponse, dependencies=[Depends(writable)])
async def purchase_credits(
    body: PurchaseCreditsRequest,
    actor: Actor = Depends(get_actor),
    service: BillingService = Depends(get_billing_service),
):
    company_id = resolve_company_id(actor, body.company_id)
    return await service.purchase_credits(actor, company_id, body.amount_cents, body.description)
