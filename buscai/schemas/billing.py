"""
Pydantic request/response schemas for the /api/v1/billing endpoints.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


# ── Request Schemas ──────────────────────────────────────────

class RechargeIntentRequest(BaseModel):
    company_id: Optional[uuid.UUID] = None
    amount_cents: int = Field(gt=0)
    method: Literal["pix", "card"] = "pix"


class PurchaseCreditsRequest(BaseModel):
    company_id: Optional[uuid.UUID] = None
    amount_cents: int
    description: Optional[str] = None


# ── Response Schemas ─────────────────────────────────────────

class TransactionResponse(BaseModel):
    """Ledger entry. search_debit amounts are reported negative."""
    id: uuid.UUID
    company_id: uuid.UUID
    type: str
    amount_cents: int
    status: str
    reason: Optional[str] = None
    provider: Optional[str] = None
    external_id: Optional[str] = None
    metadata: Optional[dict] = None
    occurred_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, tx) -> "TransactionResponse":
        amount = tx.amount_cents
        if tx.type == "search_debit":
            amount = -abs(amount)
        return cls(
            id=tx.id,
            company_id=tx.company_id,
            type=tx.type,
            amount_cents=amount,
            status=tx.status,
            reason=tx.reason,
            provider=tx.provider,
            external_id=tx.external_id,
            metadata=tx.metadata_json,
            occurred_at=tx.occurred_at,
        )


class WalletResponse(BaseModel):
    company_id: uuid.UUID
    balance_cents: int
    reserved_cents: int
    available_cents: int
    currency: str = "BRL"
    last_transactions: list[TransactionResponse] = []


class PaymentInstructions(BaseModel):
    type: str = "pix"
    instructions: str = "Envie o comprovante para o suporte BUSCAI"
    reference: str


class RechargeIntentResponse(BaseModel):
    id: uuid.UUID
    amount_cents: int
    method: str
    status: str
    created_at: Optional[datetime] = None
    payment_info: PaymentInstructions


class RechargeConfirmResponse(BaseModel):
    recharge_id: uuid.UUID
    status: str
    amount_cents: int
    new_balance_cents: int


class PurchaseCreditsResponse(BaseModel):
    success: bool = True
    balance_cents: int


class CoverageResult(BaseModel):
    ok: bool
    wallet_exists: bool
    balance_cents: int = 0
    reserved_cents: int = 0
    available_cents: int = 0
    reason: str  # ok, no_wallet, insufficient_available


class ChargeOutcome(BaseModel):
    ok: bool
    reason: Optional[str] = None  # insufficient_funds
    transaction_id: Optional[uuid.UUID] = None
    balance_cents: int = 0
