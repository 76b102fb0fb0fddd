"""
Wallet and ledger business rules.

Every balance change happens under a wallet row lock and appends a ledger
entry in the same DB transaction. Recharges are the only entries whose
status changes (pending -> confirmed), and confirming twice is a no-op.
"""

import uuid
from datetime import datetime
from typing import Optional

import structlog

from buscai.config import settings
from buscai.errors import AppError
from buscai.observability.metrics import (
    recharges_total,
    wallet_debited_cents_total,
    wallet_debits_total,
)
from buscai.schemas.billing import (
    ChargeOutcome,
    CoverageResult,
    PaymentInstructions,
    PurchaseCreditsResponse,
    RechargeConfirmResponse,
    RechargeIntentResponse,
    TransactionResponse,
    WalletResponse,
)
from buscai.schemas.common import Actor
from buscai.services.access import ensure_company_access

logger = structlog.get_logger(__name__)


class BillingService:
    def __init__(self, billing_repo, company_repo):
        self.billing_repo = billing_repo
        self.company_repo = company_repo

    # ── Reads ────────────────────────────────────────────────

    async def get_wallet(self, actor: Actor, company_id: uuid.UUID) -> WalletResponse:
        await ensure_company_access(actor, self.company_repo, company_id)
        wallet = await self.billing_repo.get_or_create_wallet(company_id)
        recent = await self.billing_repo.list_transactions(company_id, limit=20)
        return WalletResponse(
            company_id=company_id,
            balance_cents=wallet.balance_cents,
            reserved_cents=wallet.reserved_cents,
            available_cents=wallet.balance_cents - wallet.reserved_cents,
            currency=settings.CURRENCY,
            last_transactions=[TransactionResponse.from_row(tx) for tx in recent],
        )

    async def list_transactions(
        self,
        actor: Actor,
        company_id: uuid.UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[TransactionResponse]:
        await ensure_company_access(actor, self.company_repo, company_id)
        rows = await self.billing_repo.list_transactions(company_id, start=start, end=end)
        return [TransactionResponse.from_row(tx) for tx in rows]

    async def coverage(self, company_id: uuid.UUID, amount_cents: int) -> CoverageResult:
        wallet = await self.billing_repo.get_wallet(company_id)
        if wallet is None:
            return CoverageResult(ok=False, wallet_exists=False, reason="no_wallet")
        available = wallet.balance_cents - wallet.reserved_cents
        ok = available >= amount_cents
        return CoverageResult(
            ok=ok,
            wallet_exists=True,
            balance_cents=wallet.balance_cents,
            reserved_cents=wallet.reserved_cents,
            available_cents=available,
            reason="ok" if ok else "insufficient_available",
        )

    async def get_coverage(self, actor: Actor, company_id: uuid.UUID, amount_cents: int) -> CoverageResult:
        """Whether the wallet can pay `amount_cents` right now."""
        await ensure_company_access(actor, self.company_repo, company_id)
        if amount_cents <= 0:
            raise AppError(400, "invalid_amount")
        return await self.coverage(company_id, amount_cents)

    async def availability(self, company_ids: list[uuid.UUID]) -> dict[uuid.UUID, int]:
        """Available cents per company; companies without a wallet are absent."""
        wallets = await self.billing_repo.wallets_for(company_ids)
        return {cid: w.balance_cents - w.reserved_cents for cid, w in wallets.items()}

    # ── Recharges & credits ──────────────────────────────────

    async def create_recharge_intent(
        self, actor: Actor, company_id: uuid.UUID, amount_cents: int, method: str = "pix"
    ) -> RechargeIntentResponse:
        await ensure_company_access(actor, self.company_repo, company_id)
        if amount_cents <= 0:
            raise AppError(400, "invalid_amount")

        tx = await self.billing_repo.add_transaction(
            company_id=company_id,
            type="recharge",
            amount_cents=amount_cents,
            status="pending",
            reason=f"recharge:{method}",
            provider=settings.PAYMENT_PROVIDER,
        )
        recharges_total.labels(status="pending").inc()
        logger.info("recharge_created", company_id=str(company_id), recharge_id=str(tx.id), amount_cents=amount_cents)

        return RechargeIntentResponse(
            id=tx.id,
            amount_cents=tx.amount_cents,
            method=method,
            status=tx.status,
            created_at=tx.occurred_at,
            payment_info=PaymentInstructions(reference=str(tx.id)[:8].upper()),
        )

    async def confirm_recharge(self, actor: Actor, recharge_id: uuid.UUID) -> RechargeConfirmResponse:
        existing = await self.billing_repo.get_transaction(recharge_id)
        if existing is None or existing.type != "recharge":
            raise AppError(404, "recharge_not_found", code="NOT_FOUND")
        await ensure_company_access(actor, self.company_repo, existing.company_id)

        tx = await self.billing_repo.get_transaction(recharge_id, for_update=True)
        wallet = await self.billing_repo.get_or_create_wallet(tx.company_id, for_update=True)

        if tx.status == "pending":
            await self.billing_repo.adjust_balance(wallet, tx.amount_cents)
            await self.billing_repo.set_transaction_status(tx, "confirmed")
            recharges_total.labels(status="confirmed").inc()
            logger.info(
                "recharge_confirmed",
                company_id=str(tx.company_id),
                recharge_id=str(tx.id),
                amount_cents=tx.amount_cents,
                balance_cents=wallet.balance_cents,
            )
        else:
            logger.info("recharge_confirm_noop", recharge_id=str(tx.id), status=tx.status)

        return RechargeConfirmResponse(
            recharge_id=tx.id,
            status=tx.status,
            amount_cents=tx.amount_cents,
            new_balance_cents=wallet.balance_cents,
        )

    async def purchase_credits(
        self,
        actor: Actor,
        company_id: uuid.UUID,
        amount_cents: int,
        description: Optional[str] = None,
    ) -> PurchaseCreditsResponse:
        await ensure_company_access(actor, self.company_repo, company_id)
        if amount_cents is None or amount_cents <= 0:
            raise AppError(400, "invalid_amount")

        wallet = await self.billing_repo.get_or_create_wallet(company_id, for_update=True)
        await self.billing_repo.adjust_balance(wallet, amount_cents)
        await self.billing_repo.add_transaction(
            company_id=company_id,
            type="credit",
            amount_cents=amount_cents,
            status="confirmed",
            reason=(description or "").strip() or "Compra de créditos",
        )
        logger.info("credits_purchased", company_id=str(company_id), amount_cents=amount_cents)
        return PurchaseCreditsResponse(balance_cents=wallet.balance_cents)

    # ── Debits ───────────────────────────────────────────────

    async def reserve_search_charge(
        self,
        company_id: uuid.UUID,
        amount_cents: int,
        search_id: uuid.UUID,
        position: int,
    ) -> ChargeOutcome:
        """Debit a paid impression. Never leaves a negative balance."""
        wallet = await self.billing_repo.get_wallet(company_id, for_update=True)
        balance = wallet.balance_cents if wallet else 0
        if wallet is None or balance < amount_cents:
            wallet_debits_total.labels(kind="search", outcome="insufficient_funds").inc()
            logger.info(
                "search_charge_rejected",
                company_id=str(company_id),
                search_id=str(search_id),
                amount_cents=amount_cents,
                balance_cents=balance,
            )
            return ChargeOutcome(ok=False, reason="insufficient_funds", balance_cents=balance)

        await self.billing_repo.adjust_balance(wallet, -amount_cents)
        tx = await self.billing_repo.add_transaction(
            company_id=company_id,
            type="search_debit",
            amount_cents=amount_cents,
            status="confirmed",
            reason="search_impression",
            metadata_json={"search_id": str(search_id), "position": position},
        )
        wallet_debits_total.labels(kind="search", outcome="ok").inc()
        wallet_debited_cents_total.labels(kind="search").inc(amount_cents)
        logger.info(
            "wallet_debited",
            company_id=str(company_id),
            search_id=str(search_id),
            position=position,
            amount_cents=amount_cents,
            balance_cents=wallet.balance_cents,
        )
        return ChargeOutcome(ok=True, transaction_id=tx.id, balance_cents=wallet.balance_cents)

    async def charge_subscription_with_wallet(
        self,
        company_id: uuid.UUID,
        subscription_id: uuid.UUID,
        amount_cents: int,
        period_start: datetime,
        period_end: datetime,
    ) -> ChargeOutcome:
        wallet = await self.billing_repo.get_or_create_wallet(company_id, for_update=True)
        period = dict(subscription_id=subscription_id, period_start=period_start, period_end=period_end)

        if wallet.balance_cents < amount_cents:
            tx = await self.billing_repo.add_transaction(
                company_id=company_id,
                type="subscription_failed",
                amount_cents=amount_cents,
                status="failed",
                reason="insufficient_funds",
                provider="wallet",
                **period,
            )
            wallet_debits_total.labels(kind="subscription", outcome="insufficient_funds").inc()
            return ChargeOutcome(
                ok=False, reason="insufficient_funds", transaction_id=tx.id, balance_cents=wallet.balance_cents
            )

        await self.billing_repo.adjust_balance(wallet, -amount_cents)
        tx = await self.billing_repo.add_transaction(
            company_id=company_id,
            type="subscription_renewal",
            amount_cents=amount_cents,
            status="confirmed",
            reason="subscription_renewal",
            provider="wallet",
            **period,
        )
        wallet_debits_total.labels(kind="subscription", outcome="ok").inc()
        wallet_debited_cents_total.labels(kind="subscription").inc(amount_cents)
        return ChargeOutcome(ok=True, transaction_id=tx.id, balance_cents=wallet.balance_cents)

    async def record_gateway_charge(
        self,
        company_id: uuid.UUID,
        subscription_id: uuid.UUID,
        amount_cents: int,
        period_start: datetime,
        period_end: datetime,
        provider: str,
        external_id: str,
        paid: bool,
        failure_reason: Optional[str] = None,
    ) -> ChargeOutcome:
        """Ledger entry for a card charge made outside the wallet."""
        tx = await self.billing_repo.add_transaction(
            company_id=company_id,
            type="subscription_renewal" if paid else "subscription_failed",
            amount_cents=amount_cents,
            status="confirmed" if paid else "failed",
            reason="subscription_renewal" if paid else (failure_reason or "gateway_declined"),
            provider=provider,
            external_id=external_id,
            subscription_id=subscription_id,
            period_start=period_start,
            period_end=period_end,
        )
        return ChargeOutcome(ok=paid, reason=None if paid else (failure_reason or "gateway_declined"), transaction_id=tx.id)
