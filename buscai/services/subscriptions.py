"""
Monthly renewal of product subscriptions.

Runs from the RQ worker. Each due subscription is charged once per period:
a card on file goes through the payment gateway, anything else through the
wallet. Failed charges open a grace window; subscriptions still past due
when it closes are cancelled.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog

from buscai.config import settings
from buscai.domain.periods import add_months, utcnow
from buscai.observability.metrics import subscription_renewals_total
from buscai.schemas.products import RenewalSummary

logger = structlog.get_logger(__name__)


class SubscriptionService:
    def __init__(self, product_repo, billing_repo, billing_service, gateway):
        self.product_repo = product_repo
        self.billing_repo = billing_repo
        self.billing_service = billing_service
        self.gateway = gateway

    async def renew_due(self, now: Optional[datetime] = None) -> RenewalSummary:
        now = now or utcnow()
        summary = RenewalSummary()
        for subscription in await self.product_repo.due_subscriptions(now):
            summary.processed += 1
            outcome = await self._renew(subscription, now)
            subscription_renewals_total.labels(outcome=outcome).inc()
            if outcome == "renewed":
                summary.renewed += 1
            elif outcome == "failed":
                summary.failed += 1
            else:
                summary.skipped += 1
        logger.info("subscription_renewal_finished", **summary.model_dump())
        return summary

    async def _renew(self, subscription, now: datetime) -> str:
        start = subscription.current_period_start
        end = subscription.current_period_end

        paid = await self.billing_repo.find_subscription_transaction(
            subscription.id, start, "subscription_renewal", "confirmed"
        )
        if paid is not None:
            self._advance(subscription)
            await self.product_repo.save_subscription(subscription)
            return "already_paid"

        failed = await self.billing_repo.find_subscription_transaction(
            subscription.id, start, "subscription_failed", "failed"
        )
        if failed is not None:
            return "already_failed"

        plan = await self.product_repo.get_plan(subscription.plan_id)
        if plan is None or not plan.is_active:
            await self._mark_past_due(subscription, now, reason="plan_inactive")
            return "failed"

        method = None
        if subscription.payment_method_id:
            method = await self.product_repo.get_payment_method(subscription.payment_method_id)

        if method is not None and method.type == "card":
            result = await self.gateway.charge(
                str(subscription.company_id),
                plan.monthly_price_cents,
                method.provider_ref,
                f"{subscription.id}:{start.isoformat()}:{end.isoformat()}:card",
            )
            outcome = await self.billing_service.record_gateway_charge(
                subscription.company_id,
                subscription.id,
                plan.monthly_price_cents,
                start,
                end,
                provider=result.provider,
                external_id=result.external_id,
                paid=result.status == "paid",
                failure_reason=result.failure_reason,
            )
        else:
            outcome = await self.billing_service.charge_subscription_with_wallet(
                subscription.company_id, subscription.id, plan.monthly_price_cents, start, end
            )

        if not outcome.ok:
            await self._mark_past_due(subscription, now, reason=outcome.reason)
            return "failed"

        self._advance(subscription)
        await self.product_repo.save_subscription(subscription)
        logger.info(
            "subscription_renewed",
            company_id=str(subscription.company_id),
            plan_id=str(subscription.plan_id),
            period_end=subscription.current_period_end.isoformat(),
        )
        return "renewed"

    @staticmethod
    def _advance(subscription) -> None:
        subscription.current_period_start = subscription.current_period_end
        subscription.current_period_end = add_months(subscription.current_period_end, 1)
        subscription.status = "active"
        subscription.grace_until = None
        if subscription.scheduled_plan_id:
            subscription.plan_id = subscription.scheduled_plan_id
            subscription.scheduled_plan_id = None

    async def _mark_past_due(self, subscription, now: datetime, reason: Optional[str]) -> None:
        subscription.status = "past_due"
        subscription.grace_until = now + timedelta(days=settings.SUBSCRIPTION_GRACE_DAYS)
        await self.product_repo.save_subscription(subscription)
        logger.warning(
            "subscription_past_due",
            company_id=str(subscription.company_id),
            reason=reason,
            grace_until=subscription.grace_until.isoformat(),
        )

    async def cancel_expired_grace(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        cancelled = 0
        for subscription in await self.product_repo.expired_grace(now):
            subscription.status = "cancelled"
            subscription.cancelled_at = now
            await self.product_repo.save_subscription(subscription)
            cancelled += 1
            logger.info("subscription_cancelled", company_id=str(subscription.company_id))
        if cancelled:
            subscription_renewals_total.labels(outcome="cancelled").inc(cancelled)
        return cancelled

    async def run_cycle(self, now: Optional[datetime] = None) -> RenewalSummary:
        now = now or utcnow()
        summary = await self.renew_due(now)
        summary.cancelled = await self.cancel_expired_grace(now)
        return summary
