"""
Tests for monthly subscription renewal.
"""

import uuid
from datetime import timedelta
from types import SimpleNamespace

import pytest

from buscai.gateways.payment import DummyGateway
from buscai.services.billing import BillingService
from buscai.services.subscriptions import SubscriptionService
from tests.conftest import NOW, FakeCompanyRepo


@pytest.fixture
def company_id():
    return uuid.uuid4()


def build(product_repo, billing_repo, always_approve=True):
    billing_service = BillingService(billing_repo, FakeCompanyRepo())
    return SubscriptionService(product_repo, billing_repo, billing_service, DummyGateway(always_approve))


class TestWalletRenewal:
    async def test_renews_and_advances_period(self, product_repo, billing_repo, company_id):
        plan = product_repo.add_plan(price_cents=4990)
        subscription = product_repo.add_subscription(company_id, plan)
        billing_repo.seed_wallet(company_id, 10_000)
        old_end = subscription.current_period_end

        summary = await build(product_repo, billing_repo).renew_due(NOW)

        assert summary.renewed == 1
        assert billing_repo.wallets[company_id].balance_cents == 5010
        assert subscription.current_period_start == old_end
        assert subscription.status == "active"

    async def test_insufficient_funds_opens_grace(self, product_repo, billing_repo, company_id):
        plan = product_repo.add_plan(price_cents=4990)
        subscription = product_repo.add_subscription(company_id, plan)
        billing_repo.seed_wallet(company_id, 100)

        summary = await build(product_repo, billing_repo).renew_due(NOW)

        assert summary.failed == 1
        assert subscription.status == "past_due"
        assert subscription.grace_until == NOW + timedelta(days=3)

    async def test_period_charged_once(self, product_repo, billing_repo, company_id):
        plan = product_repo.add_plan(price_cents=4990)
        subscription = product_repo.add_subscription(company_id, plan)
        billing_repo.seed_wallet(company_id, 10_000)
        await billing_repo.add_transaction(
            company_id=company_id, type="subscription_renewal", amount_cents=4990, status="confirmed",
            subscription_id=subscription.id, period_start=subscription.current_period_start,
        )

        summary = await build(product_repo, billing_repo).renew_due(NOW)

        assert summary.skipped == 1
        assert billing_repo.wallets[company_id].balance_cents == 10_000
        assert len(billing_repo.transactions) == 1

    async def test_scheduled_downgrade_applied(self, product_repo, billing_repo, company_id):
        premium = product_repo.add_plan(price_cents=9990)
        basic = product_repo.add_plan(price_cents=4990)
        subscription = product_repo.add_subscription(company_id, premium)
        subscription.scheduled_plan_id = basic.id
        billing_repo.seed_wallet(company_id, 10_000)

        await build(product_repo, billing_repo).renew_due(NOW)

        assert subscription.plan_id == basic.id
        assert subscription.scheduled_plan_id is None

    async def test_inactive_plan_goes_past_due(self, product_repo, billing_repo, company_id):
        plan = product_repo.add_plan(is_active=False)
        subscription = product_repo.add_subscription(company_id, plan)

        summary = await build(product_repo, billing_repo).renew_due(NOW)

        assert summary.failed == 1
        assert subscription.status == "past_due"


class TestCardRenewal:
    def add_card(self, product_repo, company_id, plan):
        method = SimpleNamespace(id=uuid.uuid4(), type="card", provider_ref="tok_123")
        product_repo.payment_methods[method.id] = method
        return product_repo.add_subscription(company_id, plan, payment_method_id=method.id)

    async def test_card_charge_recorded(self, product_repo, billing_repo, company_id):
        plan = product_repo.add_plan(price_cents=4990)
        subscription = self.add_card(product_repo, company_id, plan)

        summary = await build(product_repo, billing_repo).renew_due(NOW)

        assert summary.renewed == 1
        tx = billing_repo.transactions[-1]
        assert tx.provider == "dummy"
        assert tx.external_id.startswith("dummy_")
        assert tx.subscription_id == subscription.id

    async def test_idempotency_key_is_per_subscription(self, product_repo, billing_repo, monkeypatch):
        keys = []
        original = DummyGateway.charge

        async def recording_charge(gateway, company_id, amount_cents, payment_method_ref, idempotency_key):
            keys.append(idempotency_key)
            return await original(gateway, company_id, amount_cents, payment_method_ref, idempotency_key)

        monkeypatch.setattr(DummyGateway, "charge", recording_charge)
        plan = product_repo.add_plan(price_cents=4990)
        first = self.add_card(product_repo, uuid.uuid4(), plan)
        second = self.add_card(product_repo, uuid.uuid4(), plan)

        summary = await build(product_repo, billing_repo).renew_due(NOW)

        assert summary.renewed == 2
        assert len(set(keys)) == 2
        assert {key.split(":")[0] for key in keys} == {str(first.id), str(second.id)}
        external_ids = {tx.external_id for tx in billing_repo.transactions}
        assert len(external_ids) == 2

    async def test_declined_card(self, product_repo, billing_repo, company_id):
        plan = product_repo.add_plan(price_cents=4990)
        subscription = self.add_card(product_repo, company_id, plan)

        summary = await build(product_repo, billing_repo, always_approve=False).renew_due(NOW)

        assert summary.failed == 1
        assert billing_repo.transactions[-1].reason == "declined"
        assert subscription.status == "past_due"


class TestGrace:
    async def test_expired_grace_cancels(self, product_repo, billing_repo, company_id):
        plan = product_repo.add_plan()
        subscription = product_repo.add_subscription(company_id, plan, status="past_due")
        subscription.grace_until = NOW - timedelta(minutes=1)

        summary = await build(product_repo, billing_repo).run_cycle(NOW)

        assert summary.cancelled == 1
        assert subscription.status == "cancelled"
        assert subscription.cancelled_at == NOW
