"""
Shared test fixtures: in-memory repositories and row factories.
"""

import contextlib
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from buscai.schemas.common import Actor

NOW = datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)


def make_company(**overrides):
    values = dict(
        id=uuid.uuid4(),
        owner_id=None,
        trade_name="Pizzaria Bella",
        legal_name=None,
        city_id=uuid.uuid4(),
        address="Rua das Flores, 10",
        phone="+5511999990000",
        whatsapp=None,
        website=None,
        normalized_phone="5511999990000",
        normalized_name="pizzaria bella",
        quality_score=70,
        source="manual",
        source_run_id=None,
        status="active",
        participates_in_auction=True,
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


# ── Fakes ────────────────────────────────────────────────────

class FakeAudit:
    def __init__(self):
        self.events = []

    async def record(self, event_type, payload):
        self.events.append((event_type, payload))

    def types(self):
        return [event_type for event_type, _ in self.events]


class FakeCompanyRepo:
    def __init__(self, *companies):
        self.companies = {c.id: c for c in companies}
        self.niches = {}
        self.dedupe_hits = []

    async def get(self, company_id):
        return self.companies.get(company_id)

    async def create(self, **fields):
        fields.setdefault("owner_id", None)
        fields.setdefault("legal_name", None)
        fields.setdefault("whatsapp", None)
        fields.setdefault("website", None)
        fields.setdefault("source_run_id", None)
        company = make_company(**fields)
        self.companies[company.id] = company
        return company

    async def update(self, company, **fields):
        for key, value in fields.items():
            setattr(company, key, value)
        return company

    async def link_niche(self, company_id, niche_id):
        self.niches.setdefault(company_id, [])
        if niche_id not in self.niches[company_id]:
            self.niches[company_id].append(niche_id)

    async def niche_ids(self, company_id):
        return list(self.niches.get(company_id, []))

    async def find_dedupe_hits(self, **kwargs):
        return list(self.dedupe_hits)

    async def find_by_phone_digits(self, digits):
        for company in self.companies.values():
            if digits and digits == "".join(ch for ch in (company.phone or "") if ch.isdigit()):
                return company
        return None

    async def find_by_name_in_city(self, normalized_name, city_id):
        for company in self.companies.values():
            if company.city_id == city_id and company.trade_name.lower() == normalized_name:
                return company
        return None

    async def claim_candidates(self, city_id, name_query, phone_digits, limit=50):
        return [c for c in self.companies.values() if c.city_id == city_id][:limit]

    async def list_companies(self, **filters):
        items = list(self.companies.values())
        return items, len(items)


class FakeBillingRepo:
    def __init__(self):
        self.wallets = {}
        self.transactions = []

    def seed_wallet(self, company_id, balance_cents, reserved_cents=0):
        wallet = SimpleNamespace(
            id=uuid.uuid4(), company_id=company_id, balance_cents=balance_cents, reserved_cents=reserved_cents
        )
        self.wallets[company_id] = wallet
        return wallet

    async def get_wallet(self, company_id, for_update=False):
        return self.wallets.get(company_id)

    async def get_or_create_wallet(self, company_id, for_update=False):
        return self.wallets.get(company_id) or self.seed_wallet(company_id, 0)

    async def wallets_for(self, company_ids):
        return {cid: self.wallets[cid] for cid in company_ids if cid in self.wallets}

    async def adjust_balance(self, wallet, delta_cents):
        wallet.balance_cents += delta_cents
        return wallet

    async def add_transaction(self, **fields):
        values = dict(
            id=uuid.uuid4(), reason=None, provider=None, external_id=None, metadata_json=None,
            subscription_id=None, period_start=None, period_end=None, occurred_at=NOW,
        )
        values.update(fields)
        tx = SimpleNamespace(**values)
        self.transactions.append(tx)
        return tx

    async def get_transaction(self, tx_id, for_update=False):
        return next((tx for tx in self.transactions if tx.id == tx_id), None)

    async def set_transaction_status(self, tx, status):
        tx.status = status
        return tx

    async def list_transactions(self, company_id, start=None, end=None, limit=100):
        rows = [tx for tx in self.transactions if tx.company_id == company_id]
        return list(reversed(rows))[:limit]

    async def find_subscription_transaction(self, subscription_id, period_start, tx_type, status):
        for tx in self.transactions:
            if (
                tx.subscription_id == subscription_id
                and tx.period_start == period_start
                and tx.type == tx_type
                and tx.status == status
            ):
                return tx
        return None


class FakeCatalogRepo:
    def __init__(self, cities=(), niches=()):
        self.cities = {c.id: c for c in cities}
        self.niches = {n.id: n for n in niches}

    async def list_cities(self, active_only=True):
        return list(self.cities.values())

    async def list_niches(self, active_only=True):
        return list(self.niches.values())

    async def get_city(self, city_id):
        return self.cities.get(city_id)

    async def get_niche(self, niche_id):
        return self.niches.get(niche_id)


class FakeProductRepo:
    def __init__(self):
        self.plans = {}
        self.subscriptions = {}
        self.payment_methods = {}
        self.offers = {}
        self.saved_subscriptions = []
        self.searchable = []

    def add_plan(self, price_cents=4990, max_active_offers=3, is_active=True, name="Básico"):
        plan = SimpleNamespace(
            id=uuid.uuid4(), name=name, description=None, monthly_price_cents=price_cents,
            max_active_offers=max_active_offers, is_active=is_active,
        )
        self.plans[plan.id] = plan
        return plan

    def add_subscription(self, company_id, plan, status="active", start=None, payment_method_id=None):
        start = start or NOW - timedelta(days=31)
        subscription = SimpleNamespace(
            id=uuid.uuid4(), company_id=company_id, plan_id=plan.id, scheduled_plan_id=None,
            status=status, payment_method_id=payment_method_id,
            current_period_start=start, current_period_end=start + timedelta(days=31),
            grace_until=None, cancelled_at=None,
        )
        self.subscriptions[company_id] = subscription
        return subscription

    def add_offer(self, company_id, **overrides):
        values = dict(
            id=uuid.uuid4(), company_id=company_id, city_id=uuid.uuid4(), niche_id=uuid.uuid4(),
            title="Pizza grande", description=None, price_cents=3990, original_price_cents=None,
            is_active=True, created_at=NOW - timedelta(hours=1), updated_at=None,
        )
        values.update(overrides)
        offer = SimpleNamespace(**values)
        self.offers[offer.id] = offer
        return offer

    async def list_plans(self, active_only=True):
        return [p for p in self.plans.values() if p.is_active or not active_only]

    async def get_plan(self, plan_id):
        return self.plans.get(plan_id)

    async def get_subscription(self, company_id):
        return self.subscriptions.get(company_id)

    async def save_subscription(self, subscription):
        if getattr(subscription, "id", None) is None:
            subscription.id = uuid.uuid4()
        self.subscriptions[subscription.company_id] = subscription
        self.saved_subscriptions.append(subscription)
        return subscription

    async def due_subscriptions(self, now, limit=200):
        return [
            s for s in self.subscriptions.values()
            if s.status == "active" and s.current_period_end <= now
        ][:limit]

    async def expired_grace(self, now):
        return [
            s for s in self.subscriptions.values()
            if s.status == "past_due" and s.grace_until is not None and s.grace_until <= now
        ]

    async def get_payment_method(self, method_id):
        return self.payment_methods.get(method_id)

    async def count_active_offers(self, company_id):
        return sum(1 for o in self.offers.values() if o.company_id == company_id and o.is_active)

    async def create_offer(self, **fields):
        fields.setdefault("updated_at", None)
        offer = SimpleNamespace(id=uuid.uuid4(), **fields)
        self.offers[offer.id] = offer
        return offer

    async def get_offer(self, company_id, offer_id):
        offer = self.offers.get(offer_id)
        if offer is None or offer.company_id != company_id:
            return None
        return offer

    async def list_offers(self, company_id, limit=20, offset=0):
        rows = [o for o in self.offers.values() if o.company_id == company_id]
        return rows[offset:offset + limit], len(rows)

    async def save_offer(self, offer):
        self.offers[offer.id] = offer
        return offer

    async def searchable_offers(self, city_id, niche_id, created_since):
        return list(self.searchable)


class FakeNotificationRepo:
    def __init__(self):
        self.preferences = {}
        self.notifications = []

    async def get_preferences(self, company_id):
        return self.preferences.get(company_id)

    async def create_default_preferences(self, company_id):
        preferences = SimpleNamespace(
            company_id=company_id, panel_enabled=True, financial_enabled=True, visibility_enabled=True,
            subscription_enabled=True, contacts_enabled=True, system_enabled=False, frequency="real_time",
        )
        self.preferences[company_id] = preferences
        return preferences

    async def save_preferences(self, preferences):
        return preferences

    async def insert_notification(self, **fields):
        key = (fields["company_id"], fields.get("dedupe_key"), fields.get("bucket_date"))
        if fields.get("dedupe_key") and any(
            (n.company_id, n.dedupe_key, n.bucket_date) == key for n in self.notifications
        ):
            return None
        values = dict(
            id=uuid.uuid4(), message=None, cta_label=None, cta_url=None, dedupe_key=None,
            bucket_date=None, metadata_json=None, read_at=None, created_at=NOW,
        )
        values.update(fields)
        notification = SimpleNamespace(**values)
        self.notifications.append(notification)
        return notification

    async def list_notifications(self, company_id, category=None, severity=None, kind=None,
                                 unread_only=False, start=None, end=None, limit=50, offset=0):
        rows = [
            n for n in reversed(self.notifications)
            if n.company_id == company_id
            and (category is None or n.category == category)
            and (not unread_only or n.read_at is None)
        ]
        return rows[offset:offset + limit]

    async def mark_read(self, company_id, ids):
        updated = 0
        for notification in self.notifications:
            if notification.company_id == company_id and notification.id in ids and notification.read_at is None:
                notification.read_at = NOW
                updated += 1
        return updated

    def keys(self):
        return [n.dedupe_key for n in self.notifications]


# ── Fixtures ─────────────────────────────────────────────────

@pytest.fixture
def owner():
    return Actor(user_id=uuid.uuid4(), role="company_owner")


@pytest.fixture
def admin():
    return Actor(user_id=uuid.uuid4(), role="admin")


@pytest.fixture
def audit():
    return FakeAudit()


@pytest.fixture
def billing_repo():
    return FakeBillingRepo()


@pytest.fixture
def product_repo():
    return FakeProductRepo()


@pytest.fixture
def city():
    return SimpleNamespace(id=uuid.uuid4(), name="São Paulo", state="SP", is_active=True)


@pytest.fixture
def niche():
    return SimpleNamespace(id=uuid.uuid4(), slug="pizzaria", label="Pizzaria", is_active=True)


@pytest.fixture
def catalog_repo(city, niche):
    return FakeCatalogRepo([city], [niche])


class FakeAuctionRepo:
    def __init__(self):
        self.configs = {}
        self.organic = []

    def add_config(self, company_id, city_id, niche_id, **overrides):
        values = dict(
            id=uuid.uuid4(), company_id=company_id, city_id=city_id, niche_id=niche_id,
            mode="manual", bid_position1_cents=None, bid_position2_cents=None, bid_position3_cents=None,
            target_position=None, target_share=None, daily_budget_cents=None, pause_on_limit=True,
            is_active=True, created_at=NOW,
        )
        values.update(overrides)
        config = SimpleNamespace(**values)
        self.configs[config.id] = config
        return config

    async def get_config(self, config_id):
        return self.configs.get(config_id)

    async def find_config(self, company_id, city_id, niche_id):
        for config in self.configs.values():
            if (config.company_id, config.city_id, config.niche_id) == (company_id, city_id, niche_id):
                return config
        return None

    async def list_configs(self, company_id=None, city_id=None, niche_id=None):
        return [c for c in self.configs.values() if company_id is None or c.company_id == company_id]

    async def save_config(self, config):
        if getattr(config, "id", None) is None:
            config.id = uuid.uuid4()
        if getattr(config, "created_at", None) is None:
            config.created_at = NOW
        self.configs[config.id] = config
        return config

    async def active_configs_for_market(self, city_id, niche_id):
        return [
            c for c in self.configs.values()
            if c.is_active and c.city_id == city_id and c.niche_id == niche_id
        ]

    async def organic_pool(self, city_id, niche_id):
        return list(self.organic)


class FakeSearchRepo:
    def __init__(self):
        self.searches = {}
        self.results = []
        self.events = []
        self.spend = {}
        self.performance = {"impressions": 0, "clicks": 0, "avg_paid_position": None}
        self.savepoints = []
        self.fail_events = False

    async def create_search(self, **fields):
        search = SimpleNamespace(id=uuid.uuid4(), created_at=NOW, **fields)
        self.searches[search.id] = search
        return search

    async def get_search(self, search_id):
        return self.searches.get(search_id)

    async def add_results(self, results):
        self.results.extend(results)
        return results

    async def mark_result_unpaid(self, result):
        result.is_paid = False
        result.charged_amount_cents = 0

    @contextlib.asynccontextmanager
    async def savepoint(self):
        try:
            yield
        except Exception:
            self.savepoints.append("rolled_back")
            raise
        self.savepoints.append("released")

    async def find_event(self, search_id, company_id, event_type):
        for event in self.events:
            if (event.search_id, event.company_id, event.type) == (search_id, company_id, event_type):
                return event
        return None

    async def add_event(self, search_id, company_id, event_type):
        if self.fail_events:
            raise RuntimeError("event insert failed")
        event = SimpleNamespace(id=uuid.uuid4(), search_id=search_id, company_id=company_id, type=event_type)
        self.events.append(event)
        return event

    async def delete_event(self, event_id):
        self.events = [e for e in self.events if e.id != event_id]

    async def paid_spend_by_company(self, company_ids, city_id, niche_id, start, end):
        return {cid: self.spend[cid] for cid in company_ids if cid in self.spend}

    async def paid_performance(self, company_id, city_id, niche_id, start, end):
        return dict(self.performance)


@pytest.fixture
def auction_repo():
    return FakeAuctionRepo()


@pytest.fixture
def search_repo():
    return FakeSearchRepo()


@pytest.fixture
def notification_repo():
    return FakeNotificationRepo()
