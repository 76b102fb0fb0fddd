"""
SQLAlchemy ORM models.
Money columns are integer cents; timestamps are timezone-aware UTC.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    BigInteger,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID, ENUM
from sqlalchemy.orm import Mapped, mapped_column, relationship

from buscai.models.database import Base
from buscai.models import enums


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> ENUM:
    return ENUM(*[e.value for e in enum_cls], name=name)


def _pk() -> Mapped[uuid.UUID]:
    return mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
        server_default=text("gen_random_uuid()")
    )


def _created_at() -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=text("NOW()")
    )


# ────────────────────────────────────────────────────────────
# CATALOG
# ────────────────────────────────────────────────────────────
class City(Base):
    __tablename__ = "cities"

    id: Mapped[uuid.UUID] = _pk()
    name: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[str] = mapped_column(String(2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        UniqueConstraint("name", "state", name="uq_cities_name_state"),
    )


class Niche(Base):
    __tablename__ = "niches"

    id: Mapped[uuid.UUID] = _pk()
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    label: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = _created_at()


# ────────────────────────────────────────────────────────────
# COMPANIES
# ────────────────────────────────────────────────────────────
class Company(Base):
    __tablename__ = "companies"

    id: Mapped[uuid.UUID] = _pk()
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    trade_name: Mapped[str] = mapped_column(Text, nullable=False)
    legal_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("cities.id"), nullable=True
    )
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    whatsapp: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    normalized_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    normalized_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    quality_score: Mapped[int] = mapped_column(Integer, nullable=False, default=50, server_default="50")
    source: Mapped[str] = mapped_column(
        _enum(enums.CompanySource, "company_source_enum"),
        nullable=False, default="manual", server_default="manual"
    )
    source_run_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    status: Mapped[str] = mapped_column(
        _enum(enums.CompanyStatus, "company_status_enum"),
        nullable=False, default="pending", server_default="pending"
    )
    participates_in_auction: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
        server_default=text("NOW()")
    )

    niches = relationship("CompanyNiche", back_populates="company", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("quality_score BETWEEN 0 AND 100", name="ck_companies_quality_range"),
        Index("idx_companies_city", "city_id"),
        Index("idx_companies_normalized_phone", "normalized_phone"),
        Index("idx_companies_owner", "owner_id"),
    )


class CompanyNiche(Base):
    __tablename__ = "company_niches"

    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), primary_key=True
    )
    niche_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("niches.id", ondelete="CASCADE"), primary_key=True
    )

    company = relationship("Company", back_populates="niches")


# ────────────────────────────────────────────────────────────
# BILLING
# ────────────────────────────────────────────────────────────
class Wallet(Base):
    __tablename__ = "billing_wallet"

    id: Mapped[uuid.UUID] = _pk()
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    balance_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    reserved_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
        server_default=text("NOW()")
    )

    __table_args__ = (
        CheckConstraint("balance_cents >= 0", name="ck_wallet_balance_non_negative"),
        CheckConstraint("reserved_cents >= 0", name="ck_wallet_reserved_non_negative"),
    )


class Transaction(Base):
    """Append-only ledger entry. Only a recharge moves pending -> confirmed."""
    __tablename__ = "billing_transactions"

    id: Mapped[uuid.UUID] = _pk()
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(
        _enum(enums.TransactionType, "transaction_type_enum"), nullable=False
    )
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(
        _enum(enums.TransactionStatus, "transaction_status_enum"),
        nullable=False, default="confirmed", server_default="confirmed"
    )
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    provider: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    external_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    subscription_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    period_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    period_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    metadata_json: Mapped[Optional[dict]] = mapped_column("metadata", JSONB, nullable=True)
    occurred_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_non_negative"),
        Index("idx_transactions_company_occurred", "company_id", "occurred_at"),
        Index("idx_transactions_subscription_period", "subscription_id", "period_start"),
    )


# ────────────────────────────────────────────────────────────
# AUCTION
# ────────────────────────────────────────────────────────────
class AuctionConfig(Base):
    __tablename__ = "auction_configs"

    id: Mapped[uuid.UUID] = _pk()
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    city_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("cities.id"), nullable=False)
    niche_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("niches.id"), nullable=False)
    mode: Mapped[str] = mapped_column(
        _enum(enums.AuctionMode, "auction_mode_enum"),
        nullable=False, default="manual", server_default="manual"
    )
    bid_position1_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bid_position2_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bid_position3_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    target_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    target_share: Mapped[Optional[float]] = mapped_column(Numeric(5, 2), nullable=True)
    daily_budget_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    pause_on_limit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
        server_default=text("NOW()")
    )

    __table_args__ = (
        CheckConstraint(
            "(mode = 'manual' AND target_position IS NULL) OR "
            "(mode <> 'manual' AND target_position BETWEEN 1 AND 3)",
            name="ck_auction_target_matches_mode",
        ),
        UniqueConstraint("company_id", "city_id", "niche_id", name="uq_auction_company_market"),
        Index("idx_auction_market", "city_id", "niche_id"),
    )


# ────────────────────────────────────────────────────────────
# PRODUCTS & SUBSCRIPTIONS
# ────────────────────────────────────────────────────────────
class ProductPlan(Base):
    __tablename__ = "product_plans"

    id: Mapped[uuid.UUID] = _pk()
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    monthly_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    max_active_offers: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = _created_at()


class Subscription(Base):
    __tablename__ = "company_product_subscriptions"

    id: Mapped[uuid.UUID] = _pk()
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    plan_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("product_plans.id"), nullable=False)
    scheduled_plan_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("product_plans.id"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        _enum(enums.SubscriptionStatus, "subscription_status_enum"),
        nullable=False, default="active", server_default="active"
    )
    payment_method_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("payment_methods.id"), nullable=True
    )
    current_period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    current_period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    grace_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
        server_default=text("NOW()")
    )


class PaymentMethod(Base):
    __tablename__ = "payment_methods"

    id: Mapped[uuid.UUID] = _pk()
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(
        _enum(enums.PaymentMethodType, "payment_method_type_enum"), nullable=False
    )
    provider: Mapped[str] = mapped_column(String(32), nullable=False, default="dummy", server_default="dummy")
    provider_ref: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = _created_at()


class ProductOffer(Base):
    __tablename__ = "product_offers"

    id: Mapped[uuid.UUID] = _pk()
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    city_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("cities.id"), nullable=False)
    niche_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("niches.id"), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    original_price_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
        server_default=text("NOW()")
    )

    __table_args__ = (
        CheckConstraint("price_cents >= 0", name="ck_offers_price_non_negative"),
        Index("idx_offers_market", "city_id", "niche_id", "is_active"),
        Index("idx_offers_company", "company_id"),
    )


# ────────────────────────────────────────────────────────────
# SEARCH
# ────────────────────────────────────────────────────────────
class Search(Base):
    __tablename__ = "searches"

    id: Mapped[uuid.UUID] = _pk()
    city_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("cities.id"), nullable=False)
    niche_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("niches.id"), nullable=False)
    query_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(
        _enum(enums.SearchSource, "search_source_enum"), nullable=False
    )
    created_at: Mapped[datetime] = _created_at()


class SearchResult(Base):
    __tablename__ = "search_results"

    id: Mapped[uuid.UUID] = _pk()
    search_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("searches.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    charged_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    click_tracking_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, default=uuid.uuid4)

    __table_args__ = (
        UniqueConstraint("search_id", "company_id", name="uq_search_results_company"),
    )


class SearchEvent(Base):
    __tablename__ = "search_events"

    id: Mapped[uuid.UUID] = _pk()
    search_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("searches.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    type: Mapped[str] = mapped_column(
        _enum(enums.SearchEventType, "search_event_type_enum"), nullable=False
    )
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        Index("idx_search_events_company_type", "company_id", "type", "created_at"),
    )


# ────────────────────────────────────────────────────────────
# CLAIMS
# ────────────────────────────────────────────────────────────
class ClaimRequest(Base):
    __tablename__ = "company_claim_requests"

    id: Mapped[uuid.UUID] = _pk()
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    method: Mapped[str] = mapped_column(
        _enum(enums.ClaimMethod, "claim_method_enum"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        _enum(enums.ClaimStatus, "claim_status_enum"),
        nullable=False, default="pending", server_default="pending"
    )
    requested_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    serp_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    attempts_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_attempt_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
        server_default=text("NOW()")
    )

    __table_args__ = (
        Index("idx_claims_company_status", "company_id", "status"),
    )


# ────────────────────────────────────────────────────────────
# SERPAPI IMPORT
# ────────────────────────────────────────────────────────────
class SerpapiImportRun(Base):
    __tablename__ = "serpapi_import_runs"

    id: Mapped[uuid.UUID] = _pk()
    initiated_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    city_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("cities.id"), nullable=False)
    niche_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("niches.id"), nullable=False)
    query: Mapped[str] = mapped_column(Text, nullable=False)
    dry_run: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    status: Mapped[str] = mapped_column(
        _enum(enums.ImportRunStatus, "import_run_status_enum"),
        nullable=False, default="pending", server_default="pending"
    )
    found_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    inserted_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    updated_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    conflict_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class SerpapiImportRecord(Base):
    __tablename__ = "serpapi_import_records"

    id: Mapped[uuid.UUID] = _pk()
    run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("serpapi_import_runs.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    dedupe_key: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        _enum(enums.ImportRecordStatus, "import_record_status_enum"), nullable=False
    )
    raw_payload: Mapped[dict] = mapped_column(JSONB, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        Index("idx_import_records_run_status", "run_id", "status"),
    )


# ────────────────────────────────────────────────────────────
# NOTIFICATIONS
# ────────────────────────────────────────────────────────────
class Notification(Base):
    """Company-facing panel notification, deduplicated per key and day."""
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = _pk()
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    category: Mapped[str] = mapped_column(
        _enum(enums.NotificationCategory, "notification_category_enum"), nullable=False
    )
    severity: Mapped[str] = mapped_column(
        _enum(enums.NotificationSeverity, "notification_severity_enum"),
        nullable=False, default="low", server_default="low"
    )
    kind: Mapped[str] = mapped_column(
        _enum(enums.NotificationKind, "notification_kind_enum"),
        nullable=False, default="event", server_default="event"
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cta_label: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cta_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    dedupe_key: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bucket_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    metadata_json: Mapped[Optional[dict]] = mapped_column("metadata", JSONB, nullable=True)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        UniqueConstraint("company_id", "dedupe_key", "bucket_date", name="uq_notifications_dedupe"),
        Index("idx_notifications_company_created", "company_id", "created_at"),
    )


class NotificationPreferences(Base):
    __tablename__ = "notification_preferences"

    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), primary_key=True
    )
    panel_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    financial_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    visibility_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    subscription_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    contacts_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    system_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    frequency: Mapped[str] = mapped_column(
        _enum(enums.NotificationFrequency, "notification_frequency_enum"),
        nullable=False, default="real_time", server_default="real_time"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
        server_default=text("NOW()")
    )


# ────────────────────────────────────────────────────────────
# INTERNAL AUDIT
# ────────────────────────────────────────────────────────────
class InternalEvent(Base):
    __tablename__ = "internal_events"

    id: Mapped[uuid.UUID] = _pk()
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        Index("idx_internal_events_type_created", "type", "created_at"),
    )
