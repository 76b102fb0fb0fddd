"""
Pydantic request/response schemas for product plans, subscriptions and offers.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ── Plans & Subscriptions ────────────────────────────────────

class PlanResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    monthly_price_cents: int
    max_active_offers: int
    is_active: bool

    model_config = {"from_attributes": True}


class SubscriptionResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    plan_id: uuid.UUID
    status: str
    scheduled_plan_id: Optional[uuid.UUID] = None
    current_period_start: datetime
    current_period_end: datetime
    grace_until: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SelfSubscriptionResponse(BaseModel):
    plan: Optional[PlanResponse] = None
    status: Optional[str] = None
    subscription: Optional[SubscriptionResponse] = None


class ChangeSubscriptionRequest(BaseModel):
    plan_id: uuid.UUID
    company_id: Optional[uuid.UUID] = None


class ChangeSubscriptionResponse(BaseModel):
    subscription_id: uuid.UUID
    plan_id: uuid.UUID
    status: str
    scheduled_plan_id: Optional[uuid.UUID] = None
    changed: bool = True


# ── Offers ───────────────────────────────────────────────────

class OfferCreateRequest(BaseModel):
    city_id: uuid.UUID
    niche_id: uuid.UUID
    title: str = Field(min_length=2, max_length=160)
    description: Optional[str] = Field(default=None, max_length=2000)
    price_cents: int = Field(ge=0)
    original_price_cents: Optional[int] = Field(default=None, ge=0)


class OfferUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=2, max_length=160)
    description: Optional[str] = Field(default=None, max_length=2000)
    price_cents: Optional[int] = Field(default=None, ge=0)
    original_price_cents: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class OfferResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    city_id: uuid.UUID
    niche_id: uuid.UUID
    title: str
    description: Optional[str] = None
    price_cents: int
    original_price_cents: Optional[int] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OfferListResponse(BaseModel):
    items: list[OfferResponse]
    total: int
    limit: int
    offset: int


class ProductSearchRequest(BaseModel):
    city_id: uuid.UUID
    niche_id: Optional[uuid.UUID] = None
    query: Optional[str] = Field(default=None, max_length=200)
    limit: int = Field(default=5, ge=1, le=50)


class ProductSearchCompany(BaseModel):
    id: uuid.UUID
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class ProductSearchItem(BaseModel):
    id: uuid.UUID
    title: str
    price_cents: int
    valid_until: datetime
    company: ProductSearchCompany
    source: str = "product"


class ProductSearchResponse(BaseModel):
    items: list[ProductSearchItem]
    total: int


class RenewalSummary(BaseModel):
    processed: int = 0
    renewed: int = 0
    failed: int = 0
    skipped: int = 0
    cancelled: int = 0
