"""
Pydantic request/response schemas for the /api/v1/auction endpoints.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class AuctionConfigRequest(BaseModel):
    """Create (no id) or update (id) an auction config. Money in cents."""
    id: Optional[uuid.UUID] = None
    company_id: Optional[uuid.UUID] = None
    city_id: uuid.UUID
    niche_id: uuid.UUID
    mode: Literal["manual", "auto", "smart"] = "manual"
    bid_position1_cents: Optional[int] = Field(default=None, ge=0)
    bid_position2_cents: Optional[int] = Field(default=None, ge=0)
    bid_position3_cents: Optional[int] = Field(default=None, ge=0)
    target_position: Optional[int] = None
    target_share: Optional[float] = Field(default=None, ge=0, le=100)
    daily_budget_cents: Optional[int] = Field(default=None, ge=0)
    pause_on_limit: Optional[bool] = None
    is_active: Optional[bool] = None


class ConfigSlot(BaseModel):
    position: int
    type: str  # auction, organic
    bid_cents: Optional[int] = None


class AuctionConfigResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    city_id: uuid.UUID
    niche_id: uuid.UUID
    mode: str
    bid_position1_cents: Optional[int] = None
    bid_position2_cents: Optional[int] = None
    bid_position3_cents: Optional[int] = None
    target_position: Optional[int] = None
    target_share: Optional[float] = None
    daily_budget_cents: Optional[int] = None
    pause_on_limit: bool
    is_active: bool
    created_at: Optional[datetime] = None
    slots: list[ConfigSlot] = []


class MarketSlot(BaseModel):
    position: int
    type: str  # auction, organic
    company_id: Optional[uuid.UUID] = None
    trade_name: Optional[str] = None
    bid_cents: Optional[int] = None


class SlotOverview(BaseModel):
    city_id: uuid.UUID
    niche_id: uuid.UUID
    slots: list[MarketSlot]


class AuctionSummary(BaseModel):
    company_id: uuid.UUID
    city_id: uuid.UUID
    niche_id: uuid.UUID
    status: str  # active, paused, paused_by_limit, insufficient_balance
    config_id: Optional[uuid.UUID] = None
    mode: Optional[str] = None
    daily_budget_cents: Optional[int] = None
    today_spent_cents: int = 0
    impressions: int = 0
    clicks: int = 0
    ctr: float = 0.0
    avg_paid_position: Optional[float] = None
    wallet_balance_cents: int = 0
    wallet_reserved_cents: int = 0
    market_slots: list[MarketSlot] = []
