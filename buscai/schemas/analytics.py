"""
Pydantic response schemas for the company analytics dashboard.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class HourBucket(BaseModel):
    hour: int
    total: int


class DayBucket(BaseModel):
    date: date
    total: int


class NicheBucket(BaseModel):
    niche: str
    total: int


class AppearanceBreakdown(BaseModel):
    total: int = 0
    auction: dict[str, int] = Field(default_factory=lambda: {"pos1": 0, "pos2": 0, "pos3": 0})
    organic: dict[str, int] = Field(default_factory=lambda: {"pos4": 0, "pos5": 0})
    by_niche: list[NicheBucket] = Field(default_factory=list)


class ActionBreakdown(BaseModel):
    total_clicks: int = 0
    calls: int = 0
    whatsapp: int = 0
    ctr: float = 0.0
    clicks_by_hour: list[HourBucket] = Field(default_factory=list)
    clicks_by_day: list[DayBucket] = Field(default_factory=list)


class CostBreakdown(BaseModel):
    total_spent_cents: int = 0
    cost_per_appearance_cents: float = 0.0
    cost_per_click_cents: float = 0.0


class DashboardResponse(BaseModel):
    company_id: uuid.UUID
    start: datetime
    end: datetime
    appearances: AppearanceBreakdown
    actions: ActionBreakdown
    costs: CostBreakdown
    best_day_of_week: Optional[str] = None
    best_hour: Optional[str] = None
    current_position: Optional[int] = None
