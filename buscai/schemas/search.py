"""
Pydantic request/response schemas for the /api/v1/search endpoints.
"""

import uuid
from typing import Literal, Optional

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    city_id: uuid.UUID
    niche_id: uuid.UUID
    query: Optional[str] = Field(default=None, max_length=200)
    source: Literal["whatsapp", "web", "demo"] = "web"


class PublicSearchRequest(BaseModel):
    """Free-text search: city by name, niche resolved from the text."""
    city: str = Field(min_length=2, max_length=120)
    text: str = Field(min_length=1, max_length=200)
    niche: Optional[str] = Field(default=None, max_length=120)
    source: Literal["whatsapp", "web", "demo"] = "web"


class TrackEventRequest(BaseModel):
    type: str
    company_id: Optional[uuid.UUID] = None


class CompanyCard(BaseModel):
    id: uuid.UUID
    trade_name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    website: Optional[str] = None
    quality_score: int = 0


class SearchResultItem(BaseModel):
    rank: int
    position: int
    is_paid: bool
    charged_amount_cents: int = 0
    click_tracking_id: uuid.UUID
    company: Optional[CompanyCard] = None


class SearchResponse(BaseModel):
    search_id: uuid.UUID
    city_id: uuid.UUID
    niche_id: uuid.UUID
    results: list[SearchResultItem]
