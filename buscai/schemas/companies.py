"""
Pydantic request/response schemas for admin company management.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

CompanyStatusLiteral = Literal["pending", "active", "suspended"]


class CompanyCreateRequest(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    legal_name: Optional[str] = Field(default=None, max_length=200)
    city_id: uuid.UUID
    niche_id: uuid.UUID
    address: Optional[str] = Field(default=None, max_length=300)
    phone: Optional[str] = Field(default=None, max_length=32)
    whatsapp: Optional[str] = Field(default=None, max_length=32)
    website: Optional[str] = Field(default=None, max_length=300)
    status: CompanyStatusLiteral = "pending"
    participates_in_auction: bool = False
    source: Literal["manual", "serpapi", "claimed"] = "manual"
    force: bool = False


class CompanyUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    legal_name: Optional[str] = Field(default=None, max_length=200)
    city_id: Optional[uuid.UUID] = None
    niche_id: Optional[uuid.UUID] = None
    address: Optional[str] = Field(default=None, max_length=300)
    phone: Optional[str] = Field(default=None, max_length=32)
    whatsapp: Optional[str] = Field(default=None, max_length=32)
    website: Optional[str] = Field(default=None, max_length=300)
    status: Optional[CompanyStatusLiteral] = None
    participates_in_auction: Optional[bool] = None
    force: bool = False


class DedupePreviewRequest(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    website: Optional[str] = None
    exclude_id: Optional[uuid.UUID] = None


class DedupeHit(BaseModel):
    id: uuid.UUID
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    website: Optional[str] = None
    status: str
    city_id: Optional[uuid.UUID] = None

    @classmethod
    def from_row(cls, company) -> "DedupeHit":
        return cls(
            id=company.id,
            name=company.trade_name,
            address=company.address,
            phone=company.phone,
            whatsapp=company.whatsapp,
            website=company.website,
            status=company.status,
            city_id=company.city_id,
        )


class CompanyResponse(BaseModel):
    id: uuid.UUID
    owner_id: Optional[uuid.UUID] = None
    name: str
    legal_name: Optional[str] = None
    city_id: Optional[uuid.UUID] = None
    niche_ids: list[uuid.UUID] = []
    address: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    website: Optional[str] = None
    status: str
    source: str
    quality_score: int
    participates_in_auction: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, company, niche_ids: Optional[list] = None) -> "CompanyResponse":
        return cls(
            id=company.id,
            owner_id=company.owner_id,
            name=company.trade_name,
            legal_name=company.legal_name,
            city_id=company.city_id,
            niche_ids=niche_ids or [],
            address=company.address,
            phone=company.phone,
            whatsapp=company.whatsapp,
            website=company.website,
            status=company.status,
            source=company.source,
            quality_score=company.quality_score,
            participates_in_auction=company.participates_in_auction,
            created_at=company.created_at,
            updated_at=company.updated_at,
        )


class CompanyListResponse(BaseModel):
    items: list[CompanyResponse]
    total: int
    limit: int
    offset: int
