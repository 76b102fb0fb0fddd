"""
Pydantic request/response schemas for the SerpAPI admin import.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class ImportStartRequest(BaseModel):
    city_id: uuid.UUID
    niche_id: uuid.UUID
    query: Optional[str] = Field(default=None, max_length=200)
    limit: Optional[int] = Field(default=None, ge=1, le=100)
    dry_run: bool = False
    ignore_duplicates: bool = False


class ImportRunResponse(BaseModel):
    id: uuid.UUID
    city_id: uuid.UUID
    niche_id: uuid.UUID
    query: str
    dry_run: bool
    status: str
    found_count: int = 0
    inserted_count: int = 0
    updated_count: int = 0
    conflict_count: int = 0
    error_count: int = 0
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ImportRunListResponse(BaseModel):
    items: list[ImportRunResponse]
    total: int
    limit: int
    offset: int


class ImportRecordResponse(BaseModel):
    id: uuid.UUID
    run_id: uuid.UUID
    company_id: Optional[uuid.UUID] = None
    dedupe_key: str
    status: str
    reason: Optional[str] = None
    error_message: Optional[str] = None
    raw_payload: dict = {}
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ImportRunDetail(BaseModel):
    run: ImportRunResponse
    records: list[ImportRecordResponse]


class ResolveConflictRequest(BaseModel):
    action: Literal["link_existing", "create_new", "ignore"]
    company_id: Optional[uuid.UUID] = None


class PublishRecordRequest(BaseModel):
    status_after: Literal["pending", "active"] = "pending"
    force: bool = False
    target_company_id: Optional[uuid.UUID] = None


class PublishRecordResponse(BaseModel):
    company_id: uuid.UUID
    mode: str  # created, linked
