"""
Pydantic request/response schemas for panel notifications.
"""

import uuid
from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

Category = Literal["financial", "visibility", "subscription", "contacts", "system"]
Severity = Literal["low", "medium", "high"]
Kind = Literal["event", "summary", "alert"]
Frequency = Literal["real_time", "daily", "weekly", "never"]


class NotificationDraft(BaseModel):
    """A notification about to be emitted for a company."""
    company_id: uuid.UUID
    category: Category
    severity: Severity = "low"
    kind: Kind = "event"
    title: str
    message: Optional[str] = None
    dedupe_key: Optional[str] = None
    bucket_date: Optional[date] = None
    cta_label: Optional[str] = None
    cta_url: Optional[str] = None
    metadata: Optional[dict] = None


class NotificationResponse(BaseModel):
    id: uuid.UUID
    category: str
    severity: str
    kind: str
    title: str
    message: Optional[str] = None
    cta_label: Optional[str] = None
    cta_url: Optional[str] = None
    bucket_date: Optional[date] = None
    metadata: Optional[dict] = None
    read_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_row(cls, row) -> "NotificationResponse":
        return cls(
            id=row.id,
            category=row.category,
            severity=row.severity,
            kind=row.kind,
            title=row.title,
            message=row.message,
            cta_label=row.cta_label,
            cta_url=row.cta_url,
            bucket_date=row.bucket_date,
            metadata=row.metadata_json,
            read_at=row.read_at,
            created_at=row.created_at,
        )


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    next_offset: Optional[int] = None


class MarkReadRequest(BaseModel):
    ids: list[uuid.UUID] = Field(min_length=1, max_length=200)
    company_id: Optional[uuid.UUID] = None


class MarkReadResponse(BaseModel):
    updated: int


class PreferencesResponse(BaseModel):
    company_id: uuid.UUID
    panel_enabled: bool
    financial_enabled: bool
    visibility_enabled: bool
    subscription_enabled: bool
    contacts_enabled: bool
    system_enabled: bool
    frequency: str

    model_config = {"from_attributes": True}


class PreferencesUpdate(BaseModel):
    panel_enabled: Optional[bool] = None
    financial_enabled: Optional[bool] = None
    visibility_enabled: Optional[bool] = None
    subscription_enabled: Optional[bool] = None
    contacts_enabled: Optional[bool] = None
    system_enabled: Optional[bool] = None
    frequency: Optional[Frequency] = None
