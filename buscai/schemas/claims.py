"""
Pydantic request/response schemas for company claim requests.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ClaimCandidate(BaseModel):
    id: uuid.UUID
    trade_name: str
    address: Optional[str] = None
    phone_masked: Optional[str] = None
    whatsapp_masked: Optional[str] = None
    match: str  # both, phone, name
    claimed: bool = False


class ClaimRequestCreate(BaseModel):
    company_id: uuid.UUID
    phone: str = Field(min_length=8, max_length=32)


class ClaimNext(BaseModel):
    type: str  # otp, cnpj_whatsapp
    message: str
    support_whatsapp: Optional[str] = None


class ClaimRequestResponse(BaseModel):
    request_id: uuid.UUID
    method: str
    status: str
    next: ClaimNext


class ConfirmCnpjRequest(BaseModel):
    message: Optional[str] = Field(default=None, max_length=1000)


class ClaimReviewRequest(BaseModel):
    approve: bool
    notes: Optional[str] = Field(default=None, max_length=1000)


class ClaimResponse(BaseModel):
    id: uuid.UUID
    company_id: uuid.UUID
    user_id: uuid.UUID
    method: str
    status: str
    notes: Optional[str] = None
    attempts_count: int = 0
    created_at: datetime
    verified_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
