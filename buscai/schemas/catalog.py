"""
Pydantic response schemas for cities and niches.
"""

import uuid

from pydantic import BaseModel


class CityResponse(BaseModel):
    id: uuid.UUID
    name: str
    state: str

    model_config = {"from_attributes": True}


class NicheResponse(BaseModel):
    id: uuid.UUID
    slug: str
    label: str

    model_config = {"from_attributes": True}
