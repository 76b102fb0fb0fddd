"""
Shared schemas: the request actor and pagination envelopes.
"""

import uuid
from typing import Optional

from pydantic import BaseModel


class Actor(BaseModel):
    """Caller identity forwarded by the upstream gateway."""
    user_id: uuid.UUID
    role: str = "company_owner"  # admin, company_owner
    company_id: Optional[uuid.UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Page(BaseModel):
    total: int
    limit: int
    offset: int
