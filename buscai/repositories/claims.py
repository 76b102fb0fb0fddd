"""
Company claim requests.
"""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buscai.models.tables import ClaimRequest


class ClaimRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, request_id: uuid.UUID) -> Optional[ClaimRequest]:
        return await self.session.get(ClaimRequest, request_id)

    async def find_pending(self, company_id: uuid.UUID, user_id: uuid.UUID) -> Optional[ClaimRequest]:
        result = await self.session.execute(
            select(ClaimRequest)
            .where(
                ClaimRequest.company_id == company_id,
                ClaimRequest.user_id == user_id,
                ClaimRequest.status == "pending",
            )
            .order_by(ClaimRequest.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def create(self, **fields) -> ClaimRequest:
        request = ClaimRequest(**fields)
        self.session.add(request)
        await self.session.flush()
        return request

    async def save(self, request: ClaimRequest) -> ClaimRequest:
        self.session.add(request)
        await self.session.flush()
        return request

    async def list_for_user(self, user_id: uuid.UUID) -> list[ClaimRequest]:
        result = await self.session.execute(
            select(ClaimRequest)
            .where(ClaimRequest.user_id == user_id)
            .order_by(ClaimRequest.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_by_status(self, status: str, limit: int = 50, offset: int = 0) -> list[ClaimRequest]:
        result = await self.session.execute(
            select(ClaimRequest)
            .where(ClaimRequest.status == status)
            .order_by(ClaimRequest.created_at)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())
