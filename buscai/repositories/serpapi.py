"""
SerpAPI import runs and per-item records.
"""

import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from buscai.models.tables import SerpapiImportRecord, SerpapiImportRun


class SerpapiRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_run(self, **fields) -> SerpapiImportRun:
        run = SerpapiImportRun(**fields)
        self.session.add(run)
        await self.session.flush()
        return run

    async def get_run(self, run_id: uuid.UUID) -> Optional[SerpapiImportRun]:
        return await self.session.get(SerpapiImportRun, run_id)

    async def save_run(self, run: SerpapiImportRun) -> SerpapiImportRun:
        self.session.add(run)
        await self.session.flush()
        return run

    async def list_runs(self, limit: int = 20, offset: int = 0) -> tuple[list[SerpapiImportRun], int]:
        total = (await self.session.execute(select(func.count(SerpapiImportRun.id)))).scalar() or 0
        result = await self.session.execute(
            select(SerpapiImportRun)
            .order_by(SerpapiImportRun.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def add_record(self, **fields) -> SerpapiImportRecord:
        record = SerpapiImportRecord(**fields)
        self.session.add(record)
        await self.session.flush()
        return record

    async def get_record(self, run_id: uuid.UUID, record_id: uuid.UUID) -> Optional[SerpapiImportRecord]:
        result = await self.session.execute(
            select(SerpapiImportRecord).where(
                SerpapiImportRecord.id == record_id,
                SerpapiImportRecord.run_id == run_id,
            )
        )
        return result.scalars().first()

    async def save_record(self, record: SerpapiImportRecord) -> SerpapiImportRecord:
        self.session.add(record)
        await self.session.flush()
        return record

    async def list_records(
        self, run_id: uuid.UUID, status: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> list[SerpapiImportRecord]:
        query = select(SerpapiImportRecord).where(SerpapiImportRecord.run_id == run_id)
        if status:
            query = query.where(SerpapiImportRecord.status == status)
        result = await self.session.execute(
            query.order_by(SerpapiImportRecord.created_at).offset(offset).limit(limit)
        )
        return list(result.scalars().all())
