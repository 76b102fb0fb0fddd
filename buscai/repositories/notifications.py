"""
Panel notifications and per-company notification preferences.
Inserts are idempotent on (company, dedupe key, bucket date).
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from buscai.domain.periods import utcnow
from buscai.models.tables import Notification, NotificationPreferences


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_preferences(self, company_id: uuid.UUID) -> Optional[NotificationPreferences]:
        return await self.session.get(NotificationPreferences, company_id)

    async def create_default_preferences(self, company_id: uuid.UUID) -> NotificationPreferences:
        await self.session.execute(
            pg_insert(NotificationPreferences.__table__)
            .values(company_id=company_id)
            .on_conflict_do_nothing(index_elements=["company_id"])
        )
        return await self.session.get(NotificationPreferences, company_id, populate_existing=True)

    async def save_preferences(self, preferences: NotificationPreferences) -> NotificationPreferences:
        self.session.add(preferences)
        await self.session.flush()
        return preferences

    async def insert_notification(self, **fields) -> Optional[Notification]:
        """Returns None when the dedupe key already fired for that bucket."""
        values = dict(fields)
        values["metadata"] = values.pop("metadata_json", None)
        result = await self.session.execute(
            pg_insert(Notification.__table__)
            .values(**values)
            .on_conflict_do_nothing(constraint="uq_notifications_dedupe")
            .returning(Notification.__table__.c.id)
        )
        notification_id = result.scalar()
        if notification_id is None:
            return None
        return await self.session.get(Notification, notification_id)

    async def list_notifications(
        self,
        company_id: uuid.UUID,
        category: Optional[str] = None,
        severity: Optional[str] = None,
        kind: Optional[str] = None,
        unread_only: bool = False,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Notification]:
        query = select(Notification).where(Notification.company_id == company_id)
        if category:
            query = query.where(Notification.category == category)
        if severity:
            query = query.where(Notification.severity == severity)
        if kind:
            query = query.where(Notification.kind == kind)
        if unread_only:
            query = query.where(Notification.read_at.is_(None))
        if start:
            query = query.where(Notification.created_at >= start)
        if end:
            query = query.where(Notification.created_at < end)
        result = await self.session.execute(
            query.order_by(Notification.created_at.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all())

    async def mark_read(self, company_id: uuid.UUID, ids: list[uuid.UUID]) -> int:
        if not ids:
            return 0
        result = await self.session.execute(
            update(Notification)
            .where(
                Notification.company_id == company_id,
                Notification.id.in_(ids),
                Notification.read_at.is_(None),
            )
            .values(read_at=utcnow())
        )
        return result.rowcount or 0
