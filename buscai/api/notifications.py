"""
/api/v1/notifications endpoints: the company notification panel and its preferences.
"""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from buscai.dependencies import get_actor, get_notification_service, verify_api_key, writable
from buscai.schemas.common import Actor
from buscai.schemas.notifications import (
    Category,
    Kind,
    MarkReadRequest,
    MarkReadResponse,
    NotificationListResponse,
    PreferencesResponse,
    PreferencesUpdate,
    Severity,
)
from buscai.services.access import resolve_company_id
from buscai.services.notifications import NotificationService

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"], dependencies=[Depends(verify_api_key)])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    company_id: Optional[uuid.UUID] = Query(None),
    category: Optional[Category] = Query(None),
    severity: Optional[Severity] = Query(None),
    kind: Optional[Kind] = Query(None),
    unread: bool = Query(False),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_actor),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.list_notifications(
        actor,
        resolve_company_id(actor, company_id),
        category=category,
        severity=severity,
        kind=kind,
        unread_only=unread,
        start=start,
        end=end,
        limit=limit,
        offset=offset,
    )


@router.post("/read", response_model=MarkReadResponse, dependencies=[Depends(writable)])
async def mark_read(
    body: MarkReadRequest,
    actor: Actor = Depends(get_actor),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.mark_read(actor, resolve_company_id(actor, body.company_id), body.ids)


@router.get("/preferences", response_model=PreferencesResponse)
async def get_preferences(
    company_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.get_preferences(actor, resolve_company_id(actor, company_id))


@router.patch("/preferences", response_model=PreferencesResponse, dependencies=[Depends(writable)])
async def update_preferences(
    body: PreferencesUpdate,
    company_id: Optional[uuid.UUID] = Query(None),
    actor: Actor = Depends(get_actor),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.update_preferences(actor, resolve_company_id(actor, company_id), body)
