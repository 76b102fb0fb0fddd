"""
/api/v1/admin/serpapi endpoints: import runs and record review.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from buscai.dependencies import get_serpapi_service, require_admin, verify_api_key, writable
from buscai.schemas.common import Actor
from buscai.schemas.serpapi import (
    ImportRecordResponse,
    ImportRunDetail,
    ImportRunListResponse,
    ImportRunResponse,
    ImportStartRequest,
    PublishRecordRequest,
    PublishRecordResponse,
    ResolveConflictRequest,
)
from buscai.services.serpapi_import import SerpapiImportService

router = APIRouter(prefix="/api/v1/admin/serpapi", tags=["admin-serpapi"], dependencies=[Depends(verify_api_key)])


@router.post(
    "/runs",
    response_model=ImportRunResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(writable)],
)
async def start_import(
    body: ImportStartRequest,
    actor: Actor = Depends(require_admin),
    service: SerpapiImportService = Depends(get_serpapi_service),
):
    return await service.start_import(actor, body)


@router.get("/runs", response_model=ImportRunListResponse)
async def list_runs(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(require_admin),
    service: SerpapiImportService = Depends(get_serpapi_service),
):
    return await service.list_runs(actor, limit=limit, offset=offset)


@router.get("/runs/{run_id}", response_model=ImportRunDetail)
async def get_run(
    run_id: uuid.UUID,
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(require_admin),
    service: SerpapiImportService = Depends(get_serpapi_service),
):
    return await service.get_run(actor, run_id, status=status_filter, limit=limit, offset=offset)


@router.post("/runs/{run_id}/invalidate", response_model=ImportRunResponse, dependencies=[Depends(writable)])
async def invalidate_run(
    run_id: uuid.UUID,
    actor: Actor = Depends(require_admin),
    service: SerpapiImportService = Depends(get_serpapi_service),
):
    return await service.invalidate_run(actor, run_id)


@router.post(
    "/runs/{run_id}/records/{record_id}/resolve",
    response_model=ImportRecordResponse,
    dependencies=[Depends(writable)],
)
async def resolve_conflict(
    run_id: uuid.UUID,
    record_id: uuid.UUID,
    body: ResolveConflictRequest,
    actor: Actor = Depends(require_admin),
    service: SerpapiImportService = Depends(get_serpapi_service),
):
    return await service.resolve_conflict(actor, run_id, record_id, body.action, body.company_id)


@router.post(
    "/runs/{run_id}/records/{record_id}/publish",
    response_model=PublishRecordResponse,
    dependencies=[Depends(writable)],
)
async def publish_record(
    run_id: uuid.UUID,
    record_id: uuid.UUID,
    body: PublishRecordRequest,
    actor: Actor = Depends(require_admin),
    service: SerpapiImportService = Depends(get_serpapi_service),
):
    return await service.publish_record(actor, run_id, record_id, body)
