"""
SerpAPI import: pull Google Maps listings for a city/niche, dedupe them
against the directory and keep one record per item for admin review.
"""

import uuid
from typing import Optional

import structlog

from buscai.config import settings
from buscai.domain.normalization import (
    compute_quality_score,
    normalize_address,
    normalize_name,
    normalize_phone_e164_br,
    normalize_website,
    to_digits,
)
from buscai.domain.periods import utcnow
from buscai.errors import AppError
from buscai.gateways.serpapi_client import SerpapiPlace, parse_local_results
from buscai.observability.metrics import serpapi_records_total, serpapi_runs_total
from buscai.schemas.common import Actor
from buscai.schemas.companies import CompanyCreateRequest
from buscai.schemas.serpapi import (
    ImportRecordResponse,
    ImportRunDetail,
    ImportRunListResponse,
    ImportRunResponse,
    ImportStartRequest,
    PublishRecordRequest,
    PublishRecordResponse,
)
from buscai.services.access import ensure_admin

logger = structlog.get_logger(__name__)


def search_phrase(query: str, city_name: str) -> str:
    query = query.strip()
    if not query:
        return city_name
    if city_name.lower() in query.lower():
        return query
    return f"{query} em {city_name}"


def dedupe_key(place: SerpapiPlace, city_id: uuid.UUID) -> Optional[str]:
    digits = to_digits(normalize_phone_e164_br(place.phone))
    if digits:
        return digits
    name = normalize_name(place.name)
    if name:
        return f"{name}:{city_id}"
    return None


class SerpapiImportService:
    def __init__(self, serpapi_repo, company_repo, catalog_repo, company_service, client, audit):
        self.serpapi_repo = serpapi_repo
        self.company_repo = company_repo
        self.catalog_repo = catalog_repo
        self.company_service = company_service
        self.client = client
        self.audit = audit

    async def start_import(self, actor: Actor, payload: ImportStartRequest) -> ImportRunResponse:
        ensure_admin(actor)
        city = await self.catalog_repo.get_city(payload.city_id)
        if city is None:
            raise AppError(404, "city_not_found", code="NOT_FOUND")
        niche = await self.catalog_repo.get_niche(payload.niche_id)
        if niche is None:
            raise AppError(404, "niche_not_found", code="NOT_FOUND")

        query = (payload.query or "").strip() or niche.label
        limit = payload.limit or settings.SERPAPI_DEFAULT_LIMIT
        run = await self.serpapi_repo.create_run(
            initiated_by=actor.user_id,
            city_id=city.id,
            niche_id=niche.id,
            query=query,
            dry_run=payload.dry_run,
            status="running",
        )
        logger.info("serpapi_run_started", run_id=str(run.id), dry_run=payload.dry_run, limit=limit)

        try:
            places = await self.client.search(search_phrase(query, city.name), limit)
            run.found_count = len(places)
            for place in places:
                await self._process_place(run, place, payload.dry_run, payload.ignore_duplicates)
            run.status = "done"
        except AppError as e:
            run.status = "failed"
            run.error_message = e.message
            logger.warning("serpapi_run_failed", run_id=str(run.id), error=e.message)
        except Exception as e:
            run.status = "failed"
            run.error_message = str(e) or type(e).__name__
            logger.exception("serpapi_run_crashed", run_id=str(run.id))

        run.finished_at = utcnow()
        await self.serpapi_repo.save_run(run)
        serpapi_runs_total.labels(status=run.status).inc()
        await self.audit.record("serpapi_run_finished", {
            "run_id": str(run.id),
            "status": run.status,
            "dry_run": run.dry_run,
            "found_count": run.found_count,
            "inserted_count": run.inserted_count,
            "updated_count": run.updated_count,
            "conflict_count": run.conflict_count,
            "error_count": run.error_count,
        })
        return ImportRunResponse.model_validate(run)

    async def _process_place(self, run, place: SerpapiPlace, dry_run: bool, ignore_duplicates: bool) -> None:
        key = dedupe_key(place, run.city_id)
        if key is None:
            run.error_count += 1
            await self._add_record(run, place, "unknown", "error", error_message="missing_name_and_phone")
            return

        phone = normalize_phone_e164_br(place.phone)
        name = normalize_name(place.name)
        existing = None
        if phone:
            existing = await self.company_repo.find_by_phone_digits(to_digits(phone))
        if existing is None and name:
            existing = await self.company_repo.find_by_name_in_city(name, run.city_id)

        if existing is not None:
            if ignore_duplicates:
                await self._add_record(run, place, key, "ignored", company_id=existing.id, reason="duplicate_ignored")
                return

            updates = {}
            if phone and not existing.phone:
                updates["phone"] = phone
                updates["normalized_phone"] = to_digits(phone)
            if place.address and not existing.address:
                updates["address"] = normalize_address(place.address)
            if place.website and not existing.website:
                updates["website"] = normalize_website(place.website)
            if name and not existing.normalized_name:
                updates["normalized_name"] = name

            if updates and not dry_run:
                await self.company_repo.update(existing, source_run_id=run.id, **updates)
                await self.company_repo.link_niche(existing.id, run.niche_id)
                run.updated_count += 1
                await self._add_record(run, place, key, "updated", company_id=existing.id)
            else:
                run.conflict_count += 1
                reason = "dry_run_pending_update" if updates else "duplicate_without_new_data"
                await self._add_record(run, place, key, "conflict", company_id=existing.id, reason=reason)
            return

        company_id = None
        if not dry_run:
            address = normalize_address(place.address)
            company = await self.company_repo.create(
                trade_name=(place.name or "Desconhecido").strip(),
                city_id=run.city_id,
                address=address,
                phone=phone,
                website=normalize_website(place.website),
                normalized_phone=to_digits(phone),
                normalized_name=name,
                quality_score=compute_quality_score(
                    name=name, address=address, city_id=run.city_id, niche_id=run.niche_id, phone=phone
                ),
                source="serpapi",
                source_run_id=run.id,
                status="pending",
                participates_in_auction=False,
            )
            await self.company_repo.link_niche(company.id, run.niche_id)
            company_id = company.id
            run.inserted_count += 1
        await self._add_record(run, place, key, "inserted", company_id=company_id)

    async def _add_record(self, run, place: SerpapiPlace, key: str, status: str, **fields):
        serpapi_records_total.labels(status=status).inc()
        return await self.serpapi_repo.add_record(
            run_id=run.id,
            dedupe_key=key,
            status=status,
            raw_payload=place.raw,
            **fields,
        )

    # ── Review ───────────────────────────────────────────────

    async def list_runs(self, actor: Actor, limit: int = 20, offset: int = 0) -> ImportRunListResponse:
        ensure_admin(actor)
        runs, total = await self.serpapi_repo.list_runs(limit=limit, offset=offset)
        return ImportRunListResponse(
            items=[ImportRunResponse.model_validate(r) for r in runs],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def _get_run(self, run_id: uuid.UUID):
        run = await self.serpapi_repo.get_run(run_id)
        if run is None:
            raise AppError(404, "run_not_found", code="NOT_FOUND")
        return run

    async def _get_record(self, run_id: uuid.UUID, record_id: uuid.UUID):
        record = await self.serpapi_repo.get_record(run_id, record_id)
        if record is None:
            raise AppError(404, "record_not_found", code="NOT_FOUND")
        return record

    async def get_run(
        self,
        actor: Actor,
        run_id: uuid.UUID,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> ImportRunDetail:
        ensure_admin(actor)
        run = await self._get_run(run_id)
        records = await self.serpapi_repo.list_records(run_id, status=status, limit=limit, offset=offset)
        return ImportRunDetail(
            run=ImportRunResponse.model_validate(run),
            records=[ImportRecordResponse.model_validate(r) for r in records],
        )

    async def invalidate_run(self, actor: Actor, run_id: uuid.UUID) -> ImportRunResponse:
        ensure_admin(actor)
        run = await self._get_run(run_id)
        run.status = "invalidated"
        await self.serpapi_repo.save_run(run)
        logger.info("serpapi_run_invalidated", run_id=str(run_id))
        return ImportRunResponse.model_validate(run)

    async def resolve_conflict(
        self,
        actor: Actor,
        run_id: uuid.UUID,
        record_id: uuid.UUID,
        action: str,
        company_id: Optional[uuid.UUID] = None,
    ) -> ImportRecordResponse:
        ensure_admin(actor)
        record = await self._get_record(run_id, record_id)

        if action == "link_existing":
            if company_id is None:
                raise AppError(400, "company_id_required")
            if await self.company_repo.get(company_id) is None:
                raise AppError(404, "company_not_found", code="NOT_FOUND")
            record.status = "updated"
            record.company_id = company_id
            record.reason = "linked_by_admin"
        elif action == "create_new":
            await self.publish_record(actor, run_id, record_id, PublishRecordRequest(force=True))
            record.reason = "created_by_admin"
        elif action == "ignore":
            record.status = "ignored"
            record.reason = "ignored_by_admin"
        else:
            raise AppError(400, "invalid_action")

        await self.serpapi_repo.save_record(record)
        return ImportRecordResponse.model_validate(record)

    async def publish_record(
        self, actor: Actor, run_id: uuid.UUID, record_id: uuid.UUID, payload: PublishRecordRequest
    ) -> PublishRecordResponse:
        """Turn an import record into a directory company (or link it to one)."""
        ensure_admin(actor)
        run = await self._get_run(run_id)
        if run.status == "invalidated":
            raise AppError(400, "run_invalidated")
        record = await self._get_record(run_id, record_id)

        if payload.target_company_id:
            if await self.company_repo.get(payload.target_company_id) is None:
                raise AppError(404, "company_not_found", code="NOT_FOUND")
            record.company_id = payload.target_company_id
            record.status = "updated"
            record.published_at = utcnow()
            await self.serpapi_repo.save_record(record)
            return PublishRecordResponse(company_id=payload.target_company_id, mode="linked")

        places = parse_local_results({"local_results": [record.raw_payload or {}]}, 1)
        place = places[0] if places else None
        if place is None or not place.name or not place.address:
            raise AppError(400, "missing_required_fields")
        if not normalize_phone_e164_br(place.phone):
            raise AppError(400, "contact_required")

        company = await self.company_service.create_company(
            actor,
            CompanyCreateRequest(
                name=place.name,
                city_id=run.city_id,
                niche_id=run.niche_id,
                address=place.address,
                phone=place.phone,
                website=place.website,
                status=payload.status_after,
                source="serpapi",
                force=payload.force,
            ),
            source_run_id=run.id,
        )

        record.company_id = company.id
        record.status = "inserted"
        record.published_at = utcnow()
        await self.serpapi_repo.save_record(record)
        logger.info("serpapi_record_published", run_id=str(run_id), record_id=str(record_id), company_id=str(company.id))
        return PublishRecordResponse(company_id=company.id, mode="created")
