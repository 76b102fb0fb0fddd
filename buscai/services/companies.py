"""
Admin company curation: normalization, dedupe and quality gating.

The same rules apply when a SerpAPI record is published, so
`CompanyService.create_company` is also called by the import service.
"""

import uuid
from typing import Optional

import structlog

from buscai.domain.normalization import (
    ACTIVE_QUALITY_THRESHOLD,
    compute_quality_score,
    normalize_address,
    normalize_name,
    normalize_phone_e164_br,
    normalize_website,
    to_digits,
)
from buscai.errors import AppError
from buscai.schemas.common import Actor
from buscai.schemas.companies import (
    CompanyCreateRequest,
    CompanyListResponse,
    CompanyResponse,
    CompanyUpdateRequest,
    DedupeHit,
    DedupePreviewRequest,
)
from buscai.services.access import ensure_admin

logger = structlog.get_logger(__name__)


def duplicate_error(hits) -> AppError:
    return AppError(
        409,
        "duplicate_company",
        code="DEDUPE_CONFLICT",
        details={"dedupe_hits": [DedupeHit.from_row(h).model_dump(mode="json") for h in hits]},
    )


def ensure_quality_for_status(status: str, quality_score: int, phone, whatsapp) -> None:
    if status == "active" and (quality_score < ACTIVE_QUALITY_THRESHOLD or not (phone or whatsapp)):
        raise AppError(400, "status_active_requires_quality", code="INVALID_STATUS")


class CompanyService:
    def __init__(self, company_repo, catalog_repo):
        self.company_repo = company_repo
        self.catalog_repo = catalog_repo

    async def _ensure_city(self, city_id: uuid.UUID) -> None:
        city = await self.catalog_repo.get_city(city_id)
        if city is None or not city.is_active:
            raise AppError(400, "invalid_city")

    async def _ensure_niche(self, niche_id: uuid.UUID) -> None:
        if await self.catalog_repo.get_niche(niche_id) is None:
            raise AppError(400, "invalid_niche")

    async def _response(self, company) -> CompanyResponse:
        return CompanyResponse.from_row(company, await self.company_repo.niche_ids(company.id))

    async def find_duplicates(
        self,
        name: Optional[str] = None,
        address: Optional[str] = None,
        phone: Optional[str] = None,
        whatsapp: Optional[str] = None,
        website: Optional[str] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> list:
        return await self.company_repo.find_dedupe_hits(
            phone_digits=to_digits(normalize_phone_e164_br(phone)),
            whatsapp_digits=to_digits(normalize_phone_e164_br(whatsapp)),
            website=normalize_website(website),
            name=normalize_name(name),
            address=normalize_address(address),
            exclude_id=exclude_id,
        )

    # ── Admin operations ─────────────────────────────────────

    async def list_companies(
        self,
        actor: Actor,
        q: Optional[str] = None,
        city_id: Optional[uuid.UUID] = None,
        niche_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> CompanyListResponse:
        ensure_admin(actor)
        rows, total = await self.company_repo.list_companies(
            q=q, city_id=city_id, niche_id=niche_id, status=status, limit=limit, offset=offset
        )
        return CompanyListResponse(
            items=[await self._response(c) for c in rows],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def get_company(self, actor: Actor, company_id: uuid.UUID) -> CompanyResponse:
        ensure_admin(actor)
        company = await self.company_repo.get(company_id)
        if company is None:
            raise AppError(404, "company_not_found", code="NOT_FOUND")
        return await self._response(company)

    async def dedupe_preview(self, actor: Actor, payload: DedupePreviewRequest) -> list[DedupeHit]:
        ensure_admin(actor)
        hits = await self.find_duplicates(
            name=payload.name,
            address=payload.address,
            phone=payload.phone,
            whatsapp=payload.whatsapp,
            website=payload.website,
            exclude_id=payload.exclude_id,
        )
        return [DedupeHit.from_row(h) for h in hits]

    async def create_company(
        self,
        actor: Actor,
        payload: CompanyCreateRequest,
        source_run_id: Optional[uuid.UUID] = None,
    ):
        """Create a curated company. Returns the ORM row."""
        ensure_admin(actor)
        await self._ensure_city(payload.city_id)
        await self._ensure_niche(payload.niche_id)

        phone = normalize_phone_e164_br(payload.phone)
        whatsapp = normalize_phone_e164_br(payload.whatsapp)
        if not phone and not whatsapp:
            raise AppError(400, "contact_required")

        hits = await self.find_duplicates(
            name=payload.name,
            address=payload.address,
            phone=phone,
            whatsapp=whatsapp,
            website=payload.website,
        )
        if hits and not payload.force:
            raise duplicate_error(hits)

        address = normalize_address(payload.address)
        normalized_name = normalize_name(payload.name)
        quality_score = compute_quality_score(
            name=normalized_name,
            address=address,
            city_id=payload.city_id,
            niche_id=payload.niche_id,
            phone=phone,
            whatsapp=whatsapp,
        )
        ensure_quality_for_status(payload.status, quality_score, phone, whatsapp)

        company = await self.company_repo.create(
            trade_name=payload.name.strip(),
            legal_name=payload.legal_name,
            city_id=payload.city_id,
            address=address,
            phone=phone,
            whatsapp=whatsapp,
            website=normalize_website(payload.website),
            normalized_phone=to_digits(phone),
            normalized_name=normalized_name,
            quality_score=quality_score,
            source=payload.source,
            source_run_id=source_run_id,
            status=payload.status,
            participates_in_auction=payload.participates_in_auction,
        )
        await self.company_repo.link_niche(company.id, payload.niche_id)
        logger.info(
            "company_created",
            company_id=str(company.id),
            status=company.status,
            quality_score=quality_score,
            forced=bool(hits),
        )
        return company

    async def create(self, actor: Actor, payload: CompanyCreateRequest) -> CompanyResponse:
        return await self._response(await self.create_company(actor, payload))

    async def update(self, actor: Actor, company_id: uuid.UUID, payload: CompanyUpdateRequest) -> CompanyResponse:
        ensure_admin(actor)
        company = await self.company_repo.get(company_id)
        if company is None:
            raise AppError(404, "company_not_found", code="NOT_FOUND")
        if payload.city_id:
            await self._ensure_city(payload.city_id)
        if payload.niche_id:
            await self._ensure_niche(payload.niche_id)

        fields = payload.model_dump(exclude_unset=True, exclude={"force", "niche_id", "name"})
        name = payload.name if payload.name is not None else company.trade_name
        phone = normalize_phone_e164_br(payload.phone if "phone" in fields else company.phone)
        whatsapp = normalize_phone_e164_br(payload.whatsapp if "whatsapp" in fields else company.whatsapp)
        website = normalize_website(payload.website if "website" in fields else company.website)
        address = normalize_address(payload.address if "address" in fields else company.address)
        status = payload.status or company.status

        if status == "active" and not phone and not whatsapp:
            raise AppError(400, "contact_required")

        hits = await self.find_duplicates(
            name=name, address=address, phone=phone, whatsapp=whatsapp, website=website, exclude_id=company.id
        )
        if hits and not payload.force:
            raise duplicate_error(hits)

        niche_ids = await self.company_repo.niche_ids(company.id)
        niche_id = payload.niche_id or (niche_ids[0] if niche_ids else None)
        normalized_name = normalize_name(name)
        quality_score = compute_quality_score(
            name=normalized_name,
            address=address,
            city_id=payload.city_id or company.city_id,
            niche_id=niche_id,
            phone=phone,
            whatsapp=whatsapp,
        )
        ensure_quality_for_status(status, quality_score, phone, whatsapp)

        fields.update(
            trade_name=name.strip(),
            phone=phone,
            whatsapp=whatsapp,
            website=website,
            address=address,
            status=status,
            normalized_phone=to_digits(phone),
            normalized_name=normalized_name,
            quality_score=quality_score,
        )
        company = await self.company_repo.update(company, **fields)
        if payload.niche_id:
            await self.company_repo.link_niche(company.id, payload.niche_id)
        logger.info("company_updated", company_id=str(company.id), status=company.status)
        return await self._response(company)
