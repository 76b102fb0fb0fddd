"""
Company ownership claims.

A user claiming a listing proves ownership either by WhatsApp OTP (when the
phone they give matches the listing) or by sending the CNPJ card to support.
Admins review pending requests; approval transfers the company.
"""

import uuid
from typing import Optional

import structlog

from buscai.config import settings
from buscai.domain.normalization import mask_phone, phones_match, to_digits
from buscai.domain.periods import utcnow
from buscai.domain.text import normalize_for_match
from buscai.errors import AppError
from buscai.schemas.claims import (
    ClaimCandidate,
    ClaimNext,
    ClaimRequestResponse,
    ClaimResponse,
)
from buscai.schemas.common import Actor
from buscai.services.access import ensure_admin

logger = structlog.get_logger(__name__)

CANDIDATE_LIMIT = 20
MIN_PHONE_DIGITS = 8
MATCH_ORDER = {"both": 0, "phone": 1, "name": 2}


def build_next(method: str) -> ClaimNext:
    if method == "whatsapp_otp":
        return ClaimNext(
            type="otp",
            message="Vamos confirmar que este WhatsApp é seu. Enviaremos um código.",
        )
    return ClaimNext(
        type="cnpj_whatsapp",
        message=(
            "Seu telefone é diferente do cadastro. "
            "Envie seu cartão CNPJ no WhatsApp abaixo para validar."
        ),
        support_whatsapp=settings.CLAIM_SUPPORT_WHATSAPP,
    )


class ClaimService:
    def __init__(self, claim_repo, company_repo, audit):
        self.claim_repo = claim_repo
        self.company_repo = company_repo
        self.audit = audit

    async def list_candidates(self, city_id: uuid.UUID, q: Optional[str] = None) -> list[ClaimCandidate]:
        if city_id is None:
            raise AppError(400, "city_id_required")
        q = (q or "").strip()
        if not q:
            return []

        digits = to_digits(q)
        phone_digits = digits if digits and len(digits) >= MIN_PHONE_DIGITS else None
        name_query = q if any(ch.isalpha() for ch in q) or not phone_digits else None

        companies = await self.company_repo.claim_candidates(
            city_id, name_query, phone_digits, limit=CANDIDATE_LIMIT * 2
        )

        wanted = normalize_for_match(name_query or "")
        candidates = []
        for company in companies:
            name_hit = bool(wanted) and wanted in normalize_for_match(company.trade_name)
            phone_hit = bool(phone_digits) and any(
                phone_digits in (to_digits(value) or "") for value in (company.phone, company.whatsapp)
            )
            if name_hit and phone_hit:
                match = "both"
            elif phone_hit:
                match = "phone"
            elif name_hit:
                match = "name"
            else:
                continue
            candidates.append(ClaimCandidate(
                id=company.id,
                trade_name=company.trade_name,
                address=company.address,
                phone_masked=mask_phone(company.phone),
                whatsapp_masked=mask_phone(company.whatsapp),
                match=match,
                claimed=company.owner_id is not None,
            ))

        candidates.sort(key=lambda c: (MATCH_ORDER[c.match], c.trade_name.lower()))
        return candidates[:CANDIDATE_LIMIT]

    async def request_claim(self, actor: Actor, company_id: uuid.UUID, phone: str) -> ClaimRequestResponse:
        if not phone:
            raise AppError(400, "phone_required")
        company = await self.company_repo.get(company_id)
        if company is None:
            raise AppError(404, "company_not_found", code="NOT_FOUND")

        existing = await self.claim_repo.find_pending(company_id, actor.user_id)
        if existing is not None:
            existing.attempts_count += 1
            existing.last_attempt_at = utcnow()
            await self.claim_repo.save(existing)
            return ClaimRequestResponse(
                request_id=existing.id,
                method=existing.method,
                status=existing.status,
                next=build_next(existing.method),
            )

        listing_phone = company.whatsapp or company.phone
        method = "whatsapp_otp" if phones_match(phone, listing_phone) else "cnpj_whatsapp"
        created = await self.claim_repo.create(
            company_id=company_id,
            user_id=actor.user_id,
            method=method,
            status="pending",
            requested_phone=to_digits(phone),
            serp_phone=to_digits(listing_phone),
            attempts_count=1,
            last_attempt_at=utcnow(),
        )
        logger.info("claim_requested", company_id=str(company_id), request_id=str(created.id), method=method)
        return ClaimRequestResponse(
            request_id=created.id,
            method=method,
            status=created.status,
            next=build_next(method),
        )

    async def _get_own_pending(self, actor: Actor, request_id: uuid.UUID):
        request = await self.claim_repo.get(request_id)
        if request is None:
            raise AppError(404, "request_not_found", code="NOT_FOUND")
        if request.user_id != actor.user_id:
            raise AppError(403, "forbidden", code="FORBIDDEN")
        return request

    async def confirm_cnpj(self, actor: Actor, request_id: uuid.UUID, message: Optional[str] = None) -> ClaimNext:
        request = await self._get_own_pending(actor, request_id)
        if request.method != "cnpj_whatsapp":
            raise AppError(400, "method_mismatch")
        if request.status != "pending":
            raise AppError(400, "invalid_status")

        notes = ["Enviado cartão CNPJ via WhatsApp"]
        if message:
            notes.append(f"Mensagem do usuário: {message.strip()}")
        if request.notes:
            notes.insert(0, request.notes)
        request.notes = " | ".join(notes)
        await self.claim_repo.save(request)

        return ClaimNext(
            type="cnpj_whatsapp",
            message="Envie o cartão CNPJ para o número fornecido e aguarde nossa confirmação.",
            support_whatsapp=settings.CLAIM_SUPPORT_WHATSAPP,
        )

    async def cancel_claim(self, actor: Actor, request_id: uuid.UUID) -> ClaimResponse:
        request = await self._get_own_pending(actor, request_id)
        if request.status != "pending":
            raise AppError(400, "invalid_status")
        request.status = "cancelled"
        await self.claim_repo.save(request)
        return ClaimResponse.model_validate(request)

    async def list_mine(self, actor: Actor) -> list[ClaimResponse]:
        return [ClaimResponse.model_validate(r) for r in await self.claim_repo.list_for_user(actor.user_id)]

    # ── Admin ────────────────────────────────────────────────

    async def list_pending(self, actor: Actor, limit: int = 50, offset: int = 0) -> list[ClaimResponse]:
        ensure_admin(actor)
        rows = await self.claim_repo.list_by_status("pending", limit=limit, offset=offset)
        return [ClaimResponse.model_validate(r) for r in rows]

    async def review_claim(
        self, actor: Actor, request_id: uuid.UUID, approve: bool, notes: Optional[str] = None
    ) -> ClaimResponse:
        ensure_admin(actor)
        request = await self.claim_repo.get(request_id)
        if request is None:
            raise AppError(404, "request_not_found", code="NOT_FOUND")
        if request.status != "pending":
            raise AppError(400, "invalid_status")

        now = utcnow()
        if approve:
            company = await self.company_repo.get(request.company_id)
            if company is None:
                raise AppError(404, "company_not_found", code="NOT_FOUND")
            await self.company_repo.update(company, owner_id=request.user_id, source="claimed")
            request.status = "verified"
            request.verified_at = now
        else:
            request.status = "rejected"
            request.rejected_at = now
        if notes:
            request.notes = f"{request.notes} | {notes}" if request.notes else notes
        await self.claim_repo.save(request)

        await self.audit.record("claim_reviewed", {
            "request_id": str(request.id),
            "company_id": str(request.company_id),
            "status": request.status,
        })
        logger.info("claim_reviewed", request_id=str(request.id), status=request.status)
        return ClaimResponse.model_validate(request)
