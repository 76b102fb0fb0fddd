"""
Company search: auction resolution, organic fill, persistence,
impression charging and click tracking.
"""

import re
import time
import uuid
from typing import Optional

import structlog

from buscai.config import settings
from buscai.domain import auction as engine
from buscai.domain.normalization import to_digits
from buscai.domain.periods import business_day_range
from buscai.domain.text import count_token_matches, normalize_for_match, tokenize_search
from buscai.errors import AppError
from buscai.models.tables import SearchResult
from buscai.observability.metrics import (
    auction_candidates_skipped_total,
    auction_slots_awarded_total,
    search_duration_seconds,
    searches_total,
)
from buscai.schemas.search import CompanyCard, SearchResponse, SearchResultItem

logger = structlog.get_logger(__name__)

CLICK_TYPES = ("click_whatsapp", "click_call")

CITY_SUFFIX = re.compile(r"\s*[,-]\s*")


class SearchService:
    def __init__(
        self, search_repo, catalog_repo, company_repo, auction_service, billing_service, audit, notifications=None
    ):
        self.search_repo = search_repo
        self.catalog_repo = catalog_repo
        self.company_repo = company_repo
        self.auction_service = auction_service
        self.billing_service = billing_service
        self.audit = audit
        self.notifications = notifications

    async def search(
        self,
        city_id: uuid.UUID,
        niche_id: uuid.UUID,
        query: Optional[str] = None,
        source: str = "web",
    ) -> SearchResponse:
        started = time.monotonic()
        try:
            response = await self._search(city_id, niche_id, query, source)
        except Exception as e:
            await self.audit.record("search_error", {
                "city_id": str(city_id),
                "niche_id": str(niche_id),
                "source": source,
                "error": getattr(e, "message", None) or str(e),
            })
            raise
        search_duration_seconds.observe(time.monotonic() - started)
        return response

    async def _search(self, city_id, niche_id, query, source) -> SearchResponse:
        city = await self.catalog_repo.get_city(city_id)
        if city is None:
            raise AppError(404, "city_not_found", code="NOT_FOUND")
        niche = await self.catalog_repo.get_niche(niche_id)
        if niche is None:
            raise AppError(404, "niche_not_found", code="NOT_FOUND")

        ranking, _ = await self.auction_service.get_search_ranking(city_id, niche_id)
        auction_disabled = settings.AUCTION_DISABLED
        # read-only mode answers searches without writing rows or charging wallets
        read_only = settings.READONLY_MODE
        charge_source = source in settings.charged_sources and not read_only

        paid_slots = []
        if not auction_disabled:
            resolution = await self._resolve_paid(ranking, city_id, niche_id)
            paid_slots = resolution.selected
            for skipped in resolution.skipped:
                auction_candidates_skipped_total.labels(reason=skipped.reason).inc()
            if self.notifications is not None and not read_only:
                await self.notifications.notify_auction_skips(resolution, city, niche)
        else:
            logger.info("auction_skipped", reason="disabled")

        paid_ids = {slot.company_id for slot in paid_slots}
        organic = engine.organic_results(
            ranking.organic_pool, paid_ids, 1 if auction_disabled else engine.ORGANIC_POSITIONS[0]
        )

        if read_only:
            search_id = uuid.uuid4()
        else:
            search = await self.search_repo.create_search(
                city_id=city_id, niche_id=niche_id, query_text=query or "", source=source
            )
            search_id = search.id

        rows = []
        for slot in paid_slots:
            rows.append(SearchResult(
                search_id=search_id,
                company_id=slot.company_id,
                position=slot.position,
                is_paid=True,
                charged_amount_cents=slot.charged_cents if charge_source else 0,
                click_tracking_id=uuid.uuid4(),
            ))
            auction_slots_awarded_total.labels(position=str(slot.position)).inc()
        for position, company in organic:
            rows.append(SearchResult(
                search_id=search_id,
                company_id=company.company_id,
                position=position,
                is_paid=False,
                charged_amount_cents=0,
                click_tracking_id=uuid.uuid4(),
            ))
        for rank, row in enumerate(rows, start=1):
            row.rank = rank
        if read_only:
            logger.info("search_not_persisted", search_id=str(search_id), reason="read_only_mode")
        else:
            await self.search_repo.add_results(rows)

        if charge_source:
            await self._apply_impression_charges(search_id, rows)

        searches_total.labels(source=source).inc()
        if not read_only:
            await self.audit.record("search_performed", {
                "search_id": str(search_id),
                "city_id": str(city_id),
                "niche_id": str(niche_id),
                "source": source,
                "results_count": len(rows),
            })
        logger.info(
            "search_performed",
            search_id=str(search_id),
            source=source,
            paid_positions=[s.position for s in paid_slots],
            results_count=len(rows),
        )

        cards = {}
        for row in rows:
            company = await self.company_repo.get(row.company_id)
            if company is not None:
                cards[row.company_id] = CompanyCard(
                    id=company.id,
                    trade_name=company.trade_name,
                    address=company.address,
                    phone=company.phone,
                    whatsapp=company.whatsapp,
                    website=company.website,
                    quality_score=company.quality_score,
                )

        return SearchResponse(
            search_id=search_id,
            city_id=city_id,
            niche_id=niche_id,
            results=[
                SearchResultItem(
                    rank=row.rank,
                    position=row.position,
                    is_paid=row.is_paid,
                    charged_amount_cents=row.charged_amount_cents,
                    click_tracking_id=row.click_tracking_id,
                    company=cards.get(row.company_id),
                )
                for row in rows
            ],
        )

    async def _resolve_paid(self, ranking: engine.Ranking, city_id, niche_id) -> engine.PaidResolution:
        candidates = [c for position in engine.PAID_POSITIONS for c in ranking.paid.get(position, [])]
        company_ids = list({c.company_id for c in candidates})

        start, end = business_day_range()
        spend_by_company = await self.search_repo.paid_spend_by_company(company_ids, city_id, niche_id, start, end)
        spent_today = {c.config_id: spend_by_company.get(c.company_id, 0) for c in candidates}
        available = await self.billing_service.availability(company_ids)

        return engine.resolve_paid_positions(
            ranking, spent_today, available, force_visibility=settings.FORCE_AUCTION_VISIBILITY
        )

    async def _apply_impression_charges(self, search_id: uuid.UUID, rows: list[SearchResult]) -> None:
        """One debit per paid company per search; failures demote the result."""
        for row in rows:
            if not row.is_paid or row.charged_amount_cents <= 0:
                continue
            if await self.search_repo.find_event(search_id, row.company_id, "impression"):
                continue

            event = await self.search_repo.add_event(search_id, row.company_id, "impression")
            outcome = await self.billing_service.reserve_search_charge(
                row.company_id, row.charged_amount_cents, search_id, row.position
            )
            if outcome.ok:
                if self.notifications is not None:
                    await self.notifications.notify_low_balance(row.company_id, outcome.balance_cents)
                continue

            await self.search_repo.delete_event(event.id)
            await self.search_repo.mark_result_unpaid(row)
            await self.audit.record("search_impression_failed", {
                "search_id": str(search_id),
                "company_id": str(row.company_id),
                "position": row.position,
                "reason": outcome.reason,
            })
            logger.warning(
                "impression_charge_failed",
                search_id=str(search_id),
                company_id=str(row.company_id),
                reason=outcome.reason,
            )

    # ── Free-text search ─────────────────────────────────────

    async def public_search(
        self, city_name: str, text: str, niche_hint: Optional[str] = None, source: str = "web"
    ) -> SearchResponse:
        city = await self._resolve_city(city_name)
        niche = await self._resolve_niche(niche_hint or text)
        return await self.search(city.id, niche.id, query=text, source=source)

    async def _resolve_city(self, name: str):
        """Exact name first, then the part before a comma or dash with a UF suffix as filter."""
        cities = await self.catalog_repo.list_cities()
        wanted = normalize_for_match(name).strip()
        attempts = [(wanted, None)]
        head, *rest = CITY_SUFFIX.split(wanted, maxsplit=1)
        if rest and head:
            state = rest[0].strip()
            attempts.append((head, state if len(state) == 2 else None))

        for city_name, state in attempts:
            for city in cities:
                if normalize_for_match(city.name) != city_name:
                    continue
                if state and city.state.lower() != state:
                    continue
                return city
        raise AppError(404, "city_not_found", code="NOT_FOUND")

    async def _resolve_niche(self, text: str):
        niches = await self.catalog_repo.list_niches()
        wanted = normalize_for_match(text).strip()
        for niche in niches:
            if wanted in (normalize_for_match(niche.label), niche.slug.lower()):
                return niche

        tokens = tokenize_search(text)
        best, best_score = None, 0
        for niche in niches:
            score = count_token_matches(tokens, niche.label, niche.slug.replace("-", " "))
            if score > best_score:
                best, best_score = niche, score
        if best is None:
            raise AppError(404, "niche_not_found", code="NOT_FOUND")
        return best

    # ── Tracking ─────────────────────────────────────────────

    async def track_event(self, search_id: uuid.UUID, event_type: str, company_id: Optional[uuid.UUID] = None) -> None:
        if settings.READONLY_MODE:
            logger.info("event_not_tracked", search_id=str(search_id), reason="read_only_mode")
            return
        if await self.search_repo.get_search(search_id) is None:
            raise AppError(404, "search_not_found", code="NOT_FOUND")

        if event_type == "impression":
            if await self.search_repo.find_event(search_id, company_id, "impression"):
                return
        elif event_type in CLICK_TYPES:
            if company_id is None:
                raise AppError(400, "company_id_required")
        else:
            raise AppError(400, "invalid_event_type")

        await self.search_repo.add_event(search_id, company_id, event_type)
        if event_type in CLICK_TYPES:
            await self.audit.record("search_click", {
                "search_id": str(search_id),
                "company_id": str(company_id),
                "type": event_type,
            })

    async def build_tracking_redirect(self, search_id: uuid.UUID, company_id: uuid.UUID, event_type: str) -> str:
        if event_type not in CLICK_TYPES:
            raise AppError(400, "invalid_event_type")
        read_only = settings.READONLY_MODE
        if not read_only and await self.search_repo.get_search(search_id) is None:
            raise AppError(404, "not_found", code="NOT_FOUND")
        company = await self.company_repo.get(company_id)
        if company is None:
            raise AppError(404, "not_found", code="NOT_FOUND")

        phone = to_digits(company.phone)
        whatsapp = to_digits(company.whatsapp)
        if event_type == "click_whatsapp":
            target = whatsapp or phone
            url = f"https://wa.me/{target}" if target else None
        else:
            target = phone or whatsapp
            url = f"tel:+{target}" if target else None
        if url is None:
            raise AppError(400, "contact_missing")

        if read_only:
            return url
        try:
            async with self.search_repo.savepoint():
                await self.search_repo.add_event(search_id, company_id, event_type)
                if self.notifications is not None:
                    await self.notifications.notify_click(search_id, company_id, event_type)
        except Exception as e:
            logger.warning("click_tracking_failed", search_id=str(search_id), error=str(e))
        return url
