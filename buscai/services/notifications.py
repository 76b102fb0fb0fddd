"""
Company panel notifications.

Alerts raised by the search flow (budget exhausted, wallet short, outbid,
low balance) and click events are filtered through the company's
preferences and deduplicated per key and São Paulo day.
"""

import uuid
from datetime import datetime
from typing import Optional

import structlog

from buscai.config import settings
from buscai.domain import auction as engine
from buscai.domain.periods import business_date
from buscai.observability.metrics import notifications_total
from buscai.schemas.common import Actor
from buscai.schemas.notifications import (
    MarkReadResponse,
    NotificationDraft,
    NotificationListResponse,
    NotificationResponse,
    PreferencesResponse,
    PreferencesUpdate,
)
from buscai.services.access import ensure_company_access

logger = structlog.get_logger(__name__)

SKIP_ALERTS = {
    "daily_limit": dict(
        category="visibility",
        severity="high",
        key="daily_limit",
        title="Limite diário atingido",
        message="Seu anúncio foi pausado automaticamente até amanhã.",
        cta_label="Editar lance",
        cta_url="/lances",
    ),
    "insufficient_funds": dict(
        category="financial",
        severity="high",
        key="insufficient",
        title="Saldo insuficiente",
        message="Seu anúncio parou de aparecer nos resultados pagos.",
        cta_label="Comprar créditos",
        cta_url="/creditos",
    ),
    "outbid": dict(
        category="visibility",
        severity="medium",
        key="outbid",
        title="Alguém cobriu sua oferta",
        message="Outro anunciante superou seu lance em {niche} - {city}/{state}.",
        cta_label="Editar lance",
        cta_url="/lances",
    ),
}

# Candidates blocked by their own budget or wallet are not told they were outbid.
BLOCKING_REASONS = ("daily_limit", "insufficient_funds")


def should_create(preferences, category: str, severity: str) -> bool:
    if not preferences.panel_enabled:
        return False
    allowed = {
        "financial": preferences.financial_enabled,
        "visibility": preferences.visibility_enabled,
        "subscription": preferences.subscription_enabled,
        "contacts": preferences.contacts_enabled,
        "system": preferences.system_enabled,
    }.get(category, False)
    if not allowed:
        return False
    if preferences.frequency == "never" and severity != "high":
        return False
    return True


class NotificationService:
    def __init__(self, notification_repo, company_repo):
        self.notification_repo = notification_repo
        self.company_repo = company_repo

    async def _preferences(self, company_id: uuid.UUID):
        preferences = await self.notification_repo.get_preferences(company_id)
        if preferences is None:
            preferences = await self.notification_repo.create_default_preferences(company_id)
        return preferences

    # ── Panel ────────────────────────────────────────────────

    async def get_preferences(self, actor: Actor, company_id: uuid.UUID) -> PreferencesResponse:
        await ensure_company_access(actor, self.company_repo, company_id)
        return PreferencesResponse.model_validate(await self._preferences(company_id))

    async def update_preferences(
        self, actor: Actor, company_id: uuid.UUID, payload: PreferencesUpdate
    ) -> PreferencesResponse:
        await ensure_company_access(actor, self.company_repo, company_id)
        preferences = await self._preferences(company_id)
        for key, value in payload.model_dump(exclude_none=True).items():
            setattr(preferences, key, value)
        await self.notification_repo.save_preferences(preferences)
        return PreferencesResponse.model_validate(preferences)

    async def list_notifications(
        self,
        actor: Actor,
        company_id: uuid.UUID,
        category: Optional[str] = None,
        severity: Optional[str] = None,
        kind: Optional[str] = None,
        unread_only: bool = False,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> NotificationListResponse:
        await ensure_company_access(actor, self.company_repo, company_id)
        limit = min(max(limit, 1), 200)
        offset = max(offset, 0)
        rows = await self.notification_repo.list_notifications(
            company_id,
            category=category,
            severity=severity,
            kind=kind,
            unread_only=unread_only,
            start=start,
            end=end,
            limit=limit,
            offset=offset,
        )
        return NotificationListResponse(
            items=[NotificationResponse.from_row(row) for row in rows],
            next_offset=offset + limit if len(rows) == limit else None,
        )

    async def mark_read(self, actor: Actor, company_id: uuid.UUID, ids: list[uuid.UUID]) -> MarkReadResponse:
        await ensure_company_access(actor, self.company_repo, company_id)
        updated = await self.notification_repo.mark_read(company_id, ids)
        return MarkReadResponse(updated=updated)

    # ── Emission ─────────────────────────────────────────────

    async def notify_event(self, draft: NotificationDraft):
        """Persist a notification unless preferences or the dedupe key suppress it."""
        preferences = await self._preferences(draft.company_id)
        if not should_create(preferences, draft.category, draft.severity):
            notifications_total.labels(category=draft.category, outcome="suppressed").inc()
            return None
        if preferences.frequency != "real_time" and draft.kind == "event":
            notifications_total.labels(category=draft.category, outcome="suppressed").inc()
            return None

        fields = draft.model_dump(exclude={"metadata"})
        row = await self.notification_repo.insert_notification(**fields, metadata_json=draft.metadata)
        if row is None:
            notifications_total.labels(category=draft.category, outcome="deduplicated").inc()
            return None
        notifications_total.labels(category=draft.category, outcome="created").inc()
        logger.info(
            "notification_created",
            company_id=str(draft.company_id),
            category=draft.category,
            dedupe_key=draft.dedupe_key,
        )
        return row

    async def notify_auction_skips(
        self, resolution: engine.PaidResolution, city, niche, now: Optional[datetime] = None
    ) -> int:
        """One alert per config and reason for candidates left out of the paid slots."""
        bucket = business_date(now)
        selected = {slot.config_id for slot in resolution.selected}
        blocked = {s.config_id for s in resolution.skipped if s.reason in BLOCKING_REASONS}
        seen = set()
        created = 0

        for skipped in resolution.skipped:
            alert = SKIP_ALERTS.get(skipped.reason)
            if alert is None:
                continue
            if skipped.reason == "outbid" and (skipped.config_id in selected or skipped.config_id in blocked):
                continue
            if (skipped.config_id, skipped.reason) in seen:
                continue
            seen.add((skipped.config_id, skipped.reason))

            draft = NotificationDraft(
                company_id=skipped.company_id,
                category=alert["category"],
                severity=alert["severity"],
                kind="alert",
                title=alert["title"],
                message=alert["message"].format(niche=niche.label, city=city.name, state=city.state),
                dedupe_key=f"{alert['key']}_{skipped.config_id}",
                bucket_date=bucket,
                cta_label=alert["cta_label"],
                cta_url=alert["cta_url"],
                metadata={
                    "city_id": str(city.id),
                    "niche_id": str(niche.id),
                    "position": skipped.position,
                },
            )
            if await self.notify_event(draft) is not None:
                created += 1
        return created

    async def notify_low_balance(self, company_id: uuid.UUID, balance_cents: int, now: Optional[datetime] = None):
        if balance_cents <= 0:
            title, message, key = "Saldo zerou", "Você deixou de aparecer nos resultados pagos.", "balance_zero"
        elif balance_cents <= settings.LOW_BALANCE_THRESHOLD_CENTS:
            threshold = f"{settings.LOW_BALANCE_THRESHOLD_CENTS / 100:.2f}".replace(".", ",")
            title, message, key = "Saldo baixo", f"Seu saldo ficou abaixo de R$ {threshold}.", "balance_low"
        else:
            return None
        return await self.notify_event(NotificationDraft(
            company_id=company_id,
            category="financial",
            severity="high",
            kind="alert",
            title=title,
            message=message,
            dedupe_key=key,
            bucket_date=business_date(now),
            cta_label="Recarregar saldo",
            cta_url="/creditos",
            metadata={"balance_cents": balance_cents},
        ))

    async def notify_click(self, search_id: uuid.UUID, company_id: uuid.UUID, event_type: str):
        title = "Clique no WhatsApp" if event_type == "click_whatsapp" else "Clique na ligação"
        return await self.notify_event(NotificationDraft(
            company_id=company_id,
            category="visibility",
            severity="low",
            kind="event",
            title=title,
            message="Um cliente clicou no seu anúncio.",
            cta_label="Ver performance",
            cta_url="/leilao",
            metadata={"search_id": str(search_id), "channel": event_type},
        ))
