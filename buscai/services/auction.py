"""
Auction config management, market overviews and per-company summaries.
Ranking itself lives in buscai.domain.auction.
"""

import uuid
from typing import Optional

import structlog

from buscai.config import settings
from buscai.domain import auction as engine
from buscai.domain.periods import business_day_range
from buscai.errors import AppError
from buscai.models.tables import AuctionConfig
from buscai.schemas.auction import (
    AuctionConfigRequest,
    AuctionConfigResponse,
    AuctionSummary,
    ConfigSlot,
    MarketSlot,
    SlotOverview,
)
from buscai.schemas.common import Actor
from buscai.services.access import ensure_company_access, resolve_company_id

logger = structlog.get_logger(__name__)

_MERGEABLE_FIELDS = (
    "bid_position1_cents",
    "bid_position2_cents",
    "bid_position3_cents",
    "target_share",
    "daily_budget_cents",
    "pause_on_limit",
    "is_active",
)


def to_bid_config(config: AuctionConfig) -> engine.BidConfig:
    return engine.BidConfig(
        config_id=config.id,
        company_id=config.company_id,
        mode=config.mode,
        bid_position1_cents=config.bid_position1_cents,
        bid_position2_cents=config.bid_position2_cents,
        bid_position3_cents=config.bid_position3_cents,
        target_position=config.target_position,
        daily_budget_cents=config.daily_budget_cents,
        pause_on_limit=config.pause_on_limit,
        created_at=config.created_at,
    )


def config_response(config: AuctionConfig) -> AuctionConfigResponse:
    slots = [
        ConfigSlot(position=p, type="auction", bid_cents=getattr(config, f"bid_position{p}_cents"))
        for p in engine.PAID_POSITIONS
    ] + [ConfigSlot(position=p, type="organic") for p in engine.ORGANIC_POSITIONS]
    return AuctionConfigResponse(
        id=config.id,
        company_id=config.company_id,
        city_id=config.city_id,
        niche_id=config.niche_id,
        mode=config.mode,
        bid_position1_cents=config.bid_position1_cents,
        bid_position2_cents=config.bid_position2_cents,
        bid_position3_cents=config.bid_position3_cents,
        target_position=config.target_position,
        target_share=float(config.target_share) if config.target_share is not None else None,
        daily_budget_cents=config.daily_budget_cents,
        pause_on_limit=config.pause_on_limit,
        is_active=config.is_active,
        created_at=config.created_at,
        slots=slots,
    )


def summary_status(
    balance_cents: int,
    is_active: bool,
    pause_on_limit: bool,
    daily_budget_cents: Optional[int],
    spent_today_cents: int,
) -> str:
    """Balance problems outrank budget pauses, which outrank manual pauses."""
    if balance_cents <= 0:
        return "insufficient_balance"
    if pause_on_limit and (daily_budget_cents or 0) > 0 and spent_today_cents >= daily_budget_cents:
        return "paused_by_limit"
    if not is_active:
        return "paused"
    return "active"


class AuctionService:
    def __init__(self, auction_repo, company_repo, billing_repo, search_repo):
        self.auction_repo = auction_repo
        self.company_repo = company_repo
        self.billing_repo = billing_repo
        self.search_repo = search_repo

    # ── Configs ──────────────────────────────────────────────

    async def list_configs(
        self,
        actor: Actor,
        company_id: Optional[uuid.UUID] = None,
        city_id: Optional[uuid.UUID] = None,
        niche_id: Optional[uuid.UUID] = None,
    ) -> list[AuctionConfigResponse]:
        if not actor.is_admin:
            company_id = resolve_company_id(actor, company_id)
        if company_id:
            await ensure_company_access(actor, self.company_repo, company_id)
        configs = await self.auction_repo.list_configs(company_id, city_id, niche_id)
        return [config_response(c) for c in configs]

    async def upsert_config(self, actor: Actor, payload: AuctionConfigRequest) -> AuctionConfigResponse:
        company_id = resolve_company_id(actor, payload.company_id)
        await ensure_company_access(actor, self.company_repo, company_id)

        if payload.id:
            config = await self.auction_repo.get_config(payload.id)
            if config is None or config.company_id != company_id:
                raise AppError(404, "auction_config_not_found", code="NOT_FOUND")
        else:
            config = await self.auction_repo.find_config(company_id, payload.city_id, payload.niche_id)

        if config is None:
            config = AuctionConfig(
                company_id=company_id,
                city_id=payload.city_id,
                niche_id=payload.niche_id,
                pause_on_limit=True,
                is_active=True,
            )

        mode = engine.normalize_mode(payload.mode)
        engine.validate_config_mode(mode, payload.target_position)

        config.city_id = payload.city_id
        config.niche_id = payload.niche_id
        config.mode = mode
        for field in _MERGEABLE_FIELDS:
            value = getattr(payload, field)
            if value is not None:
                setattr(config, field, value)

        if mode == "manual":
            config.target_position = None
        else:
            config.target_position = payload.target_position
            config.bid_position1_cents = None
            config.bid_position2_cents = None
            config.bid_position3_cents = None

        config = await self.auction_repo.save_config(config)
        logger.info(
            "auction_config_saved",
            config_id=str(config.id),
            company_id=str(company_id),
            mode=mode,
            target_position=config.target_position,
        )
        return config_response(config)

    # ── Market ───────────────────────────────────────────────

    async def get_search_ranking(self, city_id: uuid.UUID, niche_id: uuid.UUID):
        """Ranking plus a company lookup for the market."""
        configs = await self.auction_repo.active_configs_for_market(city_id, niche_id)
        organic = await self.auction_repo.organic_pool(city_id, niche_id)
        pool = [
            engine.OrganicCompany(company_id=c.id, trade_name=c.trade_name, quality_score=c.quality_score)
            for c in organic
        ]
        ranking = engine.build_ranking(
            [to_bid_config(c) for c in configs],
            pool,
            step_cents=settings.AUCTION_BID_STEP_CENTS,
            floor_cents=settings.AUCTION_FLOOR_CENTS,
        )
        return ranking, {c.id: c for c in organic}

    async def list_slots(self, city_id: uuid.UUID, niche_id: uuid.UUID) -> SlotOverview:
        ranking, _ = await self.get_search_ranking(city_id, niche_id)
        slots = []
        winners = set()
        for position in engine.PAID_POSITIONS:
            head = ranking.paid.get(position, [])[:1]
            if head:
                company = await self.company_repo.get(head[0].company_id)
                winners.add(head[0].company_id)
                slots.append(MarketSlot(
                    position=position,
                    type="auction",
                    company_id=head[0].company_id,
                    trade_name=company.trade_name if company else None,
                    bid_cents=head[0].bid_cents,
                ))
            else:
                slots.append(MarketSlot(position=position, type="auction"))

        organic = engine.organic_results(ranking.organic_pool, winners, engine.ORGANIC_POSITIONS[0])
        filled = {position: company for position, company in organic}
        for position in engine.ORGANIC_POSITIONS:
            company = filled.get(position)
            slots.append(MarketSlot(
                position=position,
                type="organic",
                company_id=company.company_id if company else None,
                trade_name=company.trade_name if company else None,
            ))
        return SlotOverview(city_id=city_id, niche_id=niche_id, slots=slots)

    async def get_summary(
        self, actor: Actor, company_id: uuid.UUID, city_id: uuid.UUID, niche_id: uuid.UUID
    ) -> AuctionSummary:
        await ensure_company_access(actor, self.company_repo, company_id)
        config = await self.auction_repo.find_config(company_id, city_id, niche_id)
        wallet = await self.billing_repo.get_wallet(company_id)
        balance = wallet.balance_cents if wallet else 0
        reserved = wallet.reserved_cents if wallet else 0

        start, end = business_day_range()
        spend = await self.search_repo.paid_spend_by_company([company_id], city_id, niche_id, start, end)
        spent_today = spend.get(company_id, 0)
        perf = await self.search_repo.paid_performance(company_id, city_id, niche_id, start, end)
        impressions = perf["impressions"]
        clicks = perf["clicks"]

        status = summary_status(
            balance,
            config.is_active if config else False,
            config.pause_on_limit if config else True,
            config.daily_budget_cents if config else None,
            spent_today,
        )
        overview = await self.list_slots(city_id, niche_id)

        return AuctionSummary(
            company_id=company_id,
            city_id=city_id,
            niche_id=niche_id,
            status=status,
            config_id=config.id if config else None,
            mode=config.mode if config else None,
            daily_budget_cents=config.daily_budget_cents if config else None,
            today_spent_cents=spent_today,
            impressions=impressions,
            clicks=clicks,
            ctr=round(clicks / impressions, 4) if impressions else 0.0,
            avg_paid_position=perf["avg_paid_position"],
            wallet_balance_cents=balance,
            wallet_reserved_cents=reserved,
            market_slots=overview.slots,
        )
