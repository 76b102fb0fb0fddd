"""
Pay-per-position auction engine.

Pure functions: given bid configs, today's spend and wallet availability,
decide who occupies paid positions 1-3 and what each winner is charged.
Nothing here touches the database; callers prefetch spend and balances.

Modes:
- manual: the company sets bid_position1..3 itself
- auto (and legacy 'smart'): one bid at target_position, priced one step
  above the best manual bid there (or the floor when nobody bids)
"""

import math
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from buscai.errors import AppError


PAID_POSITIONS = (1, 2, 3)
ORGANIC_POSITIONS = (4, 5)
RESULT_LIMIT = 5


class BidConfig(BaseModel):
    """Snapshot of an active auction config joined with its company."""
    config_id: uuid.UUID
    company_id: uuid.UUID
    mode: str = "manual"
    bid_position1_cents: Optional[int] = None
    bid_position2_cents: Optional[int] = None
    bid_position3_cents: Optional[int] = None
    target_position: Optional[int] = None
    daily_budget_cents: Optional[int] = None
    pause_on_limit: bool = True
    created_at: datetime


class Candidate(BaseModel):
    config_id: uuid.UUID
    company_id: uuid.UUID
    mode: str
    bid_cents: int
    daily_budget_cents: Optional[int] = None
    pause_on_limit: bool = True
    created_at: datetime
    using_floor: bool = False


class OrganicCompany(BaseModel):
    company_id: uuid.UUID
    trade_name: str
    quality_score: int = 0


class Ranking(BaseModel):
    paid: dict[int, list[Candidate]] = Field(default_factory=dict)
    organic_pool: list[OrganicCompany] = Field(default_factory=list)


class PaidSlot(BaseModel):
    company_id: uuid.UUID
    config_id: uuid.UUID
    position: int
    bid_cents: int
    charged_cents: int
    forced: bool = False


class SkippedCandidate(BaseModel):
    company_id: uuid.UUID
    config_id: uuid.UUID
    position: int
    reason: str  # bid_zero, daily_limit, insufficient_funds, outbid


class PaidResolution(BaseModel):
    selected: list[PaidSlot] = Field(default_factory=list)
    skipped: list[SkippedCandidate] = Field(default_factory=list)

    @property
    def company_ids(self) -> set[uuid.UUID]:
        return {slot.company_id for slot in self.selected}


# ── Config rules ─────────────────────────────────────────────

def normalize_mode(mode: str) -> str:
    return "auto" if mode == "smart" else mode


def validate_config_mode(mode: str, target_position: Optional[int]) -> None:
    """Manual configs carry no target; auto configs must target 1..3."""
    mode = normalize_mode(mode)
    if mode == "manual":
        if target_position is not None:
            raise AppError(400, "invalid_target_position")
        return
    if mode != "auto":
        raise AppError(400, "invalid_mode")
    if target_position not in PAID_POSITIONS:
        raise AppError(400, "invalid_target_position")


def manual_bid(config: BidConfig, position: int) -> int:
    value = getattr(config, f"bid_position{position}_cents")
    return value if value and value > 0 else 0


def market_bids(configs: list[BidConfig]) -> dict[int, int]:
    """Best manual bid per position; auto bids never set the market."""
    market = {}
    for position in PAID_POSITIONS:
        bids = [
            manual_bid(c, position) for c in configs
            if normalize_mode(c.mode) == "manual"
        ]
        bids = [b for b in bids if b > 0]
        if bids:
            market[position] = max(bids)
    return market


def auto_bid(threshold_cents: int, step_cents: int) -> int:
    """Smallest multiple of the step strictly above the threshold."""
    return math.ceil((threshold_cents + 1) / step_cents) * step_cents


def effective_bids(
    config: BidConfig,
    market: dict[int, int],
    step_cents: int = 50,
    floor_cents: int = 50,
) -> tuple[dict[int, int], bool]:
    """
    Bids a config places per position.
    Returns (bids, using_floor).
    """
    mode = normalize_mode(config.mode)
    if mode == "manual":
        return {p: manual_bid(config, p) for p in PAID_POSITIONS}, False

    target = config.target_position
    if target not in PAID_POSITIONS:
        return {p: 0 for p in PAID_POSITIONS}, False

    threshold = market.get(target)
    using_floor = threshold is None
    bid = auto_bid(floor_cents if using_floor else threshold, step_cents)
    bids = {p: 0 for p in PAID_POSITIONS}
    bids[target] = bid
    return bids, using_floor


# ── Ranking ──────────────────────────────────────────────────

def _sort_key(candidate: Candidate):
    return (-candidate.bid_cents, candidate.created_at, str(candidate.company_id))


def ensure_distinct_heads(paid: dict[int, list[Candidate]]) -> dict[int, list[Candidate]]:
    """
    Walk positions 1..3 moving the best company not already heading an
    earlier position to the front, so one company cannot top every slot.
    """
    picked = set()
    result = {}
    for position in PAID_POSITIONS:
        candidates = list(paid.get(position, []))
        index = next(
            (i for i, c in enumerate(candidates) if c.company_id not in picked),
            None,
        )
        if index is not None:
            chosen = candidates.pop(index)
            candidates.insert(0, chosen)
            picked.add(chosen.company_id)
        result[position] = candidates
    return result


def build_ranking(
    configs: list[BidConfig],
    organic_pool: Optional[list[OrganicCompany]] = None,
    step_cents: int = 50,
    floor_cents: int = 50,
) -> Ranking:
    market = market_bids(configs)
    paid = {p: [] for p in PAID_POSITIONS}

    for config in configs:
        bids, using_floor = effective_bids(config, market, step_cents, floor_cents)
        for position, bid in bids.items():
            if bid <= 0:
                continue
            paid[position].append(Candidate(
                config_id=config.config_id,
                company_id=config.company_id,
                mode=normalize_mode(config.mode),
                bid_cents=bid,
                daily_budget_cents=config.daily_budget_cents,
                pause_on_limit=config.pause_on_limit,
                created_at=config.created_at,
                using_floor=using_floor,
            ))

    for position in PAID_POSITIONS:
        paid[position].sort(key=_sort_key)

    return Ranking(paid=ensure_distinct_heads(paid), organic_pool=organic_pool or [])


# ── Paid resolution ──────────────────────────────────────────

def resolve_paid_positions(
    ranking: Ranking,
    spent_today: dict[uuid.UUID, int],
    available: dict[uuid.UUID, int],
    force_visibility: bool = False,
) -> PaidResolution:
    """
    Pick at most one winner per paid position.

    spent_today is keyed by config id (spend in that config's market today);
    available is keyed by company id (wallet balance minus reserved).
    A company wins at most one position. With force_visibility, budget and
    balance checks are bypassed and an uncovered winner is charged zero.
    Candidates ranked behind a winner are reported as outbid.
    """
    resolution = PaidResolution()
    selected_companies = set()

    for position in PAID_POSITIONS:
        candidates = ranking.paid.get(position, [])
        for index, candidate in enumerate(candidates):
            if candidate.company_id in selected_companies:
                continue

            if candidate.bid_cents <= 0:
                resolution.skipped.append(SkippedCandidate(
                    company_id=candidate.company_id, config_id=candidate.config_id,
                    position=position, reason="bid_zero",
                ))
                continue

            budget = candidate.daily_budget_cents or 0
            if (
                not force_visibility
                and candidate.pause_on_limit
                and budget > 0
                and spent_today.get(candidate.config_id, 0) >= budget
            ):
                resolution.skipped.append(SkippedCandidate(
                    company_id=candidate.company_id, config_id=candidate.config_id,
                    position=position, reason="daily_limit",
                ))
                continue

            covered = available.get(candidate.company_id, 0) >= candidate.bid_cents
            if not covered and not force_visibility:
                resolution.skipped.append(SkippedCandidate(
                    company_id=candidate.company_id, config_id=candidate.config_id,
                    position=position, reason="insufficient_funds",
                ))
                continue

            selected_companies.add(candidate.company_id)
            resolution.selected.append(PaidSlot(
                company_id=candidate.company_id,
                config_id=candidate.config_id,
                position=position,
                bid_cents=candidate.bid_cents,
                charged_cents=candidate.bid_cents if covered else 0,
                forced=not covered,
            ))
            for loser in candidates[index + 1:]:
                if loser.company_id in selected_companies:
                    continue
                resolution.skipped.append(SkippedCandidate(
                    company_id=loser.company_id, config_id=loser.config_id,
                    position=position, reason="outbid",
                ))
            break

    return resolution


def organic_results(
    pool: list[OrganicCompany],
    excluded: set[uuid.UUID],
    start_position: int,
    limit: int = RESULT_LIMIT,
) -> list[tuple[int, OrganicCompany]]:
    """Assign positions start..limit to the best organic companies."""
    ordered = sorted(
        (c for c in pool if c.company_id not in excluded),
        key=lambda c: (-c.quality_score, c.trade_name.lower(), str(c.company_id)),
    )
    slots = max(0, limit - start_position + 1)
    return [(start_position + i, company) for i, company in enumerate(ordered[:slots])]
