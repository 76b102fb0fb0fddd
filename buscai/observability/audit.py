"""
Internal audit trail (internal_events table).

Payloads are sanitized before persistence: only allow-listed or
metadata-looking keys survive, contact data and raw structures are dropped,
strings/lists/depth are capped. Audit failures never fail the caller.
"""

import re
from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from buscai.config import settings
from buscai.models.tables import InternalEvent

logger = structlog.get_logger(__name__)

MAX_STRING_LENGTH = 200
MAX_LIST_LENGTH = 20
MAX_DEPTH = 4

EVENT_TYPES = frozenset({
    "slow_query",
    "timeout",
    "auction_error",
    "billing_error",
    "search_error",
    "search_performed",
    "search_click",
    "search_impression_failed",
    "product_offer_renewed",
    "claim_reviewed",
    "serpapi_run_finished",
})

BLOCKED_KEYS = frozenset({
    "from", "to", "phone", "text", "textraw", "textpreview", "query", "message",
    "content", "body", "data", "config", "request", "headers", "stack",
})

ALLOWED_KEYS = frozenset({
    "provider", "phone_masked", "status", "reason", "duration_ms", "code",
    "attempts", "results_count", "query_length", "error", "position",
    "positions", "amount_cents", "charged_cents", "dry_run", "forced",
})

SAFE_META_KEY = re.compile(r"(id|ids|count|ms|status|reason|code|type|version|kind|source)$", re.IGNORECASE)
SENSITIVE_KEY = re.compile(r"(phone|tel|mobile|whats|email|cpf|cnpj|token|secret|auth|bearer|cookie|session)", re.IGNORECASE)
DANGEROUS_KEY = re.compile(r"(raw|payload|request|response|headers|config|stack|trace)", re.IGNORECASE)


def _truncate(value: str) -> str:
    if len(value) > MAX_STRING_LENGTH:
        return value[:MAX_STRING_LENGTH] + "..."
    return value


def is_allowed_key(key: str) -> bool:
    return key.lower() in ALLOWED_KEYS or bool(SAFE_META_KEY.search(key))


def is_sensitive_key(key: str) -> bool:
    if key.lower() in BLOCKED_KEYS:
        return True
    return bool(SENSITIVE_KEY.search(key) or DANGEROUS_KEY.search(key))


def _sanitize_value(value: Any, depth: int) -> Any:
    if depth <= 0:
        return "[truncated]"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _truncate(value)
    if isinstance(value, BaseException):
        return _truncate(str(value) or "error")
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(item, depth - 1) for item in list(value)[:MAX_LIST_LENGTH]]
    if isinstance(value, dict):
        return sanitize_payload(value, depth - 1)
    return _truncate(str(value))


def sanitize_payload(payload: dict, depth: int = MAX_DEPTH) -> dict:
    if depth <= 0 or not isinstance(payload, dict):
        return {}
    output = {}
    for key, raw in payload.items():
        key = str(key)
        if not is_allowed_key(key):
            continue
        if key.lower() == "error":
            output[key] = _truncate(str(raw) if raw is not None else "error")
        else:
            output[key] = _sanitize_value(raw, depth - 1)
    return output


def find_sensitive_paths(value: Any, path: str = "", depth: int = MAX_DEPTH + 1) -> list[str]:
    found = []
    if depth <= 0 or value is None:
        return found
    if isinstance(value, (list, tuple)):
        for index, item in enumerate(list(value)[:MAX_LIST_LENGTH]):
            found.extend(find_sensitive_paths(item, f"{path}[{index}]", depth - 1))
        return found[:10]
    if not isinstance(value, dict):
        return found
    for key, nested in value.items():
        key = str(key)
        next_path = f"{path}.{key}" if path else key
        if not is_allowed_key(key) and is_sensitive_key(key):
            found.append(next_path)
        found.extend(find_sensitive_paths(nested, next_path, depth - 1))
    return found[:10]


def assert_no_sensitive_keys(payload: dict) -> None:
    paths = find_sensitive_paths(payload)
    if paths:
        raise ValueError(f"Sensitive keys are not allowed in audit payload: {', '.join(paths)}")


class AuditRecorder:
    """Persists sanitized internal events inside a savepoint."""

    def __init__(self, session: Optional[AsyncSession]):
        self.session = session

    async def record(self, event_type: str, payload: dict) -> None:
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown audit event type: {event_type}")
        if not settings.is_production:
            assert_no_sensitive_keys(payload)

        if self.session is None:
            return
        try:
            async with self.session.begin_nested():
                self.session.add(InternalEvent(type=event_type, payload=sanitize_payload(payload)))
        except Exception as e:
            logger.warning("internal_audit_failed", event_type=event_type, error=str(e))
