"""
Payment gateways used for card-funded subscription renewals.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel

from buscai.config import settings


class ChargeResult(BaseModel):
    status: str  # paid, failed
    external_id: str
    provider: str
    failure_reason: Optional[str] = None


class PaymentGateway(ABC):
    """
    Abstract card gateway.
    Implementations must be idempotent on `idempotency_key`.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    async def charge(
        self,
        company_id: str,
        amount_cents: int,
        payment_method_ref: Optional[str],
        idempotency_key: str,
    ) -> ChargeResult:
        ...


class DummyGateway(PaymentGateway):
    """Deterministic gateway for development and tests."""

    def __init__(self, always_approve: Optional[bool] = None):
        self.always_approve = (
            settings.DUMMY_GATEWAY_ALWAYS_APPROVE if always_approve is None else always_approve
        )

    @property
    def provider_name(self) -> str:
        return "dummy"

    async def charge(self, company_id, amount_cents, payment_method_ref, idempotency_key) -> ChargeResult:
        digest = hashlib.sha256(idempotency_key.encode("utf-8")).hexdigest()[:24]
        if self.always_approve:
            return ChargeResult(status="paid", external_id=f"dummy_{digest}", provider=self.provider_name)
        return ChargeResult(
            status="failed",
            external_id=f"dummy_{digest}",
            provider=self.provider_name,
            failure_reason="declined",
        )


def get_payment_gateway() -> PaymentGateway:
    if settings.PAYMENT_PROVIDER == "dummy":
        return DummyGateway()
    raise ValueError(f"Unsupported payment provider: {settings.PAYMENT_PROVIDER}")
