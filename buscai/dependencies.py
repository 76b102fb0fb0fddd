"""
FastAPI dependency injection.
Provides DB sessions, API key validation, the request actor and service wiring.
"""

import uuid
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from buscai.config import settings
from buscai.errors import AppError, assert_writable
from buscai.gateways.payment import PaymentGateway, get_payment_gateway
from buscai.gateways.serpapi_client import SerpapiClient
from buscai.models.database import get_session
from buscai.observability.audit import AuditRecorder
from buscai.repositories.analytics import AnalyticsRepository
from buscai.repositories.auction import AuctionRepository
from buscai.repositories.billing import BillingRepository
from buscai.repositories.catalog import CatalogRepository
from buscai.repositories.claims import ClaimRepository
from buscai.repositories.companies import CompanyRepository
from buscai.repositories.notifications import NotificationRepository
from buscai.repositories.products import ProductRepository
from buscai.repositories.search import SearchRepository
from buscai.repositories.serpapi import SerpapiRepository
from buscai.schemas.common import Actor
from buscai.services.access import ensure_admin
from buscai.services.analytics import AnalyticsService
from buscai.services.auction import AuctionService
from buscai.services.billing import BillingService
from buscai.services.claims import ClaimService
from buscai.services.companies import CompanyService
from buscai.services.notifications import NotificationService
from buscai.services.products import ProductService
from buscai.services.search import SearchService
from buscai.services.serpapi_import import SerpapiImportService
from buscai.services.subscriptions import SubscriptionService


# ── Singleton instances ──────────────────────────────────────
_payment_gateway: Optional[PaymentGateway] = None


def get_gateway() -> PaymentGateway:
    """Get or create the payment gateway singleton."""
    global _payment_gateway
    if _payment_gateway is None:
        _payment_gateway = get_payment_gateway()
    return _payment_gateway


def get_serpapi_client() -> SerpapiClient:
    return SerpapiClient()


async def get_db() -> AsyncSession:
    """Yield an async DB session."""
    async for session in get_session():
        yield session


async def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> Optional[str]:
    """
    Verify API key if configured.
    If API_KEY is not set, all requests are allowed (dev mode).
    """
    if settings.API_KEY is None:
        return None

    if x_api_key is None or x_api_key != settings.API_KEY:
        raise AppError(401, "Invalid or missing API key", code="UNAUTHORIZED")
    return x_api_key


# ── Actor ────────────────────────────────────────────────────

async def get_actor(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(None, alias="X-User-Role"),
    x_company_id: Optional[str] = Header(None, alias="X-Company-Id"),
) -> Actor:
    """Caller identity forwarded by the upstream gateway."""
    if not x_user_id:
        raise AppError(401, "Unauthorized", code="UNAUTHORIZED")
    try:
        user_id = uuid.UUID(x_user_id)
        company_id = uuid.UUID(x_company_id) if x_company_id else None
    except ValueError:
        raise AppError(401, "Unauthorized", code="UNAUTHORIZED")
    role = "admin" if (x_user_role or "").lower() == "admin" else "company_owner"
    return Actor(user_id=user_id, role=role, company_id=company_id)


async def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    ensure_admin(actor)
    return actor


async def writable() -> None:
    """Guard for mutating endpoints."""
    assert_writable()


# ── Services ─────────────────────────────────────────────────

def get_billing_service(session: AsyncSession = Depends(get_db)) -> BillingService:
    return BillingService(BillingRepository(session), CompanyRepository(session))


def get_auction_service(session: AsyncSession = Depends(get_db)) -> AuctionService:
    return AuctionService(
        AuctionRepository(session),
        CompanyRepository(session),
        BillingRepository(session),
        SearchRepository(session),
    )


def get_notification_service(session: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(NotificationRepository(session), CompanyRepository(session))


def get_analytics_service(session: AsyncSession = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(AnalyticsRepository(session), CompanyRepository(session), get_auction_service(session))


def get_search_service(session: AsyncSession = Depends(get_db)) -> SearchService:
    return SearchService(
        SearchRepository(session),
        CatalogRepository(session),
        CompanyRepository(session),
        get_auction_service(session),
        get_billing_service(session),
        AuditRecorder(session),
        get_notification_service(session),
    )


def get_product_service(session: AsyncSession = Depends(get_db)) -> ProductService:
    return ProductService(
        ProductRepository(session),
        CompanyRepository(session),
        CatalogRepository(session),
        AuditRecorder(session),
    )


def build_subscription_service(session: AsyncSession, gateway: Optional[PaymentGateway] = None) -> SubscriptionService:
    billing_repo = BillingRepository(session)
    return SubscriptionService(
        ProductRepository(session),
        billing_repo,
        BillingService(billing_repo, CompanyRepository(session)),
        gateway or get_gateway(),
    )


def get_claim_service(session: AsyncSession = Depends(get_db)) -> ClaimService:
    return ClaimService(ClaimRepository(session), CompanyRepository(session), AuditRecorder(session))


def get_company_service(session: AsyncSession = Depends(get_db)) -> CompanyService:
    return CompanyService(CompanyRepository(session), CatalogRepository(session))


def get_catalog_repo(session: AsyncSession = Depends(get_db)) -> CatalogRepository:
    return CatalogRepository(session)


def get_serpapi_service(
    session: AsyncSession = Depends(get_db),
    client: SerpapiClient = Depends(get_serpapi_client),
) -> SerpapiImportService:
    return SerpapiImportService(
        SerpapiRepository(session),
        CompanyRepository(session),
        CatalogRepository(session),
        get_company_service(session),
        client,
        AuditRecorder(session),
    )
