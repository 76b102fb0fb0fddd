"""
Top-level API router.
Combines all sub-routers into a single router.
"""

from fastapi import APIRouter

from buscai.api.analytics import router as analytics_router
from buscai.api.auction import router as auction_router
from buscai.api.billing import router as billing_router
from buscai.api.catalog import router as catalog_router
from buscai.api.claims import router as claims_router
from buscai.api.companies import router as companies_router
from buscai.api.health import router as health_router
from buscai.api.notifications import router as notifications_router
from buscai.api.products import router as products_router
from buscai.api.search import router as search_router
from buscai.api.serpapi import router as serpapi_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(catalog_router)
api_router.include_router(search_router)
api_router.include_router(auction_router)
api_router.include_router(billing_router)
api_router.include_router(products_router)
api_router.include_router(claims_router)
api_router.include_router(companies_router)
api_router.include_router(serpapi_router)
api_router.include_router(notifications_router)
api_router.include_router(analytics_router)
