"""
SerpAPI HTTP client.
Maps Google Maps `local_results` into flat place items.
"""

import time
from typing import Optional

import httpx
import structlog
from pydantic import BaseModel

from buscai.config import settings
from buscai.errors import AppError
from buscai.observability.metrics import external_api_latency_seconds

logger = structlog.get_logger(__name__)


class SerpapiPlace(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    raw: dict = {}


def parse_local_results(data: dict, limit: int) -> list[SerpapiPlace]:
    results = data.get("local_results") if isinstance(data, dict) else None
    if not isinstance(results, list):
        return []
    places = []
    for item in results[:limit]:
        if not isinstance(item, dict):
            continue
        places.append(SerpapiPlace(
            name=item.get("title") or item.get("name") or item.get("business_name"),
            phone=item.get("phone") or item.get("formatted_phone_number"),
            address=item.get("address") or item.get("vicinity") or item.get("formatted_address"),
            website=item.get("website") or item.get("url"),
            raw=item,
        ))
    return places


class SerpapiClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or settings.SERPAPI_API_KEY
        self.base_url = base_url or settings.SERPAPI_BASE_URL
        self.transport = transport

    async def search(self, query: str, limit: int) -> list[SerpapiPlace]:
        if not self.api_key:
            raise AppError(400, "serpapi_key_missing")

        params = {
            "api_key": self.api_key,
            "engine": settings.SERPAPI_ENGINE,
            "q": query,
            "num": limit,
        }
        started = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=settings.SERPAPI_TIMEOUT_SECONDS, transport=self.transport
            ) as client:
                response = await client.get(self.base_url, params=params)
                response.raise_for_status()
                data = response.json()
        except ValueError:
            logger.warning("serpapi_invalid_response", query_length=len(query))
            raise AppError(502, "serpapi_invalid_response")
        except httpx.TimeoutException:
            logger.warning("serpapi_timeout", query_length=len(query))
            raise AppError(504, "serpapi_timeout")
        except httpx.HTTPError as e:
            logger.warning("serpapi_request_failed", error=str(e))
            raise AppError(502, "serpapi_request_failed")
        finally:
            external_api_latency_seconds.labels(provider="serpapi", operation="search").observe(
                time.monotonic() - started
            )

        places = parse_local_results(data, limit)
        logger.info("serpapi_search_completed", results_count=len(places))
        return places
