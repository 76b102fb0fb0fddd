"""
/api/v1/catalog endpoints: active cities and niches.
"""

from fastapi import APIRouter, Depends

from buscai.dependencies import get_catalog_repo, verify_api_key
from buscai.repositories.catalog import CatalogRepository
from buscai.schemas.catalog import CityResponse, NicheResponse

router = APIRouter(prefix="/api/v1/catalog", tags=["catalog"], dependencies=[Depends(verify_api_key)])


@router.get("/cities", response_model=list[CityResponse])
async def list_cities(repo: CatalogRepository = Depends(get_catalog_repo)):
    return [CityResponse.model_validate(c) for c in await repo.list_cities()]


@router.get("/niches", response_model=list[NicheResponse])
async def list_niches(repo: CatalogRepository = Depends(get_catalog_repo)):
    return [NicheResponse.model_validate(n) for n in await repo.list_niches()]
