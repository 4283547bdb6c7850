from typing import Optional, List

from fastapi import APIRouter, Query

from storefront.api.deps import DB
from storefront.models.location import LocationType
from storefront.schemas.address import LocationBrief
from storefront.schemas.location import LocationSearchResult
from storefront.services.location_service import LocationService


router = APIRouter(tags=["Locations"])


@router.get("/provinces", response_model=List[LocationBrief])
async def list_provinces(db: DB):
    provinces = await LocationService(db).list_provinces()
    return [LocationBrief.model_validate(p) for p in provinces]


@router.get("/provinces/{province_id}/wards", response_model=List[LocationBrief])
async def list_wards(province_id: int, db: DB):
    wards = await LocationService(db).list_wards(province_id)
    return [LocationBrief.model_validate(w) for w in wards]


@router.get("/search", response_model=List[LocationSearchResult])
async def search_locations(
    db: DB,
    q: str = Query(..., description="Part of the location name"),
    location_type: Optional[LocationType] = Query(None, alias="type"),
):
    results = await LocationService(db).search(
        q,
        location_type=location_type.value if location_type else None,
    )
    return [LocationSearchResult.model_validate(r) for r in results]
