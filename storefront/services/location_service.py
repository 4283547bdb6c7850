from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.core.exceptions import NotFoundError, BusinessRuleError
from storefront.models.location import VietnameseLocation, LocationType


SEARCH_MIN_LENGTH = 2
SEARCH_LIMIT = 20


class LocationService:
    """Read-only lookup of provinces and wards."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_provinces(self) -> List[VietnameseLocation]:
        result = await self.db.execute(
            select(VietnameseLocation)
            .where(VietnameseLocation.type == LocationType.PROVINCE.value)
            .order_by(VietnameseLocation.name)
        )
        return list(result.scalars().all())

    async def list_wards(self, province_id: int) -> List[VietnameseLocation]:
        province = await self.db.get(VietnameseLocation, province_id)
        if not province or province.type != LocationType.PROVINCE.value:
            raise NotFoundError("Province not found", {"province_id": province_id})

        result = await self.db.execute(
            select(VietnameseLocation)
            .where(
                VietnameseLocation.parent_id == province_id,
                VietnameseLocation.type == LocationType.WARD.value,
            )
            .order_by(VietnameseLocation.name)
        )
        return list(result.scalars().all())

    async def search(self, q: str, location_type: Optional[str] = None) -> List[VietnameseLocation]:
        """Case-insensitive name search, at most SEARCH_LIMIT results."""
        term = (q or "").strip()
        if len(term) < SEARCH_MIN_LENGTH:
            raise BusinessRuleError(
                f"Search term must be at least {SEARCH_MIN_LENGTH} characters",
                {"q": q}
            )

        stmt = (
            select(VietnameseLocation)
            .options(selectinload(VietnameseLocation.parent))
            .where(VietnameseLocation.name.ilike(f"%{term}%"))
        )
        if location_type:
            stmt = stmt.where(VietnameseLocation.type == location_type)

        result = await self.db.execute(
            stmt.order_by(VietnameseLocation.type, VietnameseLocation.name).limit(SEARCH_LIMIT)
        )
        return list(result.scalars().all())
