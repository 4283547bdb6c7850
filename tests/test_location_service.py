import pytest

from storefront.core.exceptions import BusinessRuleError, NotFoundError
from storefront.services.location_service import LocationService, SEARCH_LIMIT


class TestLocationService:

    async def _seed(self, factory):
        can_tho = await factory.location("Cần Thơ", "province")
        ha_noi = await factory.location("Hà Nội", "province")
        await factory.location("Ninh Kiều", "ward", parent_id=can_tho.id)
        await factory.location("Cái Răng", "ward", parent_id=can_tho.id)
        await factory.location("Hoàn Kiếm", "ward", parent_id=ha_noi.id)
        return can_tho, ha_noi

    async def test_list_provinces(self, db, factory):
        await self._seed(factory)

        provinces = await LocationService(db).list_provinces()

        assert [p.name for p in provinces] == ["Cần Thơ", "Hà Nội"]

    async def test_list_wards_of_province(self, db, factory):
        can_tho, _ = await self._seed(factory)

        wards = await LocationService(db).list_wards(can_tho.id)

        assert sorted(w.name for w in wards) == ["Cái Răng", "Ninh Kiều"]

    async def test_list_wards_unknown_province(self, db, factory):
        await self._seed(factory)

        with pytest.raises(NotFoundError):
            await LocationService(db).list_wards(9999)

    async def test_search_by_type(self, db, factory):
        can_tho, _ = await self._seed(factory)

        results = await LocationService(db).search("Ninh", location_type="ward")

        assert [r.name for r in results] == ["Ninh Kiều"]
        assert results[0].parent.id == can_tho.id

    async def test_search_term_too_short(self, db):
        with pytest.raises(BusinessRuleError):
            await LocationService(db).search(" a ")

    async def test_search_is_limited(self, db, factory):
        province = await factory.location("Đồng Tháp", "province")
        for i in range(SEARCH_LIMIT + 5):
            await factory.location(f"Phường {i}", "ward", parent_id=province.id)

        results = await LocationService(db).search("Phường")

        assert len(results) == SEARCH_LIMIT
