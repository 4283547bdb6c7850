"""Single-default-address rule across create, update, delete and set_default."""
import uuid

import pytest
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from storefront.core.exceptions import NotFoundError
from storefront.models import Address
from storefront.schemas.address import AddressCreate, AddressUpdate
from storefront.services.address_service import AddressService


def new_address(**overrides) -> AddressCreate:
    data = {
        "receiver_name": "Trần Thị B",
        "phone": "0987654321",
        "province": "Cần Thơ",
        "ward": "An Khánh",
        "detail_address": "421c Trần Chiên",
    }
    data.update(overrides)
    return AddressCreate(**data)


async def default_ids(db, user_id):
    result = await db.execute(
        select(Address.id).where(Address.user_id == user_id, Address.is_default == True)
    )
    return list(result.scalars().all())


class TestCreate:

    async def test_first_address_is_forced_default(self, db, factory):
        user = await factory.user()

        address = await AddressService(db).create(user.id, new_address(is_default=False))

        assert address.is_default is True
        assert address.address_label == "home"
        assert address.district is None

    async def test_non_default_keeps_existing_default(self, db, factory):
        user = await factory.user()
        service = AddressService(db)
        first = await service.create(user.id, new_address())

        await service.create(user.id, new_address(address_label="office"))

        assert await default_ids(db, user.id) == [first.id]

    async def test_requested_default_takes_the_flag(self, db, factory):
        user = await factory.user()
        service = AddressService(db)
        await service.create(user.id, new_address())

        second = await service.create(user.id, new_address(is_default=True))

        assert await default_ids(db, user.id) == [second.id]

    async def test_location_projection_loaded(self, db, factory):
        user = await factory.user()
        province = await factory.location("Cần Thơ", "province")
        ward = await factory.location("An Khánh", "ward", parent_id=province.id)

        address = await AddressService(db).create(
            user.id, new_address(province_id=province.id, ward_id=ward.id)
        )

        assert address.province_location.name == "Cần Thơ"
        assert address.ward_location.name == "An Khánh"
        assert address.district_location is None


class TestUpdate:

    async def test_promote_to_default(self, db, factory):
        user = await factory.user()
        first, second, third = await factory.addresses(user, 3, default_index=0)

        await AddressService(db).update(second.id, user.id, AddressUpdate(is_default=True))

        assert await default_ids(db, user.id) == [second.id]

    async def test_demote_default_promotes_most_recent_other(self, db, factory):
        user = await factory.user()
        oldest, middle, newest = await factory.addresses(user, 3, default_index=0)

        updated = await AddressService(db).update(
            oldest.id, user.id, AddressUpdate(is_default=False, notes="Gọi trước khi giao")
        )

        assert updated.is_default is False
        assert updated.notes == "Gọi trước khi giao"
        assert await default_ids(db, user.id) == [newest.id]

    async def test_demoting_sole_address_is_overridden(self, db, factory):
        user = await factory.user()
        only = await factory.address(user, is_default=True)

        updated = await AddressService(db).update(only.id, user.id, AddressUpdate(is_default=False))

        assert updated.is_default is True
        assert await default_ids(db, user.id) == [only.id]

    async def test_absent_fields_are_kept(self, db, factory):
        user = await factory.user()
        address = await factory.address(user, is_default=True)
        original_phone = address.phone

        updated = await AddressService(db).update(
            address.id, user.id, AddressUpdate(receiver_name="Lê Văn C")
        )

        assert updated.receiver_name == "Lê Văn C"
        assert updated.phone == original_phone
        assert updated.is_default is True

    async def test_other_users_address_is_not_found(self, db, factory):
        owner = await factory.user()
        stranger = await factory.user()
        address = await factory.address(owner, is_default=True)

        with pytest.raises(NotFoundError):
            await AddressService(db).update(address.id, stranger.id, AddressUpdate(notes="x"))

    def test_null_for_required_field_rejected(self):
        with pytest.raises(ValidationError):
            AddressUpdate(receiver_name=None)

    def test_absent_default_means_no_transition(self):
        assert AddressUpdate(notes="x").requested_default is None
        assert AddressUpdate(is_default=False).requested_default is False


class TestDelete:

    async def test_deleting_default_promotes_most_recent(self, db, factory):
        user = await factory.user()
        oldest, middle, newest = await factory.addresses(user, 3, default_index=1)

        await AddressService(db).delete(middle.id, user.id)

        assert await default_ids(db, user.id) == [newest.id]

    async def test_deleting_non_default_keeps_default(self, db, factory):
        user = await factory.user()
        oldest, newest = await factory.addresses(user, 2, default_index=0)

        await AddressService(db).delete(newest.id, user.id)

        assert await default_ids(db, user.id) == [oldest.id]

    async def test_deleting_last_address(self, db, factory):
        user = await factory.user()
        only = await factory.address(user, is_default=True)

        await AddressService(db).delete(only.id, user.id)

        assert await AddressService(db).list_addresses(user.id) == []

    async def test_unknown_address(self, db, factory):
        user = await factory.user()

        with pytest.raises(NotFoundError):
            await AddressService(db).delete(uuid.uuid4(), user.id)


class TestSetDefault:

    async def test_set_default_is_idempotent(self, db, factory):
        user = await factory.user()
        first, second = await factory.addresses(user, 2, default_index=0)
        service = AddressService(db)

        await service.set_default(second.id, user.id)
        await service.set_default(second.id, user.id)

        assert await default_ids(db, user.id) == [second.id]


class TestDefaultIndex:

    async def test_second_default_row_rejected(self, db, factory):
        user = await factory.user()
        await factory.address(user, is_default=True)
        user_id = user.id

        with pytest.raises(IntegrityError):
            await factory.address(user, is_default=True)
        await db.rollback()

        assert len(await default_ids(db, user_id)) == 1

    async def test_non_default_rows_are_unrestricted(self, db, factory):
        user = await factory.user()
        await factory.addresses(user, 3, default_index=1)

        assert len(await default_ids(db, user.id)) == 1


class TestInvariant:

    async def test_exactly_one_default_through_mixed_operations(self, db, factory):
        user = await factory.user()
        service = AddressService(db)

        a = await service.create(user.id, new_address())
        b = await service.create(user.id, new_address(is_default=True))
        c = await service.create(user.id, new_address())
        assert len(await default_ids(db, user.id)) == 1

        await service.update(b.id, user.id, AddressUpdate(is_default=False))
        assert len(await default_ids(db, user.id)) == 1

        await service.set_default(a.id, user.id)
        assert await default_ids(db, user.id) == [a.id]

        await service.delete(a.id, user.id)
        assert len(await default_ids(db, user.id)) == 1

        await service.update(c.id, user.id, AddressUpdate(is_default=True))
        assert await default_ids(db, user.id) == [c.id]

        await service.delete(c.id, user.id)
        assert await default_ids(db, user.id) == [b.id]

    async def test_list_default_first_then_newest(self, db, factory):
        user = await factory.user()
        oldest, middle, newest = await factory.addresses(user, 3, default_index=0)

        addresses = await AddressService(db).list_addresses(user.id)

        assert [a.id for a in addresses] == [oldest.id, newest.id, middle.id]
