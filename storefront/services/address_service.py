"""
Address Service

Keeps the single-default-address rule: a user with any addresses has
exactly one default. Every mutation locks the owning user row first so
concurrent requests for the same user run one after another.
"""

from typing import Optional, List
import logging
import uuid

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.core.exceptions import StorefrontError, NotFoundError
from storefront.database import transaction
from storefront.models.address import Address
from storefront.models.user import User
from storefront.schemas.address import AddressCreate, AddressUpdate

logger = logging.getLogger(__name__)


class AddressService:
    """Service for a user's delivery addresses."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== HELPERS ====================

    async def _lock_user(self, user_id: uuid.UUID) -> None:
        await self.db.execute(
            select(User.id).where(User.id == user_id).with_for_update()
        )

    async def _get_owned(self, address_id: uuid.UUID, user_id: uuid.UUID) -> Address:
        result = await self.db.execute(
            select(Address).where(
                Address.id == address_id,
                Address.user_id == user_id,
            )
        )
        address = result.scalar_one_or_none()
        if not address:
            raise NotFoundError("Address not found", {"address_id": str(address_id)})
        return address

    async def _load(self, address_id: uuid.UUID) -> Address:
        result = await self.db.execute(
            select(Address)
            .options(
                selectinload(Address.province_location),
                selectinload(Address.district_location),
                selectinload(Address.ward_location),
            )
            .where(Address.id == address_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _count(self, user_id: uuid.UUID, exclude_id: Optional[uuid.UUID] = None) -> int:
        stmt = select(func.count(Address.id)).where(Address.user_id == user_id)
        if exclude_id:
            stmt = stmt.where(Address.id != exclude_id)
        return (await self.db.execute(stmt)).scalar() or 0

    async def _clear_defaults(self, user_id: uuid.UUID, exclude_id: Optional[uuid.UUID] = None) -> None:
        stmt = update(Address).where(
            Address.user_id == user_id,
            Address.is_default == True,
        )
        if exclude_id:
            stmt = stmt.where(Address.id != exclude_id)
        await self.db.execute(
            stmt.values(is_default=False).execution_options(synchronize_session="fetch")
        )

    async def _promote_latest(
        self,
        user_id: uuid.UUID,
        exclude_id: Optional[uuid.UUID] = None
    ) -> Optional[Address]:
        """Make the most recently created address (optionally excluding one) the default."""
        stmt = select(Address).where(Address.user_id == user_id)
        if exclude_id:
            stmt = stmt.where(Address.id != exclude_id)
        stmt = stmt.order_by(Address.created_at.desc(), Address.id.desc()).limit(1)

        candidate = (await self.db.execute(stmt)).scalar_one_or_none()
        if candidate:
            candidate.is_default = True
            logger.info(f"Address {candidate.id} promoted to default for user {user_id}")
        return candidate

    # ==================== OPERATIONS ====================

    async def list_addresses(self, user_id: uuid.UUID) -> List[Address]:
        """Default address first, then newest first."""
        result = await self.db.execute(
            select(Address)
            .options(
                selectinload(Address.province_location),
                selectinload(Address.district_location),
                selectinload(Address.ward_location),
            )
            .where(Address.user_id == user_id)
            .order_by(
                Address.is_default.desc(),
                Address.created_at.desc(),
                Address.id.desc(),
            )
        )
        return list(result.scalars().all())

    async def create(self, user_id: uuid.UUID, data: AddressCreate) -> Address:
        """
        Add an address.

        The first address of a user is always the default. A later address
        requested as default takes the flag from the current one.
        """
        try:
            async with transaction(self.db):
                await self._lock_user(user_id)

                is_default = data.is_default
                if await self._count(user_id) == 0:
                    is_default = True
                elif is_default:
                    await self._clear_defaults(user_id)

                address = Address(user_id=user_id, is_default=is_default, **data.column_values())
                self.db.add(address)
        except StorefrontError:
            raise
        except Exception as e:
            logger.error(f"Failed to create address for user {user_id}: {e}")
            raise

        return await self._load(address.id)

    async def update(
        self,
        address_id: uuid.UUID,
        user_id: uuid.UUID,
        patch: AddressUpdate
    ) -> Address:
        """
        Update an address, moving the default flag when asked.

        Un-defaulting the only address is overridden: it stays default.
        Un-defaulting one of several hands the flag to the most recently
        created other address.
        """
        try:
            async with transaction(self.db):
                await self._lock_user(user_id)
                address = await self._get_owned(address_id, user_id)

                requested = patch.requested_default
                for field, value in patch.column_changes().items():
                    setattr(address, field, value)

                if requested is True and not address.is_default:
                    await self._clear_defaults(user_id, exclude_id=address.id)
                    address.is_default = True
                elif requested is False and address.is_default:
                    if await self._count(user_id, exclude_id=address.id):
                        address.is_default = False
                        # Demotion must reach the database before the promotion
                        await self.db.flush()
                        await self._promote_latest(user_id, exclude_id=address.id)
                    else:
                        logger.info(f"Address {address.id} is the only address of user {user_id}, kept as default")
        except StorefrontError:
            raise
        except Exception as e:
            logger.error(f"Failed to update address {address_id}: {e}")
            raise

        return await self._load(address_id)

    async def delete(self, address_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Delete an address; a removed default passes to the newest remaining one."""
        try:
            async with transaction(self.db):
                await self._lock_user(user_id)
                address = await self._get_owned(address_id, user_id)
                was_default = address.is_default

                await self.db.delete(address)
                await self.db.flush()

                if was_default:
                    await self._promote_latest(user_id)
        except StorefrontError:
            raise
        except Exception as e:
            logger.error(f"Failed to delete address {address_id}: {e}")
            raise

    async def set_default(self, address_id: uuid.UUID, user_id: uuid.UUID) -> Address:
        try:
            async with transaction(self.db):
                await self._lock_user(user_id)
                address = await self._get_owned(address_id, user_id)

                await self._clear_defaults(user_id, exclude_id=address.id)
                address.is_default = True
        except StorefrontError:
            raise
        except Exception as e:
            logger.error(f"Failed to set default address {address_id}: {e}")
            raise

        return await self._load(address_id)
