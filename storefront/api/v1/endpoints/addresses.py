from typing import List
import uuid

from fastapi import APIRouter, status

from storefront.api.deps import DB, CurrentUser
from storefront.schemas.address import AddressCreate, AddressUpdate, AddressResponse
from storefront.services.address_service import AddressService


router = APIRouter(tags=["Addresses"])


@router.get("", response_model=List[AddressResponse])
async def list_addresses(db: DB, current_user: CurrentUser):
    """Get the caller's addresses, default first."""
    addresses = await AddressService(db).list_addresses(current_user.id)
    return [AddressResponse.model_validate(address) for address in addresses]


@router.post("", response_model=AddressResponse, status_code=status.HTTP_201_CREATED)
async def create_address(data: AddressCreate, db: DB, current_user: CurrentUser):
    address = await AddressService(db).create(current_user.id, data)
    return AddressResponse.model_validate(address)


@router.put("/{address_id}", response_model=AddressResponse)
async def update_address(
    address_id: uuid.UUID,
    data: AddressUpdate,
    db: DB,
    current_user: CurrentUser,
):
    address = await AddressService(db).update(address_id, current_user.id, data)
    return AddressResponse.model_validate(address)


@router.delete("/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_address(address_id: uuid.UUID, db: DB, current_user: CurrentUser):
    await AddressService(db).delete(address_id, current_user.id)


@router.patch("/{address_id}/default", response_model=AddressResponse)
async def set_default_address(address_id: uuid.UUID, db: DB, current_user: CurrentUser):
    address = await AddressService(db).set_default(address_id, current_user.id)
    return AddressResponse.model_validate(address)
