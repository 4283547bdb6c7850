from pydantic import Field, model_validator
from typing import Optional, Dict, Any
from datetime import datetime
import uuid

from storefront.models.address import AddressLabel
from storefront.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema


PHONE_PATTERN = r"^(0[35789])[0-9]{8}$|^(84[35789])[0-9]{8}$"


class LocationBrief(BaseResponseSchema):
    id: int
    name: str
    code: Optional[str] = None


class AddressCreate(BaseCreateSchema):
    """New delivery address."""
    receiver_name: str = Field(..., min_length=2, max_length=50)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    province: str = Field(..., min_length=1, max_length=255)
    district: Optional[str] = Field(None, max_length=255)
    ward: str = Field(..., min_length=1, max_length=255)
    detail_address: str = Field(..., min_length=5, max_length=200)
    address_label: AddressLabel = AddressLabel.HOME
    notes: Optional[str] = None
    province_id: Optional[int] = None
    district_id: Optional[int] = None
    ward_id: Optional[int] = None
    is_default: bool = False

    def column_values(self) -> Dict[str, Any]:
        data = self.model_dump(exclude={"is_default"})
        data["address_label"] = self.address_label.value
        return data


# Columns that may never be cleared by an update
_REQUIRED_COLUMNS = ("receiver_name", "phone", "province", "ward", "detail_address", "address_label")


class AddressUpdate(BaseUpdateSchema):
    """
    Partial address update.

    Absent fields keep their stored value. `is_default` absent means no
    default-flag transition was requested.
    """
    receiver_name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    province: Optional[str] = Field(None, min_length=1, max_length=255)
    district: Optional[str] = Field(None, max_length=255)
    ward: Optional[str] = Field(None, min_length=1, max_length=255)
    detail_address: Optional[str] = Field(None, min_length=5, max_length=200)
    address_label: Optional[AddressLabel] = None
    notes: Optional[str] = None
    province_id: Optional[int] = None
    district_id: Optional[int] = None
    ward_id: Optional[int] = None
    is_default: Optional[bool] = None

    @model_validator(mode="after")
    def _reject_null_required(self):
        for field in _REQUIRED_COLUMNS + ("is_default",):
            if self.is_set(field) and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    @property
    def requested_default(self) -> Optional[bool]:
        """True/False when a default-flag value was sent, None when absent."""
        if self.is_set("is_default"):
            return self.is_default
        return None

    def column_changes(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_unset=True, exclude={"is_default"})
        if "address_label" in data:
            data["address_label"] = self.address_label.value
        return data


class AddressResponse(BaseResponseSchema):
    id: uuid.UUID
    user_id: uuid.UUID
    receiver_name: str
    phone: str
    province: str
    district: Optional[str] = None
    ward: str
    detail_address: str
    address_label: str
    notes: Optional[str] = None
    province_id: Optional[int] = None
    district_id: Optional[int] = None
    ward_id: Optional[int] = None
    is_default: bool
    full_address: str
    province_location: Optional[LocationBrief] = None
    district_location: Optional[LocationBrief] = None
    ward_location: Optional[LocationBrief] = None
    created_at: datetime
    updated_at: datetime
