from typing import Optional

from storefront.schemas.base import BaseResponseSchema
from storefront.schemas.address import LocationBrief


class LocationSearchResult(BaseResponseSchema):
    id: int
    name: str
    type: str
    code: Optional[str] = None
    parent_id: Optional[int] = None
    parent: Optional[LocationBrief] = None
