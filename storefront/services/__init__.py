# Services module
from storefront.services.tracking_service import TrackingService
from storefront.services.address_service import AddressService
from storefront.services.permission_service import PermissionService
from storefront.services.order_service import OrderService
from storefront.services.location_service import LocationService

__all__ = [
    "TrackingService",
    "AddressService",
    "PermissionService",
    "OrderService",
    "LocationService",
]
