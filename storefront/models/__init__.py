# Import every model so Base.metadata sees all tables
from storefront.models.user import User, UserRoleType
from storefront.models.role import Role
from storefront.models.permission import Permission, RolePermission
from storefront.models.location import VietnameseLocation, LocationType
from storefront.models.address import Address, AddressLabel
from storefront.models.order import (
    Order, OrderItem, OrderStatus, PaymentStatus, PaymentMethod,
)
from storefront.models.tracking import (
    TrackingStep, TrackingDetail,
    TrackingStepName, TrackingStepStatus, TrackingIssueType,
    TRACKING_STEPS, step_name_for,
)

__all__ = [
    "User",
    "UserRoleType",
    "Role",
    "Permission",
    "RolePermission",
    "VietnameseLocation",
    "LocationType",
    "Address",
    "AddressLabel",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "PaymentMethod",
    "TrackingStep",
    "TrackingDetail",
    "TrackingStepName",
    "TrackingStepStatus",
    "TrackingIssueType",
    "TRACKING_STEPS",
    "step_name_for",
]
