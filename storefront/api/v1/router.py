from fastapi import APIRouter

from storefront.api.v1.endpoints import (
    # Order Tracking
    tracking,
    # Customer self-service
    addresses,
    orders,
    # Reference data
    locations,
)

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Order Tracking ====================
api_router.include_router(
    tracking.router,
    prefix="/tracking",
    tags=["Order Tracking"]
)

# ==================== Addresses ====================
api_router.include_router(
    addresses.router,
    prefix="/users/addresses",
    tags=["Addresses"]
)

# ==================== Orders ====================
api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"]
)

# ==================== Locations (Public) ====================
api_router.include_router(
    locations.router,
    prefix="/locations",
    tags=["Locations"]
)
