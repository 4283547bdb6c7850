"""
Order Tracking API Endpoints

Customer view of an order's five-step tracking timeline, plus the admin
dashboard used to initialize and advance the steps.
"""

from typing import Optional, List
import uuid
import logging

from fastapi import APIRouter, status, Query, Depends

from storefront.api.deps import DB, CurrentUser, require_permission
from storefront.models.order import OrderStatus
from storefront.models.tracking import TrackingStepName
from storefront.schemas.tracking import (
    OrderTrackingResponse,
    TrackedOrder,
    TrackingStepResponse,
    TrackingStepUpdate,
    StepInitResponse,
    AdminTrackedOrder,
    AdminTrackingListResponse,
    TrackingStatisticsResponse,
)
from storefront.services.tracking_service import TrackingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Order Tracking"])


@router.get("/order/{order_number}", response_model=OrderTrackingResponse)
async def get_order_tracking(
    order_number: str,
    db: DB,
    current_user: CurrentUser,
):
    """
    Get the tracking timeline of one of the caller's orders.
    Tracking is created on first view.
    """
    order = await TrackingService(db).get_or_create_tracking(order_number, current_user.id)

    return OrderTrackingResponse(
        order=TrackedOrder.model_validate(order),
        tracking_steps=[TrackingStepResponse.model_validate(step) for step in order.tracking_steps],
    )


@router.get(
    "/admin/orders",
    response_model=AdminTrackingListResponse,
    dependencies=[Depends(require_permission("tracking", "read"))]
)
async def list_tracked_orders(
    db: DB,
    order_status: Optional[OrderStatus] = Query(None, alias="status", description="Filter by order status"),
    step_name: Optional[TrackingStepName] = Query(None, description="Only orders having this step"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Page size"),
):
    """
    Get paginated orders for the tracking dashboard, newest first.
    Requires: tracking:read permission
    """
    result = await TrackingService(db).list_for_admin(
        status=order_status.value if order_status else None,
        step_name=step_name.value if step_name else None,
        page=page,
        limit=limit,
    )

    return AdminTrackingListResponse(
        items=[AdminTrackedOrder.model_validate(order) for order in result["items"]],
        total=result["total"],
        page=result["page"],
        size=result["size"],
        pages=result["pages"],
    )


@router.post(
    "/admin/orders/{order_id}/initialize",
    response_model=List[StepInitResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission("tracking", "create"))]
)
async def initialize_order_tracking(
    order_id: uuid.UUID,
    db: DB,
    current_user: CurrentUser,
):
    """
    Create the five tracking steps of an order.
    Requires: tracking:create permission
    """
    steps = await TrackingService(db).initialize_tracking(order_id, admin_id=current_user.id)
    return [StepInitResponse.model_validate(step) for step in steps]


@router.put(
    "/admin/steps/{step_id}",
    response_model=TrackingStepResponse,
    dependencies=[Depends(require_permission("tracking", "update"))]
)
async def update_tracking_step(
    step_id: uuid.UUID,
    data: TrackingStepUpdate,
    db: DB,
    current_user: CurrentUser,
):
    """
    Update a tracking step and its detail.
    Requires: tracking:update permission
    """
    step = await TrackingService(db).update_step(step_id, current_user.id, data)
    return TrackingStepResponse.model_validate(step)


@router.get(
    "/admin/statistics",
    response_model=TrackingStatisticsResponse,
    dependencies=[Depends(require_permission("tracking", "read"))]
)
async def get_tracking_statistics(db: DB):
    """
    Step counts by name and status, and open issues by type.
    Requires: tracking:read permission
    """
    return TrackingStatisticsResponse(**await TrackingService(db).statistics())
