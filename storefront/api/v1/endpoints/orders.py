import uuid

from fastapi import APIRouter

from storefront.api.deps import DB, CurrentUser
from storefront.schemas.order import CancellationStatusResponse, OrderCancelResponse
from storefront.services.order_service import OrderService


router = APIRouter(tags=["Orders"])


@router.get("/{order_id}/cancellation-status", response_model=CancellationStatusResponse)
async def get_cancellation_status(order_id: uuid.UUID, db: DB, current_user: CurrentUser):
    """Whether the caller may still cancel the order, and why."""
    return CancellationStatusResponse(
        **await OrderService(db).get_cancellation_status(order_id, current_user.id)
    )


@router.post("/{order_id}/cancel", response_model=OrderCancelResponse)
async def cancel_order(order_id: uuid.UUID, db: DB, current_user: CurrentUser):
    order = await OrderService(db).cancel_order(order_id, current_user.id)
    return OrderCancelResponse(id=order.id, order_number=order.order_number, status=order.status)
