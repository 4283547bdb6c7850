"""
Order cancellation rules.

Customers may cancel only unpaid cash-on-delivery orders that have not
left the warehouse. Tracking progress decides what "left" means.
"""

from typing import Tuple, Dict, Any
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.core.exceptions import StorefrontError, NotFoundError, BusinessRuleError
from storefront.database import transaction
from storefront.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from storefront.models.tracking import TrackingStepName

logger = logging.getLogger(__name__)


# How a completed step reads in a refusal message
STEP_STAGE_LABELS = {
    TrackingStepName.PICKED_UP.value: "has been picked up by the carrier",
    TrackingStepName.IN_TRANSIT.value: "is in transit",
    TrackingStepName.OUT_FOR_DELIVERY.value: "is out for delivery",
    TrackingStepName.DELIVERED.value: "has been delivered",
}


def check_cancellation(order: Order) -> Tuple[bool, str]:
    """
    Decide whether a customer may cancel the order.

    `order.tracking_steps` must be loaded.

    Returns:
        (can_cancel, reason)
    """
    if order.status == OrderStatus.CANCELLED.value:
        return False, "Order is already cancelled"

    if order.status == OrderStatus.DELIVERED.value:
        return False, "Order has been delivered and cannot be cancelled"

    if order.payment_method != PaymentMethod.COD.value:
        return False, "Only cash-on-delivery orders can be cancelled"

    if order.payment_status == PaymentStatus.PAID.value:
        return False, "Order is already paid and cannot be cancelled"

    if order.tracking_steps:
        completed = [step for step in order.tracking_steps if step.is_completed]
        if not completed:
            return True, "Order has not been processed yet"

        latest = max(completed, key=lambda step: step.step_number)
        if latest.step_name == TrackingStepName.PREPARING.value:
            return True, "Order is still being prepared for shipping"

        stage = STEP_STAGE_LABELS.get(latest.step_name, f"reached step '{latest.step_name}'")
        return False, f"Order {stage} and cannot be cancelled"

    # Orders without tracking fall back to the order status
    if order.status not in (OrderStatus.PENDING.value, OrderStatus.PROCESSING.value):
        return False, "Order is not in a cancellable state"

    return True, "Order can be cancelled"


class OrderService:
    """Customer-facing order operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_owned_order(
        self,
        order_id: uuid.UUID,
        user_id: uuid.UUID,
        for_update: bool = False
    ) -> Order:
        stmt = (
            select(Order)
            .options(selectinload(Order.tracking_steps))
            .where(Order.id == order_id, Order.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()

        order = (await self.db.execute(stmt)).scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found", {"order_id": str(order_id)})
        return order

    async def get_cancellation_status(self, order_id: uuid.UUID, user_id: uuid.UUID) -> Dict[str, Any]:
        order = await self._get_owned_order(order_id, user_id)
        can_cancel, reason = check_cancellation(order)
        return {
            "order_id": order.id,
            "order_number": order.order_number,
            "can_cancel": can_cancel,
            "reason": reason,
            "order_status": order.status,
        }

    async def cancel_order(self, order_id: uuid.UUID, user_id: uuid.UUID) -> Order:
        """
        Cancel an order on behalf of its owner.

        Raises:
            NotFoundError: order absent or owned by someone else
            BusinessRuleError: order can no longer be cancelled
        """
        try:
            async with transaction(self.db):
                order = await self._get_owned_order(order_id, user_id, for_update=True)

                can_cancel, reason = check_cancellation(order)
                if not can_cancel:
                    raise BusinessRuleError(
                        reason,
                        {"order_id": str(order.id), "order_status": order.status}
                    )

                order.status = OrderStatus.CANCELLED.value
        except StorefrontError:
            raise
        except Exception as e:
            logger.error(f"Failed to cancel order {order_id}: {e}")
            raise

        logger.info(f"Order {order.order_number} cancelled by user {user_id}")
        return order
