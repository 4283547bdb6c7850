"""
Order Tracking Service

Owns the five-step fulfillment lifecycle of an order:
- Initializing the fixed set of steps (eagerly by an admin or lazily on first view)
- Updating a step and its detail
- Cascading step completion onto order status and COD payment status
- Admin listing and statistics
"""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.config import settings
from storefront.core.exceptions import StorefrontError, NotFoundError, ConflictError
from storefront.database import transaction
from storefront.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from storefront.models.tracking import (
    TrackingStep,
    TrackingDetail,
    TrackingStepName,
    TrackingStepStatus,
    TRACKING_STEPS,
)
from storefront.schemas.tracking import TrackingStepUpdate

logger = logging.getLogger(__name__)


class TrackingService:
    """Service for order tracking operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== HELPERS ====================

    async def _lock_order(self, order_id: uuid.UUID) -> Order:
        """Load the order row with a write lock held until the transaction ends."""
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found", {"order_id": str(order_id)})
        return order

    async def _count_steps(self, order_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(TrackingStep.id)).where(TrackingStep.order_id == order_id)
        )
        return result.scalar() or 0

    async def _load_step(self, step_id: uuid.UUID) -> TrackingStep:
        result = await self.db.execute(
            select(TrackingStep)
            .options(
                selectinload(TrackingStep.detail),
                selectinload(TrackingStep.admin),
            )
            .where(TrackingStep.id == step_id)
            .execution_options(populate_existing=True)
        )
        step = result.scalar_one_or_none()
        if not step:
            raise NotFoundError("Tracking step not found", {"step_id": str(step_id)})
        return step

    async def _load_tracked_order(self, order_id: uuid.UUID) -> Order:
        result = await self.db.execute(
            select(Order)
            .options(
                selectinload(Order.items),
                selectinload(Order.tracking_steps).options(
                    selectinload(TrackingStep.detail),
                    selectinload(TrackingStep.admin),
                ),
            )
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    # ==================== INITIALIZATION ====================

    async def initialize_tracking(
        self,
        order_id: uuid.UUID,
        admin_id: Optional[uuid.UUID] = None
    ) -> List[TrackingStep]:
        """
        Create the five tracking steps of an order.

        Step 1 (preparing) starts completed with the warehouse narrative as its
        detail; steps 2-5 start pending. Either all rows are written or none.

        Raises:
            NotFoundError: order does not exist
            ConflictError: tracking already initialized
        """
        try:
            async with transaction(self.db):
                await self._lock_order(order_id)

                if await self._count_steps(order_id):
                    raise ConflictError(
                        "Tracking already initialized for this order",
                        {"order_id": str(order_id)}
                    )

                now = datetime.now(timezone.utc)
                steps = []
                for step_number, step_name in TRACKING_STEPS:
                    is_first = step_number == 1
                    steps.append(TrackingStep(
                        order_id=order_id,
                        step_number=step_number,
                        step_name=step_name.value,
                        status=(
                            TrackingStepStatus.COMPLETED.value if is_first
                            else TrackingStepStatus.PENDING.value
                        ),
                        completed_at=now if is_first else None,
                        admin_id=admin_id,
                    ))

                steps[0].detail = TrackingDetail(
                    location=settings.TRACKING_ORIGIN_LOCATION,
                    description=settings.TRACKING_ORIGIN_DESCRIPTION,
                    has_issue=False,
                    updated_by_admin=admin_id,
                )
                self.db.add_all(steps)
        except IntegrityError as e:
            # Only a committed set of steps from a concurrent initializer is a conflict
            if not await self._count_steps(order_id):
                logger.error(f"Failed to initialize tracking for order {order_id}: {e.orig}")
                raise
            logger.warning(f"Concurrent tracking initialization for order {order_id}: {e.orig}")
            raise ConflictError(
                "Tracking already initialized for this order",
                {"order_id": str(order_id)}
            )
        except StorefrontError:
            raise
        except Exception as e:
            logger.error(f"Failed to initialize tracking for order {order_id}: {e}")
            raise

        logger.info(f"Tracking initialized for order {order_id}")
        return steps

    async def get_or_create_tracking(self, order_number: str, user_id: uuid.UUID) -> Order:
        """
        Customer view of an order's tracking.

        Initializes tracking on first view. Orders of other users are reported
        as not found.
        """
        result = await self.db.execute(
            select(Order.id).where(
                Order.order_number == order_number,
                Order.user_id == user_id,
            )
        )
        order_id = result.scalar_one_or_none()
        if not order_id:
            raise NotFoundError("Order not found", {"order_number": order_number})

        if not await self._count_steps(order_id):
            try:
                await self.initialize_tracking(order_id)
            except ConflictError:
                logger.info(f"Tracking for order {order_number} initialized concurrently")

        return await self._load_tracked_order(order_id)

    # ==================== STEP UPDATE ====================

    async def update_step(
        self,
        step_id: uuid.UUID,
        admin_id: uuid.UUID,
        patch: TrackingStepUpdate
    ) -> TrackingStep:
        """
        Apply an admin update to a tracking step and its detail.

        The order's current_tracking_step follows the highest completed step,
        so it moves on completion and falls back when that step is reopened.
        Completing the delivered step marks the order delivered and settles
        pending COD payments.
        """
        try:
            async with transaction(self.db):
                step = await self._load_step(step_id)
                order = await self._lock_order(step.order_id)

                step.status = patch.status.value
                step.admin_id = admin_id
                if patch.is_set("estimated_time"):
                    step.estimated_time = patch.estimated_time

                if patch.is_completion:
                    step.completed_at = patch.completed_at or datetime.now(timezone.utc)
                else:
                    step.completed_at = None

                changes = patch.detail_changes()
                if step.detail is None:
                    step.detail = TrackingDetail(updated_by_admin=admin_id, **changes)
                else:
                    for field, value in changes.items():
                        setattr(step.detail, field, value)
                    step.detail.updated_by_admin = admin_id

                await self.db.flush()
                await self._sync_current_step(order)

                if patch.is_completion:
                    self._apply_completion(order, step)
        except StorefrontError:
            raise
        except Exception as e:
            logger.error(f"Failed to update tracking step {step_id}: {e}")
            raise

        return await self._load_step(step_id)

    async def _sync_current_step(self, order: Order) -> None:
        """Point the order at its highest completed step (1 when none is)."""
        result = await self.db.execute(
            select(func.max(TrackingStep.step_number)).where(
                TrackingStep.order_id == order.id,
                TrackingStep.status == TrackingStepStatus.COMPLETED.value,
            )
        )
        current = result.scalar() or 1
        if current != order.current_tracking_step:
            logger.info(
                f"Order {order.order_number} current tracking step "
                f"{order.current_tracking_step} -> {current}"
            )
            order.current_tracking_step = current

    def _apply_completion(self, order: Order, step: TrackingStep) -> None:
        logger.info(
            f"Order {order.order_number} completed tracking step "
            f"{step.step_number} ({step.step_name})"
        )

        if step.step_name != TrackingStepName.DELIVERED.value:
            return

        order.status = OrderStatus.DELIVERED.value
        if (
            order.payment_method == PaymentMethod.COD.value
            and order.payment_status == PaymentStatus.PENDING.value
        ):
            order.payment_status = PaymentStatus.PAID.value
            logger.info(f"COD payment collected for order {order.order_number}")
        logger.info(f"Order {order.order_number} marked delivered")

    # ==================== ADMIN VIEWS ====================

    async def list_for_admin(
        self,
        status: Optional[str] = None,
        step_name: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """
        Paginated orders for the tracking dashboard, newest first.

        With `step_name`, orders lacking that step are left out and each order
        carries only its matching step.
        """
        stmt = select(Order)
        count_stmt = select(func.count(Order.id))

        if status:
            stmt = stmt.where(Order.status == status)
            count_stmt = count_stmt.where(Order.status == status)

        if step_name:
            has_step = (
                select(TrackingStep.id)
                .where(
                    TrackingStep.order_id == Order.id,
                    TrackingStep.step_name == step_name,
                )
                .exists()
            )
            stmt = stmt.where(has_step)
            count_stmt = count_stmt.where(has_step)
            steps_loader = selectinload(
                Order.tracking_steps.and_(TrackingStep.step_name == step_name)
            )
        else:
            steps_loader = selectinload(Order.tracking_steps)

        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            stmt.options(
                selectinload(Order.user),
                steps_loader.options(
                    selectinload(TrackingStep.detail),
                    selectinload(TrackingStep.admin),
                ),
            )
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        orders = result.scalars().all()

        return {
            "items": orders,
            "total": total,
            "page": page,
            "size": limit,
            "pages": (total + limit - 1) // limit if limit else 0,
        }

    async def statistics(self) -> Dict[str, List[Dict[str, Any]]]:
        """Step counts by (step_name, status) and open issue counts by type."""
        step_rows = await self.db.execute(
            select(
                TrackingStep.step_name,
                TrackingStep.status,
                func.count(TrackingStep.id).label("count"),
            )
            .group_by(TrackingStep.step_name, TrackingStep.status)
            .order_by(TrackingStep.step_name, TrackingStep.status)
        )
        issue_rows = await self.db.execute(
            select(
                TrackingDetail.issue_type,
                func.count(TrackingDetail.id).label("count"),
            )
            .where(TrackingDetail.has_issue == True)
            .group_by(TrackingDetail.issue_type)
        )

        return {
            "step_stats": [
                {"step_name": step_name, "status": status, "count": count}
                for step_name, status, count in step_rows.all()
            ],
            "issue_stats": [
                {"issue_type": issue_type, "count": count}
                for issue_type, count in issue_rows.all()
            ],
        }
