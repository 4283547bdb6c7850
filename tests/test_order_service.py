"""Customer cancellation rules driven by payment and tracking progress."""
import uuid

import pytest

from storefront.core.exceptions import BusinessRuleError, NotFoundError
from storefront.schemas.tracking import TrackingStepUpdate
from storefront.services.order_service import OrderService
from storefront.services.tracking_service import TrackingService


class TestCancellationStatus:

    async def _status(self, db, order, user):
        return await OrderService(db).get_cancellation_status(order.id, user.id)

    async def test_untracked_pending_cod_can_cancel(self, db, factory):
        user = await factory.user()
        order = await factory.order(user)

        status = await self._status(db, order, user)

        assert status["can_cancel"] is True
        assert status["order_number"] == order.order_number
        assert status["order_status"] == "pending"

    async def test_untracked_shipped_cannot_cancel(self, db, factory):
        user = await factory.user()
        order = await factory.order(user, status="shipped")

        assert (await self._status(db, order, user))["can_cancel"] is False

    @pytest.mark.parametrize("order_kwargs", [
        {"status": "cancelled"},
        {"status": "delivered"},
        {"payment_method": "card"},
        {"payment_status": "paid"},
    ])
    async def test_blocked_before_tracking_is_considered(self, db, factory, order_kwargs):
        user = await factory.user()
        order = await factory.order(user, **order_kwargs)

        assert (await self._status(db, order, user))["can_cancel"] is False

    async def test_only_preparing_completed_can_cancel(self, db, factory):
        user = await factory.user()
        order = await factory.order(user)
        await TrackingService(db).initialize_tracking(order.id)

        status = await self._status(db, order, user)

        assert status["can_cancel"] is True

    async def test_picked_up_cannot_cancel(self, db, factory):
        user = await factory.user()
        admin = await factory.user(role="admin")
        order = await factory.order(user)
        steps = await TrackingService(db).initialize_tracking(order.id)
        await TrackingService(db).update_step(steps[1].id, admin.id, TrackingStepUpdate(status="completed"))

        status = await self._status(db, order, user)

        assert status["can_cancel"] is False
        assert "picked up" in status["reason"]

    async def test_no_completed_step_can_cancel(self, db, factory):
        user = await factory.user()
        admin = await factory.user(role="admin")
        order = await factory.order(user, status="processing")
        steps = await TrackingService(db).initialize_tracking(order.id)
        await TrackingService(db).update_step(steps[0].id, admin.id, TrackingStepUpdate(status="on_hold"))

        status = await self._status(db, order, user)

        assert status["can_cancel"] is True

    async def test_other_users_order_is_not_found(self, db, factory):
        owner = await factory.user()
        stranger = await factory.user()
        order = await factory.order(owner)

        with pytest.raises(NotFoundError):
            await self._status(db, order, stranger)


class TestCancelOrder:

    async def test_cancel_sets_status(self, db, factory):
        user = await factory.user()
        order = await factory.order(user)

        cancelled = await OrderService(db).cancel_order(order.id, user.id)

        assert cancelled.status == "cancelled"
        await db.refresh(order)
        assert order.status == "cancelled"

    async def test_refusal_leaves_order_unchanged(self, db, factory):
        user = await factory.user()
        order = await factory.order(user, payment_method="e_wallet")

        with pytest.raises(BusinessRuleError) as exc_info:
            await OrderService(db).cancel_order(order.id, user.id)

        assert exc_info.value.details["order_status"] == "pending"
        await db.refresh(order)
        assert order.status == "pending"

    async def test_cancel_twice(self, db, factory):
        user = await factory.user()
        order = await factory.order(user)
        service = OrderService(db)
        await service.cancel_order(order.id, user.id)

        with pytest.raises(BusinessRuleError):
            await service.cancel_order(order.id, user.id)

    async def test_unknown_order(self, db, factory):
        user = await factory.user()

        with pytest.raises(NotFoundError):
            await OrderService(db).cancel_order(uuid.uuid4(), user.id)
