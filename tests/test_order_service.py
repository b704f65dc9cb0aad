import pytest
from unittest.mock import patch
from uuid import uuid4

from foodflow.core.exceptions import BusinessRuleError, NotAuthorized, OrderNotFound, OtpRequired
from foodflow.core.security import Principal
from foodflow.models.order import Order
from foodflow.schemas.order import AdminOrderUpdate
from foodflow.services import order_service
from foodflow.workflow import InvalidTransition, OrderStatus, Role

from conftest import RIDER_ID


async def test_listing_is_scoped_by_role(make_order, customer, kitchen, rider, admin):
    mine = await make_order()
    assigned = await make_order(status=OrderStatus.READY_FOR_PICKUP, rider_id=RIDER_ID)
    await make_order(customer_id="someone-else")

    customer_ids = {o.id for o in await order_service.list_orders(customer)}
    assert customer_ids == {mine.id, assigned.id}
    assert len(await order_service.list_orders(kitchen)) == 3
    assert [o.id for o in await order_service.list_orders(rider)] == [assigned.id]
    assert len(await order_service.list_orders(admin)) == 3


async def test_admin_listing_filters(make_order, admin):
    pending = await make_order()
    await make_order(status=OrderStatus.DELIVERED)

    by_status = await order_service.list_orders(admin, status=OrderStatus.PENDING)
    assert [o.id for o in by_status] == [pending.id]
    by_phone = await order_service.list_orders(admin, q="99999")
    assert len(by_phone) == 2
    assert await order_service.list_orders(admin, q=pending.order_number.lower()) != []


async def test_restaurant_accepts_then_marks_ready(make_order, kitchen):
    order = await make_order()

    order = await order_service.update_order_status(kitchen, order.id, OrderStatus.PREPARING)
    assert order.status == OrderStatus.PREPARING
    order = await order_service.update_order_status(kitchen, order.id, OrderStatus.READY_FOR_PICKUP)

    stored = await Order.get(id=order.id)
    assert stored.status == OrderStatus.READY_FOR_PICKUP


async def test_restaurant_reject_records_reason(make_order, kitchen):
    order = await make_order()
    order = await order_service.update_order_status(kitchen, order.id, OrderStatus.CANCELLED)
    assert order.cancellation_reason == "Rejected by restaurant"
    assert order.cancelled_at is not None


async def test_illegal_transition_leaves_order_untouched(make_order, kitchen):
    order = await make_order()
    with pytest.raises(InvalidTransition):
        await order_service.update_order_status(kitchen, order.id, OrderStatus.DELIVERED)
    assert (await Order.get(id=order.id)).status == OrderStatus.PENDING


async def test_terminal_order_is_final(make_order, kitchen):
    order = await make_order(status=OrderStatus.DELIVERED)
    with pytest.raises(InvalidTransition) as excinfo:
        await order_service.update_order_status(kitchen, order.id, OrderStatus.PREPARING)
    assert "final state" in str(excinfo.value)


async def test_other_restaurant_cannot_see_order(make_order):
    order = await make_order()
    stranger = Principal(Role.RESTAURANT, str(uuid4()))
    with pytest.raises(OrderNotFound):
        await order_service.update_order_status(stranger, order.id, OrderStatus.PREPARING)


async def test_customer_cannot_use_status_endpoint(make_order, customer):
    order = await make_order()
    with pytest.raises(NotAuthorized):
        await order_service.update_order_status(customer, order.id, OrderStatus.CANCELLED)


async def test_customer_cancel_pending_and_confirmed(make_order, customer):
    for status in (OrderStatus.PENDING, OrderStatus.CONFIRMED):
        order = await make_order(status=status)
        cancelled = await order_service.cancel_order(customer, order.id)
        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.cancellation_reason == "Cancelled by customer"


async def test_customer_cannot_cancel_preparing(make_order, customer):
    order = await make_order(status=OrderStatus.PREPARING)
    with pytest.raises(BusinessRuleError) as excinfo:
        await order_service.cancel_order(customer, order.id)
    assert "cannot be cancelled" in str(excinfo.value)


async def test_pick_up_issues_otp_and_delivery_needs_it(make_order, rider):
    order = await make_order(status=OrderStatus.READY_FOR_PICKUP, rider_id=RIDER_ID)

    order = await order_service.update_order_status(rider, order.id, OrderStatus.OUT_FOR_DELIVERY)
    assert len(order.delivery_otp) == 6 and order.delivery_otp.isdigit()

    with pytest.raises(OtpRequired):
        await order_service.update_order_status(rider, order.id, OrderStatus.DELIVERED)

    delivered = await order_service.verify_delivery_otp(rider, order.id, order.delivery_otp)
    assert delivered.status == OrderStatus.DELIVERED
    assert delivered.otp_used is True
    assert delivered.delivered_at is not None


async def test_delivery_without_otp_when_policy_off(make_order, rider):
    order = await make_order(status=OrderStatus.OUT_FOR_DELIVERY, rider_id=RIDER_ID)
    with patch("foodflow.services.order_service.REQUIRE_DELIVERY_OTP", False):
        delivered = await order_service.update_order_status(rider, order.id, OrderStatus.DELIVERED)
    assert delivered.status == OrderStatus.DELIVERED


async def test_wrong_otp_counts_attempts_and_locks(make_order, rider):
    order = await make_order(status=OrderStatus.OUT_FOR_DELIVERY, rider_id=RIDER_ID, delivery_otp="123456")

    for remaining in (2, 1, 0):
        with pytest.raises(BusinessRuleError) as excinfo:
            await order_service.verify_delivery_otp(rider, order.id, "000000")
        assert f"{remaining} attempts remaining" in str(excinfo.value)

    with pytest.raises(BusinessRuleError) as excinfo:
        await order_service.verify_delivery_otp(rider, order.id, "123456")
    assert "Maximum OTP attempts" in str(excinfo.value)
    assert (await Order.get(id=order.id)).otp_attempts == 3


async def test_resend_otp_resets_attempts(make_order, rider):
    order = await make_order(
        status=OrderStatus.OUT_FOR_DELIVERY, rider_id=RIDER_ID, delivery_otp="123456", otp_attempts=3
    )
    await order_service.resend_delivery_otp(rider, order.id)
    stored = await Order.get(id=order.id)
    assert stored.otp_attempts == 0
    assert stored.delivery_otp and len(stored.delivery_otp) == 6


async def test_resend_otp_requires_out_for_delivery(make_order, rider):
    order = await make_order(status=OrderStatus.READY_FOR_PICKUP, rider_id=RIDER_ID)
    with pytest.raises(BusinessRuleError):
        await order_service.resend_delivery_otp(rider, order.id)


async def test_admin_assigns_rider_and_overrides_status(make_order, admin):
    order = await make_order(status=OrderStatus.PREPARING)
    updated = await order_service.admin_update_order(
        admin, order.id, AdminOrderUpdate(assigned_rider_id=RIDER_ID, status=OrderStatus.READY_FOR_PICKUP)
    )
    assert updated.assigned_rider_id == RIDER_ID
    assert updated.status == OrderStatus.READY_FOR_PICKUP


async def test_admin_cannot_reopen_terminal_order(make_order, admin):
    order = await make_order(status=OrderStatus.CANCELLED)
    with pytest.raises(InvalidTransition):
        await order_service.admin_update_order(admin, order.id, AdminOrderUpdate(status=OrderStatus.PENDING))


async def test_get_order_hides_foreign_orders(make_order, customer):
    order = await make_order(customer_id="someone-else")
    with pytest.raises(OrderNotFound):
        await order_service.get_order(customer, order.id)
