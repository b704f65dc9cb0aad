import logging
import secrets
from typing import List, Optional
from uuid import UUID

from tortoise import timezone
from tortoise.expressions import Q
from tortoise.transactions import in_transaction

from foodflow.core.config import OTP_MAX_ATTEMPTS, REQUIRE_DELIVERY_OTP
from foodflow.core.exceptions import BusinessRuleError, NotAuthorized, OrderNotFound, OtpRequired
from foodflow.core.security import Principal
from foodflow.models.order import Order
from foodflow.schemas.order import AdminOrderUpdate
from foodflow.workflow import (
    Action,
    InvalidTransition,
    OrderStatus,
    Role,
    TERMINAL_STATUSES,
    action_for,
)

log = logging.getLogger("foodflow.orders")


def _scoped(principal: Principal, **filters):
    """Order queryset restricted to the rows the principal may see."""
    if principal.role == Role.CUSTOMER:
        filters["customer_id"] = principal.subject_id
    elif principal.role == Role.RESTAURANT:
        filters["restaurant_id"] = principal.subject_id
    elif principal.role == Role.DELIVERY:
        filters["assigned_rider_id"] = principal.subject_id
    return Order.filter(**filters)


def generate_otp() -> str:
    return str(100000 + secrets.randbelow(900000))


def _apply_status(order: Order, new_status: OrderStatus, reason: Optional[str] = None) -> None:
    """Sets the status and the timestamps that go with terminal states."""
    order.status = new_status
    if new_status == OrderStatus.DELIVERED:
        order.delivered_at = timezone.now()
    elif new_status == OrderStatus.CANCELLED:
        order.cancelled_at = timezone.now()
        order.cancellation_reason = reason
    elif new_status == OrderStatus.OUT_FOR_DELIVERY:
        _issue_otp(order)


def _issue_otp(order: Order) -> None:
    order.delivery_otp = generate_otp()
    order.otp_used = False
    order.otp_attempts = 0
    log.info(f"Delivery OTP issued for order {order.order_number}.")


async def list_orders(
    principal: Principal,
    status: Optional[OrderStatus] = None,
    q: Optional[str] = None,
) -> List[Order]:
    """
    Returns the orders visible to the principal, newest first.
    `status` and `q` narrow the set further (used by the admin listing).
    """
    query = _scoped(principal)
    if status:
        query = query.filter(status=status)
    if q:
        query = query.filter(
            Q(order_number__icontains=q) | Q(customer_name__icontains=q) | Q(customer_phone__icontains=q)
        )
    return await query.order_by("-created_at").prefetch_related("items")


async def get_order(principal: Principal, order_id: UUID) -> Order:
    order = await _scoped(principal, id=order_id).prefetch_related("items").first()
    if not order:
        raise OrderNotFound("Order not found")
    return order


async def update_order_status(principal: Principal, order_id: UUID, new_status: OrderStatus) -> Order:
    """
    Moves an order to `new_status` on behalf of a restaurant or rider.
    The transition table is the only authority on what is allowed.
    """
    if principal.role not in (Role.RESTAURANT, Role.DELIVERY):
        raise NotAuthorized(f"{principal.role.value} cannot update order status here.")

    async with in_transaction() as conn:
        order = await _scoped(principal, id=order_id).using_db(conn).first()
        if not order:
            raise OrderNotFound("Order not found")

        action = action_for(principal.role, order.status, new_status)
        if action == Action.MARK_DELIVERED and REQUIRE_DELIVERY_OTP:
            raise OtpRequired("Delivery OTP verification required to mark this order delivered.")

        old_status = order.status
        reason = "Rejected by restaurant" if action == Action.REJECT else None
        _apply_status(order, new_status, reason)
        await order.save(using_db=conn)

    log.info(f"Order {order.order_number}: {old_status.value} -> {new_status.value} by {principal.role.value}.")
    await order.fetch_related("items")
    return order


async def cancel_order(principal: Principal, order_id: UUID, reason: Optional[str] = None) -> Order:
    """Customer-initiated cancellation, allowed while the order is pending or confirmed."""
    if principal.role != Role.CUSTOMER:
        raise NotAuthorized("Only the ordering customer can cancel an order.")

    async with in_transaction() as conn:
        order = await _scoped(principal, id=order_id).using_db(conn).first()
        if not order:
            raise OrderNotFound("Order not found")
        try:
            action_for(Role.CUSTOMER, order.status, OrderStatus.CANCELLED)
        except InvalidTransition:
            raise BusinessRuleError("Order cannot be cancelled at this stage") from None

        _apply_status(order, OrderStatus.CANCELLED, reason or "Cancelled by customer")
        await order.save(using_db=conn)

    log.info(f"Order {order.order_number} cancelled by customer {principal.subject_id}.")
    await order.fetch_related("items")
    return order


async def verify_delivery_otp(principal: Principal, order_id: UUID, otp: str) -> Order:
    """Rider hands the order over: a correct OTP marks it delivered."""
    if principal.role != Role.DELIVERY:
        raise NotAuthorized("Delivery authentication required")

    async with in_transaction() as conn:
        order = await _scoped(principal, id=order_id).using_db(conn).first()
        if not order:
            raise OrderNotFound("Order not found")
        if order.status != OrderStatus.OUT_FOR_DELIVERY:
            raise BusinessRuleError("Order must be out for delivery to verify OTP")
        if not order.delivery_otp:
            raise BusinessRuleError("No OTP found for this order")
        if order.otp_used:
            raise BusinessRuleError("OTP has already been used")
        if order.otp_attempts >= OTP_MAX_ATTEMPTS:
            raise BusinessRuleError("Maximum OTP attempts exceeded. Please contact support.")

        if otp.strip() != order.delivery_otp:
            order.otp_attempts += 1
            await order.save(update_fields=["otp_attempts", "updated_at"], using_db=conn)
            remaining = OTP_MAX_ATTEMPTS - order.otp_attempts
            log.warning(f"Wrong delivery OTP for order {order.order_number}, {remaining} attempts left.")
            wrong_otp = BusinessRuleError(f"Invalid OTP. {remaining} attempts remaining.")
        else:
            wrong_otp = None
            order.otp_used = True
            _apply_status(order, OrderStatus.DELIVERED)
            await order.save(using_db=conn)

    # Raised outside the transaction so the attempt counter is committed
    if wrong_otp:
        raise wrong_otp

    log.info(f"Order {order.order_number} delivered after OTP verification.")
    await order.fetch_related("items")
    return order


async def resend_delivery_otp(principal: Principal, order_id: UUID) -> Order:
    if principal.role != Role.DELIVERY:
        raise NotAuthorized("Delivery authentication required")

    order = await _scoped(principal, id=order_id).first()
    if not order:
        raise OrderNotFound("Order not found")
    if order.status != OrderStatus.OUT_FOR_DELIVERY:
        raise BusinessRuleError("Order must be out for delivery to resend OTP")

    _issue_otp(order)
    await order.save(update_fields=["delivery_otp", "otp_used", "otp_attempts", "updated_at"])
    return order


async def admin_update_order(principal: Principal, order_id: UUID, update: AdminOrderUpdate) -> Order:
    """
    Admin override of status, rider assignment and kitchen notes.
    Bypasses the role table but still never reopens a terminal order.
    """
    if principal.role != Role.ADMIN:
        raise NotAuthorized("Admin authentication required")

    async with in_transaction() as conn:
        order = await Order.get_or_none(id=order_id).using_db(conn)
        if not order:
            raise OrderNotFound("Order not found")

        if update.status is not None and update.status != order.status:
            if order.status in TERMINAL_STATUSES:
                raise InvalidTransition(
                    f"Order is already in a final state: {order.status.value}. Status cannot be updated."
                )
            _apply_status(order, update.status, "Cancelled by admin")
        if update.assigned_rider_id is not None:
            order.assigned_rider_id = update.assigned_rider_id or None
        if update.kitchen_notes is not None:
            order.kitchen_notes = update.kitchen_notes
        await order.save(using_db=conn)

    log.info(f"Order {order.order_number} updated by admin {principal.subject_id}.")
    await order.fetch_related("items")
    return order
