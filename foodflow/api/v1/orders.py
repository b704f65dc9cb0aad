import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query

from foodflow.api.deps import get_principal, require_role
from foodflow.core.security import Principal
from foodflow.schemas.order import AdminOrderUpdate, CancelRequest, OrderOut, OrderStatusUpdate, OtpVerifyRequest
from foodflow.schemas.response import SuccessResponse
from foodflow.services import order_service
from foodflow.workflow import OrderStatus, Role

router = APIRouter()
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("uvicorn")

customer_only = require_role(Role.CUSTOMER)
restaurant_only = require_role(Role.RESTAURANT)
delivery_only = require_role(Role.DELIVERY)
admin_only = require_role(Role.ADMIN)


def _out(order, principal: Principal) -> dict:
    include_otp = principal.role == Role.CUSTOMER
    return OrderOut.from_model(order, include_otp=include_otp).model_dump(mode="json")


def _listing(orders, principal: Principal) -> SuccessResponse:
    return SuccessResponse(data=[_out(order, principal) for order in orders])


# ----------- Customer -----------

@router.get("", response_model=SuccessResponse)
async def my_orders_endpoint(principal: Principal = Depends(customer_only)):
    """Lists the caller's own orders, newest first."""
    return _listing(await order_service.list_orders(principal), principal)


# ----------- Restaurant (must come before /{order_id}) -----------

@router.get("/restaurant", response_model=SuccessResponse)
async def restaurant_orders_endpoint(principal: Principal = Depends(restaurant_only)):
    return _listing(await order_service.list_orders(principal), principal)


@router.put("/restaurant/{order_id}/status", response_model=SuccessResponse)
async def restaurant_update_status_endpoint(
    order_id: UUID, payload: OrderStatusUpdate, principal: Principal = Depends(restaurant_only)
):
    """Kitchen workflow: accept, reject or mark an order ready for pickup."""
    order = await order_service.update_order_status(principal, order_id, payload.status)
    return SuccessResponse(message="Order status updated", data=_out(order, principal))


# ----------- Delivery -----------

@router.get("/delivery", response_model=SuccessResponse)
async def delivery_orders_endpoint(principal: Principal = Depends(delivery_only)):
    return _listing(await order_service.list_orders(principal), principal)


@router.put("/delivery/{order_id}/status", response_model=SuccessResponse)
async def delivery_update_status_endpoint(
    order_id: UUID, payload: OrderStatusUpdate, principal: Principal = Depends(delivery_only)
):
    order = await order_service.update_order_status(principal, order_id, payload.status)
    message = "Delivery status updated"
    if order.status == OrderStatus.OUT_FOR_DELIVERY:
        message = "Delivery status updated. OTP sent to customer."
    return SuccessResponse(message=message, data=_out(order, principal))


@router.post("/delivery/{order_id}/verify-otp", response_model=SuccessResponse)
async def verify_otp_endpoint(
    order_id: UUID, payload: OtpVerifyRequest, principal: Principal = Depends(delivery_only)
):
    order = await order_service.verify_delivery_otp(principal, order_id, payload.otp)
    return SuccessResponse(message="OTP verified. Order delivered.", data=_out(order, principal))


@router.post("/delivery/{order_id}/resend-otp", response_model=SuccessResponse)
async def resend_otp_endpoint(order_id: UUID, principal: Principal = Depends(delivery_only)):
    await order_service.resend_delivery_otp(principal, order_id)
    return SuccessResponse(message="New OTP sent successfully")


# ----------- Admin -----------

@router.get("/admin/all", response_model=SuccessResponse)
async def admin_orders_endpoint(
    status: Optional[OrderStatus] = Query(None),
    q: Optional[str] = Query(None, max_length=100),
    principal: Principal = Depends(admin_only),
):
    """All orders, optionally filtered by status and by order number, customer name or phone."""
    return _listing(await order_service.list_orders(principal, status=status, q=q), principal)


@router.put("/admin/{order_id}", response_model=SuccessResponse)
async def admin_update_endpoint(
    order_id: UUID, payload: AdminOrderUpdate, principal: Principal = Depends(admin_only)
):
    order = await order_service.admin_update_order(principal, order_id, payload)
    return SuccessResponse(message="Order updated", data=_out(order, principal))


# ----------- Any role (after the fixed routes) -----------

@router.get("/{order_id}", response_model=SuccessResponse)
async def get_order_endpoint(order_id: UUID, principal: Principal = Depends(get_principal)):
    """Fetches one order, if it is visible to the caller."""
    order = await order_service.get_order(principal, order_id)
    return SuccessResponse(data=_out(order, principal))


@router.post("/{order_id}/cancel", response_model=SuccessResponse)
async def cancel_order_endpoint(
    order_id: UUID,
    payload: Optional[CancelRequest] = Body(None),
    principal: Principal = Depends(customer_only),
):
    order = await order_service.cancel_order(principal, order_id, payload.reason if payload else None)
    log.info(f"Order {order.order_number} cancelled through the API.")
    return SuccessResponse(message="Order cancelled", data=_out(order, principal))
