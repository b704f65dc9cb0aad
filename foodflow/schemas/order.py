from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from pydantic import BaseModel, Field

from foodflow.workflow import OrderStatus


class DeliveryAddress(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str = "India"
    instructions: Optional[str] = None


class OrderItemOut(BaseModel):
    """Schema for a single line of an order."""
    menu_item_id: uuid.UUID
    name: str
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0)
    line_total: Decimal = Field(..., ge=0)


class OrderOut(BaseModel):
    """Schema for an order as seen by any role."""
    id: uuid.UUID
    order_number: str
    status: OrderStatus
    items: List[OrderItemOut] = Field(default_factory=list)
    total: Decimal = Field(..., ge=0)
    created_at: datetime
    restaurant_id: uuid.UUID
    customer_id: str
    customer_name: str = ""
    customer_phone: str = ""
    delivery_address: DeliveryAddress = Field(default_factory=DeliveryAddress)
    assigned_rider_id: Optional[str] = None
    kitchen_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    delivered_at: Optional[datetime] = None
    delivery_otp: Optional[str] = None # Only ever sent to the ordering customer

    @classmethod
    def from_model(cls, order, include_otp: bool = False) -> "OrderOut":
        """Builds the schema from a Tortoise Order whose items are prefetched."""
        return cls(
            id=order.id,
            order_number=order.order_number,
            status=order.status,
            items=[
                OrderItemOut(
                    menu_item_id=item.menu_item_id,
                    name=item.name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                )
                for item in sorted(order.items, key=lambda i: i.position)
            ],
            total=order.total_amount,
            created_at=order.created_at,
            restaurant_id=order.restaurant_id,
            customer_id=order.customer_id,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            delivery_address=DeliveryAddress(**(order.delivery_address or {})),
            assigned_rider_id=order.assigned_rider_id,
            kitchen_notes=order.kitchen_notes,
            cancellation_reason=order.cancellation_reason,
            delivered_at=order.delivered_at,
            delivery_otp=order.delivery_otp if include_otp and not order.otp_used else None,
        )


class OrderStatusUpdate(BaseModel):
    """Schema for a role-scoped status change."""
    status: OrderStatus


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class OtpVerifyRequest(BaseModel):
    otp: str = Field(..., min_length=1, max_length=6)


class AdminOrderUpdate(BaseModel):
    """Admin override; every field is optional and only the given ones are applied."""
    status: Optional[OrderStatus] = None
    assigned_rider_id: Optional[str] = None
    kitchen_notes: Optional[str] = None
