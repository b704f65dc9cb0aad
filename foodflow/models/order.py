import random
import string
import time
import uuid

from tortoise import fields, models

from foodflow.workflow import OrderStatus


def generate_order_number() -> str:
    """Human-facing order reference, e.g. ORD482913K7Q."""
    stamp = str(int(time.time() * 1000))[-6:]
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=3))
    return f"ORD{stamp}{suffix}"


class Restaurant(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    name = fields.CharField(max_length=255)
    phone = fields.CharField(max_length=32, null=True)
    is_active = fields.BooleanField(default=True)
    # Running mean of overall ratings, refreshed on every submission
    rating = fields.FloatField(default=0)
    total_ratings = fields.IntField(default=0)

    class Meta:
        table = "restaurants"
        indexes = [
            ("is_active",),
        ]


class MenuItem(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="menu_items")
    name = fields.CharField(max_length=255)
    price = fields.DecimalField(max_digits=12, decimal_places=2)
    is_active = fields.BooleanField(default=True)

    class Meta:
        table = "menu_items"
        indexes = [
            ("restaurant_id", "is_active"),
        ]


class Order(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order_number = fields.CharField(max_length=32, unique=True, default=generate_order_number)
    customer_id = fields.CharField(max_length=64)
    customer_name = fields.CharField(max_length=255)
    customer_phone = fields.CharField(max_length=32)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="orders")
    assigned_rider_id = fields.CharField(max_length=64, null=True)
    status = fields.CharEnumField(OrderStatus, default=OrderStatus.PENDING)
    total_amount = fields.DecimalField(max_digits=14, decimal_places=2, default=0)
    # street, city, state, zip_code, country, instructions
    delivery_address = fields.JSONField(default=dict)
    kitchen_notes = fields.TextField(null=True)
    cancellation_reason = fields.CharField(max_length=255, null=True)
    cancelled_at = fields.DatetimeField(null=True)
    delivered_at = fields.DatetimeField(null=True)
    # Delivery handover code, issued when the rider picks the order up
    delivery_otp = fields.CharField(max_length=6, null=True)
    otp_used = fields.BooleanField(default=False)
    otp_attempts = fields.IntField(default=0)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "orders"
        indexes = [
            ("restaurant_id",),
            ("customer_id",),
            ("assigned_rider_id",),
            ("status", "created_at"),
        ]


class OrderItem(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order = fields.ForeignKeyField("models.Order", related_name="items")
    menu_item = fields.ForeignKeyField("models.MenuItem", related_name="order_items")
    name = fields.CharField(max_length=255) # Snapshot of the menu item name at checkout
    quantity = fields.IntField()
    unit_price = fields.DecimalField(max_digits=12, decimal_places=2)
    line_total = fields.DecimalField(max_digits=14, decimal_places=2)
    position = fields.IntField(default=0)

    class Meta:
        table = "order_items"
        indexes = [
            ("order_id",),
        ]
