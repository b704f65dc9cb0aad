from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio

from foodflow.core.db import close_db, init_db
from foodflow.core.security import Principal
from foodflow.models.order import MenuItem, Order, OrderItem, Restaurant
from foodflow.schemas.order import OrderOut
from foodflow.workflow import OrderStatus, Role

CUSTOMER_ID = "customer-1"
RIDER_ID = "rider-1"


# --- DATABASE (in-memory sqlite per test) ---

@pytest_asyncio.fixture
async def db():
    await init_db("sqlite://:memory:")
    yield
    await close_db()


@pytest_asyncio.fixture
async def restaurant(db):
    return await Restaurant.create(name="Spice Route")


@pytest_asyncio.fixture
async def menu(restaurant):
    wrap = await MenuItem.create(restaurant=restaurant, name="Paneer Wrap", price=Decimal("149.00"))
    drink = await MenuItem.create(restaurant=restaurant, name="Cold Drink", price=Decimal("49.00"))
    return [wrap, drink]


@pytest.fixture
def make_order(restaurant, menu):
    """Factory creating a persisted order with two lines in the given status."""
    async def _make(status=OrderStatus.PENDING, customer_id=CUSTOMER_ID, rider_id=None, **extra):
        order = await Order.create(
            customer_id=customer_id,
            customer_name="Asha Rao",
            customer_phone="9999999999",
            restaurant=restaurant,
            status=status,
            assigned_rider_id=rider_id,
            total_amount=Decimal("247.00"),
            **extra,
        )
        for position, (item, qty) in enumerate([(menu[0], 1), (menu[1], 2)]):
            await OrderItem.create(
                order=order,
                menu_item=item,
                name=item.name,
                quantity=qty,
                unit_price=item.price,
                line_total=item.price * qty,
                position=position,
            )
        return order
    return _make


@pytest.fixture
def customer():
    return Principal(Role.CUSTOMER, CUSTOMER_ID)


@pytest.fixture
def kitchen(restaurant):
    return Principal(Role.RESTAURANT, str(restaurant.id))


@pytest.fixture
def rider():
    return Principal(Role.DELIVERY, RIDER_ID)


@pytest.fixture
def admin():
    return Principal(Role.ADMIN, "admin-1")


# --- CLIENT-SIDE HELPERS ---

class RecordingNotifier:
    """Collects notifications instead of showing them."""
    def __init__(self):
        self.messages = []

    def success(self, message):
        self.messages.append(("success", message))

    def error(self, message):
        self.messages.append(("error", message))

    @property
    def errors(self):
        return [m for level, m in self.messages if level == "error"]


@pytest.fixture
def notifier():
    return RecordingNotifier()


def order_out(status=OrderStatus.PENDING, **overrides) -> OrderOut:
    """Builds an OrderOut as the client would receive it."""
    data = {
        "id": uuid4(),
        "order_number": "ORD123456ABC",
        "status": status,
        "items": [{
            "menu_item_id": uuid4(),
            "name": "Paneer Wrap",
            "quantity": 1,
            "unit_price": Decimal("149.00"),
            "line_total": Decimal("149.00"),
        }],
        "total": Decimal("149.00"),
        "created_at": datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
        "restaurant_id": uuid4(),
        "customer_id": CUSTOMER_ID,
        "customer_name": "Asha Rao",
        "customer_phone": "8888888888",
    }
    data.update(overrides)
    return OrderOut(**data)
