# foodflow/scripts/seed_data.py
import asyncio
import logging
from decimal import Decimal

from foodflow.core.db import init_db, close_db
from foodflow.models.auth import ApiToken
from foodflow.models.order import MenuItem, Order, OrderItem, Restaurant
from foodflow.workflow import OrderStatus, Role

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("seed")

CUSTOMER_ID = "customer-demo"
RIDER_ID = "rider-demo"


async def create_order(restaurant, lines, status=OrderStatus.PENDING, rider_id=None) -> Order:
    """Creates an order with its items; `lines` is [(menu_item, quantity), ...]."""
    order = await Order.create(
        customer_id=CUSTOMER_ID,
        customer_name="Demo Customer",
        customer_phone="9999999999",
        restaurant=restaurant,
        status=status,
        assigned_rider_id=rider_id,
        delivery_address={"street": "12 MG Road", "city": "Pune", "zip_code": "411001"},
    )
    total = Decimal("0")
    for position, (menu, qty) in enumerate(lines):
        line_total = menu.price * qty
        total += line_total
        await OrderItem.create(
            order=order,
            menu_item=menu,
            name=menu.name,
            quantity=qty,
            unit_price=menu.price,
            line_total=line_total,
            position=position,
        )
    order.total_amount = total
    await order.save()
    return order


async def seed():
    rest, _ = await Restaurant.get_or_create(name="Demo Restaurant")
    log.info(f"Restaurant: {rest.id}")

    m1, _ = await MenuItem.get_or_create(restaurant=rest, name="Paneer Wrap", defaults={"price": Decimal("149.00")})
    m2, _ = await MenuItem.get_or_create(restaurant=rest, name="Chili Paneer Rice", defaults={"price": Decimal("199.00")})
    m3, _ = await MenuItem.get_or_create(restaurant=rest, name="Cold Drink", defaults={"price": Decimal("49.00")})

    tokens = {
        Role.CUSTOMER: ("demo-customer-token", CUSTOMER_ID),
        Role.RESTAURANT: ("demo-restaurant-token", str(rest.id)),
        Role.DELIVERY: ("demo-rider-token", RIDER_ID),
        Role.ADMIN: ("demo-admin-token", "admin-demo"),
    }
    for role, (token, subject_id) in tokens.items():
        await ApiToken.get_or_create(token=token, defaults={"role": role, "subject_id": subject_id})
        log.info(f"{role.value} token: {token}")

    if not await Order.filter(customer_id=CUSTOMER_ID).exists():
        await create_order(rest, [(m1, 2), (m3, 1)])
        await create_order(rest, [(m2, 1)], status=OrderStatus.PREPARING)
        await create_order(rest, [(m1, 1), (m2, 1)], status=OrderStatus.READY_FOR_PICKUP, rider_id=RIDER_ID)
        await create_order(rest, [(m3, 3)], status=OrderStatus.DELIVERED, rider_id=RIDER_ID)
        log.info("Demo orders created.")


async def main():
    await init_db()
    await seed()
    await close_db()

if __name__ == "__main__":
    asyncio.run(main())
