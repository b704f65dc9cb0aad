# foodflow/models/__init__.py
from .auth import ApiToken
from .order import Order, OrderItem, Restaurant, MenuItem
from .rating import Rating

# Export all models
__all__ = [
    "ApiToken",
    "Order",
    "OrderItem",
    "Restaurant",
    "MenuItem",
    "Rating",
]
