"""
Order lifecycle state machine.

One transition table, keyed by (role, current status), drives both the
server-side validation of status updates and the actions the client offers.
"""
from enum import Enum
from typing import Dict, List


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"  # Reached only through an external step (e.g. payment confirmation)
    PREPARING = "preparing"
    READY_FOR_PICKUP = "ready_for_pickup"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Role(str, Enum):
    CUSTOMER = "customer"
    RESTAURANT = "restaurant"
    DELIVERY = "delivery"
    ADMIN = "admin"


class Action(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    MARK_READY = "mark_ready"
    PICK_UP = "pick_up"
    MARK_DELIVERED = "mark_delivered"
    CANCEL = "cancel"


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# (role, current status) -> {action: next status}; dict order is display order
TRANSITIONS: Dict[Role, Dict[OrderStatus, Dict[Action, OrderStatus]]] = {
    Role.RESTAURANT: {
        OrderStatus.PENDING: {
            Action.ACCEPT: OrderStatus.PREPARING,
            Action.REJECT: OrderStatus.CANCELLED,
        },
        OrderStatus.PREPARING: {
            Action.MARK_READY: OrderStatus.READY_FOR_PICKUP,
        },
    },
    Role.DELIVERY: {
        OrderStatus.READY_FOR_PICKUP: {
            Action.PICK_UP: OrderStatus.OUT_FOR_DELIVERY,
        },
        OrderStatus.OUT_FOR_DELIVERY: {
            Action.MARK_DELIVERED: OrderStatus.DELIVERED,
        },
    },
    Role.CUSTOMER: {
        OrderStatus.PENDING: {
            Action.CANCEL: OrderStatus.CANCELLED,
        },
        OrderStatus.CONFIRMED: {
            Action.CANCEL: OrderStatus.CANCELLED,
        },
    },
    Role.ADMIN: {},
}

ACTION_LABELS = {
    Action.ACCEPT: "Accept",
    Action.REJECT: "Reject",
    Action.MARK_READY: "Mark Ready",
    Action.PICK_UP: "Pick Up",
    Action.MARK_DELIVERED: "Mark Delivered",
    Action.CANCEL: "Cancel Order",
}


class InvalidTransition(ValueError):
    """Raised when a role asks for a status change the table does not allow."""


class UnknownStatus(InvalidTransition):
    """Raised when a status string is not one of the defined order statuses."""


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise UnknownStatus(f"Unknown order status: {value!r}") from None


def is_terminal(status) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def available_actions(role, status) -> List[Action]:
    """Actions `role` may take on an order currently in `status`, in display order."""
    status = parse_status(status)
    if status in TERMINAL_STATUSES:
        return []
    return list(TRANSITIONS[Role(role)].get(status, {}))


def next_status(role, status, action) -> OrderStatus:
    """Resolves the status an action leads to, or raises InvalidTransition."""
    status = parse_status(status)
    role, action = Role(role), Action(action)
    if status in TERMINAL_STATUSES:
        raise InvalidTransition(f"Order is already in a final state: {status.value}. Status cannot be updated.")
    try:
        return TRANSITIONS[role][status][action]
    except KeyError:
        raise InvalidTransition(
            f"Action '{action.value}' is not allowed for {role.value} on a {status.value} order."
        ) from None


def action_for(role, status, target) -> Action:
    """Finds the action that moves `status` to `target` for `role`."""
    status, target, role = parse_status(status), parse_status(target), Role(role)
    if status in TERMINAL_STATUSES:
        raise InvalidTransition(f"Order is already in a final state: {status.value}. Status cannot be updated.")
    for action, resulting in TRANSITIONS[role].get(status, {}).items():
        if resulting == target:
            return action
    raise InvalidTransition(
        f"Cannot move order from {status.value} to {target.value} as {role.value}."
    )
