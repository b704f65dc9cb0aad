"""
Presentation-free order views: the role-scoped order list, the status
transition controller and the rating gate.

Nothing here mutates order state optimistically. The server is the only
authority; after a successful change the list is simply fetched again.
"""
import asyncio
import logging
from collections import Counter
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set
from uuid import UUID

from foodflow.client.api import OrderApiClient
from foodflow.client.errors import ApiError, AuthenticationError, ValidationFailed
from foodflow.client.notify import LogNotifier, Notifier
from foodflow.core.config import MAX_REVIEW_LENGTH, POLL_INTERVAL, REQUIRE_DELIVERY_OTP
from foodflow.schemas.order import OrderOut
from foodflow.workflow import (
    Action,
    InvalidTransition,
    OrderStatus,
    Role,
    available_actions,
    next_status,
    parse_status,
)

log = logging.getLogger("foodflow.client.views")

ALL = "all"
ALREADY_RATED = "already_rated"

RefreshListener = Callable[[List[OrderOut]], Awaitable[None]]


def matches_query(order: OrderOut, query: str) -> bool:
    """Case-insensitive substring match on order number, id, customer name and phone."""
    q = query.strip().lower()
    if not q:
        return True
    fields = (order.order_number, str(order.id), order.customer_name, order.customer_phone)
    return any(q in (value or "").lower() for value in fields)


def filter_orders(orders: Iterable[OrderOut], query: str = "", status: str = ALL) -> List[OrderOut]:
    """Filters without re-sorting: the server's order is kept."""
    if status != ALL:
        status = parse_status(status)
    return [
        order for order in orders
        if (status == ALL or order.status == status) and matches_query(order, query)
    ]


class OrderListView:
    """
    Holds the last successfully loaded order list for one role.

    A failed refresh notifies once and keeps the previous list. The customer
    view re-fetches every `poll_interval` seconds while mounted.
    """

    def __init__(
        self,
        api: OrderApiClient,
        role: Role,
        notifier: Optional[Notifier] = None,
        poll_interval: float = POLL_INTERVAL,
    ):
        self.api = api
        self.role = Role(role)
        self.notifier = notifier or LogNotifier()
        self.poll_interval = poll_interval
        self.orders: List[OrderOut] = []
        self.loaded = False
        self.query = ""
        self.status_filter = ALL
        self._listeners: List[RefreshListener] = []
        self._poll_task: Optional[asyncio.Task] = None

    def on_refresh(self, listener: RefreshListener) -> None:
        self._listeners.append(listener)

    async def refresh(self) -> bool:
        try:
            orders = await self.api.list_orders(self.role)
        except AuthenticationError:
            # Forced logout belongs to the auth collaborator
            return False
        except ApiError as e:
            log.error(f"Failed to load {self.role.value} orders: {e}")
            self.notifier.error("Failed to load orders")
            return False

        self.orders = orders
        self.loaded = True
        for listener in self._listeners:
            await listener(orders)
        return True

    def set_filter(self, query: Optional[str] = None, status: Optional[str] = None) -> None:
        if query is not None:
            self.query = query
        if status is not None:
            self.status_filter = status if status == ALL else parse_status(status).value

    def visible(self) -> List[OrderOut]:
        return filter_orders(self.orders, self.query, self.status_filter)

    def counts(self) -> Dict[str, int]:
        """Per-status tallies plus `all`, for dashboard badges."""
        tally = Counter(order.status.value for order in self.orders)
        counts = {ALL: len(self.orders)}
        counts.update({status.value: tally.get(status.value, 0) for status in OrderStatus})
        return counts

    # ----------- Lifecycle -----------

    @property
    def polls(self) -> bool:
        return self.role == Role.CUSTOMER and self.poll_interval > 0

    async def mount(self) -> None:
        await self.refresh()
        if self.polls:
            self.start_polling()

    def start_polling(self) -> None:
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll())

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.refresh()
            except Exception:
                # A failing listener must not end the loop
                log.exception(f"Polling {self.role.value} orders failed")

    async def unmount(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None


class StatusTransitionController:
    """Offers the legal actions for the view's role and performs the chosen one."""

    def __init__(
        self,
        api: OrderApiClient,
        view: OrderListView,
        notifier: Optional[Notifier] = None,
        require_otp: bool = REQUIRE_DELIVERY_OTP,
    ):
        self.api = api
        self.view = view
        self.role = view.role
        self.notifier = notifier or view.notifier
        self.require_otp = require_otp

    def actions_for(self, order: OrderOut) -> List[Action]:
        return available_actions(self.role, order.status)

    async def perform(self, order: OrderOut, action: Action, otp: Optional[str] = None) -> bool:
        """
        Issues exactly one remote call for the action, then reloads the list.
        On any failure the list is left untouched and the error is surfaced.
        """
        try:
            target = next_status(self.role, order.status, action)
        except InvalidTransition as e:
            self.notifier.error(str(e))
            return False

        action = Action(action)
        if action == Action.MARK_DELIVERED and self.require_otp and not (otp or "").strip():
            self.notifier.error("Please enter OTP")
            return False

        try:
            if action == Action.CANCEL and self.role == Role.CUSTOMER:
                result = await self.api.cancel_order(order.id)
            elif action == Action.MARK_DELIVERED and otp:
                result = await self.api.verify_delivery_otp(order.id, otp.strip())
            else:
                result = await self.api.update_order_status(self.role, order.id, target)
        except AuthenticationError:
            return False
        except ApiError as e:
            self.notifier.error(e.message or "Failed to update status")
            return False

        log.info(f"Order {order.order_number}: {action.value} -> {target.value}")
        self.notifier.success(result.message or "Order status updated")
        await self.view.refresh()
        return True

    async def resend_otp(self, order: OrderOut) -> bool:
        try:
            result = await self.api.resend_delivery_otp(order.id)
        except AuthenticationError:
            return False
        except ApiError as e:
            self.notifier.error(e.message or "Failed to resend OTP")
            return False
        self.notifier.success(result.message or "New OTP sent successfully")
        return True


class RatingGate:
    """
    Decides, per delivered order, whether to show the one-time rating prompt.

    The can-rate answer is cached per order id for the gate's lifetime, so each
    order is checked remotely at most once.
    """

    def __init__(
        self,
        api: OrderApiClient,
        view: Optional[OrderListView] = None,
        notifier: Optional[Notifier] = None,
        max_review_length: int = MAX_REVIEW_LENGTH,
    ):
        self.api = api
        self.view = view
        self.notifier = notifier or (view.notifier if view else LogNotifier())
        self.max_review_length = max_review_length
        self._has_rated: Dict[UUID, bool] = {}
        self._in_flight: Set[UUID] = set()
        self._background: Set[asyncio.Task] = set()
        if view is not None:
            view.on_refresh(self.check)

    async def check(self, orders: Iterable[OrderOut]) -> None:
        for order in orders:
            if order.status != OrderStatus.DELIVERED:
                continue
            if order.id in self._has_rated or order.id in self._in_flight:
                continue
            self._in_flight.add(order.id)
            try:
                eligibility = await self.api.can_rate_order(order.id)
            except ApiError as e:
                # Left uncached so the next load asks again
                log.warning(f"Error checking rating status for {order.order_number}: {e}")
                continue
            finally:
                self._in_flight.discard(order.id)
            self._has_rated[order.id] = eligibility.has_rated

    def is_rated(self, order: OrderOut) -> bool:
        return self._has_rated.get(order.id, False)

    def should_prompt(self, order: OrderOut) -> bool:
        return order.status == OrderStatus.DELIVERED and not self.is_rated(order)

    def validate(self, order: OrderOut, overall_rating, review: Optional[str]) -> str:
        """Client-side checks; returns the cleaned review or raises ValidationFailed."""
        if self.is_rated(order):
            raise ValidationFailed("You have already rated this order")
        if order.status != OrderStatus.DELIVERED:
            raise ValidationFailed("You can only rate delivered orders")
        if isinstance(overall_rating, bool) or not isinstance(overall_rating, int) or not 1 <= overall_rating <= 5:
            raise ValidationFailed("Please rate your experience")
        review = (review or "").strip()
        if len(review) > self.max_review_length:
            raise ValidationFailed(f"Review must be at most {self.max_review_length} characters")
        return review

    async def submit(self, order: OrderOut, overall_rating, review: Optional[str] = None) -> bool:
        try:
            review = self.validate(order, overall_rating, review)
        except ValidationFailed as e:
            self.notifier.error(e.message)
            return False

        # Every item gets the overall star value
        item_ratings = [
            {"menu_item_id": str(item.menu_item_id), "rating": overall_rating} for item in order.items
        ]
        try:
            await self.api.submit_rating(
                order.id, item_ratings, overall_review=review or None, overall_rating=overall_rating
            )
        except AuthenticationError:
            return False
        except ApiError as e:
            if e.code == ALREADY_RATED:
                self._has_rated[order.id] = True
            self.notifier.error(e.message or "Failed to submit rating")
            return False

        self._has_rated[order.id] = True
        self.notifier.success("Thank you for your feedback!")
        if self.view is not None:
            task = asyncio.create_task(self.view.refresh())
            self._background.add(task)
            task.add_done_callback(self._background.discard)
        return True

    async def settle(self) -> None:
        """Waits for background refreshes started by `submit`."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
