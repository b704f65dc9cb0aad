"""The client core driving the real app over ASGI, backed by in-memory sqlite."""
import httpx
import pytest_asyncio

from foodflow.client import OrderApiClient, OrderListView, RatingGate, StaticCredentials, StatusTransitionController
from foodflow.main import app
from foodflow.models.auth import ApiToken
from foodflow.models.order import Order, Restaurant
from foodflow.workflow import Action, OrderStatus, Role

from conftest import CUSTOMER_ID, RIDER_ID, RecordingNotifier


@pytest_asyncio.fixture
async def tokens(restaurant):
    await ApiToken.create(token="cust", role=Role.CUSTOMER, subject_id=CUSTOMER_ID)
    await ApiToken.create(token="kitchen", role=Role.RESTAURANT, subject_id=str(restaurant.id))
    await ApiToken.create(token="rider", role=Role.DELIVERY, subject_id=RIDER_ID)


def client_for(token):
    return OrderApiClient(
        StaticCredentials(token),
        base_url="http://testserver/api/v1",
        transport=httpx.ASGITransport(app=app),
    )


async def test_kitchen_marks_order_ready(tokens, make_order):
    await make_order(status=OrderStatus.PREPARING)
    notifier = RecordingNotifier()

    async with client_for("kitchen") as api:
        view = OrderListView(api, Role.RESTAURANT, notifier=notifier)
        controller = StatusTransitionController(api, view)
        await view.refresh()
        order = view.orders[0]

        assert await controller.perform(order, Action.MARK_READY) is True

    assert view.orders[0].status == OrderStatus.READY_FOR_PICKUP
    assert controller.actions_for(view.orders[0]) == []
    assert notifier.errors == []


async def test_stale_action_is_rejected_and_list_kept(tokens, make_order):
    created = await make_order(status=OrderStatus.PENDING)
    notifier = RecordingNotifier()

    async with client_for("kitchen") as api:
        view = OrderListView(api, Role.RESTAURANT, notifier=notifier)
        controller = StatusTransitionController(api, view)
        await view.refresh()
        snapshot = list(view.orders)

        # The customer cancels behind the kitchen's back
        await Order.filter(id=created.id).update(status=OrderStatus.CANCELLED)
        assert await controller.perform(snapshot[0], Action.ACCEPT) is False

    assert view.orders == snapshot
    assert "final state" in notifier.errors[0]


async def test_delivery_and_rating_flow(tokens, make_order):
    created = await make_order(status=OrderStatus.READY_FOR_PICKUP, rider_id=RIDER_ID)

    async with client_for("rider") as rider_api:
        rider_view = OrderListView(rider_api, Role.DELIVERY, notifier=RecordingNotifier())
        rider = StatusTransitionController(rider_api, rider_view)
        await rider_view.refresh()
        assert await rider.perform(rider_view.orders[0], Action.PICK_UP) is True

        otp = (await Order.get(id=created.id)).delivery_otp
        assert await rider.perform(rider_view.orders[0], Action.MARK_DELIVERED, otp=otp) is True
        assert rider_view.orders[0].status == OrderStatus.DELIVERED

    async with client_for("cust") as customer_api:
        view = OrderListView(customer_api, Role.CUSTOMER, notifier=RecordingNotifier(), poll_interval=0)
        gate = RatingGate(customer_api, view=view)
        await view.mount()
        delivered = view.orders[0]
        assert gate.should_prompt(delivered)

        assert await gate.submit(delivered, 4, "Quick delivery") is True
        await gate.settle()

        eligibility = await customer_api.can_rate_order(delivered.id)
        rating = await customer_api.get_order_rating(delivered.id)

    assert eligibility.has_rated and not eligibility.can_rate
    assert rating.overall_rating == 4
    assert rating.overall_review == "Quick delivery"
    assert not gate.should_prompt(delivered)

    restaurant = await Restaurant.get(id=created.restaurant_id)
    assert restaurant.total_ratings == 1
    assert restaurant.rating == 4
