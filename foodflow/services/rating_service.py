import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from uuid import UUID

from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from foodflow.core.exceptions import (
    AlreadyRated,
    BusinessRuleError,
    NotAuthorized,
    OrderNotFound,
    RestaurantNotFound,
)
from foodflow.core.security import Principal
from foodflow.models.order import Order, Restaurant
from foodflow.models.rating import Rating
from foodflow.schemas.rating import (
    Pagination,
    RateEligibility,
    RatingOut,
    RatingPage,
    RatingRequest,
    RatingStats,
    RestaurantRatingSummary,
)
from foodflow.workflow import OrderStatus, Role

log = logging.getLogger("foodflow.ratings")


def half_up(value, step: str = "1") -> Decimal:
    """Rounds halves away from zero (2.5 -> 3), unlike the builtin round()."""
    return Decimal(value).quantize(Decimal(step), rounding=ROUND_HALF_UP)


def mean_rating(scores) -> int:
    scores = list(scores)
    return int(half_up(Decimal(sum(scores)) / len(scores)))


async def _customer_order(principal: Principal, order_id: UUID, conn=None) -> Order:
    if principal.role != Role.CUSTOMER:
        raise NotAuthorized("Only customers can rate orders")
    query = Order.get_or_none(id=order_id).prefetch_related("items")
    if conn is not None:
        query = query.using_db(conn)
    order = await query
    if not order:
        raise OrderNotFound("Order not found")
    if order.customer_id != principal.subject_id:
        raise NotAuthorized("You can only rate your own orders")
    return order


async def _refresh_restaurant_rating(restaurant_id: UUID, conn) -> None:
    """Recomputes the restaurant's aggregate from its stored ratings."""
    scores = await Rating.filter(restaurant_id=restaurant_id).using_db(conn).values_list(
        "overall_rating", flat=True
    )
    average = half_up(Decimal(sum(scores)) / len(scores), "0.01") if scores else Decimal(0)
    await Restaurant.filter(id=restaurant_id).using_db(conn).update(
        rating=float(average), total_ratings=len(scores)
    )


async def _page(query, page: int, limit: int):
    total = await query.count()
    ratings = await query.order_by("-created_at").offset((page - 1) * limit).limit(limit)
    return [RatingOut.from_model(r) for r in ratings], Pagination.build(page, limit, total)


async def can_rate_order(principal: Principal, order_id: UUID) -> RateEligibility:
    """Idempotent check: is the order delivered, and has it been rated yet?"""
    order = await _customer_order(principal, order_id)
    has_rated = await Rating.filter(order_id=order.id).exists()
    return RateEligibility(
        can_rate=order.status == OrderStatus.DELIVERED and not has_rated,
        has_rated=has_rated,
        order_status=order.status,
    )


async def submit_rating(principal: Principal, order_id: UUID, request: RatingRequest) -> Rating:
    """
    Creates the single rating of a delivered order.
    Item ratings must reference items of the order; the overall rating defaults
    to their mean, halves rounded up. The restaurant's aggregate is updated in
    the same transaction.
    """
    async with in_transaction() as conn:
        order = await _customer_order(principal, order_id, conn)
        if order.status != OrderStatus.DELIVERED:
            raise BusinessRuleError("You can only rate delivered orders")
        if await Rating.filter(order_id=order.id).using_db(conn).exists():
            raise AlreadyRated("You have already rated this order")

        ordered_items = {item.menu_item_id for item in order.items}
        for item_rating in request.item_ratings:
            if item_rating.menu_item_id not in ordered_items:
                raise BusinessRuleError("Menu item not found in order")

        overall = request.overall_rating
        if overall is None:
            overall = mean_rating(r.rating for r in request.item_ratings)

        try:
            rating = await Rating.create(
                order=order,
                customer_id=principal.subject_id,
                restaurant_id=order.restaurant_id,
                item_ratings=[r.model_dump(mode="json") for r in request.item_ratings],
                overall_rating=overall,
                overall_review=request.overall_review or None,
                using_db=conn,
            )
        except IntegrityError:
            # A concurrent submission won the one-to-one constraint
            raise AlreadyRated("You have already rated this order") from None

        await _refresh_restaurant_rating(order.restaurant_id, conn)

    log.info(f"Order {order.order_number} rated {overall}/5 by customer {principal.subject_id}.")
    return rating


async def get_order_rating(principal: Principal, order_id: UUID) -> Rating:
    order = await _customer_order(principal, order_id)
    rating = await Rating.get_or_none(order_id=order.id)
    if not rating:
        raise OrderNotFound("Rating not found")
    return rating


async def list_restaurant_ratings(
    principal: Principal, restaurant_id: UUID, page: int = 1, limit: int = 10
) -> RatingPage:
    """Ratings received by the caller's own restaurant, newest first."""
    if principal.role != Role.RESTAURANT:
        raise NotAuthorized("Only restaurant owners can view restaurant ratings")
    if principal.subject_id != str(restaurant_id):
        raise NotAuthorized("You can only view ratings for your own restaurant")

    restaurant = await Restaurant.get_or_none(id=restaurant_id)
    if not restaurant:
        raise RestaurantNotFound("Restaurant not found")

    ratings, pagination = await _page(Rating.filter(restaurant_id=restaurant_id), page, limit)
    return RatingPage(
        ratings=ratings,
        pagination=pagination,
        restaurant_stats=RestaurantRatingSummary(
            average_rating=restaurant.rating, total_ratings=restaurant.total_ratings
        ),
    )


async def list_customer_ratings(principal: Principal, page: int = 1, limit: int = 10) -> RatingPage:
    """The caller's own rating history, newest first."""
    if principal.role != Role.CUSTOMER:
        raise NotAuthorized("Only customers have a rating history")
    ratings, pagination = await _page(Rating.filter(customer_id=principal.subject_id), page, limit)
    return RatingPage(ratings=ratings, pagination=pagination)


async def get_rating_stats(
    principal: Principal,
    restaurant_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> RatingStats:
    """
    Count, average (one decimal) and 1..5 distribution of overall ratings.
    Admins see any restaurant or all of them; a restaurant only sees its own.
    """
    if principal.role == Role.RESTAURANT:
        if restaurant_id is not None and str(restaurant_id) != principal.subject_id:
            raise NotAuthorized("You can only view ratings for your own restaurant")
        restaurant_id = principal.subject_id
    elif principal.role != Role.ADMIN:
        raise NotAuthorized("Admin authentication required")

    query = Rating.all()
    if restaurant_id is not None:
        query = query.filter(restaurant_id=restaurant_id)
    if start_date and end_date:
        query = query.filter(created_at__gte=start_date, created_at__lte=end_date)

    scores = await query.values_list("overall_rating", flat=True)
    distribution = {str(star): 0 for star in range(1, 6)}
    for score in scores:
        if str(score) in distribution:
            distribution[str(score)] += 1

    average = float(half_up(Decimal(sum(scores)) / len(scores), "0.1")) if scores else 0.0
    return RatingStats(total_ratings=len(scores), average_rating=average, distribution=distribution)
