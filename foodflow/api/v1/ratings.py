from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from foodflow.api.deps import get_principal
from foodflow.core.security import Principal
from foodflow.schemas.rating import RatingOut, RatingRequest
from foodflow.schemas.response import SuccessResponse
from foodflow.services import rating_service

router = APIRouter()


@router.post("/order/{order_id}", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def submit_rating_endpoint(
    order_id: UUID, payload: RatingRequest, principal: Principal = Depends(get_principal)
):
    """Rates a delivered order. Each order can be rated once."""
    rating = await rating_service.submit_rating(principal, order_id, payload)
    return SuccessResponse(
        message="Rating submitted successfully",
        data=RatingOut.from_model(rating).model_dump(mode="json"),
    )


@router.get("/order/{order_id}/can-rate", response_model=SuccessResponse)
async def can_rate_endpoint(order_id: UUID, principal: Principal = Depends(get_principal)):
    eligibility = await rating_service.can_rate_order(principal, order_id)
    return SuccessResponse(data=eligibility.model_dump(mode="json"))


@router.get("/order/{order_id}", response_model=SuccessResponse)
async def get_rating_endpoint(order_id: UUID, principal: Principal = Depends(get_principal)):
    rating = await rating_service.get_order_rating(principal, order_id)
    return SuccessResponse(data=RatingOut.from_model(rating).model_dump(mode="json"))


@router.get("/user/history", response_model=SuccessResponse)
async def rating_history_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(get_principal),
):
    history = await rating_service.list_customer_ratings(principal, page=page, limit=limit)
    return SuccessResponse(data=history.model_dump(mode="json"))


@router.get("/restaurant/{restaurant_id}", response_model=SuccessResponse)
async def restaurant_ratings_endpoint(
    restaurant_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(get_principal),
):
    """Ratings for the caller's own restaurant, with its aggregate rating."""
    ratings = await rating_service.list_restaurant_ratings(principal, restaurant_id, page=page, limit=limit)
    return SuccessResponse(data=ratings.model_dump(mode="json"))


@router.get("/stats", response_model=SuccessResponse)
async def rating_stats_endpoint(
    restaurant_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    principal: Principal = Depends(get_principal),
):
    stats = await rating_service.get_rating_stats(
        principal, restaurant_id=restaurant_id, start_date=start_date, end_date=end_date
    )
    return SuccessResponse(data=stats.model_dump(mode="json"))
