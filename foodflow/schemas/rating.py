from datetime import datetime
from typing import Dict, List, Optional
import uuid

from pydantic import BaseModel, Field

from foodflow.core.config import MAX_REVIEW_LENGTH
from foodflow.workflow import OrderStatus


class ItemRating(BaseModel):
    menu_item_id: uuid.UUID
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=500)


class RatingRequest(BaseModel):
    """Schema for submitting a rating on a delivered order."""
    item_ratings: List[ItemRating] = Field(..., min_length=1)
    overall_rating: Optional[int] = Field(None, ge=1, le=5)
    overall_review: Optional[str] = Field(None, max_length=MAX_REVIEW_LENGTH)


class RatingOut(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    restaurant_id: uuid.UUID
    item_ratings: List[ItemRating]
    overall_rating: int
    overall_review: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_model(cls, rating) -> "RatingOut":
        return cls(
            id=rating.id,
            order_id=rating.order_id,
            restaurant_id=rating.restaurant_id,
            item_ratings=rating.item_ratings,
            overall_rating=rating.overall_rating,
            overall_review=rating.overall_review,
            created_at=rating.created_at,
        )


class RateEligibility(BaseModel):
    """Answer of the can-rate check."""
    can_rate: bool
    has_rated: bool
    order_status: OrderStatus


class Pagination(BaseModel):
    current: int
    total: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total_items: int) -> "Pagination":
        return cls(
            current=page,
            total=-(-total_items // limit),
            has_next=page * limit < total_items,
            has_prev=page > 1,
        )


class RestaurantRatingSummary(BaseModel):
    average_rating: float
    total_ratings: int


class RatingPage(BaseModel):
    """A page of ratings, newest first. `restaurant_stats` is set for restaurant listings."""
    ratings: List[RatingOut]
    pagination: Pagination
    restaurant_stats: Optional[RestaurantRatingSummary] = None


class RatingStats(BaseModel):
    total_ratings: int
    average_rating: float
    # Keys "1".."5", every key always present
    distribution: Dict[str, int]
