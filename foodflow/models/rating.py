from tortoise import fields, models
import uuid


class Rating(models.Model):
    """
    A customer's rating of a delivered order. One per order, never edited.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    order = fields.OneToOneField("models.Order", related_name="rating")
    customer_id = fields.CharField(max_length=64)
    restaurant = fields.ForeignKeyField("models.Restaurant", related_name="ratings")
    # [{"menu_item_id": str, "rating": int, "review": str | None}, ...]
    item_ratings = fields.JSONField(default=list)
    overall_rating = fields.SmallIntField()
    overall_review = fields.TextField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "ratings"
        indexes = [
            ("restaurant_id", "created_at"),
        ]
