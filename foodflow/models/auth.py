from tortoise import fields, models
import uuid

from foodflow.workflow import Role


class ApiToken(models.Model):
    """
    Maps an opaque bearer token to the actor it authenticates.
    Tokens are issued by the external auth service; this table only resolves them.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    token = fields.CharField(max_length=128, unique=True)
    role = fields.CharEnumField(Role)
    subject_id = fields.CharField(max_length=64) # customer, restaurant or rider id
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "api_tokens"
