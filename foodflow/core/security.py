from typing import NamedTuple, Optional

from foodflow.models.auth import ApiToken
from foodflow.workflow import Role


class Principal(NamedTuple):
    """The authenticated actor behind a request."""
    role: Role
    subject_id: str


async def resolve_token(token: str) -> Optional[Principal]:
    """Looks up an active bearer token; returns None when it is unknown or revoked."""
    record = await ApiToken.get_or_none(token=token, is_active=True)
    if not record:
        return None
    return Principal(role=Role(record.role), subject_id=record.subject_id)
