from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from foodflow.core.security import Principal, resolve_token
from foodflow.workflow import Role

bearer = HTTPBearer(auto_error=False)


async def get_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Principal:
    """Resolves the bearer token into the calling principal, or answers 401."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required",
                            headers={"WWW-Authenticate": "Bearer"})
    principal = await resolve_token(credentials.credentials)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token",
                            headers={"WWW-Authenticate": "Bearer"})
    return principal


def require_role(role: Role):
    """Dependency factory: the caller must be authenticated as `role`."""
    async def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role != role:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail=f"{role.value.capitalize()} authentication required")
        return principal
    return dependency
