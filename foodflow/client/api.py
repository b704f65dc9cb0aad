"""
Thin async wrapper over the order workflow REST API.

Every call is a single request/response. The bearer token comes from the
injected CredentialProvider; failures are raised as the exceptions in
foodflow.client.errors.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union
from uuid import UUID

import httpx
from pydantic import BaseModel, ValidationError

from foodflow.client.credentials import CredentialProvider
from foodflow.client.errors import (
    AuthenticationError,
    ContractViolation,
    RequestRejected,
    TransportError,
)
from foodflow.core.config import API_BASE_URL, REQUEST_TIMEOUT
from foodflow.schemas.order import OrderOut
from foodflow.schemas.rating import ItemRating, RateEligibility, RatingOut, RatingPage, RatingStats
from foodflow.workflow import OrderStatus, Role

log = logging.getLogger("foodflow.client")

ORDER_LIST_PATHS = {
    Role.CUSTOMER: "/orders",
    Role.RESTAURANT: "/orders/restaurant",
    Role.DELIVERY: "/orders/delivery",
    Role.ADMIN: "/orders/admin/all",
}

STATUS_UPDATE_PATHS = {
    Role.RESTAURANT: "/orders/restaurant/{order_id}/status",
    Role.DELIVERY: "/orders/delivery/{order_id}/status",
    Role.ADMIN: "/orders/admin/{order_id}",
}


class ApiResult(BaseModel):
    """Outcome of a mutating call."""
    success: bool
    message: Optional[str] = None
    data: Optional[Any] = None


class OrderApiClient:
    def __init__(
        self,
        credentials: CredentialProvider,
        base_url: str = API_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_auth_failure: Optional[Callable[[AuthenticationError], None]] = None,
    ):
        self._credentials = credentials
        self._on_auth_failure = on_auth_failure
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "OrderApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        token = self._credentials.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            log.error(f"API Error {method} {path}: {e}")
            raise TransportError(f"Network error: {e}") from e

        try:
            body = response.json()
        except ValueError:
            raise TransportError(
                f"HTTP error! status: {response.status_code}", status_code=response.status_code
            ) from None

        message = body.get("message") if isinstance(body, dict) else None
        detail = body.get("error") if isinstance(body, dict) else None
        code = detail.get("code") if isinstance(detail, dict) else None
        if response.status_code == 401:
            error = AuthenticationError(message or "Authentication required", status_code=401)
            if self._on_auth_failure:
                self._on_auth_failure(error)
            raise error
        if response.is_error or not isinstance(body, dict) or not body.get("success", False):
            log.warning(f"API rejected {method} {path}: {response.status_code} {message}")
            raise RequestRejected(
                message or f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
                code=code,
            )
        return body

    @staticmethod
    def _parse(model, payload):
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise ContractViolation(f"Unexpected {model.__name__} payload: {e}") from e

    async def _mutate(self, method: str, path: str, **kwargs) -> ApiResult:
        body = await self._request(method, path, **kwargs)
        return ApiResult(success=True, message=body.get("message"), data=body.get("data"))

    # ----------- Orders -----------

    async def list_orders(
        self, role: Role, status: Optional[OrderStatus] = None, q: Optional[str] = None
    ) -> List[OrderOut]:
        """The caller's visible order set; the server scopes it by the token's role."""
        params = {}
        if role == Role.ADMIN:
            if status:
                params["status"] = OrderStatus(status).value
            if q:
                params["q"] = q
        body = await self._request("GET", ORDER_LIST_PATHS[Role(role)], params=params or None)
        data = body.get("data") or []
        if not isinstance(data, list):
            raise ContractViolation("Order listing is not a list")
        return [self._parse(OrderOut, order) for order in data]

    async def get_order(self, order_id: UUID) -> OrderOut:
        body = await self._request("GET", f"/orders/{order_id}")
        return self._parse(OrderOut, body.get("data"))

    async def update_order_status(self, role: Role, order_id: UUID, next_status: OrderStatus) -> ApiResult:
        role = Role(role)
        if role not in STATUS_UPDATE_PATHS:
            raise ValueError(f"{role.value} has no status update endpoint")
        path = STATUS_UPDATE_PATHS[role].format(order_id=order_id)
        return await self._mutate("PUT", path, json={"status": OrderStatus(next_status).value})

    async def cancel_order(self, order_id: UUID, reason: Optional[str] = None) -> ApiResult:
        payload = {"reason": reason} if reason else None
        return await self._mutate("POST", f"/orders/{order_id}/cancel", json=payload)

    async def verify_delivery_otp(self, order_id: UUID, otp: str) -> ApiResult:
        return await self._mutate("POST", f"/orders/delivery/{order_id}/verify-otp", json={"otp": otp})

    async def resend_delivery_otp(self, order_id: UUID) -> ApiResult:
        return await self._mutate("POST", f"/orders/delivery/{order_id}/resend-otp")

    # ----------- Ratings -----------

    async def can_rate_order(self, order_id: UUID) -> RateEligibility:
        body = await self._request("GET", f"/ratings/order/{order_id}/can-rate")
        return self._parse(RateEligibility, body.get("data"))

    async def submit_rating(
        self,
        order_id: UUID,
        item_ratings: Iterable[Union[ItemRating, Dict[str, Any]]],
        overall_review: Optional[str] = None,
        overall_rating: Optional[int] = None,
    ) -> ApiResult:
        payload = {
            "item_ratings": [
                r.model_dump(mode="json") if isinstance(r, ItemRating) else r for r in item_ratings
            ],
        }
        if overall_rating is not None:
            payload["overall_rating"] = overall_rating
        if overall_review:
            payload["overall_review"] = overall_review
        return await self._mutate("POST", f"/ratings/order/{order_id}", json=payload)

    async def get_order_rating(self, order_id: UUID) -> RatingOut:
        body = await self._request("GET", f"/ratings/order/{order_id}")
        return self._parse(RatingOut, body.get("data"))

    async def get_rating_history(self, page: int = 1, limit: int = 10) -> RatingPage:
        body = await self._request("GET", "/ratings/user/history", params={"page": page, "limit": limit})
        return self._parse(RatingPage, body.get("data"))

    async def get_restaurant_ratings(self, restaurant_id: UUID, page: int = 1, limit: int = 10) -> RatingPage:
        body = await self._request(
            "GET", f"/ratings/restaurant/{restaurant_id}", params={"page": page, "limit": limit}
        )
        return self._parse(RatingPage, body.get("data"))

    async def get_rating_stats(
        self,
        restaurant_id: Optional[UUID] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> RatingStats:
        params = {}
        if restaurant_id:
            params["restaurant_id"] = str(restaurant_id)
        if start_date and end_date:
            params["start_date"] = start_date.isoformat()
            params["end_date"] = end_date.isoformat()
        body = await self._request("GET", "/ratings/stats", params=params or None)
        return self._parse(RatingStats, body.get("data"))
