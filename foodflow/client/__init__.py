# foodflow/client/__init__.py
from .api import ApiResult, OrderApiClient
from .credentials import CredentialProvider, MemoryTokenStore, StaticCredentials
from .errors import (
    ApiError,
    AuthenticationError,
    ContractViolation,
    RequestRejected,
    TransportError,
    ValidationFailed,
)
from .notify import LogNotifier, Notifier
from .views import OrderListView, RatingGate, StatusTransitionController, filter_orders

__all__ = [
    "ApiError",
    "ApiResult",
    "AuthenticationError",
    "ContractViolation",
    "CredentialProvider",
    "LogNotifier",
    "MemoryTokenStore",
    "Notifier",
    "OrderApiClient",
    "OrderListView",
    "RatingGate",
    "RequestRejected",
    "StaticCredentials",
    "StatusTransitionController",
    "TransportError",
    "ValidationFailed",
    "filter_orders",
]
