from typing import Optional


class ApiError(Exception):
    """Base class for every failure the client core reports."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        # Machine-readable reason from the error envelope, e.g. "already_rated"
        self.code = code


class TransportError(ApiError):
    """The request never produced a usable response (network down, timeout, unparseable body)."""


class ContractViolation(TransportError):
    """The server answered with data outside the agreed contract, e.g. an unknown order status."""


class AuthenticationError(ApiError):
    """Missing or expired credentials. Logging out is the auth collaborator's job."""


class RequestRejected(ApiError):
    """The server refused the request on business grounds (stale state, already rated, ...)."""


class ValidationFailed(ApiError):
    """Caught on the client before any request was sent."""
