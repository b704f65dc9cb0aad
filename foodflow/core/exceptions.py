from foodflow.workflow import InvalidTransition


class NotFound(LookupError):
    """The record does not exist or is outside the caller's scope."""


class OrderNotFound(NotFound):
    pass


class RestaurantNotFound(NotFound):
    pass


class NotAuthorized(PermissionError):
    """The caller's role may not perform this operation."""


class BusinessRuleError(ValueError):
    """A request that is well-formed but rejected by a workflow rule."""


class AlreadyRated(BusinessRuleError):
    pass


class OtpRequired(BusinessRuleError):
    pass


__all__ = [
    "AlreadyRated",
    "BusinessRuleError",
    "InvalidTransition",
    "NotAuthorized",
    "NotFound",
    "OrderNotFound",
    "OtpRequired",
    "RestaurantNotFound",
]
