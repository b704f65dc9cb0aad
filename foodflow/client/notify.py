import logging
from typing import Protocol

log = logging.getLogger("foodflow.client.notify")


class Notifier(Protocol):
    """Transient, non-blocking user notifications (toasts in a UI)."""

    def success(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


class LogNotifier:
    """Default notifier for headless use: notifications go to the log."""

    def success(self, message: str) -> None:
        log.info(message)

    def error(self, message: str) -> None:
        log.error(message)
