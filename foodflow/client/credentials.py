from typing import Optional, Protocol


class CredentialProvider(Protocol):
    """Supplies the bearer token for outgoing requests. Storage is up to the caller."""

    def get_token(self) -> Optional[str]:
        ...


class StaticCredentials:
    """A fixed token, e.g. from an environment variable or a test."""

    def __init__(self, token: Optional[str]):
        self._token = token

    def get_token(self) -> Optional[str]:
        return self._token


class MemoryTokenStore:
    """In-process token holder; `clear()` is what a forced logout calls."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def set_token(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None

    def get_token(self) -> Optional[str]:
        return self._token
