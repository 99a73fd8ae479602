"""
Error types raised while processing approval flow notifications.

There is one parameterised kind, ``NotificationError``, carrying an HTTP-like
status code and a message. The status code is informational: the API error
handler always answers 200 so the push delivery system never retries.
"""

from typing import Any, Optional


class NotificationError(Exception):
    """
    A failure while decoding, routing or handling a notification.

    Attributes:
        status_code: 400 for bad input or wrapped remote failures, 202 for
            messages that are deliberately skipped, 500 for email failures
        message: Human-readable reason
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.status_code}, {self.message!r})"


class ConcurrentModificationError(NotificationError):
    """The order changed between reading its version and updating it."""

    def __init__(self, message: str):
        super().__init__(409, message)


class ConfigurationError(Exception):
    """Required environment variables are missing or invalid."""


class CommerceApiError(Exception):
    """A non-2xx response from the commerce platform."""

    def __init__(
        self,
        status_code: int,
        message: str,
        errors: Optional[list[dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []

    @property
    def is_concurrent_modification(self) -> bool:
        if self.status_code == 409:
            return True
        return any(e.get("code") == "ConcurrentModification" for e in self.errors)

    def __str__(self) -> str:
        return f"{self.status_code} {self.message}"
