"""Errors raised while configuring the backend or delivering a payload."""

from __future__ import annotations

_BODY_LIMIT = 512


class ConfigurationError(ValueError):
    """Backend configuration is unusable (e.g. missing credentials)."""


class DeliveryError(Exception):
    """A single delivery attempt failed.

    Attributes:
        status: HTTP status code, or None when no response was received
        body: Response body (truncated), if any
        retryable: Whether a second attempt may succeed
    """

    retryable = False

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body[:_BODY_LIMIT]

    def describe(self) -> str:
        if self.status is None:
            return str(self)
        return f"HTTP {self.status}: {self.body}"


class ClientError(DeliveryError):
    """The API rejected the request (4xx). Never retried."""


class ServerError(DeliveryError):
    """The API failed to process the request (5xx)."""

    retryable = True


class TransportError(DeliveryError):
    """No response was received (connection refused, reset, timeout)."""

    retryable = True
