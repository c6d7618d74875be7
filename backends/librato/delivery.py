"""HTTP delivery of metric payloads with a single bounded retry.

Each payload gets at most two attempts. Server errors (5xx) and transport
failures on the first attempt schedule one retry after a fixed delay; client
errors (4xx) and any failure of the retry are terminal and the payload is
dropped.
"""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

import httpx
import structlog

from backends.librato.errors import (
    ClientError,
    ConfigurationError,
    DeliveryError,
    ServerError,
    TransportError,
)
from core.config import HostCfg, resolve_librato_settings
from core.contracts import OutgoingPayload

__version__ = "0.1.0"

DEFAULT_ENDPOINT = "https://metrics-api.librato.com/v1/metrics"
METRICS_PATH = "/v1/metrics"
USER_AGENT = f"librato-flush/{__version__}"

_DEFAULT_PORTS = {"https": 443, "http": 80}


@dataclass(frozen=True)
class DeliveryConfig:
    endpoint: str
    auth_header: str
    source: str | None = None
    legacy_counters: bool = False
    retry_delay_seconds: float = 5.0
    timeout_seconds: float = 10.0
    debug: bool = False
    flush_interval: int = 10_000


@dataclass(frozen=True)
class DeliveryTarget:
    """Where payloads are posted."""

    scheme: str
    host: str
    port: int

    @property
    def tls(self) -> bool:
        return self.scheme == "https"

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}{METRICS_PATH}"


def build_basic_auth(email: str, token: str) -> str:
    credential = base64.b64encode(f"{email}:{token}".encode()).decode("ascii")
    return f"Basic {credential}"


def build_delivery_config(config: HostCfg) -> DeliveryConfig:
    """Derive the immutable delivery settings from the host config.

    Raises:
        ConfigurationError: If the email or token is missing
    """
    settings = resolve_librato_settings(config)
    if not settings.email or not settings.token:
        raise ConfigurationError("Invalid configuration for Librato Metrics backend")

    return DeliveryConfig(
        endpoint=settings.endpoint or DEFAULT_ENDPOINT,
        auth_header=build_basic_auth(settings.email, settings.token),
        source=settings.source or None,
        legacy_counters=settings.legacy_counters,
        retry_delay_seconds=settings.retry_delay,
        timeout_seconds=settings.timeout,
        debug=config.debug,
        flush_interval=config.flush_interval,
    )


def resolve_target(endpoint: str | None) -> DeliveryTarget:
    """Pick scheme, host and port for ``endpoint``.

    Only the scheme, host and port of the endpoint are used; requests always
    go to ``/v1/metrics``. Endpoints without a scheme are treated as TLS.
    """
    raw = endpoint or DEFAULT_ENDPOINT
    if "://" not in raw:
        raw = f"https://{raw}"
    parts = urlsplit(raw)
    scheme = "http" if parts.scheme == "http" else "https"
    if not parts.hostname:
        raise ConfigurationError(f"Endpoint has no host: {endpoint!r}")
    try:
        port = parts.port
    except ValueError as exc:
        raise ConfigurationError(f"Endpoint has an invalid port: {endpoint!r}") from exc
    return DeliveryTarget(scheme=scheme, host=parts.hostname, port=port or _DEFAULT_PORTS[scheme])


def classify_response(response: httpx.Response) -> None:
    """Raise the matching :class:`DeliveryError` for a failed response."""
    status = response.status_code
    if status >= 500:
        raise ServerError("server error", status=status, body=response.text)
    if status >= 400:
        raise ClientError("request rejected", status=status, body=response.text)


class DeliveryClient:
    """Posts payloads to the metrics API.

    The retry delay is awaited inside the delivery task, so the event loop
    stays free while a retry is pending.
    """

    def __init__(
        self,
        config: DeliveryConfig,
        *,
        client: httpx.AsyncClient | None = None,
        sleep_fn: Callable[[float], Awaitable[Any]] | None = None,
        logger: Any | None = None,
    ) -> None:
        self._config = config
        self.target = resolve_target(config.endpoint)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=config.timeout_seconds, follow_redirects=False
        )
        self._sleep = sleep_fn or asyncio.sleep
        self._log = logger or structlog.get_logger("backends.librato.delivery")

    def build_headers(self, body: bytes) -> dict[str, str]:
        return {
            "Authorization": self._config.auth_header,
            "Content-Type": "application/json",
            "Content-Length": str(len(body)),
            "User-Agent": USER_AGENT,
        }

    async def deliver(self, payload: OutgoingPayload) -> bool:
        """Deliver ``payload``, retrying once on retryable failures.

        Returns:
            True if either attempt succeeded, False if the payload was dropped
        """
        body = payload.to_json()
        try:
            await self._attempt(body)
            return True
        except DeliveryError as exc:
            if not exc.retryable:
                if self._config.debug:
                    self._log.info(
                        "librato.delivery_rejected", error=exc.describe(), attempt=1
                    )
                return False
            if self._config.debug:
                self._log.warning(
                    "librato.delivery_retry_scheduled",
                    error=exc.describe(),
                    delay=self._config.retry_delay_seconds,
                )

        await self._sleep(self._config.retry_delay_seconds)

        try:
            await self._attempt(body)
            return True
        except DeliveryError as exc:
            self._log.critical(
                "librato.delivery_failed",
                error=exc.describe(),
                attempt=2,
                url=self.target.url,
            )
            return False

    async def _attempt(self, body: bytes) -> None:
        try:
            response = await self._client.post(
                self.target.url, content=body, headers=self.build_headers(body)
            )
        except httpx.TransportError as exc:
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc
        classify_response(response)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
