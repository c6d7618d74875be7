from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from core.contracts import FlushSnapshot

CONFIG: dict[str, Any] = {
    "flushInterval": 10000,
    "debug": False,
    "librato": {"email": "ops@example.com", "token": "secret-token"},
}


class RecordingLogger:
    """Stand-in for a structlog logger that keeps every call."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def _log(self, level: str, event: str, **kw: Any) -> None:
        self.records.append((level, event, kw))

    def debug(self, event: str, **kw: Any) -> None:
        self._log("debug", event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._log("info", event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._log("warning", event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._log("error", event, **kw)

    def critical(self, event: str, **kw: Any) -> None:
        self._log("critical", event, **kw)

    def levels(self) -> list[str]:
        return [level for level, _, _ in self.records]


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeApi:
    """httpx transport handler replaying a scripted list of outcomes.

    Each outcome is a status code or an exception instance to raise. The last
    outcome repeats once the script is exhausted.
    """

    def __init__(self, *outcomes: int | Exception) -> None:
        self.outcomes = list(outcomes) or [200]
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.outcomes)) - 1
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome, text=f"status {outcome}")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]


def config_with(**librato: Any) -> dict[str, Any]:
    cfg = dict(CONFIG)
    cfg["librato"] = {**CONFIG["librato"], **librato}
    return cfg


class RecordingBackend:
    """Minimal backend satisfying the lifecycle contract."""

    name = "recording"

    def __init__(self) -> None:
        self.flushes: list[tuple[float, FlushSnapshot | Mapping[str, Any]]] = []
        self.closed = False

    def init(self, startup_time: float, config: Mapping[str, Any]) -> bool:
        return bool(config.get("recording", True))

    def flush(self, timestamp: float, metrics: FlushSnapshot | Mapping[str, Any]) -> None:
        self.flushes.append((timestamp, metrics))

    def stats(self, emit: Callable[[str, Any], None]) -> None:
        emit("flushes", len(self.flushes))

    async def drain(self) -> None:
        return None

    async def close(self) -> None:
        self.closed = True
