from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from backends.base import Backend

__all__ = ["BUILTIN_BACKENDS", "BackendRegistry", "load_backends"]

logger = logging.getLogger(__name__)

BUILTIN_BACKENDS: dict[str, str] = {
    "librato": "backends.librato.backend:LibratoBackend",
}


class BackendRegistry:
    """Maps backend names to ``module:Class`` import paths."""

    def __init__(self, entries: Mapping[str, str] | None = None) -> None:
        self._entries: dict[str, str] = dict(BUILTIN_BACKENDS if entries is None else entries)

    def register(self, name: str, target: str) -> None:
        if ":" not in target:
            raise ValueError(f"Backend target must be 'module:Class', got {target!r}")
        if name in self._entries:
            logger.warning(f"Overwriting existing backend: {name}")
        self._entries[name] = target

    def names(self) -> list[str]:
        return sorted(self._entries)

    def get(self, name: str) -> type[Any]:
        """Import and return the backend class registered under ``name``."""
        if name not in self._entries:
            raise KeyError(f"Backend not found: {name}")
        module_name, _, attr = self._entries[name].partition(":")
        module = importlib.import_module(module_name)
        return getattr(module, attr)

    def create(self, name: str, **kwargs: Any) -> Backend:
        backend = self.get(name)(**kwargs)
        if not isinstance(backend, Backend):
            raise TypeError(f"{type(backend).__name__} does not implement the backend lifecycle")
        return backend


def load_backends(
    names: Iterable[str],
    startup_time: float,
    config: Mapping[str, Any],
    registry: BackendRegistry | None = None,
) -> list[Backend]:
    """Create and initialize backends, keeping only those that accept the config."""
    registry = registry or BackendRegistry()
    loaded: list[Backend] = []
    for name in names:
        try:
            backend = registry.create(name)
        except (KeyError, ImportError, AttributeError, TypeError) as e:
            logger.warning(f"Failed to load backend {name}: {e}")
            continue
        if not backend.init(startup_time, config):
            logger.warning(f"Backend {name} rejected configuration, not registering")
            continue
        loaded.append(backend)
    return loaded
