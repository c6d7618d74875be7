"""Pluggable metrics backends driven by a flush host."""

from backends.base import Backend
from backends.registry import BackendRegistry, load_backends

__all__ = ["Backend", "BackendRegistry", "load_backends"]
