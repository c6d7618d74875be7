from __future__ import annotations

import pytest

from backends.librato.backend import LibratoBackend
from backends.registry import BackendRegistry, load_backends
from tests.utils import CONFIG, RecordingBackend


def make_registry() -> BackendRegistry:
    registry = BackendRegistry()
    registry.register("recording", "tests.utils:RecordingBackend")
    return registry


def test_builtin_backends() -> None:
    registry = BackendRegistry()

    assert registry.names() == ["librato"]
    assert registry.get("librato") is LibratoBackend


def test_unknown_backend_raises() -> None:
    with pytest.raises(KeyError, match="Backend not found"):
        BackendRegistry().get("graphite")


def test_register_requires_import_path() -> None:
    with pytest.raises(ValueError, match="module:Class"):
        BackendRegistry().register("bad", "tests.utils.RecordingBackend")


def test_create_rejects_non_backend() -> None:
    registry = BackendRegistry({"config": "core.config:LibratoCfg"})

    with pytest.raises(TypeError, match="lifecycle"):
        registry.create("config")


def test_load_backends_skips_rejected_and_unknown() -> None:
    registry = make_registry()

    loaded = load_backends(["recording", "missing", "librato"], 0, {"debug": False}, registry)

    assert [type(b) for b in loaded] == [RecordingBackend]


def test_load_backends_with_valid_librato_config() -> None:
    loaded = load_backends(["librato"], 0, CONFIG)

    assert len(loaded) == 1
    assert isinstance(loaded[0], LibratoBackend)


def test_load_backends_respects_init_result() -> None:
    loaded = load_backends(["recording"], 0, {"recording": False}, make_registry())

    assert loaded == []
