from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

CONFIG_FILE = Path("config") / "backends.yaml"


class LibratoCfg(BaseModel):
    """Nested ``librato`` block of the host configuration."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    email: str | None = None
    token: str | None = None
    endpoint: str | None = Field(
        default=None, validation_alias=AliasChoices("endpoint", "api")
    )
    source: str | None = None
    legacy_counters: bool = Field(default=False, alias="legacyCounters")
    retry_delay: float = Field(default=5.0, alias="retryDelay", ge=0)
    timeout: float = Field(default=10.0, gt=0)


class HostCfg(BaseModel):
    """Host configuration as seen by metrics backends.

    The host config also carries keys for its listener and other backends,
    so unknown keys are ignored here.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    flush_interval: int = Field(default=10_000, alias="flushInterval")
    debug: bool = False
    librato: LibratoCfg | None = None

    # Deprecated top-level keys
    librato_host: str | None = Field(default=None, alias="libratoHost")
    librato_user: str | None = Field(default=None, alias="libratoUser")
    librato_api_key: str | None = Field(default=None, alias="libratoApiKey")
    librato_source: str | None = Field(default=None, alias="libratoSource")


def resolve_librato_settings(host_cfg: HostCfg) -> LibratoCfg:
    """Return the effective Librato settings.

    The nested block takes precedence whenever it is present, even if it is
    incomplete. Otherwise the deprecated flat keys are used.
    """
    if host_cfg.librato is not None:
        return host_cfg.librato
    return LibratoCfg(
        email=host_cfg.librato_user,
        token=host_cfg.librato_api_key,
        endpoint=host_cfg.librato_host,
        source=host_cfg.librato_source,
    )


def _read_yaml(path: Path) -> dict[str, Any]:
    """Safe YAML read; returns {} if file missing/empty."""
    import yaml  # lazy import

    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data or {}


def load_host_config(base_dir: str | Path) -> dict[str, Any]:
    """Load the raw host configuration from ./config/backends.yaml.

    Each backend validates its own section in ``init``, so the mapping is
    returned as-is.
    """
    path = Path(base_dir) / CONFIG_FILE
    data = _read_yaml(path)
    if not data:
        msg = f"Missing or empty config file: {path}"
        raise FileNotFoundError(msg)
    if not isinstance(data, dict):
        msg = f"Config file must contain a mapping: {path}"
        raise ValueError(msg)
    return data
