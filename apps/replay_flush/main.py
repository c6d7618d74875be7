"""Replay recorded flush snapshots through metrics backends.

Each line of the snapshots file is a JSON object::

    {"timestamp": 1700000000, "counters": {...}, "timers": {...}, "gauges": {...}}

Snapshots are flushed in file order, one cycle per line, waiting for each
cycle's delivery to settle before the next flush so cycles never overlap.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import time
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from backends.registry import BackendRegistry, load_backends
from core.config import load_host_config
from core.contracts import FlushSnapshot
from core.logging import setup_console_logging, setup_json_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(description="Replay flush snapshots through backends")
    parser.add_argument(
        "--config-root",
        default=".",
        help="Directory containing config/ (defaults to current working directory)",
    )
    parser.add_argument(
        "--snapshots",
        required=True,
        type=Path,
        help="NDJSON file with one flush snapshot per line",
    )
    parser.add_argument(
        "--backends",
        default="librato",
        help="Comma-separated backend names (default: librato)",
    )
    parser.add_argument(
        "--json-logs",
        type=Path,
        default=None,
        help="Write NDJSON logs to this directory instead of stderr",
    )
    return parser


def read_snapshots(path: Path) -> Iterator[tuple[float, FlushSnapshot]]:
    with path.open("r", encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as exc:
                msg = f"{path}:{line_no}: invalid JSON: {exc}"
                raise ValueError(msg) from exc
            yield float(data.get("timestamp", time.time())), FlushSnapshot.from_dict(data)


async def replay(
    config: dict[str, Any],
    snapshots: Path,
    backend_names: list[str],
    registry: BackendRegistry | None = None,
) -> dict[str, Any]:
    """Flush every snapshot through every backend.

    Returns:
        Stats reported by each backend, keyed ``<backend>.<stat>``
    """
    backends = load_backends(backend_names, time.time(), config, registry)
    if not backends:
        logger.error("replay.no_backends", extra={"requested": backend_names})
        return {}

    cycles = 0
    try:
        for timestamp, snapshot in read_snapshots(snapshots):
            for backend in backends:
                backend.flush(timestamp, snapshot)
            await asyncio.gather(*(backend.drain() for backend in backends))
            cycles += 1
    finally:
        for backend in backends:
            await backend.close()

    stats: dict[str, Any] = {}
    for backend in backends:

        def emit(key: str, value: Any, prefix: str = backend.name) -> None:
            stats[f"{prefix}.{key}"] = value

        backend.stats(emit)
    logger.info("replay.complete", extra={"cycles": cycles, "stats": stats})
    return stats


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        argv: Command line arguments

    Returns:
        Exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_host_config(args.config_root)
    level = "DEBUG" if config.get("debug") else "INFO"
    if args.json_logs is not None:
        setup_json_logging(str(args.json_logs), level)
    else:
        setup_console_logging(level)

    names = [name.strip() for name in args.backends.split(",") if name.strip()]
    try:
        stats = asyncio.run(replay(config, args.snapshots, names))
    except KeyboardInterrupt:
        return 130

    for key, value in sorted(stats.items()):
        print(f"{key} {value}")
    return 0 if stats else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
