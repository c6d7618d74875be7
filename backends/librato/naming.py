from __future__ import annotations

import re

MAX_NAME_LENGTH = 255

_INVALID_RUN = re.compile(r"[^A-Za-z0-9_.:\-]+")


def sanitize_name(name: str) -> str:
    """Make ``name`` acceptable to the metrics API.

    Only the first run of characters outside ``[A-Za-z0-9_.:-]`` is collapsed
    into a single underscore; later runs are left untouched. The result is
    truncated to 255 characters.
    """
    return _INVALID_RUN.sub("_", name, count=1)[:MAX_NAME_LENGTH]
