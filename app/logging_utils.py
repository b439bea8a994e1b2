"""
Structured logging helpers.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON. ``None`` fields are dropped.
    """

    payload = {"event": event}
    payload.update({key: value for key, value in fields.items() if value is not None})
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


def elapsed_ms(started_at: float) -> int:
    """
    Whole milliseconds elapsed since a ``time.perf_counter()`` reading.
    """

    return max(0, int(round((time.perf_counter() - started_at) * 1000)))
