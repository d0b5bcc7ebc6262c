#!/usr/bin/env python3
"""Changelog scan metrics (counters and timers) appended to a JSONL file.

Records page loads, page fetch latency and commits dropped for not following
the conventional format. Each line is one JSON object with ``ts``, ``metric``
and ``value`` plus any labels passed by the caller.
"""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

from configs.config import Config

# Set up logging
logger = logging.getLogger(__name__)

MAX_LABEL_LEN = 200


def metrics_file() -> Path:
    """Location of the metrics log, creating its directory on first use."""
    root = Path(Config.METRICS_ROOT)
    root.mkdir(parents=True, exist_ok=True)
    return root / "metrics.log"


def _clip(value: Any) -> Any:
    if isinstance(value, str) and len(value) > MAX_LABEL_LEN:
        return value[:MAX_LABEL_LEN] + "…"
    return value


def incr(name: str, value: Any = 1, **labels) -> None:
    """Append one metric record; a no-op when METRICS_ENABLED is off.

    Write failures are logged as warnings and the record is dropped.
    """
    if not Config.METRICS_ENABLED:
        return
    record: Dict[str, Any] = {"ts": int(time.time()), "metric": name, "value": value}
    record.update({key: _clip(label) for key, label in labels.items()})
    line = json.dumps(record, ensure_ascii=False, separators=(",", ":")) + "\n"
    try:
        with open(metrics_file(), "a", encoding="utf-8") as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        logger.warning(f"Failed to record metric {name}: {e}")


class Timer:
    """Context manager recording ``<name>.latency_s``.

    When the timed block raises, the record carries the exception class name
    under ``error`` and the exception propagates.
    """

    def __init__(self, name: str, **labels):
        self.name = name
        self.labels = labels
        self.started: Optional[float] = None

    def __enter__(self) -> "Timer":
        self.started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        elapsed = time.perf_counter() - (self.started or 0.0)
        labels = dict(self.labels)
        if exc_type is not None:
            labels["error"] = exc_type.__name__
        incr(f"{self.name}.latency_s", value=elapsed, **labels)
        return False
