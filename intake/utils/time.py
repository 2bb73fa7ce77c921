from __future__ import annotations

import time
from datetime import datetime, timezone


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")


def utc_date() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def epoch_ms() -> int:
    return int(time.time() * 1000)


def elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)
