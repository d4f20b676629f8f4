from __future__ import annotations

import os
import time
from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return the current time in UTC.

    Tests can override via `FEATURERUNNER_TEST_NOW_ISO` to make timestamps deterministic.
    """
    override = os.environ.get("FEATURERUNNER_TEST_NOW_ISO")
    if override:
        return parse_utc_iso(override)
    return datetime.now(timezone.utc)


def parse_utc_iso(s: str) -> datetime:
    """ISO-8601 with `Z` or an explicit offset; naive timestamps are rejected."""
    if s.endswith("Z"):
        s = f"{s[:-1]}+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        raise ValueError("Timestamp must be timezone-aware (include +00:00 or Z)")
    return dt.astimezone(timezone.utc)


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


def elapsed_ms(start: int) -> int:
    return monotonic_ms() - start
