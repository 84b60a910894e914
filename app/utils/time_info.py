"""
TIME INFORMATION UTILITY
========================

Timestamps and uptime for the /ping and /health responses. The start time is
taken when this module is first imported, which happens during app startup.
"""

import datetime
import time

_START_TIME = time.monotonic()


def get_timestamp() -> str:
    """Current UTC time as an ISO-8601 string, e.g. 2026-02-05T14:03:07.123456+00:00."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def get_uptime_seconds() -> float:
    """Seconds since the process started serving (rounded to milliseconds)."""
    return round(time.monotonic() - _START_TIME, 3)
