"""Utility modules."""
from examhall.utils.locks import KeyedLock
from examhall.utils.time_utils import as_utc, elapsed_seconds, iso, round2, utc_now

__all__ = [
    "KeyedLock",
    "as_utc",
    "elapsed_seconds",
    "iso",
    "round2",
    "utc_now",
]
