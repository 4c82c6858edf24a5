"""Date and time utilities.

Converts between the iMessage store's native timestamps (nanoseconds since
2001-01-01 00:00:00 UTC) and standard Unix time.
"""

from __future__ import annotations

# Apple epoch starts at Jan 1, 2001
APPLE_EPOCH_OFFSET = 978307200
NANOSECONDS_PER_SECOND = 1_000_000_000
NANOSECONDS_PER_MILLISECOND = 1_000_000

# The Apple epoch expressed in Unix nanoseconds
APPLE_EPOCH_UNIX_NS = APPLE_EPOCH_OFFSET * NANOSECONDS_PER_SECOND


def to_store_epoch(unix_ns: int) -> int:
    """Convert Unix nanoseconds to store nanoseconds.

    Values before 2001-01-01 are not representable in the store and are
    floored to 0.
    """
    return max(unix_ns, APPLE_EPOCH_UNIX_NS) - APPLE_EPOCH_UNIX_NS


def to_unix_epoch(store_ns: int) -> int:
    """Convert store nanoseconds to Unix nanoseconds."""
    return store_ns + APPLE_EPOCH_UNIX_NS


def store_to_unix_ms(store_ns: int) -> int:
    """Convert store nanoseconds to Unix milliseconds."""
    return to_unix_epoch(store_ns) // NANOSECONDS_PER_MILLISECOND
