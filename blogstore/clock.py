"""Clock capability used for server-assigned timestamps"""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], int]


def utc_now_timestamp() -> int:
    """Return the current UTC time as whole seconds since the epoch."""
    return int(datetime.now(UTC).timestamp())
