"""Process-wide source of unique node identities."""

import itertools
import threading

_counter = itertools.count(1)
_lock = threading.Lock()


def next_unique_id() -> int:
    """Return a new identity, unique for the lifetime of the process."""
    with _lock:
        return next(_counter)
