"""
Per-item mutual exclusion for the booking critical section.

Strategy:
- One ``threading.Lock`` per item, created on first use
- Entries are reference counted and dropped when no thread holds or waits
  on them, so the registry does not grow with the catalogue
- Acquisition is bounded; running out of time raises LockTimeout, which is
  reported as a transient failure and never as a date conflict

Bookings on different items never touch the same lock.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Iterator

import structlog

from rental_booking.errors import LockTimeout
from rental_booking.metrics import lock_wait_seconds

logger = structlog.get_logger(__name__)


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class ItemLockRegistry:
    """
    Registry of per-item locks.

    Example:
        >>> locks = ItemLockRegistry()
        >>> with locks.hold("item-1", timeout=5.0):
        ...     ...  # read snapshot, validate, insert
    """

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}
        self._registry_lock = threading.Lock()

    def _checkout(self, item_id: str) -> _Entry:
        with self._registry_lock:
            entry = self._entries.get(item_id)
            if entry is None:
                entry = self._entries[item_id] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, item_id: str, entry: _Entry) -> None:
        with self._registry_lock:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(item_id) is entry:
                del self._entries[item_id]

    @contextmanager
    def hold(self, item_id: str, timeout: float) -> Iterator[None]:
        """
        Hold the lock for ``item_id`` for the duration of the block.

        Args:
            item_id: Item whose bookings must be serialized
            timeout: Seconds to wait before giving up

        Raises:
            LockTimeout: If the lock could not be acquired within ``timeout``
        """
        entry = self._checkout(item_id)
        started = time.monotonic()
        try:
            acquired = entry.lock.acquire(timeout=timeout)
            lock_wait_seconds.observe(time.monotonic() - started)
            if not acquired:
                logger.warning("item_lock_timeout", item_id=item_id, timeout=timeout)
                raise LockTimeout(item_id, timeout)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(item_id, entry)

    def size(self) -> int:
        """Number of items with a live lock entry."""
        with self._registry_lock:
            return len(self._entries)
