"""
Per-staff mutual exclusion.

Booking, transition and reschedule operations for the same staff member must
run one at a time so the availability check and the index mutation happen
as a single step. Different staff members never contend.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class StaffLockRegistry:
    """Keyed lock registry; one ``threading.Lock`` per staff id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def lock_for(self, staff_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(staff_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[staff_id] = lock
            return lock

    @contextmanager
    def hold(self, *staff_ids: str) -> Iterator[None]:
        """Hold the locks of every given staff id.

        Keys are de-duplicated and acquired in sorted order so two callers
        locking the same pair can never deadlock.
        """
        keys = sorted(set(staff_ids))
        acquired = []
        try:
            for key in keys:
                lock = self.lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
