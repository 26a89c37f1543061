"""Per-employee mutual exclusion for salary payouts."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class EmployeeLocks:
    """Registry of one lock per employee.

    Held across the "already paid?" check, the gateway calls and the ledger
    write so two concurrent payouts for the same employee cannot both pass
    the check. Scope is a single process; the ledger's uniqueness constraint
    covers multiple processes.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, employee_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(employee_id)
            if lock is None:
                lock = self._locks[employee_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, employee_id: str) -> Iterator[None]:
        """Hold the employee's lock for the duration of the block."""
        lock = self._lock_for(employee_id)
        with lock:
            yield

    def is_held(self, employee_id: str) -> bool:
        """Check whether a payout for the employee is in flight."""
        return self._lock_for(employee_id).locked()
