"""
wiki_elastic.permits — Fair counting permit pool bounding in-flight requests.

A permit is taken before a request goes out and given back when it finishes.
For asynchronous writes the give-back happens on another thread (the HTTP
client's I/O pool), so permits are handed around as ``PermitLease`` objects
whose ``release()`` is safe to call from any exit path, any number of times.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Optional

from wiki_elastic.log import get_logger
from wiki_elastic.throttle import MAX_AVAILABLE

logger = get_logger(__name__)


class PermitPool:
    """
    Counting semaphore with first-come-first-served hand-off.

    ``threading.Semaphore`` wakes an arbitrary waiter; here waiters queue
    up and the oldest one gets the next free permit, so a steady stream of
    callers cannot starve an early one.
    """

    def __init__(self, capacity: int = MAX_AVAILABLE) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._available = capacity
        self._high_water = 0
        self._waiters: deque = deque()
        self._cond = threading.Condition()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def available(self) -> int:
        with self._cond:
            return self._available

    @property
    def in_use(self) -> int:
        with self._cond:
            return self._capacity - self._available

    @property
    def high_water(self) -> int:
        """Largest number of permits ever held at the same time."""
        with self._cond:
            return self._high_water

    @property
    def waiting(self) -> int:
        with self._cond:
            return len(self._waiters)

    def _take(self) -> None:
        self._available -= 1
        self._high_water = max(self._high_water, self._capacity - self._available)

    def acquire(self, timeout: Optional[float] = None) -> bool:
        """
        Block until a permit is free (or ``timeout`` seconds pass).
        Returns False on timeout; no permit is held in that case.
        """
        with self._cond:
            if not self._waiters and self._available > 0:
                self._take()
                return True

            ticket = object()
            self._waiters.append(ticket)
            granted = self._cond.wait_for(
                lambda: self._waiters[0] is ticket and self._available > 0,
                timeout,
            )
            if not granted:
                self._waiters.remove(ticket)
                self._cond.notify_all()
                return False

            self._waiters.popleft()
            self._take()
            if self._waiters and self._available > 0:
                self._cond.notify_all()
            return True

    def release(self) -> None:
        with self._cond:
            if self._available >= self._capacity:
                raise ValueError("PermitPool released more times than acquired")
            self._available += 1
            self._cond.notify_all()

    def lease(
        self,
        timeout: Optional[float] = None,
        lease_timeout: Optional[float] = None,
        label: Optional[str] = None,
    ) -> Optional["PermitLease"]:
        """Acquire a permit wrapped in a ``PermitLease``; None if ``timeout`` ran out."""
        if not self.acquire(timeout):
            return None
        return PermitLease(self, lease_timeout=lease_timeout, label=label)


class PermitLease:
    """
    One acquired permit. ``release()`` gives it back exactly once; later
    calls are no-ops and return False.

    With ``lease_timeout`` set, a watchdog reclaims the permit if nobody
    released it in time (e.g. a completion callback that never fired).
    """

    def __init__(self, pool: PermitPool, lease_timeout: Optional[float] = None, label: Optional[str] = None):
        self._pool = pool
        self._label = label or "request"
        self._lease_timeout = lease_timeout
        self._lock = threading.Lock()
        self._released = False
        self._watchdog: Optional[threading.Timer] = None
        if lease_timeout is not None:
            self._watchdog = threading.Timer(lease_timeout, self._reclaim)
            self._watchdog.daemon = True
            self._watchdog.start()

    @property
    def released(self) -> bool:
        with self._lock:
            return self._released

    def release(self) -> bool:
        with self._lock:
            if self._released:
                return False
            self._released = True
        if self._watchdog is not None:
            self._watchdog.cancel()
        self._pool.release()
        return True

    def _reclaim(self) -> None:
        if self.release():
            logger.warning(
                "Permit for %s not released after %.1fs; reclaimed by watchdog",
                self._label, self._lease_timeout,
            )

    def __enter__(self) -> "PermitLease":
        return self

    def __exit__(self, *exc) -> bool:
        self.release()
        return False
