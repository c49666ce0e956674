"""
Per-origin politeness gate.

`await_turn(origin)` blocks until that origin's minimum interval has passed
since its previous request. Origins are independent: each has its own lock,
so a slow board never holds up another. The first request to an origin goes
straight through.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import urlsplit

from .errors import HarvestCancelled
from .utils import now_utc

log = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 2.0

# Seconds between requests per host
DOMAIN_INTERVALS: dict[str, float] = {
    "djinni.co": 3.0,
    "jobs.dou.ua": 3.0,
    "dou.ua": 4.0,
    "www.work.ua": 3.0,
    "www.linkedin.com": 5.0,
    "justjoin.it": 2.0,
    "remoteok.com": 3.0,
    "weworkremotely.com": 3.0,
    "hacker-news.firebaseio.com": 0.5,
    "himalayas.app": 3.0,
    "jobicy.com": 3.0,
    "nofluffjobs.com": 4.0,
    "www.toptal.com": 5.0,
    "www.upwork.com": 4.0,
    "www.reddit.com": 3.0,
    "boards-api.greenhouse.io": 1.0,
    "api.lever.co": 1.0,
}

PolicyHook = Callable[[str], bool]


def origin_of(url: str) -> str:
    """Lower-cased host of `url` (the gate's unit of politeness)."""
    return (urlsplit(url or "").hostname or "").lower()


def allow_all(url: str) -> bool:
    return True


@dataclass(frozen=True)
class AuditEntry:
    at: datetime
    origin: str
    url: str
    action: str  # "allowed" | "throttled" | "blocked"
    waited_seconds: float = 0.0


class ComplianceGate:
    """
    Thread-safe: harvesters running in different threads share one gate.

    Interval per origin = max(table entry, harvester's requested delay);
    with neither present, `default_interval`. The policy hook decides whether
    a URL may be fetched at all (robots-style rules plug in here).
    """

    def __init__(
        self,
        intervals: dict[str, float] | None = None,
        *,
        default_interval: float = DEFAULT_INTERVAL_SECONDS,
        policy: PolicyHook | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        audit_size: int = 1000,
    ):
        self._intervals = {k.lower(): float(v) for k, v in (DOMAIN_INTERVALS if intervals is None else intervals).items()}
        self.default_interval = float(default_interval)
        self.policy: PolicyHook = policy or allow_all
        self._clock = clock
        self._sleep = sleep
        self._last: dict[str, float] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._audit: deque[AuditEntry] = deque(maxlen=audit_size)

    # ---- policy ----
    def interval_for(self, origin: str, requested: float | None = None) -> float:
        table = self._intervals.get((origin or "").lower())
        if table is None and requested is None:
            return self.default_interval
        return max(table or 0.0, requested or 0.0)

    def allows(self, url: str) -> bool:
        allowed = bool(self.policy(url))
        if not allowed:
            self._record(origin_of(url), url, "blocked")
            log.info("compliance policy blocked %s", url)
        return allowed

    # ---- waiting ----
    def await_turn(
        self,
        origin: str,
        cancel: threading.Event | None = None,
        *,
        interval: float | None = None,
        url: str = "",
    ) -> float:
        """
        Block until `origin` may be hit again, then stamp it. Returns seconds waited.
        Raises HarvestCancelled if `cancel` is set before or during the wait.
        """
        origin = (origin or "").lower()
        if cancel is not None and cancel.is_set():
            raise HarvestCancelled(f"cancelled before waiting on {origin}")

        wait_for = self.interval_for(origin, interval)
        waited = 0.0
        with self._lock_for(origin):
            last = self._last.get(origin)
            if last is not None:
                remaining = last + wait_for - self._clock()
                if remaining > 0:
                    log.debug("gate: waiting %.2fs for %s", remaining, origin)
                    if self._wait(remaining, cancel):
                        raise HarvestCancelled(f"cancelled while waiting on {origin}")
                    waited = remaining
            if cancel is not None and cancel.is_set():
                raise HarvestCancelled(f"cancelled while waiting on {origin}")
            self._last[origin] = self._clock()
        self._record(origin, url, "throttled" if waited else "allowed", waited)
        return waited

    def _wait(self, seconds: float, cancel: threading.Event | None) -> bool:
        """True when cancellation cut the wait short."""
        if cancel is not None:
            return cancel.wait(seconds)
        self._sleep(seconds)
        return False

    def _lock_for(self, origin: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(origin)
            if lock is None:
                lock = self._locks[origin] = threading.Lock()
            return lock

    # ---- audit ----
    def _record(self, origin: str, url: str, action: str, waited: float = 0.0) -> None:
        self._audit.append(AuditEntry(at=now_utc(), origin=origin, url=url, action=action, waited_seconds=waited))

    def audit_log(self) -> list[AuditEntry]:
        return list(self._audit)

    def statistics(self) -> dict[str, dict[str, int]]:
        """Per-origin counts of allowed / throttled / blocked requests (bounded by the audit window)."""
        stats: dict[str, dict[str, int]] = {}
        for entry in list(self._audit):
            bucket = stats.setdefault(entry.origin, {"allowed": 0, "throttled": 0, "blocked": 0})
            bucket[entry.action] = bucket.get(entry.action, 0) + 1
        return stats
