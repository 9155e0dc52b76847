"""Circuit breaker guarding the headless browser.

A two-state machine: ``CLOSED`` (browser may be used) and ``OPEN`` (browser
permanently disabled for the rest of the process).  ``OPEN`` is absorbing.

Transitions are computed by the pure function :func:`next_state`, so the
policy can be exercised without a browser; :class:`CircuitBreaker` only adds
the lock and keeps the counters.

Events
------
``LAUNCHED``       browser process started; resets launch failures and uses.
``LAUNCH_FAILED``  browser failed to start; opens after ``max_launch_attempts``
                   consecutive failures.
``CRASHED``        a session lost its target/browser; opens after
                   ``crash_threshold`` consecutive crashes.
``SESSION_OK``     a session completed; counts a use and resets crashes.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from enum import Enum

logger = logging.getLogger(__name__)


class BreakerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


class BreakerEvent(str, Enum):
    LAUNCHED = "launched"
    LAUNCH_FAILED = "launch_failed"
    CRASHED = "crashed"
    SESSION_OK = "session_ok"


@dataclass(frozen=True)
class BreakerPolicy:
    max_launch_attempts: int = 3
    crash_threshold: int = 1
    max_uses: int = 50


@dataclass(frozen=True)
class BreakerCounters:
    launch_failures: int = 0
    crashes: int = 0
    uses: int = 0


def next_state(
    state: BreakerState,
    event: BreakerEvent,
    counters: BreakerCounters,
    policy: BreakerPolicy,
) -> tuple[BreakerState, BreakerCounters]:
    """Return the state and counters after *event*."""
    if state is BreakerState.OPEN:
        return state, counters

    if event is BreakerEvent.LAUNCHED:
        return state, replace(counters, launch_failures=0, uses=0)

    if event is BreakerEvent.LAUNCH_FAILED:
        counters = replace(counters, launch_failures=counters.launch_failures + 1)
        if counters.launch_failures >= policy.max_launch_attempts:
            return BreakerState.OPEN, counters
        return state, counters

    if event is BreakerEvent.CRASHED:
        counters = replace(counters, crashes=counters.crashes + 1)
        if counters.crashes >= policy.crash_threshold:
            return BreakerState.OPEN, counters
        return state, counters

    # SESSION_OK
    return state, replace(counters, crashes=0, uses=counters.uses + 1)


class CircuitBreaker:
    """Thread-safe holder for the breaker state and counters."""

    def __init__(self, policy: BreakerPolicy | None = None) -> None:
        self.policy = policy or BreakerPolicy()
        self._state = BreakerState.CLOSED
        self._counters = BreakerCounters()
        self._lock = threading.Lock()

    @property
    def state(self) -> BreakerState:
        with self._lock:
            return self._state

    @property
    def counters(self) -> BreakerCounters:
        with self._lock:
            return self._counters

    @property
    def is_open(self) -> bool:
        return self.state is BreakerState.OPEN

    @property
    def needs_restart(self) -> bool:
        """True once the browser has served ``max_uses`` sessions since launch."""
        with self._lock:
            return self._counters.uses >= self.policy.max_uses

    def record(self, event: BreakerEvent) -> BreakerState:
        with self._lock:
            before = self._state
            self._state, self._counters = next_state(
                self._state, event, self._counters, self.policy
            )
            after = self._state
            counters = self._counters
        if before is not after:
            logger.warning(
                "[browser] circuit breaker OPEN after %s (launch failures=%d, crashes=%d); "
                "browser strategy disabled for this process",
                event.value,
                counters.launch_failures,
                counters.crashes,
            )
        return after
