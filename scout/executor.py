"""Ordered strategy chain with a guaranteed fallback.

``run_chain`` tries each :class:`Strategy` in turn.  Any exception raised by
a strategy is caught here, classified (see :func:`scout.errors.classify`) and
logged; a result rejected by the acceptance predicate counts as a
``quality`` failure.  The first accepted result wins.  When every strategy
fails, the fallback produces the value, so the chain itself never raises.

The executor keeps no state between calls.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, Sequence, TypeVar

from scout.errors import QualityTooLow, classify

logger = logging.getLogger(__name__)

T = TypeVar("T")

FALLBACK = "synthetic"


@dataclass(frozen=True)
class Strategy(Generic[T]):
    name: str
    run: Callable[[], T]


@dataclass(frozen=True)
class Attempt:
    """Outcome of one strategy invocation.

    ``outcome`` is ``"ok"`` or an error classification
    (``network``, ``parse``, ``unavailable``, ``quality``, ``unexpected``).
    """

    strategy: str
    outcome: str
    elapsed: float
    detail: str = ""


@dataclass
class ChainOutcome(Generic[T]):
    value: T
    strategy: str
    attempts: list[Attempt] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return self.strategy == FALLBACK


def run_chain(
    label: str,
    strategies: Sequence[Strategy[T]],
    accept: Callable[[T], bool],
    fallback: Callable[[], T],
) -> ChainOutcome[T]:
    """Run *strategies* in order and return the first accepted value.

    Args:
        label:      Shown in log lines (usually the URL or query).
        strategies: Tried in order; later ones only run if earlier ones fail.
        accept:     Minimum-quality predicate applied to each result.
        fallback:   Called once every strategy has failed.  Must not raise.
    """
    attempts: list[Attempt] = []

    for strategy in strategies:
        started = time.monotonic()
        try:
            value = strategy.run()
            if not accept(value):
                raise QualityTooLow(f"{strategy.name} result below quality threshold")
        except Exception as exc:
            outcome = classify(exc)
            attempt = Attempt(strategy.name, outcome, time.monotonic() - started, str(exc))
            attempts.append(attempt)
            log = logger.error if outcome == "unexpected" else logger.warning
            log("[%s] ✗ %s (%s, %.2fs): %s", strategy.name, label, outcome, attempt.elapsed, exc)
            continue

        attempt = Attempt(strategy.name, "ok", time.monotonic() - started)
        attempts.append(attempt)
        logger.info("[%s] ✓ %s (%.2fs)", strategy.name, label, attempt.elapsed)
        return ChainOutcome(value=value, strategy=strategy.name, attempts=attempts)

    logger.warning(
        "[%s] all %d strategies failed for %s; using synthetic fallback",
        FALLBACK, len(attempts), label,
    )
    return ChainOutcome(value=fallback(), strategy=FALLBACK, attempts=attempts)


def summarise_attempts(attempts: Sequence[Attempt]) -> Optional[str]:
    """``"http:network, browser:unavailable"`` or ``None`` when empty."""
    if not attempts:
        return None
    return ", ".join(f"{a.strategy}:{a.outcome}" for a in attempts)
