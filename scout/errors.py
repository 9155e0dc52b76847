"""Error taxonomy for the acquisition strategies.

None of these ever reach a caller of :class:`scout.layer.AcquisitionLayer`;
they are raised by individual strategies and caught at the strategy-chain
boundary, where the class name becomes the logged classification.
"""

from __future__ import annotations


class ScoutError(Exception):
    """Base class for every strategy failure."""

    kind = "error"


class NetworkError(ScoutError):
    """Timeout, refused connection, or a non-success HTTP status."""

    kind = "network"


class ParseError(ScoutError):
    """Markup was retrieved but no structured data could be extracted."""

    kind = "parse"


class ResourceUnavailable(ScoutError):
    """The browser is circuit-broken, disabled, failed to launch, or crashed."""

    kind = "unavailable"


class QualityTooLow(ScoutError):
    """Content was extracted but falls below the acceptance threshold.

    A soft failure: the chain moves on to the next strategy.
    """

    kind = "quality"


def classify(exc: BaseException) -> str:
    """Return the short classification logged for *exc*."""
    if isinstance(exc, ScoutError):
        return exc.kind
    return "unexpected"
