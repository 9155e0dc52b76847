"""Plain HTTP(S) fetch strategy with rotating client identities."""

from __future__ import annotations

import itertools
import logging
import re
import threading
from typing import Iterable, Optional

import httpx

from scout.config import settings
from scout.errors import NetworkError
from scout.models import RawPage
from scout.scraper.patterns import SPA_PATTERNS, USER_AGENTS

logger = logging.getLogger(__name__)

_ACCEPT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class UserAgentRotator:
    """Cycle through a pool of user-agent strings, one per call."""

    def __init__(self, agents: Iterable[str] = USER_AGENTS) -> None:
        pool = tuple(agents)
        if not pool:
            raise ValueError("user-agent pool must not be empty")
        self._cycle = itertools.cycle(pool)
        self._lock = threading.Lock()

    def next(self) -> str:
        with self._lock:
            return next(self._cycle)


def looks_like_spa(html: str) -> bool:
    """Return ``True`` if *html* looks like a JavaScript SPA that needs rendering."""
    for pattern in SPA_PATTERNS:
        if pattern.search(html):
            return True
    # Heuristic: very little visible text relative to total HTML size.
    # Strip <script> and <style> blocks first so their source code doesn't
    # count as visible text, then strip remaining tags.
    no_scripts = re.sub(
        r"<(script|style)[^>]*>.*?</(script|style)>", "", html,
        flags=re.IGNORECASE | re.DOTALL,
    )
    stripped = re.sub(r"<[^>]+>", "", no_scripts).strip()
    return len(html) > 2000 and len(stripped) < 200


class HttpFetcher:
    """Fetch a URL over plain HTTP(S).

    Does not retry: a failure is reported as :class:`NetworkError` and the
    strategy chain decides what to try next.
    """

    name = "http"

    def __init__(
        self,
        rotator: Optional[UserAgentRotator] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._rotator = rotator or UserAgentRotator()
        self._timeout = timeout

    def fetch(self, url: str, timeout: Optional[float] = None) -> RawPage:
        """Fetch *url* and return a :class:`RawPage`.

        Raises:
            NetworkError: On timeout, transport failure, or a 4xx/5xx status.
        """
        timeout = timeout or self._timeout or settings.request_timeout
        headers = {"User-Agent": self._rotator.next(), **_ACCEPT_HEADERS}
        try:
            with httpx.Client(
                headers=headers,
                timeout=timeout,
                follow_redirects=True,
                max_redirects=5,
            ) as client:
                response = client.get(url)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"timed out after {timeout:.0f}s: {url}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"request failed for {url}: {exc}") from exc

        if response.status_code >= 400:
            raise NetworkError(f"HTTP {response.status_code} for {url}")

        logger.debug("[http] %s → HTTP %d (%d bytes)", url, response.status_code, len(response.text))
        return RawPage(url=str(response.url), html=response.text, status_code=response.status_code)
