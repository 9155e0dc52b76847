"""Headless-browser resource manager.

Owns a single reusable Chromium process and hands out short-lived, isolated
sessions (a fresh browser context plus one page) per request.

Playwright's sync API is bound to the thread that started it, so the manager
runs the browser on one dedicated worker thread, from launch to teardown.
Callers on any thread go through :meth:`BrowserManager.with_session`, which
blocks until their session has run.

A :class:`~scout.scraper.breaker.CircuitBreaker` decides whether the browser
may be used at all.  Once it opens, ``with_session`` fails immediately with
:class:`~scout.errors.ResourceUnavailable` and no launch is attempted.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from scout.config import settings
from scout.errors import NetworkError, ResourceUnavailable
from scout.scraper.breaker import BreakerEvent, BreakerPolicy, CircuitBreaker
from scout.scraper.fetcher import UserAgentRotator

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A launcher starts the browser and returns ``(browser, stop)`` where
# ``stop()`` releases the browser and its driver.
Launcher = Callable[[], tuple[Any, Callable[[], None]]]

_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
]
_BLOCKED_RESOURCE_TYPES = frozenset({"image", "font", "media", "stylesheet"})
_CRASH_MARKERS = (
    "target closed",
    "has been closed",
    "browser closed",
    "browser has disconnected",
    "connection closed",
    "crash",
)
_VIEWPORT = {"width": 1920, "height": 1080}


def launch_chromium() -> tuple[Any, Callable[[], None]]:
    """Start Playwright and launch headless Chromium."""
    from playwright.sync_api import sync_playwright  # noqa: PLC0415

    pw = sync_playwright().start()
    try:
        browser = pw.chromium.launch(headless=True, args=_LAUNCH_ARGS)
    except Exception:
        pw.stop()
        raise

    def stop() -> None:
        try:
            browser.close()
        finally:
            pw.stop()

    return browser, stop


def is_crash(exc: BaseException) -> bool:
    """Return ``True`` when *exc* means the browser process or target is gone."""
    message = str(exc).lower()
    return any(marker in message for marker in _CRASH_MARKERS)


def _block_heavy_resources(route: Any) -> None:
    if route.request.resource_type in _BLOCKED_RESOURCE_TYPES:
        route.abort()
    else:
        route.continue_()


def _close_quietly(resource: Any, label: str) -> None:
    try:
        resource.close()
    except Exception as exc:  # the browser may already be gone
        logger.debug("[browser] closing %s failed: %s", label, exc)


class BrowserManager:
    """Shared browser process with per-request isolated sessions."""

    name = "browser"

    def __init__(
        self,
        breaker: Optional[CircuitBreaker] = None,
        launcher: Launcher = launch_chromium,
        rotator: Optional[UserAgentRotator] = None,
        block_resources: Optional[bool] = None,
        settle_delay: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.breaker = breaker or CircuitBreaker(
            BreakerPolicy(
                max_launch_attempts=settings.browser_max_launch_attempts,
                crash_threshold=settings.browser_crash_threshold,
                max_uses=settings.browser_max_uses,
            )
        )
        self._launcher = launcher
        self._rotator = rotator or UserAgentRotator()
        self._block_resources = (
            settings.browser_block_resources if block_resources is None else block_resources
        )
        self._settle_delay = (
            settings.browser_settle_delay if settle_delay is None else settle_delay
        )
        self._timeout = timeout or settings.browser_timeout
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="scout-browser")
        self._browser: Any = None
        self._stop: Optional[Callable[[], None]] = None
        self._closed = False
        self.launch_count = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def available(self) -> bool:
        return not self._closed and not self.breaker.is_open

    def with_session(
        self,
        url: str,
        fn: Callable[[Any], T],
        timeout: Optional[float] = None,
    ) -> T:
        """Open an isolated session, navigate to *url*, and return ``fn(page)``.

        Raises:
            ResourceUnavailable: Breaker open, manager closed, launch failure,
                or a crash during the session.
            NetworkError: Navigation timed out or failed.
        """
        if self._closed:
            raise ResourceUnavailable("browser manager is shut down")
        if self.breaker.is_open:
            raise ResourceUnavailable("browser circuit breaker is open")
        future = self._executor.submit(self._run_session, url, fn, timeout or self._timeout)
        return future.result()

    def close(self) -> None:
        """Tear the browser down on its own thread and stop the thread."""
        if self._closed:
            return
        self._closed = True
        self._executor.submit(self._teardown).result()
        self._executor.shutdown(wait=True)
        logger.info("[browser] manager shut down")

    # ------------------------------------------------------------------
    # Browser-thread internals
    # ------------------------------------------------------------------
    def _run_session(self, url: str, fn: Callable[[Any], T], timeout: float) -> T:
        # Re-checked here: the breaker may have opened while this call was queued.
        if self.breaker.is_open:
            raise ResourceUnavailable("browser circuit breaker is open")

        if self._browser is not None and self.breaker.needs_restart:
            logger.info(
                "[browser] planned restart after %d session(s)", self.breaker.counters.uses
            )
            self._teardown()

        browser = self._ensure_browser()
        try:
            with self._session(browser, url, timeout) as page:
                result = fn(page)
        except PlaywrightTimeoutError as exc:
            raise NetworkError(f"browser navigation timed out for {url}") from exc
        except PlaywrightError as exc:
            if is_crash(exc):
                logger.error("[browser] crash while loading %s: %s", url, exc)
                self.breaker.record(BreakerEvent.CRASHED)
                self._teardown()
                raise ResourceUnavailable(f"browser crashed: {exc}") from exc
            raise NetworkError(f"browser navigation failed for {url}: {exc}") from exc

        self.breaker.record(BreakerEvent.SESSION_OK)
        return result

    def _ensure_browser(self) -> Any:
        if self._browser is not None:
            return self._browser
        logger.info("[browser] launching headless browser …")
        try:
            self._browser, self._stop = self._launcher()
        except Exception as exc:
            self.breaker.record(BreakerEvent.LAUNCH_FAILED)
            raise ResourceUnavailable(f"browser launch failed: {exc}") from exc
        finally:
            self.launch_count += 1
        self.breaker.record(BreakerEvent.LAUNCHED)
        logger.info("[browser] ✓ browser ready")
        return self._browser

    @contextmanager
    def _session(self, browser: Any, url: str, timeout: float) -> Iterator[Any]:
        context = browser.new_context(
            user_agent=self._rotator.next(),
            viewport=_VIEWPORT,
            ignore_https_errors=True,
        )
        page = None
        try:
            page = context.new_page()
            if self._block_resources:
                page.route("**/*", _block_heavy_resources)
            page.goto(url, wait_until="domcontentloaded", timeout=int(timeout * 1000))
            if self._settle_delay > 0:
                page.wait_for_timeout(int(self._settle_delay * 1000))
            yield page
        finally:
            if page is not None:
                _close_quietly(page, "page")
            _close_quietly(context, "context")

    def _teardown(self) -> None:
        stop, self._stop, self._browser = self._stop, None, None
        if stop is None:
            return
        try:
            stop()
        except Exception as exc:
            logger.debug("[browser] teardown failed: %s", exc)
