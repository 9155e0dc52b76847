"""Tests for scout.scraper.browser.BrowserManager.

Playwright is never started: a fake launcher hands back ``MagicMock``
browser objects, and Playwright's own error classes are raised from the
session callback to simulate timeouts and crashes.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from scout.errors import NetworkError, ResourceUnavailable
from scout.scraper.breaker import BreakerPolicy, BreakerState, CircuitBreaker
from scout.scraper.browser import BrowserManager, _block_heavy_resources, is_crash


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _fake_browser(html: str = "<html><body>rendered</body></html>") -> MagicMock:
    browser = MagicMock(name="browser")
    page = browser.new_context.return_value.new_page.return_value
    page.content.return_value = html
    return browser


def _launcher(browser: MagicMock | None = None) -> tuple[MagicMock, MagicMock]:
    stop = MagicMock(name="stop")
    launcher = MagicMock(name="launcher", return_value=(browser or _fake_browser(), stop))
    return launcher, stop


@pytest.fixture()
def make_manager():
    managers: list[BrowserManager] = []

    def _make(launcher, policy: BreakerPolicy | None = None, **kwargs) -> BrowserManager:
        kwargs.setdefault("settle_delay", 0)
        kwargs.setdefault("block_resources", False)
        manager = BrowserManager(
            breaker=CircuitBreaker(policy or BreakerPolicy()),
            launcher=launcher,
            timeout=5,
            **kwargs,
        )
        managers.append(manager)
        return manager

    yield _make
    for manager in managers:
        manager.close()


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

class TestSessions:
    def test_returns_callback_result(self, make_manager) -> None:
        launcher, _ = _launcher()
        manager = make_manager(launcher)
        html = manager.with_session("https://example.com", lambda page: page.content())
        assert html == "<html><body>rendered</body></html>"

    def test_navigates_with_timeout_in_ms(self, make_manager) -> None:
        browser = _fake_browser()
        launcher, _ = _launcher(browser)
        manager = make_manager(launcher)
        manager.with_session("https://example.com", lambda page: None, timeout=7)

        page = browser.new_context.return_value.new_page.return_value
        page.goto.assert_called_once_with(
            "https://example.com", wait_until="domcontentloaded", timeout=7000
        )

    def test_context_and_page_always_closed(self, make_manager) -> None:
        browser = _fake_browser()
        launcher, _ = _launcher(browser)
        manager = make_manager(launcher)

        def boom(page):
            raise PlaywrightError("net::ERR_NAME_NOT_RESOLVED")

        with pytest.raises(NetworkError):
            manager.with_session("https://example.com", boom)

        context = browser.new_context.return_value
        context.new_page.return_value.close.assert_called_once()
        context.close.assert_called_once()

    def test_each_session_gets_its_own_context(self, make_manager) -> None:
        browser = _fake_browser()
        launcher, _ = _launcher(browser)
        manager = make_manager(launcher)
        manager.with_session("https://a.example", lambda page: None)
        manager.with_session("https://b.example", lambda page: None)
        assert browser.new_context.call_count == 2
        assert launcher.call_count == 1

    def test_settle_delay_waits_after_navigation(self, make_manager) -> None:
        browser = _fake_browser()
        launcher, _ = _launcher(browser)
        manager = make_manager(launcher, settle_delay=1.5)
        manager.with_session("https://example.com", lambda page: None)
        page = browser.new_context.return_value.new_page.return_value
        page.wait_for_timeout.assert_called_once_with(1500)

    def test_resource_blocking_installs_route(self, make_manager) -> None:
        browser = _fake_browser()
        launcher, _ = _launcher(browser)
        manager = make_manager(launcher, block_resources=True)
        manager.with_session("https://example.com", lambda page: None)
        page = browser.new_context.return_value.new_page.return_value
        page.route.assert_called_once_with("**/*", _block_heavy_resources)

    def test_navigation_timeout_is_network_error(self, make_manager) -> None:
        launcher, _ = _launcher()
        manager = make_manager(launcher)

        def slow(page):
            raise PlaywrightTimeoutError("Timeout 5000ms exceeded.")

        with pytest.raises(NetworkError):
            manager.with_session("https://example.com", slow)
        assert manager.breaker.state is BreakerState.CLOSED


# ---------------------------------------------------------------------------
# Circuit breaking
# ---------------------------------------------------------------------------

class TestBreaker:
    def test_no_launch_after_breaker_opens(self, make_manager) -> None:
        launcher = MagicMock(side_effect=RuntimeError("Executable doesn't exist"))
        manager = make_manager(launcher, BreakerPolicy(max_launch_attempts=3))

        for _ in range(3):
            with pytest.raises(ResourceUnavailable):
                manager.with_session("https://example.com", lambda page: None)
        assert manager.breaker.is_open

        for _ in range(5):
            with pytest.raises(ResourceUnavailable):
                manager.with_session("https://example.com", lambda page: None)
        assert launcher.call_count == 3
        assert manager.launch_count == 3
        assert not manager.available

    def test_crash_opens_breaker_and_tears_down(self, make_manager) -> None:
        launcher, stop = _launcher()
        manager = make_manager(launcher)

        def crash(page):
            raise PlaywrightError("Target page, context or browser has been closed")

        with pytest.raises(ResourceUnavailable):
            manager.with_session("https://example.com", crash)

        stop.assert_called_once()
        assert manager.breaker.is_open
        with pytest.raises(ResourceUnavailable):
            manager.with_session("https://example.com", lambda page: None)
        assert launcher.call_count == 1

    def test_planned_restart_after_max_uses(self, make_manager) -> None:
        launcher, stop = _launcher()
        manager = make_manager(launcher, BreakerPolicy(max_uses=2))
        for _ in range(3):
            manager.with_session("https://example.com", lambda page: None)
        assert launcher.call_count == 2
        stop.assert_called_once()
        assert manager.breaker.state is BreakerState.CLOSED


# ---------------------------------------------------------------------------
# Lifecycle & helpers
# ---------------------------------------------------------------------------

class TestLifecycle:
    def test_close_stops_browser(self) -> None:
        launcher, stop = _launcher()
        manager = BrowserManager(launcher=launcher, settle_delay=0, block_resources=False)
        manager.with_session("https://example.com", lambda page: None)
        manager.close()
        manager.close()
        stop.assert_called_once()

    def test_closed_manager_rejects_sessions(self) -> None:
        launcher, _ = _launcher()
        manager = BrowserManager(launcher=launcher)
        manager.close()
        with pytest.raises(ResourceUnavailable):
            manager.with_session("https://example.com", lambda page: None)
        launcher.assert_not_called()


class TestHelpers:
    @pytest.mark.parametrize("resource_type", ["image", "font", "media", "stylesheet"])
    def test_heavy_resources_aborted(self, resource_type: str) -> None:
        route = MagicMock()
        route.request.resource_type = resource_type
        _block_heavy_resources(route)
        route.abort.assert_called_once()
        route.continue_.assert_not_called()

    def test_documents_continue(self) -> None:
        route = MagicMock()
        route.request.resource_type = "document"
        _block_heavy_resources(route)
        route.continue_.assert_called_once()

    def test_is_crash(self) -> None:
        assert is_crash(PlaywrightError("Browser has disconnected"))
        assert is_crash(PlaywrightError("Page crashed"))
        assert not is_crash(PlaywrightError("net::ERR_CONNECTION_REFUSED"))
