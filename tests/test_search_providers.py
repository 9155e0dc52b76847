"""Unit tests for scout.search.providers.

HTML adapters are exercised against canned result pages served through
``respx``; the JSON adapters use ``unittest.mock`` around ``httpx.Client``.
No real HTTP connections are made, and ``time.sleep`` is patched wherever a
rate-limit backoff would run.
"""

from __future__ import annotations

import base64
from unittest.mock import MagicMock, patch

import httpx
import pytest
import respx

from scout.config import settings
from scout.errors import NetworkError, ParseError, ResourceUnavailable
from scout.search.providers import (
    BingProvider,
    BraveSearchProvider,
    DuckDuckGoProvider,
    GoogleBrowserProvider,
    GoogleProvider,
    SearXNGProvider,
    build_default_providers,
    unwrap_bing,
    unwrap_duckduckgo,
    unwrap_google,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _bing_href(target: str) -> str:
    token = base64.urlsafe_b64encode(target.encode()).decode().rstrip("=")
    return f"https://www.bing.com/ck/a?!&&p=abc123&u=a1{token}&ntb=1"


def _mock_httpx_response(json_data: dict, status_code: int = 200) -> MagicMock:
    """Build a mock httpx.Response-like object."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = json_data
    resp.raise_for_status = MagicMock()  # no-op by default
    return resp


def _mock_client(mock_client_cls: MagicMock) -> MagicMock:
    ctx = MagicMock()
    ctx.__enter__ = MagicMock(return_value=ctx)
    ctx.__exit__ = MagicMock(return_value=False)
    mock_client_cls.return_value = ctx
    return ctx


@pytest.fixture(autouse=True)
def _fast_retries(monkeypatch):
    monkeypatch.setattr(settings, "search_retry_max", 2)
    monkeypatch.setattr(settings, "search_retry_base_delay", 1.0)


_DDG_HTML = """\
<html><body>
<div class="result results_links results_links_deep web-result">
  <h2 class="result__title">
    <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.com%2Fone&rut=abc">Result One</a>
  </h2>
  <a class="result__snippet" href="//duckduckgo.com/l/?uddg=x">First snippet text</a>
</div>
<div class="result result--ad">
  <h2 class="result__title"><a class="result__a" href="https://ads.example/buy">Sponsored</a></h2>
</div>
<div class="result">
  <h2 class="result__title"><a class="result__a" href="https://example.com/two">Result Two</a></h2>
</div>
</body></html>
"""


# ===========================================================================
# Redirect unwrapping
# ===========================================================================

class TestUnwrap:
    def test_duckduckgo(self) -> None:
        href = "//duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.com%2Fpage%3Fa%3D1&rut=abc"
        assert unwrap_duckduckgo(href) == "https://example.com/page?a=1"

    def test_duckduckgo_direct_link_untouched(self) -> None:
        assert unwrap_duckduckgo("https://example.com/x") == "https://example.com/x"

    def test_bing(self) -> None:
        assert unwrap_bing(_bing_href("https://example.com/a")) == "https://example.com/a"

    def test_bing_undecodable_token_left_alone(self) -> None:
        href = "https://www.bing.com/ck/a?u=a1%%%"
        assert unwrap_bing(href) == href

    def test_google(self) -> None:
        assert unwrap_google("/url?q=https://example.com/x&sa=U&ved=1") == "https://example.com/x"

    def test_google_plain_link_untouched(self) -> None:
        assert unwrap_google("https://example.com/x") == "https://example.com/x"


# ===========================================================================
# DuckDuckGoProvider
# ===========================================================================

class TestDuckDuckGoProvider:
    def test_parses_results_and_skips_ads(self) -> None:
        hits = DuckDuckGoProvider().parse(_DDG_HTML, max_results=10)

        assert [h.url for h in hits] == ["https://example.com/one", "https://example.com/two"]
        assert hits[0].title == "Result One"
        assert hits[0].snippet == "First snippet text"
        assert hits[1].snippet == "No description available"
        assert all(h.source == "DuckDuckGo" for h in hits)

    def test_search_posts_form(self) -> None:
        with respx.mock:
            route = respx.post("https://html.duckduckgo.com/html/").mock(
                return_value=httpx.Response(200, text=_DDG_HTML)
            )
            hits = DuckDuckGoProvider().search('"widgets"', max_results=1)

        assert len(hits) == 1
        assert b"q=widgets" in route.calls[0].request.content

    def test_retries_on_ratelimit_then_succeeds(self) -> None:
        with respx.mock, patch("scout.search.providers.time.sleep") as mock_sleep:
            route = respx.post("https://html.duckduckgo.com/html/").mock(
                side_effect=[httpx.Response(202, text=""), httpx.Response(200, text=_DDG_HTML)]
            )
            hits = DuckDuckGoProvider().search("widgets")

        assert len(hits) == 2
        assert route.call_count == 2
        mock_sleep.assert_called_once_with(1.0)

    def test_backoff_doubles_then_gives_up(self) -> None:
        with respx.mock, patch("scout.search.providers.time.sleep") as mock_sleep:
            route = respx.post("https://html.duckduckgo.com/html/").mock(
                return_value=httpx.Response(429, text="")
            )
            with pytest.raises(NetworkError, match="rate-limited"):
                DuckDuckGoProvider().search("widgets")

        assert route.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    def test_empty_page_is_parse_error(self) -> None:
        with respx.mock:
            respx.post("https://html.duckduckgo.com/html/").mock(
                return_value=httpx.Response(200, text="<html><body>No results.</body></html>")
            )
            with pytest.raises(ParseError):
                DuckDuckGoProvider().search("widgets")

    def test_server_error_is_network_error(self) -> None:
        with respx.mock:
            respx.post("https://html.duckduckgo.com/html/").mock(
                return_value=httpx.Response(500, text="oops")
            )
            with pytest.raises(NetworkError, match="500"):
                DuckDuckGoProvider().search("widgets")

    def test_transport_error_is_network_error(self) -> None:
        with respx.mock:
            respx.post("https://html.duckduckgo.com/html/").mock(
                side_effect=httpx.ConnectError("connection refused")
            )
            with pytest.raises(NetworkError):
                DuckDuckGoProvider().search("widgets")

    def test_long_titles_truncated(self) -> None:
        html = (
            '<div class="result"><a class="result__a" href="https://example.com/long">'
            + "T" * 300
            + "</a></div>"
        )
        (hit,) = DuckDuckGoProvider().parse(html, max_results=10)
        assert len(hit.title) == 200


# ===========================================================================
# BingProvider
# ===========================================================================

class TestBingProvider:
    def test_parses_and_unwraps(self) -> None:
        html = f"""
        <ol id="b_results">
          <li class="b_algo">
            <h2><a href="{_bing_href('https://example.com/b1')}">Bing One</a></h2>
            <div class="b_caption"><p>Bing snippet</p></div>
          </li>
          <li class="b_algo"><h2><a href="https://example.com/b2">Bing Two</a></h2></li>
          <li class="b_ad"><h2><a href="https://ads.example/">Ad</a></h2></li>
        </ol>
        """
        hits = BingProvider().parse(html, max_results=10)
        assert [h.url for h in hits] == ["https://example.com/b1", "https://example.com/b2"]
        assert hits[0].snippet == "Bing snippet"

    def test_fallback_selector_set(self) -> None:
        html = """
        <ol id="b_results">
          <li><h2><a href="https://example.com/plain">Plain markup</a></h2><p>Plain snippet</p></li>
          <li class="b_pag"><a href="https://www.bing.com/search?q=x&first=11">Next</a></li>
        </ol>
        """
        hits = BingProvider().parse(html, max_results=10)
        assert [(h.title, h.url) for h in hits] == [("Plain markup", "https://example.com/plain")]

    def test_search_sends_count(self) -> None:
        html = '<li class="b_algo"><h2><a href="https://example.com/b">B</a></h2></li>'
        with respx.mock:
            route = respx.route(method="GET", host="www.bing.com", path="/search").mock(
                return_value=httpx.Response(200, text=html)
            )
            BingProvider().search("widgets", max_results=5)

        params = route.calls[0].request.url.params
        assert params["q"] == "widgets"
        assert params["count"] == "5"


# ===========================================================================
# GoogleProvider
# ===========================================================================

class TestGoogleProvider:
    def test_later_selector_set_used_when_first_misses(self) -> None:
        html = """
        <div class="Gx5Zad">
          <a href="/url?q=https://example.com/g1&sa=U"><h3>Google One</h3></a>
          <div class="VwiC3b">Google snippet</div>
        </div>
        <div class="Gx5Zad"><a href="/search?q=related">Related searches</a></div>
        """
        hits = GoogleProvider().parse(html, max_results=10)
        assert len(hits) == 1
        assert hits[0].url == "https://example.com/g1"
        assert hits[0].title == "Google One"
        assert hits[0].snippet == "Google snippet"

    def test_own_domain_links_dropped(self) -> None:
        html = """
        <div class="g"><a href="https://maps.google.com/place"><h3>Maps</h3></a></div>
        <div class="g"><a href="https://example.com/real"><h3>Real</h3></a></div>
        """
        hits = GoogleProvider().parse(html, max_results=10)
        assert [h.url for h in hits] == ["https://example.com/real"]

    def test_respects_max_results(self) -> None:
        html = "".join(
            f'<div class="g"><a href="https://example.com/{i}"><h3>Result {i}</h3></a></div>'
            for i in range(10)
        )
        assert len(GoogleProvider().parse(html, max_results=3)) == 3

    def test_unparseable_link_skipped(self) -> None:
        html = """
        <div class="g"><a href="http://[bad/x"><h3>Broken</h3></a></div>
        <div class="g"><a href="https://example.com/ok"><h3>Fine</h3></a></div>
        """
        hits = GoogleProvider().parse(html, max_results=10)
        assert [h.title for h in hits] == ["Fine"]


# ===========================================================================
# GoogleBrowserProvider
# ===========================================================================

_GOOGLE_RENDERED = """
<div class="g">
  <a href="https://example.com/rendered"><h3>Rendered Result</h3></a>
  <div class="VwiC3b">From the rendered page</div>
</div>
"""


def _browser_serving(html: str) -> MagicMock:
    """A BrowserManager stand-in whose session hands ``fn`` a page with *html*."""
    browser = MagicMock()

    def with_session(url, fn, timeout=None):
        page = MagicMock()
        page.content.return_value = html
        return fn(page)

    browser.with_session.side_effect = with_session
    return browser


class TestGoogleBrowserProvider:
    def test_parses_rendered_page(self) -> None:
        browser = _browser_serving(_GOOGLE_RENDERED)
        hits = GoogleBrowserProvider(browser).search('"solid state"', max_results=5)

        assert [h.url for h in hits] == ["https://example.com/rendered"]
        assert hits[0].source == "Google (browser)"
        url = browser.with_session.call_args.args[0]
        assert url.startswith("https://www.google.com/search?")
        assert "q=solid+state" in url
        assert "num=5" in url

    def test_consent_page_is_parse_error(self) -> None:
        browser = _browser_serving("<html><body><form>Before you continue</form></body></html>")
        with pytest.raises(ParseError):
            GoogleBrowserProvider(browser).search("widgets")

    def test_browser_failure_propagates(self) -> None:
        browser = MagicMock()
        browser.with_session.side_effect = ResourceUnavailable("browser circuit breaker is open")
        with pytest.raises(ResourceUnavailable):
            GoogleBrowserProvider(browser).search("widgets")


# ===========================================================================
# SearXNGProvider
# ===========================================================================

class TestSearXNGProvider:
    def test_parses_json_results(self):
        json_data = {
            "results": [
                {"url": "https://example.com/a", "title": "A", "content": "About A"},
                {"url": "https://example.com/b", "title": "B"},
                {"href": "https://example.com/c"},   # alternate key
            ]
        }
        with patch("scout.search.providers.httpx.Client") as mock_client_cls:
            ctx = _mock_client(mock_client_cls)
            ctx.get.return_value = _mock_httpx_response(json_data)
            hits = SearXNGProvider().search("test query", max_results=5)

        assert [h.url for h in hits] == [
            "https://example.com/a", "https://example.com/b", "https://example.com/c",
        ]
        assert hits[0].snippet == "About A"
        assert hits[2].title == "https://example.com/c"

    def test_respects_max_results(self):
        json_data = {"results": [{"url": f"https://example.com/{i}"} for i in range(10)]}
        with patch("scout.search.providers.httpx.Client") as mock_client_cls:
            ctx = _mock_client(mock_client_cls)
            ctx.get.return_value = _mock_httpx_response(json_data)
            hits = SearXNGProvider().search("test query", max_results=3)

        assert len(hits) == 3

    def test_deduplicates_urls(self):
        json_data = {
            "results": [
                {"url": "https://dup.com"},
                {"url": "https://dup.com"},
                {"url": "https://unique.com"},
            ]
        }
        with patch("scout.search.providers.httpx.Client") as mock_client_cls:
            ctx = _mock_client(mock_client_cls)
            ctx.get.return_value = _mock_httpx_response(json_data)
            hits = SearXNGProvider().search("test", max_results=10)

        assert [h.url for h in hits].count("https://dup.com") == 1

    def test_falls_through_to_next_instance(self):
        good = _mock_httpx_response({"results": [{"url": "https://ok.com"}]})
        with patch("scout.search.providers.httpx.Client") as mock_client_cls:
            ctx = _mock_client(mock_client_cls)
            ctx.get.side_effect = [httpx.ConnectError("down"), good]
            hits = SearXNGProvider().search("test")

        assert [h.url for h in hits] == ["https://ok.com"]
        assert ctx.get.call_count == 2

    def test_all_instances_failing_raises(self):
        with patch("scout.search.providers.httpx.Client") as mock_client_cls:
            ctx = _mock_client(mock_client_cls)
            ctx.get.side_effect = httpx.ConnectError("connection refused")
            with pytest.raises(NetworkError):
                SearXNGProvider().search("test query")

    def test_invalid_json_tries_next_instance(self):
        bad = MagicMock()
        bad.raise_for_status = MagicMock()
        bad.json.side_effect = ValueError("invalid JSON")
        with patch("scout.search.providers.httpx.Client") as mock_client_cls:
            ctx = _mock_client(mock_client_cls)
            ctx.get.return_value = bad
            with pytest.raises(NetworkError):
                SearXNGProvider().search("test query")


# ===========================================================================
# BraveSearchProvider
# ===========================================================================

class TestBraveSearchProvider:
    def test_unavailable_without_api_key(self, monkeypatch):
        monkeypatch.setattr(settings, "brave_api_key", "")
        with pytest.raises(ResourceUnavailable):
            BraveSearchProvider().search("test")

    def test_parses_response_correctly(self, monkeypatch):
        monkeypatch.setattr(settings, "brave_api_key", "test-key")
        json_data = {
            "web": {
                "results": [
                    {"url": "https://brave-result.com/1", "title": "One", "description": "First"},
                    {"url": "https://brave-result.com/2", "title": "Two"},
                ]
            }
        }
        with patch("scout.search.providers.httpx.Client") as mock_client_cls:
            ctx = _mock_client(mock_client_cls)
            ctx.get.return_value = _mock_httpx_response(json_data)
            hits = BraveSearchProvider().search("test", max_results=5)

        assert [h.title for h in hits] == ["One", "Two"]
        assert hits[0].source == "Brave"
        headers = ctx.get.call_args.kwargs["headers"]
        assert headers["X-Subscription-Token"] == "test-key"

    def test_http_error_is_network_error(self, monkeypatch):
        monkeypatch.setattr(settings, "brave_api_key", "test-key")
        with patch("scout.search.providers.httpx.Client") as mock_client_cls:
            ctx = _mock_client(mock_client_cls)
            ctx.get.side_effect = httpx.ConnectError("down")
            with pytest.raises(NetworkError):
                BraveSearchProvider().search("test")


# ===========================================================================
# build_default_providers
# ===========================================================================

class TestBuildDefaultProviders:
    def test_configured_order(self, monkeypatch):
        monkeypatch.setattr(settings, "search_providers", "bing, duckduckgo,unknown")
        monkeypatch.setattr(settings, "brave_api_key", "")
        assert [p.name for p in build_default_providers()] == ["Bing", "DuckDuckGo"]

    def test_default_order(self, monkeypatch):
        monkeypatch.setattr(settings, "search_providers", "duckduckgo,bing,google,searxng")
        monkeypatch.setattr(settings, "brave_api_key", "")
        assert [p.name for p in build_default_providers()] == [
            "DuckDuckGo", "Bing", "Google", "SearXNG",
        ]

    def test_brave_first_when_key_present(self, monkeypatch):
        monkeypatch.setattr(settings, "search_providers", "duckduckgo")
        monkeypatch.setattr(settings, "brave_api_key", "k")
        assert [p.name for p in build_default_providers()] == ["Brave", "DuckDuckGo"]
