"""Search backend adapters.

Every adapter shares one interface: ``search(query, max_results) ->
list[SearchHit]``.  Unlike a plain URL list, a failure is *raised*
(:class:`NetworkError` / :class:`ParseError`) so the strategy chain can log
the classification before falling through to the next adapter.

HTML adapters (DuckDuckGo, Bing, Google over HTTP or in the headless browser)
parse result markup with an ordered list of selector sets and stop at the
first set that yields at least one hit.  Redirect wrappers are unwrapped to
the real destination.

JSON adapters:
  * Brave Search — REST API; requires BRAVE_API_KEY.
  * SearXNG — metasearch; rotates through public instances on failure.
"""

from __future__ import annotations

import base64
import binascii
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlsplit

import httpx
from bs4 import BeautifulSoup

from scout.config import settings
from scout.errors import NetworkError, ParseError, ResourceUnavailable
from scout.models import SearchHit, normalise_query
from scout.scraper.browser import BrowserManager
from scout.scraper.fetcher import UserAgentRotator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Reliable public SearXNG instances (tried in order on failure)
# ---------------------------------------------------------------------------
_SEARXNG_FALLBACK_INSTANCES = [
    "https://search.bus-hit.me",
    "https://searx.be",
    "https://paulgo.io",
    "https://searx.tiekoetter.com",
]

_HTML_HEADERS = {
    "Accept": "text/html,application/xhtml+xml",
    "Accept-Language": "en-US,en;q=0.9",
}
# DuckDuckGo answers a throttled client with 202 and an empty page.
_RATE_LIMIT_STATUSES = frozenset({202, 429})

_MAX_TITLE = 200
_MAX_SNIPPET = 300
_NO_SNIPPET = "No description available"


# ---------------------------------------------------------------------------
# Redirect unwrapping
# ---------------------------------------------------------------------------

def unwrap_duckduckgo(href: str) -> str:
    """``//duckduckgo.com/l/?uddg=<encoded>&rut=…`` → destination URL."""
    if href.startswith("//"):
        href = "https:" + href
    parts = urlsplit(href)
    if parts.path.startswith("/l/"):
        target = parse_qs(parts.query).get("uddg")
        if target:
            return target[0]
    return href


def unwrap_bing(href: str) -> str:
    """``https://www.bing.com/ck/a?…&u=a1<base64url>`` → destination URL."""
    parts = urlsplit(href)
    if not parts.path.startswith("/ck/a"):
        return href
    encoded = parse_qs(parts.query).get("u")
    if not encoded:
        return href
    token = encoded[0]
    if token.startswith("a1"):
        token = token[2:]
    try:
        decoded = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4)).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return href
    return decoded if decoded.startswith(("http://", "https://")) else href


def unwrap_google(href: str) -> str:
    """``/url?q=<destination>&sa=…`` → destination URL."""
    parts = urlsplit(href)
    if parts.path == "/url":
        params = parse_qs(parts.query)
        target = params.get("q") or params.get("url")
        if target:
            return target[0]
    return href


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class SearchProvider(ABC):
    """Abstract base class for a single search backend."""

    def __init__(self, rotator: Optional[UserAgentRotator] = None) -> None:
        self._rotator = rotator or UserAgentRotator()

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name."""

    @abstractmethod
    def search(self, query: str, max_results: int = 10) -> list[SearchHit]:
        """Return hits in backend order.

        Raises:
            NetworkError: Transport failure, error status, or rate limit.
            ParseError: The response held no recognisable results.
        """

    def _hit(self, title: str, url: str, snippet: str) -> SearchHit:
        return SearchHit(
            title=title.strip()[:_MAX_TITLE],
            url=url,
            snippet=snippet.strip()[:_MAX_SNIPPET] or _NO_SNIPPET,
            source=self.name,
        )


# ---------------------------------------------------------------------------
# HTML result-page adapters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SelectorSet:
    """Where to find one result and its parts; each part tried in order."""

    container: str
    title: tuple[str, ...]
    link: tuple[str, ...]
    snippet: tuple[str, ...]
    exclude_classes: tuple[str, ...] = ()


class HtmlSearchProvider(SearchProvider):
    selectors: tuple[SelectorSet, ...] = ()
    own_domains: tuple[str, ...] = ()

    @abstractmethod
    def _request(self, client: httpx.Client, query: str, max_results: int) -> httpx.Response:
        """Send the backend-specific request."""

    def unwrap(self, href: str) -> str:
        return href

    def search(self, query: str, max_results: int = 10) -> list[SearchHit]:
        query = normalise_query(query)
        response = self._fetch(query, max_results)
        hits = self.parse(response.text, max_results)
        if not hits:
            raise ParseError(f"no results parsed from {self.name}")
        logger.info("[%s] ✓ %d result(s).", self.name, len(hits))
        return hits

    def parse(self, html: str, max_results: int) -> list[SearchHit]:
        soup = BeautifulSoup(html, "html.parser")
        for selector_set in self.selectors:
            hits = self._parse_with(soup, selector_set, max_results)
            if hits:
                logger.debug("[%s] selector %r matched", self.name, selector_set.container)
                return hits
        return []

    def _parse_with(
        self, soup: BeautifulSoup, sel: SelectorSet, max_results: int
    ) -> list[SearchHit]:
        hits: list[SearchHit] = []
        for node in soup.select(sel.container):
            if sel.exclude_classes and set(node.get("class") or []) & set(sel.exclude_classes):
                continue
            title = _first_text(node, sel.title)
            href = _first_attr(node, sel.link, "href")
            if not title or not href:
                continue
            try:
                url = self.unwrap(href)
                if not url.startswith(("http://", "https://")) or self._is_internal(url):
                    continue
            except ValueError:
                logger.debug("[%s] skipping unparseable link %r", self.name, href)
                continue
            hits.append(self._hit(title, url, _first_text(node, sel.snippet)))
            if len(hits) >= max_results:
                break
        return hits

    def _is_internal(self, url: str) -> bool:
        host = urlsplit(url).netloc.lower()
        return any(host == d or host.endswith("." + d) for d in self.own_domains)

    def _fetch(self, query: str, max_results: int) -> httpx.Response:
        """Send the request, backing off exponentially while rate-limited."""
        base_delay = settings.search_retry_base_delay
        max_retries = settings.search_retry_max

        for attempt in range(max_retries + 1):
            headers = {"User-Agent": self._rotator.next(), **_HTML_HEADERS}
            try:
                with httpx.Client(
                    headers=headers,
                    timeout=settings.search_provider_timeout,
                    follow_redirects=True,
                ) as client:
                    response = self._request(client, query, max_results)
            except httpx.HTTPError as exc:
                raise NetworkError(f"{self.name} request failed: {exc}") from exc

            if response.status_code not in _RATE_LIMIT_STATUSES:
                if response.status_code >= 400:
                    raise NetworkError(f"{self.name} returned HTTP {response.status_code}")
                return response

            if attempt < max_retries:
                delay = base_delay * (2 ** attempt)
                logger.warning(
                    "[%s] rate-limited (attempt %d/%d); retrying in %.0fs …",
                    self.name, attempt + 1, max_retries, delay,
                )
                time.sleep(delay)

        raise NetworkError(f"{self.name} still rate-limited after {max_retries} retries")


def _first_text(node, selectors: tuple[str, ...]) -> str:
    for selector in selectors:
        found = node.select_one(selector)
        if found is not None:
            text = " ".join(found.get_text(" ").split())
            if text:
                return text
    return ""


def _first_attr(node, selectors: tuple[str, ...], attr: str) -> str:
    for selector in selectors:
        found = node.select_one(selector)
        if found is not None and found.get(attr):
            return found[attr].strip()
    return ""


class DuckDuckGoProvider(HtmlSearchProvider):
    """DuckDuckGo's no-JavaScript HTML endpoint (form POST)."""

    endpoint = "https://html.duckduckgo.com/html/"
    own_domains = ("duckduckgo.com",)
    selectors = (
        SelectorSet(
            container="div.result",
            title=("a.result__a", ".result__title a"),
            link=("a.result__a", ".result__title a", "a.result__url"),
            snippet=(".result__snippet",),
            exclude_classes=("result--ad",),
        ),
        SelectorSet(
            container="div.web-result",
            title=("h2 a",),
            link=("h2 a",),
            snippet=(".result__snippet",),
        ),
        SelectorSet(
            container="div.links_main",
            title=("a",),
            link=("a",),
            snippet=(".result__snippet",),
        ),
    )

    @property
    def name(self) -> str:
        return "DuckDuckGo"

    def _request(self, client: httpx.Client, query: str, max_results: int) -> httpx.Response:
        return client.post(self.endpoint, data={"q": query, "kl": "us-en"})

    def unwrap(self, href: str) -> str:
        return unwrap_duckduckgo(href)


class BingProvider(HtmlSearchProvider):
    endpoint = "https://www.bing.com/search"
    own_domains = ("bing.com", "microsoft.com")
    selectors = (
        SelectorSet(
            container="li.b_algo",
            title=("h2 a", "h2"),
            link=("h2 a", "a.tilk"),
            snippet=(".b_caption p", "p.b_lineclamp2", "p.b_lineclamp3", ".b_algoSlug", "p"),
        ),
        SelectorSet(
            container="div.b_algo",
            title=("h2 a", "h2"),
            link=("h2 a",),
            snippet=(".b_caption p", "p"),
        ),
        SelectorSet(
            container="#b_results > li",
            title=("h2 a", "a"),
            link=("h2 a", "a"),
            snippet=("p",),
            exclude_classes=("b_ad", "b_pag", "b_ans"),
        ),
    )

    @property
    def name(self) -> str:
        return "Bing"

    def _request(self, client: httpx.Client, query: str, max_results: int) -> httpx.Response:
        return client.get(
            self.endpoint,
            params={"q": query, "count": min(max_results, 50), "setlang": "en"},
        )

    def unwrap(self, href: str) -> str:
        return unwrap_bing(href)


class GoogleProvider(HtmlSearchProvider):
    endpoint = "https://www.google.com/search"
    own_domains = ("google.com", "googleusercontent.com", "gstatic.com")
    selectors = tuple(
        SelectorSet(
            container=container,
            title=("h3", ".LC20lb", "[role=heading]"),
            link=("a[href]",),
            snippet=(".VwiC3b", ".yXK7lf", ".s", '[data-sncf="1"]'),
        )
        for container in ("div.g", "div[data-sokoban-container]", ".tF2Cxc", "div.Gx5Zad")
    )

    @property
    def name(self) -> str:
        return "Google"

    def _request(self, client: httpx.Client, query: str, max_results: int) -> httpx.Response:
        return client.get(
            self.endpoint,
            params={"q": query, "num": max_results, "hl": "en"},
        )

    def unwrap(self, href: str) -> str:
        return unwrap_google(href)


class GoogleBrowserProvider(GoogleProvider):
    """Google rendered in a headless-browser session.

    Google answers plain HTTP clients with a script shell or a consent page,
    so this adapter loads the results page through :class:`BrowserManager`
    and parses the rendered DOM with the same selector sets as
    :class:`GoogleProvider`.  Browser failures surface as the manager raises
    them (``ResourceUnavailable`` / ``NetworkError``).
    """

    def __init__(self, browser: BrowserManager, rotator: Optional[UserAgentRotator] = None) -> None:
        super().__init__(rotator=rotator)
        self.browser = browser

    @property
    def name(self) -> str:
        return "Google (browser)"

    def search_url(self, query: str, max_results: int) -> str:
        return f"{self.endpoint}?{urlencode({'q': query, 'num': max_results, 'hl': 'en'})}"

    def search(self, query: str, max_results: int = 10) -> list[SearchHit]:
        query = normalise_query(query)
        html = self.browser.with_session(
            self.search_url(query, max_results), lambda page: page.content()
        )
        hits = self.parse(html, max_results)
        if not hits:
            raise ParseError(f"no results parsed from {self.name}")
        logger.info("[%s] ✓ %d result(s).", self.name, len(hits))
        return hits


# ---------------------------------------------------------------------------
# Brave Search provider (deterministic REST API)
# ---------------------------------------------------------------------------

class BraveSearchProvider(SearchProvider):
    """Brave Search REST API (free tier: 2 000 queries/month)."""

    @property
    def name(self) -> str:
        return "Brave"

    def search(self, query: str, max_results: int = 10) -> list[SearchHit]:
        api_key = settings.brave_api_key
        if not api_key:
            raise ResourceUnavailable("BRAVE_API_KEY is not configured")

        query = normalise_query(query)
        try:
            with httpx.Client(timeout=settings.search_provider_timeout) as client:
                resp = client.get(
                    "https://api.search.brave.com/res/v1/web/search",
                    params={"q": query, "count": max_results},
                    headers={
                        "Accept": "application/json",
                        "Accept-Encoding": "gzip",
                        "X-Subscription-Token": api_key,
                    },
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            raise NetworkError(f"Brave request failed: {exc}") from exc
        except ValueError as exc:
            raise ParseError(f"Brave returned invalid JSON: {exc}") from exc

        hits = [
            self._hit(item.get("title") or item["url"], item["url"], item.get("description") or "")
            for item in data.get("web", {}).get("results", [])
            if item.get("url")
        ][:max_results]
        if hits:
            logger.info("[Brave] ✓ %d result(s).", len(hits))
        return hits


# ---------------------------------------------------------------------------
# SearXNG provider
# ---------------------------------------------------------------------------

class SearXNGProvider(SearchProvider):
    """Hit a SearXNG JSON endpoint.

    Tries the configured base URL first (`settings.searxng_base_url`), then
    rotates through ``_SEARXNG_FALLBACK_INSTANCES`` on failure.

    Each instance is queried with a tight ``searxng_instance_timeout`` (default
    5 s) so dead or rate-limited instances fail fast rather than blocking for
    the full ``search_provider_timeout``.
    """

    @property
    def name(self) -> str:
        return "SearXNG"

    def _query_instance(
        self,
        client: httpx.Client,
        base: str,
        query: str,
        max_results: int,
    ) -> list[SearchHit]:
        resp = client.get(
            f"{base}/search",
            params={
                "q": query,
                "format": "json",
                "engines": "google,bing,brave,duckduckgo",
            },
            headers={
                "Accept": "application/json, text/javascript, */*",
                "User-Agent": self._rotator.next(),
            },
        )
        resp.raise_for_status()
        data = resp.json()
        hits: list[SearchHit] = []
        seen: set[str] = set()
        for item in data.get("results", []):
            url = item.get("url") or item.get("href")
            if not url or url in seen:
                continue
            seen.add(url)
            hits.append(self._hit(item.get("title") or url, url, item.get("content") or ""))
            if len(hits) >= max_results:
                break
        return hits

    def search(self, query: str, max_results: int = 10) -> list[SearchHit]:
        query = normalise_query(query)
        # Build the ordered list of instances to try: configured one first.
        primary = settings.searxng_base_url.rstrip("/")
        instances = [primary] + [
            u for u in _SEARXNG_FALLBACK_INSTANCES if u.rstrip("/") != primary
        ]

        # Use the shorter per-instance timeout so dead nodes fail fast.
        with httpx.Client(
            timeout=settings.searxng_instance_timeout,
            follow_redirects=True,
        ) as client:
            for base in instances:
                try:
                    hits = self._query_instance(client, base, query, max_results)
                    if hits:
                        logger.info("[SearXNG] ✓ %s → %d result(s).", base, len(hits))
                        return hits
                    logger.info("[SearXNG] %s returned 0 results, trying next instance.", base)
                except (httpx.HTTPError, ValueError) as exc:
                    logger.info("[SearXNG] %s failed: %.120r, trying next instance.", base, exc)

        raise NetworkError("all SearXNG instances exhausted")


# ---------------------------------------------------------------------------
# Default provider list
# ---------------------------------------------------------------------------

_REGISTRY: dict[str, type[SearchProvider]] = {
    "duckduckgo": DuckDuckGoProvider,
    "bing": BingProvider,
    "google": GoogleProvider,
    "searxng": SearXNGProvider,
    "brave": BraveSearchProvider,
}


def build_default_providers(rotator: Optional[UserAgentRotator] = None) -> list[SearchProvider]:
    """Configured adapters in priority order; Brave first when a key is set."""
    names = settings.provider_names
    if settings.brave_api_key and "brave" not in names:
        names = ["brave"] + names

    providers: list[SearchProvider] = []
    for name in names:
        cls = _REGISTRY.get(name)
        if cls is None:
            logger.warning("[search] unknown provider %r in SEARCH_PROVIDERS, skipped", name)
            continue
        if cls is BraveSearchProvider and not settings.brave_api_key:
            continue
        providers.append(cls(rotator=rotator))
    return providers
