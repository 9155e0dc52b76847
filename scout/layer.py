"""Public entry point: the acquisition layer.

:class:`AcquisitionLayer` owns every shared service (cache, HTTP fetcher,
browser manager, search adapters) for its lifetime and exposes operations
that *never raise*: when every real strategy fails, a synthetic result
flagged ``synthetic=True`` is returned instead.

Usage::

    with AcquisitionLayer() as layer:
        page = layer.fetch_page("https://example.com")
        hits = layer.search("solid-state batteries", max_results=5)
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, replace
from functools import partial
from typing import Any, Iterable, Optional, Sequence

from scout.cache import TTLCache
from scout.config import Settings
from scout.config import settings as default_settings
from scout.errors import QualityTooLow
from scout.executor import Strategy, run_chain, summarise_attempts
from scout.models import (
    FetchMethod,
    FetchOptions,
    FetchRequest,
    PageResult,
    ReviewFragment,
    SearchResult,
    normalise_query,
)
from scout.scraper.breaker import BreakerPolicy, CircuitBreaker
from scout.scraper.browser import BrowserManager
from scout.scraper.extractor import ContentExtractor
from scout.scraper.fetcher import HttpFetcher, looks_like_spa
from scout.scraper.reviews import (
    ReviewExtractor,
    extract_topics,
    is_review_site,
    summarize,
)
from scout.search.providers import (
    GoogleBrowserProvider,
    SearchProvider,
    build_default_providers,
)
from scout.synthetic import SyntheticGenerator

logger = logging.getLogger(__name__)


class AcquisitionLayer:
    """Fetch pages, run searches and mine reviews with ordered fallbacks.

    Every collaborator can be injected; anything not supplied is built from
    *settings*.  Pass ``browser=None`` together with ``DISABLE_BROWSER`` (or
    ``Settings(disable_browser=True)``) to run without Playwright.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[TTLCache] = None,
        fetcher: Optional[HttpFetcher] = None,
        browser: Optional[BrowserManager] = None,
        providers: Optional[Sequence[SearchProvider]] = None,
        extractor: Optional[ContentExtractor] = None,
        reviewer: Optional[ReviewExtractor] = None,
        synthetic: Optional[SyntheticGenerator] = None,
    ) -> None:
        self.settings = settings or default_settings
        s = self.settings

        if cache is None:
            cache = TTLCache(default_ttl=s.cache_ttl, sweep_interval=s.cache_sweep_interval)
            cache.start()
        self.cache = cache
        self.fetcher = fetcher or HttpFetcher(timeout=s.request_timeout)
        if browser is None and not s.disable_browser:
            browser = BrowserManager(
                breaker=CircuitBreaker(
                    BreakerPolicy(
                        max_launch_attempts=s.browser_max_launch_attempts,
                        crash_threshold=s.browser_crash_threshold,
                        max_uses=s.browser_max_uses,
                    )
                ),
                block_resources=s.browser_block_resources,
                settle_delay=s.browser_settle_delay,
                timeout=s.browser_timeout,
            )
        self.browser = browser
        self.browser_search = GoogleBrowserProvider(browser) if browser is not None else None
        self.providers = list(providers) if providers is not None else build_default_providers()
        self.extractor = extractor or ContentExtractor(max_text_length=s.max_text_length)
        self.reviewer = reviewer or ReviewExtractor()
        self.synthetic = synthetic or SyntheticGenerator()
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def __enter__(self) -> "AcquisitionLayer":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Shut down the browser and the cache sweeper (idempotent)."""
        if self._closed:
            return
        self._closed = True
        if self.browser is not None:
            self.browser.close()
        self.cache.close()
        logger.info("[layer] closed")

    # ------------------------------------------------------------------
    # Page fetch
    # ------------------------------------------------------------------
    def fetch_page(self, url: str, options: Optional[FetchOptions] = None) -> PageResult:
        """Return structured content for *url*.  Never raises.

        A cache hit returns the stored object itself; treat it as read-only.
        """
        request = FetchRequest(target=url, kind="page", options=options or FetchOptions())
        try:
            return self._fetch_page(request)
        except Exception:
            logger.exception("[layer] unexpected failure fetching %s; returning synthetic page", url)
            return self.synthetic.page(url)

    def _fetch_page(self, request: FetchRequest) -> PageResult:
        url, options = request.target, request.options
        key = request.cache_key()
        if not options.skip_cache:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("[cache] hit %s", key)
                return cached

        outcome = run_chain(
            url,
            self._page_strategies(url, options.timeout),
            accept=self._page_accepted,
            fallback=partial(self.synthetic.page, url),
        )
        logger.debug("[layer] %s via %s (%s)", url, outcome.strategy, summarise_attempts(outcome.attempts))
        self._store(key, outcome.value)
        return outcome.value

    def _page_strategies(self, url: str, timeout: Optional[float]) -> list[Strategy[PageResult]]:
        strategies = [Strategy("http", partial(self._via_http, url, timeout))]
        if self._browser_enabled:
            strategies.append(Strategy("browser", partial(self._via_browser, url, timeout)))
        return strategies

    @property
    def _browser_enabled(self) -> bool:
        return self.browser is not None and not self.settings.disable_browser

    def _page_accepted(self, page: PageResult) -> bool:
        return len(page.text) > self.settings.min_text_length

    def _via_http(self, url: str, timeout: Optional[float]) -> PageResult:
        raw = self.fetcher.fetch(url, timeout=timeout)
        if self._browser_enabled and self.browser.available and looks_like_spa(raw.html):
            raise QualityTooLow("page looks like a JavaScript SPA; needs rendering")
        return self._build_page(raw.html, raw.url, "http")

    def _via_browser(self, url: str, timeout: Optional[float]) -> PageResult:
        html, final_url = self.browser.with_session(
            url, lambda page: (page.content(), page.url), timeout=timeout
        )
        return self._build_page(html, final_url or url, "browser")

    def _build_page(self, html: str, url: str, method: FetchMethod) -> PageResult:
        page = self.extractor.extract(html, url, method=method)
        page.reviews = self.reviewer.extract(page, html)
        return page

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    def search(
        self,
        query: str,
        max_results: Optional[int] = None,
        options: Optional[FetchOptions] = None,
    ) -> SearchResult:
        """Run *query* against the configured backends.  Never raises.

        A synthetic result always carries exactly *max_results* hits.
        """
        if max_results is None:
            max_results = options.max_results if options else self.settings.search_max_results
        options = replace(options or FetchOptions(), max_results=max_results)
        request = FetchRequest(target=query, kind="search", options=options)
        try:
            return self._search(request)
        except Exception:
            logger.exception("[layer] unexpected failure searching %r; returning synthetic hits", query)
            return self._synthetic_search(normalise_query(query).lower(), max_results)

    def _search(self, request: FetchRequest) -> SearchResult:
        # Same form as the cache key.
        query, options = normalise_query(request.target).lower(), request.options
        key = request.cache_key()
        if not options.skip_cache:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("[cache] hit %s", key)
                return cached

        count = options.max_results
        strategies = [
            Strategy(provider.name, partial(provider.search, query, count))
            for provider in self.providers
        ]
        if self._browser_enabled and self.browser.available:
            strategies.insert(
                0,
                Strategy(
                    self.browser_search.name,
                    partial(self.browser_search.search, query, count),
                ),
            )
        outcome = run_chain(
            query, strategies, accept=bool, fallback=partial(self.synthetic.search, query, count)
        )
        if outcome.used_fallback:
            result = SearchResult(
                query=query, hits=outcome.value, backend="synthetic", synthetic=True
            )
        else:
            result = SearchResult.from_hits(query, outcome.value, outcome.strategy, count)
        self._store(key, result)
        return result

    def _synthetic_search(self, query: str, count: int) -> SearchResult:
        return SearchResult(
            query=query,
            hits=self.synthetic.search(query, count),
            backend="synthetic",
            synthetic=True,
        )

    # ------------------------------------------------------------------
    # Batch fetch
    # ------------------------------------------------------------------
    def fetch_multiple(
        self, urls: Iterable[str], options: Optional[FetchOptions] = None
    ) -> list[PageResult]:
        """Fetch *urls* in bounded batches; results keep the input order.

        At most ``max_concurrency`` pages are in flight at once, and the
        layer sleeps ``batch_delay`` seconds between consecutive batches.
        """
        urls = list(urls)
        options = options or FetchOptions()
        workers = max(1, options.max_concurrency or self.settings.max_concurrency)
        results: list[Optional[PageResult]] = [None] * len(urls)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scout-fetch") as pool:
            for start in range(0, len(urls), workers):
                batch = range(start, min(start + workers, len(urls)))
                logger.info(
                    "[batch] fetching %d-%d of %d URL(s) …", batch.start + 1, batch.stop, len(urls)
                )
                futures = {pool.submit(self.fetch_page, urls[i], options): i for i in batch}
                for future in as_completed(futures):
                    results[futures[future]] = future.result()
                if batch.stop < len(urls) and self.settings.batch_delay > 0:
                    time.sleep(self.settings.batch_delay)

        return results  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------
    def extract_reviews(
        self, url: str, options: Optional[FetchOptions] = None
    ) -> list[ReviewFragment]:
        """Review fragments mined from *url*, or synthetic ones when none are found."""
        page = self.fetch_page(url, options)
        if page.reviews:
            return list(page.reviews)
        logger.info("[reviews] no review fragments found on %s; using synthetic reviews", url)
        return self.synthetic.reviews(url)

    def review_summary(self, url: str, options: Optional[FetchOptions] = None) -> dict[str, Any]:
        """Fragments for *url* with their aggregate rating and topic breakdown."""
        fragments = self.extract_reviews(url, options)
        return {
            "url": url,
            "review_site": is_review_site(url),
            "synthetic": all(f.synthetic for f in fragments),
            "summary": summarize(fragments),
            "topics": extract_topics(fragments),
            "reviews": [asdict(f) for f in fragments],
        }

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------
    def clear_cache(self) -> None:
        self.cache.clear()

    def _store(self, key: str, value: Any) -> None:
        ttl = self.settings.synthetic_cache_ttl if getattr(value, "synthetic", False) else None
        self.cache.set(key, value, ttl=ttl)
