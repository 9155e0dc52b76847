"""Scraper package — page fetch strategies, extraction and review mining."""

from scout.scraper.breaker import BreakerEvent, BreakerState, CircuitBreaker
from scout.scraper.browser import BrowserManager
from scout.scraper.extractor import ContentExtractor
from scout.scraper.fetcher import HttpFetcher, UserAgentRotator, looks_like_spa
from scout.scraper.reviews import ReviewExtractor

__all__ = [
    "HttpFetcher",
    "BrowserManager",
    "CircuitBreaker",
    "BreakerEvent",
    "BreakerState",
    "ContentExtractor",
    "ReviewExtractor",
    "UserAgentRotator",
    "looks_like_spa",
]
