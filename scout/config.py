"""Centralised settings for the Scout acquisition layer.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # HTTP fetcher
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "10.0"))
    )

    # ------------------------------------------------------------------
    # Headless browser
    # ------------------------------------------------------------------
    disable_browser: bool = field(
        default_factory=lambda: _env_bool("DISABLE_BROWSER")
    )
    browser_timeout: float = field(
        default_factory=lambda: float(os.environ.get("BROWSER_TIMEOUT", "20.0"))
    )
    browser_block_resources: bool = field(
        default_factory=lambda: _env_bool("BROWSER_BLOCK_RESOURCES", "true")
    )
    browser_settle_delay: float = field(
        default_factory=lambda: float(os.environ.get("BROWSER_SETTLE_DELAY", "1.5"))
    )
    browser_max_uses: int = field(
        default_factory=lambda: int(os.environ.get("BROWSER_MAX_USES", "50"))
    )
    browser_max_launch_attempts: int = field(
        default_factory=lambda: int(os.environ.get("BROWSER_MAX_LAUNCH_ATTEMPTS", "3"))
    )
    browser_crash_threshold: int = field(
        default_factory=lambda: int(os.environ.get("BROWSER_CRASH_THRESHOLD", "1"))
    )

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------
    cache_ttl: float = field(
        default_factory=lambda: float(os.environ.get("CACHE_TTL", "3600"))
    )
    synthetic_cache_ttl: float = field(
        default_factory=lambda: float(os.environ.get("SYNTHETIC_CACHE_TTL", "300"))
    )
    cache_sweep_interval: float = field(
        default_factory=lambda: float(os.environ.get("CACHE_SWEEP_INTERVAL", "60"))
    )

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------
    min_text_length: int = field(
        default_factory=lambda: int(os.environ.get("MIN_TEXT_LENGTH", "100"))
    )
    max_text_length: int = field(
        default_factory=lambda: int(os.environ.get("MAX_TEXT_LENGTH", "10000"))
    )

    # ------------------------------------------------------------------
    # Batching
    # ------------------------------------------------------------------
    max_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("MAX_CONCURRENCY", "3"))
    )
    batch_delay: float = field(
        default_factory=lambda: float(os.environ.get("BATCH_DELAY", "2.0"))
    )

    # ------------------------------------------------------------------
    # Search providers
    # ------------------------------------------------------------------
    search_max_results: int = field(
        default_factory=lambda: int(os.environ.get("SEARCH_MAX_RESULTS", "10"))
    )
    search_providers: str = field(
        default_factory=lambda: os.environ.get(
            "SEARCH_PROVIDERS", "duckduckgo,bing,google,searxng"
        )
    )
    brave_api_key: str = field(
        default_factory=lambda: os.environ.get("BRAVE_API_KEY", "")
    )
    searxng_base_url: str = field(
        default_factory=lambda: os.environ.get("SEARXNG_BASE_URL", "https://searx.be")
    )
    search_provider_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SEARCH_PROVIDER_TIMEOUT", "10.0"))
    )
    searxng_instance_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SEARXNG_INSTANCE_TIMEOUT", "5.0"))
    )
    search_retry_max: int = field(
        default_factory=lambda: int(os.environ.get("SEARCH_RETRY_MAX", "2"))
    )
    search_retry_base_delay: float = field(
        default_factory=lambda: float(os.environ.get("SEARCH_RETRY_BASE_DELAY", "1.0"))
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )

    @property
    def provider_names(self) -> list[str]:
        """Configured search backend names, in priority order."""
        return [
            name.strip().lower()
            for name in self.search_providers.split(",")
            if name.strip()
        ]


# Module-level singleton — import this everywhere:
#   from scout.config import settings
settings = Settings()
