"""Dataclass models shared by the fetch, search and review paths.

These are plain Python objects.  Requests are frozen; results are created
fresh per call and handed to the caller (or parked in the cache).
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Optional
from urllib.parse import urlsplit, urlunsplit

RequestKind = Literal["page", "search"]
FetchMethod = Literal["http", "browser", "synthetic"]
Sentiment = Literal["positive", "negative", "mixed"]


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------

def normalise_url(url: str) -> str:
    """Lowercase scheme and host and drop the fragment.

    A URL too malformed to split (an unclosed IPv6 bracket) is only stripped
    and lowercased.
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return url.strip().lower()
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, "")
    )


def normalise_query(query: str) -> str:
    """Strip surrounding double-quotes added by LLM planners.

    The planner wraps queries in literal quotes, e.g. ``'"topic"'``.  These
    cause some search engines to refuse or return no results.
    """
    q = query.strip()
    if q.startswith('"') and q.endswith('"') and len(q) > 2:
        q = q[1:-1].strip()
    return re.sub(r"\s+", " ", q)


def normalise_title(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", " ", title.lower()).strip()


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FetchOptions:
    timeout: Optional[float] = None
    max_results: int = 10
    skip_cache: bool = False
    max_concurrency: Optional[int] = None


@dataclass(frozen=True)
class FetchRequest:
    target: str
    kind: RequestKind
    options: FetchOptions = field(default_factory=FetchOptions)

    def cache_key(self) -> str:
        """Key built from the parts of the request that affect the output."""
        if self.kind == "page":
            return f"page:{normalise_url(self.target)}"
        query = normalise_query(self.target).lower()
        return f"search:{query}:{self.options.max_results}"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class RawPage:
    """The raw markup retrieved for a single URL."""

    url: str
    html: str
    status_code: int


@dataclass
class ContactInfo:
    email: str = ""
    phone: str = ""
    address: Optional[str] = None


@dataclass
class ReviewFragment:
    text: str
    rating: float
    sentiment: Sentiment
    source: str
    synthetic: bool = False


@dataclass
class PageResult:
    url: str
    title: str = ""
    meta_description: str = ""
    headings: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    text: str = ""
    social: dict[str, str] = field(default_factory=dict)
    contact: ContactInfo = field(default_factory=ContactInfo)
    pricing: list[str] = field(default_factory=list)
    features: list[str] = field(default_factory=list)
    reviews: list[ReviewFragment] = field(default_factory=list)
    method: FetchMethod = "http"
    synthetic: bool = False
    fetched_at: str = field(default_factory=utc_now, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SearchHit:
    title: str
    url: str
    snippet: str
    source: str
    synthetic: bool = False


@dataclass
class SearchResult:
    query: str
    hits: list[SearchHit] = field(default_factory=list)
    backend: str = ""
    synthetic: bool = False
    fetched_at: str = field(default_factory=utc_now, compare=False)

    @classmethod
    def from_hits(
        cls,
        query: str,
        hits: list[SearchHit],
        backend: str,
        max_results: int,
        synthetic: bool = False,
    ) -> "SearchResult":
        """Build a result, dropping hits whose normalised title repeats."""
        seen: set[str] = set()
        unique: list[SearchHit] = []
        for hit in hits:
            key = normalise_title(hit.title)
            if not key or key in seen:
                continue
            seen.add(key)
            unique.append(hit)
            if len(unique) >= max_results:
                break
        return cls(query=query, hits=unique, backend=backend, synthetic=synthetic)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
