"""Pattern tables used by the fetcher, extractor and review heuristics.

Kept as plain data so they can be tuned and tested without touching the
traversal code.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Client identities
# ---------------------------------------------------------------------------
USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:123.0) Gecko/20100101 Firefox/123.0",
)

# ---------------------------------------------------------------------------
# SPA / JS-rendered page fingerprints
# ---------------------------------------------------------------------------
SPA_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r'<div[^>]+id=["\'](?:root|app|__next)["\'][^>]*>\s*</div>', re.IGNORECASE),
    re.compile(r"window\.__NEXT_DATA__", re.IGNORECASE),
    re.compile(r"ng-version=", re.IGNORECASE),
    re.compile(r"data-reactroot", re.IGNORECASE),
)

# ---------------------------------------------------------------------------
# Document structure
# ---------------------------------------------------------------------------
NON_CONTENT_TAGS: tuple[str, ...] = (
    "script", "style", "noscript", "iframe", "svg", "template",
    "nav", "header", "footer", "aside", "form",
)
HIDDEN_STYLE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)
MAIN_CONTENT_SELECTORS: tuple[str, ...] = ("main", "article", "[role=main]", "#content", "#main")
MIN_MAIN_CONTENT = 200

MAX_HEADINGS = 20
MAX_LINKS = 50
MAX_IMAGES = 20
MAX_PRICES = 10
MAX_FEATURES = 20

SKIPPED_HREF_PREFIXES: tuple[str, ...] = ("#", "javascript:", "mailto:", "tel:", "data:")

SOCIAL_PLATFORMS: dict[str, re.Pattern[str]] = {
    "facebook": re.compile(r"(?:^|\.)facebook\.com$|(?:^|\.)fb\.com$"),
    "twitter": re.compile(r"(?:^|\.)twitter\.com$|(?:^|\.)x\.com$"),
    "linkedin": re.compile(r"(?:^|\.)linkedin\.com$"),
    "instagram": re.compile(r"(?:^|\.)instagram\.com$"),
    "youtube": re.compile(r"(?:^|\.)youtube\.com$|(?:^|\.)youtu\.be$"),
    "github": re.compile(r"(?:^|\.)github\.com$"),
    "tiktok": re.compile(r"(?:^|\.)tiktok\.com$"),
}

# ---------------------------------------------------------------------------
# Contact info
# ---------------------------------------------------------------------------
EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.[a-zA-Z]{2,}")
PHONE_PATTERN = re.compile(
    r"(?:\+?\d{1,3}[\s.-]?)?(?:\(\d{3}\)|\d{3})[\s.-]?\d{3}[\s.-]?\d{4}\b"
)
ADDRESS_PATTERN = re.compile(
    r"\b\d{1,5}\s+(?:[A-Z][A-Za-z]+\s){1,4}"
    r"(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Lane|Ln|Drive|Dr|Way|Court|Ct|Place|Pl)"
    r"\b\.?(?:,\s*[A-Z][A-Za-z ]+)?(?:,\s*[A-Z]{2})?(?:\s+\d{5})?"
)
PLACEHOLDER_EMAIL_DOMAINS: frozenset[str] = frozenset(
    {"example.com", "example.org", "domain.com", "email.com", "yourdomain.com",
     "yoursite.com", "company.com", "sentry.io", "test.com"}
)
PLACEHOLDER_EMAIL_USERS: frozenset[str] = frozenset(
    {"you", "your", "yourname", "name", "user", "username", "test", "email", "john.doe"}
)
IMAGE_SUFFIXES: tuple[str, ...] = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp")
PLACEHOLDER_PHONES: frozenset[str] = frozenset(
    {"0000000000", "1234567890", "5555555555", "1111111111", "9999999999"}
)

# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------
PRICE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"[$€£¥]\s?\d{1,3}(?:,\d{3})*(?:\.\d{2})?"
        r"(?:\s*/\s*(?:month|mo|year|yr|user|seat))?",
        re.IGNORECASE,
    ),
    re.compile(r"\b\d{1,3}(?:,\d{3})*(?:\.\d{2})?\s?(?:USD|EUR|GBP)\b"),
    re.compile(r"(?<!feel )(?<!toll-)\bfree(?:\s+(?:trial|plan|tier|forever))?\b", re.IGNORECASE),
)

# ---------------------------------------------------------------------------
# Features
# ---------------------------------------------------------------------------
FEATURE_SELECTORS: tuple[str, ...] = (
    ".features li",
    ".feature-list li",
    "ul[class*=feature] li",
    "[class*=feature] h3",
    "[class*=benefit] li",
)
BULLET_LINE = re.compile(r"^\s*[•●▪►✓✔★\-*]\s+(.{5,199})$")

# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------
REVIEW_NAMING = re.compile(r"review|testimonial|comment|feedback|quote", re.IGNORECASE)
QUOTED_TEXT = re.compile(r"[\"“]([^\"“”]{30,400})[\"”]")
SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
FIRST_PERSON = re.compile(r"\b(?:i|i'm|i've|we|we've|my|our|me)\b", re.IGNORECASE)

VERY_POSITIVE_WORDS: frozenset[str] = frozenset(
    {"excellent", "amazing", "outstanding", "fantastic", "perfect", "love", "loved",
     "exceptional", "incredible", "best", "awesome", "superb", "brilliant"}
)
POSITIVE_WORDS: frozenset[str] = frozenset(
    {"good", "great", "helpful", "easy", "recommend", "recommended", "happy",
     "satisfied", "nice", "reliable", "fast", "liked", "enjoy", "enjoyed",
     "impressed", "pleased", "smooth", "intuitive", "worth"}
)
NEGATIVE_WORDS: frozenset[str] = frozenset(
    {"bad", "poor", "slow", "difficult", "disappointed", "disappointing", "confusing",
     "expensive", "buggy", "issue", "issues", "problem", "problems", "annoying",
     "frustrated", "frustrating", "lacking", "mediocre", "unhappy"}
)
VERY_NEGATIVE_WORDS: frozenset[str] = frozenset(
    {"terrible", "awful", "horrible", "worst", "hate", "hated", "useless", "scam",
     "broken", "waste", "garbage", "unusable"}
)
RATING_WEIGHTS: tuple[tuple[frozenset[str], float], ...] = (
    (VERY_POSITIVE_WORDS, 1.0),
    (POSITIVE_WORDS, 0.5),
    (NEGATIVE_WORDS, -0.5),
    (VERY_NEGATIVE_WORDS, -1.0),
)
OPINION_WORDS: frozenset[str] = (
    VERY_POSITIVE_WORDS | POSITIVE_WORDS | NEGATIVE_WORDS | VERY_NEGATIVE_WORDS
)
DOMAIN_WORDS: frozenset[str] = frozenset(
    {"product", "products", "service", "services", "app", "software", "tool", "tools",
     "support", "team", "price", "pricing", "feature", "features", "customer",
     "quality", "delivery", "experience", "platform", "company", "purchase",
     "bought", "order", "staff", "interface", "value", "subscription", "plan"}
)
BOILERPLATE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\bclick here\b",
        r"\bbuy now\b",
        r"\bshop now\b",
        r"\border now\b",
        r"\badd to (?:cart|basket)\b",
        r"\bsign (?:up|in)\b",
        r"\blog ?in\b",
        r"\bsubscribe\b",
        r"\bnewsletter\b",
        r"\blearn more\b",
        r"\bread more\b",
        r"\bget started\b",
        r"\bdownload now\b",
        r"\bfree shipping\b",
        r"\blimited time\b",
        r"\d+\s?% off\b",
        r"\bcookies?\b",
        r"\bprivacy policy\b",
        r"\bterms (?:of|and)\b",
        r"\ball rights reserved\b",
        r"©",
    )
)
REVIEW_MIN_LENGTH = 20
REVIEW_MAX_LENGTH = 500
MAX_REVIEWS = 20

REVIEW_SITES: tuple[str, ...] = (
    "trustpilot", "g2.com", "capterra", "getapp", "softwareadvice", "producthunt",
    "yelp", "reddit.com", "play.google.com", "apps.apple.com",
)

TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "pricing": ("price", "cost", "expensive", "cheap", "affordable", "subscription", "free"),
    "performance": ("slow", "fast", "speed", "lag", "performance", "loading"),
    "usability": ("easy", "difficult", "intuitive", "confusing", "ux", "interface"),
    "features": ("feature", "functionality", "option", "missing", "need", "want"),
    "support": ("support", "help", "customer service", "response", "documentation"),
    "reliability": ("bug", "crash", "error", "stable", "reliable", "broken"),
    "integration": ("integrate", "api", "connect", "sync", "export", "import"),
    "mobile": ("mobile", "app", "ios", "android", "phone", "tablet"),
    "onboarding": ("setup", "getting started", "tutorial", "onboarding", "learning curve"),
}
