"""Keyword-scored review mining.

Three independent passes run over the same page:

1. *structural* — elements whose class or id follows review / testimonial
   naming conventions (innermost match only);
2. *quoted* — text between quotation marks;
3. *opinion sentences* — sentence-split text carrying a first-person
   indicator.

Every candidate must pass :func:`is_review_like`; survivors are
de-duplicated by a normalised prefix and scored with :func:`estimate_rating`.
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, Optional

from bs4 import BeautifulSoup, Tag

from scout.models import PageResult, ReviewFragment, Sentiment
from scout.scraper import patterns as P

_WORD = re.compile(r"[a-z']+")


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def _words(text: str) -> list[str]:
    return _WORD.findall(text.lower())


def estimate_rating(text: str) -> float:
    """Weighted keyword scale around a neutral 3.0, clamped to [1, 5].

    Rounded half-up to the nearest half point.
    """
    score = 3.0
    for word in _words(text):
        for table, weight in P.RATING_WEIGHTS:
            if word in table:
                score += weight
    score = min(5.0, max(1.0, score))
    return math.floor(score * 2 + 0.5) / 2


def sentiment_for(rating: float) -> Sentiment:
    if rating >= 4:
        return "positive"
    if rating <= 2:
        return "negative"
    return "mixed"


def is_review_like(text: str) -> bool:
    """Opinion word AND (domain word OR length > 50) AND no boilerplate."""
    words = set(_words(text))
    if not words & P.OPINION_WORDS:
        return False
    if not (words & P.DOMAIN_WORDS or len(text) > 50):
        return False
    return not any(pattern.search(text) for pattern in P.BOILERPLATE_PATTERNS)


def is_review_site(url: str) -> bool:
    lowered = url.lower()
    return any(site in lowered for site in P.REVIEW_SITES)


def _prefix_key(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", " ", text.lower()).strip()[:60]


def _is_review_node(tag: Any) -> bool:
    if not isinstance(tag, Tag) or tag.name in ("script", "style", "meta", "link"):
        return False
    classes = " ".join(tag.get("class") or [])
    return bool(P.REVIEW_NAMING.search(classes) or P.REVIEW_NAMING.search(tag.get("id") or ""))


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

class ReviewExtractor:
    """Mine opinion-bearing fragments from a fetched page."""

    def extract(self, page: PageResult, html: Optional[str] = None) -> list[ReviewFragment]:
        candidates: list[str] = []
        if html:
            candidates.extend(self.structural_pass(html))
        candidates.extend(self.quoted_pass(page.text))
        candidates.extend(self.opinion_pass(page.text))
        return self.score(candidates, source=page.url)

    def score(self, candidates: Iterable[str], source: str) -> list[ReviewFragment]:
        fragments: list[ReviewFragment] = []
        seen: set[str] = set()
        for raw in candidates:
            text = re.sub(r"\s+", " ", raw).strip()[: P.REVIEW_MAX_LENGTH]
            if len(text) < P.REVIEW_MIN_LENGTH or not is_review_like(text):
                continue
            key = _prefix_key(text)
            if key in seen:
                continue
            seen.add(key)
            rating = estimate_rating(text)
            fragments.append(
                ReviewFragment(
                    text=text,
                    rating=rating,
                    sentiment=sentiment_for(rating),
                    source=source,
                )
            )
            if len(fragments) >= P.MAX_REVIEWS:
                break
        return fragments

    @staticmethod
    def structural_pass(html: str) -> list[str]:
        soup = BeautifulSoup(html, "html.parser")
        texts: list[str] = []
        for node in soup.find_all(_is_review_node):
            if node.find(_is_review_node) is not None:
                continue
            texts.append(node.get_text(" "))
        return texts

    @staticmethod
    def quoted_pass(text: str) -> list[str]:
        return [m.group(1) for m in P.QUOTED_TEXT.finditer(text)]

    @staticmethod
    def opinion_pass(text: str) -> list[str]:
        return [
            sentence
            for sentence in P.SENTENCE_SPLIT.split(text)
            if 30 <= len(sentence) <= 400 and P.FIRST_PERSON.search(sentence)
        ]


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

def confidence_for(sample_size: int) -> str:
    if sample_size >= 100:
        return "high"
    if sample_size >= 50:
        return "medium"
    if sample_size >= 20:
        return "low"
    return "very low"


def summarize(fragments: list[ReviewFragment]) -> dict[str, Any]:
    """Average rating, overall sentiment and distribution for *fragments*."""
    total = len(fragments)
    if not total:
        return {
            "count": 0,
            "average_rating": None,
            "overall": "mixed",
            "distribution": {"positive": 0.0, "mixed": 0.0, "negative": 0.0},
            "confidence": confidence_for(0),
        }
    average = sum(f.rating for f in fragments) / total
    distribution = {
        label: round(100 * sum(1 for f in fragments if f.sentiment == label) / total, 1)
        for label in ("positive", "mixed", "negative")
    }
    return {
        "count": total,
        "average_rating": round(average, 2),
        "overall": sentiment_for(average),
        "distribution": distribution,
        "confidence": confidence_for(total),
    }


def extract_topics(fragments: list[ReviewFragment]) -> list[dict[str, Any]]:
    """Topic mentions and average rating, most-mentioned first."""
    topics: list[dict[str, Any]] = []
    for topic, keywords in P.TOPIC_KEYWORDS.items():
        ratings = [
            f.rating for f in fragments
            if any(keyword in f.text.lower() for keyword in keywords)
        ]
        if not ratings:
            continue
        average = sum(ratings) / len(ratings)
        topics.append(
            {
                "topic": topic,
                "mentions": len(ratings),
                "frequency": round(len(ratings) / len(fragments), 3),
                "average_rating": round(average, 2),
                "sentiment": sentiment_for(average),
            }
        )
    topics.sort(key=lambda t: t["mentions"], reverse=True)
    return topics
