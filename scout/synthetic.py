"""Deterministic placeholder results for when every real strategy fails.

The same ``(target, count)`` always yields equal output, and every object is
flagged ``synthetic=True`` so callers can tell it apart from real data.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from scout.models import PageResult, ReviewFragment, SearchHit
from scout.scraper.reviews import sentiment_for

_SECOND_LEVEL = {"co", "com", "org", "net", "ac", "gov", "edu"}
_HOST_LABEL = re.compile(r"^[a-z0-9-]+$")

# (title, url, snippet); {subject} is the keyword, {query} the full query.
_SEARCH_TEMPLATES = [
    (
        "{subject} - Official Website & Platform",
        "https://www.{slug}.com",
        "The leading {query} platform. Comprehensive solutions for businesses and individuals worldwide.",
    ),
    (
        "Top 10 {subject} Solutions",
        "https://www.comparisons.com/{slug}-reviews",
        "Expert comparison of the best {query} options. Features, pricing, and user reviews.",
    ),
    (
        "{subject} Reviews & Ratings",
        "https://www.reviews.com/{slug}",
        "Real user reviews and ratings for {query}. See what customers are saying.",
    ),
    (
        "{subject} - Wikipedia",
        "https://en.wikipedia.org/wiki/{slug}",
        "Comprehensive information about {query} including history, features, and market analysis.",
    ),
    (
        "{subject} Market Report",
        "https://www.marketresearch.com/{slug}",
        "Latest market trends, size, and forecast for {query}. Industry insights and analysis.",
    ),
    (
        "How to Choose a {subject} Solution",
        "https://www.businessguide.com/choosing-{slug}",
        "Complete guide to selecting the right {query}. Compare features, pricing, and benefits.",
    ),
    (
        "{subject} Best Practices",
        "https://www.bestpractices.com/{slug}",
        "Industry best practices and tips for {query}. Learn from experts and successful cases.",
    ),
    (
        "{subject} Industry News & Updates",
        "https://www.industrynews.com/{slug}",
        "Latest news, updates, and trends in {query}. Stay informed about market developments.",
    ),
]

_REVIEW_TEMPLATES = [
    ("I have used {subject} for a few months and the service has been excellent overall.", 4.5),
    ("Setting up {subject} was easy and the support team answered quickly.", 4.0),
    ("{subject} does the job, but the pricing feels high for what you get.", 3.0),
    ("The {subject} app was slow and crashed twice during my first week.", 2.0),
    ("Decent features in {subject}, though the interface could be more intuitive.", 3.5),
]


class SyntheticGenerator:
    """Pure string templating over a subject derived from the target."""

    @staticmethod
    def subject_from_url(url: str) -> str:
        try:
            host = urlsplit(url if "//" in url else f"//{url}").hostname or ""
        except ValueError:
            return "website"
        labels = [label for label in host.split(".") if label and label != "www"]
        if not labels or not all(_HOST_LABEL.match(label) for label in labels):
            return "website"
        if all(label.isdigit() for label in labels):
            return "website"
        if len(labels) >= 3 and labels[-2] in _SECOND_LEVEL:
            return labels[-3]
        return labels[-2] if len(labels) >= 2 else labels[0]

    @staticmethod
    def subject_from_query(query: str) -> str:
        for word in query.lower().split():
            word = word.strip("\"'.,;:!?()[]")
            if len(word) > 3:
                return word
        return "business"

    def page(self, url: str) -> PageResult:
        subject = self.subject_from_url(url)
        name = subject.capitalize()
        return PageResult(
            url=url,
            title=f"{name} - Overview",
            meta_description=f"General information about {subject}.",
            headings=[f"About {name}", f"{name} Products and Services"],
            text=(
                f"{name} could not be retrieved right now. "
                f"This placeholder summarises {subject} until live content is available: "
                f"{subject} offers products and services to its customers. "
                "Pricing, features and contact details were not available."
            ),
            method="synthetic",
            synthetic=True,
        )

    def search(self, query: str, count: int) -> list[SearchHit]:
        subject = self.subject_from_query(query)
        slug = re.sub(r"[^a-z0-9]+", "-", subject).strip("-") or "business"
        hits: list[SearchHit] = []
        for index in range(max(count, 0)):
            title, url, snippet = _SEARCH_TEMPLATES[index % len(_SEARCH_TEMPLATES)]
            round_ = index // len(_SEARCH_TEMPLATES)
            title = title.format(subject=subject.capitalize())
            url = url.format(slug=slug)
            if round_:
                title = f"{title} ({round_ + 1})"
                url = f"{url}?page={round_ + 1}"
            hits.append(
                SearchHit(
                    title=title,
                    url=url,
                    snippet=snippet.format(query=query),
                    source="Synthetic",
                    synthetic=True,
                )
            )
        return hits

    def reviews(self, target: str, count: int = 5) -> list[ReviewFragment]:
        subject = (
            self.subject_from_url(target)
            if target.startswith(("http://", "https://"))
            else self.subject_from_query(target)
        )
        fragments: list[ReviewFragment] = []
        for index in range(max(count, 0)):
            text, rating = _REVIEW_TEMPLATES[index % len(_REVIEW_TEMPLATES)]
            fragments.append(
                ReviewFragment(
                    text=text.format(subject=subject.capitalize()),
                    rating=rating,
                    sentiment=sentiment_for(rating),
                    source=target,
                    synthetic=True,
                )
            )
        return fragments
