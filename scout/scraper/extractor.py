"""Content extraction: turns raw markup into a :class:`PageResult`.

Extraction is a pure function of ``(html, url)``: running it twice on the
same markup yields identical fields.  DOM traversal uses BeautifulSoup;
``trafilatura`` provides the readability fallback for the main text when the
page has no obvious main-content container.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional
from urllib.parse import urldefrag, urljoin, urlsplit

import trafilatura
from bs4 import BeautifulSoup, Tag

from scout.config import settings
from scout.models import ContactInfo, FetchMethod, PageResult
from scout.scraper import patterns as P


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _dedupe(items: Iterable[str], cap: int) -> list[str]:
    """Keep the first spelling of each case-insensitive value, up to *cap*."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        key = item.lower()
        if not item or key in seen:
            continue
        seen.add(key)
        out.append(item)
        if len(out) >= cap:
            break
    return out


def _absolute(href: str, base_url: str) -> Optional[str]:
    href = href.strip()
    if not href or href.lower().startswith(P.SKIPPED_HREF_PREFIXES):
        return None
    try:
        url, _fragment = urldefrag(urljoin(base_url, href))
        scheme = urlsplit(url).scheme
    except ValueError:
        return None
    if scheme not in ("http", "https"):
        return None
    return url


def _valid_email(candidate: str) -> bool:
    user, _, domain = candidate.lower().rpartition("@")
    if domain in P.PLACEHOLDER_EMAIL_DOMAINS or user in P.PLACEHOLDER_EMAIL_USERS:
        return False
    return not candidate.lower().endswith(P.IMAGE_SUFFIXES)


def _valid_phone(candidate: str) -> bool:
    digits = re.sub(r"\D", "", candidate)
    if not 10 <= len(digits) <= 15:
        return False
    if digits[-10:] in P.PLACEHOLDER_PHONES:
        return False
    return len(set(digits)) > 1


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class ContentExtractor:
    """Structured-document extraction with heuristic pattern matching."""

    def __init__(self, max_text_length: Optional[int] = None) -> None:
        self.max_text_length = max_text_length or settings.max_text_length

    def extract(self, html: str, url: str, method: FetchMethod = "http") -> PageResult:
        soup = BeautifulSoup(html or "", "html.parser")

        # DOM-level fields first: nav/header/footer still hold links and socials.
        anchors = [a.get("href", "") for a in soup.find_all("a", href=True)]
        absolute_links = [u for u in (_absolute(h, url) for h in anchors) if u]

        title = self.extract_title(soup)
        meta_description = self.extract_meta_description(soup)
        headings = self.extract_headings(soup)
        images = self.extract_images(soup, url)
        social = self.extract_social(absolute_links)
        features_dom = self._feature_elements(soup)
        mail_links = [h[len("mailto:"):].split("?")[0] for h in anchors if h.lower().startswith("mailto:")]
        tel_links = [h[len("tel:"):] for h in anchors if h.lower().startswith("tel:")]

        # Page text with scripts and hidden elements removed, newlines kept.
        self._strip(soup, ("script", "style", "noscript", "template", "svg", "iframe"))
        self._strip_hidden(soup)
        full_text = soup.get_text("\n")

        contact = self.extract_contact(full_text, mail_links, tel_links)
        pricing = self.extract_pricing(full_text)
        features = _dedupe(
            features_dom + self._bullet_lines(full_text), P.MAX_FEATURES
        )

        # Visible text: navigation chrome removed as well.
        self._strip(soup, P.NON_CONTENT_TAGS)
        text = self.extract_text(soup, html, url)

        return PageResult(
            url=url,
            title=title,
            meta_description=meta_description,
            headings=headings,
            links=_dedupe(absolute_links, P.MAX_LINKS),
            images=images,
            text=text,
            social=social,
            contact=contact,
            pricing=pricing,
            features=features,
            method=method,
        )

    # ------------------------------------------------------------------
    # Field extractors
    # ------------------------------------------------------------------
    @staticmethod
    def extract_title(soup: BeautifulSoup) -> str:
        """``<title>`` text, else the first ``<h1>``, else empty string."""
        if soup.title is not None:
            title = _collapse(soup.title.get_text())
            if title:
                return title
        h1 = soup.find("h1")
        return _collapse(h1.get_text()) if h1 is not None else ""

    @staticmethod
    def extract_meta_description(soup: BeautifulSoup) -> str:
        meta = soup.find("meta", attrs={"name": re.compile(r"^description$", re.I)})
        if meta is None:
            meta = soup.find("meta", attrs={"property": "og:description"})
        if meta is None:
            return ""
        return _collapse(meta.get("content", "") or "")

    @staticmethod
    def extract_headings(soup: BeautifulSoup) -> list[str]:
        texts = (_collapse(h.get_text()) for h in soup.find_all(["h1", "h2", "h3"]))
        return _dedupe((t for t in texts if 3 < len(t) < 200), P.MAX_HEADINGS)

    @staticmethod
    def extract_images(soup: BeautifulSoup, base_url: str) -> list[str]:
        sources: list[str] = []
        for img in soup.find_all("img"):
            src = img.get("src") or img.get("data-src") or ""
            absolute = _absolute(src, base_url)
            if absolute:
                sources.append(absolute)
        return _dedupe(sources, P.MAX_IMAGES)

    @staticmethod
    def extract_social(links: list[str]) -> dict[str, str]:
        social: dict[str, str] = {}
        for link in links:
            host = urlsplit(link).netloc.lower().split(":")[0]
            for platform, pattern in P.SOCIAL_PLATFORMS.items():
                if platform not in social and pattern.search(host):
                    social[platform] = link
        return social

    @staticmethod
    def extract_contact(
        text: str,
        mail_links: Iterable[str] = (),
        tel_links: Iterable[str] = (),
    ) -> ContactInfo:
        contact = ContactInfo()

        emails = list(mail_links) + [m.group(0).rstrip(".") for m in P.EMAIL_PATTERN.finditer(text)]
        contact.email = next((e.strip() for e in emails if _valid_email(e.strip())), "")

        phones = list(tel_links) + [m.group(0) for m in P.PHONE_PATTERN.finditer(text)]
        contact.phone = next((p.strip() for p in phones if _valid_phone(p)), "")

        address = P.ADDRESS_PATTERN.search(_collapse(text))
        contact.address = address.group(0).strip() if address else None
        return contact

    @staticmethod
    def extract_pricing(text: str) -> list[str]:
        flat = _collapse(text)
        found: list[tuple[int, str]] = []
        for pattern in P.PRICE_PATTERNS:
            for match in pattern.finditer(flat):
                found.append((match.start(), _collapse(match.group(0))))
        found.sort(key=lambda item: item[0])
        return _dedupe((value for _pos, value in found), P.MAX_PRICES)

    def extract_text(self, soup: BeautifulSoup, html: str, url: str) -> str:
        """Visible text, preferring a main-content region over the whole page."""
        for selector in P.MAIN_CONTENT_SELECTORS:
            node = soup.select_one(selector)
            if node is not None:
                candidate = _collapse(node.get_text(" "))
                if len(candidate) >= P.MIN_MAIN_CONTENT:
                    return candidate[: self.max_text_length]

        if html.strip():
            readable = trafilatura.extract(
                html,
                include_links=False,
                include_images=False,
                include_tables=True,
                url=url,
            )
            if readable and len(_collapse(readable)) >= P.MIN_MAIN_CONTENT:
                return _collapse(readable)[: self.max_text_length]

        root = soup.body or soup
        return _collapse(root.get_text(" "))[: self.max_text_length]

    # ------------------------------------------------------------------
    # Traversal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _strip(soup: BeautifulSoup, names: Iterable[str]) -> None:
        for tag in soup.find_all(list(names)):
            if not tag.decomposed:
                tag.decompose()

    @staticmethod
    def _strip_hidden(soup: BeautifulSoup) -> None:
        hidden = soup.find_all(style=P.HIDDEN_STYLE) + soup.find_all(attrs={"hidden": True})
        for tag in hidden:
            if isinstance(tag, Tag) and not tag.decomposed:
                tag.decompose()

    @staticmethod
    def _feature_elements(soup: BeautifulSoup) -> list[str]:
        items: list[str] = []
        for selector in P.FEATURE_SELECTORS:
            for node in soup.select(selector):
                text = _collapse(node.get_text(" "))
                if 5 < len(text) < 200:
                    items.append(text)
        return items

    @staticmethod
    def _bullet_lines(text: str) -> list[str]:
        items: list[str] = []
        for line in text.splitlines():
            match = P.BULLET_LINE.match(line)
            if match:
                item = _collapse(match.group(1))
                if 5 < len(item) < 200:
                    items.append(item)
        return items
