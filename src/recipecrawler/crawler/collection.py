"""
Roundup/listing page detection and recipe link harvesting.

All pattern tables come from :class:`CollectionConfig` so they can be tuned
without code changes.
"""

from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import urljoin, urlparse

import structlog
from selectolax.parser import HTMLParser

from ..config.config import CollectionConfig

logger = structlog.get_logger(__name__)


class CollectionDetector:
    """Recognizes collection pages and pulls individual recipe links out of them."""

    def __init__(self, config: Optional[CollectionConfig] = None, max_links: int = 50) -> None:
        self.config = config or CollectionConfig()
        self.max_links = max_links
        self._url_regexes = [re.compile(p) for p in self.config.url_regexes]
        self._title_regexes = [re.compile(p) for p in self.config.title_patterns]
        self._recipe_link_regexes = [re.compile(p) for p in self.config.recipe_link_patterns]

    def is_collection_page(self, url: str) -> bool:
        lowered = url.lower()
        if any(pattern in lowered for pattern in self.config.url_patterns):
            return True
        path = urlparse(lowered).path
        return any(regex.search(path) for regex in self._url_regexes)

    def is_collection_title(self, title: Optional[str]) -> bool:
        if not title:
            return False
        lowered = title.strip().lower()
        return any(regex.search(lowered) for regex in self._title_regexes)

    def _is_excluded(self, href: str, full_url: str) -> bool:
        lowered = href.lower()
        if any(fragment in lowered for fragment in self.config.excluded_link_fragments):
            return True
        host = (urlparse(full_url).hostname or "").lower()
        return any(host == d or host.endswith("." + d) for d in self.config.excluded_domains)

    def _looks_like_recipe_link(self, href: str) -> bool:
        lowered = href.lower()
        return any(regex.search(lowered) for regex in self._recipe_link_regexes)

    def extract_links_from_collection(self, html: str, base_url: str) -> List[str]:
        """
        Harvest candidate recipe links from a collection page.

        Selectors are tried in order; the first one that yields any usable
        link wins. The result is de-duplicated and capped at ``max_links``.
        """
        tree = HTMLParser(html)
        links: List[str] = []

        for selector in self.config.link_selectors:
            for node in tree.css(selector):
                href = (node.attributes.get("href") or "").strip()
                if not href:
                    continue
                full_url = urljoin(base_url, href)
                if urlparse(full_url).scheme not in ("http", "https"):
                    continue
                if self._is_excluded(href, full_url) or not self._looks_like_recipe_link(href):
                    continue
                links.append(full_url)
            if links:
                break

        unique = list(dict.fromkeys(link for link in links if link != base_url))[: self.max_links]
        logger.debug("Collection links harvested", url=base_url, found=len(unique))
        return unique


def page_title(html: str) -> Optional[str]:
    """Headline of a page: first h1, else og:title, else the document title."""
    tree = HTMLParser(html)
    h1 = tree.css_first("h1")
    if h1 is not None and h1.text(strip=True):
        return h1.text(strip=True)
    og = tree.css_first('meta[property="og:title"]')
    if og is not None and (og.attributes.get("content") or "").strip():
        return (og.attributes.get("content") or "").strip()
    title = tree.css_first("title")
    if title is not None and title.text(strip=True):
        return title.text(strip=True)
    return None
