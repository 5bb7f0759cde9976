"""
Small parsing helpers shared by the extraction stages.
"""

from __future__ import annotations

import re
from typing import Any, Iterator, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString
from bs4.element import PreformattedString

_ISO_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?", re.IGNORECASE)
_FIRST_INT_RE = re.compile(r"(\d+)")

_INVISIBLE_TAGS = frozenset({"script", "style", "noscript", "template"})


def parse_duration(value: Any) -> Optional[int]:
    """Convert a duration to whole minutes.

    ``PT1H30M`` style values are read as hours and minutes; anything else
    uses the first integer in the string. Unparsable input yields None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, (list, tuple)):
        return parse_duration(value[0]) if value else None
    if not isinstance(value, str) or not value.strip():
        return None

    match = _ISO_DURATION_RE.search(value)
    if match and (match.group(1) or match.group(2)):
        hours = int(match.group(1) or 0)
        minutes = int(match.group(2) or 0)
        return hours * 60 + minutes

    return parse_int(value)


def parse_int(value: Any) -> Optional[int]:
    """First integer token of a value (``"4 servings"`` -> 4), or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, (list, tuple)):
        for item in value:
            parsed = parse_int(item)
            if parsed is not None:
                return parsed
        return None
    match = _FIRST_INT_RE.search(str(value))
    return int(match.group(1)) if match else None


def iter_visible_strings(soup: BeautifulSoup) -> Iterator[str]:
    """Yield text nodes that a reader would see (no script/style content)."""
    for node in soup.find_all(string=True):
        if not isinstance(node, NavigableString) or isinstance(node, PreformattedString):
            continue
        parent = node.parent
        if parent is not None and parent.name in _INVISIBLE_TAGS:
            continue
        text = str(node)
        if text.strip():
            yield text


def visible_text(soup: BeautifulSoup, separator: str = "\n") -> str:
    return separator.join(s.strip() for s in iter_visible_strings(soup))


def resolve_url(src: Optional[str], base_url: Optional[str]) -> Optional[str]:
    """Make an image or link URL absolute.

    Protocol-relative URLs are pinned to https.
    """
    if not src:
        return None
    src = src.strip()
    if src.startswith("//"):
        return "https:" + src
    if src.startswith(("http://", "https://")):
        return src
    if base_url:
        return urljoin(base_url, src)
    return src
