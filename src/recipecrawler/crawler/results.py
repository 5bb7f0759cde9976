"""
Fetch outcomes returned by the strategy executor.

Every attempt resolves to exactly one of these values; transport exceptions
never escape the executor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..protocols import ErrorKind


@dataclass(frozen=True)
class FetchSuccess:
    html: str
    final_url: str
    strategy: str = ""
    status_code: int = 200


@dataclass(frozen=True)
class FetchBlocked:
    """HTTP 403/429, or a bot-challenge page served with a 2xx status."""

    status_code: int
    strategy: str = ""
    reason: str = ""


@dataclass(frozen=True)
class FetchNotFound:
    strategy: str = ""


@dataclass(frozen=True)
class FetchTimeout:
    strategy: str = ""


@dataclass(frozen=True)
class FetchNetworkError:
    reason: str
    strategy: str = ""
    status_code: Optional[int] = None


FetchResult = Union[FetchSuccess, FetchBlocked, FetchNotFound, FetchTimeout, FetchNetworkError]

# Bot-challenge interstitials served with a 2xx status.
CHALLENGE_MARKERS = (
    "just a moment...",
    "cf-browser-verification",
    "captcha-delivery",
    "access denied",
)
_CHALLENGE_SCAN_CHARS = 20_000


def detect_challenge(html: str) -> Optional[str]:
    """Return the challenge marker found near the top of the page, if any."""
    head = html[:_CHALLENGE_SCAN_CHARS].lower()
    for marker in CHALLENGE_MARKERS:
        if marker in head:
            return marker
    return None


def page_result(html: str, final_url: str, strategy: str, status_code: int) -> Union[FetchSuccess, FetchBlocked]:
    """Classify a fetched 2xx/3xx page, treating challenge interstitials as blocks."""
    marker = detect_challenge(html)
    if marker:
        return FetchBlocked(status_code=status_code, strategy=strategy, reason=f"challenge page ({marker})")
    return FetchSuccess(html=html, final_url=final_url, strategy=strategy, status_code=status_code)


def status_code_of(result: FetchResult) -> Optional[int]:
    """The HTTP status behind a result, or None when no response arrived."""
    if isinstance(result, (FetchSuccess, FetchBlocked)):
        return result.status_code
    if isinstance(result, FetchNotFound):
        return 404
    if isinstance(result, FetchNetworkError):
        return result.status_code
    return None


def error_kind_of(result: FetchResult) -> Optional[ErrorKind]:
    """Map a failed fetch onto the crawler error taxonomy; None for success."""
    if isinstance(result, FetchSuccess):
        return None
    if isinstance(result, FetchBlocked):
        return ErrorKind.BLOCKED
    if isinstance(result, FetchNotFound):
        return ErrorKind.NOT_FOUND
    if isinstance(result, FetchTimeout):
        return ErrorKind.TIMEOUT
    return ErrorKind.NETWORK_ERROR


def describe(result: FetchResult) -> str:
    if isinstance(result, FetchSuccess):
        return f"fetched {result.final_url}"
    if isinstance(result, FetchBlocked):
        detail = f": {result.reason}" if result.reason else ""
        return f"blocked with HTTP {result.status_code}{detail}"
    if isinstance(result, FetchNotFound):
        return "page not found (404)"
    if isinstance(result, FetchTimeout):
        return "request timed out"
    return f"network error: {result.reason}"
