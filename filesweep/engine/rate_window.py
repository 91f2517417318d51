"""Rate-limit and pagination metadata read from search responses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping
from urllib.parse import parse_qs, urlparse

REMAINING_HEADER = "x-ratelimit-remaining"
RESET_HEADER = "x-ratelimit-reset"
RETRY_AFTER_HEADER = "retry-after"


@dataclass(frozen=True, slots=True)
class RateLimit:
    """Quota snapshot as of the most recent response."""

    reset_at: float
    remaining: int

    @property
    def exhausted(self) -> bool:
        return self.remaining < 1


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        # Plain dicts are case sensitive; httpx.Headers is not.
        value = next((v for k, v in headers.items() if k.lower() == name), None)
    return value


def _to_int(value: str | None) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def read_rate_limit(headers: Mapping[str, str]) -> RateLimit:
    """Parse remaining quota and reset epoch; missing values count as ``0``."""

    return RateLimit(
        reset_at=float(_to_int(_header(headers, RESET_HEADER))),
        remaining=_to_int(_header(headers, REMAINING_HEADER)),
    )


def read_last_page(links: Mapping[str, Mapping[str, str]] | None) -> int:
    """Return the ``page`` of the ``last`` pagination relation.

    ``links`` is the parsed ``Link`` header as exposed by ``httpx.Response.links``.
    No header, no ``last`` relation or no usable ``page`` parameter means the
    current page is the only one, reported as ``0``.
    """

    if not links:
        return 0
    last = links.get("last")
    if not last or not last.get("url"):
        return 0
    pages = parse_qs(urlparse(last["url"]).query).get("page")
    if not pages:
        return 0
    return max(_to_int(pages[0]), 0)


def read_retry_after(headers: Mapping[str, str]) -> float | None:
    """Return the ``Retry-After`` delay in seconds, ``None`` when absent."""

    value = _header(headers, RETRY_AFTER_HEADER)
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return max(seconds, 0.0)


def seconds_until(reset_at: float, now: float, buffer: float = 0.0) -> float:
    """Non-negative wait from ``now`` until ``reset_at`` plus ``buffer``."""

    return max(reset_at - now, 0.0) + buffer


__all__ = [
    "RateLimit",
    "read_last_page",
    "read_rate_limit",
    "read_retry_after",
    "seconds_until",
]
