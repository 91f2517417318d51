"""HTTP access to the code search API and raw file content."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from ..config import SweepConfig
from .params import QueryParameterization
from .rate_window import RateLimit, read_last_page, read_rate_limit, read_retry_after

_BLOB_URL = re.compile(r"^https://github\.com/([^/]+)/([^/]+)/blob/(.+)$")


class SearchAPIError(RuntimeError):
    """Unclassified search failure; fatal to the run."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AbuseDetectedError(SearchAPIError):
    """Secondary rate limit hit; the platform says how long to back off."""

    def __init__(self, retry_after: float, status_code: int | None = None) -> None:
        super().__init__(f"Abuse detection triggered; retry after {retry_after}s", status_code)
        self.retry_after = retry_after


class RateLimitExceededError(SearchAPIError):
    """Request rejected because the published quota is used up."""

    def __init__(self, reset_at: float, status_code: int | None = None) -> None:
        super().__init__(f"Rate limit exhausted until {reset_at}", status_code)
        self.reset_at = reset_at


@dataclass(frozen=True, slots=True)
class SearchItem:
    url: str
    blob_identity: str


@dataclass(slots=True)
class SearchPageResult:
    """Single search page with the quota and pagination state it reported."""

    page: int
    items: list[SearchItem]
    rate_limit: RateLimit
    last_page_index: int


def to_raw_url(url: str, raw_base_url: str = "https://raw.githubusercontent.com") -> str:
    """Rewrite a repository browser ``blob`` URL to its raw-content URL."""

    match = _BLOB_URL.match(url)
    if not match:
        return url
    owner, repo, rest = match.groups()
    return f"{raw_base_url.rstrip('/')}/{owner}/{repo}/{rest}"


class SearchClient:
    """Thin wrapper over ``httpx.Client`` for search and download calls."""

    def __init__(
        self,
        config: SweepConfig,
        token: str,
        logger: structlog.BoundLogger | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or structlog.get_logger("filesweep.client")
        self._client = httpx.Client(
            follow_redirects=True,
            timeout=config.request_timeout,
            headers={
                "User-Agent": config.user_agent,
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
            },
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def search(self, param: QueryParameterization, page: int) -> SearchPageResult:
        params: dict[str, Any] = {
            "q": param.query(self.config.language_hint_for(param.target_filename)),
            "per_page": self.config.page_size,
            "page": page,
        }
        params.update(param.request_params())
        self.logger.debug("search_request", query=params["q"], page=page, **param.request_params())
        response = self._client.get(f"{self.config.api_base_url}/search/code", params=params)
        self._raise_for_search_status(response)
        return SearchPageResult(
            page=page,
            items=self._parse_items(response),
            rate_limit=read_rate_limit(response.headers),
            last_page_index=read_last_page(response.links),
        )

    def download(self, url: str) -> bytes:
        raw_url = to_raw_url(url, self.config.raw_base_url)
        self.logger.debug("download_request", url=raw_url)
        response = self._client.get(raw_url)
        response.raise_for_status()
        return response.content

    # ------------------------------------------------------------------
    @staticmethod
    def _raise_for_search_status(response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        if status in {403, 429}:
            retry_after = read_retry_after(response.headers)
            if retry_after is not None:
                raise AbuseDetectedError(retry_after, status)
            if "x-ratelimit-remaining" in response.headers:
                rate = read_rate_limit(response.headers)
                if rate.exhausted:
                    raise RateLimitExceededError(rate.reset_at, status)
        raise SearchAPIError(
            f"Search request failed with status {status}: {response.text[:200]}", status
        )

    @staticmethod
    def _parse_items(response: httpx.Response) -> list[SearchItem]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise SearchAPIError("Search response is not valid JSON", response.status_code) from exc
        raw_items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(raw_items, list):
            raise SearchAPIError("Search response has no item list", response.status_code)
        try:
            return [SearchItem(url=item["html_url"], blob_identity=item["sha"]) for item in raw_items]
        except (KeyError, TypeError) as exc:
            raise SearchAPIError(
                f"Search item missing field: {exc}", response.status_code
            ) from exc


__all__ = [
    "AbuseDetectedError",
    "RateLimitExceededError",
    "SearchAPIError",
    "SearchClient",
    "SearchItem",
    "SearchPageResult",
    "to_raw_url",
]
