"""Paginated search driver with abuse-detection retry and rate-limit pacing."""

from __future__ import annotations

import time
from typing import Callable, Iterator, Protocol

import structlog

from ..config import SweepConfig
from .client import AbuseDetectedError, RateLimitExceededError, SearchPageResult
from .params import QueryParameterization
from .rate_window import RateLimit, seconds_until


class SearchBackend(Protocol):
    def search(self, param: QueryParameterization, page: int) -> SearchPageResult: ...


class PageFetcher:
    """Drive one parameterization through all of its pages.

    The last page is re-read from every response because the platform's
    index can grow or shrink mid-run. Pacing happens when the consumer asks
    for the next page, so a page's items are fully processed before the next
    request goes out.
    """

    def __init__(
        self,
        client: SearchBackend,
        config: SweepConfig,
        logger: structlog.BoundLogger | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.config = config
        self.logger = logger or structlog.get_logger("filesweep.fetcher")
        self._sleep = sleep
        self._clock = clock
        self._wall_clock = wall_clock

    def iter_pages(
        self, param: QueryParameterization, start_page: int = 0
    ) -> Iterator[SearchPageResult]:
        page = start_page
        last_page: int | None = None
        # Pages run from 0 to last_page - 1 on purpose. The platform serves
        # page 0 as page 1, and saved resume pages use this numbering.
        while last_page is None or page < last_page:
            started, result = self._fetch_page(param, page)
            last_page = result.last_page_index
            self.logger.info(
                "search_page",
                param=param.describe(),
                page=page,
                last_page=last_page,
                items=len(result.items),
                remaining=result.rate_limit.remaining,
            )
            yield result
            self._pace(result.rate_limit, started)
            page += 1

    # ------------------------------------------------------------------
    def _fetch_page(
        self, param: QueryParameterization, page: int
    ) -> tuple[float, SearchPageResult]:
        while True:
            started = self._clock()
            try:
                return started, self.client.search(param, page)
            except AbuseDetectedError as exc:
                self.logger.warning(
                    "abuse_detected",
                    param=param.describe(),
                    page=page,
                    retry_after=exc.retry_after,
                )
                self._sleep(exc.retry_after)
            except RateLimitExceededError as exc:
                wait = seconds_until(exc.reset_at, self._wall_clock(), self.config.reset_buffer)
                self.logger.warning(
                    "rate_limit_rejected",
                    param=param.describe(),
                    page=page,
                    reset_at=exc.reset_at,
                    sleep_seconds=round(wait, 3),
                )
                self._sleep(wait)
            except Exception as exc:
                self.logger.error(
                    "search_failed",
                    param=param.describe(),
                    page=page,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise

    def _pace(self, rate_limit: RateLimit, started: float) -> None:
        if rate_limit.exhausted:
            wait = seconds_until(rate_limit.reset_at, self._wall_clock(), self.config.reset_buffer)
            self.logger.info(
                "rate_limit_sleep", reset_at=rate_limit.reset_at, sleep_seconds=round(wait, 3)
            )
            self._sleep(wait)
            return
        elapsed = self._clock() - started
        if elapsed < self.config.request_spacing:
            wait = self.config.request_spacing - elapsed
            self.logger.info("pacing_sleep", sleep_seconds=round(wait, 3))
            self._sleep(wait)


__all__ = ["PageFetcher", "SearchBackend"]
