from __future__ import annotations

import pytest

from filesweep.engine.client import AbuseDetectedError, RateLimitExceededError, SearchAPIError
from filesweep.engine.fetcher import PageFetcher
from filesweep.engine.params import QueryParameterization, SortMode

PARAM = QueryParameterization(SortMode.DEFAULT, None, "name", "package.json")


def _fetcher(backend, config, clock) -> PageFetcher:
    return PageFetcher(backend, config, sleep=clock.sleep, clock=clock.time, wall_clock=clock.time)


def test_missing_last_relation_stops_after_first_page(
    sample_config, fake_clock, scripted_backend, page_factory
) -> None:
    backend = scripted_backend({0: [page_factory(0, last_page=0)]}, fake_clock)
    pages = list(_fetcher(backend, sample_config, fake_clock).iter_pages(PARAM))
    assert [page.page for page in pages] == [0]
    assert backend.pages_requested == [0]


def test_last_page_is_rediscovered_every_response(
    sample_config, fake_clock, scripted_backend, page_factory
) -> None:
    backend = scripted_backend(
        {
            0: [page_factory(0, last_page=5)],
            1: [page_factory(1, last_page=2)],
            2: [page_factory(2, last_page=2)],
        },
        fake_clock,
    )
    list(_fetcher(backend, sample_config, fake_clock).iter_pages(PARAM))
    assert backend.pages_requested == [0, 1]


def test_start_page_is_honoured(sample_config, fake_clock, scripted_backend, page_factory) -> None:
    backend = scripted_backend(
        {2: [page_factory(2, last_page=4)], 3: [page_factory(3, last_page=4)]}, fake_clock
    )
    list(_fetcher(backend, sample_config, fake_clock).iter_pages(PARAM, start_page=2))
    assert backend.pages_requested == [2, 3]


def test_abuse_rejection_replays_same_page(
    sample_config, fake_clock, scripted_backend, page_factory
) -> None:
    script = {page: [page_factory(page, last_page=5)] for page in range(5)}
    script[3] = [AbuseDetectedError(5.0, 403), page_factory(3, last_page=5)]
    backend = scripted_backend(script, fake_clock)

    pages = list(_fetcher(backend, sample_config, fake_clock).iter_pages(PARAM))

    assert [page.page for page in pages] == [0, 1, 2, 3, 4]
    assert backend.pages_requested == [0, 1, 2, 3, 3, 4]
    page3_times = [at for _, page, at in backend.calls if page == 3]
    assert page3_times[1] - page3_times[0] >= 5.0
    assert 5.0 in fake_clock.sleeps


def test_exhausted_quota_waits_for_reset_plus_buffer(
    sample_config, fake_clock, scripted_backend, page_factory
) -> None:
    reset_at = fake_clock.time() + 60
    backend = scripted_backend(
        {
            0: [page_factory(0, last_page=2, remaining=0, reset_at=reset_at)],
            1: [page_factory(1, last_page=2)],
        },
        fake_clock,
    )
    list(_fetcher(backend, sample_config, fake_clock).iter_pages(PARAM))
    second_call_at = backend.calls[1][2]
    assert second_call_at >= reset_at + sample_config.reset_buffer
    assert fake_clock.sleeps[0] == pytest.approx(62.0)


def test_quota_rejection_retries_same_page_after_reset(
    sample_config, fake_clock, scripted_backend, page_factory
) -> None:
    reset_at = fake_clock.time() + 30
    backend = scripted_backend(
        {0: [RateLimitExceededError(reset_at, 403), page_factory(0, last_page=0)]}, fake_clock
    )
    list(_fetcher(backend, sample_config, fake_clock).iter_pages(PARAM))
    assert backend.pages_requested == [0, 0]
    assert backend.calls[1][2] >= reset_at + sample_config.reset_buffer


def test_pacing_enforces_minimum_spacing(
    sample_config, fake_clock, scripted_backend, page_factory
) -> None:
    backend = scripted_backend(
        {page: [page_factory(page, last_page=3)] for page in range(3)}, fake_clock
    )
    list(_fetcher(backend, sample_config, fake_clock).iter_pages(PARAM))
    times = [at for _, _, at in backend.calls]
    assert [b - a for a, b in zip(times, times[1:])] == [3.0, 3.0]


def test_slow_page_processing_skips_pacing_sleep(
    sample_config, fake_clock, scripted_backend, page_factory
) -> None:
    backend = scripted_backend(
        {page: [page_factory(page, last_page=2)] for page in range(2)}, fake_clock
    )
    for _ in _fetcher(backend, sample_config, fake_clock).iter_pages(PARAM):
        fake_clock.advance(4.0)
    assert fake_clock.sleeps == []


def test_next_request_waits_for_consumer(
    sample_config, fake_clock, scripted_backend, page_factory
) -> None:
    backend = scripted_backend(
        {page: [page_factory(page, last_page=2)] for page in range(2)}, fake_clock
    )
    pages = _fetcher(backend, sample_config, fake_clock).iter_pages(PARAM)
    next(pages)
    assert backend.pages_requested == [0]
    next(pages)
    assert backend.pages_requested == [0, 1]


def test_unclassified_failure_propagates(
    sample_config, fake_clock, scripted_backend, page_factory
) -> None:
    backend = scripted_backend(
        {0: [page_factory(0, last_page=3)], 1: [SearchAPIError("boom", 500)]}, fake_clock
    )
    with pytest.raises(SearchAPIError):
        list(_fetcher(backend, sample_config, fake_clock).iter_pages(PARAM))
    assert backend.pages_requested == [0, 1]
