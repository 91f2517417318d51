"""Pytest fixtures shared across the filesweep test-suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable, Sequence

import pytest

from filesweep.config import ConfigLocator, ConfigRepository, SweepConfig
from filesweep.engine import QueryParameterization, RateLimit, SearchItem, SearchPageResult


class FakeClock:
    """Deterministic clock whose ``sleep`` advances time instead of blocking."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedBackend:
    """Search backend replaying a script of page results or errors per page."""

    def __init__(self, script: dict[int, Sequence[Any]], clock: FakeClock | None = None) -> None:
        self._script = {page: list(outcomes) for page, outcomes in script.items()}
        self.clock = clock
        self.calls: list[tuple[str, int, float | None]] = []

    def search(self, param: QueryParameterization, page: int) -> SearchPageResult:
        self.calls.append((param.describe(), page, self.clock.time() if self.clock else None))
        outcomes = self._script[page]
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def pages_requested(self) -> list[int]:
        return [page for _, page, _ in self.calls]


def make_page(
    page: int,
    items: Iterable[tuple[str, str]] = (),
    last_page: int = 0,
    remaining: int = 30,
    reset_at: float = 0.0,
) -> SearchPageResult:
    return SearchPageResult(
        page=page,
        items=[SearchItem(url=url, blob_identity=blob) for url, blob in items],
        rate_limit=RateLimit(reset_at=reset_at, remaining=remaining),
        last_page_index=last_page,
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def page_factory() -> Callable[..., SearchPageResult]:
    return make_page


@pytest.fixture
def scripted_backend() -> Callable[..., ScriptedBackend]:
    return ScriptedBackend


@pytest.fixture
def sample_config(tmp_path: Path) -> SweepConfig:
    return SweepConfig(
        db_path=tmp_path / "sweep.db",
        workers=4,
        request_spacing=3.0,
        reset_buffer=2.0,
    )


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("FILESWEEP_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
