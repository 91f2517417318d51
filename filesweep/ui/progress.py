"""Terminal progress display built on Rich."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)


@dataclass
class ProgressState:
    total: int
    done: int = 0
    pages: int = 0
    inserted: int = 0
    duplicates: int = 0
    current: str | None = None


class ProgressReporter:
    """Track sweep counters and render them on one live progress row.

    Counters are always kept; rendering only happens on an interactive
    terminal when enabled.
    """

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self._lock = Lock()
        self.state: ProgressState | None = None

    def start(self, total: int) -> None:
        self.state = ProgressState(total=total)
        if not self.enabled:
            return
        if self._console is None:
            self._console = Console()
        if not self._console.is_terminal:
            self.enabled = False
            return
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            TaskProgressColumn(show_speed=False),
            TimeElapsedColumn(),
            TextColumn("[blue]p{task.fields[pages]:>4}", justify="right"),
            TextColumn("[green]+{task.fields[inserted]:>5}", justify="right"),
            TextColumn("[yellow]={task.fields[duplicates]:>5}", justify="right"),
            TextColumn("[dim]{task.fields[current]}", justify="left"),
            refresh_per_second=8,
            expand=True,
            transient=True,
            console=self._console,
        )
        try:
            self._progress.__enter__()
        except LiveError:
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task(
            "sweep", total=total, pages=0, inserted=0, duplicates=0, current="starting…"
        )

    def page_done(self, label: str, page: int, last_page: int, inserted: int, duplicates: int) -> None:
        with self._lock:
            if self.state is None:
                return
            self.state.pages += 1
            self.state.inserted += inserted
            self.state.duplicates += duplicates
            self.state.current = f"{label} p{page}/{last_page}"
            self._refresh()

    def parameterization_done(self) -> None:
        with self._lock:
            if self.state is None:
                return
            self.state.done += 1
            if self._progress is not None and self._task_id is not None:
                self._progress.advance(self._task_id)

    def close(self) -> None:
        if self._progress is not None:
            self._progress.__exit__(None, None, None)
            self._progress = None

    def _refresh(self) -> None:
        if self._progress is None or self._task_id is None or self.state is None:
            return
        self._progress.update(
            self._task_id,
            pages=self.state.pages,
            inserted=self.state.inserted,
            duplicates=self.state.duplicates,
            current=self.state.current or "",
        )


__all__ = ["ProgressReporter", "ProgressState"]
