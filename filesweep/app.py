"""Typer CLI entrypoint for filesweep."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Optional

import structlog
import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, MissingTokenError, resolve_token
from .engine import SearchClient, ThreadPoolManager, enumerate_parameterizations
from .infra import ContentPolicyError, SQLiteManager
from .logging_conf import component_logger, configure_logging, log_paths, tail_log
from .orchestrator import DedupStoreFactory, IngestSummary, Orchestrator
from .ui import ProgressReporter

app = typer.Typer(
    help="Sample the code search index and harvest deduplicated copies of a file type.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    storage: SQLiteManager
    logger: structlog.BoundLogger


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    logger = configure_logging(verbose=verbose, log_dir=repository.locator.logs_dir)
    return AppState(repository=repository, storage=SQLiteManager(), logger=logger)


def build_orchestrator(state: AppState, filename: str, progress_enabled: bool) -> Orchestrator:
    config = state.repository.load_config()
    client = SearchClient(config, resolve_token(), logger=component_logger("client"))
    try:
        store = DedupStoreFactory.build(
            state.storage,
            config,
            state.repository.locator.project_root,
            filename,
            logger=component_logger("dedup"),
        )
    except Exception:
        client.close()
        raise
    return Orchestrator(
        client=client,
        store=store,
        config=config,
        thread_pool=ThreadPoolManager(config.workers),
        logger=component_logger("orchestrator"),
        progress=ProgressReporter(enabled=progress_enabled),
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


def _render_summary(filename: str, summary: IngestSummary) -> Table:
    table = Table(title=f"{filename} sweep results", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Parameterizations", str(summary.parameterizations))
    table.add_row("Pages", str(summary.pages))
    table.add_row("Items seen", str(summary.items))
    table.add_row("Inserted", str(summary.inserted))
    table.add_row("Duplicates", str(summary.duplicates))
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("run", help="Sweep every parameterization and store new files.")
def run(
    ctx: typer.Context,
    start_page: int = typer.Argument(0, min=0, help="Page to resume the first parameterization from."),
    filename: Optional[str] = typer.Option(None, "--filename", "-f", help="Target filename."),
    quiet: bool = typer.Option(False, "--quiet", help="Disable the progress display."),
) -> None:
    state = _get_state(ctx)
    target = filename or state.repository.load_config().default_filename
    try:
        orchestrator = build_orchestrator(state, target, _progress_default_enabled() and not quiet)
    except MissingTokenError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=2)
    except ContentPolicyError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)

    try:
        summary = orchestrator.run(start_page)
    except Exception as exc:  # noqa: BLE001
        console.print(f"Sweep aborted: {type(exc).__name__}: {exc}", style="red")
        raise typer.Exit(code=1)
    finally:
        orchestrator.close()
    console.print(_render_summary(target, summary))


@app.command("plan", help="List the query parameterizations a sweep would issue.")
def plan(
    ctx: typer.Context,
    filename: Optional[str] = typer.Option(None, "--filename", "-f", help="Target filename."),
) -> None:
    state = _get_state(ctx)
    config = state.repository.load_config()
    target = filename or config.default_filename
    hint = config.language_hint_for(target)
    params = list(enumerate_parameterizations(target, config.vocabulary_for(target)))
    table = Table(title=f"{target} · {len(params)} parameterizations", box=box.SIMPLE_HEAD)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Sort", style="magenta")
    table.add_column("Order", style="yellow")
    table.add_column("Query", style="cyan", overflow="fold")
    for index, param in enumerate(params, start=1):
        table.add_row(
            str(index),
            param.sort_mode.value,
            param.order_mode.value if param.order_mode else "-",
            param.query(hint),
        )
    console.print(table)


@app.command("stats", help="Show how many files are stored for a target filename.")
def stats(
    ctx: typer.Context,
    filename: Optional[str] = typer.Option(None, "--filename", "-f", help="Target filename."),
) -> None:
    state = _get_state(ctx)
    config = state.repository.load_config()
    target = filename or config.default_filename
    try:
        store = DedupStoreFactory.build(
            state.storage, config, state.repository.locator.project_root, target
        )
    except ContentPolicyError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1)
    try:
        count = store.count()
    finally:
        store.close()
    console.print(f"{target}: {count} stored files in table {store.table} ({store.db_path})")


@app.command("log", help="Print the tail of the application log.")
def log(
    ctx: typer.Context,
    lines: int = typer.Option(50, "--lines", "-n", min=1, help="Number of lines to show."),
    errors: bool = typer.Option(False, "--errors", help="Show the error log instead."),
) -> None:
    state = _get_state(ctx)
    paths = log_paths(state.repository.locator.logs_dir)
    path = paths["error"] if errors else paths["main"]
    content = tail_log(path, lines)
    if not content:
        console.print(f"No log entries in {path}", style="yellow")
        return
    for line in content:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


__all__ = ["AppState", "app", "build_orchestrator", "build_state"]
