from __future__ import annotations

import structlog
from typer.testing import CliRunner

from filesweep.app import AppState, app
from filesweep.infra import SQLiteManager
from filesweep.orchestrator import DedupStoreFactory, IngestSummary


class StubOrchestrator:
    def __init__(self, summary: IngestSummary | None = None, error: Exception | None = None) -> None:
        self.summary = summary or IngestSummary()
        self.error = error
        self.calls: list[int] = []
        self.closed = False

    def run(self, start_page: int = 0) -> IngestSummary:
        self.calls.append(start_page)
        if self.error is not None:
            raise self.error
        return self.summary

    def close(self) -> None:
        self.closed = True


def make_state(repository) -> AppState:
    return AppState(
        repository=repository,
        storage=SQLiteManager(),
        logger=structlog.get_logger("filesweep"),
    )


def _patch(monkeypatch, repository, orchestrator=None) -> list[tuple[str, bool]]:
    built: list[tuple[str, bool]] = []
    state = make_state(repository)
    monkeypatch.setattr("filesweep.app.build_state", lambda verbose: state)
    if orchestrator is not None:

        def fake_build(_state, filename, progress_enabled):
            built.append((filename, progress_enabled))
            return orchestrator

        monkeypatch.setattr("filesweep.app.build_orchestrator", fake_build)
    return built


def test_cli_run_reports_summary(monkeypatch, temp_config_repository) -> None:
    stub = StubOrchestrator(IngestSummary(parameterizations=87, pages=90, items=9000, inserted=42, duplicates=8958))
    built = _patch(monkeypatch, temp_config_repository, stub)

    result = CliRunner().invoke(app, ["run", "3", "--quiet"])

    assert result.exit_code == 0, result.stdout
    assert stub.calls == [3]
    assert stub.closed
    assert built == [("package.json", False)]
    assert "sweep results" in result.stdout
    assert "42" in result.stdout


def test_cli_run_uses_filename_option(monkeypatch, temp_config_repository) -> None:
    stub = StubOrchestrator()
    built = _patch(monkeypatch, temp_config_repository, stub)
    result = CliRunner().invoke(app, ["run", "--filename", "Cargo.toml", "--quiet"])
    assert result.exit_code == 0, result.stdout
    assert stub.calls == [0]
    assert built[0][0] == "Cargo.toml"


def test_cli_run_fatal_error_exits_non_zero(monkeypatch, temp_config_repository) -> None:
    stub = StubOrchestrator(error=RuntimeError("storage exploded"))
    _patch(monkeypatch, temp_config_repository, stub)
    result = CliRunner().invoke(app, ["run", "--quiet"])
    assert result.exit_code == 1
    assert stub.closed
    assert "storage exploded" in result.stdout


def test_cli_run_without_token(monkeypatch, temp_config_repository) -> None:
    monkeypatch.delenv("FILESWEEP_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    _patch(monkeypatch, temp_config_repository)
    result = CliRunner().invoke(app, ["run", "--quiet"])
    assert result.exit_code == 2
    assert "FILESWEEP_TOKEN" in result.stdout


def test_cli_plan_lists_parameterizations(monkeypatch, temp_config_repository) -> None:
    _patch(monkeypatch, temp_config_repository)
    result = CliRunner().invoke(app, ["plan"])
    assert result.exit_code == 0, result.stdout
    assert "87 parameterizations" in result.stdout
    assert "publishConfig" in result.stdout

    unknown = CliRunner().invoke(app, ["plan", "--filename", "Cargo.toml"])
    assert unknown.exit_code == 0, unknown.stdout
    assert "3 parameterizations" in unknown.stdout


def test_cli_stats_counts_rows(monkeypatch, temp_config_repository) -> None:
    _patch(monkeypatch, temp_config_repository)
    result = CliRunner().invoke(app, ["stats"])
    assert result.exit_code == 0, result.stdout
    assert "0 stored files" in result.stdout


def test_cli_log_tails_main_log(monkeypatch, temp_config_repository) -> None:
    _patch(monkeypatch, temp_config_repository)
    log_file = temp_config_repository.locator.logs_dir / "filesweep.log"
    log_file.write_text('{"message": "page_ingested"}\n', encoding="utf-8")
    result = CliRunner().invoke(app, ["log", "--lines", "5"])
    assert result.exit_code == 0, result.stdout
    assert "page_ingested" in result.stdout

    empty = CliRunner().invoke(app, ["log", "--errors"])
    assert empty.exit_code == 0
    assert "No log entries" in empty.stdout


def test_cli_stats_reports_content_policy_conflict(monkeypatch, temp_config_repository) -> None:
    _patch(monkeypatch, temp_config_repository)
    config = temp_config_repository.load_config()
    lenient = DedupStoreFactory.build(
        SQLiteManager(),
        config.model_copy(update={"unique_content_hash": False}),
        temp_config_repository.locator.project_root,
        "package.json",
    )
    lenient.offer("u1", "blob-1", lambda: b"same")
    lenient.offer("u2", "blob-2", lambda: b"same")
    lenient.close()

    result = CliRunner().invoke(app, ["stats"])
    assert result.exit_code == 1
    assert "duplicate content" in result.stdout
