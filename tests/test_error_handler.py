"""Tests for the CLI error handler decorator."""

import typer
from typer.testing import CliRunner

from fsd_migrate.error_handler import handle_errors
from fsd_migrate.errors import (
    BackupNotFoundError,
    OperationCancelledError,
    PhaseError,
)

runner = CliRunner()


def make_app(exc: BaseException) -> typer.Typer:
    app = typer.Typer()

    @app.command()
    @handle_errors
    def boom() -> None:
        raise exc

    return app


class TestHandleErrors:
    def test_success_passes_through(self):
        app = typer.Typer()

        @app.command()
        @handle_errors
        def ok() -> None:
            typer.echo("fine")

        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "fine" in result.output

    def test_fsd_error_exits_one_with_hint(self):
        result = runner.invoke(make_app(BackupNotFoundError("backup-1")), [])
        assert result.exit_code == 1
        assert "Backup not found: backup-1" in result.output
        assert "fsd-migrate backup list" in result.output

    def test_phase_error_hint(self):
        result = runner.invoke(make_app(PhaseError("configuration", "bad")), [])
        assert result.exit_code == 1
        assert "backup restore" in result.output

    def test_cancelled(self):
        result = runner.invoke(make_app(OperationCancelledError("Restore cancelled")), [])
        assert result.exit_code == 1
        assert "Restore cancelled" in result.output
        assert "Error:" not in result.output

    def test_value_error(self):
        result = runner.invoke(make_app(ValueError("Unknown report format 'xml'")), [])
        assert result.exit_code == 1
        assert "Unknown report format" in result.output

    def test_unexpected_error(self):
        result = runner.invoke(make_app(RuntimeError("kaboom")), [])
        assert result.exit_code == 1
        assert "Unexpected error" in result.output
        assert "FSD_DEBUG=1" in result.output

    def test_debug_shows_context_and_traceback(self, monkeypatch):
        monkeypatch.setenv("FSD_DEBUG", "1")
        result = runner.invoke(make_app(PhaseError("dependencies", "npm exploded", project_type="vue-basic")), [])
        assert result.exit_code == 1
        assert "phase:" in result.output
        assert "Traceback" in result.output

    def test_keyboard_interrupt(self):
        result = runner.invoke(make_app(KeyboardInterrupt()), [])
        assert result.exit_code == 130
