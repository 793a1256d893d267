"""Unit tests for the migrate and rollback CLI commands with the services mocked."""

from unittest.mock import AsyncMock, patch

import pytest
import typer
from typer.testing import CliRunner

from fieldops.cli.app import app
from fieldops.cli.migrate_cmd import resolve_dry_run

runner = CliRunner()


@pytest.fixture(autouse=True)
def _database_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")


class TestResolveDryRun:
    """Tests for combining mode flags with the DRY_RUN setting."""

    @pytest.mark.parametrize(
        ("dry_run", "live", "default", "expected"),
        [
            (False, False, True, True),
            (False, False, False, False),
            (True, False, False, True),
            (False, True, True, False),
        ],
    )
    def test_resolution(self, dry_run: bool, live: bool, default: bool, expected: bool) -> None:
        assert resolve_dry_run(dry_run, live, default) is expected

    def test_both_flags_rejected(self) -> None:
        with pytest.raises(typer.BadParameter):
            resolve_dry_run(True, True, True)


class TestMigrateCommands:
    """Tests for CLI wiring of the migrate commands."""

    def test_missing_fields_passes_ac_keys(self) -> None:
        with patch("fieldops.cli.migrate_cmd._run_migration", new_callable=AsyncMock, return_value=0) as impl:
            result = runner.invoke(app, ["migrate", "missing-fields", "--ac", "119", "--ac", "101"])
        assert result.exit_code == 0, result.output
        impl.assert_awaited_once_with("missing-fields", False, False, [119, 101])

    def test_normalize_types_live(self) -> None:
        with patch("fieldops.cli.migrate_cmd._run_migration", new_callable=AsyncMock, return_value=0) as impl:
            result = runner.invoke(app, ["migrate", "normalize-types", "--live"])
        assert result.exit_code == 0, result.output
        impl.assert_awaited_once_with("normalize-types", False, True, None)

    def test_failed_partitions_exit_nonzero(self) -> None:
        with patch("fieldops.cli.migrate_cmd._run_migration", new_callable=AsyncMock, return_value=2):
            result = runner.invoke(app, ["migrate", "normalize-types"])
        assert result.exit_code == 1


class TestRollbackCommands:
    """Tests for CLI wiring of the rollback commands."""

    def test_restore_requires_suffix(self) -> None:
        result = runner.invoke(app, ["rollback", "restore"])
        assert result.exit_code != 0

    def test_restore_options(self) -> None:
        with patch("fieldops.cli.rollback_cmd._restore", new_callable=AsyncMock, return_value=0) as impl:
            result = runner.invoke(
                app,
                ["rollback", "restore", "--backup-suffix", "_backup_20250101", "--collection", "voters", "--dry-run"],
            )
        assert result.exit_code == 0, result.output
        impl.assert_awaited_once_with("_backup_20250101", "voters", True)

    def test_list(self) -> None:
        with patch("fieldops.cli.rollback_cmd._list_backups", new_callable=AsyncMock) as impl:
            result = runner.invoke(app, ["rollback", "list"])
        assert result.exit_code == 0, result.output
        impl.assert_awaited_once()


class TestPartitionsCommand:
    """Tests for the partitions command."""

    def test_lists_registry(self) -> None:
        result = runner.invoke(app, ["partitions"])
        assert result.exit_code == 0, result.output
        assert "21 registered ACs" in result.output
        assert "Thondamuthur" in result.output
        assert "surveyresponses_119" in result.output

    def test_kind_filter(self) -> None:
        result = runner.invoke(app, ["partitions", "--kind", "voters"])
        assert result.exit_code == 0, result.output
        assert "voters_119" in result.output
        assert "surveyresponses_119" not in result.output
