"""Tests for the suiteshard command-line interface."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import yaml
from click.testing import CliRunner

from suiteshard import __version__
from suiteshard.cli import cli
from tests.conftest import make_files, write_declaration

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from suiteshard.config import EngineConfig


def _write_settings(root: Path, engine: EngineConfig, **extra: object) -> None:
    settings: dict[str, object] = {
        "temp_dir": str(root / "run"),
        "engine": {"interpreter": engine.interpreter, "command": engine.command},
    }
    settings.update(extra)
    (root / "run").mkdir(exist_ok=True)
    (root / ".suiteshard.yml").write_text(yaml.safe_dump(settings), encoding="utf-8")


@pytest.fixture
def workspace(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    fake_engine: Callable[..., EngineConfig],
) -> Callable[..., Path]:
    """Return a factory that lays out a project and makes it the working directory."""

    def _make(**engine_kwargs: object) -> Path:
        make_files(
            tmp_path,
            [
                "tests/A/A1Test.php",
                "tests/A/A2Test.php",
                "tests/A/A3Test.php",
                "tests/B/B1Test.php",
                "tests/B/B2Test.php",
            ],
        )
        write_declaration(tmp_path, {"unit": ["tests/A", "tests/B"], "empty": ["tests/None"]})
        _write_settings(tmp_path, fake_engine(**engine_kwargs))
        monkeypatch.chdir(tmp_path)
        return tmp_path

    return _make


def test_version() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "DECLARATION" in result.output
    assert "--dry-run" in result.output


class TestRun:
    def test_all_shards_pass(self, workspace: Callable[..., Path]) -> None:
        root = workspace()
        runner = CliRunner()

        result = runner.invoke(cli, ["unit", "phpunit.xml", "--workers", "2"])

        assert result.exit_code == 0, result.output
        stdout = result.stdout
        assert stdout.index("[shard-0] 3 files") < stdout.index("[shard-1] 2 files")
        assert "B2Test.php" in stdout
        assert list((root / "run").iterdir()) == []

    def test_failing_shard_exits_one(self, workspace: Callable[..., Path]) -> None:
        root = workspace(exit_codes={1: 5})
        runner = CliRunner()

        result = runner.invoke(cli, ["unit", "phpunit.xml", "--workers", "2"])

        assert result.exit_code == 1
        assert "[shard-0]" in result.stdout
        assert "[shard-1]" in result.stdout
        assert len(list((root / "run").glob("*-status.jsonl"))) == 1

    def test_custom_exit_code(self, workspace: Callable[..., Path]) -> None:
        workspace(exit_codes={0: 1})
        runner = CliRunner()

        result = runner.invoke(
            cli, ["unit", "phpunit.xml", "--workers", "2", "--exit-code", "7"]
        )

        assert result.exit_code == 7

    def test_explicit_output_removed_after_run(self, workspace: Callable[..., Path]) -> None:
        root = workspace()
        runner = CliRunner()

        result = runner.invoke(
            cli, ["unit", "phpunit.xml", "--workers", "2", "--output", "build/shards.xml"]
        )

        assert result.exit_code == 0, result.output
        assert not (root / "build" / "shards.xml").exists()

    def test_settings_file_supplies_worker_count(
        self, workspace: Callable[..., Path], fake_engine: Callable[..., EngineConfig]
    ) -> None:
        root = workspace()
        _write_settings(root, fake_engine(), workers=5)
        runner = CliRunner()

        result = runner.invoke(cli, ["unit", "phpunit.xml"])

        assert result.exit_code == 0, result.output
        for i in range(5):
            assert f"[shard-{i}] 1 files" in result.stdout


class TestConfigurationErrors:
    def test_bracketed_suite_name(self, workspace: Callable[..., Path]) -> None:
        workspace()
        runner = CliRunner()

        result = runner.invoke(cli, ["[/bold]", "phpunit.xml"])

        assert result.exit_code == 2
        assert "[/bold]" in result.output

    def test_unwritable_output(self, workspace: Callable[..., Path]) -> None:
        root = workspace()
        (root / "afile").write_text("not a directory")
        runner = CliRunner()

        result = runner.invoke(cli, ["unit", "phpunit.xml", "--output", "afile/out.xml"])

        assert result.exit_code == 2
        assert "Cannot write shard configuration" in result.output

    def test_exit_code_two_rejected(self, workspace: Callable[..., Path]) -> None:
        workspace(exit_codes={0: 1})
        runner = CliRunner()

        result = runner.invoke(cli, ["unit", "phpunit.xml", "--exit-code", "2"])

        assert result.exit_code == 2
        assert "reserved" in result.output

    def test_unknown_suite(self, workspace: Callable[..., Path]) -> None:
        workspace()
        runner = CliRunner()

        result = runner.invoke(cli, ["integration", "phpunit.xml"])

        assert result.exit_code == 2
        assert "integration" in result.output

    def test_no_test_files(self, workspace: Callable[..., Path]) -> None:
        workspace()
        runner = CliRunner()

        result = runner.invoke(cli, ["empty", "phpunit.xml"])

        assert result.exit_code == 2

    def test_bad_output_extension(self, workspace: Callable[..., Path]) -> None:
        root = workspace()
        runner = CliRunner()

        result = runner.invoke(cli, ["unit", "phpunit.xml", "--output", "shards.yml"])

        assert result.exit_code == 2
        assert ".xml" in result.output
        assert not (root / "shards.yml").exists()

    def test_missing_declaration(self, workspace: Callable[..., Path]) -> None:
        workspace()
        runner = CliRunner()

        result = runner.invoke(cli, ["unit", "missing.xml"])

        assert result.exit_code == 2

    def test_zero_workers_rejected(self, workspace: Callable[..., Path]) -> None:
        workspace()
        runner = CliRunner()

        result = runner.invoke(cli, ["unit", "phpunit.xml", "--workers", "0"])

        assert result.exit_code == 2

    def test_invalid_settings_file(self, workspace: Callable[..., Path]) -> None:
        root = workspace()
        (root / ".suiteshard.yml").write_text("failure_exit_code: 300\n", encoding="utf-8")
        runner = CliRunner()

        result = runner.invoke(cli, ["unit", "phpunit.xml"])

        assert result.exit_code == 2


class TestDryRun:
    def test_prints_commands_without_running(self, workspace: Callable[..., Path]) -> None:
        root = workspace(exit_codes={0: 1, 1: 1})
        runner = CliRunner()

        result = runner.invoke(cli, ["unit", "phpunit.xml", "--workers", "3", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "[shard-0]" not in result.output
        assert "--testsuite" in result.output
        assert "shard-2" in result.output
        assert list((root / "run").glob("*.xml"))

    def test_reports_kept_configuration(self, workspace: Callable[..., Path]) -> None:
        workspace()
        runner = CliRunner()

        result = runner.invoke(cli, ["unit", "phpunit.xml", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "Shard configuration kept at" in result.output
