"""Tests for the Command Line Interface (CLI) module."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from git_record_sync import cli
from git_record_sync.config import Config
from git_record_sync.errors import FileRemoveError
from git_record_sync.models import CommitResult, Delete, Record, Upsert


@pytest.fixture(autouse=True)
def reset_logger() -> Iterator[None]:
    """Drops handlers installed by `main` so later tests do not log to a closed stream."""
    yield
    for handler in cli.logger.handlers:
        handler.close()
    cli.logger.handlers.clear()
    cli.logger.setLevel(logging.NOTSET)


@pytest.fixture
def loaded_config(mocker: MagicMock) -> Config:
    """Creates a complete Config and mocks Config.load to return it."""
    conf = Config()
    conf.repository.url = "https://example.com/org/records.git"
    conf.committer.email = "bot@example.com"
    conf.auth.token = "tok3n"
    mocker.patch("git_record_sync.cli.Config.load", return_value=conf)
    return conf


def test_upsert_command_runs_engine(
    mocker: MagicMock, loaded_config: Config, capsys: pytest.CaptureFixture
) -> None:
    """Verifies that `upsert` builds the record and reports the pushed commit.

    Args:
        mocker (MagicMock): Pytest fixture for mocking.
        loaded_config (Config): The mocked configuration fixture.
        capsys (pytest.CaptureFixture): Pytest fixture for capturing stdout.
    """
    mock_engine = mocker.patch("git_record_sync.cli.SyncEngine").return_value
    mock_engine.run.return_value = CommitResult(True, True, "1234567890abcdef")

    cli.main(
        [
            "upsert",
            "abc123",
            "--first-name",
            "Jane",
            "--last-name",
            "Doe",
            "--birthday",
            "1990-01-01",
        ]
    )

    expected = Upsert(
        Record(id="abc123", first_name="Jane", last_name="Doe", birthday="1990-01-01")
    )
    mock_engine.run.assert_called_once_with(expected, deadline=None)
    out = capsys.readouterr().out
    assert "SUCCESS:" in out
    assert "12345678" in out


def test_unchanged_record_reports_info(
    mocker: MagicMock, loaded_config: Config, capsys: pytest.CaptureFixture
) -> None:
    """Verifies the message for an idempotent no-op delivery."""
    mock_engine = mocker.patch("git_record_sync.cli.SyncEngine").return_value
    mock_engine.run.return_value = CommitResult(False, False)

    cli.main(["upsert", "abc123"])

    assert "abc123.json unchanged" in capsys.readouterr().out


def test_delete_command_failure_exits_nonzero(
    mocker: MagicMock, loaded_config: Config, capsys: pytest.CaptureFixture
) -> None:
    """Verifies that a SyncError prints an error and exits with status 1."""
    mock_engine = mocker.patch("git_record_sync.cli.SyncEngine").return_value
    mock_engine.run.side_effect = FileRemoveError(
        "ghost.json: file does not exist", "ghost", "delete"
    )

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["delete", "ghost"])

    assert exc_info.value.code == 1
    mock_engine.run.assert_called_once_with(Delete("ghost"), deadline=None)
    assert "FileRemoveError" in capsys.readouterr().err


def test_event_command_reads_payload(
    tmp_path: Path, mocker: MagicMock, loaded_config: Config
) -> None:
    """Verifies that `event` decodes a payload file using the resource path.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
        mocker (MagicMock): Pytest fixture for mocking.
        loaded_config (Config): The mocked configuration fixture.
    """
    payload = tmp_path / "event.json"
    payload.write_text(json.dumps({"oldValue": {}, "value": {}}))
    mock_engine = mocker.patch("git_record_sync.cli.SyncEngine").return_value
    mock_engine.run.return_value = CommitResult(True, True, "f" * 40)

    cli.main(["event", str(payload), "--resource", "people/abc123"])

    mock_engine.run.assert_called_once_with(Delete("abc123"), deadline=None)


def test_global_overrides_apply(mocker: MagicMock, loaded_config: Config) -> None:
    """Verifies --branch, --timeout and --deadline handling."""
    mock_engine_cls = mocker.patch("git_record_sync.cli.SyncEngine")
    mock_engine_cls.return_value.run.return_value = CommitResult(False, False)
    mocker.patch("git_record_sync.cli.time.monotonic", return_value=1000.0)

    cli.main(
        ["--branch", "mirror", "--timeout", "30s", "--deadline", "2m", "delete", "x"]
    )

    conf = mock_engine_cls.call_args.args[0]
    assert conf.repository.branch == "mirror"
    assert conf.network.timeout == 30
    mock_engine_cls.return_value.run.assert_called_once_with(
        Delete("x"), deadline=1120.0
    )


def test_missing_config_exits_with_config_error(
    mocker: MagicMock, capsys: pytest.CaptureFixture
) -> None:
    """Verifies that an incomplete configuration is reported, not raised."""
    mocker.patch("git_record_sync.cli.Config.load", return_value=Config())

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["delete", "abc123"])

    assert exc_info.value.code == 1
    assert "CONFIG ERROR" in capsys.readouterr().err


def test_invalid_record_id_exits(
    loaded_config: Config, capsys: pytest.CaptureFixture
) -> None:
    """Verifies that path-like ids are rejected before any git work."""
    with pytest.raises(SystemExit):
        cli.main(["delete", "../etc"])

    assert "Invalid record id" in capsys.readouterr().err


def test_config_command_masks_token(
    loaded_config: Config, capsys: pytest.CaptureFixture
) -> None:
    """Verifies that the effective configuration never prints the token."""
    cli.main(["config"])

    out = capsys.readouterr().out
    assert "https://example.com/org/records.git" in out
    assert "tok3n" not in out
    assert "***" in out


def test_config_list_shows_reference(
    loaded_config: Config, capsys: pytest.CaptureFixture
) -> None:
    """Verifies that `config --list` renders the configuration schema."""
    cli.main(["config", "--list"])

    out = capsys.readouterr().out
    assert "serialize" in out
    assert "GITHUB_TOKEN" in out


def test_setup_logging_adds_rotating_file(tmp_path: Path) -> None:
    """Verifies that a configured log file gets a rotating handler.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
    """
    from logging.handlers import RotatingFileHandler

    conf = Config()
    conf.logging.file = str(tmp_path / "logs" / "sync.log")
    conf.limits.max_log_size = 1024

    cli.setup_logging(verbose=True, config=conf)

    handlers = cli.logger.handlers
    file_handlers = [h for h in handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].maxBytes == 1024
    assert cli.logger.level == logging.DEBUG

    for h in file_handlers:
        h.close()
    cli.logger.handlers.clear()
