"""Tests for the configuration management subsystem."""

import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from git_record_sync.config import Config, parse_size, parse_time
from git_record_sync.errors import ConfigError


def test_config_defaults() -> None:
    """Verifies that the configuration initializes with sensible defaults."""
    conf = Config()
    assert conf.repository.branch == "main"
    assert conf.repository.remote_name == "origin"
    assert conf.network.timeout == 120
    assert conf.publish.serialize is False
    assert conf.logging.file == ""


def test_config_load_file_then_environment(tmp_path: Path) -> None:
    """Verifies the cascading merge logic (Defaults -> File -> Environment).

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
    """
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        "[repository]\n"
        'url = "https://example.com/org/records.git"\n'
        'branch = "records"\n'
        "[committer]\n"
        'email = "file@example.com"\n'
        "[network]\n"
        'timeout = "90s"\n'
        "[publish]\n"
        "serialize = true\n"
    )
    env = {
        "GITHUB_BRANCH": "mirror",
        "GITHUB_TOKEN": "s3cret",
        "GITHUB_URL": "",  # Empty values do not override
    }

    conf = Config.load(config_path, env=env)

    assert conf.repository.url == "https://example.com/org/records.git"  # From file
    assert conf.repository.branch == "mirror"  # Env overrides file
    assert conf.auth.token == "s3cret"  # From env
    assert conf.network.timeout == 90
    assert conf.publish.serialize is True


def test_config_load_missing_default_file(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies that a missing global config file silently yields defaults.

    Args:
        mocker (MagicMock): Pytest fixture for mocking.
        tmp_path (Path): Pytest fixture for a temporary directory.
    """
    mocker.patch("git_record_sync.config.CONFIG_FILE", tmp_path / "nope.toml")

    conf = Config.load(env={"GITHUB_EMAIL": "env@example.com"})

    assert conf.committer.email == "env@example.com"
    assert conf.repository.url == ""


def test_username_falls_back_to_committer_email() -> None:
    """Verifies that basic auth uses the committer email unless a username is set."""
    conf = Config()
    conf.committer.email = "bot@example.com"
    assert conf.username == "bot@example.com"

    conf.auth.username = "octocat"
    assert conf.username == "octocat"


def test_validate_lists_missing_settings() -> None:
    """Verifies that validation names every missing required value."""
    conf = Config()
    conf.repository.branch = ""

    with pytest.raises(ConfigError) as exc_info:
        conf.validate()

    message = str(exc_info.value)
    assert "repository.url (GITHUB_URL)" in message
    assert "repository.branch (GITHUB_BRANCH)" in message
    assert "committer.email (GITHUB_EMAIL)" in message


def test_parse_size() -> None:
    """Verifies that human-readable sizes are correctly converted to bytes."""
    assert parse_size(100) == 100
    assert parse_size("100kb") == 102400
    assert parse_size("10 MB") == 10485760
    assert parse_size("1.5gb") == int(1.5 * 1024**3)

    with pytest.raises(ValueError, match=r"Invalid size format '100 bits'"):
        parse_size("100 bits")


def test_parse_time() -> None:
    """Verifies that human-readable times are correctly converted to seconds."""
    assert parse_time(50) == 50
    assert parse_time("45") == 45
    assert parse_time("30s") == 30
    assert parse_time("10 min") == 600
    assert parse_time("2 hrs") == 7200
    assert parse_time("1.5h") == 5400

    with pytest.raises(ValueError, match=r"Invalid time format '10 lightyears'"):
        parse_time("10 lightyears")


def test_config_invalid_keys_and_values(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that unknown keys are ignored and invalid values fallback to defaults.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
        caplog (pytest.LogCaptureFixture): Pytest fixture for capturing logs.
    """
    caplog.set_level(logging.WARNING)

    config_path = tmp_path / "config.toml"
    config_path.write_text(
        "[network]\n"
        'timeout = "fast"\n'
        'fake_setting = "ignored"\n'
        "[limits]\n"
        'max_log_size = "10 gallons"\n'
        "[daemon]\n"
        "interval = 5\n"
    )

    conf = Config.load(config_path, env={})

    # Assert fallbacks to defaults
    assert conf.network.timeout == 120
    assert conf.limits.max_log_size == 5242880

    # Assert warnings were logged
    assert "Unknown config keys in [network]: fake_setting" in caplog.text
    assert "Config error in [network].timeout: Invalid time format" in caplog.text
    assert "Config error in [limits].max_log_size: Invalid size format" in caplog.text
    assert "Unknown config sections: daemon" in caplog.text


def test_config_syntax_error_keeps_defaults(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that a malformed TOML file is reported and defaults are kept.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
        caplog (pytest.LogCaptureFixture): Pytest fixture for capturing logs.
    """
    config_path = tmp_path / "config.toml"
    config_path.write_text("[repository\nurl = ")

    conf = Config.load(config_path, env={})

    assert conf.repository.url == ""
    assert "Config syntax error" in caplog.text
