from pathlib import Path

"""Global constants and configuration path definitions for git-record-sync.

This module defines the configuration location,
application identifiers, and the git conventions (refspecs, commit messages, file
naming) shared by the synchronization engine.
"""

# --- Identity ---
APP_NAME = "git-record-sync"
"""str: The human-readable application name, also used as the logger name."""


# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/git-record-sync"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

# --- Environment overrides ---
ENV_REPO_URL = "GITHUB_URL"
ENV_BRANCH = "GITHUB_BRANCH"
ENV_TOKEN = "GITHUB_TOKEN"
ENV_EMAIL = "GITHUB_EMAIL"
ENV_USERNAME = "GITHUB_USERNAME"
ENV_TIMEOUT = "SYNC_TIMEOUT"

# --- Git / Logic Constants ---
DEFAULT_REMOTE = "origin"
"""str: The remote name a fresh clone assigns to its source."""

DEFAULT_BRANCH = "main"

DEFAULT_NETWORK_TIMEOUT = 120
"""int: Seconds allowed for a single clone, fetch or push."""

FETCH_REFSPECS = ["refs/*:refs/*", "HEAD"]
"""
list[str]: Refspecs fetched after cloning so that every remote branch is resolvable
locally, not only the default one. `HEAD` has no destination and lands in FETCH_HEAD.
"""

RECORD_SUFFIX = ".json"
"""str: File extension of the per-record artifact."""

UPSERT_MESSAGE = "Create / Update recordID: {record_id}"
DELETE_MESSAGE = "Remove recordID: {record_id}"
