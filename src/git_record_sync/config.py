import logging
import os
import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import (
    APP_NAME,
    CONFIG_FILE,
    DEFAULT_BRANCH,
    DEFAULT_NETWORK_TIMEOUT,
    DEFAULT_REMOTE,
    ENV_BRANCH,
    ENV_EMAIL,
    ENV_REPO_URL,
    ENV_TIMEOUT,
    ENV_TOKEN,
    ENV_USERNAME,
)
from .errors import ConfigError

logger = logging.getLogger(APP_NAME)


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '100MB') to bytes."""
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_time(value: int | str) -> int:
    """Converts human-readable time strings (e.g., '2m', '90s') to seconds."""
    if isinstance(value, int):
        return value
    if str(value).strip().isdigit():
        return int(str(value).strip())
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return int(num * multiplier[unit])


@dataclass
class RepositoryConfig:
    """Target repository settings.

    Attributes:
        url (str): The remote repository URL (smart-HTTP(S) or a local path).
        branch (str): The branch record files are committed to.
        remote_name (str): The name the clone gives its source remote.
    """

    url: str = ""
    branch: str = DEFAULT_BRANCH
    remote_name: str = DEFAULT_REMOTE


@dataclass
class AuthConfig:
    """Basic-auth credentials for the remote.

    Attributes:
        username (str): User name; falls back to the committer email when empty.
        token (str): Password or access token.
    """

    username: str = ""
    token: str = field(default="", repr=False)


@dataclass
class CommitterConfig:
    """Commit identity.

    Attributes:
        email (str): Used as both author name and author email.
    """

    email: str = ""


@dataclass
class NetworkConfig:
    """Network settings.

    Attributes:
        timeout (int): Seconds allowed for each clone, fetch or push.
    """

    timeout: int = DEFAULT_NETWORK_TIMEOUT


@dataclass
class PublishConfig:
    """Publishing behavior.

    Attributes:
        serialize (bool): Serialize runs per (url, branch) within this process
                          instead of relying on last-write-wins.
    """

    serialize: bool = False


@dataclass
class LimitsConfig:
    """Resource limitation settings.

    Attributes:
        max_log_size (int): Max bytes for log files before rotation.
    """

    max_log_size: int = 5 * 1024 * 1024


@dataclass
class LoggingConfig:
    """Logging destinations.

    Attributes:
        file (str): Path of a rotating log file; empty disables file logging.
    """

    file: str = ""


@dataclass
class Config:
    """Global configuration aggregator.

    Built once by the caller and passed explicitly to the engine; nothing inside
    the synchronization core reads the environment.

    Attributes:
        repository (RepositoryConfig): Target repository.
        auth (AuthConfig): Credentials.
        committer (CommitterConfig): Commit identity.
        network (NetworkConfig): Network timeouts.
        publish (PublishConfig): Publishing behavior.
        limits (LimitsConfig): Resource limits.
        logging (LoggingConfig): Logging destinations.
    """

    repository: RepositoryConfig = field(default_factory=RepositoryConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    committer: CommitterConfig = field(default_factory=CommitterConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(
        cls, path: Path | None = None, env: Mapping[str, str] | None = None
    ) -> "Config":
        """Loads configuration from defaults, a TOML file, and the environment.

        Args:
            path (Path | None): The TOML file to read. Defaults to the global file.
            env (Mapping[str, str] | None): Environment overrides. Defaults to
                                            `os.environ`.

        Returns:
            Config: The fully merged configuration object.
        """
        instance = cls()

        config_path = path or CONFIG_FILE
        if config_path.exists():
            instance._merge_from_file(config_path)
        elif path is not None:
            logger.warning(f"Config file not found: {path}")

        instance._merge_from_env(os.environ if env is None else env)
        return instance

    def _merge_from_file(self, path: Path) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
            return
        except OSError as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            return

        self._merge(data)

    def _merge(self, data: dict) -> None:
        sections = self.__dataclass_fields__.keys()

        unknown = set(data.keys()) - set(sections)
        if unknown:
            logger.warning(
                f"Unknown config sections: {', '.join(sorted(unknown))}. Ignoring."
            )

        for name in sections:
            if isinstance(data.get(name), dict):
                current = getattr(self, name)
                setattr(self, name, self._update_dataclass(name, current, data[name]))

    def _merge_from_env(self, env: Mapping[str, str]) -> None:
        """Applies GITHUB_* and SYNC_TIMEOUT environment overrides."""
        overrides: dict[str, dict[str, Any]] = {}
        mapping = {
            ENV_REPO_URL: ("repository", "url"),
            ENV_BRANCH: ("repository", "branch"),
            ENV_TOKEN: ("auth", "token"),
            ENV_USERNAME: ("auth", "username"),
            ENV_EMAIL: ("committer", "email"),
            ENV_TIMEOUT: ("network", "timeout"),
        }
        for var, (section, key) in mapping.items():
            if env.get(var):
                overrides.setdefault(section, {})[key] = env[var]
        if overrides:
            self._merge(overrides)

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: {', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                if k == "max_log_size":
                    filtered_updates[k] = parse_size(v)
                elif k == "timeout":
                    filtered_updates[k] = parse_time(v)
                elif k == "serialize":
                    filtered_updates[k] = _parse_bool(v)
                else:
                    filtered_updates[k] = str(v)
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)

    @property
    def username(self) -> str:
        """The basic-auth user name, defaulting to the committer email."""
        return self.auth.username or self.committer.email

    def validate(self) -> None:
        """Checks that every value the engine needs is present.

        Raises:
            ConfigError: Listing each missing setting.
        """
        missing = []
        if not self.repository.url:
            missing.append(f"repository.url ({ENV_REPO_URL})")
        if not self.repository.branch:
            missing.append(f"repository.branch ({ENV_BRANCH})")
        if not self.committer.email:
            missing.append(f"committer.email ({ENV_EMAIL})")
        if missing:
            raise ConfigError(f"Missing configuration: {', '.join(missing)}")
        if self.network.timeout <= 0:
            raise ConfigError("network.timeout must be positive")


def _parse_bool(value: bool | str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean '{value}'")
