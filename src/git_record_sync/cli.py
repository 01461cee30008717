import argparse
import json
import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import Config, parse_time
from .constants import APP_NAME, CONFIG_FILE
from .engine import SyncEngine
from .errors import ConfigError, SyncError
from .models import CommitResult, Delete, Operation, Record, Upsert
from .trigger import decode_event

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool, config: Config) -> None:
    """Configures the logging subsystem.

    Args:
        verbose (bool): If True, DEBUG records are emitted.
        config (Config): Supplies the optional log file and its rotation size.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.handlers.clear()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if config.logging.file:
        log_path = Path(config.logging.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=config.limits.max_log_size,
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def _load_event(source: str) -> dict:
    """Reads an event payload from a file path, or stdin when `source` is '-'."""
    if source == "-":
        return json.load(sys.stdin)
    with open(source, encoding="utf-8") as f:
        return json.load(f)


def run_operation(
    config: Config, operation: Operation, deadline: float | None = None
) -> CommitResult:
    """Runs one operation with console feedback.

    Args:
        config (Config): The effective configuration.
        operation (Operation): The change to mirror.
        deadline (float | None, optional): Absolute monotonic deadline.

    Returns:
        CommitResult: The outcome of the run.
    """
    engine = SyncEngine(config)
    branch = config.repository.branch
    with console.status(
        f"[bold blue]Syncing {operation.filename} to {branch}...[/bold blue]",
        spinner="dots",
    ):
        result = engine.run(operation, deadline=deadline)

    if result.committed:
        console.print(
            f"[bold green]SUCCESS:[/bold green] {operation.commit_message} "
            f"([cyan]{(result.commit or '')[:8]}[/cyan]) pushed to {branch}."
        )
    else:
        console.print(
            f"[blue]INFO:[/blue] {operation.filename} unchanged. Nothing to commit."
        )
    return result


def show_config(config: Config) -> None:
    """Displays the effective configuration with the token masked."""
    table = Table(title="Effective Configuration", show_lines=False)
    table.add_column("Key", style="green")
    table.add_column("Value", style="yellow")

    table.add_row("repository.url", config.repository.url or "[dim]unset[/dim]")
    table.add_row("repository.branch", config.repository.branch)
    table.add_row("repository.remote_name", config.repository.remote_name)
    table.add_row("auth.username", config.username or "[dim]unset[/dim]")
    table.add_row("auth.token", "***" if config.auth.token else "[dim]unset[/dim]")
    table.add_row("committer.email", config.committer.email or "[dim]unset[/dim]")
    table.add_row("network.timeout", f"{config.network.timeout}s")
    table.add_row("publish.serialize", str(config.publish.serialize).lower())
    table.add_row("limits.max_log_size", str(config.limits.max_log_size))
    table.add_row("logging.file", config.logging.file or "[dim]off[/dim]")
    console.print(table)


def show_config_reference() -> None:
    """Displays a formatted table of all available configuration options."""
    table = Table(title="git-record-sync Configuration Schema", show_lines=True)
    table.add_column("Section", style="cyan", justify="right")
    table.add_column("Key", style="green")
    table.add_column("Type", style="dim")
    table.add_column("Default", style="yellow")
    table.add_column("Description")

    table.add_row(
        "repository", "url", "str", '""', "Remote repository URL. Env: GITHUB_URL."
    )
    table.add_row(
        "", "branch", "str", '"main"', "Branch receiving commits. Env: GITHUB_BRANCH."
    )
    table.add_row("", "remote_name", "str", '"origin"', "Remote name used for push.")
    table.add_row(
        "auth",
        "username",
        "str",
        "committer.email",
        "Basic-auth user name. Env: GITHUB_USERNAME.",
    )
    table.add_row("", "token", "str", '""', "Access token. Env: GITHUB_TOKEN.")
    table.add_row(
        "committer",
        "email",
        "str",
        '""',
        "Author name and email of every commit. Env: GITHUB_EMAIL.",
    )
    table.add_row(
        "network",
        "timeout",
        "int | str",
        '"2m"',
        "Limit for each clone, fetch or push (e.g., '90s', '2m'). Env: SYNC_TIMEOUT.",
    )
    table.add_row(
        "publish",
        "serialize",
        "bool",
        "false",
        "Serialize runs per branch in-process instead of last-write-wins.",
    )
    table.add_row(
        "limits",
        "max_log_size",
        "int | str",
        '"5mb"',
        "Max size for log files before rotation (e.g., '5mb', '1gb').",
    )
    table.add_row("logging", "file", "str", '""', "Rotating log file path.")

    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Mirror record changes into a git repository as JSON files.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Config file (default: {CONFIG_FILE})",
    )
    parser.add_argument("--branch", help="Override the target branch")
    parser.add_argument(
        "--timeout", help="Override the per-call network timeout (e.g. '90s')"
    )
    parser.add_argument(
        "--deadline",
        help="Overall time limit for the run (e.g. '5m')",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    upsert_parser = subparsers.add_parser(
        "upsert", help="Create or update a record file"
    )
    upsert_parser.add_argument("id", help="Record identifier")
    upsert_parser.add_argument("--first-name", default="", help="First name")
    upsert_parser.add_argument("--last-name", default="", help="Last name")
    upsert_parser.add_argument("--birthday", default="", help="Birthday")

    delete_parser = subparsers.add_parser("delete", help="Remove a record file")
    delete_parser.add_argument("id", help="Record identifier")

    event_parser = subparsers.add_parser(
        "event", help="Apply a document change event payload"
    )
    event_parser.add_argument("payload", help="Path to the event JSON ('-' for stdin)")
    event_parser.add_argument(
        "--resource", required=True, help="Resource path of the changed document"
    )

    config_parser = subparsers.add_parser(
        "config", help="Show the effective configuration"
    )
    config_parser.add_argument(
        "--list",
        "-l",
        action="store_true",
        help="List all available configuration options and their descriptions",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the git-record-sync CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = Config.load(args.config)
    if args.branch:
        config.repository.branch = args.branch

    try:
        if args.timeout:
            config.network.timeout = parse_time(args.timeout)
        deadline = (
            time.monotonic() + parse_time(args.deadline) if args.deadline else None
        )
    except ValueError as e:
        err_console.print(f"[bold red]ERROR:[/bold red] {escape(str(e))}")
        sys.exit(2)

    setup_logging(args.verbose, config)

    if args.command == "config":
        if args.list:
            show_config_reference()
        else:
            show_config(config)
        return

    try:
        operation: Operation
        if args.command == "upsert":
            operation = Upsert(
                Record(
                    id=args.id,
                    first_name=args.first_name,
                    last_name=args.last_name,
                    birthday=args.birthday,
                )
            )
        elif args.command == "delete":
            operation = Delete(args.id)
        else:
            operation = decode_event(_load_event(args.payload), args.resource)

        run_operation(config, operation, deadline=deadline)

    except ConfigError as e:
        err_console.print(f"[bold red]CONFIG ERROR:[/bold red] {escape(str(e))}")
        sys.exit(1)
    except SyncError as e:
        err_console.print(f"[bold red]ERROR:[/bold red] {escape(str(e))}")
        sys.exit(1)
    except (ValueError, OSError) as e:
        err_console.print(f"[bold red]ERROR:[/bold red] {escape(str(e))}")
        sys.exit(1)


if __name__ == "__main__":
    main()
