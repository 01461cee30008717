"""git-record-sync: Mirror record changes into a git repository.

This package provides the synchronization engine that turns a record upsert or
delete into a single-file commit force-pushed to a remote branch, together with
its configuration layer, change-event decoding and command-line interface.
"""

from . import (
    applier,
    auth,
    cli,
    config,
    constants,
    engine,
    errors,
    git_wrapper,
    models,
    publisher,
    session,
    trigger,
)

__all__ = [
    "applier",
    "auth",
    "cli",
    "config",
    "constants",
    "engine",
    "errors",
    "git_wrapper",
    "models",
    "publisher",
    "session",
    "trigger",
]
