"""Exception hierarchy for the synchronization engine.

Every step of a run has its own error kind so callers can tell a rejected push
from a missing file without parsing messages. All of them are terminal for the
run that raised them.
"""


class SyncError(RuntimeError):
    """Base class for failures of a synchronization run.

    Attributes:
        record_id (str | None): The record the run was acting on, once known.
        operation (str | None): The operation kind ('upsert' or 'delete').
    """

    def __init__(
        self,
        message: str,
        record_id: str | None = None,
        operation: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.record_id = record_id
        self.operation = operation

    def with_context(self, record_id: str, operation: str) -> "SyncError":
        """Attaches the record identifier and operation kind, returning self."""
        self.record_id = record_id
        self.operation = operation
        return self

    def __str__(self) -> str:
        kind = type(self).__name__
        if self.record_id is None:
            return f"{kind}: {self.message}"
        return f"{kind} ({self.operation} recordID: {self.record_id}): {self.message}"


class CloneError(SyncError):
    """The remote repository could not be cloned."""


class FetchError(SyncError):
    """Refs could not be fetched from the remote."""


class CheckoutError(SyncError):
    """The target branch could not be checked out."""


class FileWriteError(SyncError):
    """The record file could not be written to the working tree."""


class FileRemoveError(SyncError):
    """The record file could not be removed (including when it does not exist)."""


class StageError(SyncError):
    """The record file could not be added to the index."""


class StatusError(SyncError):
    """The working tree status could not be computed."""


class CommitError(SyncError):
    """The staged change could not be committed."""


class PushError(SyncError):
    """The branch could not be pushed to the remote."""


class ConfigError(ValueError):
    """Required configuration is missing or invalid."""
