import logging

from .constants import APP_NAME
from .errors import FileRemoveError, FileWriteError, StageError
from .git_wrapper import GitCommandError
from .models import Delete, Operation, Upsert
from .session import RepositorySession, SessionState

logger = logging.getLogger(APP_NAME)


class ChangeApplier:
    """Mutates a session's working tree for one operation and stages the result.

    Only the file named after the target record is ever written or removed.
    """

    def apply(self, session: RepositorySession, operation: Operation) -> None:
        """Writes or removes `<id>.json` and stages the change.

        Args:
            session (RepositorySession): The open session to mutate.
            operation (Operation): The Upsert or Delete to apply.

        Raises:
            FileWriteError: If the record file cannot be written or encoded.
            FileRemoveError: If the record file is absent or cannot be removed.
            StageError: If the written file cannot be staged.
        """
        if isinstance(operation, Upsert):
            self._write(session, operation)
        elif isinstance(operation, Delete):
            self._remove(session, operation)
        else:
            raise TypeError(f"Unsupported operation: {operation!r}")
        session.transition(SessionState.APPLIED)

    def _write(self, session: RepositorySession, operation: Upsert) -> None:
        target = session.workdir / operation.filename
        body = operation.record.to_json()
        try:
            with open(target, "w", encoding="utf-8", newline="") as f:
                f.write(body)
        except (OSError, UnicodeError) as e:
            raise FileWriteError(f"{operation.filename}: {e}") from e

        try:
            session.repo.add(operation.filename)
        except GitCommandError as e:
            raise StageError(f"{operation.filename}: {e}") from e
        logger.debug(f"STAGED {operation.filename} ({len(body)} bytes)")

    def _remove(self, session: RepositorySession, operation: Delete) -> None:
        target = session.workdir / operation.filename
        if not target.is_file():
            raise FileRemoveError(f"{operation.filename}: file does not exist")

        try:
            session.repo.remove(operation.filename)
        except GitCommandError as e:
            raise FileRemoveError(f"{operation.filename}: {e}") from e
        logger.debug(f"STAGED removal of {operation.filename}")
