import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from .constants import APP_NAME
from .errors import CommitError, PushError, StatusError
from .git_wrapper import GitCommandError
from .models import CommitResult, Operation
from .session import RepositorySession, SessionState

logger = logging.getLogger(APP_NAME)


def branch_refspec(branch: str) -> str:
    """Builds the forced push refspec for a branch."""
    return f"+refs/heads/{branch}:refs/heads/{branch}"


class CommitPublisher:
    """Commits the staged change and force-pushes the branch.

    The push is forced: the last run to push wins the branch, and a concurrent run
    that cloned the same tip can have its commit evicted. Use `BranchLocks` to
    serialize runs within one process when that matters.

    Attributes:
        committer_email (str): Used as author name, author email and committer.
    """

    def __init__(self, committer_email: str):
        self.committer_email = committer_email

    def publish(
        self, session: RepositorySession, operation: Operation
    ) -> CommitResult:
        """Commits and pushes if the working tree differs from the branch tip.

        Args:
            session (RepositorySession): The session holding the staged change.
            operation (Operation): The applied operation (source of the message).

        Returns:
            CommitResult: `committed=False, pushed=False` when nothing changed.

        Raises:
            StatusError: If the working tree status cannot be read.
            CommitError: If the commit cannot be created.
            PushError: If the remote rejects or the push times out.
        """
        repo = session.repo

        try:
            changes = repo.status_porcelain()
        except GitCommandError as e:
            raise StatusError(str(e)) from e

        if not changes:
            session.transition(SessionState.CLEAN)
            return CommitResult(committed=False, pushed=False)

        try:
            sha = repo.commit(
                operation.commit_message,
                author_name=self.committer_email,
                author_email=self.committer_email,
            )
        except GitCommandError as e:
            raise CommitError(str(e)) from e
        session.transition(SessionState.COMMITTED)

        refspec = branch_refspec(session.branch)
        try:
            repo.push(
                session.remote_name,
                refspec,
                env=session.auth.git_env(),
                timeout=session.network_timeout(PushError),
            )
        except GitCommandError as e:
            raise PushError(session.auth.redact(str(e))) from e
        session.transition(SessionState.PUSHED)

        logger.debug(f"PUSHED {sha[:8]} to {session.remote_name} ({refspec})")
        return CommitResult(committed=True, pushed=True, commit=sha)


class BranchLocks:
    """Single-flight registry of in-process locks keyed by `(remote_url, branch)`.

    Holding the lock for a whole run makes concurrent runs against the same branch
    clone each other's results instead of racing the forced push. It does not
    coordinate separate processes.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, str], threading.Lock] = {}

    def get(self, remote_url: str, branch: str) -> threading.Lock:
        key = (remote_url, branch)
        with self._guard:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    @contextmanager
    def hold(self, remote_url: str, branch: str) -> Iterator[None]:
        lock = self.get(remote_url, branch)
        with lock:
            yield
