import enum
import logging
import tempfile
import time
from pathlib import Path

from .auth import AuthProvider
from .constants import APP_NAME, DEFAULT_REMOTE, FETCH_REFSPECS
from .errors import CheckoutError, CloneError, FetchError, SyncError
from .git_wrapper import GitCommandError, GitRepo

logger = logging.getLogger(APP_NAME)


class SessionState(enum.Enum):
    """Lifecycle of a single synchronization run.

    The idle and cloned phases happen inside `RepositorySession.open()` before a
    session object exists, so the first state a session can hold is CHECKED_OUT.
    A failure during those phases deletes the scratch directory and raises
    CloneError, FetchError or CheckoutError instead of producing a session.
    """

    CHECKED_OUT = "checked_out"
    APPLIED = "applied"
    CLEAN = "clean"
    COMMITTED = "committed"
    PUSHED = "pushed"
    FAILED = "failed"
    CLOSED = "closed"


def remaining_timeout(
    timeout: float | None, deadline: float | None, error: type[SyncError]
) -> float | None:
    """Computes the time allowance for the next network call.

    Args:
        timeout (float | None): The per-call timeout in seconds.
        deadline (float | None): An absolute `time.monotonic()` deadline.
        error (type[SyncError]): The error kind raised if the deadline has passed.

    Returns:
        float | None: Seconds available, or None for no limit.

    Raises:
        SyncError: An instance of `error` if the deadline has already expired.
    """
    if deadline is None:
        return timeout
    left = deadline - time.monotonic()
    if left <= 0:
        raise error("Deadline expired before the operation started")
    return left if timeout is None else min(timeout, left)


class RepositorySession:
    """A private, short-lived working copy of the remote branch.

    All storage (object database and working tree) lives in a temporary directory
    created by `open()` and deleted by `close()`. A session serves exactly one run
    and is never reused.

    Attributes:
        repo (GitRepo): The cloned working copy.
        branch (str): The checked-out branch.
        remote_name (str): The remote the clone tracks.
        auth (AuthProvider): Credentials for network operations.
        timeout (float | None): Per-call network timeout in seconds.
        deadline (float | None): Absolute monotonic deadline for the whole run.
        state (SessionState): The current lifecycle state.
    """

    def __init__(
        self,
        repo: GitRepo,
        branch: str,
        auth: AuthProvider,
        scratch: tempfile.TemporaryDirectory,
        remote_name: str = DEFAULT_REMOTE,
        timeout: float | None = None,
        deadline: float | None = None,
    ):
        self.repo = repo
        self.branch = branch
        self.auth = auth
        self.remote_name = remote_name
        self.timeout = timeout
        self.deadline = deadline
        self._scratch = scratch
        self.state = SessionState.CHECKED_OUT

    @classmethod
    def open(
        cls,
        remote_url: str,
        auth: AuthProvider,
        branch: str,
        *,
        remote_name: str = DEFAULT_REMOTE,
        timeout: float | None = None,
        deadline: float | None = None,
    ) -> "RepositorySession":
        """Clones the remote, fetches all refs and force-checks-out `branch`.

        Args:
            remote_url (str): The repository URL.
            auth (AuthProvider): Credentials for clone and fetch.
            branch (str): The branch to check out.
            remote_name (str, optional): Name of the cloned remote. Defaults to 'origin'.
            timeout (float | None, optional): Per-call network timeout in seconds.
            deadline (float | None, optional): Absolute `time.monotonic()` deadline.

        Returns:
            RepositorySession: A session positioned on the tip of `branch`.

        Raises:
            CloneError: If the repository cannot be cloned.
            FetchError: If refs cannot be fetched.
            CheckoutError: If the branch cannot be checked out.
        """
        scratch = tempfile.TemporaryDirectory(prefix=f"{APP_NAME}-")
        try:
            env = auth.git_env()
            workdir = Path(scratch.name) / "worktree"

            try:
                repo = GitRepo.clone(
                    remote_url,
                    workdir,
                    env=env,
                    timeout=remaining_timeout(timeout, deadline, CloneError),
                )
            except GitCommandError as e:
                raise CloneError(auth.redact(str(e))) from e
            logger.debug(f"CLONED {remote_url} into {workdir}")

            try:
                repo.fetch(
                    remote_name,
                    FETCH_REFSPECS,
                    env=env,
                    timeout=remaining_timeout(timeout, deadline, FetchError),
                )
            except GitCommandError as e:
                raise FetchError(auth.redact(str(e))) from e

            try:
                repo.checkout(branch, force=True)
                current = repo.current_branch()
            except GitCommandError as e:
                raise CheckoutError(f"Branch '{branch}': {e}") from e
            if current != branch:
                raise CheckoutError(
                    f"Branch '{branch}': HEAD is on '{current or 'detached'}'"
                )
            logger.debug(f"CHECKED OUT {branch} at {repo.rev_parse('HEAD')}")

        except BaseException:
            scratch.cleanup()
            raise

        return cls(
            repo,
            branch,
            auth,
            scratch,
            remote_name=remote_name,
            timeout=timeout,
            deadline=deadline,
        )

    @property
    def workdir(self) -> Path:
        return self.repo.path

    def network_timeout(self, error: type[SyncError]) -> float | None:
        """Time allowance for the next network call of this session."""
        return remaining_timeout(self.timeout, self.deadline, error)

    def transition(self, state: SessionState) -> None:
        logger.debug(f"SESSION {self.branch}: {self.state.value} -> {state.value}")
        self.state = state

    def close(self) -> None:
        """Deletes the session's scratch directory. Safe to call more than once."""
        if self.state is SessionState.CLOSED:
            return
        self._scratch.cleanup()
        self.state = SessionState.CLOSED

    def __enter__(self) -> "RepositorySession":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
