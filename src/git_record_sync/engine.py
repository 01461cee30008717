import contextlib
import logging

from .applier import ChangeApplier
from .auth import AuthProvider
from .config import Config
from .constants import APP_NAME
from .errors import SyncError
from .models import CommitResult, Operation
from .publisher import BranchLocks, CommitPublisher
from .session import RepositorySession, SessionState

logger = logging.getLogger(APP_NAME)

_DEFAULT_LOCKS = BranchLocks()


class SyncEngine:
    """Mirrors one record change into the configured branch.

    Each `run` is independent: it opens a fresh session, applies the operation,
    publishes, and discards the session, whatever the outcome.

    Attributes:
        config (Config): The validated configuration.
        auth (AuthProvider): Credentials derived from `config`.
    """

    def __init__(self, config: Config, *, locks: BranchLocks | None = None):
        """Initializes the engine.

        Args:
            config (Config): Explicit configuration; validated here.
            locks (BranchLocks | None, optional): Lock registry used when
                `config.publish.serialize` is set. Defaults to a process-wide one.

        Raises:
            ConfigError: If required configuration is missing.
        """
        config.validate()
        self.config = config
        self.auth = AuthProvider(username=config.username, token=config.auth.token)
        self.applier = ChangeApplier()
        self.publisher = CommitPublisher(config.committer.email)
        self._locks = locks or _DEFAULT_LOCKS

    def run(
        self, operation: Operation, *, deadline: float | None = None
    ) -> CommitResult:
        """Applies `operation` to the remote branch.

        Args:
            operation (Operation): The Upsert or Delete to mirror.
            deadline (float | None, optional): Absolute `time.monotonic()` deadline
                                               bounding every network call.

        Returns:
            CommitResult: Whether a commit was created and pushed.

        Raises:
            SyncError: The failing step's error kind, annotated with the record id
                       and operation.
        """
        repo_conf = self.config.repository

        if self.config.publish.serialize:
            guard = self._locks.hold(repo_conf.url, repo_conf.branch)
        else:
            guard = contextlib.nullcontext()

        try:
            with guard:
                result = self._run_once(operation, deadline)
        except SyncError as e:
            e.with_context(operation.record_id, operation.kind)
            logger.error(f"SYNC ERROR {operation.record_id}: {e}")
            raise

        if result.committed:
            logger.info(
                f"COMMITTED {operation.record_id}: '{operation.commit_message}' "
                f"({result.commit[:8] if result.commit else '?'}) "
                f"pushed to {repo_conf.branch}"
            )
        else:
            logger.info(f"UNCHANGED {operation.record_id}: nothing to commit")
        return result

    def _run_once(
        self, operation: Operation, deadline: float | None
    ) -> CommitResult:
        repo_conf = self.config.repository
        session = RepositorySession.open(
            repo_conf.url,
            self.auth,
            repo_conf.branch,
            remote_name=repo_conf.remote_name,
            timeout=self.config.network.timeout,
            deadline=deadline,
        )
        with session:
            try:
                self.applier.apply(session, operation)
                return self.publisher.publish(session, operation)
            except SyncError:
                session.transition(SessionState.FAILED)
                raise
