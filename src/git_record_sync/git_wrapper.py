import logging
import os
import subprocess
from pathlib import Path

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


class GitCommandError(RuntimeError):
    """A git command exited with a non-zero status.

    Attributes:
        args_list (list[str]): The git arguments that failed.
        stderr (str): The captured standard error of the command.
    """

    def __init__(self, message: str, args_list: list[str], stderr: str = ""):
        super().__init__(message)
        self.args_list = args_list
        self.stderr = stderr


class GitTimeoutError(GitCommandError):
    """A git command was killed because it exceeded its time allowance."""


def _git(
    args: list[str],
    cwd: Path,
    env: dict | None = None,
    timeout: float | None = None,
) -> str:
    """Runs `git` with the given arguments and returns its stripped stdout.

    Raises:
        GitTimeoutError: If the command does not finish within `timeout` seconds.
        GitCommandError: If the command returns a non-zero exit code.
    """
    try:
        res = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
            env=env,
            timeout=timeout,
        )
        return res.stdout.strip()
    except FileNotFoundError as e:
        raise GitCommandError("Git error: git executable not found", args) from e
    except subprocess.TimeoutExpired as e:
        raise GitTimeoutError(
            f"Git timeout: 'git {args[0]}' exceeded {timeout:.0f}s", args
        ) from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        raise GitCommandError(f"Git error: {stderr or e}", args, stderr) from e


class GitRepo:
    """A wrapper around the Git command-line interface for a specific working copy.

    This class provides methods to execute the Git operations a synchronization run
    needs using `subprocess`, abstracting away the command construction and output
    handling. Network commands accept an environment (carrying credentials) and a
    timeout.

    Attributes:
        path (Path): The file system path to the repository root.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.

        Raises:
            ValueError: If the specified path does not contain a .git directory.
        """
        self.path = path
        if not (self.path / ".git").exists():
            raise ValueError(f"Not a git repository: {self.path}")

    @classmethod
    def clone(
        cls,
        url: str,
        dest: Path,
        env: dict | None = None,
        timeout: float | None = None,
    ) -> "GitRepo":
        """Clones `url` into `dest` and returns a wrapper for the new working copy.

        Args:
            url (str): The remote repository URL (or local path).
            dest (Path): The target directory; must not exist or be empty.
            env (Optional[dict], optional): Environment for the git process.
            timeout (Optional[float], optional): Seconds before the clone is killed.

        Returns:
            GitRepo: The repository wrapper rooted at `dest`.
        """
        dest.parent.mkdir(parents=True, exist_ok=True)
        _git(
            ["clone", "--quiet", url, str(dest)],
            cwd=dest.parent,
            env=env,
            timeout=timeout,
        )
        return cls(dest)

    def _run(
        self, args: list[str], env: dict | None = None, timeout: float | None = None
    ) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.
            env (Optional[dict], optional): Environment variables to pass to the
                                            subprocess. Defaults to None.
            timeout (Optional[float], optional): Seconds before the command is
                                                 killed. Defaults to None.

        Returns:
            str: The stripped stdout of the command.
        """
        return _git(args, cwd=self.path, env=env, timeout=timeout)

    def fetch(
        self,
        remote: str,
        refspecs: list[str],
        env: dict | None = None,
        timeout: float | None = None,
    ) -> None:
        """Fetches the given refspecs from a remote.

        `--update-head-ok` allows refreshing the branch that is currently checked out,
        which a `refs/*:refs/*` refspec always includes.

        Args:
            remote (str): The remote name.
            refspecs (list[str]): Refspecs to fetch.
            env (Optional[dict], optional): Environment carrying credentials.
            timeout (Optional[float], optional): Seconds before the fetch is killed.
        """
        self._run(
            ["fetch", "--quiet", "--update-head-ok", remote, *refspecs],
            env=env,
            timeout=timeout,
        )

    def current_branch(self) -> str:
        """Retrieves the name of the currently checked-out branch.

        Returns:
            str: The name of the current branch.
        """
        return self._run(["branch", "--show-current"])

    def checkout(self, branch: str, force: bool = False) -> None:
        """Checks out a specific branch.

        The trailing `--` makes git read `branch` as a revision only, so a name
        that matches a tracked file fails instead of restoring that file.

        Args:
            branch (str): The target branch name or commit hash.
            force (bool, optional): Whether to force the checkout (discarding changes).
                                    Defaults to False.
        """
        cmd = ["checkout", "--quiet"]
        if force:
            cmd.append("-f")
        cmd.extend([branch, "--"])
        self._run(cmd)

    def add(self, path: str) -> None:
        """Stages a single path, taken literally (no pathspec magic)."""
        self._run(["--literal-pathspecs", "add", "--", path])

    def remove(self, path: str) -> None:
        """Removes a tracked path from both the working tree and the index."""
        self._run(["--literal-pathspecs", "rm", "--quiet", "--", path])

    def status_porcelain(self) -> list[str]:
        """Returns the porcelain (machine-readable) status of the repository.

        Returns:
            list[str]: A list of status lines returned by `git status --porcelain`.
        """
        output = self._run(["status", "--porcelain"])
        return output.splitlines() if output else []

    def commit(
        self, message: str, author_name: str, author_email: str, env: dict | None = None
    ) -> str:
        """Commits the index with an explicit author and committer identity.

        Hooks are bypassed and signing is disabled so that host-level git
        configuration cannot alter or block the commit.

        Args:
            message (str): The commit message.
            author_name (str): Name used for both author and committer.
            author_email (str): Email used for both author and committer.
            env (Optional[dict], optional): Base environment. Defaults to None.

        Returns:
            str: The SHA-1 hash of the new commit.
        """
        identity = {
            "GIT_AUTHOR_NAME": author_name,
            "GIT_AUTHOR_EMAIL": author_email,
            "GIT_COMMITTER_NAME": author_name,
            "GIT_COMMITTER_EMAIL": author_email,
        }
        full_env = {**(os.environ if env is None else env), **identity}
        self._run(
            [
                "-c",
                "commit.gpgsign=false",
                "commit",
                "--quiet",
                "--no-verify",
                "-m",
                message,
            ],
            env=full_env,
        )
        sha = self.rev_parse("HEAD")
        if not sha:
            raise GitCommandError("Git error: commit produced no HEAD", ["commit"])
        return sha

    def push(
        self,
        remote: str,
        refspec: str,
        env: dict | None = None,
        timeout: float | None = None,
    ) -> None:
        """Pushes a single refspec to a remote.

        Args:
            remote (str): The remote name.
            refspec (str): The refspec, e.g. '+refs/heads/main:refs/heads/main'.
            env (Optional[dict], optional): Environment carrying credentials.
            timeout (Optional[float], optional): Seconds before the push is killed.
        """
        self._run(
            ["push", "--quiet", "--no-verify", remote, refspec],
            env=env,
            timeout=timeout,
        )

    def rev_parse(self, rev: str) -> str | None:
        """Resolves a revision (tag, branch, relative ref) to a full SHA-1 hash.

        Args:
            rev (str): The revision to parse (e.g., 'HEAD', 'master').

        Returns:
            Optional[str]:  The full SHA-1 hash,
                            or None if the revision could not be resolved.
        """
        try:
            return self._run(["rev-parse", "--verify", "--quiet", rev]) or None
        except GitCommandError as e:
            logger.debug(f"rev-parse failed for '{rev}': {e}")
            return None
