"""Shared fixtures: a throwaway bare repository acting as the remote."""

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from git_record_sync.config import Config

SEED_ENV = {
    "GIT_AUTHOR_NAME": "Seeder",
    "GIT_AUTHOR_EMAIL": "seed@example.com",
    "GIT_COMMITTER_NAME": "Seeder",
    "GIT_COMMITTER_EMAIL": "seed@example.com",
}

OTHER_RECORD = (
    '{\n\t"id": "other",\n\t"first_name": "John",\n'
    '\t"last_name": "Roe",\n\t"birthday": "1985-05-05"\n}'
)


def git(*args: str, cwd: Path) -> str:
    """Runs a git command for test setup/inspection and returns stdout."""
    res = subprocess.run(
        ["git", "-c", "commit.gpgsign=false", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
        env={**os.environ, **SEED_ENV},
    )
    return res.stdout.strip()


def read_tip(remote: Path, branch: str, path: str) -> str | None:
    """Returns the content of `path` at the tip of `branch`, or None if absent."""
    try:
        return git("show", f"{branch}:{path}", cwd=remote)
    except subprocess.CalledProcessError:
        return None


def subjects(remote: Path, branch: str) -> list[str]:
    """Returns commit subjects on `branch`, newest first."""
    return git("log", "--format=%s", branch, cwd=remote).splitlines()


@pytest.fixture
def remote_repo(tmp_path: Path) -> Path:
    """Creates a bare repository with `main` and `records` branches.

    Both branches hold a README and the record file `other.json`.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.

    Returns:
        Path: The bare repository path, usable as a clone URL.
    """
    if shutil.which("git") is None:
        pytest.skip("git executable not available")

    seed = tmp_path / "seed"
    seed.mkdir()
    git("init", "--quiet", cwd=seed)
    git("checkout", "--quiet", "-b", "main", cwd=seed)
    (seed / "README.md").write_text("# Records\n")
    (seed / "other.json").write_text(OTHER_RECORD)
    git("add", ".", cwd=seed)
    git("commit", "--quiet", "-m", "Initial commit", cwd=seed)
    git("branch", "records", cwd=seed)

    remote = tmp_path / "remote.git"
    git("clone", "--quiet", "--bare", str(seed), str(remote), cwd=tmp_path)
    return remote


@pytest.fixture
def config(remote_repo: Path) -> Config:
    """A configuration pointing at the local bare repository."""
    conf = Config()
    conf.repository.url = str(remote_repo)
    conf.repository.branch = "main"
    conf.committer.email = "sync-bot@example.com"
    conf.network.timeout = 60
    return conf
