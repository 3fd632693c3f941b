"""Pytest fixtures for git-worktree-keeper tests"""
import tempfile
from pathlib import Path
from typing import List, Tuple

import pytest
import git

from git_worktree_keeper.config import Config
from git_worktree_keeper.core import WorktreeManager
from git_worktree_keeper.models.project import Project
from git_worktree_keeper.services.command_runner import CommandRunner


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        # git reports resolved paths (e.g. /private/var on macOS)
        yield Path(tmpdir).resolve()


@pytest.fixture(autouse=True)
def git_identity(monkeypatch, tmp_path_factory):
    """Isolate git from the user's global config and give it an identity."""
    global_config = tmp_path_factory.mktemp("gitconfig") / "config"
    global_config.write_text("")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")


@pytest.fixture
def mock_config():
    """Create a configuration dictionary."""
    return {
        'verbose': False,
        'debug': False,
        'worktree_folder': 'worktrees',
        'remote_name': 'origin',
        'fetch_on_list': False,
    }


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository with one commit on main."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    repo.git.branch('-M', 'main')

    yield repo

    repo.close()


@pytest.fixture
def project(git_repo):
    """Project for the test repository."""
    return Project(path=git_repo.working_dir)


@pytest.fixture
def manager(mock_config):
    """WorktreeManager with fetching disabled."""
    return WorktreeManager(mock_config)


def _commit_file(repo_path, filename: str, content: str, message: str) -> str:
    """Write a file in a checkout, commit it and return the new sha."""
    repo = git.Repo(repo_path)
    try:
        (Path(repo_path) / filename).write_text(content)
        repo.git.add(filename)
        repo.git.commit("-m", message)
        return repo.head.commit.hexsha
    finally:
        repo.close()


@pytest.fixture
def commit_file():
    return _commit_file


class RecordingRunner(CommandRunner):
    """CommandRunner that records every command it runs.

    before_execute, when set, is awaited before each command with the argv
    and cwd; tests use it to interleave work with a running operation.
    """

    def __init__(self, timeout=None):
        super().__init__(timeout)
        self.calls: List[Tuple[Tuple[str, ...], str]] = []
        self.before_execute = None

    async def execute(self, args, cwd, context=None):
        args = tuple(args)
        if self.before_execute is not None:
            await self.before_execute(args, cwd)
        self.calls.append((args, cwd))
        return await super().execute(list(args), cwd, context)


@pytest.fixture
def recording_runner():
    return RecordingRunner()


@pytest.fixture
def recording_manager(mock_config, recording_runner):
    return WorktreeManager(Config.from_dict(mock_config), runner=recording_runner)
