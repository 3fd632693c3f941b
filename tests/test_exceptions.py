"""Tests for the exception hierarchy"""
from git_worktree_keeper.exceptions import (
    BaseBranchNotFoundError,
    CommandError,
    CommandNotFoundError,
    CommandTimeoutError,
    DetachedHeadError,
    DetachedWorktreeError,
    FastForwardError,
    GitOperationError,
    GitWorktreeKeeperError,
    IntegrationError,
    LockTimeoutError,
    NothingToIntegrateError,
    RebaseConflictError,
    SyncError,
    WorktreeError,
)


class TestHierarchy:
    """Callers can catch at any level."""

    def test_everything_is_a_keeper_error(self):
        for cls in (LockTimeoutError, GitOperationError, CommandError, WorktreeError, SyncError):
            assert issubclass(cls, GitWorktreeKeeperError)

    def test_integration_family(self):
        for cls in (NothingToIntegrateError, RebaseConflictError, FastForwardError):
            assert issubclass(cls, IntegrationError)
            assert issubclass(cls, GitOperationError)

    def test_detached_worktree_error(self):
        error = DetachedWorktreeError("merge", "Worktree at /wt is in detached HEAD state", state="idle")
        assert isinstance(error, IntegrationError)
        assert isinstance(error, DetachedHeadError)
        assert error.state == "idle"
        assert str(error) == "Git operation 'merge' failed: Worktree at /wt is in detached HEAD state"

    def test_command_family(self):
        assert issubclass(CommandNotFoundError, CommandError)
        assert issubclass(CommandTimeoutError, CommandError)
        assert issubclass(CommandError, GitOperationError)


class TestCommandError:
    """Process failure details."""

    def test_fields_and_message(self):
        error = CommandError(
            ["git", "commit", "-m", "two words"], "/repo", exit_code=1,
            stdout="nothing to commit", stderr="",
        )
        assert error.command == "git commit -m 'two words'"
        assert error.exit_code == 1
        assert error.output == "nothing to commit"
        assert error.commands == ["git commit -m 'two words' (in /repo)"]
        assert "exit code 1" in str(error)

    def test_stderr_preferred(self):
        error = CommandError(["git", "x"], "/repo", exit_code=128, stdout="out", stderr="fatal: bad")
        assert error.output == "fatal: bad"
        assert "fatal: bad" in str(error)

    def test_timeout(self):
        error = CommandTimeoutError(["git", "fetch"], "/repo", 5)
        assert error.timeout == 5
        assert "killed after 5s" in str(error)

    def test_not_found(self):
        error = CommandNotFoundError(["wsl.exe", "-d", "x"], None, "No such file")
        assert "could not run" in str(error)


class TestDescribe:
    """Diagnostic text for display."""

    def test_describe_includes_context(self):
        error = FastForwardError(
            "squash_and_merge",
            "Failed to fast-forward main",
            commands=["git checkout main (in /repo)", "git merge --ff-only feature (in /repo)"],
            git_output="fatal: Not possible to fast-forward, aborting.\n",
            working_directory="/repo/worktrees/feature",
            project_path="/repo",
            state="ff-merge",
        )

        text = error.describe()

        assert text.splitlines()[0] == (
            "Git operation 'squash_and_merge' failed: Failed to fast-forward main"
        )
        assert "Working directory: /repo/worktrees/feature" in text
        assert "Project: /repo" in text
        assert "Failed while: ff-merge" in text
        assert "  git merge --ff-only feature (in /repo)" in text
        assert text.endswith("fatal: Not possible to fast-forward, aborting.")

    def test_describe_minimal(self):
        assert GitOperationError("op").describe() == "Git operation 'op' failed"

    def test_specific_errors(self):
        assert "detached HEAD" in str(DetachedHeadError("/repo"))
        error = BaseBranchNotFoundError("develop", "/repo")
        assert error.base_branch == "develop"
        assert "develop" in str(error)
        assert "lock 'k'" in str(LockTimeoutError("k", 1.5))
