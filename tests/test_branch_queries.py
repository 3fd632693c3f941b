"""Tests for branch queries"""
import pytest
import git

from git_worktree_keeper.core import WorktreeManager
from git_worktree_keeper.exceptions import DetachedHeadError, GitOperationError, SyncError
from git_worktree_keeper.models.project import Project
from git_worktree_keeper.services.git.branch_queries import BranchQueries



@pytest.fixture
def remote_repo(git_repo, temp_dir):
    """Bare remote with main and release pushed, fetched into git_repo."""
    bare_path = temp_dir / "remote.git"
    git.Repo.init(bare_path, bare=True).close()
    git_repo.create_remote("origin", str(bare_path))
    git_repo.git.push("origin", "main")
    git_repo.git.push("origin", "main:release")
    git_repo.git.fetch("origin")
    return bare_path


class TestListBranches:
    """Branch listing and ordering."""

    @pytest.mark.asyncio
    async def test_order_remotes_then_worktree_branches(self, manager, project, git_repo, remote_repo):
        git_repo.git.branch("zeta")
        git_repo.git.branch("alpha")
        await manager.create_worktree(project, "feature")

        branches = await manager.list_branches(project)

        assert [b.name for b in branches] == [
            "origin/main", "origin/release", "feature", "main", "alpha", "zeta",
        ]
        remote = [b for b in branches if b.is_remote]
        assert all(not b.has_worktree and not b.is_current for b in remote)

        by_name = {b.name: b for b in branches}
        assert by_name["main"].is_current
        assert by_name["main"].has_worktree
        assert by_name["feature"].has_worktree
        assert not by_name["feature"].is_current
        assert not by_name["alpha"].has_worktree

    @pytest.mark.asyncio
    async def test_names_sort_case_insensitively(self, manager, project, git_repo):
        for name in ("Zeta", "alpha", "Beta"):
            git_repo.git.branch(name)

        branches = await manager.list_branches(project)

        assert [b.name for b in branches] == ["main", "alpha", "Beta", "Zeta"]

    @pytest.mark.asyncio
    async def test_no_remotes(self, manager, project):
        branches = await manager.list_branches(project)
        assert [b.name for b in branches] == ["main"]
        assert branches[0].is_current

    @pytest.mark.asyncio
    async def test_fetch_failure_is_ignored(self, project, git_repo, temp_dir):
        git_repo.create_remote("origin", str(temp_dir / "missing-remote.git"))
        manager = WorktreeManager({"fetch_on_list": True})

        branches = await manager.list_branches(project)

        assert [b.name for b in branches] == ["main"]

    @pytest.mark.asyncio
    async def test_fetch_picks_up_new_remote_branches(self, project, git_repo, remote_repo):
        # Pushing by URL leaves refs/remotes/origin untouched until the next fetch
        git_repo.git.push(str(remote_repo), "main:refs/heads/from-other")
        assert "origin/from-other" not in [r.name for r in git_repo.remotes.origin.refs]

        manager = WorktreeManager({"fetch_on_list": True})
        names = [b.name for b in await manager.list_branches(project)]

        assert "origin/from-other" in names

    @pytest.mark.asyncio
    async def test_not_a_repository_raises(self, manager, temp_dir):
        plain = temp_dir / "plain"
        plain.mkdir()
        with pytest.raises(GitOperationError):
            await manager.list_branches(Project(path=str(plain)))


class TestGetProjectMainBranch:
    """Main branch detection."""

    @pytest.mark.asyncio
    async def test_returns_checked_out_branch(self, manager, project):
        assert await manager.get_project_main_branch(project) == "main"

    @pytest.mark.asyncio
    async def test_other_branch_checked_out(self, manager, project, git_repo):
        git_repo.git.checkout("-b", "trunk")
        assert await manager.get_project_main_branch(project) == "trunk"

    @pytest.mark.asyncio
    async def test_detached_head_raises(self, manager, project, git_repo):
        git_repo.git.checkout("--detach")
        with pytest.raises(DetachedHeadError):
            await manager.get_project_main_branch(project)

    @pytest.mark.asyncio
    async def test_not_a_repository_raises(self, manager, temp_dir):
        plain = temp_dir / "plain"
        plain.mkdir()
        with pytest.raises(GitOperationError):
            await manager.get_project_main_branch(Project(path=str(plain)))


class TestRemoteQueries:
    """Upstream and remote branch lookups from a worktree."""

    @pytest.mark.asyncio
    async def test_remote_branches(self, manager, project, remote_repo):
        created = await manager.create_worktree(project, "feature")
        remote_branches = await manager.get_remote_branches(created.worktree_path, project)
        assert sorted(remote_branches) == ["origin/main", "origin/release"]

    @pytest.mark.asyncio
    async def test_remote_branches_empty_without_remotes(self, manager, project):
        assert await manager.get_remote_branches(project.path) == []

    @pytest.mark.asyncio
    async def test_upstream_none_for_new_branch(self, manager, project, remote_repo):
        created = await manager.create_worktree(project, "feature")
        assert await manager.get_upstream(created.worktree_path) is None

    @pytest.mark.asyncio
    async def test_upstream_after_set_upstream(self, manager, project, remote_repo):
        created = await manager.create_worktree(project, "feature")
        await manager.set_upstream(created.worktree_path, "origin/main", project)
        assert await manager.get_upstream(created.worktree_path, project) == "origin/main"

    @pytest.mark.asyncio
    async def test_worktree_from_remote_base_tracks_it(self, manager, project, remote_repo):
        created = await manager.create_worktree(project, "rel", base_branch="origin/release")
        assert await manager.get_upstream(created.worktree_path) == "origin/release"

    @pytest.mark.asyncio
    async def test_origin_branch(self, manager, project, remote_repo):
        assert await manager.get_origin_branch(project.path, "main") == "origin/main"
        assert await manager.get_origin_branch(project.path, "nope") is None


class TestGetLastCommits:
    """Recent commit summaries."""

    @pytest.mark.asyncio
    async def test_commits_with_shortstat(self, manager, project, commit_file):
        created = await manager.create_worktree(project, "feature")
        commit_file(created.worktree_path, "a.txt", "one\ntwo\n", "Add a | with pipe")

        commits = await manager.get_last_commits(created.worktree_path, 5, project)

        assert len(commits) == 2
        latest = commits[0]
        assert latest.message == "Add a | with pipe"
        assert latest.author == "Test User"
        assert latest.files_changed == 1
        assert latest.additions == 2
        assert latest.deletions == 0
        assert commits[1].message == "Initial commit"

    @pytest.mark.asyncio
    async def test_count_limits_result(self, manager, project, commit_file):
        for i in range(3):
            commit_file(project.path, f"f{i}.txt", f"{i}\n", f"Commit {i}")
        commits = await manager.get_last_commits(project.path, 2)
        assert [c.message for c in commits] == ["Commit 2", "Commit 1"]

    @pytest.mark.asyncio
    async def test_failure_raises_sync_error(self, manager, temp_dir):
        plain = temp_dir / "plain"
        plain.mkdir()
        with pytest.raises(SyncError):
            await manager.get_last_commits(str(plain))


class TestParseLogOutput:
    """Parsing `git log --shortstat` output."""

    def test_parse_with_and_without_stats(self):
        output = (
            "aaa|Fix bug|2024-01-02 10:00:00 +0000|Alice\n"
            "\n"
            " 2 files changed, 10 insertions(+), 3 deletions(-)\n"
            "bbb|Empty commit|2024-01-01 09:00:00 +0000|Bob\n"
            "ccc|Only deletions|2023-12-31 09:00:00 +0000|Carol\n"
            "\n"
            " 1 file changed, 4 deletions(-)\n"
        )

        commits = BranchQueries.parse_log_output(output)

        assert [c.hash for c in commits] == ["aaa", "bbb", "ccc"]
        assert (commits[0].files_changed, commits[0].additions, commits[0].deletions) == (2, 10, 3)
        assert (commits[1].files_changed, commits[1].additions, commits[1].deletions) == (0, 0, 0)
        assert (commits[2].files_changed, commits[2].additions, commits[2].deletions) == (1, 0, 4)
        assert commits[0].date == "2024-01-02 10:00:00 +0000"
        assert commits[2].author == "Carol"

    def test_parse_pipe_in_subject(self):
        commits = BranchQueries.parse_log_output("abc|a | b | c|2024-01-01 00:00:00 +0000|Dev")
        assert commits[0].message == "a | b | c"
        assert commits[0].author == "Dev"

    def test_parse_empty(self):
        assert BranchQueries.parse_log_output("") == []
