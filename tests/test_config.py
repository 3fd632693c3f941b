"""Tests for Config"""
import pytest

from git_worktree_keeper.config import Config


class TestConfigDefaults:
    """Default values."""

    def test_defaults(self):
        config = Config()
        assert config.worktree_folder == "worktrees"
        assert config.remote_name == "origin"
        assert config.enable_commit_footer is False
        assert config.commit_footer is None
        assert config.command_timeout is None
        assert config.lock_timeout is None
        assert config.fetch_on_list is True

    def test_get_dict_style(self):
        config = Config(remote_name="upstream")
        assert config.get("remote_name") == "upstream"
        assert config.get("missing", "fallback") == "fallback"


class TestConfigValidation:
    """__post_init__ validation."""

    @pytest.mark.parametrize("folder", ["", "   "])
    def test_empty_worktree_folder(self, folder):
        with pytest.raises(ValueError, match="worktree_folder"):
            Config(worktree_folder=folder)

    def test_worktree_folder_is_stripped(self):
        assert Config(worktree_folder=" .wt ").worktree_folder == ".wt"

    def test_remote_with_whitespace(self):
        with pytest.raises(ValueError, match="whitespace"):
            Config(remote_name="my remote")

    def test_empty_remote(self):
        with pytest.raises(ValueError, match="remote_name"):
            Config(remote_name="")

    @pytest.mark.parametrize("field_name", ["command_timeout", "lock_timeout"])
    @pytest.mark.parametrize("value", [0, -1])
    def test_non_positive_timeouts(self, field_name, value):
        with pytest.raises(ValueError, match=field_name):
            Config(**{field_name: value})

    def test_footer_required_when_enabled(self):
        with pytest.raises(ValueError, match="commit_footer"):
            Config(enable_commit_footer=True)


class TestCommitMessage:
    """Commit footer handling."""

    def test_footer_disabled(self):
        config = Config(commit_footer="ignored")
        assert config.format_commit_message("Message") == "Message"

    def test_footer_appended(self):
        config = Config(enable_commit_footer=True, commit_footer="Co-authored-by: Someone\n")
        assert config.format_commit_message("Message") == "Message\n\nCo-authored-by: Someone"


class TestConfigDict:
    """Dictionary conversion."""

    def test_round_trip(self):
        config = Config(worktree_folder="/abs/trees", lock_timeout=5, verbose=True)
        assert Config.from_dict(config.to_dict()) == config

    def test_from_dict_ignores_unknown_keys(self):
        config = Config.from_dict({"remote_name": "upstream", "stale_days": 30})
        assert config.remote_name == "upstream"
