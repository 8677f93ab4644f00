"""Unit tests for the jj adapter."""

from pathlib import Path
from typing import List
from unittest.mock import MagicMock, patch

import pytest

from stacked.jj import (
    JujutsuClient, RealJJ, get_workspace_root, git_store_path, parse_bookmark
)
from stacked.typing import CommandResult, JJCommandError, NotInRepositoryError


def mock_runner(*outputs: str) -> MagicMock:
    """Runner whose successive run_cmd calls return the given stdouts."""
    runner = MagicMock()
    runner.run_cmd.side_effect = [CommandResult(0, out, "") for out in outputs]
    return runner


def call_args(runner: MagicMock, index: int = 0) -> List[str]:
    return runner.run_cmd.call_args_list[index][0][0]


class TestChangeIDs:
    def test_returns_change_ids_oldest_first(self) -> None:
        client = JujutsuClient(mock_runner("abc123\ndef456\nghi789\n"))
        assert client.get_change_ids("main..@") == ["abc123", "def456", "ghi789"]

    def test_empty_output_is_empty_stack(self) -> None:
        client = JujutsuClient(mock_runner(""))
        assert client.get_change_ids("main..@") == []

    def test_blank_lines_are_dropped(self) -> None:
        client = JujutsuClient(mock_runner("abc123\n\ndef456\n\n"))
        assert client.get_change_ids("main..@") == ["abc123", "def456"]

    def test_log_arguments(self) -> None:
        runner = mock_runner("abc123\n")
        JujutsuClient(runner).get_change_ids("main..@-")
        args = call_args(runner)
        for expected in ("log", "--no-graph", "--reversed", "-r", "main..@-", "-T"):
            assert expected in args

    def test_stack_revset_includes_tip(self) -> None:
        runner = mock_runner("abc123\n")
        JujutsuClient(runner).get_stack_change_ids("main")
        args = call_args(runner)
        assert args[args.index("-r") + 1] == "main..@"

    def test_stack_revset_with_custom_tip(self) -> None:
        runner = mock_runner("abc123\n")
        JujutsuClient(runner).get_stack_change_ids("main", "xyz789")
        args = call_args(runner)
        assert args[args.index("-r") + 1] == "main..xyz789"

    def test_empty_changes_revset(self) -> None:
        runner = mock_runner("empty1\nempty2\n")
        client = JujutsuClient(runner)
        assert client.get_empty_change_ids("main") == ["empty1", "empty2"]
        args = call_args(runner)
        assert args[args.index("-r") + 1] == "(main..@-) & empty()"


class TestDescription:
    def test_returns_description(self) -> None:
        runner = mock_runner("This is my commit message")
        assert JujutsuClient(runner).get_description("xyz789") == "This is my commit message"
        args = call_args(runner)
        for expected in ("log", "--no-graph", "-T", "description", "-r", "xyz789"):
            assert expected in args


class TestBookmarkParsing:
    @pytest.mark.parametrize("output,expected", [
        ("feat-7: abc123", "feat-7"),
        ("simple-branch", "simple-branch"),
        ("  branch-name  ", "branch-name"),
        ("user/pr-1: kxqyzvtn 1a2b3c4d Add parser\nuser/pr-1@origin: kxqyzvtn", "user/pr-1"),
    ])
    def test_parse_bookmark(self, output: str, expected: str) -> None:
        assert parse_bookmark(output) == expected

    def test_no_bookmark_is_none(self) -> None:
        assert parse_bookmark("") is None

    def test_get_bookmark_uses_bookmark_list(self) -> None:
        runner = mock_runner("feature-branch: abc123")
        assert JujutsuClient(runner).get_bookmark("abc123") == "feature-branch"
        assert call_args(runner) == ["bookmark", "list", "-r", "abc123"]


class TestStackBookmarks:
    def test_returns_all_bookmarks(self) -> None:
        runner = mock_runner("change1\nchange2\nchange3\n",
                             "branch1: change1", "branch2: change2", "branch3: change3")
        assert JujutsuClient(runner).get_stack_bookmarks("main") == ["branch1", "branch2", "branch3"]

    def test_stops_at_target_inclusive(self) -> None:
        runner = mock_runner("change1\nchange2\nchange3\n",
                             "branch1: change1", "branch2: change2", "branch3: change3")
        client = JujutsuClient(runner)
        assert client.get_stack_bookmarks("main", stop_at="branch2") == ["branch1", "branch2"]
        # The third change is never inspected
        assert runner.run_cmd.call_count == 3

    def test_skips_changes_without_bookmarks(self) -> None:
        runner = mock_runner("change1\nchange2\nchange3\n",
                             "branch1: change1", "", "branch3: change3")
        assert JujutsuClient(runner).get_stack_bookmarks("main") == ["branch1", "branch3"]

    def test_missing_target_returns_whole_stack(self) -> None:
        runner = mock_runner("change1\nchange2\n", "branch1: change1", "branch2: change2")
        bookmarks = JujutsuClient(runner).get_stack_bookmarks("main", stop_at="nope")
        assert bookmarks == ["branch1", "branch2"]
        assert "nope" not in bookmarks


class TestMutations:
    def test_create_bookmark_creates_and_tracks(self) -> None:
        runner = mock_runner("", "")
        name = JujutsuClient(runner).create_bookmark("abc123", "user/pr-", 42)
        assert name == "user/pr-42"
        assert call_args(runner, 0) == ["bookmark", "create", "-r", "abc123", "user/pr-42"]
        assert call_args(runner, 1) == ["bookmark", "track", "user/pr-42@origin"]

    def test_create_bookmark_tracks_configured_remote(self) -> None:
        runner = mock_runner("", "")
        JujutsuClient(runner, remote="upstream").create_bookmark("abc123", "feat-", 1)
        assert call_args(runner, 1) == ["bookmark", "track", "feat-1@upstream"]

    def test_push_single_bookmark(self) -> None:
        runner = mock_runner("")
        JujutsuClient(runner).git_push("feature-branch")
        assert call_args(runner) == ["git", "push", "-b", "feature-branch"]

    def test_push_all(self) -> None:
        runner = mock_runner("")
        JujutsuClient(runner).git_push_all()
        assert call_args(runner) == ["git", "push", "--all"]

    def test_fetch(self) -> None:
        runner = mock_runner("")
        JujutsuClient(runner).git_fetch()
        assert call_args(runner) == ["git", "fetch"]

    def test_rebase(self) -> None:
        runner = mock_runner("")
        JujutsuClient(runner).rebase("main")
        assert call_args(runner) == ["rebase", "-d", "main"]

    def test_rebase_all_skips_emptied(self) -> None:
        runner = mock_runner("")
        JujutsuClient(runner).rebase_all("develop")
        args = call_args(runner)
        assert args[0] == "rebase"
        assert "--skip-emptied" in args
        assert args[args.index("-d") + 1] == "develop"

    def test_abandon(self) -> None:
        runner = mock_runner("")
        JujutsuClient(runner).abandon("abc123")
        assert call_args(runner) == ["abandon", "-r", "abc123"]

    def test_log_is_interactive(self) -> None:
        runner = MagicMock()
        JujutsuClient(runner).log("main-..@")
        runner.run_interactive.assert_called_once_with(["log", "-r", "main-..@"])
        runner.run_cmd.assert_not_called()


class TestRealJJ:
    def test_nonzero_exit_raises_with_stderr(self) -> None:
        completed = MagicMock(returncode=1, stdout="", stderr="Error: no such revision")
        with patch("stacked.jj.subprocess.run", return_value=completed) as run:
            with pytest.raises(JJCommandError) as exc_info:
                RealJJ().run_cmd(["log", "-r", "nope"])
        run.assert_called_once()
        assert run.call_args[0][0] == ["jj", "log", "-r", "nope"]
        assert "no such revision" in str(exc_info.value)
        assert exc_info.value.code == 1

    def test_error_prefix_replaces_default_message(self) -> None:
        completed = MagicMock(returncode=1, stdout="", stderr="rejected")
        with patch("stacked.jj.subprocess.run", return_value=completed):
            with pytest.raises(JJCommandError) as exc_info:
                RealJJ().run_cmd(["git", "push", "-b", "x"], error_prefix="Failed to push bookmark x")
        assert str(exc_info.value).startswith("Failed to push bookmark x")

    def test_unchecked_failure_returns_result(self) -> None:
        completed = MagicMock(returncode=1, stdout="", stderr="boom")
        with patch("stacked.jj.subprocess.run", return_value=completed):
            result = RealJJ().run_cmd(["status"], check=False)
        assert result.code == 1
        assert result.stderr == "boom"

    def test_stdout_is_stripped(self) -> None:
        completed = MagicMock(returncode=0, stdout="abc\n\n", stderr="")
        with patch("stacked.jj.subprocess.run", return_value=completed):
            assert RealJJ().run_cmd(["log"]).stdout == "abc"

    def test_interactive_returns_exit_status(self) -> None:
        completed = MagicMock(returncode=4)
        with patch("stacked.jj.subprocess.run", return_value=completed) as run:
            assert RealJJ().run_interactive(["status"]) == 4
        assert run.call_args[0][0] == ["jj", "status"]

    def test_interactive_missing_executable(self) -> None:
        with patch("stacked.jj.subprocess.run", side_effect=FileNotFoundError("jj")):
            with pytest.raises(JJCommandError):
                RealJJ().run_interactive(["status"])

    def test_missing_executable(self) -> None:
        with patch("stacked.jj.subprocess.run", side_effect=FileNotFoundError("jj")):
            with pytest.raises(JJCommandError) as exc_info:
                RealJJ().run_cmd(["status"])
        assert "not found" in str(exc_info.value)


class TestWorkspace:
    def test_workspace_root(self) -> None:
        runner = mock_runner("/home/me/repo\n")
        assert get_workspace_root(runner) == Path("/home/me/repo")

    def test_not_in_repository(self) -> None:
        runner = MagicMock()
        runner.run_cmd.return_value = CommandResult(1, "", "Error: There is no jj repo in \".\"")
        with pytest.raises(NotInRepositoryError):
            get_workspace_root(runner)

    def test_git_store_colocated(self, tmp_path: Path) -> None:
        store = tmp_path / ".jj" / "repo" / "store"
        store.mkdir(parents=True)
        (store / "git_target").write_text("../../../.git")
        assert git_store_path(tmp_path) == (tmp_path / ".git").resolve()

    def test_git_store_internal(self, tmp_path: Path) -> None:
        store = tmp_path / ".jj" / "repo" / "store"
        store.mkdir(parents=True)
        (store / "git_target").write_text("git")
        assert git_store_path(tmp_path) == (store / "git").resolve()
