"""jj interfaces and implementation."""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from ..typing import (
    BookmarkName, ChangeID, CommandResult, JJCommandError, JJRunner, NotInRepositoryError
)

# Get module logger
logger = logging.getLogger(__name__)

CHANGE_ID_TEMPLATE = 'change_id ++ "\\n"'


def stack_revset(main_branch: str, tip: str = "@") -> str:
    """Revset for the stack: everything reachable from tip but not from main_branch."""
    return f"{main_branch}..{tip}"


def empty_revset(main_branch: str) -> str:
    """Revset for empty changes below the working copy."""
    return f"({main_branch}..@-) & empty()"


def parse_change_ids(output: str) -> List[ChangeID]:
    """Parse newline separated change IDs, dropping blank lines."""
    return [ChangeID(line.strip()) for line in output.split("\n") if line.strip()]


def parse_bookmark(output: str) -> Optional[BookmarkName]:
    """Parse the bookmark name out of `jj bookmark list` output.

    Output looks like ``feat-7: kxqyzvtn 1a2b3c4d message``; the name is the text
    before the first colon on the first line. Empty output means no bookmark.
    """
    lines = output.strip().split("\n")
    name = lines[0].split(":")[0].strip()
    if not name:
        return None
    return BookmarkName(name)


class RealJJ:
    """Real jj implementation backed by subprocess."""

    def __init__(self, cwd: Optional[str] = None):
        """Initialize with the directory commands run in (default: process cwd)."""
        self.cwd = cwd

    def run_cmd(self, args: List[str], check: bool = True,
                error_prefix: Optional[str] = None) -> CommandResult:
        """Run jj with captured output."""
        logger.info(f"> jj {' '.join(args)}")
        try:
            proc = subprocess.run(
                ["jj", *args], cwd=self.cwd,
                capture_output=True, text=True
            )
        except FileNotFoundError:
            raise JJCommandError(args, 127, "jj executable not found on PATH", error_prefix)
        result = CommandResult(code=proc.returncode, stdout=proc.stdout.strip(), stderr=proc.stderr)
        if result.stderr:
            logger.debug(f"jj stderr: {result.stderr.strip()}")
        if check and result.code != 0:
            raise JJCommandError(args, result.code, result.stderr, error_prefix)
        return result

    def run_interactive(self, args: List[str]) -> int:
        """Run jj with the terminal attached, returning its exit status."""
        logger.info(f"> jj {' '.join(args)}")
        try:
            return subprocess.run(["jj", *args], cwd=self.cwd).returncode
        except FileNotFoundError:
            raise JJCommandError(args, 127, "jj executable not found on PATH")


def get_workspace_root(runner: JJRunner) -> Path:
    """Get the root of the current jj workspace."""
    result = runner.run_cmd(["workspace", "root"], check=False)
    if result.code != 0:
        raise NotInRepositoryError(f"Not in a jj repository\n{result.stderr}".rstrip())
    return Path(result.stdout.strip())


def git_store_path(workspace_root: Path) -> Path:
    """Locate the git repository backing a jj workspace.

    jj records the location in ``.jj/repo/store/git_target``, relative to the
    store directory. Colocated repos point at ``../../../.git``.
    """
    repo_dir = workspace_root / ".jj" / "repo"
    # Secondary workspaces store the path of the main repo instead of a directory
    if repo_dir.is_file():
        repo_dir = (workspace_root / ".jj" / repo_dir.read_text().strip()).resolve()
    store = repo_dir / "store"
    target_file = store / "git_target"
    if target_file.exists():
        return (store / target_file.read_text().strip()).resolve()
    return store / "git"


class JujutsuClient:
    """Revision service adapter: the jj operations the stack engines use."""

    def __init__(self, runner: JJRunner, remote: str = "origin"):
        self.runner = runner
        self.remote = remote

    def get_change_ids(self, revset: str) -> List[ChangeID]:
        """Resolve a revset into change IDs, oldest first."""
        output = self.runner.run_cmd(
            ["log", "--no-graph", "--reversed", "-r", revset, "-T", CHANGE_ID_TEMPLATE]
        ).stdout
        return parse_change_ids(output)

    def get_stack_change_ids(self, main_branch: str, tip: str = "@") -> List[ChangeID]:
        """Get the stack's change IDs, oldest first. Tip is included."""
        return self.get_change_ids(stack_revset(main_branch, tip))

    def get_empty_change_ids(self, main_branch: str) -> List[ChangeID]:
        """Get stack changes whose diff is empty, oldest first."""
        return self.get_change_ids(empty_revset(main_branch))

    def get_description(self, change_id: ChangeID) -> str:
        return self.runner.run_cmd(
            ["log", "--no-graph", "-T", "description", "-r", change_id]
        ).stdout

    def get_bookmark(self, change_id: ChangeID) -> Optional[BookmarkName]:
        output = self.runner.run_cmd(["bookmark", "list", "-r", change_id]).stdout
        return parse_bookmark(output)

    def get_stack_bookmarks(self, main_branch: str,
                            stop_at: Optional[str] = None) -> List[BookmarkName]:
        """Get the bookmarks attached to the stack, oldest first.

        Changes without a bookmark are skipped. When stop_at is given the walk
        ends right after that bookmark; callers must check whether it was found.
        """
        bookmarks: List[BookmarkName] = []
        for change_id in self.get_stack_change_ids(main_branch):
            bookmark = self.get_bookmark(change_id)
            if bookmark is None:
                continue
            bookmarks.append(bookmark)
            if stop_at is not None and bookmark == stop_at:
                break
        return bookmarks

    def create_bookmark(self, change_id: ChangeID, prefix: str, position: int) -> BookmarkName:
        """Create and track the bookmark ``prefix + position`` on a change."""
        name = BookmarkName(f"{prefix}{position}")
        self.runner.run_cmd(["bookmark", "create", "-r", change_id, name])
        self.runner.run_cmd(["bookmark", "track", f"{name}@{self.remote}"])
        logger.info(f"Created bookmark {name} for change {change_id[:8]}")
        return name

    def git_push(self, bookmark: str) -> None:
        self.runner.run_cmd(
            ["git", "push", "-b", bookmark],
            error_prefix=f"Failed to push bookmark {bookmark}"
        )

    def git_push_all(self) -> None:
        self.runner.run_cmd(["git", "push", "--all"], error_prefix="Failed to push bookmarks")

    def git_fetch(self) -> None:
        self.runner.run_cmd(["git", "fetch"])

    def rebase(self, destination: str) -> None:
        """Rebase the working copy's branch onto destination."""
        self.runner.run_cmd(["rebase", "-d", destination])

    def rebase_all(self, destination: str) -> None:
        """Rebase the whole stack onto destination in one step.

        Changes that become empty (their content already landed in destination)
        are abandoned, so descendants end up on their newest surviving ancestor.
        """
        self.runner.run_cmd(["rebase", "--skip-emptied", "-b", "@", "-d", destination])

    def abandon(self, change_id: ChangeID) -> None:
        self.runner.run_cmd(["abandon", "-r", change_id])

    def log(self, revset: str) -> None:
        """Show the log for a revset on the terminal."""
        self.runner.run_interactive(["log", "-r", revset])
