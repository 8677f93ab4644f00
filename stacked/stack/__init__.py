"""Stacked PR implementation."""

import sys
import logging
from typing import IO, List, Optional, Sequence, Tuple

from ..config.models import StackedConfig
from ..github import GitHubClient
from ..github.types import PRState
from ..pretty import print_header
from ..typing import BookmarkName, Change, RevisionInterface, StackedError
from ..util import ensure

logger = logging.getLogger(__name__)

AFFIRMATIVE_ANSWERS = ("y", "yes")


def format_stack_markdown(pr_numbers: Sequence[int], current: int) -> str:
    """Render the stack-index block for the PR at index current.

    PRs are listed newest first and the current one carries the marker. A
    single-PR stack gets no block.
    """
    if len(pr_numbers) <= 1:
        return ""
    lines = ["\n---"]
    for index in reversed(range(len(pr_numbers))):
        if index == current:
            lines.append(f"* **->** #{pr_numbers[index]}")
        else:
            lines.append(f"* #{pr_numbers[index]}")
    return "\n".join(lines)


def format_body(description: str, pr_numbers: Sequence[int], current: int) -> str:
    """PR body: the change description followed by the stack-index block."""
    return description + "\n" + format_stack_markdown(pr_numbers, current)


class StackedPR:
    """StackedPR implementation.

    The revision service and the review host are injected so tests can swap
    in fakes without touching module state.
    """

    def __init__(self, config: StackedConfig, github: Optional[GitHubClient], jj: RevisionInterface,
                 output: Optional[IO[str]] = None, input: Optional[IO[str]] = None):
        self.config = config
        self._github = github
        self.jj = jj
        self.output = output if output is not None else sys.stdout
        self.input = input if input is not None else sys.stdin

    @property
    def github(self) -> GitHubClient:
        """The review host client; `up` runs without one."""
        return ensure(self._github, "GitHub client is not configured")

    def _print(self, message: str = "") -> None:
        print(message, file=self.output)

    def prompt(self, question: str) -> str:
        """Ask a free-text question; end of input counts as an empty answer."""
        self.output.write(question)
        self.output.flush()
        return self.input.readline().strip()

    def push_pull_requests(self, branch_prefix: str, tip: str = "@") -> List[int]:
        """Push every change of the stack and create or update its pull request.

        Returns the PR numbers in stack order (oldest first).
        """
        main_branch = self.config.main_branch
        change_ids = self.jj.get_stack_change_ids(main_branch, tip)
        if not change_ids:
            self._print("No stacked changes found")
            return []

        print_header(f"Pushing {len(change_ids)} change{'s' if len(change_ids) > 1 else ''}",
                     file=self.output)

        entries: List[Tuple[int, Change]] = []
        prev_bookmark: Optional[BookmarkName] = None

        for position, change_id in enumerate(change_ids):
            change = Change(change_id, self.jj.get_description(change_id), position)

            bookmark = self.jj.get_bookmark(change_id)
            if bookmark is None:
                bookmark = self.jj.create_bookmark(change_id, branch_prefix, position + 1)

            # GitHub only resolves PRs for branches that exist on the remote
            self.jj.git_push(bookmark)
            self._print(f"   Pushed {bookmark}")

            base = prev_bookmark or main_branch
            pr_number = self.github.get_pr_number(bookmark)
            if pr_number is None:
                self._print(f"   No PR for {bookmark} yet, creating one on {base}")
                title = f"{bookmark}: {change.subject}"
                url = self.github.create_pull_request(bookmark, base, self.config.draft, title)
                logger.debug(f"Created {url}")
                pr_number = self.github.get_pr_number(bookmark)
                if pr_number is None:
                    raise StackedError(f"Pull request for {bookmark} not found after creating it")
            elif self.github.get_pr_state(bookmark) == PRState.OPEN:
                self.github.update_pr_base(bookmark, base)
            else:
                # GitHub refuses base changes on closed and merged PRs
                logger.debug(f"Leaving base of {bookmark}: pull request is not open")

            entries.append((pr_number, change))
            prev_bookmark = bookmark

        pr_numbers = [number for number, _ in entries]
        for index, (pr_number, change) in enumerate(entries):
            url = self.github.update_pr_body(pr_number, format_body(change.description, pr_numbers, index))
            self._print(f"   Updated PR #{pr_number}: {url}")

        return pr_numbers

    def _sync_after_merge(self) -> None:
        """Move the whole local stack onto the advanced mainline and push it."""
        main_branch = self.config.main_branch
        self.jj.git_fetch()
        self.jj.rebase_all(main_branch)
        self.jj.git_push_all()

    def _retarget_chain(self, bookmarks: Sequence[BookmarkName]) -> None:
        """Chain the open PRs of bookmarks onto each other, the first one onto the mainline.

        Closed and merged PRs are skipped and do not count as a predecessor.
        """
        prev_open: Optional[BookmarkName] = None
        for bookmark in bookmarks:
            if self.github.get_pr_state(bookmark) != PRState.OPEN:
                logger.debug(f"Skipping {bookmark}: pull request is not open")
                continue
            self.github.update_pr_base(bookmark, prev_open or self.config.main_branch)
            prev_open = bookmark

    def _retarget_open_stack(self) -> None:
        """Re-chain every open PR still in the stack."""
        self._retarget_chain(self.jj.get_stack_bookmarks(self.config.main_branch))

    def merge_pull_requests(self, target: str) -> List[BookmarkName]:
        """Squash-merge the stack bottom-up through target.

        Already merged PRs are skipped, so an interrupted run is resumed by
        running it again. Returns the bookmarks merged by this call.
        """
        main_branch = self.config.main_branch
        bookmarks = self.jj.get_stack_bookmarks(main_branch, stop_at=target)
        if not bookmarks:
            self._print("No bookmarks found in stack")
            return []
        if target not in bookmarks:
            self._print(f"Bookmark {target} not found in stack")
            return []

        print_header(f"Merging {len(bookmarks)} pull request{'s' if len(bookmarks) > 1 else ''} into {main_branch}",
                     file=self.output)

        merged: List[BookmarkName] = []
        # False while a PR merged by an earlier run may still sit in the local stack
        synced = True

        for index, bookmark in enumerate(bookmarks):
            if self.github.get_pr_state(bookmark) == PRState.MERGED:
                self._print(f"   {bookmark} already merged, skipping")
                synced = False
                continue

            # The PR below is merged by now; never merge into its stale branch
            self.github.update_pr_base(bookmark, main_branch)
            if self.github.is_pr_draft(bookmark):
                self._print(f"   {bookmark} is a draft, marking as ready for review")
                self.github.mark_pr_ready(bookmark)
            self.github.merge_pull_request(bookmark, "squash")
            merged.append(bookmark)
            self._print(f"   Merged {bookmark}")

            self._sync_after_merge()
            synced = True
            self._retarget_chain(bookmarks[index + 1:])

        if not synced:
            self._sync_after_merge()

        self._retarget_open_stack()
        return merged

    def update_stack(self) -> List[str]:
        """Rebase the stack onto the mainline and offer to abandon emptied changes.

        Returns the change IDs that were abandoned.
        """
        main_branch = self.config.main_branch

        self._print("Fetching from remote...")
        self.jj.git_fetch()

        self._print(f"Rebasing onto {main_branch}...")
        self.jj.rebase(main_branch)

        empty_change_ids = self.jj.get_empty_change_ids(main_branch)
        self.jj.log(f"{main_branch}-..@")

        abandoned: List[str] = []
        for change_id in empty_change_ids:
            short_id = change_id[:5]
            answer = self.prompt(f"Abandon change '{short_id}'? (y/n) ")
            if answer.lower() not in AFFIRMATIVE_ANSWERS:
                self._print("Abort")
                break
            self.jj.abandon(change_id)
            abandoned.append(change_id)
            self._print(f"Abandoned {short_id}")
        return abandoned
