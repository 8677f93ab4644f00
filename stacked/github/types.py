"""Type definitions for GitHub pull request data."""

from enum import Enum
from typing import Literal
from pydantic import BaseModel

# Merge methods accepted by the GitHub merge endpoint
MergeMethod = Literal['merge', 'squash', 'rebase']

class PRState(str, Enum):
    """Pull request state as the stack engines see it.

    Draft is not a state here: a draft PR is OPEN and is_pr_draft() says so.
    """
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    MERGED = "MERGED"

class PullRequestInfo(BaseModel):
    """Snapshot of one pull request."""
    number: int
    title: str
    head: str
    base: str
    draft: bool
    state: PRState
    url: str = ""

def pr_state_from(state: str, merged: bool) -> PRState:
    """Map GitHub's REST state ("open"/"closed") plus the merged flag to PRState."""
    if merged:
        return PRState.MERGED
    if state.lower() == "open":
        return PRState.OPEN
    return PRState.CLOSED
