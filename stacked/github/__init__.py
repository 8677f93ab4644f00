"""GitHub interfaces and implementation."""

import os
import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

import yaml

from ..config.models import StackedConfig
from ..typing import GitHubConfigError, StackedError
from .types import MergeMethod, PRState, PullRequestInfo, pr_state_from

# Get module logger
logger = logging.getLogger(__name__)

# Define protocols for GitHub objects
@runtime_checkable
class GitHubRefProtocol(Protocol):
    """Protocol for GitHub ref objects (base/head references)."""
    @property
    def ref(self) -> str:
        """Get the ref name (e.g., 'main', 'feature-branch')."""
        ...

@runtime_checkable
class GitHubPullRequestProtocol(Protocol):
    """Protocol for GitHub pull request objects (real or fake)."""
    @property
    def number(self) -> int:
        ...

    @property
    def title(self) -> str:
        ...

    @property
    def body(self) -> str:
        ...

    @property
    def state(self) -> str:
        """Get the PR state (open, closed)."""
        ...

    @property
    def draft(self) -> bool:
        ...

    @property
    def merged(self) -> bool:
        ...

    @property
    def html_url(self) -> str:
        ...

    @property
    def base(self) -> GitHubRefProtocol:
        ...

    @property
    def head(self) -> GitHubRefProtocol:
        ...

    def edit(self, title: Optional[str] = None, body: Optional[str] = None,
             state: Optional[str] = None, base: Optional[str] = None) -> None:
        """Edit the pull request."""
        ...

    def merge(self, merge_method: str = "merge") -> None:
        """Merge the pull request."""
        ...

    def mark_ready_for_review(self) -> None:
        """Turn a draft pull request into a regular one."""
        ...

@runtime_checkable
class GitHubRepoProtocol(Protocol):
    """Protocol for GitHub repository objects (real or fake)."""
    def get_pull(self, number: int) -> GitHubPullRequestProtocol:
        ...

    def get_pulls(self, state: str = "open", head: str = "",
                  base: str = "") -> List[GitHubPullRequestProtocol]:
        """Get pull requests with optional filtering."""
        ...

    def create_pull(self, title: str, body: str, base: str, head: str,
                    draft: bool = False) -> GitHubPullRequestProtocol:
        ...

@runtime_checkable
class PyGithubProtocol(Protocol):
    """Protocol for PyGithub implementations (real or fake)."""
    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol:
        ...

def find_github_token() -> Optional[str]:
    """Find GitHub token from env vars or the gh CLI config."""
    for var in ("GITHUB_TOKEN", "GH_TOKEN"):
        token = os.environ.get(var)
        if token:
            return token

    # Then try gh CLI config at ~/.config/gh/hosts.yml
    gh_config_path = Path.home() / ".config" / "gh" / "hosts.yml"
    if not gh_config_path.exists():
        return None
    try:
        with open(gh_config_path, "r") as f:
            gh_config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error reading gh CLI config: {e}")
        return None
    if gh_config and "github.com" in gh_config:
        github_config: Dict[str, object] = gh_config["github.com"] or {}
        token = github_config.get("oauth_token")
        if isinstance(token, str) and token:
            return token
    return None


class GitHubClient:
    """Review host adapter: the pull request operations the stack engines use.

    Every branch-keyed lookup treats "no pull request" as None. Failures of the
    API itself (github.GithubException) propagate to the caller.
    """
    def __init__(self, config: StackedConfig, github_client: PyGithubProtocol):
        self.config = config
        self.client = github_client
        self._repo: Optional[GitHubRepoProtocol] = None

    @property
    def owner(self) -> str:
        owner = self.config.repo.github_repo_owner
        if not owner:
            raise GitHubConfigError("GitHub repository owner unknown - set repo.github_repo_owner in .stacked.yaml")
        return owner

    @property
    def repo(self) -> GitHubRepoProtocol:
        """Get GitHub repository."""
        if self._repo is None:
            name = self.config.repo.github_repo_name
            if not name:
                raise GitHubConfigError("GitHub repository name unknown - set repo.github_repo_name in .stacked.yaml")
            self._repo = self.client.get_repo(f"{self.owner}/{name}")
        return self._repo

    def _find_pull(self, branch: str) -> Optional[GitHubPullRequestProtocol]:
        """Find the pull request whose head is branch, in any state."""
        head_filter = f"{self.owner}:{branch}"
        logger.debug(f"Searching for PR with head filter {head_filter}")
        for pr in self.repo.get_pulls(state="all", head=head_filter):
            if pr.head.ref == branch:
                return pr
        return None

    def _must_find_pull(self, branch: str) -> GitHubPullRequestProtocol:
        pr = self._find_pull(branch)
        if pr is None:
            raise StackedError(f"No pull request found for branch {branch}")
        return pr

    def get_pull_request(self, branch: str) -> Optional[PullRequestInfo]:
        """Snapshot of the pull request for branch, or None."""
        pr = self._find_pull(branch)
        if pr is None:
            return None
        return PullRequestInfo(
            number=pr.number, title=pr.title, head=pr.head.ref, base=pr.base.ref,
            draft=pr.draft, state=pr_state_from(pr.state, pr.merged), url=pr.html_url,
        )

    def get_pr_number(self, branch: str) -> Optional[int]:
        """Number of the pull request for branch, or None if there is none yet."""
        logger.info(f"> github find pr : {branch}")
        pr = self._find_pull(branch)
        return pr.number if pr is not None else None

    def create_pull_request(self, head: str, base: str, draft: bool, title: str) -> str:
        """Create a pull request and return its URL."""
        logger.info(f"> github create : {head} -> {base} : {title}")
        pr = self.repo.create_pull(title=title, body="", base=base, head=head, draft=draft)
        return pr.html_url

    def update_pr_body(self, pr_number: int, body: str) -> str:
        """Replace the body of a pull request and return its URL."""
        logger.info(f"> github update body #{pr_number}")
        pr = self.repo.get_pull(pr_number)
        pr.edit(body=body)
        return pr.html_url

    def update_pr_base(self, branch: str, new_base: str) -> bool:
        """Point the pull request for branch at new_base. Returns True if it changed."""
        pr = self._must_find_pull(branch)
        current_base = pr.base.ref
        if current_base == new_base:
            logger.debug(f"PR #{pr.number} already targets {new_base}")
            return False
        logger.info(f"> github update base #{pr.number} : {current_base} -> {new_base}")
        pr.edit(base=new_base)
        return True

    def get_pr_state(self, branch: str) -> Optional[PRState]:
        """State of the pull request for branch, or None if there is none."""
        pr = self._find_pull(branch)
        if pr is None:
            return None
        return pr_state_from(pr.state, pr.merged)

    def is_pr_draft(self, branch: str) -> bool:
        return self._must_find_pull(branch).draft

    def mark_pr_ready(self, branch: str) -> None:
        pr = self._must_find_pull(branch)
        logger.info(f"> github ready #{pr.number} : {branch}")
        pr.mark_ready_for_review()

    def merge_pull_request(self, branch: str, merge_method: MergeMethod = "squash") -> None:
        pr = self._must_find_pull(branch)
        logger.info(f"> github merge #{pr.number} : {branch} ({merge_method})")
        pr.merge(merge_method=merge_method)
