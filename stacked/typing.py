"""Common types used across the codebase."""

from dataclasses import dataclass
from typing import List, NewType, Optional, Protocol

# NewTypes for revision identifiers
ChangeID = NewType('ChangeID', str)
BookmarkName = NewType('BookmarkName', str)


@dataclass(frozen=True)
class Change:
    """A jj change as seen from the stack: oldest change has position 0."""
    change_id: ChangeID
    description: str
    position: int

    @property
    def subject(self) -> str:
        """First line of the description."""
        return self.description.split("\n")[0]


@dataclass
class CommandResult:
    """Outcome of one external command."""
    code: int
    stdout: str
    stderr: str


class StackedError(Exception):
    """Base class for failures reported to the user."""


class NotInRepositoryError(StackedError):
    """Raised when the current directory is not inside a jj workspace."""


class ConfigError(StackedError):
    """Raised when .stacked.yaml does not validate."""


class ConfigInitialized(StackedError):
    """Raised after a default config file was written; the command must be re-run."""

    def __init__(self, path: str):
        super().__init__(f"Initialized default config at {path}, please re-run the command")
        self.path = path


class GitHubConfigError(StackedError):
    """Raised when the GitHub repository or token cannot be determined."""


class JJCommandError(StackedError):
    """Raised when a jj command exits with a non-zero status."""

    def __init__(self, args: List[str], code: int, stderr: str, prefix: Optional[str] = None):
        self.args_list = args
        self.code = code
        self.stderr = stderr
        head = prefix or f"Command failed: jj {' '.join(args)}"
        super().__init__(f"{head}\n{stderr}".rstrip())


class JJRunner(Protocol):
    """Protocol for something that can run jj commands."""

    def run_cmd(self, args: List[str], check: bool = True,
                error_prefix: Optional[str] = None) -> CommandResult:
        """Run jj with captured output."""
        ...

    def run_interactive(self, args: List[str]) -> int:
        """Run jj with inherited stdio."""
        ...


class RevisionInterface(Protocol):
    """Protocol for the revision-control operations the stack engines need."""

    def get_stack_change_ids(self, main_branch: str, tip: str = "@") -> List[ChangeID]:
        ...

    def get_stack_bookmarks(self, main_branch: str,
                            stop_at: Optional[str] = None) -> List[BookmarkName]:
        ...

    def get_empty_change_ids(self, main_branch: str) -> List[ChangeID]:
        ...

    def get_description(self, change_id: ChangeID) -> str:
        ...

    def get_bookmark(self, change_id: ChangeID) -> Optional[BookmarkName]:
        ...

    def create_bookmark(self, change_id: ChangeID, prefix: str, position: int) -> BookmarkName:
        ...

    def git_push(self, bookmark: str) -> None:
        ...

    def git_push_all(self) -> None:
        ...

    def git_fetch(self) -> None:
        ...

    def rebase(self, destination: str) -> None:
        ...

    def rebase_all(self, destination: str) -> None:
        ...

    def abandon(self, change_id: ChangeID) -> None:
        ...

    def log(self, revset: str) -> None:
        ...
