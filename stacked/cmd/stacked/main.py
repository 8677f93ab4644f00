"""CLI entry point."""

import os
import sys
import functools
import logging
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

import click
from click import Context
from github import GithubException

from ... import setup_logging
from ...config import Config
from ...config.config_parser import parse_config
from ...github import GitHubClient, find_github_token
from ...jj import JujutsuClient, RealJJ
from ...stack import StackedPR
from ...typing import ConfigInitialized, GitHubConfigError, StackedError

# Get module logger
logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])

def check(err: Optional[Exception]) -> None:
    """Check for error and exit if needed."""
    if err:
        logger.error(f"{err}")
        sys.exit(1)

def handle_errors(func: F) -> F:
    """Turn expected failures into a logged message and a non-zero exit."""
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ConfigInitialized as e:
            click.echo(str(e))
            sys.exit(0)
        except (StackedError, GithubException) as e:
            check(e)
    return wrapper  # type: ignore[return-value]

def jj_passthrough(name: str) -> click.Command:
    """Build a command that hands `stacked NAME ARGS...` to jj unchanged."""
    @click.command(name=name, add_help_option=False,
                   context_settings={'ignore_unknown_options': True, 'allow_extra_args': True})
    @click.argument('args', nargs=-1, type=click.UNPROCESSED)
    @click.pass_context
    @handle_errors
    def passthrough(ctx: Context, args: Tuple[str, ...]) -> None:
        runner = (ctx.obj or {}).get("jj_runner") or RealJJ()
        ctx.exit(runner.run_interactive([name, *args]))
    return passthrough

class AliasedGroup(click.Group):
    """Command group with support for aliases.

    Names that are neither a command nor an alias are forwarded to jj.
    """

    def __init__(self, name: Optional[str] = None, commands: Optional[Dict[str, click.Command]] = None, **attrs: Any) -> None:
        """Initialize with aliases map."""
        super().__init__(name, commands, **attrs)
        self.aliases: Dict[str, str] = {}

    def add_alias(self, alias: str, command: str) -> None:
        """Add an alias for a command."""
        self.aliases[alias] = command

    def get_command(self, ctx: Context, cmd_name: str) -> Optional[click.Command]:
        """Get a command by name, supporting aliases."""
        if cmd_name in self.aliases:
            cmd_name = self.aliases[cmd_name]
        command = super().get_command(ctx, cmd_name)
        if command is None:
            return jj_passthrough(cmd_name)
        return command

@click.group(cls=AliasedGroup)
@click.version_option(package_name="stacked")
@click.pass_context
def cli(ctx: Context) -> None:
    """Create, update and merge stacked PRs for jj changes."""
    ctx.obj = ctx.obj or {}

def setup_jj(directory: Optional[str] = None) -> Tuple[Config, JujutsuClient]:
    """Load config and build the jj client for the current workspace."""
    if directory:
        os.chdir(directory)
    runner = RealJJ()
    config = parse_config(runner)
    return config, JujutsuClient(runner, remote=config.repo.github_remote)

def setup_github(config: Config) -> GitHubClient:
    """Build the GitHub client from the discovered token."""
    from ...github.adapters import PyGithubAdapter

    token = find_github_token()
    if not token:
        raise GitHubConfigError(
            "No GitHub token found. Try one of:\n"
            "1. Set GITHUB_TOKEN or GH_TOKEN env var\n"
            "2. Log in with 'gh auth login'"
        )
    return GitHubClient(config, PyGithubAdapter.from_token(token))

def build_stacked_pr(ctx: Context, directory: Optional[str], with_github: bool = True) -> StackedPR:
    """Build StackedPR, or take a prebuilt one from ctx.obj (used by tests)."""
    prebuilt = (ctx.obj or {}).get("stackedpr")
    if prebuilt is not None:
        return prebuilt
    config, jj = setup_jj(directory)
    github = setup_github(config) if with_github else None
    return StackedPR(config, github, jj)

directory_option = click.option(
    '-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
    help='Run as if stacked was started in DIRECTORY instead of the current working directory')
verbose_option = click.option(
    '-v', '--verbose', count=True,
    help="Increase verbosity (can be used multiple times for more verbosity)")

@cli.command(name="push", help="Push changes and create/update stacked PRs")
@click.argument('prefix')
@click.option('--tip', '-t', default="@", show_default=True,
              help="Top of the stack to push (jj revision); use @- when the working-copy change is an undescribed scratch change")
@directory_option
@verbose_option
@click.pass_context
@handle_errors
def push(ctx: Context, prefix: str, tip: str, directory: Optional[str], verbose: int) -> None:
    """Push command."""
    setup_logging(verbose)
    stackedpr = build_stacked_pr(ctx, directory)
    stackedpr.push_pull_requests(prefix, tip)

@cli.command(name="merge", help="Merge PRs bottom-up through BOOKMARK and re-chain the rest")
@click.argument('bookmark')
@directory_option
@verbose_option
@click.pass_context
@handle_errors
def merge(ctx: Context, bookmark: str, directory: Optional[str], verbose: int) -> None:
    """Merge command."""
    setup_logging(verbose)
    stackedpr = build_stacked_pr(ctx, directory)
    stackedpr.merge_pull_requests(bookmark)

@cli.command(name="up", help="Fetch, rebase onto the main branch, and abandon empty changes")
@directory_option
@verbose_option
@click.pass_context
@handle_errors
def up(ctx: Context, directory: Optional[str], verbose: int) -> None:
    """Up command."""
    setup_logging(verbose)
    stackedpr = build_stacked_pr(ctx, directory, with_github=False)
    stackedpr.update_stack()


def main() -> None:
    """Main entry point."""
    cli.add_alias('p', 'push')
    cli.add_alias('m', 'merge')
    cli(obj={})

if __name__ == "__main__":
    main()
