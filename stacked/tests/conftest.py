"""Shared fixtures for stacked tests."""

import io
from typing import Callable, List

import pytest

from stacked.config import Config
from stacked.github import GitHubClient
from stacked.stack import StackedPR
from stacked.tests.fake_jj import FakeChange, FakeJJ
from stacked.tests.fake_pygithub import FakeGithub, FakeRepository

OWNER = "acme"
REPO_NAME = "widgets"


@pytest.fixture
def config() -> Config:
    return Config({
        'repo': {
            'main_branch': 'main',
            'draft': True,
            'github_repo_owner': OWNER,
            'github_repo_name': REPO_NAME,
        }
    })


@pytest.fixture
def fake_github() -> FakeGithub:
    return FakeGithub()


@pytest.fixture
def fake_repo(fake_github: FakeGithub) -> FakeRepository:
    return fake_github.get_repo(f"{OWNER}/{REPO_NAME}")


@pytest.fixture
def github(config: Config, fake_github: FakeGithub) -> GitHubClient:
    return GitHubClient(config, fake_github)


@pytest.fixture
def make_jj(fake_repo: FakeRepository) -> Callable[[List[FakeChange]], FakeJJ]:
    """Build a FakeJJ whose rebase_all drops changes whose PR merged on the fake repo."""
    def landed(bookmark: str) -> bool:
        try:
            return fake_repo.pull_for(bookmark).merged
        except KeyError:
            return False

    def factory(changes: List[FakeChange]) -> FakeJJ:
        return FakeJJ(changes, landed=landed)
    return factory


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def make_stackedpr(config: Config, github: GitHubClient, output: io.StringIO) -> Callable[..., StackedPR]:
    def factory(jj: FakeJJ, answers: str = "") -> StackedPR:
        return StackedPR(config, github, jj, output=output, input=io.StringIO(answers))
    return factory
