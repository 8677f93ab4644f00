"""Config parser logic."""

from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import logging

import git
import yaml
from git.exc import InvalidGitRepositoryError, NoSuchPathError
from pydantic import ValidationError

from .. import CONFIG_FILE_NAME, Config, default_config_dict
from ...jj import get_workspace_root, git_store_path
from ...typing import ConfigError, ConfigInitialized, JJRunner

# Get module logger
logger = logging.getLogger(__name__)

def config_file_path(workspace_root: Path) -> Path:
    """Path of the repository config file."""
    return workspace_root / CONFIG_FILE_NAME

def write_default_config(path: Path) -> None:
    """Write the default config to path."""
    with open(path, 'w') as f:
        yaml.safe_dump(default_config_dict(), f, default_flow_style=False, sort_keys=False)

def format_validation_error(path: Path, error: ValidationError) -> str:
    """Render pydantic issues one per line."""
    issues = "\n".join(
        f"  - {'.'.join(str(part) for part in issue['loc'])}: {issue['msg']}"
        for issue in error.errors()
    )
    return f"Invalid config in {path}:\n{issues}"

def parse_remote_url(remote_url: str) -> Optional[Tuple[str, str]]:
    """Extract (owner, name) from an SSH or HTTPS GitHub remote URL."""
    url = remote_url.strip()
    if url.startswith("git@") or ("@" in url and "://" not in url):
        # SSH format: git@github.com:owner/repo.git
        repo_part = url.split(":")[-1]
    else:
        # HTTPS or ssh:// format: https://github.com/owner/repo.git
        repo_part = url.split("://")[-1].split("/", 1)[-1]

    if repo_part.endswith(".git"):
        repo_part = repo_part[:-len(".git")]
    parts = [p for p in repo_part.strip("/").split("/") if p]
    if len(parts) < 2:
        return None
    return parts[-2], parts[-1]

def detect_github_repo(workspace_root: Path, remote: str) -> Optional[Tuple[str, str]]:
    """Read owner/name from the remote URL of the git store behind the jj repo."""
    try:
        repo = git.Repo(git_store_path(workspace_root))
        remote_url = repo.remote(remote).url
    except (InvalidGitRepositoryError, NoSuchPathError, ValueError) as e:
        logger.warning(f"Could not read git remote '{remote}': {e}")
        return None
    logger.debug(f"Remote {remote} url: {remote_url}")
    return parse_remote_url(remote_url)

def load_config_dict(path: Path) -> Dict[str, Dict[str, Any]]:
    """Merge the file's content over the defaults."""
    config = default_config_dict()
    with open(path, 'r') as f:
        try:
            loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid config in {path}:\n  - {e}")
    logger.debug(f"Config from {path}: {loaded}")
    if isinstance(loaded, dict) and isinstance(loaded.get('repo'), dict):
        config['repo'].update(loaded['repo'])
    return config

def parse_config(runner: JJRunner) -> Config:
    """Load .stacked.yaml from the workspace root.

    A missing file is replaced by the defaults and ConfigInitialized is raised
    so the caller stops and asks for a re-run.
    """
    root = get_workspace_root(runner)
    path = config_file_path(root)
    if not path.exists():
        write_default_config(path)
        logger.info(f"Wrote default config to {path}")
        raise ConfigInitialized(str(path))

    raw = load_config_dict(path)
    try:
        config = Config(raw)
    except ValidationError as e:
        raise ConfigError(format_validation_error(path, e))

    if not config.repo.github_repo_owner or not config.repo.github_repo_name:
        detected = detect_github_repo(root, config.repo.github_remote)
        if detected:
            owner, name = detected
            if not config.repo.github_repo_owner:
                config.repo.github_repo_owner = owner
            if not config.repo.github_repo_name:
                config.repo.github_repo_name = name

    return config
