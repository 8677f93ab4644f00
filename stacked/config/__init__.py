"""Config module."""

from typing import Any, Dict
from .models import RepoConfig, StackedConfig

CONFIG_FILE_NAME = ".stacked.yaml"

class Config(StackedConfig):
    """Config object built from the parsed .stacked.yaml dict."""
    def __init__(self, config: Dict[str, Dict[str, Any]]):
        """Initialize with parsed config dict."""
        super().__init__(repo=RepoConfig.model_validate(config.get('repo', {})))

def default_config_dict() -> Dict[str, Dict[str, Any]]:
    """The content written to a fresh .stacked.yaml."""
    return {
        'repo': {
            'main_branch': 'main',
            'draft': True,
        },
    }

def default_config() -> Config:
    """Get default config without reading any file."""
    return Config(default_config_dict())

__all__ = ["CONFIG_FILE_NAME", "Config", "RepoConfig", "StackedConfig",
           "default_config", "default_config_dict"]
