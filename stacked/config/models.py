"""Pydantic models for config types."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

class RepoConfig(BaseModel):
    """Repository configuration."""
    model_config = ConfigDict(extra="allow")  # Unknown keys are ignored, not rejected

    main_branch: str = "main"
    draft: bool = True
    github_remote: str = "origin"
    github_repo_owner: Optional[str] = None
    github_repo_name: Optional[str] = None

    @field_validator("main_branch")
    @classmethod
    def main_branch_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

class StackedConfig(BaseModel):
    """Full stacked configuration."""
    model_config = ConfigDict(extra="allow")

    repo: RepoConfig = Field(default_factory=RepoConfig)

    @property
    def main_branch(self) -> str:
        return self.repo.main_branch

    @property
    def draft(self) -> bool:
        return self.repo.draft
