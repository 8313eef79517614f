"""
Configuration data models for git-up.

These models define the structure of .git-up.json and
~/.config/git-up/config.json files, with validation via Pydantic.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gitup.core.sync.models import SyncConfig


class GitUpConfig(BaseModel):
    """
    Main git-up configuration.

    Values come from defaults, the user config file, the project config
    file and GIT_UP_* environment variables, in increasing precedence.
    CLI flags are applied on top by the CLI layer.

    Example:
        >>> config = GitUpConfig(fallback_branch="develop")
        >>> config.to_sync_config().prune
        True
    """

    model_config = ConfigDict(extra="ignore")

    remote: Optional[str] = Field(
        default=None,
        description="Only fetch from this remote (default: every remote)",
    )
    fallback_branch: Optional[str] = Field(
        default=None,
        description="Branch to check out before pruning the checked-out branch "
        "(default: the main remote's default branch)",
    )
    prune: bool = Field(
        default=True,
        description="Delete local branches whose upstream was deleted",
    )
    prune_unmerged: bool = Field(
        default=True,
        description="Also delete gone branches that are not merged into the fallback branch",
    )

    @field_validator("remote", "fallback_branch")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank names as unset and reject names git would refuse."""
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if any(c.isspace() for c in v) or v.startswith("-"):
            raise ValueError(f"invalid git name: {v!r}")
        return v

    def to_sync_config(self, dry_run: bool = False) -> SyncConfig:
        """Build the per-run options handed to the executor."""
        return SyncConfig(
            prune=self.prune,
            dry_run=dry_run,
            prune_unmerged=self.prune_unmerged,
        )
