"""
git-up - Synchronize every local branch with its upstream

A CLI tool that fetches, fast-forwards and prunes local git branches
in a single invocation.
"""

__version__ = "0.3.0"

# Re-export core models for convenience
from gitup.core.config.models import GitUpConfig
from gitup.core.sync.models import SyncConfig, SyncReport

__all__ = ["GitUpConfig", "SyncConfig", "SyncReport", "__version__"]
