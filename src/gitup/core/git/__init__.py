"""
Git access for git-up.

The gateway is the single point of contact with the repository: every
read and every ref mutation made during a sync goes through it.

Example:
    >>> from gitup.core.git import GitGateway
    >>> gateway = GitGateway()
    >>> gateway.current_branch()
    'main'
"""

from .gateway import GitGateway, NotARepositoryError, VcsError
from .models import LocalBranch, RemoteRef

__all__ = [
    "GitGateway",
    "LocalBranch",
    "NotARepositoryError",
    "RemoteRef",
    "VcsError",
]
