"""
dependings - Consolidate open dependency update pull requests into one branch.

This package rebases every open automated-update pull request onto a single
timestamped branch, pushes it, and opens a summary pull request linking the
originals, with interactive handling of rebase conflicts.
"""

__version__ = "0.1.0"

from .rebase_orchestrator import RebaseOrchestrator
from .models import PullRequestDescriptor, RebaseOutcome, OutcomeStatus, SessionState
from .git_manager import GitManager
from .platform_client import GitHubCli
from .conflict_resolver import ConflictResolver

__all__ = [
    "RebaseOrchestrator",
    "PullRequestDescriptor",
    "RebaseOutcome",
    "OutcomeStatus",
    "SessionState",
    "GitManager",
    "GitHubCli",
    "ConflictResolver",
]
