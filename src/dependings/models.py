"""
Data models for the dependency PR consolidation tool.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class PullRequestDescriptor:
    """An open automated-update pull request as returned by the platform listing."""

    number: int
    branch_name: str
    title: str
    url: str

    @classmethod
    def from_payload(cls, payload: dict) -> PullRequestDescriptor:
        """Build a descriptor from one entry of `gh pr list --json number,headRefName,title,url`."""
        return cls(
            number=int(payload["number"]),
            branch_name=str(payload["headRefName"]),
            title=str(payload["title"]),
            url=str(payload["url"]),
        )

    def remote_ref(self, remote_name: str = "origin") -> str:
        return f"{remote_name}/{self.branch_name}"


class OutcomeStatus(Enum):
    """Final status of one pull request within a session."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RebaseOutcome:
    """Result of processing one pull request. Never mutated once recorded."""

    descriptor: PullRequestDescriptor
    status: OutcomeStatus
    reason: Optional[str] = None


@dataclass
class SessionState:
    """State of a single consolidation run."""

    timestamp_id: str
    working_branch: str
    dry_run: bool = False
    close_originals: bool = False
    delete_branch_after: bool = False
    original_branch: Optional[str] = None
    outcomes: List[RebaseOutcome] = field(default_factory=list)
    pull_request_url: Optional[str] = None
    close_failures: List[int] = field(default_factory=list)

    def record(
        self,
        descriptor: PullRequestDescriptor,
        status: OutcomeStatus,
        reason: Optional[str] = None,
    ) -> RebaseOutcome:
        """Append the outcome for a descriptor; each descriptor may be recorded once."""
        if any(o.descriptor.number == descriptor.number for o in self.outcomes):
            raise ValueError(f"Outcome for PR #{descriptor.number} already recorded")
        outcome = RebaseOutcome(descriptor=descriptor, status=status, reason=reason)
        self.outcomes.append(outcome)
        return outcome

    @property
    def succeeded(self) -> List[RebaseOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.SUCCEEDED]

    @property
    def skipped(self) -> List[RebaseOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.SKIPPED]


class DependingsError(Exception):
    """Base exception for consolidation runs."""

    pass


class PreconditionError(DependingsError):
    """Raised when the environment cannot support a run (no repository, missing tools)."""

    pass


class GitRepositoryError(DependingsError):
    """Exception raised for Git repository related errors."""

    pass


class AdapterError(DependingsError):
    """Exception raised when the review platform or remote rejects an operation."""

    pass


class PushError(AdapterError):
    """Exception raised when pushing the working branch fails."""

    pass


class ConflictResolutionError(DependingsError):
    """Exception raised when a rebase cannot be continued after manual resolution."""

    pass


class UserAbort(DependingsError):
    """Raised when the user chooses to abort the whole run."""

    pass
