"""
Conflict resolution handling for rebase steps.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from .conflict_prompt_interface import (
    ABORT_ALL_CHOICE,
    MANUAL_RESOLVE_CHOICE,
    SKIP_CHOICE,
    AutoAbortConflictPrompt,
    ConflictPrompt,
)
from .git_manager import GitManager
from .models import ConflictResolutionError, PullRequestDescriptor


logger = logging.getLogger(__name__)


class ResolverState(Enum):
    PROMPTING = "prompting"
    MANUAL_EDIT = "manual_edit"
    RESOLVED = "resolved"
    SKIPPED = "skipped"
    ABORTED_ALL = "aborted_all"


class ResolutionResult(Enum):
    """What the orchestrator should do with the pull request that conflicted."""

    RESOLVED = "resolved"
    SKIP = "skip"
    ABORT_ALL = "abort_all"


_TERMINAL_RESULTS = {
    ResolverState.RESOLVED: ResolutionResult.RESOLVED,
    ResolverState.SKIPPED: ResolutionResult.SKIP,
    ResolverState.ABORTED_ALL: ResolutionResult.ABORT_ALL,
}


class ConflictResolver:
    """Drives one conflicted rebase step to a decision.

    The resolver works on the working tree of the attached GitManager only; it
    never talks to the review platform.
    """

    def __init__(self, git_manager: GitManager, conflict_prompt: ConflictPrompt = None) -> None:
        self.git_manager = git_manager
        self.conflict_prompt = conflict_prompt or AutoAbortConflictPrompt()

    def resolve(
        self, descriptor: PullRequestDescriptor, restore_point: Optional[str] = None
    ) -> ResolutionResult:
        """
        Run the resolution loop for a rebase that stopped on conflicts.

        Args:
            descriptor: The pull request being applied
            restore_point: Commit the working branch pointed at before the rebase

        Returns:
            ResolutionResult for the orchestrator

        Raises:
            ConflictResolutionError: if git refuses to continue although no
                conflicts remain (e.g. the step became an empty commit)
        """
        state = ResolverState.PROMPTING
        logger.info(f"Resolving conflicts for PR #{descriptor.number} ({descriptor.branch_name})")

        while state not in _TERMINAL_RESULTS:
            if state is ResolverState.PROMPTING:
                state = self._prompt(descriptor, restore_point)
            elif state is ResolverState.MANUAL_EDIT:
                state = self._manual_edit(descriptor)

        logger.info(f"Conflict resolution for PR #{descriptor.number} ended in state {state.value}")
        return _TERMINAL_RESULTS[state]

    def _prompt(
        self, descriptor: PullRequestDescriptor, restore_point: Optional[str]
    ) -> ResolverState:
        conflict_files = self.git_manager.get_conflict_files()
        choice = self.conflict_prompt.ask_resolution_choice(descriptor, conflict_files)

        if choice == MANUAL_RESOLVE_CHOICE:
            return ResolverState.MANUAL_EDIT
        if choice == SKIP_CHOICE:
            self.abort_to(restore_point)
            self.conflict_prompt.show_messages(
                [f"⏭️  Skipped PR #{descriptor.number}"], style="yellow"
            )
            return ResolverState.SKIPPED
        if choice == ABORT_ALL_CHOICE:
            self.abort_to(restore_point)
            return ResolverState.ABORTED_ALL

        logger.debug(f"Invalid conflict choice {choice!r}")
        self.conflict_prompt.show_messages(
            [f"Invalid choice {choice!r}. Enter 1, 2 or 3."], style="bold red"
        )
        return ResolverState.PROMPTING

    def _manual_edit(self, descriptor: PullRequestDescriptor) -> ResolverState:
        for path in self.git_manager.get_conflict_files():
            if not path.exists():
                # Deleted on one side; an editor would recreate it
                self.conflict_prompt.show_messages(
                    [f"🗑️  {path} was deleted; the deletion will be staged"], style="yellow"
                )
                continue
            self.conflict_prompt.open_in_editor(path)

        self.git_manager.stage_all()
        continued, remaining = self.git_manager.continue_rebase()
        if continued:
            self.conflict_prompt.show_messages(
                [f"✅ Conflicts resolved for PR #{descriptor.number}"], style="bold green"
            )
            return ResolverState.RESOLVED
        if remaining:
            self.conflict_prompt.show_messages(
                [f"❌ {len(remaining)} file(s) still conflicted."], style="bold red"
            )
            return ResolverState.PROMPTING

        raise ConflictResolutionError(
            f"Rebase of PR #{descriptor.number} could not be continued although no conflicts remain"
        )

    def abort_to(self, restore_point: Optional[str]) -> None:
        """Abort the rebase and make sure the branch is back on `restore_point`."""
        if self.git_manager.is_rebase_in_progress():
            self.git_manager.abort_rebase()
        if restore_point and self.git_manager.get_head_commit() != restore_point:
            logger.warning(f"HEAD moved after abort; resetting to {restore_point[:12]}")
            self.git_manager.reset_hard(restore_point)
