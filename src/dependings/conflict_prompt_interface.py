"""
UI-agnostic interface for conflict resolution prompting.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from .models import PullRequestDescriptor


MANUAL_RESOLVE_CHOICE = "1"
SKIP_CHOICE = "2"
ABORT_ALL_CHOICE = "3"


class ConflictPrompt(ABC):
    """Abstract interface for deciding what to do when a rebase conflicts."""

    @abstractmethod
    def ask_resolution_choice(
        self, descriptor: PullRequestDescriptor, conflict_files: List[Path]
    ) -> str:
        """
        Ask how to handle the conflicts of one pull request.

        Args:
            descriptor: The pull request whose rebase conflicted
            conflict_files: Paths reported as unmerged

        Returns:
            The raw answer: "1" (resolve manually), "2" (skip) or "3" (abort all).
            Anything else is treated as invalid input and asked again.
        """
        pass

    @abstractmethod
    def open_in_editor(self, path: Path) -> None:
        """Open a conflicted file for editing and block until the editor exits."""
        pass

    @abstractmethod
    def show_messages(self, messages: List[str], style: str = "") -> None:
        """Display generic user-facing messages from core logic.

        Args:
            messages: List of strings to display
            style: Optional style hint for UI implementations
        """
        pass


class AutoSkipConflictPrompt(ConflictPrompt):
    """Non-interactive prompt that skips every conflicting pull request."""

    def ask_resolution_choice(
        self, descriptor: PullRequestDescriptor, conflict_files: List[Path]
    ) -> str:
        return SKIP_CHOICE

    def open_in_editor(self, path: Path) -> None:
        pass

    def show_messages(self, messages: List[str], style: str = "") -> None:
        pass


class AutoAbortConflictPrompt(ConflictPrompt):
    """Non-interactive prompt that aborts the run on the first conflict."""

    def ask_resolution_choice(
        self, descriptor: PullRequestDescriptor, conflict_files: List[Path]
    ) -> str:
        return ABORT_ALL_CHOICE

    def open_in_editor(self, path: Path) -> None:
        pass

    def show_messages(self, messages: List[str], style: str = "") -> None:
        pass
