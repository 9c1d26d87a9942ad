"""
CLI-specific implementation of the conflict prompt interface.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional
import click
from rich.console import Console
from rich.panel import Panel

from .conflict_prompt_interface import ConflictPrompt
from .models import PullRequestDescriptor


class CliConflictPrompt(ConflictPrompt):
    """CLI implementation of the conflict prompt interface using click and rich."""

    def __init__(self, console: Console = None, editor: Optional[str] = None):
        self.console = console or Console()
        self.editor = editor

    def ask_resolution_choice(
        self, descriptor: PullRequestDescriptor, conflict_files: List[Path]
    ) -> str:
        """Show the conflicting files and ask how to proceed."""
        self.console.print(
            f"\n🔥 **REBASE CONFLICT** while applying PR #{descriptor.number}: {descriptor.title}",
            style="bold red",
        )
        self.console.print(f"Branch: {descriptor.branch_name}")

        if conflict_files:
            self.console.print(f"\n📄 **Conflicted Files** ({len(conflict_files)}):", style="bold yellow")
            for conflict_file in conflict_files:
                self.console.print(f"  - {conflict_file}")

        options = [
            "1. Resolve manually (each file opens in your editor)",
            "2. Skip this PR (the rebase is aborted)",
            "3. Abort everything",
        ]
        self.console.print(
            Panel("\n".join(options), title="Options", title_align="left", border_style="blue")
        )

        return click.prompt("Choose an option", type=str, default="", show_default=False).strip()

    def open_in_editor(self, path: Path) -> None:
        """Open the file in the configured editor and wait for it to close."""
        self.console.print(f"✏️  Opening {path} ...", style="cyan")
        click.edit(filename=str(path), editor=self.editor)

    def show_messages(self, messages: List[str], style: str = "") -> None:
        for message in messages:
            self.console.print(message, style=style or None)
