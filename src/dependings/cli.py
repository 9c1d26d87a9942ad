"""
Command-line interface for the dependency PR consolidation tool.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .rebase_orchestrator import RebaseOrchestrator
from .cli_conflict_prompt import CliConflictPrompt
from .conflict_prompt_interface import AutoAbortConflictPrompt, AutoSkipConflictPrompt, ConflictPrompt
from .models import DependingsError, OutcomeStatus, SessionState, UserAbort
from .platform_client import DEFAULT_AUTHOR, DEFAULT_LIST_LIMIT
from .reporting import build_pr_body, count_outcomes
from . import __version__ as PACKAGE_VERSION


console = Console()
logger = logging.getLogger(__name__)


def _print_version(ctx, param, value):
    """Eager option callback to print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"dependings {PACKAGE_VERSION}")
    ctx.exit()


def _default_log_path() -> Path:
    """Determine default log file path (~/.dependings/dependings.log)."""
    env_path = os.environ.get("DEPENDINGS_LOG")
    if env_path:
        p = Path(env_path).expanduser()
        p.parent.mkdir(parents=True, exist_ok=True)
        return p
    base = Path.home() / ".dependings"
    base.mkdir(parents=True, exist_ok=True)
    return base / "dependings.log"


class SafeConsoleFilter(logging.Filter):
    """Replace characters the console encoding cannot represent.

    Log messages carry emoji; legacy Windows code pages would otherwise raise
    UnicodeEncodeError inside RichHandler.
    """

    def __init__(self, encoding: Optional[str] = None):
        super().__init__()
        self.encoding = encoding or getattr(sys.stderr, "encoding", None) or "utf-8"

    def filter(self, record: logging.LogRecord) -> bool:  # always keep the record
        message = record.getMessage()
        try:
            message.encode(self.encoding, errors="strict")
        except UnicodeEncodeError:
            record.msg = message.encode(self.encoding, errors="replace").decode(self.encoding, errors="replace")
            record.args = ()
        return True


def setup_logging(verbose: bool = False, console_level: Optional[str] = None, log_file: Optional[Path] = None) -> Path:
    """Setup logging: a rotating DEBUG log file plus optional Rich console output.

    Console logging is disabled unless --verbose or --log-level is given.
    Returns the log file path.
    """
    log_path = Path(log_file) if log_file else _default_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    # Clear existing handlers to avoid duplication in tests / repeated invocations
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    file_handler = RotatingFileHandler(
        str(log_path), maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    if verbose or console_level:
        level_map = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }
        console_handler = RichHandler(console=console, rich_tracebacks=True)
        console_handler.setLevel(level_map.get((console_level or "info").lower(), logging.INFO))
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        encoding = getattr(console.file, "encoding", None)
        console_handler.addFilter(SafeConsoleFilter(encoding=encoding))
        root.addHandler(console_handler)

    return log_path


def _maybe_print_log_notice(verbose: bool, console_level: Optional[str], log_path: Path) -> None:
    """Inform user about logging destination and how to enable console logs."""
    if verbose or console_level:
        return
    console.print(f"[dim]Logs are written to {log_path}. Console logs are disabled by default. Use -v or --log-level to enable.[/dim]")


class DependingsCommand(click.Command):
    """Command that reports usage errors (unknown flags, bad values) with exit status 1."""

    def parse_args(self, ctx: click.Context, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise


def _build_conflict_prompt(on_conflict: str, editor: Optional[str]) -> ConflictPrompt:
    if on_conflict == "skip":
        return AutoSkipConflictPrompt()
    if on_conflict == "abort":
        return AutoAbortConflictPrompt()
    return CliConflictPrompt(console, editor=editor)


def _display_outcomes(session: SessionState) -> None:
    """Show a table of per-PR outcomes."""
    if not session.outcomes:
        console.print("\nNo dependency pull requests needed rebasing.")
        return

    table = Table(title="Dependency Pull Requests", show_header=True, header_style="bold magenta")
    table.add_column("PR", style="cyan", justify="right")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Note", style="dim")

    for outcome in session.outcomes:
        status = (
            "[green]rebased[/green]"
            if outcome.status is OutcomeStatus.SUCCEEDED
            else "[yellow]skipped[/yellow]"
        )
        table.add_row(f"#{outcome.descriptor.number}", outcome.descriptor.title, status, outcome.reason or "")

    console.print(table)


def _display_summary(session: SessionState) -> None:
    _display_outcomes(session)

    if session.dry_run:
        if session.succeeded:
            console.print(Panel(build_pr_body(session), title="Pull Request Preview", border_style="blue"))
        console.print("\n🔍 **Dry Run Complete** - No changes made")
    elif session.pull_request_url:
        console.print(f"\n🎉 Created PR: {session.pull_request_url}", style="bold green")

    if session.close_failures:
        numbers = ", ".join(f"#{n}" for n in session.close_failures)
        console.print(f"⚠️  Could not close: {numbers} (see log for details)", style="yellow")

    counts = count_outcomes(session)
    console.print(
        f"\n📊 Successfully rebased: {counts.succeeded} | Skipped: {counts.skipped}", style="bold"
    )


@click.command(cls=DependingsCommand)
@click.option(
    "--version",
    "-V",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option("--dry-run", is_flag=True, help="Perform a dry run without making any changes.")
@click.option("--close-prs", is_flag=True, help="Close the consolidated PRs after creating the new PR.")
@click.option("--delete-branch", is_flag=True, help="Delete the local branch after it is pushed.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose console logging (INFO)")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Console log level. By default, console logging is disabled.",
)
@click.option(
    "--repo-path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Path to repository (defaults to current directory)",
)
@click.option("--remote", "remote_name", default="origin", show_default=True, help="Remote to fetch from and push to.")
@click.option("--author", default=DEFAULT_AUTHOR, show_default=True, help="Author of the update PRs to consolidate.")
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=DEFAULT_LIST_LIMIT,
    show_default=True,
    help="Maximum number of open PRs to list.",
)
@click.option(
    "--on-conflict",
    type=click.Choice(["prompt", "skip", "abort"], case_sensitive=False),
    default="prompt",
    show_default=True,
    help="How to handle rebase conflicts.",
)
@click.option(
    "--editor",
    envvar="DEPENDINGS_EDITOR",
    default=None,
    help="Editor used for manual conflict resolution (defaults to $VISUAL/$EDITOR).",
)
def cli(
    dry_run: bool,
    close_prs: bool,
    delete_branch: bool,
    verbose: bool,
    log_level: Optional[str],
    repo_path: Optional[Path],
    remote_name: str,
    author: str,
    limit: int,
    on_conflict: str,
    editor: Optional[str],
) -> None:
    """
    Create a new branch with the current timestamp, rebase all open Dependabot
    PRs into it, push the branch, and open a PR linking the original PRs.
    Optionally close the original PRs and delete the local branch.
    """
    log_path = setup_logging(verbose, console_level=log_level)
    _maybe_print_log_notice(verbose, log_level, log_path)

    try:
        orchestrator = RebaseOrchestrator(
            repo_path.resolve() if repo_path else None,
            _build_conflict_prompt(on_conflict.lower(), editor),
            remote_name=remote_name,
            author=author,
            limit=limit,
        )
        session = orchestrator.run(
            dry_run=dry_run, close_prs=close_prs, delete_branch=delete_branch
        )
    except UserAbort as e:
        console.print(f"\n🚫 **Aborted:** {e}", style="bold red")
        logger.debug("Run aborted by user", exc_info=True)
        sys.exit(1)
    except DependingsError as e:
        console.print(f"\n❌ **Error:** {e}", style="bold red")
        # Debug stack trace to file logs for diagnostics
        logger.debug("Run failed due to DependingsError", exc_info=True)
        sys.exit(1)
    except (click.Abort, KeyboardInterrupt):
        console.print("\n\n🚫 **Operation cancelled by user**", style="bold yellow")
        logger.debug("Operation cancelled by user", exc_info=True)
        sys.exit(130)
    except Exception as e:
        console.print(f"\n💥 **Unexpected Error:** {e}", style="bold red")
        if verbose:
            console.print_exception()
        logger.debug("Unexpected error during run", exc_info=True)
        sys.exit(1)

    _display_summary(session)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
