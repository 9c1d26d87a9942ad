"""
Main orchestration logic for consolidating dependency update pull requests.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .models import (
    ConflictResolutionError,
    GitRepositoryError,
    PreconditionError,
    OutcomeStatus,
    PullRequestDescriptor,
    RebaseOutcome,
    SessionState,
    UserAbort,
)
from .git_manager import GitManager
from .platform_client import DEFAULT_AUTHOR, DEFAULT_LIST_LIMIT, GitHubCli
from .conflict_prompt_interface import ConflictPrompt
from .conflict_resolver import ConflictResolver, ResolutionResult
from .reporting import build_pr_body, build_pr_title


logger = logging.getLogger(__name__)


WORKING_BRANCH_PREFIX = "bump-deps"
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


class RebaseOrchestrator:
    """Rebases open dependency update PRs into one branch and publishes a summary PR."""

    def __init__(
        self,
        root_path: Optional[Path] = None,
        conflict_prompt: ConflictPrompt = None,
        *,
        git_manager: Optional[GitManager] = None,
        platform: Optional[GitHubCli] = None,
        remote_name: str = "origin",
        author: str = DEFAULT_AUTHOR,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> None:
        """Initialize the orchestrator. Fails with PreconditionError outside a Git repository."""
        self.root_path = root_path or Path.cwd()
        self.git_manager = git_manager or GitManager(self.root_path)
        # Discover the repository now so a missing repo fails before any work
        _ = self.git_manager.repo
        self.platform = platform or GitHubCli(self.git_manager.working_dir, author=author, limit=limit)
        self.remote_name = remote_name
        self.conflict_resolver = ConflictResolver(self.git_manager, conflict_prompt)
        self._rebase_started = False
        logger.info(f"Initialized orchestrator for {self.root_path}")

    def check_preconditions(self) -> None:
        """Refuse to start unless `gh` is available and a branch is checked out with no rebase running."""
        self.platform.ensure_available()
        if self.git_manager.is_rebase_in_progress():
            raise PreconditionError(
                "A rebase is already in progress. Finish it or run 'git rebase --abort' first."
            )
        try:
            self.git_manager.get_current_branch()
        except GitRepositoryError as e:
            raise PreconditionError(f"HEAD is detached. Check out a branch first. ({e})")

    def start_session(
        self,
        dry_run: bool = False,
        close_prs: bool = False,
        delete_branch: bool = False,
        timestamp: Optional[str] = None,
    ) -> SessionState:
        """Create the session state for one run; nothing is changed in the repository."""
        timestamp_id = timestamp or datetime.now().strftime(TIMESTAMP_FORMAT)
        session = SessionState(
            timestamp_id=timestamp_id,
            working_branch=f"{WORKING_BRANCH_PREFIX}-{timestamp_id}",
            dry_run=dry_run,
            close_originals=close_prs,
            delete_branch_after=delete_branch,
        )
        try:
            session.original_branch = self.git_manager.get_current_branch()
        except GitRepositoryError as e:
            logger.warning(f"Not on a branch, the original checkout will not be restored: {e}")
        return session

    def run(
        self,
        dry_run: bool = False,
        close_prs: bool = False,
        delete_branch: bool = False,
        timestamp: Optional[str] = None,
    ) -> SessionState:
        """
        Execute a full consolidation run.

        Returns:
            The final SessionState

        Raises:
            UserAbort: if the user aborted during conflict resolution
            PreconditionError: if the repository is not in a state to start from
            DependingsError: for fatal adapter or repository failures
        """
        self.check_preconditions()
        self._rebase_started = False
        session = self.start_session(dry_run, close_prs, delete_branch, timestamp)
        logger.info(f"Starting dependency consolidation into {session.working_branch}")

        try:
            self.prepare_working_branch(session)

            logger.info("Getting the list of open dependency PRs")
            descriptors = self.platform.list_open_dependency_prs()

            self.rebase_pull_requests(session, descriptors)

            if session.succeeded:
                self.publish(session)
                if session.close_originals:
                    self.close_originals(session)
            else:
                logger.warning("No pull requests were rebased; nothing to push or open")
        except (Exception, KeyboardInterrupt):
            self._cleanup_failed_rebase()
            raise

        self.finish(session)
        logger.info("All tasks completed")
        return session

    def prepare_working_branch(self, session: SessionState) -> None:
        """Create the working branch and fetch the remote."""
        if session.dry_run:
            logger.info(f"Dry run: would create branch {session.working_branch} and fetch {self.remote_name}")
            return
        self.git_manager.create_branch(session.working_branch)
        self.git_manager.fetch_remote(self.remote_name)

    def rebase_pull_requests(
        self, session: SessionState, descriptors: List[PullRequestDescriptor]
    ) -> List[RebaseOutcome]:
        """
        Apply each pull request branch to the working branch, in listing order.

        Branches already merged into the working branch are dropped without an
        outcome. Every other descriptor gets exactly one outcome.

        Raises:
            UserAbort: when the user chooses to abort everything
        """
        for descriptor in descriptors:
            ref = descriptor.remote_ref(self.remote_name)

            if self.git_manager.is_merged_into_current(ref):
                logger.info(f"Branch {ref} is already merged, skipping...")
                continue

            if session.dry_run:
                logger.info(f"Dry run: would rebase {ref} onto {session.working_branch}")
                session.record(descriptor, OutcomeStatus.SUCCEEDED)
                continue

            self._rebase_one(session, descriptor, ref)

        logger.info(
            f"Rebase loop finished: {len(session.succeeded)} succeeded, {len(session.skipped)} skipped"
        )
        return session.outcomes

    def _rebase_one(self, session: SessionState, descriptor: PullRequestDescriptor, ref: str) -> None:
        """Rebase a single pull request branch, routing conflicts through the resolver."""
        restore_point = self.git_manager.get_head_commit()
        logger.info(f"🔄 Rebasing {ref} onto {session.working_branch} (PR #{descriptor.number})")

        self._rebase_started = True
        success, _ = self.git_manager.start_rebase(ref, session.working_branch)
        if success:
            session.record(descriptor, OutcomeStatus.SUCCEEDED)
            logger.info(f"✅ Rebased PR #{descriptor.number}")
            return

        try:
            result = self.conflict_resolver.resolve(descriptor, restore_point)
        except ConflictResolutionError as e:
            logger.error(f"{e}; skipping PR #{descriptor.number}")
            self.conflict_resolver.conflict_prompt.show_messages([f"❌ {e}"], style="bold red")
            self.conflict_resolver.abort_to(restore_point)
            session.record(descriptor, OutcomeStatus.SKIPPED, reason=str(e))
            return

        if result is ResolutionResult.RESOLVED:
            session.record(descriptor, OutcomeStatus.SUCCEEDED, reason="conflicts resolved manually")
        elif result is ResolutionResult.SKIP:
            session.record(descriptor, OutcomeStatus.SKIPPED, reason="conflicts skipped")
        else:
            logger.info("User aborted the run")
            raise UserAbort(f"Aborted by user while rebasing PR #{descriptor.number}")

    def publish(self, session: SessionState) -> Optional[str]:
        """Push the working branch and open the summary pull request.

        Returns the pull request URL, or None in dry-run mode.
        """
        title = build_pr_title(session)
        if session.dry_run:
            logger.info(f"Dry run: would push {session.working_branch} and open '{title}'")
            return None

        self.git_manager.push_branch(session.working_branch, self.remote_name)
        url = self.platform.create_pull_request(
            title, build_pr_body(session), head=session.working_branch
        )
        session.pull_request_url = url
        logger.info(f"Created PR: {url}")
        return url

    def close_originals(self, session: SessionState) -> List[int]:
        """Close the pull requests that were consolidated. Failures are recorded, not raised."""
        for outcome in session.succeeded:
            number = outcome.descriptor.number
            if session.dry_run:
                logger.info(f"Dry run: would close PR {number}")
                continue
            logger.info(f"Closing PR {number}")
            if not self.platform.close_pull_request(number):
                session.close_failures.append(number)
        return session.close_failures

    def finish(self, session: SessionState) -> None:
        """Return to the original branch and optionally delete the working branch."""
        if session.dry_run:
            if session.delete_branch_after:
                logger.info(f"Dry run: would delete local branch {session.working_branch}")
            return

        if session.original_branch and session.original_branch != session.working_branch:
            try:
                self.git_manager.checkout_branch(session.original_branch)
            except GitRepositoryError as e:
                logger.error(f"Could not return to {session.original_branch}: {e}")

        if session.delete_branch_after:
            logger.info(f"Deleting local branch {session.working_branch}")
            self.git_manager.delete_branch(session.working_branch, strict=False)

    def _cleanup_failed_rebase(self) -> None:
        """Abort a rebase this run left in progress so the working tree is consistent on exit."""
        if not self._rebase_started:
            return
        try:
            if self.git_manager.is_rebase_in_progress():
                self.git_manager.abort_rebase()
                logger.info("Aborted in-progress rebase during cleanup")
        except GitRepositoryError as e:
            logger.error(f"Error cleaning up in-progress rebase: {e}")
