"""
Git repository management and operations.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple
from git import Repo, InvalidGitRepositoryError, NoSuchPathError
from git.exc import GitCommandError

from .models import GitRepositoryError, PreconditionError, PushError


logger = logging.getLogger(__name__)

# Porcelain XY codes for unmerged paths
UNMERGED_STATUS_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})


class GitManager:
    """Manages Git operations for the repository being consolidated."""

    def __init__(self, repo_path: Optional[Path] = None) -> None:
        """Initialize Git manager with optional repository path."""
        self.repo_path = Path(repo_path or Path.cwd()).resolve()
        self._repo: Optional[Repo] = None
        self._rebase_onto: Optional[str] = None

    @property
    def repo(self) -> Repo:
        """Get the Git repository instance."""
        if self._repo is None:
            self._repo = self._discover_repository()
        return self._repo

    @property
    def working_dir(self) -> Path:
        return Path(self.repo.working_dir)

    def _discover_repository(self) -> Repo:
        """Discover the Git repository from current or specified path."""
        search_path = self.repo_path

        logger.debug(f"Discovering repository in: {search_path}")
        # Walk up the directory tree to find a Git repository
        while search_path != search_path.parent:
            try:
                repo = Repo(search_path)
                logger.info(f"Found Git repository at: {search_path}")
                return repo
            except (InvalidGitRepositoryError, NoSuchPathError):
                search_path = search_path.parent

        raise PreconditionError(
            f"No Git repository found at {self.repo_path} or any parent directory. "
            "Run this command inside a Git working directory."
        )

    def get_current_branch(self) -> str:
        """Get the current branch name."""
        try:
            return self.repo.active_branch.name
        except Exception as e:
            logger.error(f"Error getting current branch: {e}")
            raise GitRepositoryError(f"Could not determine current branch: {e}")

    def get_head_commit(self) -> str:
        """Return the full SHA of HEAD."""
        try:
            return self.repo.head.commit.hexsha
        except Exception as e:
            logger.error(f"Error reading HEAD: {e}")
            raise GitRepositoryError(f"Could not read HEAD commit: {e}")

    def create_branch(self, branch_name: str) -> None:
        """Create a new branch from HEAD and check it out."""
        try:
            self.repo.git.checkout("-b", branch_name)
            logger.info(f"Created and checked out branch: {branch_name}")
        except GitCommandError as e:
            logger.error(f"Error creating branch {branch_name}: {e}")
            raise GitRepositoryError(f"Failed to create branch {branch_name}: {e}")

    def checkout_branch(self, branch_name: str) -> None:
        """Checkout a specific branch."""
        try:
            self.repo.git.checkout(branch_name)
            logger.info(f"Checked out branch: {branch_name}")
        except GitCommandError as e:
            logger.error(f"Error checking out branch {branch_name}: {e}")
            raise GitRepositoryError(f"Failed to checkout branch {branch_name}: {e}")

    def delete_branch(self, branch_name: str, strict: bool = False) -> bool:
        """Delete a local branch (force).

        Returns False on failure unless `strict` is set, in which case the
        failure raises GitRepositoryError.
        """
        try:
            self.repo.git.branch("-D", branch_name)
            logger.info(f"Deleted branch {branch_name}")
            return True
        except GitCommandError as e:
            logger.error(f"Error deleting branch {branch_name}: {e}")
            if strict:
                raise GitRepositoryError(f"Failed to delete branch {branch_name}: {e}")
            return False

    def reset_hard(self, commitish: str) -> None:
        """Move the checked out branch and working tree to `commitish`."""
        try:
            self.repo.git.reset("--hard", commitish)
            logger.info(f"Reset working tree to {commitish[:12]}")
        except GitCommandError as e:
            logger.error(f"Failed to reset to {commitish}: {e}")
            raise GitRepositoryError(f"Failed to reset to {commitish}: {e}")

    # --- Remote synchronization helpers ---
    def fetch_remote(self, remote_name: str = "origin") -> None:
        """Fetch updates from a remote."""
        try:
            self.repo.remotes[remote_name].fetch(prune=True)
            logger.info(f"Fetched updates from {remote_name} in {self.repo.working_dir}")
        except Exception as e:
            logger.error(f"Failed to fetch from {remote_name}: {e}")
            raise GitRepositoryError(f"Failed to fetch from {remote_name}: {e}")

    def push_branch(self, branch_name: str, remote_name: str = "origin") -> None:
        """Push a local branch to the remote and set it as upstream."""
        try:
            self.repo.git.push("--set-upstream", remote_name, branch_name)
            logger.info(f"Pushed {branch_name} to {remote_name}")
        except GitCommandError as e:
            logger.error(f"Failed to push {branch_name} to {remote_name}: {e}")
            raise PushError(f"Failed to push {branch_name} to {remote_name}: {e.stderr or e}")

    def is_merged_into_current(self, ref: str) -> bool:
        """Return True if `ref` is already contained in HEAD. Unknown refs count as not merged."""
        try:
            return self.repo.is_ancestor(ref, "HEAD")
        except Exception as e:
            logger.debug(f"Could not check whether {ref} is merged: {e}")
            return False

    # --- Rebase lifecycle ---
    def start_rebase(self, branch: str, onto: str) -> Tuple[bool, List[Path]]:
        """
        Replay the commits of `branch` onto the local branch `onto`.

        Runs `git rebase <onto> <branch>`, so only the commits of `branch` are
        rewritten. While the rebase runs HEAD is detached and `onto` keeps its
        old tip; `onto` is moved to the result once the rebase completes.
        Pass a remote-tracking ref as `branch` so no other local branch moves.

        Returns:
            Tuple of (success, conflict_files)
        """
        self._rebase_onto = onto
        try:
            logger.debug(f"Called 'git rebase {onto} {branch}' in {self.repo.working_dir}")
            self.repo.git.rebase(onto, branch)
        except GitCommandError as e:
            conflict_files = self.get_conflict_files()
            if conflict_files:
                logger.warning(f"Rebase has conflicts in files: {conflict_files}")
                return False, conflict_files
            logger.error(f"Rebase failed: {e}")
            if not self.is_rebase_in_progress():
                self._rebase_onto = None
            raise GitRepositoryError(f"Rebase of {branch} onto {onto} failed: {e}")

        self._complete_rebase()
        logger.info(f"Rebase of {branch} onto {onto} completed successfully")
        return True, []

    def continue_rebase(self) -> Tuple[bool, List[Path]]:
        """Continue a rebase after conflicts are resolved.

        Returns (True, []) on success, (False, conflicts) when the next step
        conflicts, and (False, []) when git refuses to continue for another reason.
        """
        try:
            # Avoid interactive editor prompt
            with self.repo.git.custom_environment(GIT_EDITOR="true"):
                self.repo.git.rebase("--continue")
        except GitCommandError as e:
            conflict_files = self.get_conflict_files()
            if conflict_files:
                logger.warning(f"Rebase still has conflicts: {conflict_files}")
                return False, conflict_files
            logger.error(f"Rebase continue failed: {e}")
            return False, []

        self._complete_rebase()
        logger.info("Rebase continued successfully")
        return True, []

    def abort_rebase(self) -> None:
        """Abort a rebase operation and check the target branch out again."""
        try:
            self.repo.git.rebase("--abort")
            logger.info("Rebase aborted successfully")
        except GitCommandError as e:
            logger.error(f"Failed to abort rebase: {e}")
            raise GitRepositoryError(f"Failed to abort rebase: {e}")

        onto, self._rebase_onto = self._rebase_onto, None
        if onto:
            # Abort leaves HEAD on the replayed branch
            self.checkout_branch(onto)

    def _complete_rebase(self) -> None:
        """Point the rebase target branch at the rebased HEAD and check it out."""
        onto, self._rebase_onto = self._rebase_onto, None
        if not onto:
            return
        try:
            self.repo.git.checkout("-B", onto)
            logger.info(f"Moved {onto} to {self.repo.head.commit.hexsha[:12]}")
        except GitCommandError as e:
            logger.error(f"Failed to move {onto} to the rebased commit: {e}")
            raise GitRepositoryError(f"Failed to update {onto} after rebase: {e}")

    def is_rebase_in_progress(self) -> bool:
        """Check if a rebase is currently in progress."""
        try:
            git_dir = Path(self.repo.git_dir)
            rebase_files = [git_dir / "rebase-merge", git_dir / "rebase-apply"]
            return any(f.exists() for f in rebase_files)
        except Exception as e:
            logger.error(f"Error checking rebase status: {e}")
            return False

    # --- Working tree / index ---
    def get_conflict_files(self) -> List[Path]:
        """Return absolute paths of unmerged entries reported by `git status`."""
        try:
            output = self.repo.git.status("--porcelain", "-z")
        except GitCommandError as e:
            logger.error(f"Error getting conflict files: {e}")
            return []

        conflicts: List[Path] = []
        entries = output.split("\0")
        index = 0
        while index < len(entries):
            entry = entries[index]
            index += 1
            if len(entry) < 4:
                continue
            code, path = entry[:2], entry[3:]
            if code[0] in ("R", "C"):
                # Renames and copies carry their source path as a separate entry
                index += 1
            if code in UNMERGED_STATUS_CODES:
                conflicts.append(self.working_dir / path)
        return conflicts

    def stage_all(self) -> None:
        """Stage every change in the working tree."""
        try:
            self.repo.git.add("-A")
        except GitCommandError as e:
            logger.error(f"Failed to stage changes in {self.repo.working_dir}: {e}")
            raise GitRepositoryError(f"Failed to stage changes: {e}")
