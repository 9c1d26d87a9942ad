"""
GitHub operations through the `gh` command-line tool.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from .models import AdapterError, PreconditionError, PullRequestDescriptor


logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = "app/dependabot"
DEFAULT_LIST_LIMIT = 100
PR_LIST_FIELDS = "number,headRefName,title,url"

_URL_PATTERN = re.compile(r"https://\S+")


class GitHubCli:
    """Lists, creates and closes pull requests by shelling out to `gh`."""

    def __init__(
        self,
        repo_path: Optional[Path] = None,
        author: str = DEFAULT_AUTHOR,
        limit: int = DEFAULT_LIST_LIMIT,
        executable: str = "gh",
    ) -> None:
        self.repo_path = Path(repo_path or Path.cwd())
        self.author = author
        self.limit = limit
        self.executable = executable

    def ensure_available(self) -> None:
        """Raise PreconditionError if the `gh` executable is not on PATH."""
        if shutil.which(self.executable) is None:
            raise PreconditionError(
                f"GitHub CLI ({self.executable}) is not installed; see https://cli.github.com/"
            )

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        cmd = [self.executable, *args]
        logger.debug(f"Running {' '.join(cmd[:3])} in {self.repo_path}")
        return subprocess.run(
            cmd,
            cwd=str(self.repo_path),
            capture_output=True,
            text=True,
            check=False,
        )

    def list_open_dependency_prs(self) -> List[PullRequestDescriptor]:
        """Return open pull requests opened by the configured author, in listing order."""
        result = self._run(
            "pr",
            "list",
            "--state",
            "open",
            "--author",
            self.author,
            "--limit",
            str(self.limit),
            "--json",
            PR_LIST_FIELDS,
        )
        if result.returncode != 0:
            logger.error(f"Listing pull requests failed: {result.stderr.strip()}")
            raise AdapterError(f"Failed to list open pull requests: {result.stderr.strip()}")

        try:
            payload = json.loads(result.stdout or "[]")
            descriptors = [PullRequestDescriptor.from_payload(item) for item in payload]
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Unexpected pull request listing output: {e}")
            raise AdapterError(f"Could not parse pull request listing: {e}")

        logger.info(f"Found {len(descriptors)} open pull requests by {self.author}")
        return descriptors

    def create_pull_request(self, title: str, body: str, head: Optional[str] = None) -> str:
        """Open a pull request and return its URL."""
        args = ["pr", "create", "--title", title, "--body", body]
        if head:
            args.extend(["--head", head])
        result = self._run(*args)
        if result.returncode != 0:
            logger.error(f"Creating pull request failed: {result.stderr.strip()}")
            raise AdapterError(f"Failed to create pull request: {result.stderr.strip()}")

        match = _URL_PATTERN.search(result.stdout)
        if not match:
            raise AdapterError(f"Pull request created but no URL was reported: {result.stdout.strip()}")
        url = match.group(0)
        logger.info(f"Created pull request {url}")
        return url

    def close_pull_request(self, number: int) -> bool:
        """Close a pull request. Failures are logged and reported as False."""
        result = self._run("pr", "close", str(number))
        if result.returncode != 0:
            logger.error(f"Failed to close PR #{number}: {result.stderr.strip()}")
            return False
        logger.info(f"Closed PR #{number}")
        return True
