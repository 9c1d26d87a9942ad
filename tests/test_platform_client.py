"""
Tests for the `gh` based review platform client.
"""

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from dependings.models import AdapterError, PreconditionError
from dependings.platform_client import GitHubCli


def completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=["gh"], returncode=returncode, stdout=stdout, stderr=stderr)


LISTING = [
    {"number": 31, "headRefName": "dependabot/pip/requests-2.32.3", "title": "Bump requests", "url": "https://github.com/acme/app/pull/31"},
    {"number": 27, "headRefName": "dependabot/pip/flask-3.0.3", "title": "Bump flask", "url": "https://github.com/acme/app/pull/27"},
]


class TestListing:
    @patch("dependings.platform_client.subprocess.run")
    def test_list_keeps_platform_order(self, mock_run):
        mock_run.return_value = completed(json.dumps(LISTING))

        prs = GitHubCli(Path("/repo")).list_open_dependency_prs()

        assert [pr.number for pr in prs] == [31, 27]
        assert prs[0].branch_name == "dependabot/pip/requests-2.32.3"

    @patch("dependings.platform_client.subprocess.run")
    def test_list_query_arguments(self, mock_run):
        mock_run.return_value = completed("[]")

        GitHubCli(Path("/repo"), author="app/renovate", limit=5).list_open_dependency_prs()

        cmd = mock_run.call_args[0][0]
        assert cmd[:3] == ["gh", "pr", "list"]
        assert cmd[cmd.index("--author") + 1] == "app/renovate"
        assert cmd[cmd.index("--limit") + 1] == "5"
        assert cmd[cmd.index("--json") + 1] == "number,headRefName,title,url"
        assert mock_run.call_args[1]["cwd"] == str(Path("/repo"))

    @patch("dependings.platform_client.subprocess.run")
    def test_list_failure_raises(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="HTTP 401: Bad credentials")

        with pytest.raises(AdapterError):
            GitHubCli(Path("/repo")).list_open_dependency_prs()

    @patch("dependings.platform_client.subprocess.run")
    def test_list_garbage_output_raises(self, mock_run):
        mock_run.return_value = completed("not json")

        with pytest.raises(AdapterError):
            GitHubCli(Path("/repo")).list_open_dependency_prs()


class TestCreateAndClose:
    @patch("dependings.platform_client.subprocess.run")
    def test_create_returns_url(self, mock_run):
        mock_run.return_value = completed(
            "Creating pull request for bump-deps-1 into main\n\nhttps://github.com/acme/app/pull/40\n"
        )

        url = GitHubCli(Path("/repo")).create_pull_request("Bump Dependencies - 1", "body", head="bump-deps-1")

        assert url == "https://github.com/acme/app/pull/40"
        cmd = mock_run.call_args[0][0]
        assert cmd[cmd.index("--head") + 1] == "bump-deps-1"

    @patch("dependings.platform_client.subprocess.run")
    def test_create_failure_raises(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="a pull request already exists")

        with pytest.raises(AdapterError):
            GitHubCli(Path("/repo")).create_pull_request("t", "b")

    @patch("dependings.platform_client.subprocess.run")
    def test_close(self, mock_run):
        mock_run.return_value = completed()

        assert GitHubCli(Path("/repo")).close_pull_request(31) is True
        assert mock_run.call_args[0][0] == ["gh", "pr", "close", "31"]

    @patch("dependings.platform_client.subprocess.run")
    def test_close_failure_returns_false(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="not found")

        assert GitHubCli(Path("/repo")).close_pull_request(31) is False


@patch("dependings.platform_client.shutil.which", return_value=None)
def test_missing_gh_is_precondition_error(_which):
    with pytest.raises(PreconditionError):
        GitHubCli(Path("/repo")).ensure_available()
