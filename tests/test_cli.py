"""
Tests for the CLI interface.
"""

from unittest.mock import Mock, patch
from click.testing import CliRunner

from dependings.cli import cli
from dependings.cli_conflict_prompt import CliConflictPrompt
from dependings.conflict_prompt_interface import AutoSkipConflictPrompt
from dependings.models import (
    OutcomeStatus, PreconditionError, PullRequestDescriptor, PushError, SessionState, UserAbort
)


def make_session(dry_run=False):
    session = SessionState(
        timestamp_id="20240601000000",
        working_branch="bump-deps-20240601000000",
        dry_run=dry_run,
    )
    for number, status in ((1, OutcomeStatus.SUCCEEDED), (2, OutcomeStatus.SUCCEEDED), (3, OutcomeStatus.SKIPPED)):
        session.record(
            PullRequestDescriptor(number, f"dependabot/pip/p{number}", f"Bump p{number}", f"https://github.com/acme/app/pull/{number}"),
            status,
        )
    if not dry_run:
        session.pull_request_url = "https://github.com/acme/app/pull/50"
    return session


class TestCLI:
    """Test CLI options and exit codes."""

    def setup_method(self):
        """Setup test environment."""
        self.runner = CliRunner()

    def test_cli_help(self):
        result = self.runner.invoke(cli, ['--help'])
        assert result.exit_code == 0
        assert '--dry-run' in result.output
        assert '--close-prs' in result.output
        assert '--delete-branch' in result.output

    def test_version(self):
        result = self.runner.invoke(cli, ['--version'])
        assert result.exit_code == 0
        assert 'dependings' in result.output

    def test_unknown_flag_exits_with_one(self):
        result = self.runner.invoke(cli, ['--bogus'])
        assert result.exit_code == 1
        assert 'No such option' in result.output
        assert 'Usage' in result.output

    @patch('dependings.cli.RebaseOrchestrator')
    def test_not_in_repository(self, mock_orchestrator_class):
        mock_orchestrator_class.side_effect = PreconditionError("No Git repository found")

        result = self.runner.invoke(cli, [])
        assert result.exit_code == 1
        assert 'No Git repository found' in result.output

    @patch('dependings.cli.RebaseOrchestrator')
    def test_user_abort_exits_with_one(self, mock_orchestrator_class):
        mock_orchestrator = Mock()
        mock_orchestrator.run.side_effect = UserAbort("Aborted by user while rebasing PR #4")
        mock_orchestrator_class.return_value = mock_orchestrator

        result = self.runner.invoke(cli, [])
        assert result.exit_code == 1
        assert 'Aborted' in result.output

    @patch('dependings.cli.RebaseOrchestrator')
    def test_push_failure_exits_with_one(self, mock_orchestrator_class):
        mock_orchestrator = Mock()
        mock_orchestrator.run.side_effect = PushError("rejected")
        mock_orchestrator_class.return_value = mock_orchestrator

        result = self.runner.invoke(cli, [])
        assert result.exit_code == 1
        assert 'rejected' in result.output

    @patch('dependings.cli.RebaseOrchestrator')
    def test_successful_run_reports_counts(self, mock_orchestrator_class):
        mock_orchestrator = Mock()
        mock_orchestrator.run.return_value = make_session()
        mock_orchestrator_class.return_value = mock_orchestrator

        result = self.runner.invoke(cli, ['--close-prs', '--delete-branch'])
        assert result.exit_code == 0
        assert 'https://github.com/acme/app/pull/50' in result.output
        assert 'Successfully rebased: 2 | Skipped: 1' in result.output
        # Counts are the last thing printed
        assert result.output.rstrip().endswith('Skipped: 1')

        _, kwargs = mock_orchestrator.run.call_args
        assert kwargs == {'dry_run': False, 'close_prs': True, 'delete_branch': True}

    @patch('dependings.cli.RebaseOrchestrator')
    def test_dry_run(self, mock_orchestrator_class):
        mock_orchestrator = Mock()
        mock_orchestrator.run.return_value = make_session(dry_run=True)
        mock_orchestrator_class.return_value = mock_orchestrator

        result = self.runner.invoke(cli, ['--dry-run'])
        assert result.exit_code == 0
        assert 'Dry Run Complete' in result.output
        _, kwargs = mock_orchestrator.run.call_args
        assert kwargs['dry_run'] is True

    @patch('dependings.cli.RebaseOrchestrator')
    def test_conflict_handler_selection(self, mock_orchestrator_class):
        mock_orchestrator = Mock()
        mock_orchestrator.run.return_value = make_session()
        mock_orchestrator_class.return_value = mock_orchestrator

        self.runner.invoke(cli, ['--on-conflict', 'skip'])
        assert isinstance(mock_orchestrator_class.call_args[0][1], AutoSkipConflictPrompt)

        self.runner.invoke(cli, ['--editor', 'nano'])
        prompt = mock_orchestrator_class.call_args[0][1]
        assert isinstance(prompt, CliConflictPrompt)
        assert prompt.editor == 'nano'

    @patch('dependings.cli.RebaseOrchestrator')
    def test_options_forwarded(self, mock_orchestrator_class):
        mock_orchestrator = Mock()
        mock_orchestrator.run.return_value = make_session()
        mock_orchestrator_class.return_value = mock_orchestrator

        result = self.runner.invoke(cli, ['--remote', 'upstream', '--author', 'app/renovate', '--limit', '10'])
        assert result.exit_code == 0

        _, kwargs = mock_orchestrator_class.call_args
        assert kwargs == {'remote_name': 'upstream', 'author': 'app/renovate', 'limit': 10}
