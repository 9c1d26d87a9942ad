"""
Tests for data models.
"""

import dataclasses

import pytest

from dependings.models import (
    PullRequestDescriptor, OutcomeStatus, SessionState,
    DependingsError, AdapterError, PushError, PreconditionError, UserAbort,
    ConflictResolutionError, GitRepositoryError
)


def make_pr(number, branch=None):
    return PullRequestDescriptor(
        number=number,
        branch_name=branch or f"dependabot/pip/pkg-{number}",
        title=f"Bump pkg-{number}",
        url=f"https://github.com/acme/app/pull/{number}",
    )


class TestPullRequestDescriptor:
    """Test PullRequestDescriptor model."""

    def test_from_payload(self):
        """Descriptors are built from gh's JSON field names."""
        pr = PullRequestDescriptor.from_payload({
            "number": 12,
            "headRefName": "dependabot/npm_and_yarn/lodash-4.17.21",
            "title": "Bump lodash from 4.17.20 to 4.17.21",
            "url": "https://github.com/acme/app/pull/12",
        })

        assert pr.number == 12
        assert pr.branch_name == "dependabot/npm_and_yarn/lodash-4.17.21"
        assert pr.title == "Bump lodash from 4.17.20 to 4.17.21"
        assert pr.url == "https://github.com/acme/app/pull/12"

    def test_descriptor_is_immutable(self):
        pr = make_pr(1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            pr.title = "changed"

    def test_remote_ref(self):
        pr = make_pr(3, branch="dependabot/pip/requests-2.32.0")
        assert pr.remote_ref() == "origin/dependabot/pip/requests-2.32.0"
        assert pr.remote_ref("upstream") == "upstream/dependabot/pip/requests-2.32.0"


class TestSessionState:
    """Test SessionState outcome bookkeeping."""

    def test_record_splits_outcomes_by_status(self):
        session = SessionState(timestamp_id="20240101120000", working_branch="bump-deps-20240101120000")
        session.record(make_pr(1), OutcomeStatus.SUCCEEDED)
        session.record(make_pr(2), OutcomeStatus.SKIPPED, reason="conflicts skipped")
        session.record(make_pr(3), OutcomeStatus.SUCCEEDED)

        assert [o.descriptor.number for o in session.succeeded] == [1, 3]
        assert [o.descriptor.number for o in session.skipped] == [2]
        assert session.skipped[0].reason == "conflicts skipped"

    def test_record_rejects_second_outcome_for_same_pr(self):
        session = SessionState(timestamp_id="1", working_branch="bump-deps-1")
        session.record(make_pr(1), OutcomeStatus.SUCCEEDED)

        with pytest.raises(ValueError):
            session.record(make_pr(1), OutcomeStatus.SKIPPED)

    def test_outcomes_are_immutable(self):
        session = SessionState(timestamp_id="1", working_branch="bump-deps-1")
        outcome = session.record(make_pr(1), OutcomeStatus.SUCCEEDED)

        with pytest.raises(dataclasses.FrozenInstanceError):
            outcome.status = OutcomeStatus.SKIPPED


class TestExceptions:
    """Test the exception hierarchy."""

    def test_all_errors_share_a_base(self):
        for exc in (PreconditionError, AdapterError, PushError, UserAbort,
                    ConflictResolutionError, GitRepositoryError):
            assert issubclass(exc, DependingsError)

    def test_push_error_is_adapter_error(self):
        assert issubclass(PushError, AdapterError)
