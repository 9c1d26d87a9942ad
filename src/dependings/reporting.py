"""
Summary pull request text and final counts for a consolidation session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .models import RebaseOutcome, SessionState


PR_TITLE_PREFIX = "Bump Dependencies"
SUCCEEDED_HEADING = "### Successfully Rebased"
SKIPPED_HEADING = "### Skipped"


@dataclass(frozen=True)
class ReportCounts:
    succeeded: int
    skipped: int


def build_pr_title(state: SessionState) -> str:
    return f"{PR_TITLE_PREFIX} - {state.timestamp_id}"


def _link_lines(outcomes: List[RebaseOutcome]) -> List[str]:
    return [f"- [{o.descriptor.title}]({o.descriptor.url})" for o in outcomes]


def build_pr_body(state: SessionState) -> str:
    """Render the body of the summary pull request.

    Sections appear in order: preamble, successfully rebased PRs, skipped PRs.
    A section with no entries is left out.
    """
    parts = [
        "This PR includes the following dependency updates rebased into the "
        f"`{state.working_branch}` branch:"
    ]

    succeeded = state.succeeded
    if succeeded:
        parts.append("\n".join([SUCCEEDED_HEADING, *_link_lines(succeeded)]))

    skipped = state.skipped
    if skipped:
        parts.append("\n".join([SKIPPED_HEADING, *_link_lines(skipped)]))

    return "\n\n".join(parts) + "\n"


def count_outcomes(state: SessionState) -> ReportCounts:
    return ReportCounts(succeeded=len(state.succeeded), skipped=len(state.skipped))
