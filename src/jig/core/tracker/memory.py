"""
In-memory tracker.

Records every call instead of talking to a remote system. Used by tests and
handy for exercising the sync flow without credentials. Failures can be
scripted per issue.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from jig.core.plan.models import Plan
from jig.core.tracker.protocol import TrackerStatus


@dataclass
class InMemoryTracker:
    """
    Tracker that keeps synced plans and issue statuses in dictionaries.

    Example:
        >>> tracker = InMemoryTracker(fail_issues={"ENG-9"})
        >>> tracker.sync_plan(plan)
        >>> tracker.sync_calls
        ['ENG-7']
    """

    fail_issues: set[str] = field(default_factory=set)
    fail_all: bool = False
    plans: dict[str, Plan] = field(default_factory=dict)
    statuses: dict[str, TrackerStatus] = field(default_factory=dict)
    sync_calls: list[str] = field(default_factory=list)
    transition_calls: list[tuple[str, TrackerStatus]] = field(default_factory=list)

    def _check(self, issue_id: str) -> None:
        if self.fail_all or issue_id in self.fail_issues:
            raise ConnectionError(f"tracker unavailable for {issue_id}")

    def sync_plan(self, plan: Plan) -> None:
        self.sync_calls.append(plan.issue_id)
        self._check(plan.issue_id)
        self.plans[plan.issue_id] = plan.model_copy(deep=True)

    def transition_issue(self, issue_id: str, status: TrackerStatus) -> None:
        self.transition_calls.append((issue_id, status))
        self._check(issue_id)
        self.statuses[issue_id] = status
