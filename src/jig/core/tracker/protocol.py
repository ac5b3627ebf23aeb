"""
Tracker synchronizer protocol.

jig never talks to an issue tracker directly. A tracker client (Linear,
GitHub, ...) implements this protocol and is injected into the status
manager and sync service.
"""

from enum import Enum
from typing import Protocol, runtime_checkable

from jig.core.plan.models import Plan, PlanStatus


class TrackerStatus(str, Enum):
    """Issue status in the remote tracker."""

    BACKLOG = "backlog"
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
    DONE = "done"
    CANCELED = "canceled"


_PLAN_TO_TRACKER: dict[PlanStatus, TrackerStatus] = {
    PlanStatus.DRAFT: TrackerStatus.TODO,
    PlanStatus.REVIEWING: TrackerStatus.TODO,
    PlanStatus.APPROVED: TrackerStatus.TODO,
    PlanStatus.IN_PROGRESS: TrackerStatus.IN_PROGRESS,
    PlanStatus.COMPLETE: TrackerStatus.DONE,
}


def plan_status_to_tracker_status(status: PlanStatus) -> TrackerStatus:
    """Map a plan lifecycle status onto the tracker's issue status."""
    return _PLAN_TO_TRACKER.get(status, TrackerStatus.TODO)


@runtime_checkable
class TrackerSynchronizer(Protocol):
    """
    Protocol for remote tracker clients.

    Implementations signal failure by raising; any exception is treated as
    a remote failure by the caller. Neither method is assumed idempotent:
    `sync_plan` may post a new comment on every call.
    """

    def sync_plan(self, plan: Plan) -> None:
        """
        Push a plan's content to its linked issue.

        Args:
            plan: Plan with a non-empty issue_id
        """
        ...

    def transition_issue(self, issue_id: str, status: TrackerStatus) -> None:
        """
        Move a remote issue to a new status.

        Args:
            issue_id: Tracker issue identifier (e.g., 'ENG-7')
            status: Target tracker status
        """
        ...
