"""
Exception hierarchy for jig core operations.

Store-layer errors always propagate to the caller. Tracker-layer errors
are wrapped here so callers can tell a local failure from a remote one:
the status manager captures them in its result, and batch sync counts
them instead of aborting.
"""

from __future__ import annotations


class JigError(Exception):
    """Base exception for all jig errors."""

    pass


class PlanStoreError(JigError):
    """Raised when the plan cache cannot be read or written."""

    pass


class MalformedCacheError(PlanStoreError):
    """Raised when persisted cache data is corrupt."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class PlanValidationError(JigError):
    """Raised when a plan document is missing required structure."""

    def __init__(
        self,
        message: str,
        missing_fields: list[str] | None = None,
        missing_sections: list[str] | None = None,
    ):
        super().__init__(message)
        self.missing_fields = missing_fields or []
        self.missing_sections = missing_sections or []


class InvalidTransitionError(JigError):
    """Raised when a plan status transition is not allowed."""

    def __init__(self, current: str, target: str):
        super().__init__(f"invalid status transition from {current} to {target}")
        self.current = current
        self.target = target


class OperationCancelledError(JigError):
    """Raised when an operation is cancelled before it starts."""

    pass


class TrackerNotConfiguredError(JigError):
    """Raised when a command needs a tracker but none is configured."""

    pass


class PlanSyncError(JigError):
    """Base exception for plan synchronization failures."""

    def __init__(self, message: str, plan_id: str = ""):
        super().__init__(message)
        self.plan_id = plan_id


class PlanNotFoundError(PlanSyncError):
    """Raised when the plan to sync is not in the cache."""

    def __init__(self, plan_id: str):
        super().__init__(f"plan not found: {plan_id}", plan_id=plan_id)


class NoLinkedIssueError(PlanSyncError):
    """Raised when syncing a plan that has no linked issue."""

    def __init__(self, plan_id: str):
        super().__init__(f"plan {plan_id} has no linked issue", plan_id=plan_id)


class TrackerSyncError(PlanSyncError):
    """Raised when the remote tracker rejects or fails a sync."""

    pass


class BatchSyncError(PlanSyncError):
    """
    Raised when one or more plans in a batch failed to sync.

    The batch still runs to completion; `result` carries the outcome of
    every plan, successful ones included.
    """

    def __init__(self, failed: int, result: object = None):
        noun = "plan" if failed == 1 else "plans"
        super().__init__(f"failed to sync {failed} {noun}")
        self.failed = failed
        self.result = result
