"""
Plan status transitions with local-first tracker sync.

A transition is two steps, always in this order:

1. Save the new status to the local cache. A failure here aborts the
   whole operation and propagates.
2. If a tracker is configured and the plan is linked, move the remote
   issue. A failure here is recorded on the result and logged; the local
   transition stands.

If the process dies between the two steps, the cache is ahead of the
tracker until the next sync.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from jig.core.errors import OperationCancelledError
from jig.core.plan.models import Plan, PlanStatus
from jig.core.state.store import PlanStore
from jig.core.tracker.protocol import TrackerSynchronizer, plan_status_to_tracker_status

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    """
    Outcome of a status transition.

    `cache_saved` is always True on a returned result (a cache failure
    raises instead). `tracker_error` holds the remote failure, if any.
    """

    previous_status: PlanStatus
    new_status: PlanStatus
    cache_saved: bool = False
    tracker_synced: bool = False
    tracker_error: Exception | None = None

    @property
    def tracker_attempted(self) -> bool:
        """True if the tracker was called."""
        return self.tracker_synced or self.tracker_error is not None


class PlanStatusManager:
    """
    Moves plans through their lifecycle, cache first, tracker second.

    Example:
        >>> manager = PlanStatusManager(store, tracker)
        >>> result = manager.start_progress(plan)
        >>> if result.tracker_error:
        ...     print(f"tracker not updated: {result.tracker_error}")
    """

    def __init__(self, store: PlanStore, tracker: TrackerSynchronizer | None = None) -> None:
        """
        Args:
            store: Plan cache to write to
            tracker: Optional tracker; when None only the cache is updated
        """
        self.store = store
        self.tracker = tracker

    def transition_to(
        self,
        plan: Plan,
        status: PlanStatus,
        cancel: threading.Event | None = None,
    ) -> TransitionResult:
        """
        Transition a plan to `status`.

        The plan object is modified in place.

        Raises:
            OperationCancelledError: If `cancel` was set before the transition
            InvalidTransitionError: If the transition is not allowed
            PlanStoreError: If the cache write fails (status is rolled back)
        """
        if cancel is not None and cancel.is_set():
            raise OperationCancelledError(f"transition of {plan.id} cancelled")

        result = TransitionResult(previous_status=plan.status, new_status=status)
        plan.transition_to(status)

        try:
            self.store.save(plan)
        except Exception:
            plan.status = result.previous_status
            raise
        result.cache_saved = True
        logger.info("Plan %s: %s -> %s", plan.id, result.previous_status.value, status.value)

        if self.tracker is None or not plan.issue_id:
            return result
        if cancel is not None and cancel.is_set():
            logger.info("Skipping tracker update for %s: cancelled", plan.id)
            return result

        try:
            self.tracker.transition_issue(plan.issue_id, plan_status_to_tracker_status(status))
        except Exception as e:
            # Remote failures never undo the local transition
            logger.warning("Failed to update tracker issue %s: %s", plan.issue_id, e)
            result.tracker_error = e
        else:
            result.tracker_synced = True

        return result

    def start_progress(
        self, plan: Plan, cancel: threading.Event | None = None
    ) -> TransitionResult:
        """Move a draft or approved plan to in-progress."""
        return self.transition_to(plan, PlanStatus.IN_PROGRESS, cancel=cancel)

    def complete(self, plan: Plan, cancel: threading.Event | None = None) -> TransitionResult:
        """Move an in-progress plan to complete."""
        return self.transition_to(plan, PlanStatus.COMPLETE, cancel=cancel)
