"""
Content-hash based plan sync.

Pushes cached plans to their tracker issues, skipping plans whose content
has not changed since the last successful sync. The hash covers only the
fields a reader of the issue would see (title, problem statement, proposed
solution, phases), so saving a plan without editing it, or changing its
status, does not trigger another push.

After a successful push the cache records `synced_at` and the new hash.
If that write fails the error is logged and swallowed: the remote side
already has the content, and the next sync will push it again.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from collections.abc import Iterable, Mapping

from jig.core.errors import (
    BatchSyncError,
    NoLinkedIssueError,
    OperationCancelledError,
    PlanNotFoundError,
    PlanStoreError,
    PlanSyncError,
    TrackerSyncError,
)
from jig.core.plan.models import Plan
from jig.core.state.models import CachedPlan, utcnow
from jig.core.state.store import PlanStore
from jig.core.sync.models import BatchSyncResult, PlanSyncResult, PlanSyncStatus
from jig.core.tracker.protocol import TrackerSynchronizer

logger = logging.getLogger(__name__)


def compute_content_hash(plan: Plan) -> str:
    """
    Compute a SHA-256 fingerprint of a plan's meaningful content.

    Status, author, issue link and timestamps are excluded.

    Returns:
        Hex digest
    """
    content = {
        "title": plan.title,
        "problem_statement": plan.problem_statement,
        "proposed_solution": plan.proposed_solution,
        "phases": [
            {
                "id": phase.id,
                "title": phase.title,
                "status": phase.status.value,
                "depends_on": list(phase.depends_on),
                "description": phase.description,
            }
            for phase in plan.phases
        ],
    }
    canonical = json.dumps(content, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class PlanSyncService:
    """
    Service for syncing cached plans to their tracker issues.

    Example:
        >>> service = PlanSyncService(store, tracker)
        >>> result = service.sync_one("PLAN-42")
        >>> result.status
        <PlanSyncStatus.SYNCED: 'synced'>
    """

    def __init__(self, store: PlanStore, tracker: TrackerSynchronizer) -> None:
        self.store = store
        self.tracker = tracker

    def _sync_cached(self, cached: CachedPlan) -> PlanSyncResult:
        """Sync one cached plan; raises PlanSyncError on failure."""
        plan = cached.plan
        if not plan.issue_id:
            raise NoLinkedIssueError(plan.id)

        content_hash = compute_content_hash(plan)
        if cached.synced_content_hash and cached.synced_content_hash == content_hash:
            logger.info("Plan %s content unchanged, skipping sync", plan.id)
            return PlanSyncResult(
                plan_id=plan.id,
                issue_id=plan.issue_id,
                status=PlanSyncStatus.SKIPPED,
                content_hash=content_hash,
                synced_at=cached.synced_at,
            )

        try:
            self.tracker.sync_plan(plan)
        except Exception as e:
            raise TrackerSyncError(
                f"failed to sync plan {plan.id} to {plan.issue_id}: {e}", plan_id=plan.id
            ) from e

        result = PlanSyncResult(
            plan_id=plan.id,
            issue_id=plan.issue_id,
            status=PlanSyncStatus.SYNCED,
            content_hash=content_hash,
            synced_at=utcnow(),
        )
        try:
            marked = self.store.mark_synced(plan.id, content_hash)
            result.synced_at = marked.synced_at
        except PlanStoreError as e:
            logger.warning("Plan %s synced but failed to record sync: %s", plan.id, e)
            result.marker_error = str(e)

        logger.info("Plan %s synced to %s", plan.id, plan.issue_id)
        return result

    def sync_one(self, plan_id: str, cancel: threading.Event | None = None) -> PlanSyncResult:
        """
        Sync a single plan from the cache.

        Makes no remote call when the content hash equals the last synced hash.

        Raises:
            OperationCancelledError: If `cancel` was set before starting
            PlanNotFoundError: If the plan is not cached
            NoLinkedIssueError: If the plan has no linked issue
            TrackerSyncError: If the tracker call failed
            PlanStoreError: If the cache could not be read
        """
        if cancel is not None and cancel.is_set():
            raise OperationCancelledError(f"sync of {plan_id} cancelled")

        cached = self.store.get(plan_id)
        if cached is None:
            raise PlanNotFoundError(plan_id)
        return self._sync_cached(cached)

    def sync_selected(
        self,
        plan_ids: Iterable[str],
        plan_map: Mapping[str, CachedPlan],
        cancel: threading.Event | None = None,
    ) -> BatchSyncResult:
        """
        Sync several plans, continuing past failures.

        Args:
            plan_ids: IDs to sync, in order
            plan_map: Cached plans keyed by ID; an ID missing from the map
                counts as a failure
            cancel: Once set, no further plans are started; the rest are
                reported as failed

        Returns:
            BatchSyncResult when every plan synced or was skipped

        Raises:
            BatchSyncError: If any plan failed. Its `result` holds the full
                BatchSyncResult; successful plans are still marked synced.
        """
        batch = BatchSyncResult(started_at=utcnow())

        for plan_id in plan_ids:
            if cancel is not None and cancel.is_set():
                batch.results.append(
                    PlanSyncResult(plan_id=plan_id, status=PlanSyncStatus.FAILED, error="cancelled")
                )
                continue

            cached = plan_map.get(plan_id)
            if cached is None:
                logger.warning("Plan %s: not found", plan_id)
                batch.results.append(
                    PlanSyncResult(
                        plan_id=plan_id, status=PlanSyncStatus.FAILED, error="plan not found"
                    )
                )
                continue

            try:
                batch.results.append(self._sync_cached(cached))
            except PlanSyncError as e:
                logger.warning("Plan %s: %s", plan_id, e)
                batch.results.append(
                    PlanSyncResult(
                        plan_id=plan_id,
                        issue_id=cached.plan.issue_id,
                        status=PlanSyncStatus.FAILED,
                        error=str(e),
                    )
                )

        batch.completed_at = utcnow()
        if batch.failed:
            raise BatchSyncError(batch.failed, result=batch)
        return batch

    def sync_pending(self, cancel: threading.Event | None = None) -> BatchSyncResult:
        """
        Sync every cached plan that needs it.

        Raises:
            BatchSyncError: If any plan failed
        """
        pending = self.store.plans_needing_sync()
        plan_map = {cached.plan.id: cached for cached in pending}
        return self.sync_selected(list(plan_map), plan_map, cancel=cancel)
