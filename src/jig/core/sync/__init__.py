"""
Plan synchronization to a remote tracker.

Plans are pushed to their linked issues only when their content hash has
changed since the last successful sync.

Example:
    >>> from jig.core.sync import PlanSyncService
    >>> service = PlanSyncService(store, tracker)
    >>> service.sync_one("PLAN-42").summary()
    'PLAN-42: synced to ENG-7'
"""

from jig.core.sync.models import BatchSyncResult, PlanSyncResult, PlanSyncStatus
from jig.core.sync.service import PlanSyncService, compute_content_hash

__all__ = [
    "BatchSyncResult",
    "PlanSyncResult",
    "PlanSyncService",
    "PlanSyncStatus",
    "compute_content_hash",
]
