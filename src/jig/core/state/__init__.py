"""
Local plan cache.

Provides the file-backed PlanStore, dual-key PlanLookup, and the
PlanStatusManager that couples cache writes with tracker transitions.

Example:
    >>> from jig.core.state import PlanLookup, PlanStore
    >>> store = PlanStore(cache_dir)
    >>> result = PlanLookup(store).lookup("ENG-7")
    >>> if result.has_conflict:
    ...     print("ambiguous:", [c.plan.id for c in result.candidates])
"""

from jig.core.state.lookup import PlanLookup, PlanLookupResult
from jig.core.state.models import CachedPlan, IssueMetadata, SyncRecord
from jig.core.state.status import PlanStatusManager, TransitionResult
from jig.core.state.store import PlanStore

__all__ = [
    "CachedPlan",
    "IssueMetadata",
    "PlanLookup",
    "PlanLookupResult",
    "PlanStatusManager",
    "PlanStore",
    "SyncRecord",
    "TransitionResult",
]
