"""
Tracker integration.

jig consumes issue trackers only through the TrackerSynchronizer protocol:
push a plan to its issue, and move an issue to a new status. Concrete
clients live outside this package and are found through the registry.
"""

from jig.core.tracker.protocol import (
    TrackerStatus,
    TrackerSynchronizer,
    plan_status_to_tracker_status,
)
from jig.core.tracker.registry import (
    NO_TRACKER,
    get_tracker,
    list_trackers,
    register_tracker,
    unregister_tracker,
)

__all__ = [
    "NO_TRACKER",
    "TrackerStatus",
    "TrackerSynchronizer",
    "get_tracker",
    "list_trackers",
    "plan_status_to_tracker_status",
    "register_tracker",
    "unregister_tracker",
]
