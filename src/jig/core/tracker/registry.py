"""
Tracker registry.

Tracker clients register under a name with `@register_tracker('linear')`,
or are published by other packages through the `jig.trackers` entry-point
group. The name "none" means no tracker: jig runs local-only.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from importlib.metadata import entry_points

from jig.core.config.models import TrackerConfig
from jig.core.errors import TrackerNotConfiguredError
from jig.core.tracker.protocol import TrackerSynchronizer

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "jig.trackers"
NO_TRACKER = "none"

TrackerFactory = Callable[[TrackerConfig], TrackerSynchronizer]

_trackers: dict[str, TrackerFactory] = {}


def register_tracker(name: str) -> Callable[[TrackerFactory], TrackerFactory]:
    """
    Decorator to register a tracker implementation.

    Usage:
        @register_tracker('linear')
        class LinearTracker:
            def __init__(self, config: TrackerConfig): ...
            def sync_plan(self, plan): ...
            def transition_issue(self, issue_id, status): ...

    Args:
        name: Tracker name (e.g., 'linear')

    Returns:
        Decorator function
    """

    def decorator(factory: TrackerFactory) -> TrackerFactory:
        _trackers[name] = factory
        return factory

    return decorator


def unregister_tracker(name: str) -> None:
    """Remove a registered tracker (no-op if absent)."""
    _trackers.pop(name, None)


def _load_entry_points() -> None:
    """Register trackers published by installed packages."""
    for ep in entry_points(group=ENTRY_POINT_GROUP):
        if ep.name in _trackers:
            continue
        try:
            _trackers[ep.name] = ep.load()
        except (ImportError, AttributeError) as e:
            logger.warning("Failed to load tracker plugin %s: %s", ep.name, e)


def list_trackers() -> list[str]:
    """List all available tracker names."""
    _load_entry_points()
    return sorted(_trackers)


def get_tracker(config: TrackerConfig) -> TrackerSynchronizer | None:
    """
    Build the tracker named in config.

    Returns:
        Tracker instance, or None when the backend is "none"

    Raises:
        TrackerNotConfiguredError: If the backend name is not registered
    """
    name = config.backend
    if not name or name == NO_TRACKER:
        return None

    factory = _trackers.get(name)
    if factory is None:
        _load_entry_points()
        factory = _trackers.get(name)
    if factory is None:
        available = ", ".join(sorted(_trackers)) or "none installed"
        raise TrackerNotConfiguredError(
            f"Tracker '{name}' not registered. Available trackers: {available}"
        )

    tracker = factory(config)
    if not isinstance(tracker, TrackerSynchronizer):
        raise TrackerNotConfiguredError(
            f"Tracker '{name}' does not implement sync_plan/transition_issue"
        )
    return tracker
