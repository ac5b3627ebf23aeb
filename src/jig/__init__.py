"""
Jig - plan cache and issue tracker sync.

A CLI tool that keeps implementation plans in a local cache and mirrors
them to a remote issue tracker.
"""

__version__ = "0.4.0.dev0"

# Re-export core models for convenience
from jig.core.config.models import JigConfig
from jig.core.plan.models import Phase, PhaseStatus, Plan, PlanStatus

__all__ = ["JigConfig", "Phase", "PhaseStatus", "Plan", "PlanStatus", "__version__"]
