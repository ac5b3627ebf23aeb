"""
Plan module for jig.

Plans are implementation proposals stored as markdown documents with YAML
frontmatter. This package provides the Plan/Phase models and the document
parser/serializer.

Document layout:
    ---
    id / title / status / author / issue_id / created / phases
    ---
    # Title
    ## Problem Statement
    ## Proposed Solution
    ## Phases
"""

from jig.core.plan.models import (
    VALID_TRANSITIONS,
    Phase,
    PhaseStatus,
    Plan,
    PlanStatus,
    topological_levels,
)
from jig.core.plan.parser import (
    REQUIRED_FIELDS,
    REQUIRED_SECTIONS,
    parse_plan,
    parse_plan_file,
    serialize_plan,
    split_sections,
    validate_structure,
)

__all__ = [
    # Models
    "Phase",
    "PhaseStatus",
    "Plan",
    "PlanStatus",
    "VALID_TRANSITIONS",
    "topological_levels",
    # Parser
    "REQUIRED_FIELDS",
    "REQUIRED_SECTIONS",
    "parse_plan",
    "parse_plan_file",
    "serialize_plan",
    "split_sections",
    "validate_structure",
]
