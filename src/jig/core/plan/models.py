"""
Plan data models for jig.

A plan is a structured implementation proposal: a problem statement, a
proposed solution, and an ordered list of phases. Plans are cached locally
as markdown documents with YAML frontmatter and may be linked to an issue
in a remote tracker.

The plan lifecycle:
    draft -> reviewing -> approved -> in-progress -> complete

Example:
    >>> plan = Plan(id="PLAN-42", title="Add auth", author="sam")
    >>> plan.status
    <PlanStatus.DRAFT: 'draft'>
    >>> plan.transition_to(PlanStatus.IN_PROGRESS)
    >>> plan.status
    <PlanStatus.IN_PROGRESS: 'in-progress'>
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jig.core.errors import InvalidTransitionError


class PlanStatus(str, Enum):
    """Plan lifecycle status.

    - DRAFT: Newly created, still being written
    - REVIEWING: Amended and out for review
    - APPROVED: Review passed, ready to implement
    - IN_PROGRESS: Implementation started
    - COMPLETE: Implementation finished (terminal)
    """

    DRAFT = "draft"
    REVIEWING = "reviewing"
    APPROVED = "approved"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"


class PhaseStatus(str, Enum):
    """Status of an individual plan phase."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"
    BLOCKED = "blocked"


# Allowed plan status transitions. Draft may jump straight to in-progress
# for quick implementation; approved may fall back to draft for amendments.
VALID_TRANSITIONS: dict[PlanStatus, tuple[PlanStatus, ...]] = {
    PlanStatus.DRAFT: (PlanStatus.REVIEWING, PlanStatus.IN_PROGRESS),
    PlanStatus.REVIEWING: (PlanStatus.DRAFT, PlanStatus.APPROVED),
    PlanStatus.APPROVED: (PlanStatus.IN_PROGRESS, PlanStatus.DRAFT),
    PlanStatus.IN_PROGRESS: (PlanStatus.COMPLETE, PlanStatus.APPROVED),
    PlanStatus.COMPLETE: (),
}


class Phase(BaseModel):
    """
    A single phase within a plan.

    `depends_on` lists other phase IDs in the same plan. It is informational:
    nothing in jig refuses to start a phase whose dependencies are open.
    """

    id: str = Field(..., min_length=1, description="Phase identifier (e.g., 'phase-1')")
    title: str = Field(default="", description="Short phase title")
    status: PhaseStatus = Field(default=PhaseStatus.PENDING, description="Phase status")
    depends_on: list[str] = Field(
        default_factory=list,
        description="IDs of phases this phase depends on",
    )
    description: str = Field(
        default="",
        description="Phase details from the Phases section of the document body",
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("depends_on", mode="before")
    @classmethod
    def dedupe_depends_on(cls, v: list[str] | str | None) -> list[str]:
        """Accept a comma-separated string and drop duplicate IDs, keeping order."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [item.strip() for item in v.split(",")]
        seen: list[str] = []
        for item in v:
            item = str(item).strip()
            if item and item not in seen:
                seen.append(item)
        return seen

    def is_blocked(self, phases: list["Phase"]) -> bool:
        """Check whether any dependency is unknown or not yet complete."""
        if not self.depends_on:
            return False
        by_id = {phase.id: phase for phase in phases}
        for dep_id in self.depends_on:
            dep = by_id.get(dep_id)
            if dep is None or dep.status != PhaseStatus.COMPLETE:
                return True
        return False

    def can_start(self, phases: list["Phase"]) -> bool:
        """Check whether this phase is pending with all dependencies complete."""
        return self.status == PhaseStatus.PENDING and not self.is_blocked(phases)


class Plan(BaseModel):
    """
    An implementation plan.

    Plans are stored in the cache as `plans/{id}.md`, a markdown document with
    YAML frontmatter. `issue_id` links the plan to a remote tracker issue; an
    empty string means the plan is unlinked and is never synced.

    Example:
        >>> plan = Plan(id="PLAN-1", title="Cache warmup", author="sam")
        >>> plan.add_phase(Phase(id="phase-1", title="Design"))
        >>> plan.progress
        0.0
    """

    # Required fields
    id: str = Field(..., min_length=1, description="Local plan identifier (e.g., 'PLAN-42')")
    title: str = Field(..., min_length=1, description="Plan title")
    author: str = Field(..., min_length=1, description="Plan author")

    # Plan state
    status: PlanStatus = Field(default=PlanStatus.DRAFT, description="Lifecycle status")
    issue_id: str = Field(
        default="",
        description="Linked tracker issue (e.g., 'ENG-7'); empty when unlinked",
    )
    created: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the plan was created",
    )

    # Body content
    problem_statement: str = Field(default="", description="Problem Statement section")
    proposed_solution: str = Field(default="", description="Proposed Solution section")
    phases: list[Phase] = Field(default_factory=list, description="Ordered phases")

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=False,
        validate_assignment=True,
    )

    @field_validator("issue_id", mode="before")
    @classmethod
    def normalize_issue_id(cls, v: str | None) -> str:
        """Treat a missing issue link as unlinked."""
        if v is None:
            return ""
        return str(v).strip()

    @property
    def is_linked(self) -> bool:
        """Check whether the plan is linked to a tracker issue."""
        return bool(self.issue_id)

    @property
    def progress(self) -> float:
        """Percentage of phases complete (0.0 when there are no phases)."""
        if not self.phases:
            return 0.0
        done = sum(1 for phase in self.phases if phase.status == PhaseStatus.COMPLETE)
        return done / len(self.phases) * 100

    def get_phase(self, phase_id: str) -> Phase | None:
        """Get a phase by ID, or None."""
        for phase in self.phases:
            if phase.id == phase_id:
                return phase
        return None

    def add_phase(self, phase: Phase) -> None:
        """Append a phase to the plan."""
        if self.get_phase(phase.id) is not None:
            raise ValueError(f"duplicate phase ID: {phase.id}")
        self.phases = [*self.phases, phase]

    def next_phases(self) -> list[Phase]:
        """Phases that are pending with every dependency complete."""
        return [phase for phase in self.phases if phase.can_start(self.phases)]

    def blocked_phases(self) -> list[Phase]:
        """Pending phases held up by an open or unknown dependency."""
        return [
            phase
            for phase in self.phases
            if phase.status == PhaseStatus.PENDING and phase.is_blocked(self.phases)
        ]

    def set_phase_status(self, phase_id: str, status: PhaseStatus) -> None:
        """
        Update a phase status.

        Raises:
            KeyError: If no phase has the given ID
        """
        phase = self.get_phase(phase_id)
        if phase is None:
            raise KeyError(f"phase not found: {phase_id}")
        phase.status = status

    def can_transition_to(self, status: PlanStatus) -> bool:
        """Check whether moving to `status` is an allowed transition."""
        return status in VALID_TRANSITIONS[self.status]

    def transition_to(self, status: PlanStatus) -> None:
        """
        Move the plan to a new lifecycle status.

        Raises:
            InvalidTransitionError: If the transition is not allowed. The
                plan is left unchanged.
        """
        if not self.can_transition_to(status):
            raise InvalidTransitionError(self.status.value, status.value)
        self.status = status

    def validate_phases(self) -> list[str]:
        """
        Check phase structure.

        Returns:
            List of problems found (duplicate IDs, unknown dependencies,
            dependency cycles). Empty when the phases are well formed.
        """
        problems: list[str] = []
        seen: set[str] = set()
        for phase in self.phases:
            if phase.id in seen:
                problems.append(f"duplicate phase ID: {phase.id}")
            seen.add(phase.id)

        for phase in self.phases:
            for dep_id in phase.depends_on:
                if dep_id not in seen:
                    problems.append(f"phase {phase.id} has unknown dependency: {dep_id}")

        if _has_cycle(self.phases):
            problems.append("plan has circular phase dependencies")

        return problems


def _has_cycle(phases: list[Phase]) -> bool:
    """Detect a dependency cycle with an iterative depth-first search."""
    graph = {phase.id: phase.depends_on for phase in phases}
    visiting: set[str] = set()
    done: set[str] = set()

    for root in graph:
        if root in done:
            continue
        stack: list[tuple[str, int]] = [(root, 0)]
        visiting.add(root)
        while stack:
            node, idx = stack[-1]
            deps = graph.get(node, [])
            if idx < len(deps):
                stack[-1] = (node, idx + 1)
                dep = deps[idx]
                if dep in visiting:
                    return True
                if dep not in done and dep in graph:
                    visiting.add(dep)
                    stack.append((dep, 0))
            else:
                stack.pop()
                visiting.discard(node)
                done.add(node)
    return False


def topological_levels(phases: list[Phase]) -> list[list[Phase]]:
    """
    Group phases into dependency levels.

    Phases in the same level have no dependencies on each other and could be
    worked in parallel. Phases caught in a cycle are left out.
    """
    by_id = {phase.id: phase for phase in phases}
    in_degree = {
        phase.id: sum(1 for dep in phase.depends_on if dep in by_id) for phase in phases
    }
    dependents: dict[str, list[str]] = {phase.id: [] for phase in phases}
    for phase in phases:
        for dep in phase.depends_on:
            if dep in dependents:
                dependents[dep].append(phase.id)

    levels: list[list[Phase]] = []
    queue = [phase.id for phase in phases if in_degree[phase.id] == 0]
    while queue:
        levels.append([by_id[pid] for pid in queue])
        next_queue: list[str] = []
        for pid in queue:
            for child in dependents[pid]:
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    next_queue.append(child)
        queue = next_queue
    return levels
