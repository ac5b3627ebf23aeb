"""
Dual-key plan lookup.

An identifier typed by the user may be a plan ID (PLAN-42) or the ID of the
issue a plan is linked to (ENG-7). Plan IDs are unique, but nothing stops
one plan's ID from equalling another plan's issue ID, so a lookup can match
two different plans. That ambiguity is reported, never resolved here.
"""

from __future__ import annotations

from dataclasses import dataclass

from jig.core.plan.models import Plan
from jig.core.state.models import CachedPlan
from jig.core.state.store import PlanStore, is_valid_key


@dataclass(frozen=True)
class PlanLookupResult:
    """
    Outcome of a dual-key lookup.

    Holds the match by plan ID and the match by issue ID separately. When
    both are present and differ, `has_conflict` is True and `plan` is None:
    the caller must choose between `by_plan_id` and `by_issue_id`.
    """

    by_plan_id: CachedPlan | None = None
    by_issue_id: CachedPlan | None = None

    @property
    def has_conflict(self) -> bool:
        """True when the two keys matched two different plans."""
        return (
            self.by_plan_id is not None
            and self.by_issue_id is not None
            and self.by_plan_id.plan.id != self.by_issue_id.plan.id
        )

    @property
    def found(self) -> bool:
        """True when at least one key matched."""
        return self.by_plan_id is not None or self.by_issue_id is not None

    @property
    def cached(self) -> CachedPlan | None:
        """The single resolved cached plan, or None if absent or ambiguous."""
        if self.has_conflict:
            return None
        return self.by_plan_id or self.by_issue_id

    @property
    def plan(self) -> Plan | None:
        """The single resolved plan, or None if absent or ambiguous."""
        cached = self.cached
        return cached.plan if cached else None

    @property
    def candidates(self) -> list[CachedPlan]:
        """Distinct matches, plan-ID match first."""
        result = [c for c in (self.by_plan_id, self.by_issue_id) if c is not None]
        if self.has_conflict:
            return result
        return result[:1]


class PlanLookup:
    """Resolve plan identifiers against a PlanStore."""

    def __init__(self, store: PlanStore) -> None:
        self.store = store

    def lookup(self, identifier: str) -> PlanLookupResult:
        """
        Look up a plan by plan ID and by linked issue ID.

        Absence is not an error: an unmatched identifier yields an empty
        result. An identifier that cannot be a plan ID (e.g. `acme/api#12`)
        is only matched against issue IDs. Store errors (e.g.
        MalformedCacheError) propagate.
        """
        by_plan_id = self.store.get(identifier) if is_valid_key(identifier) else None
        by_issue_id = self.store.find_by_issue_id(identifier)
        return PlanLookupResult(by_plan_id=by_plan_id, by_issue_id=by_issue_id)
