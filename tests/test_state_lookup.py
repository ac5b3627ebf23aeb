"""
Unit tests for dual-key plan lookup.

Tests resolving an identifier as a plan ID or as a linked issue ID,
including the case where the two keys match different plans.
"""

import pytest

from jig.core.errors import MalformedCacheError
from jig.core.state.lookup import PlanLookup, PlanLookupResult


class TestPlanLookup:
    """Test PlanLookup against a real store."""

    def test_not_found(self, store) -> None:
        """Test that an unknown identifier is an empty result, not an error."""
        result = PlanLookup(store).lookup("NOPE-1")

        assert not result.found
        assert not result.has_conflict
        assert result.plan is None
        assert result.candidates == []

    def test_by_plan_id(self, store, sample_plan) -> None:
        """Test matching on the plan ID."""
        store.save(sample_plan)

        result = PlanLookup(store).lookup("PLAN-42")

        assert result.found
        assert result.by_plan_id is not None
        assert result.by_issue_id is None
        assert result.plan.id == "PLAN-42"

    def test_by_issue_id(self, store, sample_plan) -> None:
        """Test matching on the linked issue ID."""
        store.save(sample_plan)

        result = PlanLookup(store).lookup("ENG-7")

        assert result.by_plan_id is None
        assert result.by_issue_id is not None
        assert result.plan.id == "PLAN-42"

    def test_issue_id_that_cannot_be_a_plan_id(self, store, make_plan) -> None:
        """Test that a slash in an issue ID still finds the linked plan."""
        store.save(make_plan("PLAN-1", issue_id="acme/api#12"))

        result = PlanLookup(store).lookup("acme/api#12")

        assert result.by_plan_id is None
        assert result.plan.id == "PLAN-1"

    def test_empty_identifier(self, store, sample_plan) -> None:
        """Test that an empty identifier matches nothing."""
        store.save(sample_plan)

        result = PlanLookup(store).lookup("")

        assert not result.found

    def test_same_plan_on_both_keys_is_not_a_conflict(self, store, make_plan) -> None:
        """Test a plan whose ID equals its own issue ID."""
        store.save(make_plan("ENG-7", issue_id="ENG-7"))

        result = PlanLookup(store).lookup("ENG-7")

        assert not result.has_conflict
        assert result.plan.id == "ENG-7"
        assert len(result.candidates) == 1

    def test_conflict(self, store, make_plan) -> None:
        """Test one plan's ID colliding with another plan's issue."""
        store.save(make_plan("ENG-7", title="Named like an issue"))
        store.save(make_plan("PLAN-42", issue_id="ENG-7", title="Linked to ENG-7"))

        result = PlanLookup(store).lookup("ENG-7")

        assert result.has_conflict
        assert result.plan is None
        assert result.cached is None
        assert result.by_plan_id.plan.id == "ENG-7"
        assert result.by_issue_id.plan.id == "PLAN-42"
        assert [c.plan.id for c in result.candidates] == ["ENG-7", "PLAN-42"]

    def test_store_errors_propagate(self, store) -> None:
        """Test that a corrupt cache entry is not reported as absent."""
        store.plans_dir.mkdir(parents=True)
        (store.plans_dir / "PLAN-1.md").write_text("---\nid: [broken\n---\n")

        with pytest.raises(MalformedCacheError):
            PlanLookup(store).lookup("PLAN-1")


class TestPlanLookupResult:
    """Test the result object on its own."""

    def test_empty(self) -> None:
        """Test defaults."""
        result = PlanLookupResult()

        assert not result.found
        assert result.plan is None
