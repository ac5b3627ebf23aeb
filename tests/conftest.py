"""
Pytest configuration and shared fixtures.

Provides fixtures for a temporary plan cache, sample plans and documents,
an in-memory tracker, and an isolated jig environment for CLI tests.
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from jig.core.config import clear_cache
from jig.core.plan.models import Phase, PhaseStatus, Plan, PlanStatus
from jig.core.state.store import PlanStore
from jig.core.tracker.memory import InMemoryTracker

# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_jig_env(tmp_path, monkeypatch):
    """
    Keep every test away from the real ~/.jig and the caller's shell config.

    Sets JIG_HOME to a temp directory, clears jig env overrides, and resets
    the config cache before and after each test.
    """
    home = tmp_path / "jig-home"
    home.mkdir()
    monkeypatch.setenv("JIG_HOME", str(home))
    for name in ("JIG_CACHE_DIR", "JIG_TRACKER", "JIG_SYNC_PLAN_ON_SAVE"):
        monkeypatch.delenv(name, raising=False)

    clear_cache()
    yield home
    clear_cache()


@pytest.fixture
def cache_dir(tmp_path) -> Path:
    """Provide a plan cache root."""
    return tmp_path / "cache"


@pytest.fixture
def store(cache_dir) -> PlanStore:
    """Provide an empty PlanStore."""
    return PlanStore(cache_dir)


@pytest.fixture
def tracker() -> InMemoryTracker:
    """Provide an in-memory tracker that records calls."""
    return InMemoryTracker()


# ==============================================================================
# Plan Fixtures
# ==============================================================================


@pytest.fixture
def sample_plan() -> Plan:
    """A linked draft plan with two dependent phases."""
    return Plan(
        id="PLAN-42",
        title="Add auth",
        author="sam",
        issue_id="ENG-7",
        created=datetime(2026, 1, 16, 14, 32, 0, tzinfo=timezone.utc),
        problem_statement="Users cannot log in.",
        proposed_solution="Add session-based auth.",
        phases=[
            Phase(id="phase-1", title="Design", description="Sketch the session model."),
            Phase(
                id="phase-2",
                title="Build",
                depends_on=["phase-1"],
                description="Implement login and logout.",
            ),
        ],
    )


@pytest.fixture
def unlinked_plan() -> Plan:
    """A plan with no tracker issue."""
    return Plan(
        id="PLAN-7",
        title="Tidy logging",
        author="alex",
        created=datetime(2026, 2, 1, tzinfo=timezone.utc),
        problem_statement="Logs are noisy.",
        proposed_solution="Lower the default level.",
    )


@pytest.fixture
def make_plan():
    """Factory for small valid plans."""

    def _make(
        plan_id: str,
        issue_id: str = "",
        title: str = "A plan",
        status: PlanStatus = PlanStatus.DRAFT,
    ) -> Plan:
        return Plan(
            id=plan_id,
            title=title,
            author="sam",
            issue_id=issue_id,
            status=status,
            created=datetime(2026, 1, 1, tzinfo=timezone.utc),
            problem_statement="Something is wrong.",
            proposed_solution="Fix it.",
            phases=[Phase(id="phase-1", title="Do it", status=PhaseStatus.PENDING)],
        )

    return _make


SAMPLE_DOCUMENT = """\
---
id: PLAN-42
title: Add auth
status: draft
author: sam
issue_id: ENG-7
created: 2026-01-16
phases:
- id: phase-1
  title: Design
  status: complete
- id: phase-2
  title: Build
  status: pending
  depends_on:
  - phase-1
---

# Add auth

## Problem Statement

Users cannot log in.

## Proposed Solution

Add session-based auth.

## Phases

### phase-1: Design

Sketch the session model.

### phase-2: Build

Implement login and logout.
"""


@pytest.fixture
def sample_document() -> str:
    """Raw text of a valid, linked plan document."""
    return SAMPLE_DOCUMENT
