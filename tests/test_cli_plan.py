"""
Tests for the `jig plan` CLI commands.

Tests cover:
- Saving documents, with and without sync on save
- Showing plans by plan ID, issue ID, and ambiguous identifiers
- Listing plans (table and JSON)
- Status transitions with working and failing trackers
- Linking plans to tracker issues
- Single and batch sync, including partial failures
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from jig.cli import app
from jig.core.plan.models import PlanStatus
from jig.core.state.store import PlanStore
from jig.core.tracker import register_tracker, unregister_tracker
from jig.core.tracker.memory import InMemoryTracker

runner = CliRunner()


@pytest.fixture
def project(tmp_path, monkeypatch) -> Path:
    """Run each command from an empty project with its own cache."""
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    monkeypatch.chdir(project_dir)
    monkeypatch.setenv("JIG_CACHE_DIR", str(tmp_path / "cache"))
    return project_dir


@pytest.fixture
def cli_store(project, tmp_path) -> PlanStore:
    """The store the CLI writes to."""
    return PlanStore(tmp_path / "cache")


@pytest.fixture
def memory_tracker(monkeypatch):
    """Configure a shared in-memory tracker as the active backend."""
    tracker = InMemoryTracker()
    register_tracker("memory")(lambda config: tracker)
    monkeypatch.setenv("JIG_TRACKER", "memory")
    yield tracker
    unregister_tracker("memory")


@pytest.fixture
def plan_file(project, sample_document) -> Path:
    """A valid, linked plan document on disk."""
    path = project / "plan.md"
    path.write_text(sample_document)
    return path


def _invoke(*args: str):
    return runner.invoke(app, ["plan", *args])


class TestTopLevel:
    """Test the root command."""

    def test_version(self):
        """Test that version prints and exits cleanly."""
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "jig version" in result.output

    def test_debug_flag(self, project):
        """Test that --debug is accepted before a subcommand."""
        result = runner.invoke(app, ["--debug", "plan", "list"])
        assert result.exit_code == 0


class TestPlanSave:
    """Test `jig plan save`."""

    def test_save_caches_plan(self, plan_file, cli_store):
        """Test that a valid document is cached."""
        result = _invoke("save", str(plan_file))

        assert result.exit_code == 0
        assert "Saved PLAN-42" in result.output
        assert cli_store.get("PLAN-42").plan.title == "Add auth"

    def test_save_invalid_document(self, project, cli_store):
        """Test that a document missing structure is rejected."""
        path = project / "bad.md"
        path.write_text("---\nid: PLAN-1\ntitle: x\n---\n\nNothing here.\n")

        result = _invoke("save", str(path))

        assert result.exit_code == 2
        assert "Invalid plan document" in result.output
        assert cli_store.list() == []

    def test_save_missing_file(self, project):
        """Test that a missing file is a usage error."""
        result = _invoke("save", "nope.md")
        assert result.exit_code != 0

    def test_save_syncs_linked_plan(self, plan_file, memory_tracker):
        """Test sync on save when a tracker is configured."""
        result = _invoke("save", str(plan_file))

        assert result.exit_code == 0
        assert memory_tracker.sync_calls == ["ENG-7"]
        assert "synced to ENG-7" in result.output

    def test_save_no_sync(self, plan_file, memory_tracker, cli_store):
        """Test that --no-sync leaves the tracker alone."""
        result = _invoke("save", str(plan_file), "--no-sync")

        assert result.exit_code == 0
        assert memory_tracker.sync_calls == []
        assert cli_store.get("PLAN-42").needs_sync

    def test_save_sync_disabled_in_config(self, plan_file, memory_tracker, monkeypatch):
        """Test that sync_plan_on_save=false disables sync on save."""
        monkeypatch.setenv("JIG_SYNC_PLAN_ON_SAVE", "false")

        result = _invoke("save", str(plan_file))

        assert result.exit_code == 0
        assert memory_tracker.sync_calls == []

    def test_save_sync_failure_is_a_warning(self, plan_file, memory_tracker, cli_store):
        """Test that a failed sync on save still caches the plan."""
        memory_tracker.fail_all = True

        result = _invoke("save", str(plan_file))

        assert result.exit_code == 0
        assert "not synced" in result.output
        assert cli_store.get("PLAN-42").needs_sync

    def test_save_with_unknown_tracker(self, plan_file, monkeypatch, cli_store):
        """Test that a misconfigured tracker only warns on save."""
        monkeypatch.setenv("JIG_TRACKER", "does-not-exist")

        result = _invoke("save", str(plan_file))

        assert result.exit_code == 0
        assert "not registered" in result.output
        assert cli_store.get("PLAN-42") is not None

    def test_save_reports_phase_problems(self, project, sample_document):
        """Test that dependency problems are shown as warnings."""
        path = project / "plan.md"
        path.write_text(sample_document.replace("  - phase-1", "  - phase-9"))

        result = _invoke("save", str(path))

        assert result.exit_code == 0
        assert "unknown dependency: phase-9" in result.output


class TestPlanShow:
    """Test `jig plan show`."""

    def test_show_by_plan_id(self, plan_file):
        """Test showing a plan by its ID."""
        _invoke("save", str(plan_file))

        result = _invoke("show", "PLAN-42")

        assert result.exit_code == 0
        assert "Add auth" in result.output
        assert "Users cannot log in." in result.output
        assert "phase-2" in result.output

    def test_show_by_issue_id(self, plan_file):
        """Test showing a plan by its linked issue."""
        _invoke("save", str(plan_file))

        result = _invoke("show", "ENG-7")

        assert result.exit_code == 0
        assert "PLAN-42" in result.output

    def test_show_raw(self, plan_file):
        """Test printing the cached document."""
        _invoke("save", str(plan_file))

        result = _invoke("show", "PLAN-42", "--raw")

        assert result.exit_code == 0
        assert "## Problem Statement" in result.output
        assert "issue_id: ENG-7" in result.output

    def test_show_by_issue_id_with_slash(self, project, cli_store, make_plan):
        """Test an issue ID that could never be a plan ID."""
        cli_store.save(make_plan("PLAN-1", issue_id="acme/api#12", title="Repo issue"))

        result = _invoke("show", "acme/api#12")

        assert result.exit_code == 0
        assert "Repo issue" in result.output

    def test_show_not_found(self, project):
        """Test an unknown identifier."""
        result = _invoke("show", "NOPE-1")

        assert result.exit_code == 2
        assert "Plan not found: NOPE-1" in result.output

    def test_show_conflict_needs_choice(self, project, cli_store, make_plan):
        """Test that an ambiguous identifier is refused without --by."""
        cli_store.save(make_plan("ENG-7", title="Named like an issue"))
        cli_store.save(make_plan("PLAN-42", issue_id="ENG-7", title="Linked plan"))

        result = _invoke("show", "ENG-7")

        assert result.exit_code == 2
        assert "Ambiguous plan identifier" in result.output

    def test_show_conflict_resolved_by_flag(self, project, cli_store, make_plan):
        """Test --by picks one side of a conflict."""
        cli_store.save(make_plan("ENG-7", title="Named like an issue"))
        cli_store.save(make_plan("PLAN-42", issue_id="ENG-7", title="Linked plan"))

        by_issue = _invoke("show", "ENG-7", "--by", "issue")
        by_plan = _invoke("show", "ENG-7", "--by", "plan")

        assert by_issue.exit_code == 0
        assert "Linked plan" in by_issue.output
        assert by_plan.exit_code == 0
        assert "Named like an issue" in by_plan.output

    def test_show_by_flag_without_match(self, project, cli_store, make_plan):
        """Test that --by only matches the chosen key."""
        cli_store.save(make_plan("PLAN-42", issue_id="ENG-7"))

        result = _invoke("show", "PLAN-42", "--by", "issue")

        assert result.exit_code == 2


class TestPlanList:
    """Test `jig plan list`."""

    def test_list_empty(self, project):
        """Test listing an empty cache."""
        result = _invoke("list")

        assert result.exit_code == 0
        assert "No cached plans" in result.output

    def test_list_plans(self, project, cli_store, make_plan):
        """Test that every plan is listed."""
        cli_store.save(make_plan("PLAN-1", issue_id="ENG-1"))
        cli_store.save(make_plan("PLAN-2"))

        result = _invoke("list")

        assert result.exit_code == 0
        assert "PLAN-1" in result.output
        assert "PLAN-2" in result.output
        assert "pending" in result.output

    def test_list_unsynced(self, project, cli_store, make_plan):
        """Test filtering to plans that need sync."""
        cli_store.save(make_plan("PLAN-1", issue_id="ENG-1"))
        cli_store.save(make_plan("PLAN-2"))

        result = _invoke("list", "--unsynced")

        assert "PLAN-1" in result.output
        assert "PLAN-2" not in result.output

    def test_list_json(self, project, cli_store, make_plan):
        """Test machine-readable output."""
        cli_store.save(make_plan("PLAN-1", issue_id="ENG-1"))

        result = _invoke("list", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data == [
            {"id": "PLAN-1", "issue_id": "ENG-1", "status": "draft", "needs_sync": True}
        ]

    def test_list_malformed_cache_dir(self, project, cli_store, make_plan):
        """Test that an unreadable entry is skipped, not fatal."""
        cli_store.save(make_plan("PLAN-1"))
        (cli_store.plans_dir / "JUNK.md").write_text("junk")

        result = _invoke("list")

        assert result.exit_code == 0
        assert "PLAN-1" in result.output


class TestPlanTransitions:
    """Test `jig plan start` and `jig plan complete`."""

    def test_start_without_tracker(self, project, cli_store, make_plan):
        """Test a local-only transition."""
        cli_store.save(make_plan("PLAN-1", issue_id="ENG-1"))

        result = _invoke("start", "PLAN-1")

        assert result.exit_code == 0
        assert "draft → in-progress" in result.output
        assert cli_store.get("PLAN-1").plan.status == PlanStatus.IN_PROGRESS

    def test_start_by_issue_moves_tracker(self, project, cli_store, make_plan, memory_tracker):
        """Test that the linked issue is moved too."""
        cli_store.save(make_plan("PLAN-1", issue_id="ENG-1"))

        result = _invoke("start", "ENG-1")

        assert result.exit_code == 0
        assert "Tracker issue updated" in result.output
        assert memory_tracker.statuses["ENG-1"].value == "in_progress"

    def test_tracker_failure_warns(self, project, cli_store, make_plan, memory_tracker):
        """Test that a tracker failure keeps the local change and exits 0."""
        cli_store.save(make_plan("PLAN-1", issue_id="ENG-1"))
        memory_tracker.fail_all = True

        result = _invoke("start", "PLAN-1")

        assert result.exit_code == 0
        assert "Tracker not updated" in result.output
        assert cli_store.get("PLAN-1").plan.status == PlanStatus.IN_PROGRESS

    def test_complete(self, project, cli_store, make_plan):
        """Test completing an in-progress plan."""
        cli_store.save(make_plan("PLAN-1", status=PlanStatus.IN_PROGRESS))

        result = _invoke("complete", "PLAN-1")

        assert result.exit_code == 0
        assert cli_store.get("PLAN-1").plan.status == PlanStatus.COMPLETE

    def test_invalid_transition(self, project, cli_store, make_plan):
        """Test that completing a draft is refused."""
        cli_store.save(make_plan("PLAN-1"))

        result = _invoke("complete", "PLAN-1")

        assert result.exit_code == 2
        assert "Cannot move PLAN-1" in result.output
        assert cli_store.get("PLAN-1").plan.status == PlanStatus.DRAFT

    def test_start_not_found(self, project):
        """Test starting an unknown plan."""
        result = _invoke("start", "PLAN-404")
        assert result.exit_code == 2


class TestPlanLink:
    """Test `jig plan link`."""

    def test_link_without_tracker(self, project, cli_store, make_plan):
        """Test linking with no tracker configured saves locally."""
        cli_store.save(make_plan("PLAN-1"))

        result = _invoke("link", "PLAN-1", "ENG-1")

        assert result.exit_code == 0
        assert "Linked PLAN-1 to issue ENG-1" in result.output
        assert cli_store.get("PLAN-1").plan.issue_id == "ENG-1"

    def test_link_syncs(self, project, cli_store, make_plan, memory_tracker):
        """Test that linking pushes the plan to the new issue."""
        cli_store.save(make_plan("PLAN-1"))

        result = _invoke("link", "PLAN-1", "ENG-1")

        assert result.exit_code == 0
        assert memory_tracker.sync_calls == ["ENG-1"]
        assert not cli_store.get("PLAN-1").needs_sync

    def test_relink_pushes_unchanged_content(self, project, cli_store, make_plan, memory_tracker):
        """Test that a new issue receives the plan even though its content is unchanged."""
        cli_store.save(make_plan("PLAN-1", issue_id="ENG-1"))
        _invoke("sync", "PLAN-1")

        result = _invoke("link", "PLAN-1", "ENG-2")

        assert result.exit_code == 0
        assert memory_tracker.sync_calls == ["ENG-1", "ENG-2"]

    def test_link_no_sync(self, project, cli_store, make_plan, memory_tracker):
        """Test that --no-sync leaves the tracker alone."""
        cli_store.save(make_plan("PLAN-1"))

        result = _invoke("link", "PLAN-1", "ENG-1", "--no-sync")

        assert result.exit_code == 0
        assert memory_tracker.sync_calls == []
        assert cli_store.get("PLAN-1").needs_sync

    def test_link_sync_failure_is_a_warning(self, project, cli_store, make_plan, memory_tracker):
        """Test that a failed push keeps the link."""
        cli_store.save(make_plan("PLAN-1"))
        memory_tracker.fail_all = True

        result = _invoke("link", "PLAN-1", "ENG-1")

        assert result.exit_code == 0
        assert "not synced" in result.output
        assert cli_store.get("PLAN-1").plan.issue_id == "ENG-1"

    def test_link_not_found(self, project):
        """Test linking a plan that is not cached."""
        result = _invoke("link", "PLAN-404", "ENG-1")

        assert result.exit_code == 2
        assert "Plan not found: PLAN-404" in result.output

    def test_link_empty_issue(self, project, cli_store, make_plan):
        """Test that a blank issue ID is refused."""
        cli_store.save(make_plan("PLAN-1"))

        result = _invoke("link", "PLAN-1", " ")

        assert result.exit_code == 2
        assert cli_store.get("PLAN-1").plan.issue_id == ""


class TestPlanSync:
    """Test `jig plan sync`."""

    def test_requires_tracker(self, project, cli_store, make_plan):
        """Test that sync without a tracker is a configuration error."""
        cli_store.save(make_plan("PLAN-1", issue_id="ENG-1"))

        result = _invoke("sync")

        assert result.exit_code == 2
        assert "No tracker configured" in result.output

    def test_sync_one(self, project, cli_store, make_plan, memory_tracker):
        """Test syncing one plan, then skipping it when unchanged."""
        cli_store.save(make_plan("PLAN-1", issue_id="ENG-1"))

        first = _invoke("sync", "PLAN-1")
        second = _invoke("sync", "ENG-1")

        assert first.exit_code == 0
        assert "synced to ENG-1" in first.output
        assert second.exit_code == 0
        assert "unchanged" in second.output
        assert memory_tracker.sync_calls == ["ENG-1"]

    def test_sync_unlinked(self, project, cli_store, make_plan, memory_tracker):
        """Test that an unlinked plan cannot be synced."""
        cli_store.save(make_plan("PLAN-1"))

        result = _invoke("sync", "PLAN-1")

        assert result.exit_code == 2
        assert "has no linked issue" in result.output

    def test_sync_one_failure(self, project, cli_store, make_plan, memory_tracker):
        """Test that a failed single sync exits 1."""
        cli_store.save(make_plan("PLAN-1", issue_id="ENG-1"))
        memory_tracker.fail_all = True

        result = _invoke("sync", "PLAN-1")

        assert result.exit_code == 1
        assert "Sync failed for PLAN-1" in result.output

    def test_sync_all(self, project, cli_store, make_plan, memory_tracker):
        """Test syncing every pending plan."""
        cli_store.save(make_plan("PLAN-1", issue_id="ENG-1"))
        cli_store.save(make_plan("PLAN-2", issue_id="ENG-2"))
        cli_store.save(make_plan("PLAN-3"))

        result = _invoke("sync")

        assert result.exit_code == 0
        assert "2 synced, 0 unchanged, 0 failed" in result.output
        assert memory_tracker.sync_calls == ["ENG-1", "ENG-2"]

    def test_sync_all_nothing_pending(self, project, memory_tracker):
        """Test a batch with nothing to do."""
        result = _invoke("sync")

        assert result.exit_code == 0
        assert "All plans are in sync" in result.output

    def test_sync_all_partial_failure(self, project, cli_store, make_plan, memory_tracker):
        """Test that failures are reported and successes kept."""
        cli_store.save(make_plan("PLAN-1", issue_id="ENG-1"))
        cli_store.save(make_plan("PLAN-2", issue_id="ENG-2"))
        memory_tracker.fail_issues = {"ENG-2"}

        result = _invoke("sync")

        assert result.exit_code == 1
        assert "failed to sync 1 plan" in result.output
        assert not cli_store.get("PLAN-1").needs_sync
        assert cli_store.get("PLAN-2").needs_sync
