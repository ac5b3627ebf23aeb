"""
Jig CLI - Plan commands.

Save plan documents into the local cache, inspect them, move them through
their lifecycle, and push linked plans to the issue tracker.
"""

import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from jig.cli.errors import (
    ExitCode,
    print_error,
    print_no_linked_issue_error,
    print_plan_not_found_error,
    print_tracker_not_configured_error,
    print_warning,
)
from jig.core.config import JigConfig, get_cache_dir, load_config
from jig.core.errors import (
    BatchSyncError,
    InvalidTransitionError,
    NoLinkedIssueError,
    OperationCancelledError,
    PlanNotFoundError,
    PlanStoreError,
    PlanSyncError,
    PlanValidationError,
    TrackerNotConfiguredError,
)
from jig.core.plan.models import Plan, PlanStatus
from jig.core.state import CachedPlan, PlanLookup, PlanStatusManager, PlanStore
from jig.core.state.store import is_valid_key
from jig.core.state.status import TransitionResult
from jig.core.sync import BatchSyncResult, PlanSyncService, PlanSyncStatus
from jig.core.tracker import TrackerSynchronizer, get_tracker

console = Console()
app = typer.Typer(
    name="plan",
    help="Save, inspect and sync implementation plans",
    no_args_is_help=True,
)

_STATUS_STYLE = {
    PlanStatus.DRAFT: "dim",
    PlanStatus.REVIEWING: "yellow",
    PlanStatus.APPROVED: "cyan",
    PlanStatus.IN_PROGRESS: "blue",
    PlanStatus.COMPLETE: "green",
}


class LookupKey(str, Enum):
    """Which key an ambiguous identifier should be matched against."""

    PLAN = "plan"
    ISSUE = "issue"


# =============================================================================
# Helpers
# =============================================================================


def _open_store() -> tuple[JigConfig, PlanStore]:
    """Load config and open the plan cache it points at."""
    config = load_config()
    return config, PlanStore(get_cache_dir(config))


def _open_tracker(config: JigConfig, *, required: bool) -> TrackerSynchronizer | None:
    """
    Build the configured tracker.

    Returns None when no tracker is configured. A tracker that cannot be
    built is an error when `required`, otherwise a warning and the command
    carries on local-only.
    """
    try:
        tracker = get_tracker(config.tracker)
    except TrackerNotConfiguredError as e:
        if required:
            print_error(
                str(e),
                solution="install the tracker plugin or fix tracker.backend in .jig.json",
            )
            raise typer.Exit(ExitCode.USER_ERROR)
        print_warning(f"{e}. Continuing without tracker.")
        return None

    return tracker


def _abort_on_store_error(e: PlanStoreError) -> NoReturn:
    print_error(
        "Could not access the plan cache",
        reason=str(e),
        solution="check the files under the cache directory (see JIG_CACHE_DIR)",
    )
    raise typer.Exit(ExitCode.GENERAL_ERROR)


def _resolve(store: PlanStore, identifier: str, by: LookupKey | None) -> CachedPlan:
    """
    Resolve a plan ID or linked issue ID to one cached plan.

    Two different matches are settled by `--by`, or by asking the user when
    running interactively.
    """
    try:
        result = PlanLookup(store).lookup(identifier)
    except PlanStoreError as e:
        _abort_on_store_error(e)

    if by is not None:
        cached = result.by_plan_id if by == LookupKey.PLAN else result.by_issue_id
        if cached is None:
            print_plan_not_found_error(identifier)
            raise typer.Exit(ExitCode.USER_ERROR)
        return cached

    if result.cached is not None:
        return result.cached
    if not result.has_conflict:
        print_plan_not_found_error(identifier)
        raise typer.Exit(ExitCode.USER_ERROR)

    plan_match, issue_match = result.candidates
    console.print(f"[yellow]'{identifier}' matches two different plans:[/yellow]")
    console.print(f"  plan:  {plan_match.plan.id} - {plan_match.plan.title}")
    console.print(
        f"  issue: {issue_match.plan.id} - {issue_match.plan.title} "
        f"(linked to {identifier})"
    )

    if not sys.stdin.isatty():
        print_error(
            f"Ambiguous plan identifier: {identifier}",
            reason="It is one plan's ID and another plan's linked issue",
            solution="repeat the command with --by plan or --by issue",
        )
        raise typer.Exit(ExitCode.USER_ERROR)

    choice = Prompt.ask(
        "Use which match?",
        choices=[LookupKey.PLAN.value, LookupKey.ISSUE.value],
        default=LookupKey.PLAN.value,
        console=console,
    )
    return plan_match if choice == LookupKey.PLAN.value else issue_match


@contextmanager
def _cancel_on_interrupt() -> Iterator[threading.Event]:
    """
    Turn Ctrl+C into a cancellation flag for the duration of a batch.

    The plan being synced when the signal arrives finishes; no further
    plans are started.
    """
    cancel = threading.Event()

    def _handle(signum: int, frame: object) -> None:
        console.print("\n[yellow]Interrupted. Finishing the current plan...[/yellow]")
        cancel.set()

    try:
        original = signal.signal(signal.SIGINT, _handle)
    except ValueError:
        # Not on the main thread; run without interrupt handling
        yield cancel
        return

    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, original)


def _report_transition(plan_id: str, result: TransitionResult) -> None:
    console.print(
        f"[green]✓[/green] {plan_id}: {result.previous_status.value} → "
        f"{result.new_status.value}"
    )
    if result.tracker_synced:
        console.print("[dim]Tracker issue updated[/dim]")
    elif result.tracker_error is not None:
        print_warning(f"Tracker not updated: {result.tracker_error}")
        console.print("[dim]The local status is saved; the issue will catch up later[/dim]")


def _transition(identifier: str, status: PlanStatus, by: LookupKey | None) -> None:
    config, store = _open_store()
    cached = _resolve(store, identifier, by)
    tracker = _open_tracker(config, required=False)
    manager = PlanStatusManager(store, tracker)

    try:
        result = manager.transition_to(cached.plan, status)
    except InvalidTransitionError as e:
        print_error(
            f"Cannot move {cached.plan.id} to {status.value}",
            reason=str(e),
        )
        raise typer.Exit(ExitCode.USER_ERROR)
    except PlanStoreError as e:
        _abort_on_store_error(e)

    _report_transition(cached.plan.id, result)


def _sync_saved(config: JigConfig, store: PlanStore, plan: Plan) -> None:
    """Push a just-saved linked plan when sync on save is enabled; failures only warn."""
    if not plan.is_linked or not config.tracker.sync_plan_on_save:
        return

    tracker = _open_tracker(config, required=False)
    if tracker is None:
        return

    try:
        result = PlanSyncService(store, tracker).sync_one(plan.id)
    except PlanSyncError as e:
        print_warning(f"Plan saved but not synced: {e}")
        console.print(f"[dim]Run `jig plan sync {plan.id}` to retry[/dim]")
        return
    except PlanStoreError as e:
        _abort_on_store_error(e)

    console.print(result.summary())
    if result.marker_error:
        print_warning("The next sync will push this plan again")


def _print_batch(batch: BatchSyncResult) -> None:
    for item in batch.results:
        if item.status == PlanSyncStatus.FAILED:
            console.print(f"[red]✗[/red] {item.summary()}")
        elif item.status == PlanSyncStatus.SKIPPED:
            console.print(f"[dim]- {item.summary()}[/dim]")
        else:
            console.print(f"[green]✓[/green] {item.summary()}")
    console.print(batch.summary())


# =============================================================================
# Commands
# =============================================================================


@app.command()
def save(
    file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Plan document (markdown with YAML frontmatter)",
    ),
    no_sync: bool = typer.Option(
        False,
        "--no-sync",
        help="Do not push the plan to its tracker issue",
    ),
) -> None:
    """
    Validate a plan document and save it to the cache.

    A linked plan is also pushed to its tracker issue when
    tracker.sync_plan_on_save is enabled. A failed push is a warning:
    the plan stays cached and `jig plan sync` retries it.

    Examples:
        jig plan save plan.md
        jig plan save plan.md --no-sync
    """
    config, store = _open_store()

    try:
        cached = store.save_document(file.read_text(encoding="utf-8"))
    except PlanValidationError as e:
        print_error(
            f"Invalid plan document: {file}",
            reason=str(e),
            solution="add the missing frontmatter fields or sections and save again",
        )
        raise typer.Exit(ExitCode.USER_ERROR)
    except PlanStoreError as e:
        _abort_on_store_error(e)

    plan = cached.plan
    console.print(f"[green]✓[/green] Saved {plan.id}: {plan.title} [dim]({plan.status.value})[/dim]")
    for problem in plan.validate_phases():
        print_warning(problem)

    if not no_sync:
        _sync_saved(config, store, plan)


@app.command()
def show(
    identifier: str = typer.Argument(..., metavar="ID", help="Plan ID or linked issue ID"),
    raw: bool = typer.Option(False, "--raw", help="Print the cached document as-is"),
    by: LookupKey | None = typer.Option(
        None,
        "--by",
        case_sensitive=False,
        help="Match ID only as a plan ID or only as an issue ID",
    ),
) -> None:
    """
    Show a cached plan.

    Examples:
        jig plan show PLAN-42
        jig plan show ENG-7
        jig plan show PLAN-42 --raw
    """
    _, store = _open_store()
    cached = _resolve(store, identifier, by)
    plan = cached.plan

    if raw:
        try:
            document = store.get_markdown(plan.id) or ""
        except PlanStoreError as e:
            _abort_on_store_error(e)
        console.print(document, markup=False, emoji=False, highlight=False, soft_wrap=True)
        return

    style = _STATUS_STYLE.get(plan.status, "white")
    console.print(f"[bold]{plan.title}[/bold]")
    console.print(f"ID:       {plan.id}")
    console.print(f"Status:   [{style}]{plan.status.value}[/{style}]")
    console.print(f"Author:   {plan.author}")
    console.print(f"Issue:    {plan.issue_id or '[dim]not linked[/dim]'}")
    console.print(f"Created:  {plan.created:%Y-%m-%d %H:%M}")
    console.print(f"Updated:  {cached.updated_at:%Y-%m-%d %H:%M}")
    if cached.synced_at is not None:
        console.print(f"Synced:   {cached.synced_at:%Y-%m-%d %H:%M}")
    if cached.needs_sync:
        console.print("[yellow]Local changes not yet synced[/yellow]")

    if plan.problem_statement:
        console.print("\n[bold]Problem Statement[/bold]")
        console.print(plan.problem_statement, markup=False)
    if plan.proposed_solution:
        console.print("\n[bold]Proposed Solution[/bold]")
        console.print(plan.proposed_solution, markup=False)

    if not plan.phases:
        return

    table = Table(title=f"Phases ({plan.progress:.0f}% complete)", show_header=True)
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Depends on", style="dim")
    for phase in plan.phases:
        table.add_row(phase.id, phase.title, phase.status.value, ", ".join(phase.depends_on))
    console.print()
    console.print(table)


@app.command(name="list")
def list_plans(
    unsynced: bool = typer.Option(
        False,
        "--unsynced",
        help="Only show linked plans with changes not yet synced",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """
    List cached plans.

    Examples:
        jig plan list
        jig plan list --unsynced
        jig plan list --json
    """
    _, store = _open_store()

    try:
        if json_output:
            console.print(store.export_index(), markup=False, highlight=False, soft_wrap=True)
            return
        plans = store.plans_needing_sync() if unsynced else store.list()
    except PlanStoreError as e:
        _abort_on_store_error(e)

    if not plans:
        console.print("[dim]No cached plans.[/dim]")
        return

    table = Table(show_header=True)
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Issue")
    table.add_column("Sync")
    for cached in plans:
        plan = cached.plan
        style = _STATUS_STYLE.get(plan.status, "white")
        if not plan.is_linked:
            sync_state = "[dim]-[/dim]"
        elif cached.needs_sync:
            sync_state = "[yellow]pending[/yellow]"
        else:
            sync_state = "[green]synced[/green]"
        table.add_row(
            plan.id,
            plan.title,
            f"[{style}]{plan.status.value}[/{style}]",
            plan.issue_id or "[dim]-[/dim]",
            sync_state,
        )
    console.print(table)


@app.command()
def start(
    identifier: str = typer.Argument(..., metavar="ID", help="Plan ID or linked issue ID"),
    by: LookupKey | None = typer.Option(None, "--by", case_sensitive=False),
) -> None:
    """
    Mark a plan as in progress.

    The cache is updated first; a tracker failure afterwards only warns.

    Examples:
        jig plan start PLAN-42
    """
    _transition(identifier, PlanStatus.IN_PROGRESS, by)


@app.command()
def complete(
    identifier: str = typer.Argument(..., metavar="ID", help="Plan ID or linked issue ID"),
    by: LookupKey | None = typer.Option(None, "--by", case_sensitive=False),
) -> None:
    """
    Mark an in-progress plan as complete.

    Examples:
        jig plan complete PLAN-42
    """
    _transition(identifier, PlanStatus.COMPLETE, by)


@app.command()
def link(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    issue_id: str = typer.Argument(..., help="Tracker issue ID, e.g. ENG-7"),
    no_sync: bool = typer.Option(
        False,
        "--no-sync",
        help="Do not push the plan to the issue",
    ),
) -> None:
    """
    Link a cached plan to a tracker issue.

    The plan is pushed to the issue afterwards when
    tracker.sync_plan_on_save is enabled. Moving a plan to a different
    issue marks it as never synced.

    Examples:
        jig plan link PLAN-42 ENG-7
        jig plan link PLAN-42 ENG-7 --no-sync
    """
    if not issue_id.strip():
        print_error("Issue ID is required", solution="jig plan link PLAN_ID ISSUE_ID")
        raise typer.Exit(ExitCode.USER_ERROR)

    config, store = _open_store()
    if not is_valid_key(plan_id):
        print_plan_not_found_error(plan_id)
        raise typer.Exit(ExitCode.USER_ERROR)

    try:
        cached = store.link_issue(plan_id, issue_id)
    except PlanStoreError as e:
        _abort_on_store_error(e)

    if cached is None:
        print_plan_not_found_error(plan_id)
        raise typer.Exit(ExitCode.USER_ERROR)

    plan = cached.plan
    console.print(f"[green]✓[/green] Linked {plan.id} to issue {plan.issue_id}")
    if not no_sync:
        _sync_saved(config, store, plan)


@app.command()
def sync(
    identifier: str | None = typer.Argument(
        None,
        metavar="[ID]",
        help="Plan ID or linked issue ID (default: every plan needing sync)",
    ),
    by: LookupKey | None = typer.Option(None, "--by", case_sensitive=False),
) -> None:
    """
    Push plans to their tracker issues.

    Plans whose content has not changed since the last sync are skipped
    without contacting the tracker.

    Examples:
        jig plan sync               # Every linked plan with local changes
        jig plan sync PLAN-42       # One plan
    """
    config, store = _open_store()
    tracker = _open_tracker(config, required=True)
    if tracker is None:
        print_tracker_not_configured_error()
        raise typer.Exit(ExitCode.USER_ERROR)
    service = PlanSyncService(store, tracker)

    if identifier is not None:
        cached = _resolve(store, identifier, by)
        try:
            result = service.sync_one(cached.plan.id)
        except NoLinkedIssueError:
            print_no_linked_issue_error(cached.plan.id)
            raise typer.Exit(ExitCode.USER_ERROR)
        except PlanNotFoundError:
            print_plan_not_found_error(identifier)
            raise typer.Exit(ExitCode.USER_ERROR)
        except PlanSyncError as e:
            print_error(f"Sync failed for {cached.plan.id}", reason=str(e))
            raise typer.Exit(ExitCode.GENERAL_ERROR)
        except PlanStoreError as e:
            _abort_on_store_error(e)
        console.print(result.summary())
        if result.marker_error:
            print_warning("The next sync will push this plan again")
        return

    with _cancel_on_interrupt() as cancel:
        try:
            batch = service.sync_pending(cancel=cancel)
        except BatchSyncError as e:
            if isinstance(e.result, BatchSyncResult):
                _print_batch(e.result)
            print_error(str(e), solution="jig --debug plan sync  # for details")
            exit_code = ExitCode.SIGINT if cancel.is_set() else ExitCode.GENERAL_ERROR
            raise typer.Exit(exit_code)
        except OperationCancelledError:
            raise typer.Exit(ExitCode.SIGINT)
        except PlanStoreError as e:
            _abort_on_store_error(e)

    if not batch.results:
        console.print("[dim]All plans are in sync.[/dim]")
        return
    _print_batch(batch)
