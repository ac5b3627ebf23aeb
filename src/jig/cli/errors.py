"""
Standardized error handling and exit codes for jig CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands.
"""

from enum import IntEnum

from rich.console import Console

console = Console()


class ExitCode(IntEnum):
    """Standard exit codes for jig CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error (local store failure, failed sync)."""

    USER_ERROR = 2
    """User input or configuration error (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_warning(message: str) -> None:
    """Print a non-fatal warning; the command carries on."""
    console.print(f"[yellow]⚠[/yellow]  {message}")


def print_plan_not_found_error(identifier: str) -> None:
    """Print error when no plan matches an identifier."""
    print_error(
        f"Plan not found: {identifier}",
        reason="No cached plan has this plan ID or linked issue ID",
        solution="jig plan list  # to see cached plans",
    )


def print_tracker_not_configured_error() -> None:
    """Print error when a command needs a tracker and none is set."""
    print_error(
        "No tracker configured",
        reason="Syncing plans needs a tracker plugin",
        solution='set "tracker": {"backend": "<name>"} in .jig.json, or export JIG_TRACKER',
    )


def print_no_linked_issue_error(plan_id: str) -> None:
    """Print error when syncing a plan without a linked issue."""
    print_error(
        f"Plan {plan_id} has no linked issue",
        reason="Only plans linked to a tracker issue can be synced",
        solution=f"jig plan link {plan_id} ISSUE_ID",
    )
