"""
Jig CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from jig import __version__
from jig.cli import plan
from jig.core.config.env import load_layered_env

app = typer.Typer(
    name="jig",
    help="Cache implementation plans locally and mirror them to your issue tracker",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def _setup_logging(debug: bool) -> None:
    """Send log records to stderr; DEBUG with --debug, WARNING otherwise."""
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    Jig - plan cache and tracker sync.

    Plans are markdown documents with YAML frontmatter. Jig validates and
    caches them locally, moves them through their lifecycle, and pushes
    linked plans to the issue tracker when their content changes.

    Common Workflows:
        jig plan save plan.md        # Validate and cache a plan
        jig plan list                # See cached plans
        jig plan start PLAN-42       # Begin work (moves the issue too)
        jig plan sync                # Push every changed, linked plan
    """
    _setup_logging(debug)

    # Tracker plugins read credentials from the environment.
    # Precedence: OS env > project .env > user .env
    load_layered_env()

    ctx.obj = {"debug": debug}


app.add_typer(plan.app, name="plan")


@app.command()
def version() -> None:
    """Show jig version and exit."""
    console.print(f"jig version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
