"""
.env loading for tracker credentials.

Tracker plugins read API tokens from the environment. jig fills it from two
files, later ones winning:

    $JIG_HOME/.env      user-wide credentials
    ./.env              project credentials

Variables already exported when jig starts always win over both files.
"""

import os
from pathlib import Path

from dotenv import dotenv_values

from .loader import get_jig_home


def get_env_files(project_dir: Path | None = None) -> list[Path]:
    """The .env files jig reads, lowest precedence first."""
    return [get_jig_home() / ".env", (project_dir or Path.cwd()) / ".env"]


def load_layered_env(project_dir: Path | None = None) -> None:
    """
    Export the variables from the user and project .env files.

    Args:
        project_dir: Directory holding the project .env (defaults to cwd)
    """
    merged: dict[str, str] = {}
    for path in get_env_files(project_dir):
        if path.is_file():
            merged.update({k: v for k, v in dotenv_values(path).items() if v is not None})

    for key, value in merged.items():
        os.environ.setdefault(key, value)
