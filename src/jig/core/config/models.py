"""
Configuration data models for jig.

These models define the structure of .jig.json and $JIG_HOME/config.json
files, with validation and type safety via Pydantic.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TrackerConfig(BaseModel):
    """
    Remote issue tracker settings.

    The tracker client itself is provided by a plugin; these settings only
    choose it and control when jig calls it. Plugin-specific keys (API
    URL, workspace) are kept in `model_extra` and reach the plugin factory.
    """
    backend: str = Field(
        default="none",
        description="Registered tracker name, or 'none' to run local-only"
    )
    sync_plan_on_save: bool = Field(
        default=True,
        description="Push a linked plan to its issue whenever it is saved"
    )
    plan_label_name: str = Field(
        default="jig-plan",
        min_length=1,
        description="Label applied to issues that carry a synced plan"
    )

    model_config = ConfigDict(extra="allow")


class JigConfig(BaseModel):
    """
    Top-level jig configuration.

    Example:
        >>> config = JigConfig()
        >>> config.tracker.backend
        'none'
    """
    cache_dir: Optional[Path] = Field(
        default=None,
        description="Plan cache root (defaults to $JIG_HOME/cache)"
    )
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)

    model_config = ConfigDict(extra="ignore")
