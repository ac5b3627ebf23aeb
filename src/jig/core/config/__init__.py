"""
Configuration models and loading.

This module provides Pydantic models for jig configuration
with multi-layer merging: defaults < user < project < env vars.
"""

from .env import load_layered_env
from .loader import (
    clear_cache,
    get_cache_dir,
    get_jig_home,
    get_project_config_path,
    get_user_config_path,
    load_config,
)
from .models import JigConfig, TrackerConfig

__all__ = [
    # Models
    "JigConfig",
    "TrackerConfig",
    # Loader functions
    "clear_cache",
    "get_cache_dir",
    "get_jig_home",
    "get_project_config_path",
    "get_user_config_path",
    "load_config",
    "load_layered_env",
]
