"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import JigConfig

logger = logging.getLogger(__name__)

# Global cache to avoid reloading config multiple times per session
_config_cache: JigConfig | None = None


def get_jig_home() -> Path:
    """
    Get the jig home directory.

    Returns:
        $JIG_HOME if set, otherwise ~/.jig
    """
    if jig_home := os.environ.get("JIG_HOME"):
        return Path(jig_home)
    return Path.home() / ".jig"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to $JIG_HOME/config.json
    """
    return get_jig_home() / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .jig.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".jig.json"


def get_cache_dir(config: JigConfig) -> Path:
    """Resolve the plan cache root for a loaded config."""
    if config.cache_dir is not None:
        return Path(config.cache_dir).expanduser()
    return get_jig_home() / "cache"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 30}})
        {'a': 1, 'b': {'x': 10, 'y': 30}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient to a broken file
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        JIG_CACHE_DIR - overrides cache_dir
        JIG_TRACKER - overrides tracker.backend
        JIG_SYNC_PLAN_ON_SAVE - overrides tracker.sync_plan_on_save

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()
    tracker = dict(result.get("tracker") or {})

    if cache_dir := os.environ.get("JIG_CACHE_DIR"):
        result["cache_dir"] = cache_dir

    if backend := os.environ.get("JIG_TRACKER"):
        tracker["backend"] = backend.strip().lower()

    if sync_str := os.environ.get("JIG_SYNC_PLAN_ON_SAVE"):
        tracker["sync_plan_on_save"] = sync_str.lower() not in ("false", "0", "no", "")

    result["tracker"] = tracker
    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "cache_dir": None,
        "tracker": {
            "backend": "none",
            "sync_plan_on_save": True,
            "plan_label_name": "jig-plan",
        },
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> JigConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (JIG_*)
        2. Project config (.jig.json)
        3. User config ($JIG_HOME/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .jig.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated JigConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = JigConfig(**merged)
    _config_cache = config
    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
