"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars

CLI flags are layered on top by the caller.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import GitUpConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = ".git-up.json"

# Global cache to avoid reloading config multiple times per process
_config_cache: GitUpConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/git-up/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "git-up" / "config.json"


def get_project_config_path(repo_dir: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        repo_dir: Repository work tree root (defaults to current directory)

    Returns:
        Path to .git-up.json in the repository root
    """
    if repo_dir is None:
        repo_dir = Path.cwd()
    return repo_dir / PROJECT_CONFIG_NAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 20}})
        {'a': 1, 'b': {'x': 10, 'y': 20}}
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
            logger.warning("Ignoring config at %s: top level is not an object", path)
            return None
    except (json.JSONDecodeError, OSError) as e:
        # A broken config file should not stop a sync
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _parse_bool(name: str, value: str) -> bool | None:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off", ""):
        return False
    logger.warning("Invalid %s value '%s', ignoring", name, value)
    return None


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        GIT_UP_REMOTE - overrides remote
        GIT_UP_FALLBACK_BRANCH - overrides fallback_branch
        GIT_UP_PRUNE - overrides prune
        GIT_UP_PRUNE_UNMERGED - overrides prune_unmerged

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if remote := os.environ.get("GIT_UP_REMOTE"):
        result["remote"] = remote

    if fallback := os.environ.get("GIT_UP_FALLBACK_BRANCH"):
        result["fallback_branch"] = fallback

    for key, env_name in (("prune", "GIT_UP_PRUNE"), ("prune_unmerged", "GIT_UP_PRUNE_UNMERGED")):
        raw = os.environ.get(env_name)
        if raw is None:
            continue
        parsed = _parse_bool(env_name, raw)
        if parsed is not None:
            result[key] = parsed

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "remote": None,
        "fallback_branch": None,
        "prune": True,
        "prune_unmerged": True,
    }


def load_config(repo_dir: Path | None = None, use_cache: bool = True) -> GitUpConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (GIT_UP_*)
        2. Project config (.git-up.json)
        3. User config (~/.config/git-up/config.json)
        4. Hardcoded defaults

    Args:
        repo_dir: Repository root to load .git-up.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated GitUpConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation

    Example:
        >>> config = load_config()
        >>> config.prune
        True
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    user_config_path = get_user_config_path()
    if user_config := load_json_file(user_config_path):
        logger.debug("Loaded user config from %s", user_config_path)
        merged = deep_merge(merged, user_config)

    project_config_path = get_project_config_path(repo_dir)
    if project_config := load_json_file(project_config_path):
        logger.debug("Loaded project config from %s", project_config_path)
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = GitUpConfig(**merged)

    _config_cache = config

    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
