"""Configuration manager for tsgen using TOML files."""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Optional

import toml

from .config import BASE_DIR, CONFIG_FILE

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "analysis": {
        "large_file_lines": 500,
        "complexity_threshold": 20,
        "diff_tolerance": 2,
    },
    "format": {
        "license_header": "",
    },
}


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections) as written on disk."""
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as e:
        logger.warning("Could not read %s: %s", CONFIG_FILE, e)
        return {}


def load_config() -> Dict[str, Any]:
    """Load configuration merged over the defaults.

    Returns:
        Dictionary with ``analysis`` and ``format`` sections. Values missing
        from the file (or the whole file) fall back to ``DEFAULT_CONFIG``.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    for section, values in load_full_config().items():
        if isinstance(values, dict):
            config.setdefault(section, {}).update(values)
        else:
            config[section] = values
    return config


def _save_full_config(config: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    try:
        BASE_DIR.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            toml.dump(config, f)
        return True
    except OSError as e:
        logger.warning("Could not write %s: %s", CONFIG_FILE, e)
        return False


def save_analysis_config(
    large_file_lines: Optional[int] = None,
    complexity_threshold: Optional[int] = None,
    diff_tolerance: Optional[int] = None,
) -> bool:
    """Update the ``[analysis]`` section.

    Only the given values are changed; other sections in the file are kept.

    Returns:
        True if saved successfully, False otherwise
    """
    config = load_full_config()
    analysis = config.setdefault("analysis", {})
    if large_file_lines is not None:
        analysis["large_file_lines"] = large_file_lines
    if complexity_threshold is not None:
        analysis["complexity_threshold"] = complexity_threshold
    if diff_tolerance is not None:
        analysis["diff_tolerance"] = diff_tolerance
    return _save_full_config(config)


def save_license_header(header: str) -> bool:
    """Store the default header used by ``tsgen license``."""
    config = load_full_config()
    config.setdefault("format", {})["license_header"] = header
    return _save_full_config(config)
