"""
config.py - Configuration loader for the DICOM viewer.

Loads settings from config.yaml with sensible defaults so that no
path, placeholder or zoom factor is hard-coded inside a module.
"""

import copy
import os
from typing import Any, Optional

import yaml

# Resolve the config file relative to the repo root, not the CWD,
# so the viewer starts the same way regardless of where it is launched from.
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_CONFIG_PATH = os.path.join(REPO_ROOT, "config.yaml")

_DEFAULTS: dict[str, Any] = {
    "paths": {
        "sample_folder": "data/samples",
    },
    "reader": {
        "force": False,
    },
    "metadata": {
        "placeholder": "N/A",
        "fallback_charset": "ISO_IR 100",
    },
    "viewer": {
        "title": "DICOM View - Version 1.0.1",
        "subtitle": "High-performance DICOM viewer",
        "zoom_in_factor": 1.25,
        "zoom_out_factor": 0.8,
        "shortcut_zoom_in_factor": 1.20,
        "shortcut_zoom_out_factor": 0.8,
        "fit_margin": 0.95,
        "scene_extent": 20000,
    },
    "snapshot": {
        "dpi": 100,
        "cmap": "gray",
    },
    "logging": {
        "level": "INFO",
        "format": "%(levelname)-8s %(name)s: %(message)s",
        "file": None,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base*, returning a new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """
    Load the YAML configuration file and merge it with built-in defaults.

    Parameters
    ----------
    config_path : str, optional
        Path to a YAML file. Defaults to the repo-root config.yaml.

    Returns
    -------
    dict
        Merged configuration dictionary.

    Raises
    ------
    yaml.YAMLError
        If the file exists but is not valid YAML.
    """
    config_path = config_path or _CONFIG_PATH
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}
    else:
        user_config = {}

    return _deep_merge(copy.deepcopy(_DEFAULTS), user_config)


def reload_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """Re-read the configuration into the shared ``CONFIG`` dict in place."""
    fresh = load_config(config_path)
    CONFIG.clear()
    CONFIG.update(fresh)
    return CONFIG


# Module-level singleton so callers can just do `from dicomview.config import CONFIG`
CONFIG = load_config()
