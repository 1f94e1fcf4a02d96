"""Runtime configuration for dep-sanitizer - centralized configuration management."""

import copy
import json
import os
from pathlib import Path
from typing import Any

from depsanitizer.utils.constants import (
    CONFIG_FILE,
    DEFAULT_REPORT_FILE,
    DEFAULT_SKIP_MARKER,
    ENV_PREFIX,
)
from depsanitizer.utils.logging import logger

DEFAULTS = {
    "paths": {
        "report": DEFAULT_REPORT_FILE,
        "error_log": "",
    },
    "scan": {
        "build_files": ["BUILD", "BUILD.*"],
        "skip_dirs": [".git", ".pants.d", ".pids", "dist", "node_modules"],
        # owning targets whose address contains one of these are never analyzed
        "exclude": ["3rdparty"],
        "skip_marker": DEFAULT_SKIP_MARKER,
    },
    "limits": {
        "workers": 8,
    },
}


def load_runtime_config(root: str = ".") -> dict[str, Any]:
    """
    Load runtime configuration from the project config file and environment.

    Config priority (highest to lowest):
    1. Environment variables (DEP_SANITIZER_<SECTION>_<KEY>)
    2. <root>/.dep-sanitizer.json
    3. Built-in defaults

    Command line options are applied on top of the result by the CLI.

    Args:
        root: Project root to look for the config file

    Returns:
        Configuration dictionary with merged values
    """
    cfg = copy.deepcopy(DEFAULTS)

    path = Path(root) / CONFIG_FILE
    try:
        if path.exists():
            with open(path, encoding="utf-8") as f:
                user = json.load(f)

            if isinstance(user, dict):
                for section in cfg:
                    if section in user and isinstance(user[section], dict):
                        for key, value in user[section].items():
                            if key in cfg[section] and isinstance(value, type(cfg[section][key])):
                                cfg[section][key] = value
                            else:
                                logger.warning(f"Ignoring config key {section}.{key} in {path}")
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load config file from {path}: {e}")
        logger.info("Continuing with default configuration")

    for section in cfg:
        for key in cfg[section]:
            env_var = f"{ENV_PREFIX}_{section.upper()}_{key.upper()}"
            if env_var in os.environ:
                value = os.environ[env_var]
                try:
                    default_value = cfg[section][key]
                    if isinstance(default_value, int):
                        cfg[section][key] = int(value)
                    elif isinstance(default_value, list):
                        cfg[section][key] = [v.strip() for v in value.split(",") if v.strip()]
                    else:
                        cfg[section][key] = value
                except ValueError as e:
                    logger.warning(
                        f"Invalid value for environment variable {env_var}: '{value}' - {e}"
                    )
                    logger.info(f"Using default value: {cfg[section][key]}")

    return cfg
