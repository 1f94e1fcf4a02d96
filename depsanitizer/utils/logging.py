"""Centralized logging configuration using Loguru.

Findings are printed to stdout through the rich console (see depsanitizer.ui).
Everything else (progress, per-file warnings, fatal errors) goes through this
logger to stderr, so automated consumers can tell "no issues" apart from
"some files could not be analyzed".

Usage:
    from depsanitizer.utils.logging import logger
    logger.info("Message")
    logger.debug("Debug message")  # Only shows if DEP_SANITIZER_LOG_LEVEL=DEBUG

Environment Variables:
    DEP_SANITIZER_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: INFO)
    DEP_SANITIZER_LOG_JSON: 0|1 (default: 0, human-readable)
    DEP_SANITIZER_LOG_FILE: path to log file (optional)
"""

import json
import os
import sys

from loguru import logger

# Remove default handler
logger.remove()

# Get configuration from environment
_log_level = os.environ.get("DEP_SANITIZER_LOG_LEVEL", "INFO").upper()
_json_mode = os.environ.get("DEP_SANITIZER_LOG_JSON", "0") == "1"
_log_file = os.environ.get("DEP_SANITIZER_LOG_FILE")


def _to_record_dict(message) -> dict:
    """Flatten a loguru message into a single NDJSON-friendly dict."""
    record = message.record

    entry = {
        "level": record["level"].name,
        "time": int(record["time"].timestamp() * 1000),
        "msg": record["message"],
        "pid": record["process"].id,
    }

    for key, value in record["extra"].items():
        entry[key] = value

    if record["exception"]:
        entry["err"] = {
            "type": record["exception"].type.__name__ if record["exception"].type else "Error",
            "message": str(record["exception"].value) if record["exception"].value else "",
        }

    return entry


def ndjson_sink(message):
    """Write log records as NDJSON to stderr.

    stdout is reserved for findings, so machine logs never interleave with them.
    CRITICAL: Never call logger.* inside a sink - causes infinite recursion
    """
    sys.stderr.write(json.dumps(_to_record_dict(message), default=str) + "\n")
    sys.stderr.flush()


# Human-readable format (no emojis - Windows CP1252 compatibility)
_human_format = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<level>{message}</level>"
)

logger.level("DEBUG", color="<blue>")
logger.level("INFO", color="<white>")
logger.level("WARNING", color="<yellow>")
logger.level("ERROR", color="<red>")

if _json_mode:
    logger.add(
        ndjson_sink,
        level=_log_level,
        colorize=False,
    )
else:
    logger.add(
        sys.stderr,
        level=_log_level,
        format=_human_format,
        colorize=None,  # Auto-detect: colors if TTY, plain if piped
    )

# Optional file handler (always NDJSON for machine parsing)
if _log_file:
    def _file_ndjson_sink(message):
        """Append NDJSON records to the configured log file."""
        with open(_log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(_to_record_dict(message), default=str) + "\n")

    logger.add(
        _file_ndjson_sink,
        level="DEBUG",  # File always captures everything
    )


__all__ = [
    "logger",
]
