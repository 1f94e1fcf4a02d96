"""Centralized error handler for dep-sanitizer commands."""

import sys
import traceback
from collections.abc import Callable
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any

import click

from depsanitizer.exceptions import ReportError
from depsanitizer.utils.exit_codes import ExitCodes
from depsanitizer.utils.logging import logger


def _append_error_log(error_log: Path | None, command: str, error: Exception) -> None:
    """Append a traceback record to the persistent error log, if configured."""
    if error_log is None:
        return
    try:
        error_log.parent.mkdir(parents=True, exist_ok=True)
        with open(error_log, "a", encoding="utf-8") as f:
            f.write("\n" + "=" * 80 + "\n")
            f.write(f"[{datetime.now().isoformat()}] Error in command: {command}\n")
            f.write("=" * 80 + "\n")
            f.write(f"{type(error).__name__}: {error}\n\n")
            f.write(traceback.format_exc())
            f.write("=" * 80 + "\n\n")
    except OSError as e:
        logger.warning(f"Could not write error log {error_log}: {e}")


def handle_exceptions(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator that maps failures onto the CLI exit status contract.

    ReportError is fatal and expected: it is logged and the process exits with
    ExitCodes.FATAL. Any other exception is logged with its traceback and
    re-raised as a ClickException.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        """Inner wrapper that implements the try-except logic."""
        ctx = click.get_current_context(silent=True)
        error_log = None
        if ctx is not None and isinstance(ctx.obj, dict):
            error_log = ctx.obj.get("error_log")

        try:
            return func(*args, **kwargs)
        except (click.exceptions.Exit, click.ClickException, SystemExit):
            raise
        except ReportError as e:
            logger.error(f"{ExitCodes.get_description(ExitCodes.FATAL)}: {e}")
            _append_error_log(error_log, func.__name__, e)
            sys.exit(ExitCodes.FATAL)
        except Exception as e:
            logger.opt(exception=True).error(
                "Command '{cmd}' failed: {err}",
                cmd=func.__name__,
                err=str(e),
            )
            _append_error_log(error_log, func.__name__, e)

            user_message = f"{type(e).__name__}: {e}"
            if error_log is not None:
                user_message += f"\n\nFull traceback logged to: {error_log}"
            raise click.ClickException(user_message) from e

    return wrapper
