"""Central UI handler for dep-sanitizer.

Single source of truth for Rich console styling. Import this instead of
instantiating Console() in every command file. The console writes findings to
stdout; diagnostics go through the loguru logger on stderr.

Usage:
    from depsanitizer.ui import console, print_success

    console.print("[target]src/app:app[/target] removed: 2")
    print_success("12 BUILD file(s) already sorted")
"""

import sys

from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

SANITIZER_THEME = Theme({
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "target": "bold cyan",
    "path": "cyan",
    "dep": "white",
    "dim": "dim white",
})

# Single console instance - import this, don't create your own
console = Console(
    theme=SANITIZER_THEME,
    force_terminal=sys.stdout.isatty(),
    soft_wrap=True,
    highlight=False,
)


def print_success(msg: str) -> None:
    """Print a success message in green."""
    console.print(f"[success]OK:[/success] {escape(msg)}")
