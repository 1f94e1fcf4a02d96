"""Unused dependency commands.

Usage: dep-sanitizer unused show|fix
"""

import click

from depsanitizer.commands.common import FORMAT_OPTION, emit_changes, emit_findings, make_run
from depsanitizer.utils.error_handler import handle_exceptions
from depsanitizer.utils.exit_codes import ExitCodes


@click.group()
@click.help_option("-h", "--help")
def unused():
    """Declared dependencies that the target's code never uses.

    A dependency is unused when the usage report does not list it among the
    targets the code references. Entries with the skip marker in their
    inline comment are never reported or removed. exports=[...] lists are
    not checked.

    \b
    SUBCOMMANDS:
      show:  List unused dependencies per target (exit 1 if any)
      fix:   Remove them from the BUILD files

    \b
    EXAMPLES:
      dep-sanitizer unused show
      dep-sanitizer -p src/java/com/foo unused fix
    """
    pass


@unused.command("show")
@FORMAT_OPTION
@click.pass_context
@handle_exceptions
def unused_show(ctx, output_format):
    """List unused dependencies without modifying any file."""
    run = make_run(ctx)
    results = run.show(unused=True, undeclared=False)
    emit_findings(results, run, "unused", output_format)

    if run.summary.issues:
        ctx.exit(ExitCodes.ISSUES_FOUND)


@unused.command("fix")
@click.pass_context
@handle_exceptions
def unused_fix(ctx):
    """Remove unused dependencies from the BUILD files."""
    run = make_run(ctx)
    results = run.fix_unused()
    emit_changes(results, run, "unused", "removed")
