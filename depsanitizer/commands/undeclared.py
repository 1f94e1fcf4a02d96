"""Undeclared dependency commands.

Usage: dep-sanitizer undeclared show|fix [--sort]
"""

import click

from depsanitizer.commands.common import FORMAT_OPTION, emit_changes, emit_findings, make_run
from depsanitizer.utils.error_handler import handle_exceptions
from depsanitizer.utils.exit_codes import ExitCodes


@click.group()
@click.help_option("-h", "--help")
def undeclared():
    """Dependencies used through the dependency chain but never declared.

    Names that a declared dependency makes visible through exports=[...]
    (directly or via a chain of exports) are not reported.

    \b
    SUBCOMMANDS:
      show:  List undeclared dependencies per target (exit 1 if any)
      fix:   Add them to the target's dependencies list

    \b
    EXAMPLES:
      dep-sanitizer undeclared show --format json
      dep-sanitizer undeclared fix --sort
    """
    pass


@undeclared.command("show")
@FORMAT_OPTION
@click.pass_context
@handle_exceptions
def undeclared_show(ctx, output_format):
    """List undeclared dependencies without modifying any file."""
    run = make_run(ctx)
    results = run.show(unused=False, undeclared=True)
    emit_findings(results, run, "undeclared", output_format)

    if run.summary.issues:
        ctx.exit(ExitCodes.ISSUES_FOUND)


@undeclared.command("fix")
@click.option("--sort", "sort_block", is_flag=True, help="Sort the receiving dependencies list afterwards")
@click.pass_context
@handle_exceptions
def undeclared_fix(ctx, sort_block):
    """Declare undeclared dependencies in the BUILD files.

    New entries are appended in sorted order before the closing bracket of
    the target's first dependencies list; a target without one gets a new
    dependencies=[...] argument.
    """
    run = make_run(ctx)
    results = run.fix_undeclared(sort=sort_block)
    emit_changes(results, run, "undeclared", "added")
