"""Normalize dependency lists.

Usage: dep-sanitizer sort [--check]
"""

import click
from rich.markup import escape

from depsanitizer.commands.common import make_run, report_failures
from depsanitizer.ui import console, print_success
from depsanitizer.utils.error_handler import handle_exceptions
from depsanitizer.utils.exit_codes import ExitCodes


@click.command("sort")
@click.option("--check", is_flag=True, help="Only report files that would change (exit 1 if any)")
@click.help_option("-h", "--help")
@click.pass_context
@handle_exceptions
def sort(ctx, check):
    """Sort and normalize every dependencies/exports list.

    Entries are ordered by normalized target address, keep their inline
    comments, use single quotes and end with a trailing comma. Own-line
    comments and blank lines stay where they are. Does not need the usage
    report.

    \b
    EXAMPLES:
      dep-sanitizer sort
      dep-sanitizer -p src/java sort --check
    """
    run = make_run(ctx, with_report=False)
    results = run.sort(check=check)

    verb = "would reformat" if check else "reformatted"
    for result in results:
        console.print(f"{verb} [path]{escape(result.path)}[/path]")

    if results:
        console.print(f"{len(results)} of {run.summary.files_scanned} BUILD file(s) {verb}")
    else:
        print_success(f"{run.summary.files_scanned} BUILD file(s) already sorted")
    report_failures(run)

    if check and results:
        ctx.exit(ExitCodes.ISSUES_FOUND)
