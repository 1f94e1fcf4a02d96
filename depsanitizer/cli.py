"""dep-sanitizer CLI - Main entry point and command registration hub."""
# ruff: noqa: E402 - Intentional lazy loading: commands imported after cli group definition

from pathlib import Path

import click

from depsanitizer import __version__
from depsanitizer.config_runtime import load_runtime_config
from depsanitizer.utils.logging import logger


@click.group()
@click.version_option(version=__version__, prog_name="dep-sanitizer")
@click.help_option("-h", "--help")
@click.option(
    "--root",
    default=".",
    type=click.Path(exists=True, file_okay=False),
    help="Project root containing the BUILD files",
)
@click.option("-r", "--report-file", default=None, help="Usage report (default: deps.json in the root)")
@click.option("-p", "--prefix", default="", help="Only process BUILD files under this path")
@click.option("--skip-marker", default=None, help="Inline comment marker protecting an entry")
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Parallel workers")
@click.pass_context
def cli(ctx, root, report_file, prefix, skip_marker, workers):
    """dep-sanitizer - Pants BUILD file dependency sanitizer

    Finds and fixes unused and undeclared dependencies using a usage report
    produced by Pants, and keeps dependency lists sorted.

    \b
    QUICK START:
      ./pants -q dep-usage.jvm --no-summary src/:: > deps.json
      dep-sanitizer unused show        # List dead declarations
      dep-sanitizer unused fix         # Remove them
      dep-sanitizer undeclared fix     # Declare hidden dependencies
      dep-sanitizer sort --check       # Verify list formatting

    \b
    EXIT CODES:
      0 = Success
      1 = Issues found (show) or files would change (sort --check)
      2 = Usage report missing or malformed

    \b
    For detailed options: dep-sanitizer <command> --help"""
    config = load_runtime_config(root)
    if skip_marker:
        config["scan"]["skip_marker"] = skip_marker
    if workers:
        config["limits"]["workers"] = workers

    error_log = config["paths"]["error_log"]
    ctx.obj = {
        "root": root,
        "report_file": report_file,
        "prefix": prefix,
        "workers": config["limits"]["workers"],
        "config": config,
        "error_log": Path(root) / error_log if error_log else None,
    }
    logger.debug(f"Runtime config: {config}")


from depsanitizer.commands.sort import sort
from depsanitizer.commands.undeclared import undeclared
from depsanitizer.commands.unused import unused

cli.add_command(unused)
cli.add_command(undeclared)
cli.add_command(sort)


def main():
    """Main entry point for console script."""
    cli()


if __name__ == "__main__":
    main()
