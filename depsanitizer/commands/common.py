"""Helpers shared by the unused, undeclared and sort commands."""

import json
from pathlib import Path

import click
from rich.markup import escape

from depsanitizer.orchestrator import FileResult, SanitizerRun
from depsanitizer.report import UsageGraph, load_report, short_form
from depsanitizer.ui import console
from depsanitizer.utils.logging import logger

FORMAT_OPTION = click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)


def report_path(ctx: click.Context) -> Path:
    """--report-file as given, otherwise the configured report relative to --root."""
    obj = ctx.obj
    if obj["report_file"]:
        return Path(obj["report_file"])
    return Path(obj["root"]) / obj["config"]["paths"]["report"]


def load_graph(ctx: click.Context) -> UsageGraph:
    """Load the usage report. Raises ReportError before any BUILD file is read."""
    path = report_path(ctx)
    logger.info(f"Loading usage report {path}")
    return load_report(path)


def make_run(ctx: click.Context, with_report: bool = True) -> SanitizerRun:
    obj = ctx.obj
    graph = load_graph(ctx) if with_report else None
    return SanitizerRun(
        root=obj["root"],
        graph=graph,
        config=obj["config"],
        prefix=obj["prefix"],
        workers=obj["workers"],
    )


def summary_line(run: SanitizerRun, kind: str) -> str:
    summary = run.summary
    return f"modules affected: {summary.targets_affected}, total dependencies {kind}: {summary.issues}"


def report_failures(run: SanitizerRun) -> None:
    failed = run.summary.files_failed
    if failed:
        console.print(f"[warning]{failed} BUILD file(s) skipped, see warnings above[/warning]")


def _findings_of(result: FileResult, kind: str) -> list[dict]:
    targets = []
    for diagnosis in result.diagnoses:
        if kind == "unused":
            deps = [{"target": entry.literal, "line": entry.line} for entry in diagnosis.unused]
        else:
            deps = [{"target": short_form(name), "address": name} for name in diagnosis.undeclared]
        targets.append({"target": diagnosis.address, "line": diagnosis.line, kind: deps})
    return targets


def emit_findings(results: list[FileResult], run: SanitizerRun, kind: str, output_format: str) -> None:
    """Print show results; `kind` is "unused" or "undeclared"."""
    if output_format == "json":
        payload = {
            "files": [{"path": r.path, "targets": _findings_of(r, kind)} for r in results],
            "summary": run.summary.to_dict(),
        }
        click.echo(json.dumps(payload, indent=2))
        return

    for result in results:
        console.print(f"[path]{escape(result.path)}[/path]")
        for target in _findings_of(result, kind):
            console.print(f"  [target]{escape(target['target'])}[/target] [dim](line {target['line']})[/dim]")
            for dep in target[kind]:
                suffix = f" [dim](line {dep['line']})[/dim]" if "line" in dep else ""
                console.print(f"    [dep]{escape(dep['target'])}[/dep]{suffix}")

    console.print(summary_line(run, kind))
    report_failures(run)


def emit_changes(results: list[FileResult], run: SanitizerRun, kind: str, verb: str) -> None:
    """Print per-target fix results like "src/a:a removed: 2"."""
    for result in results:
        for diagnosis in result.diagnoses:
            count = len(diagnosis.unused) if kind == "unused" else len(diagnosis.undeclared)
            console.print(f"[target]{escape(diagnosis.address)}[/target] {verb}: {count}")

    console.print(summary_line(run, kind))
    console.print(f"[dim]files modified: {run.summary.files_modified}[/dim]")
    report_failures(run)
