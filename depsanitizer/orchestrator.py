"""Run orchestration: discovery, parallel per-file processing, persistence.

A run is two passes over the discovered BUILD files:

1. Parse every file in a bounded thread pool and collect exports edges into
   an ExportsIndex (skipped when undeclared dependencies are not needed).
2. Diagnose each parsed model against the shared read-only UsageGraph and
   ExportsIndex, then (for fix/sort) rewrite it in memory and persist it
   atomically when the rendered text differs.

One bad file never stops the run: parse and write failures are logged as a
single warning for that file and counted in the summary.
"""

import contextlib
import fnmatch
import os
import shutil
import tempfile
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from depsanitizer.analyzer import ExportsIndex, TargetDiagnosis, diagnose_file
from depsanitizer.buildfile.model import BuildFileModel
from depsanitizer.buildfile.parser import parse_build_file
from depsanitizer.buildfile.rewriter import insert_entries, normalize_model, remove_entries
from depsanitizer.config_runtime import DEFAULTS
from depsanitizer.exceptions import BuildFileParseError
from depsanitizer.report import UsageGraph
from depsanitizer.utils.logging import logger


def normalize_prefix(prefix: str | None) -> str:
    """Turn a user supplied path prefix into a "/" separated relative path."""
    if not prefix:
        return ""
    prefix = prefix.replace("\\", "/").strip()
    if prefix.startswith("//"):
        prefix = prefix[2:]
    if prefix.startswith("./"):
        prefix = prefix[2:]
    return prefix.strip("/")


def _may_contain(directory: str, prefix: str) -> bool:
    """Whether files under `directory` can match `prefix`."""
    if not prefix or not directory:
        return True
    return directory.startswith(prefix) or prefix.startswith(directory + "/")


def discover_build_files(
    root: str | Path,
    prefix: str = "",
    patterns: Iterable[str] = ("BUILD", "BUILD.*"),
    skip_dirs: Iterable[str] = (),
) -> list[Path]:
    """
    Find BUILD files under `root` whose directory starts with `prefix`.

    Directories named in `skip_dirs` and directories that cannot lead to the
    prefix are pruned without being entered.

    Args:
        root: Project root
        prefix: Relative path prefix ("src/java/com/foo"); empty means everything
        patterns: fnmatch patterns for BUILD file names
        skip_dirs: Directory names never descended into

    Returns:
        Sorted list of absolute file paths
    """
    root = Path(root).resolve()
    prefix = normalize_prefix(prefix)
    patterns = tuple(patterns)
    skip_dirs = set(skip_dirs)
    found = []

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        if rel_dir == ".":
            rel_dir = ""

        dirnames[:] = sorted(
            d for d in dirnames
            if d not in skip_dirs and _may_contain(f"{rel_dir}/{d}".lstrip("/"), prefix)
        )

        if prefix and not rel_dir.startswith(prefix):
            continue

        for filename in filenames:
            if any(fnmatch.fnmatchcase(filename, pattern) for pattern in patterns):
                found.append(Path(dirpath) / filename)

    return sorted(found)


def read_build_file(path: Path) -> str:
    # newline="" keeps \r\n line endings intact
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def write_atomic(path: Path, text: str) -> None:
    """Replace `path` with `text` via a temporary file in the same directory."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise


class RunSummary:
    """Counters shared by all workers of a run."""

    def __init__(self):
        self._lock = threading.Lock()
        self.files_scanned = 0
        self.files_modified = 0
        self.files_failed = 0
        self.targets_affected = 0
        self.issues = 0
        self.warnings = 0

    def file_scanned(self) -> None:
        with self._lock:
            self.files_scanned += 1

    def file_modified(self) -> None:
        with self._lock:
            self.files_modified += 1

    def file_failed(self) -> None:
        with self._lock:
            self.files_failed += 1
            self.warnings += 1

    def findings(self, targets: int, issues: int) -> None:
        with self._lock:
            self.targets_affected += targets
            self.issues += issues

    def to_dict(self) -> dict[str, int]:
        with self._lock:
            return {
                "files_scanned": self.files_scanned,
                "files_modified": self.files_modified,
                "files_failed": self.files_failed,
                "targets_affected": self.targets_affected,
                "issues": self.issues,
                "warnings": self.warnings,
            }


@dataclass
class FileResult:
    """Outcome for one BUILD file."""

    path: str
    diagnoses: list[TargetDiagnosis] = field(default_factory=list)
    changed: bool = False


class SanitizerRun:
    """One invocation of show, fix or sort over a project tree."""

    def __init__(
        self,
        root: str | Path = ".",
        graph: UsageGraph | None = None,
        config: dict[str, Any] | None = None,
        prefix: str = "",
        workers: int | None = None,
    ):
        self.root = Path(root).resolve()
        self.graph = graph
        self.config = config or DEFAULTS
        self.prefix = normalize_prefix(prefix)
        self.workers = max(1, workers or self.config["limits"]["workers"])
        self.summary = RunSummary()

        scan = self.config["scan"]
        self.patterns = scan["build_files"]
        self.skip_dirs = scan["skip_dirs"]
        self.excluded = scan["exclude"]
        self.skip_marker = scan["skip_marker"]

    # ------------------------------------------------------------------
    # pass 1: discovery and parsing
    # ------------------------------------------------------------------

    def discover(self, prefix: str | None = None) -> list[Path]:
        return discover_build_files(
            self.root,
            self.prefix if prefix is None else prefix,
            self.patterns,
            self.skip_dirs,
        )

    def relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def _in_prefix(self, path: Path) -> bool:
        return not self.prefix or self.relative(path.parent).startswith(self.prefix)

    def _parallel(self, func: Callable[[Path], Any], paths: list[Path]) -> dict[Path, Any]:
        """Run `func` over `paths` in the worker pool; None results are dropped."""
        results = {}
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {executor.submit(func, path): path for path in paths}
            for future in as_completed(futures):
                result = future.result()
                if result is not None:
                    results[futures[future]] = result
        return results

    def _parse(self, path: Path, quiet: bool = False) -> BuildFileModel | None:
        rel = self.relative(path)
        directory = self.relative(path.parent)
        if directory == ".":
            directory = ""

        try:
            text = read_build_file(path)
            model = parse_build_file(text, directory, self.skip_marker, path=rel)
        except (BuildFileParseError, OSError, UnicodeDecodeError) as e:
            if quiet:
                logger.debug(f"Skipping {rel} for exports: {e}")
                return None
            logger.warning(f"Skipping {rel}: {e}")
            self.summary.file_failed()
            return None

        if not quiet:
            self.summary.file_scanned()
        return model

    def parse_files(self, paths: list[Path]) -> dict[Path, BuildFileModel]:
        """Parse files in parallel; files that fail are logged and left out."""
        return self._parallel(self._parse, paths)

    def build_exports_index(self, models: dict[Path, BuildFileModel]) -> ExportsIndex:
        """
        Collect exports edges for the closure.

        Exports declared outside the prefix still hide names from targets
        inside it, so a prefixed run also reads the rest of the tree.
        """
        all_models = list(models.values())
        if self.prefix:
            outside = [p for p in self.discover(prefix="") if not self._in_prefix(p)]
            extra = self._parallel(lambda p: self._parse(p, quiet=True), outside)
            all_models += extra.values()

        index = ExportsIndex.from_models(all_models)
        logger.debug(f"Exports index covers {len(index)} targets")
        return index

    # ------------------------------------------------------------------
    # pass 2: per-file work
    # ------------------------------------------------------------------

    def _require_graph(self) -> UsageGraph:
        if self.graph is None:
            raise ValueError("this operation needs a usage report")
        return self.graph

    def _diagnose(
        self,
        model: BuildFileModel,
        exports: ExportsIndex | None,
        unused: bool,
        undeclared: bool,
    ) -> list[TargetDiagnosis]:
        diagnoses = diagnose_file(
            model,
            self._require_graph(),
            exports,
            check_unused=unused,
            check_undeclared=undeclared,
            excluded=self.excluded,
        )
        self.summary.findings(len(diagnoses), sum(d.issue_count for d in diagnoses))
        return diagnoses

    def _persist(self, path: Path, model: BuildFileModel) -> bool | None:
        """Write a changed model back; None when the write failed."""
        if not model.changed:
            return False
        try:
            write_atomic(path, model.render())
        except OSError as e:
            logger.warning(f"Could not write {self.relative(path)}: {e}")
            self.summary.file_failed()
            return None
        self.summary.file_modified()
        return True

    def _run(self, work: Callable[..., FileResult | None], needs_exports: bool) -> list[FileResult]:
        models = self.parse_files(self.discover())
        exports = self.build_exports_index(models) if needs_exports else None
        results = self._parallel(lambda path: work(path, models[path], exports), sorted(models))
        return [results[path] for path in sorted(results)]

    def show(self, unused: bool = True, undeclared: bool = False) -> list[FileResult]:
        """Report findings without touching any file."""

        def work(path: Path, model: BuildFileModel, exports: ExportsIndex | None) -> FileResult | None:
            diagnoses = self._diagnose(model, exports, unused, undeclared)
            if not diagnoses:
                return None
            return FileResult(self.relative(path), diagnoses)

        return self._run(work, needs_exports=undeclared)

    def fix_unused(self) -> list[FileResult]:
        """Remove unused dependencies from every discovered file."""

        def work(path: Path, model: BuildFileModel, exports: ExportsIndex | None) -> FileResult | None:
            diagnoses = self._diagnose(model, None, unused=True, undeclared=False)
            if not diagnoses:
                return None
            remove_entries(model, [entry for d in diagnoses for entry in d.unused])
            changed = self._persist(path, model)
            if changed is None:
                return None
            return FileResult(self.relative(path), diagnoses, changed)

        return self._run(work, needs_exports=False)

    def fix_undeclared(self, sort: bool = False) -> list[FileResult]:
        """Declare undeclared dependencies; `sort` also normalizes receiving blocks."""

        def work(path: Path, model: BuildFileModel, exports: ExportsIndex | None) -> FileResult | None:
            diagnoses = self._diagnose(model, exports, unused=False, undeclared=True)
            if not diagnoses:
                return None
            for diagnosis in diagnoses:
                insert_entries(model, diagnosis.target, diagnosis.undeclared, sort=sort)
            changed = self._persist(path, model)
            if changed is None:
                return None
            return FileResult(self.relative(path), diagnoses, changed)

        return self._run(work, needs_exports=True)

    def sort(self, check: bool = False) -> list[FileResult]:
        """Normalize every dependencies/exports block; with `check` only report."""

        def work(path: Path, model: BuildFileModel, exports: ExportsIndex | None) -> FileResult | None:
            if not normalize_model(model):
                return None
            if check:
                return FileResult(self.relative(path), changed=True)
            changed = self._persist(path, model)
            if not changed:
                return None
            return FileResult(self.relative(path), changed=True)

        results = self._run(work, needs_exports=False)
        self.summary.findings(0, len(results))
        return results
