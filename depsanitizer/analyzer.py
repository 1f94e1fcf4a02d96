"""Dependency analyzer - unused and undeclared dependency detection.

Pure functions of (target declaration, usage graph, exports index). Nothing
here touches the filesystem or mutates its inputs.

Algorithm summary:
  unused(T)     = dependencies(T) - direct_used(T) - skip-marked entries
  undeclared(T) = transitively_used(T) - declared(T) - exposed(T) - {T}

where exposed(T) is T's own exports plus everything reachable through one
or more exports edges starting from T's exports and declared dependencies
(A exports B and B exports C => whoever sees A also sees C). Exports blocks
are never checked for unused entries: an export is a public re-statement,
not a private import.
"""

from collections import defaultdict, deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from depsanitizer.buildfile.model import BuildFileModel, Entry, TargetDecl
from depsanitizer.report import UsageGraph


class ExportsIndex:
    """Cross-file exports edges, built once before any file is diagnosed."""

    def __init__(self, edges: Mapping[str, Iterable[str]] | None = None):
        merged: dict[str, set[str]] = defaultdict(set)
        for source, targets in (edges or {}).items():
            merged[source].update(targets)
        self._edges = MappingProxyType({k: frozenset(v) for k, v in merged.items()})

    @classmethod
    def from_models(cls, models: Iterable[BuildFileModel]) -> "ExportsIndex":
        """Collect exports edges from every target of every parsed file."""
        edges: dict[str, set[str]] = defaultdict(set)
        for model in models:
            for target in model.targets:
                for entry in target.export_entries:
                    edges[target.address].add(entry.address(target.directory))
        return cls(edges)

    def __len__(self) -> int:
        return len(self._edges)

    def exports_of(self, target: str) -> frozenset[str]:
        return self._edges.get(target, frozenset())

    def closure(self, roots: Iterable[str]) -> set[str]:
        """
        Every target reachable through one or more exports edges from `roots`.

        Iterative BFS; export cycles terminate because each node is expanded
        at most once. Roots themselves are included only if some path leads
        back to them.
        """
        reached: set[str] = set()
        expanded: set[str] = set()
        queue = deque(roots)

        while queue:
            node = queue.popleft()
            if node in expanded:
                continue
            expanded.add(node)
            for exported in self._edges.get(node, ()):
                reached.add(exported)
                if exported not in expanded:
                    queue.append(exported)

        return reached


def declared_addresses(target: TargetDecl) -> set[str]:
    """Normalized addresses of all dependencies entries, skip-marked ones included."""
    return {entry.address(target.directory) for entry in target.dependency_entries}


def exposed_via_exports(target: TargetDecl, exports: ExportsIndex) -> set[str]:
    """Targets visible to `target` through exports, its own exports included."""
    own_exports = {entry.address(target.directory) for entry in target.export_entries}
    roots = own_exports | declared_addresses(target) | {target.address}
    return own_exports | exports.closure(roots)


def find_unused(target: TargetDecl, graph: UsageGraph) -> set[Entry]:
    """
    Declared dependencies never used by the target's code.

    Args:
        target: Target declaration from a parsed BUILD file
        graph: Usage graph from the report

    Returns:
        Entries of the target's dependencies blocks that are neither in the
        report's direct_used set nor skip-marked. Empty when the report does
        not know the target.
    """
    if target.address not in graph:
        return set()

    used = graph.direct_used(target.address)
    return {
        entry
        for entry in target.dependency_entries
        if not entry.skip_sanitize and entry.address(target.directory) not in used
    }


def find_undeclared(target: TargetDecl, graph: UsageGraph, exports: ExportsIndex) -> set[str]:
    """
    Targets used through the dependency chain but never declared.

    Args:
        target: Target declaration from a parsed BUILD file
        graph: Usage graph from the report
        exports: Exports edges of the whole scanned tree

    Returns:
        Normalized addresses to add to the target's dependencies block.
    """
    if target.address not in graph:
        return set()

    candidates = set(graph.transitively_used(target.address))
    if not candidates:
        return set()

    candidates -= declared_addresses(target)
    candidates -= exposed_via_exports(target, exports)
    candidates.discard(target.address)
    return candidates


@dataclass
class TargetDiagnosis:
    """Findings for one target. Lists are sorted by normalized address."""

    address: str
    line: int
    target: TargetDecl | None = field(default=None, repr=False, compare=False)
    unused: list[Entry] = field(default_factory=list)
    undeclared: list[str] = field(default_factory=list)

    @property
    def issue_count(self) -> int:
        return len(self.unused) + len(self.undeclared)


def is_excluded(address: str, excluded: Iterable[str]) -> bool:
    return any(pattern and pattern in address for pattern in excluded)


def diagnose_file(
    model: BuildFileModel,
    graph: UsageGraph,
    exports: ExportsIndex | None = None,
    check_unused: bool = True,
    check_undeclared: bool = True,
    excluded: Iterable[str] = (),
) -> list[TargetDiagnosis]:
    """
    Diagnose every target declared in a parsed BUILD file.

    Args:
        model: Parsed BUILD file
        graph: Usage graph from the report
        exports: Exports index; an empty one is used when omitted
        check_unused: Compute unused dependencies
        check_undeclared: Compute undeclared dependencies
        excluded: Address substrings whose owning targets are skipped

    Returns:
        Diagnoses of targets with at least one finding, in file order
    """
    exports = exports or ExportsIndex()
    excluded = tuple(excluded)
    results = []

    for target in model.targets:
        if is_excluded(target.address, excluded):
            continue

        diagnosis = TargetDiagnosis(address=target.address, line=target.line, target=target)
        if check_unused:
            diagnosis.unused = sorted(
                find_unused(target, graph),
                key=lambda e: (e.address(target.directory), e.line),
            )
        if check_undeclared:
            diagnosis.undeclared = sorted(find_undeclared(target, graph, exports))

        if diagnosis.issue_count:
            results.append(diagnosis)

    return results
