"""Usage report loading and target-name normalization.

The usage report is produced outside this tool, typically with:

    ./pants -q dep-usage.jvm --no-summary src/:: > deps.json

Two JSON shapes are accepted, both keyed by target address:

Pants dep-usage (one record per target):
    {"src/java/a:a": {"cost": 1, "cost_transitive": 4, "products_total": 3,
                      "dependencies": [{"target": "src/java/b:b",
                                        "dependency_type": "declared",
                                        "aliases": [], "products_used": 2,
                                        "products_used_ratio": 0.5}]}}

Native:
    {"src/java/a:a": {"direct_used": ["src/java/b:b"],
                      "transitively_used": ["src/java/c:c"]}}

For the Pants shape, "declared" and "undeclared" dependencies are both used
by the target's code (direct_used); "undeclared" ones were only reachable
through the dependency chain (transitively_used); "unused" ones are neither.
"""

import json
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from depsanitizer.exceptions import MalformedReportError, ReportNotFoundError
from depsanitizer.utils.logging import logger

USED_TYPES = frozenset({"declared", "undeclared"})
TRANSITIVE_TYPES = frozenset({"undeclared"})
KNOWN_TYPES = USED_TYPES | {"unused"}


def normalize_target(spec: str, relative_to: str | None = None) -> str:
    """
    Normalize a target spec to the canonical "path:name" address.

    Handles the three spellings found in BUILD files and reports:
    - "src/java/foo:bar"  -> "src/java/foo:bar"
    - "src/java/foo"      -> "src/java/foo:foo" (one folder == one module)
    - ":bar"              -> "<relative_to>:bar"

    A leading "//" (root-relative spelling) and trailing "/" are dropped.

    Args:
        spec: Target spec as written in a BUILD file or report
        relative_to: Directory of the declaring BUILD file, used for ":name"

    Returns:
        Canonical address string
    """
    spec = spec.strip()
    if spec.startswith("//"):
        spec = spec[2:]

    if spec.startswith(":"):
        path, name = (relative_to or "").strip("/"), spec[1:]
    elif ":" in spec:
        path, name = spec.rsplit(":", 1)
        path = path.rstrip("/")
    else:
        path = spec.rstrip("/")
        name = path.rsplit("/", 1)[-1]

    if not name:
        name = path.rsplit("/", 1)[-1]

    return f"{path}:{name}"


def short_form(address: str) -> str:
    """Render an address the way it is written in BUILD files.

    "a/b:b" is written "a/b"; "a/b:c" stays "a/b:c".
    """
    path, _, name = address.rpartition(":")
    if path and path.rsplit("/", 1)[-1] == name:
        return path
    return address


class UsageGraph:
    """Immutable per-target usage data loaded from the report.

    Shared read-only by every worker; there is no mutating API.
    """

    __slots__ = ("_direct", "_transitive")

    def __init__(
        self,
        direct: Mapping[str, frozenset[str]],
        transitive: Mapping[str, frozenset[str]],
    ):
        self._direct = MappingProxyType(dict(direct))
        self._transitive = MappingProxyType(dict(transitive))

    def __contains__(self, target: str) -> bool:
        return target in self._direct

    def __len__(self) -> int:
        return len(self._direct)

    def direct_used(self, target: str) -> frozenset[str]:
        """Targets the given target's code references, as observed statically."""
        return self._direct.get(target, frozenset())

    def transitively_used(self, target: str) -> frozenset[str]:
        """Targets used by the code but only reachable through the dependency chain."""
        return self._transitive.get(target, frozenset())


def _require(condition: bool, message: str, path: str) -> None:
    if not condition:
        raise MalformedReportError(f"Malformed report {path}: {message}", path=path)


def _parse_pants_record(
    target: str, record: dict[str, Any], path: str
) -> tuple[set[str], set[str]]:
    """Split a Pants dep-usage record into (direct_used, transitively_used)."""
    direct: set[str] = set()
    transitive: set[str] = set()

    dependencies = record["dependencies"]
    _require(isinstance(dependencies, list), f"'dependencies' of {target} is not a list", path)

    for dep in dependencies:
        _require(
            isinstance(dep, dict) and isinstance(dep.get("target"), str),
            f"dependency entry of {target} has no 'target' string",
            path,
        )
        dep_type = dep.get("dependency_type")
        if dep_type not in KNOWN_TYPES:
            logger.debug(f"Ignoring dependency {dep['target']} of {target} with type {dep_type!r}")
            continue

        name = normalize_target(dep["target"])
        if dep_type in USED_TYPES:
            direct.add(name)
            aliases = dep.get("aliases") or []
            _require(isinstance(aliases, list), f"'aliases' of {dep['target']} is not a list", path)
            direct.update(normalize_target(alias) for alias in aliases if isinstance(alias, str))
        if dep_type in TRANSITIVE_TYPES:
            transitive.add(name)

    return direct, transitive


def _parse_native_record(
    target: str, record: dict[str, Any], path: str
) -> tuple[set[str], set[str]]:
    """Read a native {direct_used, transitively_used} record."""
    sets = []
    for key in ("direct_used", "transitively_used"):
        values = record.get(key, [])
        _require(
            isinstance(values, list) and all(isinstance(v, str) for v in values),
            f"'{key}' of {target} must be a list of strings",
            path,
        )
        sets.append({normalize_target(v) for v in values})
    return sets[0], sets[1]


def parse_report(data: Any, path: str = "<report>") -> UsageGraph:
    """
    Build a UsageGraph from already-decoded report JSON.

    Args:
        data: Decoded JSON document
        path: Report path, used in error messages

    Returns:
        Immutable usage graph

    Raises:
        MalformedReportError: If the document does not have a supported shape
    """
    if isinstance(data, list):
        raise MalformedReportError(
            f"Malformed report {path}: got a summary list; "
            "generate the report with 'dep-usage.jvm --no-summary'",
            path=path,
        )
    _require(isinstance(data, dict), "top level must be an object keyed by target", path)

    direct: dict[str, frozenset[str]] = {}
    transitive: dict[str, frozenset[str]] = {}

    for raw_target, record in data.items():
        _require(isinstance(record, dict), f"record for {raw_target} is not an object", path)
        target = normalize_target(raw_target)

        if "dependencies" in record:
            used, hidden = _parse_pants_record(raw_target, record, path)
        elif "direct_used" in record or "transitively_used" in record:
            used, hidden = _parse_native_record(raw_target, record, path)
        else:
            raise MalformedReportError(
                f"Malformed report {path}: record for {raw_target} has neither "
                "'dependencies' nor 'direct_used'/'transitively_used'",
                path=path,
            )

        # Two spellings of one target in the same report are merged
        direct[target] = direct.get(target, frozenset()) | used
        transitive[target] = transitive.get(target, frozenset()) | hidden

    return UsageGraph(direct, transitive)


def load_report(path: str | Path) -> UsageGraph:
    """
    Load the usage report file into a UsageGraph.

    Args:
        path: Report file path

    Returns:
        Immutable usage graph

    Raises:
        ReportNotFoundError: If the file is missing or unreadable
        MalformedReportError: If the file is not valid JSON or has an unsupported shape
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ReportNotFoundError(
            f"Usage report not found: {path}. Generate it with "
            "'./pants -q dep-usage.jvm --no-summary src/:: > deps.json'",
            path=str(path),
        ) from e
    except (IsADirectoryError, PermissionError) as e:
        raise ReportNotFoundError(f"Couldn't open the report {path}: {e}", path=str(path)) from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedReportError(f"Couldn't parse report {path} as JSON: {e}", path=str(path)) from e

    graph = parse_report(data, str(path))
    logger.debug(f"Loaded usage report {path} with {len(graph)} targets")
    return graph
