"""Pytest configuration and fixtures."""

import json
import textwrap
from pathlib import Path

import pytest

from depsanitizer.utils.logging import logger


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create files under root; contents are dedented."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content), encoding="utf-8")
    return root


def write_report(root: Path, data, name: str = "deps.json") -> Path:
    path = root / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def log_messages():
    """Collect loguru records at WARNING and above."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="WARNING")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def project(tmp_path):
    """A small Pants tree with one malformed BUILD file.

    src/app depends on lib (used) and util (unused), uses base only
    through lib, which exports it.
    """
    write_tree(tmp_path, {
        "src/app/BUILD": """\
            java_library(
                name='app',
                sources=globs('*.java'),
                dependencies=[
                    'src/lib',
                    'src/util',
                ],
            )
        """,
        "src/lib/BUILD": """\
            java_library(
                name='lib',
                dependencies=['src/base'],
                exports=['src/base'],
            )
        """,
        "src/base/BUILD": """\
            java_library(name='base')
        """,
        "src/util/BUILD": """\
            java_library(name='util')
        """,
        "src/broken/BUILD": """\
            java_library(
                name='broken',
                dependencies=[LIB_DEPS],
            )
        """,
    })
    write_report(tmp_path, {
        "src/app:app": {
            "direct_used": ["src/lib:lib"],
            "transitively_used": ["src/base:base", "src/core:core"],
        },
        "src/lib:lib": {"direct_used": ["src/base"], "transitively_used": []},
        "src/base:base": {"direct_used": [], "transitively_used": []},
        "src/util:util": {"direct_used": [], "transitively_used": []},
    })
    return tmp_path
