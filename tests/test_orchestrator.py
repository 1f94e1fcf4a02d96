"""Tests for discovery, two-pass runs and best-effort file handling."""

import textwrap

from depsanitizer.config_runtime import DEFAULTS
from depsanitizer.orchestrator import SanitizerRun, discover_build_files, normalize_prefix
from depsanitizer.report import load_report

from conftest import write_report, write_tree

APP_FIXED = textwrap.dedent("""\
    java_library(
        name='app',
        sources=globs('*.java'),
        dependencies=[
            'src/lib',
        ],
    )
""")


def make_run(root, **kwargs):
    return SanitizerRun(root, graph=load_report(root / "deps.json"), config=DEFAULTS, **kwargs)


def snapshot(root):
    return {p.relative_to(root).as_posix(): p.read_bytes() for p in root.rglob("BUILD*")}


class TestDiscovery:
    """BUILD file discovery with pruning."""

    def test_patterns_and_skip_dirs(self, tmp_path):
        write_tree(tmp_path, {
            "BUILD": "",
            "src/a/BUILD": "",
            "src/a/BUILD.tools": "",
            "src/a/README": "",
            ".pants.d/cache/BUILD": "",
            "dist/BUILD": "",
        })
        found = discover_build_files(tmp_path, skip_dirs=[".pants.d", "dist"])
        assert [p.relative_to(tmp_path.resolve()).as_posix() for p in found] == [
            "BUILD", "src/a/BUILD", "src/a/BUILD.tools",
        ]

    def test_prefix(self, tmp_path):
        write_tree(tmp_path, {
            "BUILD": "",
            "src/a/BUILD": "",
            "src/a/sub/BUILD": "",
            "src/b/BUILD": "",
        })
        found = discover_build_files(tmp_path, prefix="src/a")
        assert [p.relative_to(tmp_path.resolve()).as_posix() for p in found] == ["src/a/BUILD", "src/a/sub/BUILD"]

    def test_normalize_prefix(self):
        assert normalize_prefix("//src/java/") == "src/java"
        assert normalize_prefix("./src") == "src"
        assert normalize_prefix(None) == ""


class TestShow:
    """show never writes and isolates broken files."""

    def test_unused(self, project, log_messages):
        before = snapshot(project)
        run = make_run(project)

        results = run.show(unused=True, undeclared=False)

        assert [r.path for r in results] == ["src/app/BUILD"]
        [diagnosis] = results[0].diagnoses
        assert diagnosis.address == "src/app:app"
        assert [e.literal for e in diagnosis.unused] == ["src/util"]
        assert snapshot(project) == before

    def test_one_broken_file_one_warning(self, project, log_messages):
        run = make_run(project)
        run.show()

        summary = run.summary.to_dict()
        assert summary["files_scanned"] == 4
        assert summary["files_failed"] == 1
        assert summary["warnings"] == 1
        assert len(log_messages) == 1
        assert "src/broken/BUILD" in log_messages[0]["message"]

    def test_undeclared_respects_exports(self, project):
        run = make_run(project)
        results = run.show(unused=False, undeclared=True)

        [diagnosis] = results[0].diagnoses
        assert diagnosis.undeclared == ["src/core:core"]
        assert run.summary.issues == 1

    def test_prefix_limits_scope(self, project, log_messages):
        run = make_run(project, prefix="src/app")
        results = run.show(unused=False, undeclared=True)

        # exports from src/lib still apply although it is outside the prefix
        assert results[0].diagnoses[0].undeclared == ["src/core:core"]
        assert run.summary.files_scanned == 1
        assert log_messages == []

    def test_excluded_owner(self, tmp_path):
        write_tree(tmp_path, {
            "3rdparty/jvm/BUILD": "jar_library(name='guava', dependencies=['3rdparty/jvm/jsr305'])\n",
        })
        write_report(tmp_path, {"3rdparty/jvm:guava": {"direct_used": []}})

        run = make_run(tmp_path)
        assert run.show() == []
        assert run.summary.files_scanned == 1


class TestFix:
    """fix persists atomically and is idempotent."""

    def test_fix_unused(self, project):
        lib_before = (project / "src/lib/BUILD").read_bytes()
        run = make_run(project)

        results = run.fix_unused()

        assert [r.path for r in results] == ["src/app/BUILD"]
        assert results[0].changed
        assert (project / "src/app/BUILD").read_text(encoding="utf-8") == APP_FIXED
        assert (project / "src/lib/BUILD").read_bytes() == lib_before
        assert sorted(p.name for p in (project / "src/app").iterdir()) == ["BUILD"]
        assert run.summary.files_modified == 1

    def test_fix_unused_idempotent(self, project):
        make_run(project).fix_unused()
        before = snapshot(project)

        run = make_run(project)
        assert run.fix_unused() == []
        assert run.summary.files_modified == 0
        assert snapshot(project) == before

    def test_fix_undeclared(self, project):
        run = make_run(project)
        run.fix_undeclared(sort=True)

        text = (project / "src/app/BUILD").read_text(encoding="utf-8")
        assert "'src/core',\n        'src/lib',\n        'src/util'," in text
        assert "src/base" not in text

        again = make_run(project)
        assert again.fix_undeclared(sort=True) == []
        assert (project / "src/app/BUILD").read_text(encoding="utf-8") == text

    def test_crlf_preserved(self, tmp_path):
        (tmp_path / "src/a").mkdir(parents=True)
        (tmp_path / "src/a/BUILD").write_bytes(
            b"java_library(\r\n    name='a',\r\n    dependencies=[\r\n        'src/b',\r\n        'src/c',\r\n    ],\r\n)\r\n"
        )
        write_report(tmp_path, {"src/a:a": {"direct_used": ["src/b"]}})

        make_run(tmp_path).fix_unused()

        assert (tmp_path / "src/a/BUILD").read_bytes() == (
            b"java_library(\r\n    name='a',\r\n    dependencies=[\r\n        'src/b',\r\n    ],\r\n)\r\n"
        )


class TestSort:
    """sort normalizes without a report."""

    def test_check_reports_without_writing(self, project):
        before = snapshot(project)
        run = SanitizerRun(project, config=DEFAULTS)

        results = run.sort(check=True)

        assert [r.path for r in results] == ["src/lib/BUILD"]
        assert snapshot(project) == before

    def test_sort_writes_and_is_idempotent(self, project):
        SanitizerRun(project, config=DEFAULTS).sort()
        assert (project / "src/lib/BUILD").read_text(encoding="utf-8") == (
            "java_library(\n"
            "    name='lib',\n"
            "    dependencies=['src/base',],\n"
            "    exports=['src/base',],\n"
            ")\n"
        )

        run = SanitizerRun(project, config=DEFAULTS)
        assert run.sort(check=True) == []
