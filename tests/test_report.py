"""Tests for usage report loading and target name normalization."""

import pytest

from depsanitizer.exceptions import MalformedReportError, ReportError, ReportNotFoundError
from depsanitizer.report import load_report, normalize_target, parse_report, short_form

from conftest import write_report


class TestNormalizeTarget:
    """Canonical path:name addresses."""

    def test_explicit_name_kept(self):
        assert normalize_target("src/java/foo:bar") == "src/java/foo:bar"

    def test_folder_expands_to_module_name(self):
        assert normalize_target("src/java/foo") == "src/java/foo:foo"

    def test_relative_name_resolved_against_directory(self):
        assert normalize_target(":bar", relative_to="src/java/foo") == "src/java/foo:bar"

    def test_root_prefix_and_trailing_slash_dropped(self):
        assert normalize_target("//src/java/foo/") == "src/java/foo:foo"
        assert normalize_target("  //src/java/foo:foo ") == "src/java/foo:foo"

    def test_short_and_long_spelling_agree(self):
        assert normalize_target("3rdparty/jvm/guava") == normalize_target("3rdparty/jvm/guava:guava")

    def test_short_form(self):
        assert short_form("src/foo:foo") == "src/foo"
        assert short_form("src/foo:bar") == "src/foo:bar"


class TestParseReport:
    """Both accepted report shapes."""

    def test_pants_format(self):
        graph = parse_report({
            "src/a:a": {
                "cost": 3,
                "cost_transitive": 7,
                "products_total": 4,
                "dependencies": [
                    {"target": "src/b:b", "dependency_type": "declared",
                     "aliases": ["src/b:alias"], "products_used": 2, "products_used_ratio": 0.5},
                    {"target": "src/c", "dependency_type": "undeclared", "aliases": []},
                    {"target": "src/d:d", "dependency_type": "unused", "aliases": []},
                ],
            },
        })

        assert "src/a:a" in graph
        assert graph.direct_used("src/a:a") == {"src/b:b", "src/b:alias", "src/c:c"}
        assert graph.transitively_used("src/a:a") == {"src/c:c"}

    def test_native_format(self):
        graph = parse_report({
            "src/a": {"direct_used": ["src/b"], "transitively_used": [":c"]},
        })

        assert graph.direct_used("src/a:a") == {"src/b:b"}
        assert len(graph) == 1

    def test_unknown_target_has_empty_sets(self):
        graph = parse_report({})
        assert "src/x:x" not in graph
        assert graph.direct_used("src/x:x") == frozenset()
        assert graph.transitively_used("src/x:x") == frozenset()

    def test_unknown_dependency_type_ignored(self):
        graph = parse_report({
            "src/a:a": {"dependencies": [{"target": "src/b:b", "dependency_type": "runtime"}]},
        })
        assert graph.direct_used("src/a:a") == frozenset()

    def test_summary_list_rejected(self):
        with pytest.raises(MalformedReportError, match="--no-summary"):
            parse_report([{"target": "src/a:a"}])

    def test_record_without_usage_rejected(self):
        with pytest.raises(MalformedReportError):
            parse_report({"src/a:a": {"cost": 1}})

    def test_non_string_usage_rejected(self):
        with pytest.raises(MalformedReportError):
            parse_report({"src/a:a": {"direct_used": [1, 2]}})


class TestLoadReport:
    """Report file errors are fatal ReportErrors."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ReportNotFoundError, match="dep-usage.jvm"):
            load_report(tmp_path / "deps.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "deps.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(MalformedReportError) as exc_info:
            load_report(path)
        assert isinstance(exc_info.value, ReportError)
        assert exc_info.value.path == str(path)

    def test_loads_valid_file(self, tmp_path):
        path = write_report(tmp_path, {"src/a:a": {"direct_used": ["src/b:b"]}})
        graph = load_report(path)
        assert "src/a:a" in graph
        assert len(graph) == 1
        assert graph.direct_used("src/a:a") == {"src/b:b"}
