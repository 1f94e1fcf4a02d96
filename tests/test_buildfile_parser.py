"""Tests for the BUILD file parser."""

import pytest

from depsanitizer.buildfile.parser import parse_build_file
from depsanitizer.exceptions import BuildFileParseError

SAMPLE = """\
# Generated targets, edit with care
java_library(
    name='app',
    sources=globs('*.java', exclude=['Skip.java']),
    dependencies=[
        # core
        "src/lib",
        ':helpers',  # skip-sanitize

        '3rdparty/jvm/guava'
    ],
    exports=['src/lib'],
)

SHARED = ['a', 'b']

junit_tests(name='tests', dependencies=[':app', "src/testing:junit",])
"""


def entries_of(text, directory="src/a", **kwargs):
    return parse_build_file(text, directory, **kwargs).targets[0].dependency_entries


class TestRoundTrip:
    """render(parse(text)) == text."""

    @pytest.mark.parametrize("text", [
        SAMPLE,
        "",
        "\n\n# only a comment\n",
        "java_library(name='a')",
        "java_library(\r\n    name='a',\r\n    dependencies=['b'],\r\n)\r\n",
        "jvm_binary(name='b', dependencies=[\n  'x', 'y',  # pair\n  'z'\n])\n",
        "dependencies = ['top/level']\n",
    ])
    def test_identity(self, text):
        assert parse_build_file(text, "src/app").render() == text

    def test_untouched_model_reports_unchanged(self):
        assert not parse_build_file(SAMPLE, "src/app").changed


class TestTargets:
    """Target declarations and their blocks."""

    def test_targets_found(self):
        model = parse_build_file(SAMPLE, "src/app")

        assert [t.kind for t in model.targets] == ["java_library", "junit_tests"]
        assert [t.address for t in model.targets] == ["src/app:app", "src/app:tests"]
        assert [t.line for t in model.targets] == [2, 17]

    def test_assignment_is_not_a_target(self):
        model = parse_build_file("X = glob('*.java')\njava_library(name='a')\n", "src/a")
        assert [t.address for t in model.targets] == ["src/a:a"]

    def test_method_call_is_not_a_target(self):
        model = parse_build_file("jvm.library(name='x')\njava_library(name='a')\n", "src/a")
        assert [t.address for t in model.targets] == ["src/a:a"]

    def test_unnamed_target_uses_folder_name(self):
        model = parse_build_file("java_library(sources=['A.java'])\n", "src/java/foo")
        assert model.targets[0].address == "src/java/foo:foo"

    def test_entries(self):
        app = parse_build_file(SAMPLE, "src/app").targets[0]

        assert [e.literal for e in app.dependency_entries] == [
            "src/lib", ":helpers", "3rdparty/jvm/guava",
        ]
        assert [e.address(app.directory) for e in app.dependency_entries] == [
            "src/lib:lib", "src/app:helpers", "3rdparty/jvm/guava:guava",
        ]
        assert [e.literal for e in app.export_entries] == ["src/lib"]

        lib, helpers, guava = app.dependency_entries
        assert lib.quote == '"'
        assert lib.has_separator
        assert lib.line == 7
        assert helpers.comment == "# skip-sanitize"
        assert not guava.has_separator

    def test_nested_blocks_belong_to_the_target(self):
        text = "jvm_app(name='a', bundles=[bundle(dependencies=['x'])], dependencies=['y'])\n"
        target = parse_build_file(text, "src/a").targets[0]
        assert [e.literal for e in target.dependency_entries] == ["x", "y"]

    def test_block_outside_target(self):
        model = parse_build_file("dependencies = ['top/level']\n", "src")
        assert model.targets == []
        assert [b.owner for b in model.blocks] == [None]

    def test_multiline_target(self):
        model = parse_build_file("java_library(\n    name='a',\n)\njava_library(name='b')\n", "a")
        assert [t.multiline for t in model.targets] == [True, False]


class TestCommentAttachment:
    """Which entry a comment (and its skip marker) belongs to."""

    def test_own_line_entry_keeps_its_comment(self):
        entries = entries_of(SAMPLE, "src/app")
        assert [e.skip_sanitize for e in entries] == [False, True, False]

    def test_comment_on_shared_line_belongs_to_next_entry(self):
        text = 'java_library(dependencies=["b/target", "a/target", #skip-sanitize\n "c/target"])\n'
        entries = entries_of(text)

        assert [(e.literal, e.comment) for e in entries] == [
            ("b/target", None),
            ("a/target", None),
            ("c/target", "#skip-sanitize"),
        ]
        assert [e.skip_sanitize for e in entries] == [False, False, True]

    def test_comment_after_opening_bracket_belongs_to_first_entry(self):
        text = "java_library(dependencies=[  # skip-sanitize\n    'a',\n    'b',\n])\n"
        assert [e.skip_sanitize for e in entries_of(text)] == [True, False]

    def test_comment_on_last_shared_line_belongs_to_last_entry(self):
        text = "java_library(dependencies=['a', 'b',  # skip-sanitize\n])\n"
        assert [e.skip_sanitize for e in entries_of(text)] == [False, True]

    def test_comment_before_closing_bracket_without_separator(self):
        text = "java_library(dependencies=[\n    'a',\n    'b'  # skip-sanitize\n])\n"
        assert [e.skip_sanitize for e in entries_of(text)] == [False, True]

    def test_own_line_comment_never_attaches(self):
        text = "java_library(dependencies=[\n    # skip-sanitize\n    'a',\n])\n"
        entry = entries_of(text)[0]
        assert entry.comment is None
        assert not entry.skip_sanitize

    def test_custom_skip_marker(self):
        text = "java_library(dependencies=['a',  # keep-me\n])\n"
        assert entries_of(text, "x", skip_marker="keep-me")[0].skip_sanitize
        assert not entries_of(text, "x")[0].skip_sanitize


class TestParseErrors:
    """Malformed files raise BuildFileParseError with a line."""

    @pytest.mark.parametrize("text, message, line", [
        ("java_library(\n    dependencies=['a' 'b'],\n)\n", "missing ','", 2),
        ("java_library(\n    dependencies=[LIB],\n)\n", "unsupported entry 'LIB'", 2),
        ("java_library(\n    name='a',\n    dependencies=[*LIB],\n)\n", "unsupported entry", 3),
        ("java_library(\n    dependencies=[f'{x}'],\n)\n", "unsupported entry", 2),
        ("java_library(\n    dependencies=[b'x'],\n)\n", "unsupported entry", 2),
    ])
    def test_unsupported_entries(self, text, message, line):
        with pytest.raises(BuildFileParseError, match=message) as exc_info:
            parse_build_file(text, "src/a", path="src/a/BUILD")

        assert exc_info.value.line == line
        assert str(exc_info.value).startswith(f"src/a/BUILD:{line}: ")

    @pytest.mark.parametrize("text", [
        "java_library(name='a'\n",
        "java_library(name='a'))\n",
        "java_library(name='a']\n",
        "java_library(name='a)\n",
        "java_library(\n    dependencies=['a',\n",
    ])
    def test_syntax_errors(self, text):
        with pytest.raises(BuildFileParseError) as exc_info:
            parse_build_file(text, "src/a", path="src/a/BUILD")

        assert exc_info.value.path == "src/a/BUILD"
        assert isinstance(exc_info.value.line, int)
        assert str(exc_info.value).startswith("src/a/BUILD:")
