"""Editable structural model of a BUILD file on top of a libcst tree.

The parsed libcst module is never mutated. Each recognized list keeps a
reference to its original `cst.List` node plus an editable view of it:

    Block.entries = [Entry, Entry, ...]            string elements
    Block.gaps    = [ws, ws, ..., ws]              len(entries) + 1

gaps[0] is the whitespace after "[" and gaps[k] the whitespace after the
k-th entry's separator; without a trailing separator gaps[-1] is the
whitespace before "]". Own-line comments
and blank lines live in these gaps as libcst EmptyLine trivia; a comment
ending a line sits in a gap's first_line and is attached to an entry by the
parser.

render() swaps only edited lists (and calls that gained a dependencies
argument) into the tree, so an unedited model reproduces the source byte for
byte through Module.code.
"""

from dataclasses import dataclass, field

import libcst as cst

from depsanitizer.report import normalize_target
from depsanitizer.utils.constants import CANONICAL_QUOTE, DEPENDENCIES_KEYWORD, EXPORTS_KEYWORD


def quoted(literal: str) -> cst.SimpleString:
    """String node for a new entry, single-quoted unless the literal holds one."""
    quote = '"' if CANONICAL_QUOTE in literal else CANONICAL_QUOTE
    return cst.SimpleString(f"{quote}{literal}{quote}")


@dataclass(eq=False)
class Entry:
    """One string element of a dependency list with its attached comment.

    Entries compare by identity: two entries with the same literal in one
    block are distinct objects.
    """

    literal: str
    value: cst.SimpleString
    comment: str | None = None
    skip_sanitize: bool = False
    has_separator: bool = True
    line: int = 0
    comma_before: cst.BaseParenthesizableWhitespace = field(
        default_factory=lambda: cst.SimpleWhitespace("")
    )

    @classmethod
    def new(cls, literal: str) -> "Entry":
        """Create a canonical entry that does not exist in the source yet."""
        return cls(literal=literal, value=quoted(literal))

    @property
    def quote(self) -> str:
        return self.value.quote

    @property
    def prefix(self) -> str:
        return self.value.prefix

    def canonical_value(self) -> cst.SimpleString:
        """The literal single-quoted, or as written when it cannot be re-quoted."""
        if self.prefix or len(self.quote) == 3 or CANONICAL_QUOTE in self.literal or "\\" in self.value.value:
            return self.value
        return self.value.with_changes(value=f"{CANONICAL_QUOTE}{self.literal}{CANONICAL_QUOTE}")

    def address(self, directory: str) -> str:
        """Normalized target address this entry refers to."""
        return normalize_target(self.literal, relative_to=directory)


@dataclass(eq=False)
class Block:
    """A recognized `dependencies=[...]` or `exports=[...]` list."""

    keyword: str
    node: cst.List
    module: cst.Module
    owner: "TargetDecl | None" = None
    line: int = 0
    entries: list[Entry] = field(default_factory=list)
    gaps: list = field(default_factory=list)
    tail: cst.BaseParenthesizableWhitespace = field(default_factory=lambda: cst.SimpleWhitespace(""))
    trailing_comma: bool = False
    dirty: bool = False

    @property
    def multiline(self) -> bool:
        return any(isinstance(gap, cst.ParenthesizedWhitespace) for gap in self.gaps)

    def build(self) -> cst.List:
        """List node reflecting the current entries and gaps."""
        count = len(self.entries)
        elements = []
        for index, entry in enumerate(self.entries):
            if index == count - 1 and not self.trailing_comma:
                comma = cst.MaybeSentinel.DEFAULT
            else:
                comma = cst.Comma(whitespace_before=entry.comma_before, whitespace_after=self.gaps[index + 1])
            elements.append(cst.Element(value=entry.value, comma=comma))

        closing = self.gaps[count] if count and not self.trailing_comma else self.tail
        return self.node.with_changes(
            elements=elements,
            lbracket=self.node.lbracket.with_changes(whitespace_after=self.gaps[0]),
            rbracket=self.node.rbracket.with_changes(whitespace_before=closing),
        )

    def render(self) -> str:
        return self.module.code_for_node(self.build() if self.dirty else self.node)


@dataclass(eq=False)
class TargetDecl:
    """A top-level target call such as `java_library(name='foo', ...)`.

    `replacement` is the rewritten call when a dependencies argument had to
    be added; its new list is `synthesized.node`.
    """

    kind: str | None
    directory: str
    node: cst.Call
    line: int = 0
    name: str | None = None
    multiline: bool = False
    blocks: list[Block] = field(default_factory=list)
    replacement: cst.Call | None = None

    @property
    def address(self) -> str:
        if self.name is not None:
            return normalize_target(f":{self.name}", relative_to=self.directory)
        return normalize_target(self.directory)

    def blocks_for(self, keyword: str) -> list[Block]:
        return [block for block in self.blocks if block.keyword == keyword]

    @property
    def dependency_entries(self) -> list[Entry]:
        return [e for block in self.blocks_for(DEPENDENCIES_KEYWORD) for e in block.entries]

    @property
    def export_entries(self) -> list[Entry]:
        return [e for block in self.blocks_for(EXPORTS_KEYWORD) for e in block.entries]


class _RenderTransformer(cst.CSTTransformer):
    """Swap edited lists and extended target calls into the tree."""

    def __init__(self, model: "BuildFileModel"):
        super().__init__()
        self._blocks = {block.node: block for block in model.blocks if block.dirty}
        self._calls = {t.node: t.replacement for t in model.targets if t.replacement is not None}

    def leave_List(self, original_node: cst.List, updated_node: cst.List) -> cst.List:
        block = self._blocks.get(original_node)
        return block.build() if block is not None else updated_node

    def leave_Call(self, original_node: cst.Call, updated_node: cst.Call) -> cst.Call:
        replacement = self._calls.get(original_node)
        if replacement is None:
            return updated_node
        # the replacement still holds the original argument nodes
        return replacement.visit(self)


@dataclass(eq=False)
class BuildFileModel:
    """Parsed representation of one BUILD file."""

    text: str
    module: cst.Module
    directory: str = ""
    targets: list[TargetDecl] = field(default_factory=list)
    blocks: list[Block] = field(default_factory=list)
    path: str | None = None

    def render(self) -> str:
        if not any(block.dirty for block in self.blocks):
            return self.module.code
        return self.module.visit(_RenderTransformer(self)).code

    @property
    def changed(self) -> bool:
        return self.render() != self.text
