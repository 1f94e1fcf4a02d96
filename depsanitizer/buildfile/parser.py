"""BUILD file parser producing an editable BuildFileModel.

BUILD files are Python syntax, so the file is parsed with libcst and only
two constructs are interpreted: `dependencies=[...]` / `exports=[...]` lists
(keyword arguments at any nesting depth, or top-level assignments) and the
top-level target calls that own them. Everything else is carried through the
concrete syntax tree untouched.

Inside a recognized list every element must be a plain string literal.

Comment attachment: a comment ending a line inside a list belongs to the
entry on that line when exactly one entry starts there. On a line holding
several entries (or none, such as the line of the opening bracket) it
belongs to the next entry, and after the last entry to the last entry.
Own-line comments are trivia and never attach.
"""

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider

from depsanitizer.buildfile.model import Block, BuildFileModel, Entry, TargetDecl
from depsanitizer.exceptions import BuildFileParseError
from depsanitizer.utils.constants import BLOCK_KEYWORDS, DEFAULT_SKIP_MARKER


def _target_calls(module: cst.Module) -> set:
    """Calls that form a statement of their own at module level."""
    calls = set()
    for statement in module.body:
        if not isinstance(statement, cst.SimpleStatementLine):
            continue
        for small in statement.body:
            if isinstance(small, cst.Expr) and isinstance(small.value, cst.Call):
                if isinstance(small.value.func, cst.Name):
                    calls.add(small.value)
    return calls


def _string_value(node: cst.BaseExpression) -> str | None:
    if isinstance(node, cst.SimpleString):
        value = node.evaluated_value
        if isinstance(value, str):
            return value
    return None


def _break_count(ws: cst.BaseParenthesizableWhitespace) -> int:
    if isinstance(ws, cst.ParenthesizedWhitespace):
        return 1 + len(ws.empty_lines)
    return 0


def _comment(ws: cst.BaseParenthesizableWhitespace) -> str | None:
    if isinstance(ws, cst.ParenthesizedWhitespace) and ws.first_line.comment is not None:
        return ws.first_line.comment.value
    return None


class _BuildFileCollector(cst.CSTVisitor):
    """Collect targets and dependency blocks from one module."""

    METADATA_DEPENDENCIES = (PositionProvider,)

    def __init__(self, model: BuildFileModel, skip_marker: str):
        super().__init__()
        self.model = model
        self.skip_marker = skip_marker
        self._calls: set = set()
        self._current: TargetDecl | None = None

    def _position(self, node: cst.CSTNode):
        return self.get_metadata(PositionProvider, node)

    def visit_Module(self, node: cst.Module) -> None:
        self._calls = _target_calls(node)

    def visit_Call(self, node: cst.Call) -> None:
        if self._current is not None or node not in self._calls:
            return
        position = self._position(node)
        target = TargetDecl(
            kind=node.func.value,
            directory=self.model.directory,
            node=node,
            line=position.start.line,
            multiline=position.start.line != position.end.line,
        )
        for arg in node.args:
            if arg.keyword is not None and arg.keyword.value == "name":
                target.name = _string_value(arg.value)
        self._current = target
        self.model.targets.append(target)

    def leave_Call(self, original_node: cst.Call) -> None:
        if self._current is not None and original_node is self._current.node:
            self._current = None

    def visit_Arg(self, node: cst.Arg) -> None:
        if node.keyword is not None and node.keyword.value in BLOCK_KEYWORDS and isinstance(node.value, cst.List):
            self._read_block(node.keyword.value, node.value, self._position(node.keyword).start.line)

    def visit_Assign(self, node: cst.Assign) -> None:
        if len(node.targets) != 1 or not isinstance(node.value, cst.List):
            return
        name = node.targets[0].target
        if isinstance(name, cst.Name) and name.value in BLOCK_KEYWORDS:
            self._read_block(name.value, node.value, self._position(name).start.line)

    def _read_block(self, keyword: str, node: cst.List, line: int) -> None:
        block = Block(keyword=keyword, node=node, module=self.model.module, owner=self._current, line=line)
        block.gaps.append(node.lbracket.whitespace_after)
        value_ends = []

        for element in node.elements:
            value = element.value
            literal = _string_value(value) if isinstance(element, cst.Element) else None
            if literal is None:
                line_no = self._position(value).start.line
                if isinstance(value, cst.ConcatenatedString):
                    raise BuildFileParseError(f"missing ',' between entries of {keyword} block", line=line_no)
                code = self.model.module.code_for_node(value)
                raise BuildFileParseError(f"unsupported entry {code!r} in {keyword} block", line=line_no)

            position = self._position(value)
            entry = Entry(literal=literal, value=value, line=position.start.line)
            if isinstance(element.comma, cst.Comma):
                entry.comma_before = element.comma.whitespace_before
                block.gaps.append(element.comma.whitespace_after)
            else:
                entry.has_separator = False
                block.gaps.append(node.rbracket.whitespace_before)
            block.entries.append(entry)
            value_ends.append(position.end.line)

        block.trailing_comma = bool(block.entries) and block.entries[-1].has_separator
        if block.trailing_comma or not block.entries:
            block.tail = node.rbracket.whitespace_before

        self._attach_comments(block, node, value_ends)
        if block.owner is not None:
            block.owner.blocks.append(block)
        self.model.blocks.append(block)

    def _attach_comments(self, block: Block, node: cst.List, value_ends: list[int]) -> None:
        entries = block.entries
        if not entries:
            return

        # (line of the comment, index of the first entry after it, text)
        found = []
        comment = _comment(block.gaps[0])
        if comment is not None:
            found.append((self._position(node).start.line, 0, comment))
        for index, entry in enumerate(entries):
            comment = _comment(entry.comma_before)
            if comment is not None:
                found.append((value_ends[index], index + 1, comment))
            comment = _comment(block.gaps[index + 1])
            if comment is not None:
                line = value_ends[index] + _break_count(entry.comma_before)
                found.append((line, index + 1, comment))

        for line, following, comment in found:
            on_line = [entry for entry in entries if entry.line == line]
            if len(on_line) == 1:
                owner = on_line[0]
            else:
                owner = entries[min(following, len(entries) - 1)]
            owner.comment = comment if owner.comment is None else f"{owner.comment}  {comment}"
            if self.skip_marker in comment:
                owner.skip_sanitize = True


def parse_build_file(
    text: str,
    directory: str = "",
    skip_marker: str = DEFAULT_SKIP_MARKER,
    path: str | None = None,
) -> BuildFileModel:
    """
    Parse BUILD file text into an editable model.

    Args:
        text: File contents
        directory: Directory of the file relative to the project root ("/" separated)
        skip_marker: Comment substring that marks an entry as protected
        path: File path, attached to errors and to the model

    Returns:
        BuildFileModel whose render() reproduces `text` exactly

    Raises:
        BuildFileParseError: On Python syntax errors, or on anything other
            than plain string literals inside a dependencies/exports list
    """
    try:
        wrapper = MetadataWrapper(cst.parse_module(text))
    except cst.ParserSyntaxError as e:
        raise BuildFileParseError(e.message, line=e.raw_line, path=path) from e

    model = BuildFileModel(text=text, module=wrapper.module, directory=directory.strip("/"), path=path)
    try:
        wrapper.visit(_BuildFileCollector(model, skip_marker))
    except BuildFileParseError as e:
        e.path = path
        raise
    return model
