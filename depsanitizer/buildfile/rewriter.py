"""Edits on a BuildFileModel.

Operations change a block's entries and the whitespace gaps between them,
then mark the block dirty so render() swaps the rebuilt list into the tree.
Blocks that are not touched keep their original libcst nodes, so a file
without matching issues renders byte-identical, and re-running any
operation on its own output is a no-op.

After every edit `_place_comments` lays the attached comments out again:
an entry carrying a comment ends up alone on its line with the comment
at the end of that line, so parsing the output attaches every comment to
the same entry as before.
"""

from collections.abc import Iterable

import libcst as cst

from depsanitizer.buildfile.model import Block, BuildFileModel, Entry, TargetDecl
from depsanitizer.report import short_form
from depsanitizer.utils.constants import DEPENDENCIES_KEYWORD, INDENT_UNIT

NO_SPACE = cst.SimpleWhitespace("")
ONE_SPACE = cst.SimpleWhitespace(" ")


def _line_break(indent: str) -> cst.ParenthesizedWhitespace:
    return cst.ParenthesizedWhitespace(indent=True, last_line=cst.SimpleWhitespace(indent))


def _with_comment(ws: cst.BaseParenthesizableWhitespace, comment: str | None):
    """Set or clear the comment ending the line a gap starts on."""
    if not isinstance(ws, cst.ParenthesizedWhitespace):
        return ws
    first = ws.first_line
    if comment is None:
        if first.comment is None:
            return ws
        return ws.with_changes(first_line=first.with_changes(whitespace=NO_SPACE, comment=None))
    if first.comment is not None and first.comment.value == comment:
        return ws
    whitespace = first.whitespace if first.comment is not None else cst.SimpleWhitespace("  ")
    return ws.with_changes(first_line=first.with_changes(whitespace=whitespace, comment=cst.Comment(comment)))


def _closing_indent(block: Block) -> str:
    """Indentation for a "]" on its own line."""
    closing = block.gaps[-1]
    if isinstance(closing, cst.ParenthesizedWhitespace):
        return closing.last_line.value
    lines = block.module.code.splitlines()
    text = lines[block.line - 1] if 0 < block.line <= len(lines) else ""
    return text[:len(text) - len(text.lstrip(" \t"))]


def _entry_indent(block: Block) -> str:
    """Indentation of entries that start a line."""
    for gap in block.gaps[:-1]:
        if isinstance(gap, cst.ParenthesizedWhitespace):
            return gap.last_line.value
    return _closing_indent(block) + INDENT_UNIT


def _place_comments(block: Block) -> None:
    entries = block.entries
    gaps = block.gaps
    count = len(entries)
    if not count:
        return

    for index, entry in enumerate(entries):
        before = entry.comma_before
        if isinstance(before, cst.ParenthesizedWhitespace):
            # a separator on its own line moves up next to its literal
            after = gaps[index + 1]
            if not isinstance(after, cst.ParenthesizedWhitespace):
                after = _line_break(_closing_indent(block) if index + 1 == count else _entry_indent(block))
            gaps[index + 1] = after.with_changes(empty_lines=[*before.empty_lines, *after.empty_lines])
            entry.comma_before = NO_SPACE

    for index in range(count + 1):
        previous = entries[index - 1].comment if index else None
        following = entries[index].comment if index < count else None
        gap = gaps[index]
        if (previous is not None or following is not None) and not isinstance(gap, cst.ParenthesizedWhitespace):
            gap = _line_break(_closing_indent(block) if index == count else _entry_indent(block))
        gaps[index] = _with_comment(gap, previous)


def _remove_from_block(block: Block, entry: Entry) -> None:
    index = block.entries.index(entry)
    before, after = block.gaps[index], block.gaps[index + 1]
    is_last = index == len(block.entries) - 1

    if isinstance(before, cst.ParenthesizedWhitespace) and isinstance(after, cst.ParenthesizedWhitespace):
        # entry owned its whole line
        merged = before.with_changes(
            empty_lines=[*before.empty_lines, *after.empty_lines],
            indent=after.indent,
            last_line=after.last_line,
        )
    elif isinstance(before, cst.ParenthesizedWhitespace):
        merged = after if is_last and not before.empty_lines else before
    elif isinstance(after, cst.ParenthesizedWhitespace):
        merged = after
    else:
        merged = after if is_last else before

    del block.entries[index]
    block.gaps[index:index + 2] = [merged]


def remove_entries(model: BuildFileModel, entries: Iterable[Entry]) -> int:
    """
    Remove entries from their blocks.

    Each entry goes together with its separator, attached comment and the
    whitespace that only existed to hold it (its line in a multi-line list,
    the neighbouring blank in an inline list). Own-line comments stay.

    Args:
        model: Parsed BUILD file, edited in place
        entries: Entry objects belonging to this model

    Returns:
        Number of entries removed
    """
    doomed = set(entries)
    removed = 0
    for block in model.blocks:
        hits = [entry for entry in block.entries if entry in doomed]
        for entry in hits:
            _remove_from_block(block, entry)
        if hits:
            block.dirty = True
            _place_comments(block)
            removed += len(hits)
    return removed


def _append_to_block(block: Block, literals: list[str]) -> None:
    new = [Entry.new(literal) for literal in literals]
    gaps = block.gaps
    closing = gaps[-1] if block.entries else gaps[0]

    if block.multiline:
        indent = _entry_indent(block)
        if isinstance(closing, cst.ParenthesizedWhitespace):
            head = closing.with_changes(empty_lines=[], last_line=cst.SimpleWhitespace(indent))
            end = closing.with_changes(first_line=cst.TrailingWhitespace())
            if not block.entries and closing.first_line.comment is not None:
                new[0].comment = closing.first_line.comment.value
        else:
            head, end = _line_break(indent), closing
        gaps[-1:] = [head] + [_line_break(indent) for _ in new[1:]] + [end]
        block.trailing_comma = True
    elif block.entries:
        gaps[-1:] = [ONE_SPACE for _ in new] + [closing]
    else:
        gaps[:] = [closing] + [ONE_SPACE for _ in new[1:]] + [block.tail]
        block.tail = NO_SPACE

    block.entries.extend(new)
    block.dirty = True
    _place_comments(block)


def _field_indent(call: cst.Call) -> str:
    """Indentation of the keyword arguments of a multi-line call."""
    candidates = [call.whitespace_before_args]
    candidates += [arg.comma.whitespace_after for arg in call.args[:-1] if isinstance(arg.comma, cst.Comma)]
    for ws in candidates:
        if isinstance(ws, cst.ParenthesizedWhitespace):
            return ws.last_line.value
    return INDENT_UNIT


def _synthesize_block(model: BuildFileModel, target: TargetDecl, literals: list[str]) -> Block:
    """Create a dependencies argument inside a target call that has none."""
    call = target.node
    args = list(call.args)
    last = args[-1] if args else None

    block = Block(
        keyword=DEPENDENCIES_KEYWORD,
        node=cst.List(elements=[]),
        module=model.module,
        owner=target,
        line=target.line,
        entries=[Entry.new(literal) for literal in literals],
        dirty=True,
    )
    arg = cst.Arg(
        keyword=cst.Name(DEPENDENCIES_KEYWORD),
        value=block.node,
        equal=cst.AssignEqual(whitespace_before=NO_SPACE, whitespace_after=NO_SPACE),
    )

    if target.multiline:
        field_indent = _field_indent(call)
        block.gaps = [_line_break(field_indent + INDENT_UNIT) for _ in literals] + [_line_break(field_indent)]
        block.trailing_comma = True

        if last is None:
            closing = call.whitespace_before_args
        elif isinstance(last.comma, cst.Comma):
            closing = last.comma.whitespace_after
        else:
            closing = last.whitespace_after_arg
        if isinstance(closing, cst.ParenthesizedWhitespace):
            head = closing.with_changes(empty_lines=[], last_line=cst.SimpleWhitespace(field_indent))
            end = closing.with_changes(first_line=cst.TrailingWhitespace())
        else:
            head, end = _line_break(field_indent), closing
        arg = arg.with_changes(comma=cst.Comma(whitespace_after=end))

        if last is None:
            replacement = call.with_changes(whitespace_before_args=head, args=[arg])
        else:
            comma = last.comma if isinstance(last.comma, cst.Comma) else cst.Comma()
            args[-1] = last.with_changes(
                comma=comma.with_changes(whitespace_after=head),
                whitespace_after_arg=NO_SPACE,
            )
            replacement = call.with_changes(args=[*args, arg])
    else:
        block.gaps = [NO_SPACE] + [ONE_SPACE for _ in literals[1:]] + [NO_SPACE]

        if last is None:
            replacement = call.with_changes(args=[arg])
        else:
            comma = last.comma if isinstance(last.comma, cst.Comma) else cst.Comma()
            args[-1] = last.with_changes(
                comma=comma.with_changes(whitespace_after=ONE_SPACE),
                whitespace_after_arg=NO_SPACE,
            )
            arg = arg.with_changes(whitespace_after_arg=last.whitespace_after_arg)
            replacement = call.with_changes(args=[*args, arg])

    target.replacement = replacement
    target.blocks.append(block)
    model.blocks.append(block)
    return block


def insert_entries(
    model: BuildFileModel,
    target: TargetDecl,
    names: Iterable[str],
    sort: bool = False,
) -> int:
    """
    Declare new dependencies on a target.

    Names are appended before the closing bracket of the target's first
    dependencies block in lexicographic order, matching the block's layout
    and indentation. A target without a dependencies block gets one. With
    `sort`, the block is normalized afterwards so every entry ends up in
    sorted position.

    Args:
        model: Parsed BUILD file, edited in place
        target: Target declaration from this model
        names: Normalized target addresses to declare
        sort: Normalize the receiving block after inserting

    Returns:
        Number of entries inserted
    """
    addresses = sorted(set(names))
    if not addresses:
        return 0
    literals = [short_form(address) for address in addresses]

    blocks = target.blocks_for(DEPENDENCIES_KEYWORD)
    if blocks:
        block = blocks[0]
        _append_to_block(block, literals)
    else:
        block = _synthesize_block(model, target, literals)

    if sort:
        normalize_block(block, model.directory)
    return len(literals)


def normalize_block(block: Block, directory: str) -> bool:
    """
    Sort a block's entries and rewrite them in canonical form.

    Entries are stably sorted by normalized address; each keeps its
    attached comment (and therefore its skip marker). Own-line comments and
    blank lines stay where they are. Every entry is single-quoted and ends
    with a separator.

    Returns:
        True if the block text changed
    """
    if not block.entries:
        return False

    before = block.render()
    block.entries.sort(key=lambda e: e.address(directory))
    for entry in block.entries:
        entry.value = entry.canonical_value()
        entry.has_separator = True
    block.trailing_comma = True
    block.dirty = True
    _place_comments(block)

    return block.render() != before


def normalize_model(model: BuildFileModel) -> int:
    """Normalize every recognized block of a file; return the number of blocks changed."""
    return sum(1 for block in list(model.blocks) if normalize_block(block, model.directory))
