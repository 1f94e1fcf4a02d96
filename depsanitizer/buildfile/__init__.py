"""BUILD file package - libcst-backed parsing and rewriting.

Core modules:
- parser: libcst module -> BuildFileModel, with comment attachment
- model: Entries, blocks and target declarations over the concrete syntax tree
- rewriter: remove / insert / normalize edits on a model
"""

from .model import Block, BuildFileModel, Entry, TargetDecl
from .parser import parse_build_file
from .rewriter import insert_entries, normalize_block, normalize_model, remove_entries

__all__ = [
    "Block",
    "BuildFileModel",
    "Entry",
    "TargetDecl",
    "parse_build_file",
    "insert_entries",
    "normalize_block",
    "normalize_model",
    "remove_entries",
]
