"""Parse-based syntax validation.

Each validator raises AnalysisPassFailure carrying the offending line (0
when the parser cannot tell). The lint pass converts that into a single
issue so a broken file never aborts the analysis.
"""

from __future__ import annotations

import ast
import json
from functools import lru_cache

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Parser

from difflens_core.analysis.models import FileKind
from difflens_store.errors import AnalysisPassFailure

_GRAMMARS = {FileKind.JAVASCRIPT: "javascript", FileKind.TYPESCRIPT: "tsx"}


def check_python(content: str) -> None:
    try:
        ast.parse(content)
    except SyntaxError as e:
        raise AnalysisPassFailure(f"Syntax error: {e.msg}", line=e.lineno or 0) from e
    except ValueError as e:
        # ast.parse rejects source containing null bytes with ValueError.
        raise AnalysisPassFailure(f"Syntax error: {e}", line=0) from e


def check_json(content: str) -> None:
    try:
        json.loads(content)
    except json.JSONDecodeError as e:
        raise AnalysisPassFailure(f"Invalid JSON: {e.msg}", line=e.lineno) from e


def check_javascript(content: str, kind: FileKind = FileKind.JAVASCRIPT) -> None:
    """Parse with tree-sitter and report the first ERROR or MISSING node.

    TypeScript sources go through the TSX grammar so ``.tsx`` files parse
    too; the JavaScript grammar already accepts JSX.
    """
    parser = Parser(_language(_GRAMMARS.get(kind, "javascript")))
    tree = parser.parse(content.encode("utf-8"))
    node = _first_error(tree.root_node)
    if node is None:
        return
    line = node.start_point[0] + 1
    if node.is_missing:
        raise AnalysisPassFailure(f"Syntax error: missing '{node.type}'", line=line)
    text = (node.text or b"").decode("utf-8", errors="replace").strip().split("\n", 1)[0]
    if len(text) > 40:
        text = text[:40] + "..."
    raise AnalysisPassFailure(f"Syntax error: unexpected '{text}'", line=line)


@lru_cache(maxsize=None)
def _language(name: str) -> Language:
    if name == "tsx":
        return Language(tree_sitter_typescript.language_tsx())
    return Language(tree_sitter_javascript.language())


def _first_error(root):
    if not root.has_error:
        return None
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node
        stack.extend(reversed([child for child in node.children if child.has_error or child.is_missing]))
    return None
