"""Parse and print capability plus import-expression recognition."""

from __future__ import annotations

import ast
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import UnitSyntaxError
from .models import ImportSite


def parse_source(text: str, filename: Path) -> ast.Module:
    """Parse unit source text into a module tree."""
    try:
        return ast.parse(text, filename=str(filename))
    except SyntaxError as exc:
        raise UnitSyntaxError(filename, exc.msg or "invalid syntax", exc.lineno) from exc


def print_tree(tree: ast.Module) -> str:
    """Render a module tree back to source text."""
    ast.fix_missing_locations(tree)
    return ast.unparse(tree) + "\n"


def is_import_call(node: ast.AST, require_name: str) -> bool:
    """Return True for any call to the import function, literal or not."""
    return (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id == require_name
    )


def import_target(node: ast.AST, require_name: str) -> Optional[str]:
    """Return the literal target of ``require("...")`` or None.

    Only calls with exactly one positional string literal argument count;
    computed targets are not dependency edges.
    """
    if not isinstance(node, ast.Call) or not is_import_call(node, require_name):
        return None
    if len(node.args) != 1 or node.keywords:
        return None
    argument = node.args[0]
    if isinstance(argument, ast.Constant) and isinstance(argument.value, str):
        return argument.value
    return None


def collect_imports(tree: ast.AST, require_name: str) -> Tuple[List[ImportSite], int]:
    """Return literal import sites in source order and the count of dynamic ones."""
    sites: List[ImportSite] = []
    dynamic = 0
    for node in ast.walk(tree):
        if not is_import_call(node, require_name):
            continue
        target = import_target(node, require_name)
        if target is None:
            dynamic += 1
            continue
        sites.append(ImportSite(target=target, lineno=node.lineno, col_offset=node.col_offset))
    sites.sort(key=lambda site: (site.lineno, site.col_offset))
    return sites, dynamic


__all__ = ["collect_imports", "import_target", "is_import_call", "parse_source", "print_tree"]
