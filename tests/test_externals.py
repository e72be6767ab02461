"""Tests for proplink.externals."""

from __future__ import annotations

import ast
from pathlib import Path

from proplink.externals import ExternalRegistry
from proplink.names import NameAllocator


def test_binding_is_created_once_per_path(tmp_path: Path) -> None:
    registry = ExternalRegistry(tmp_path / "lib", NameAllocator())
    parsers = tmp_path / "lib" / "parsers.py"

    first = registry.binding_for(parsers)
    second = registry.binding_for(parsers)

    assert first is second
    assert first.identifier == "external_dependency_parsers_0"
    assert first.import_text == "./parsers"
    assert len(registry) == 1
    assert parsers in registry


def test_identifiers_are_sanitised_and_counted(tmp_path: Path) -> None:
    registry = ExternalRegistry(tmp_path / "lib", NameAllocator())

    colors = registry.binding_for(tmp_path / "shared" / "named-colors.py")
    helpers = registry.binding_for(tmp_path / "lib" / "helpers" / "__init__.py")

    assert colors.identifier == "external_dependency_namedcolors_0"
    assert colors.import_text == "../shared/named-colors"
    assert helpers.identifier == "external_dependency_helpers_1"
    assert helpers.import_text == "./helpers"
    assert [binding.path for binding in registry.bindings] == [colors.path, helpers.path]


def test_statements_import_each_binding(tmp_path: Path) -> None:
    registry = ExternalRegistry(tmp_path / "lib", NameAllocator(), require_name="load")
    registry.binding_for(tmp_path / "lib" / "parsers.py")

    module = ast.fix_missing_locations(ast.Module(body=registry.statements(), type_ignores=[]))

    assert ast.unparse(module) == "external_dependency_parsers_0 = load('./parsers')"
