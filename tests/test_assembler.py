"""Tests for proplink.assembler."""

from __future__ import annotations

import ast
from datetime import date
from pathlib import Path

import pytest

from proplink.assembler import Assembler, render_header
from proplink.config import ConfigError, HeaderConfig
from proplink.externals import ExternalRegistry
from proplink.models import Unit
from proplink.names import NameAllocator


def _unit(name: str, source: str, exports: dict[str, str]) -> Unit:
    return Unit(path=Path(f"/units/{name}.py"), name=name, tree=ast.parse(source), exports=exports)


def test_registry_uses_primary_and_dashed_keys() -> None:
    units = [
        _unit("backgroundColor", "", {"definition": "backgroundColor_export_definition"}),
        _unit("webkitTransform", "", {"definition": "webkitTransform_export_definition"}),
        _unit("color", "", {"definition": "color_export_definition"}),
        _unit("colorBase", "", {"make": "colorBase_export_make"}),
    ]

    registry = Assembler().registry(units)

    assert registry == {
        "backgroundColor": "backgroundColor_export_definition",
        "background-color": "backgroundColor_export_definition",
        "webkitTransform": "webkitTransform_export_definition",
        "-webkit-transform": "webkitTransform_export_definition",
        "color": "color_export_definition",
    }


def test_assemble_orders_externals_units_and_installer(tmp_path: Path) -> None:
    externals = ExternalRegistry(tmp_path, NameAllocator())
    externals.binding_for(tmp_path / "parsers.py")
    units = [
        _unit("a", "a_export_definition = 1", {"definition": "a_export_definition"}),
        _unit("b", "b_export_definition = a_export_definition", {"definition": "b_export_definition"}),
    ]

    program = Assembler().assemble(units, externals)
    text = ast.unparse(program)

    assert text.index("from proplink.runtime import bind_require") < text.index(
        "external_dependency_parsers_0 = require('./parsers')"
    )
    assert text.index("external_dependency_parsers_0") < text.index("a_export_definition = 1")
    assert text.index("a_export_definition = 1") < text.index("b_export_definition = a_export_definition")
    assert "def install(target):" in text
    assert "{'a': a_export_definition, 'b': b_export_definition}.items()" in text
    assert text.rstrip().endswith("__all__ = ['install']")


def test_installer_sets_every_key_on_target() -> None:
    units = [_unit("fontSize", "fontSize_export_definition = 12", {"definition": "fontSize_export_definition"})]
    program = Assembler(install_name="define").assemble(units, ExternalRegistry(Path("/"), NameAllocator()))
    namespace: dict[str, object] = {}
    exec(compile(program, "<merged>", "exec"), namespace)

    class Target:
        pass

    namespace["define"](Target)

    assert Target.fontSize == 12
    assert getattr(Target, "font-size") == 12
    assert namespace["__all__"] == ["define"]
    assert "proplink_bind_require" not in namespace


def test_render_header_includes_date_and_banner() -> None:
    header = render_header(
        HeaderConfig(banner=["https://www.w3.org/Style/CSS/all-properties.en.html"]),
        today=date(2026, 3, 7),
    )

    assert header == (
        "# autogenerated - 3/7/2026\n"
        "\n"
        "# https://www.w3.org/Style/CSS/all-properties.en.html\n"
        "\n"
    )


def test_render_header_without_banner() -> None:
    assert render_header(HeaderConfig(), today=date(2026, 10, 17)) == "# autogenerated - 10/17/2026\n\n"


def test_render_header_uses_template_file(tmp_path: Path) -> None:
    template = tmp_path / "header.j2"
    template.write_text("# built {{ date.isoformat() }} from {{ units | join(', ') }}\n", encoding="utf-8")
    units = [_unit("a", "", {}), _unit("b", "", {})]

    header = render_header(HeaderConfig(template=template), today=date(2026, 1, 2), units=units)

    assert header == "# built 2026-01-02 from a, b\n"


def test_render_header_missing_template_is_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        render_header(HeaderConfig(template=tmp_path / "missing.j2"))


def test_assemble_declares_exports_before_each_unit() -> None:
    units = [
        _unit("a", "a_export_definition = 1", {"definition": "a_export_definition", "size": "a_export_size"}),
        _unit("b", "pass", {}),
    ]

    text = ast.unparse(Assembler().assemble(units, ExternalRegistry(Path("/"), NameAllocator())))

    assert text.startswith("a_export_definition = a_export_size = None\na_export_definition = 1\npass\n")


def test_assemble_puts_future_imports_first(tmp_path: Path) -> None:
    externals = ExternalRegistry(tmp_path, NameAllocator())
    externals.binding_for(tmp_path / "parsers.py")

    program = Assembler().assemble(
        [_unit("a", "a_export_definition = 1", {"definition": "a_export_definition"})],
        externals,
        uses_namespace=True,
        future_features=["annotations"],
    )

    first = program.body[0]
    assert isinstance(first, ast.ImportFrom)
    assert first.module == "__future__"
    assert [alias.name for alias in first.names] == ["annotations"]
    assert sum(isinstance(node, ast.ImportFrom) and node.module == "__future__" for node in program.body) == 1
