"""Tests for proplink.resolver."""

from __future__ import annotations

from pathlib import Path

import pytest

from proplink.resolver import ModuleResolver, import_text, module_stem


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("", encoding="utf-8")
    return path


def test_resolve_infers_extension(tmp_path: Path) -> None:
    target = _touch(tmp_path / "lib" / "parsers.py")
    resolver = ModuleResolver()

    assert resolver.resolve("../parsers", tmp_path / "lib" / "properties") == target.resolve()
    assert resolver.resolve("./parsers.py", tmp_path / "lib") == target.resolve()


def test_resolve_falls_back_to_package_index(tmp_path: Path) -> None:
    index = _touch(tmp_path / "helpers" / "__init__.py")

    assert ModuleResolver().resolve("./helpers", tmp_path) == index.resolve()


def test_resolve_prefers_module_file_over_package(tmp_path: Path) -> None:
    module = _touch(tmp_path / "helpers.py")
    _touch(tmp_path / "helpers" / "__init__.py")

    assert ModuleResolver().resolve("./helpers", tmp_path) == module.resolve()


def test_resolve_bare_target_uses_search_paths(tmp_path: Path) -> None:
    vendor = tmp_path / "vendor"
    target = _touch(vendor / "colors.py")
    resolver = ModuleResolver([vendor])

    assert resolver.resolve("colors", tmp_path / "lib") == target.resolve()


def test_resolve_raises_for_missing_target(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        ModuleResolver().resolve("./missing", tmp_path)
    with pytest.raises(FileNotFoundError):
        ModuleResolver().resolve("colors", tmp_path)


def test_import_text_is_relative_to_output_directory(tmp_path: Path) -> None:
    lib = tmp_path / "lib"
    assert import_text(lib / "parsers.py", lib) == "./parsers"
    assert import_text(tmp_path / "shared" / "util.py", lib) == "../shared/util"
    assert import_text(lib / "helpers" / "__init__.py", lib) == "./helpers"


def test_module_stem_uses_package_name_for_index(tmp_path: Path) -> None:
    assert module_stem(tmp_path / "parsers.py") == "parsers"
    assert module_stem(tmp_path / "helpers" / "__init__.py") == "helpers"
