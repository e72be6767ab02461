"""Tests for proplink.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from proplink.config import ConfigError, HeaderConfig, LinkConfig, load_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    root = tmp_path.resolve()
    assert isinstance(config, LinkConfig)
    assert config.root == root
    assert config.units_dir == root / "lib" / "properties"
    assert config.output == root / "lib" / "properties.py"
    assert config.require_name == "require"
    assert config.exports_name == "exports"
    assert config.registry_export == "definition"
    assert config.install_name == "install"
    assert config.unit_suffix == ".py"
    assert config.vendor_prefixes == ["webkit"]
    assert config.search_paths == []
    assert config.exclude_paths == []
    assert config.header == HeaderConfig()


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".proplink.yml"
    config_file.write_text(
        """
units_dir: "src/props"
output: "build/merged.py"
require_name: "load"
exports_name: "public"
registry_export: "descriptor"
install_name: "define_properties"
unit_suffix: "unit.py"
vendor_prefixes: [WebKit, moz]
search_paths:
  - "vendor"
exclude_paths:
  - "*_test.py"
header:
  template: "templates/header.j2"
  banner:
    - "https://www.w3.org/Style/CSS/all-properties.en.html"
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    root = tmp_path.resolve()
    assert config.units_dir == root / "src" / "props"
    assert config.output == root / "build" / "merged.py"
    assert config.require_name == "load"
    assert config.exports_name == "public"
    assert config.registry_export == "descriptor"
    assert config.install_name == "define_properties"
    assert config.unit_suffix == ".unit.py"
    assert config.vendor_prefixes == ["webkit", "moz"]
    assert config.search_paths == [root / "vendor"]
    assert config.exclude_paths == ["*_test.py"]
    assert config.header.template == root / "templates" / "header.j2"
    assert config.header.banner == ["https://www.w3.org/Style/CSS/all-properties.en.html"]


def test_load_config_accepts_file_next_to_config(tmp_path: Path) -> None:
    (tmp_path / ".proplink.yml").write_text("output: out.py\n", encoding="utf-8")

    config = load_config(tmp_path / "anything.txt")

    assert config.output == tmp_path.resolve() / "out.py"


def test_empty_vendor_prefixes_disable_vendor_keys(tmp_path: Path) -> None:
    (tmp_path / ".proplink.yml").write_text("vendor_prefixes: []\n", encoding="utf-8")

    assert load_config(tmp_path).vendor_prefixes == []


def test_load_config_rejects_non_mapping_root(tmp_path: Path) -> None:
    (tmp_path / ".proplink.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(tmp_path)


def test_load_config_rejects_invalid_identifier(tmp_path: Path) -> None:
    (tmp_path / ".proplink.yml").write_text("require_name: 'not valid'\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="require_name"):
        load_config(tmp_path)


def test_load_config_reports_yaml_errors(tmp_path: Path) -> None:
    (tmp_path / ".proplink.yml").write_text("output: [unterminated\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Failed to parse"):
        load_config(tmp_path)
