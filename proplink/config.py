"""Configuration loading for proplink (.proplink.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".proplink.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class HeaderConfig:
    """Settings for the comment block written above the merged program."""

    template: Optional[Path] = None
    banner: List[str] = field(default_factory=list)


@dataclass
class LinkConfig:
    """Represents the settings defined in .proplink.yml."""

    root: Path
    units_dir: Path
    output: Path
    require_name: str = "require"
    exports_name: str = "exports"
    registry_export: str = "definition"
    install_name: str = "install"
    unit_suffix: str = ".py"
    vendor_prefixes: List[str] = field(default_factory=lambda: ["webkit"])
    search_paths: List[Path] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)
    header: HeaderConfig = field(default_factory=HeaderConfig)


def default_config(root: Path) -> LinkConfig:
    """Return the configuration used when no .proplink.yml exists."""
    root = root.resolve()
    return LinkConfig(
        root=root,
        units_dir=root / "lib" / "properties",
        output=root / "lib" / "properties.py",
    )


def load_config(config_path: Path) -> LinkConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()
    config = default_config(root)

    if not config_file.exists():
        return config

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    units_dir = _as_str(data.get("units_dir"))
    if units_dir:
        config.units_dir = (root / units_dir).resolve()
    output = _as_str(data.get("output"))
    if output:
        config.output = (root / output).resolve()

    for key in ("require_name", "exports_name", "registry_export", "install_name"):
        value = _as_identifier(data.get(key), key)
        if value:
            setattr(config, key, value)

    suffix = _as_str(data.get("unit_suffix"))
    if suffix:
        config.unit_suffix = suffix if suffix.startswith(".") else f".{suffix}"

    if "vendor_prefixes" in data:
        config.vendor_prefixes = [prefix.lower() for prefix in _as_str_list(data.get("vendor_prefixes"))]
    config.search_paths = [(root / entry).resolve() for entry in _as_str_list(data.get("search_paths"))]
    config.exclude_paths = _as_str_list(data.get("exclude_paths"))

    header_data = _as_dict(data.get("header"))
    if header_data:
        template = _as_str(header_data.get("template"))
        config.header = HeaderConfig(
            template=(root / template).resolve() if template else None,
            banner=_as_str_list(header_data.get("banner")),
        )

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_identifier(value: Any, key: str) -> Optional[str]:
    text = _as_str(value)
    if text is None:
        return None
    if not text.isidentifier():
        raise ConfigError(f"{key} must be a valid Python identifier, got {text!r}")
    return text


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "HeaderConfig",
    "LinkConfig",
    "default_config",
    "load_config",
]
