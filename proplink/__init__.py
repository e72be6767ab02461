"""Build-time linker that merges property units into one module."""

from .config import ConfigError, LinkConfig, default_config, load_config
from .errors import (
    CircularDependencyError,
    LinkError,
    MissingExportError,
    ReservedNameError,
    UnitSyntaxError,
    UnresolvedImportError,
)
from .linker import Linker

__all__ = [
    "CircularDependencyError",
    "ConfigError",
    "LinkConfig",
    "LinkError",
    "Linker",
    "MissingExportError",
    "ReservedNameError",
    "UnitSyntaxError",
    "UnresolvedImportError",
    "default_config",
    "load_config",
]
