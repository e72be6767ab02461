"""Unlinked execution of units.

Units are plain Python files that receive two globals: ``require`` to load
another unit's exports and ``exports`` to publish their own. This module runs
them as written, which is how units behave during development and how the
merged program loads dependencies that were left outside the link.
"""

from __future__ import annotations

import hashlib
import importlib.util
from importlib.machinery import SourceFileLoader
from pathlib import Path
from types import SimpleNamespace
from typing import Callable, Dict, Optional

from .resolver import ModuleResolver, module_stem

Require = Callable[[str], "Exports"]


class Exports(SimpleNamespace):
    """Attribute bag a unit writes its public values to."""


class UnitLoader:
    """Executes unit files on demand, caching their exports by path."""

    def __init__(
        self,
        resolver: Optional[ModuleResolver] = None,
        *,
        require_name: str = "require",
        exports_name: str = "exports",
    ) -> None:
        self.resolver = resolver or ModuleResolver()
        self.require_name = require_name
        self.exports_name = exports_name
        self._cache: Dict[Path, Exports] = {}

    def load(self, path: Path) -> Exports:
        """Execute the unit at ``path`` once and return its exports."""
        path = Path(path).resolve()
        cached = self._cache.get(path)
        if cached is not None:
            return cached

        module_name = _module_name(path)
        spec = importlib.util.spec_from_file_location(
            module_name, str(path), loader=SourceFileLoader(module_name, str(path))
        )
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot create module spec for {path}")
        module = importlib.util.module_from_spec(spec)

        exports = Exports()
        setattr(module, self.require_name, self.bind(path.parent))
        setattr(module, self.exports_name, exports)
        # registered before execution so a cycle sees the partial exports
        self._cache[path] = exports
        try:
            spec.loader.exec_module(module)
        except Exception:
            del self._cache[path]
            raise
        return exports

    def bind(self, basedir: Path) -> Require:
        """Return a ``require`` function resolving targets from ``basedir``."""
        resolver = self.resolver

        def require(target: str) -> Exports:
            return self.load(resolver.resolve(target, basedir))

        return require


def _module_name(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:16]
    return f"proplink_unit_{module_stem(path)}_{digest}"


def bind_require(module_file: str) -> Require:
    """Return a ``require`` that resolves relative to ``module_file``.

    Each call gets its own loader, so every merged module keeps a private
    cache of the externals it loads.
    """
    return UnitLoader().bind(Path(module_file).resolve().parent)


__all__ = ["Exports", "UnitLoader", "bind_require"]
