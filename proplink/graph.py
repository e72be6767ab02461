"""Dependency graph construction."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Set

from .errors import UnresolvedImportError
from .logging import get_logger
from .models import DependencyGraph, Unit
from .resolver import ModuleResolver

logger = get_logger("graph")


def build_graph(units: Iterable[Unit], resolver: ModuleResolver) -> DependencyGraph:
    """Resolve every unit's import sites and classify the targets.

    Targets that resolve to a known unit become unit edges; anything else is
    recorded as an external dependency in first-seen order. Resolution
    failures abort the build.
    """
    by_path: Dict[Path, Unit] = {unit.path: unit for unit in units}
    externals: List[Path] = []
    seen_externals: Set[Path] = set()

    for unit in by_path.values():
        resolved_sites = []
        for site in unit.imports:
            try:
                path = resolver.resolve(site.target, unit.path.parent)
            except FileNotFoundError as exc:
                raise UnresolvedImportError(site.target, unit.path, site.lineno) from exc
            resolved_sites.append(replace(site, path=path))
            if path not in by_path and path not in seen_externals:
                seen_externals.add(path)
                externals.append(path)
                logger.debug("%s depends on external %s", unit.name, path)
        unit.imports = resolved_sites
        if unit.dynamic_imports:
            logger.debug(
                "%s has %d computed import(s); they are not dependency edges",
                unit.name,
                unit.dynamic_imports,
            )

    return DependencyGraph(units=by_path, externals=externals)


__all__ = ["build_graph"]
