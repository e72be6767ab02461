"""Topological ordering of units with cycle detection."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Set

from .errors import CircularDependencyError
from .models import DependencyGraph, Unit


@dataclass
class UnitOrder:
    """Units in dependency order and externals in first-encounter order."""

    units: List[Unit]
    externals: List[Path]


def topological_order(graph: DependencyGraph) -> UnitOrder:
    """Return units so every unit follows the units it depends on.

    Depth-first, post-order, driven by an explicit stack so very deep graphs
    do not hit the interpreter recursion limit. Finished units are memoised,
    which keeps diamond dependencies linear. Reaching a unit that is still on
    the current path raises CircularDependencyError with the cycle.
    """
    ordered: List[Unit] = []
    externals: List[Path] = []
    done: Set[Path] = set()

    for root in graph.units:
        if root in done:
            continue
        path: List[Path] = [root]
        on_path: Dict[Path, int] = {root: 0}
        pending: List[Iterator[Path]] = [iter(graph.units[root].dependencies)]

        while pending:
            dependency = next(pending[-1], None)
            if dependency is None:
                pending.pop()
                finished = path.pop()
                del on_path[finished]
                done.add(finished)
                ordered.append(graph.units[finished])
                continue
            if dependency in on_path:
                raise CircularDependencyError(path[on_path[dependency]:] + [dependency])
            if dependency in done:
                continue
            if not graph.is_unit(dependency):
                done.add(dependency)
                externals.append(dependency)
                continue
            on_path[dependency] = len(path)
            path.append(dependency)
            pending.append(iter(graph.units[dependency].dependencies))

    return UnitOrder(units=ordered, externals=externals)


__all__ = ["UnitOrder", "topological_order"]
