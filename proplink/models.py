"""Core data models shared across proplink components."""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ImportSite:
    """A literal import expression found in a unit."""

    target: str
    lineno: int
    col_offset: int
    path: Optional[Path] = None


@dataclass
class Unit:
    """One input source module participating in the link."""

    path: Path
    name: str
    tree: ast.Module
    imports: List[ImportSite] = field(default_factory=list)
    exports: Dict[str, str] = field(default_factory=dict)
    dynamic_imports: int = 0

    @property
    def dependencies(self) -> List[Path]:
        """Resolved import targets in source order."""
        return [site.path for site in self.imports if site.path is not None]


@dataclass(frozen=True)
class ExternalBinding:
    """A dependency outside the unit set, bound once in the merged output."""

    path: Path
    identifier: str
    import_text: str


@dataclass
class DependencyGraph:
    """Units keyed by path plus the external paths they reference."""

    units: Dict[Path, Unit]
    externals: List[Path] = field(default_factory=list)

    def is_unit(self, path: Path) -> bool:
        return path in self.units


@dataclass
class LinkResult:
    """Outcome of a link run before it is written to disk."""

    order: List[Unit]
    externals: List[ExternalBinding]
    registry: Dict[str, str]
    program: ast.Module
    body: str
    header: str

    @property
    def text(self) -> str:
        return f"{self.header}{self.body}"
