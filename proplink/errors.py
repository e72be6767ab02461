"""Exception hierarchy for link failures."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence


class LinkError(RuntimeError):
    """Base class for errors that abort a link run."""


class UnitSyntaxError(LinkError):
    """Raised when a unit's source cannot be parsed."""

    def __init__(self, path: Path, message: str, lineno: int | None = None) -> None:
        location = f"{path}:{lineno}" if lineno else str(path)
        super().__init__(f"{location}: {message}")
        self.path = path
        self.lineno = lineno


class UnresolvedImportError(LinkError):
    """Raised when an import target cannot be resolved to a file."""

    def __init__(self, target: str, importer: Path, lineno: int | None = None) -> None:
        location = f"{importer}:{lineno}" if lineno else str(importer)
        super().__init__(f"Cannot resolve {target!r} imported from {location}")
        self.target = target
        self.importer = importer
        self.lineno = lineno


class CircularDependencyError(LinkError):
    """Raised when the unit graph contains a cycle."""

    def __init__(self, cycle: Sequence[Path]) -> None:
        self.cycle: List[Path] = list(cycle)
        chain = " -> ".join(_display_name(path) for path in self.cycle)
        super().__init__(f"Circular dependency: {chain}")


class ReservedNameError(LinkError):
    """Raised when a unit rebinds the import function or the exports object."""

    def __init__(self, name: str, path: Path, lineno: int | None = None) -> None:
        location = f"{path}:{lineno}" if lineno else str(path)
        super().__init__(f"{location}: {name!r} is provided by the linker and cannot be rebound")
        self.name = name
        self.path = path
        self.lineno = lineno


class MissingExportError(LinkError):
    """Raised when a unit imports a member its producer never exports."""

    def __init__(self, member: str, producer: str, consumer: str | None = None) -> None:
        message = f"{producer} does not export {member}"
        if consumer:
            message += f" (requested by {consumer})"
        super().__init__(message)
        self.member = member
        self.producer = producer
        self.consumer = consumer


def _display_name(path: Path) -> str:
    return path.stem if path.name != "__init__.py" else path.parent.name


__all__ = [
    "CircularDependencyError",
    "LinkError",
    "MissingExportError",
    "ReservedNameError",
    "UnitSyntaxError",
    "UnresolvedImportError",
]
