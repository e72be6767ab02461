"""Unit discovery and loading."""

from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import Path
from typing import List, Sequence

from .models import Unit
from .syntax import collect_imports, parse_source

_EXCLUDED_FILES = {
    "__init__.py",
    "conftest.py",
    ".DS_Store",
    "Thumbs.db",
}


def _should_ignore(name: str, patterns: Sequence[str]) -> bool:
    if name in _EXCLUDED_FILES or name.startswith("."):
        return True
    return any(fnmatchcase(name, pattern) for pattern in patterns)


class UnitScanner:
    """Finds unit files in a directory and parses them into units."""

    def __init__(
        self,
        *,
        suffix: str = ".py",
        exclude: Sequence[str] = (),
        require_name: str = "require",
    ) -> None:
        self.suffix = suffix
        self.exclude = list(exclude)
        self.require_name = require_name

    def discover(self, units_dir: Path) -> List[Path]:
        """Return unit file paths in ``units_dir``, sorted by filename."""
        root = Path(units_dir).expanduser().resolve()
        if not root.exists():
            raise FileNotFoundError(f"Units directory not found: {units_dir}")
        if not root.is_dir():
            raise NotADirectoryError(f"Units path is not a directory: {units_dir}")

        paths = [
            path.resolve()
            for path in root.iterdir()
            if path.is_file()
            and path.suffix == self.suffix
            and not _should_ignore(path.name, self.exclude)
        ]
        return sorted(paths, key=lambda path: path.name)

    def load(self, path: Path) -> Unit:
        """Parse one unit file and extract its literal import targets."""
        text = path.read_text(encoding="utf-8")
        tree = parse_source(text, path)
        imports, dynamic = collect_imports(tree, self.require_name)
        return Unit(
            path=path,
            name=path.name[: -len(self.suffix)] if self.suffix else path.stem,
            tree=tree,
            imports=imports,
            dynamic_imports=dynamic,
        )

    def scan(self, units_dir: Path) -> List[Unit]:
        """Discover and load every unit in ``units_dir``."""
        return [self.load(path) for path in self.discover(units_dir)]


__all__ = ["UnitScanner"]
