"""Filesystem module resolution for import targets."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Iterator, List

_PACKAGE_INDEX = "__init__"


class ModuleResolver:
    """Resolves ``require`` literals to absolute file paths.

    Relative (``./``, ``../``) and absolute targets resolve against the
    importing file's directory. Bare targets are looked up in the configured
    search paths. Each candidate base ``p`` is tried as ``p``, ``p<suffix>``
    and ``p/__init__<suffix>``.
    """

    def __init__(self, search_paths: Iterable[Path] = (), suffix: str = ".py") -> None:
        self.search_paths: List[Path] = [Path(path) for path in search_paths]
        self.suffix = suffix

    def resolve(self, target: str, basedir: Path) -> Path:
        """Return the absolute path for ``target`` or raise FileNotFoundError."""
        for base in self._bases(target, basedir):
            for candidate in self._candidates(base):
                if candidate.is_file():
                    return candidate.resolve()
        raise FileNotFoundError(f"Cannot find module {target!r} from {basedir}")

    def _bases(self, target: str, basedir: Path) -> Iterator[Path]:
        if not target:
            return
        if _is_path_like(target):
            yield Path(basedir) / target
            return
        for directory in self.search_paths:
            yield directory / target

    def _candidates(self, base: Path) -> Iterator[Path]:
        yield base
        if base.suffix != self.suffix:
            yield base.with_name(base.name + self.suffix)
        yield base / f"{_PACKAGE_INDEX}{self.suffix}"


def _is_path_like(target: str) -> bool:
    return target.startswith(("./", "../", "/")) or target in {".", ".."}


def module_stem(path: Path) -> str:
    """Return the logical module name for a resolved file path."""
    if path.stem == _PACKAGE_INDEX:
        return path.parent.name
    return path.stem


def import_text(path: Path, from_dir: Path, suffix: str = ".py") -> str:
    """Return a relative ``require`` literal that reaches ``path`` from ``from_dir``."""
    target = path.parent if path.stem == _PACKAGE_INDEX else path
    if target.suffix == suffix:
        target = target.with_suffix("")
    relative = _relative_posix(target, from_dir)
    if not relative.startswith("."):
        relative = f"./{relative}"
    return relative


def _relative_posix(path: Path, start: Path) -> str:
    return Path(os.path.relpath(path, start)).as_posix()


__all__ = ["ModuleResolver", "import_text", "module_stem"]
