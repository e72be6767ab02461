"""Registry of dependencies that live outside the unit set."""

from __future__ import annotations

import ast
from pathlib import Path
from typing import Dict, List

from .logging import get_logger
from .models import ExternalBinding
from .names import NameAllocator, sanitize_identifier
from .resolver import import_text, module_stem

logger = get_logger("externals")

_PREFIX = "external_dependency"


class ExternalRegistry:
    """Allocates one top-level binding per external path.

    The first lookup of a path creates ``external_dependency_<stem>_<n>``;
    later lookups return the same binding.
    """

    def __init__(
        self,
        output_dir: Path,
        allocator: NameAllocator,
        *,
        require_name: str = "require",
        suffix: str = ".py",
    ) -> None:
        self.output_dir = output_dir
        self.require_name = require_name
        self.suffix = suffix
        self._allocator = allocator
        self._bindings: Dict[Path, ExternalBinding] = {}
        self._counter = 0

    def __contains__(self, path: object) -> bool:
        return path in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def binding_for(self, path: Path) -> ExternalBinding:
        """Return the binding for ``path``, creating it on first use."""
        binding = self._bindings.get(path)
        if binding is not None:
            return binding

        stem = sanitize_identifier(module_stem(path)).strip("_") or "module"
        identifier = f"{_PREFIX}_{stem}_{self._counter}"
        self._counter += 1
        self._allocator.reserve(identifier)

        binding = ExternalBinding(
            path=path,
            identifier=identifier,
            import_text=import_text(path, self.output_dir, self.suffix),
        )
        self._bindings[path] = binding
        logger.debug("Bound external %s as %s", binding.import_text, identifier)
        return binding

    @property
    def bindings(self) -> List[ExternalBinding]:
        """Bindings in first-seen order."""
        return list(self._bindings.values())

    def statements(self) -> List[ast.stmt]:
        """Return ``<identifier> = require('<relative path>')`` for each binding."""
        return [
            ast.Assign(
                targets=[ast.Name(id=binding.identifier, ctx=ast.Store())],
                value=ast.Call(
                    func=ast.Name(id=self.require_name, ctx=ast.Load()),
                    args=[ast.Constant(value=binding.import_text)],
                    keywords=[],
                ),
            )
            for binding in self._bindings.values()
        ]


__all__ = ["ExternalRegistry"]
