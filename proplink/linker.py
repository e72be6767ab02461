"""Pipeline orchestration for link runs."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Optional

from .assembler import Assembler, render_header
from .config import LinkConfig
from .externals import ExternalRegistry
from .graph import build_graph
from .hygiene import HygienePass
from .logging import get_logger
from .models import LinkResult
from .names import NameAllocator
from .ordering import UnitOrder, topological_order
from .resolver import ModuleResolver
from .scanner import UnitScanner
from .syntax import print_tree


class Linker:
    """Coordinates load, graph, order, rewrite, assemble and write."""

    def __init__(
        self,
        config: LinkConfig,
        *,
        scanner: UnitScanner | None = None,
        resolver: ModuleResolver | None = None,
        assembler: Assembler | None = None,
        today: Optional[date] = None,
    ) -> None:
        self.config = config
        self.scanner = scanner or UnitScanner(
            suffix=config.unit_suffix,
            exclude=config.exclude_paths,
            require_name=config.require_name,
        )
        self.resolver = resolver or ModuleResolver(config.search_paths, suffix=config.unit_suffix)
        self.assembler = assembler or Assembler(
            registry_export=config.registry_export,
            install_name=config.install_name,
            require_name=config.require_name,
            vendor_prefixes=config.vendor_prefixes,
        )
        self.today = today
        self.logger = get_logger("linker")

    def order(self) -> UnitOrder:
        """Load the units and return them in dependency order without rewriting."""
        units = [
            unit
            for unit in self.scanner.scan(self.config.units_dir)
            if unit.path != self.config.output
        ]
        self.logger.debug("Loaded %d units from %s", len(units), self.config.units_dir)
        graph = build_graph(units, self.resolver)
        return topological_order(graph)

    def link(self) -> LinkResult:
        """Produce the merged program in memory."""
        config = self.config
        self.logger.info("Linking units in %s", config.units_dir)
        order = self.order()

        allocator = NameAllocator()
        externals = ExternalRegistry(
            config.output.parent,
            allocator,
            require_name=config.require_name,
            suffix=config.unit_suffix,
        )
        for path in order.externals:
            externals.binding_for(path)

        units = {unit.path: unit for unit in order.units}
        hygiene = HygienePass(
            units,
            externals,
            allocator,
            require_name=config.require_name,
            exports_name=config.exports_name,
        )
        for unit in order.units:
            hygiene.rewrite(unit)
        if hygiene.residual_imports:
            self.logger.debug(
                "%d computed import(s) left for the runtime loader", hygiene.residual_imports
            )

        program = self.assembler.assemble(
            order.units,
            externals,
            uses_namespace=hygiene.uses_namespace,
            needs_require=hygiene.residual_imports > 0,
            future_features=hygiene.future_features,
        )
        body = print_tree(program)
        header = render_header(config.header, today=self.today, units=order.units)
        self.logger.debug(
            "Assembled %d units with %d external bindings", len(order.units), len(externals)
        )
        return LinkResult(
            order=order.units,
            externals=externals.bindings,
            registry=self.assembler.registry(order.units),
            program=program,
            body=body,
            header=header,
        )

    def write(self, result: LinkResult, output: Path | None = None) -> Path:
        """Write a link result to ``output`` (defaults to the configured path)."""
        target = Path(output) if output is not None else self.config.output
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8") as handle:
            handle.write(result.text)
        self.logger.info("Wrote %s", target)
        return target

    def build(self, output: Path | None = None) -> Path:
        """Link and write in one step; nothing is written if linking fails."""
        return self.write(self.link(), output)

    def check(self, output: Path | None = None) -> bool:
        """Return True when the existing output matches a fresh link, header aside."""
        target = Path(output) if output is not None else self.config.output
        if not target.exists():
            self.logger.info("%s does not exist", target)
            return False
        result = self.link()
        current = strip_header(target.read_text(encoding="utf-8"))
        if current != result.body:
            self.logger.info("%s is out of date", target)
            return False
        return True


def strip_header(text: str) -> str:
    """Drop the leading comment block from generated output."""
    lines = text.splitlines(keepends=True)
    index = 0
    while index < len(lines) and (not lines[index].strip() or lines[index].lstrip().startswith("#")):
        index += 1
    return "".join(lines[index:])


__all__ = ["Linker", "strip_header"]
