"""Assembly of rewritten units into one merged program."""

from __future__ import annotations

import ast
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, TemplateNotFound

from .config import ConfigError, HeaderConfig
from .externals import ExternalRegistry
from .hygiene import NAMESPACE_HELPER
from .logging import get_logger
from .models import Unit
from .names import registry_keys

logger = get_logger("assembler")

DEFAULT_HEADER_TEMPLATE = """\
# autogenerated - {{ date.month }}/{{ date.day }}/{{ date.year }}
{% if banner %}

{% for line in banner %}
# {{ line }}
{% endfor %}
{% endif %}

"""

_BIND_REQUIRE = "proplink_bind_require"


class Assembler:
    """Concatenates units and appends the registry installer."""

    def __init__(
        self,
        *,
        registry_export: str = "definition",
        install_name: str = "install",
        require_name: str = "require",
        vendor_prefixes: Sequence[str] = ("webkit",),
    ) -> None:
        self.registry_export = registry_export
        self.install_name = install_name
        self.require_name = require_name
        self.vendor_prefixes = list(vendor_prefixes)

    def registry(self, units: Iterable[Unit]) -> Dict[str, str]:
        """Map every registry key to the merged identifier it publishes."""
        entries: Dict[str, str] = {}
        for unit in units:
            identifier = unit.exports.get(self.registry_export)
            if identifier is None:
                logger.debug("%s has no %s export; not registered", unit.name, self.registry_export)
                continue
            for key in registry_keys(unit.name, self.vendor_prefixes):
                entries[key] = identifier
        return entries

    def assemble(
        self,
        units: Sequence[Unit],
        externals: ExternalRegistry,
        *,
        uses_namespace: bool = False,
        needs_require: bool = False,
        future_features: Sequence[str] = (),
    ) -> ast.Module:
        """Build the merged module from units already in dependency order.

        ``__future__`` imports lifted out of the units open the module. Each
        unit's export identifiers are bound to None ahead of its statements
        so exports only assigned inside functions still exist for ``install``.
        """
        body: List[ast.stmt] = []
        if future_features:
            body.append(
                ast.ImportFrom(
                    module="__future__",
                    names=[ast.alias(name=feature) for feature in future_features],
                    level=0,
                )
            )
        if uses_namespace:
            body.append(
                ast.ImportFrom(
                    module="types",
                    names=[ast.alias(name="SimpleNamespace", asname=NAMESPACE_HELPER)],
                    level=0,
                )
            )
        if needs_require or len(externals):
            body.extend(self._require_prologue())
        body.extend(externals.statements())
        for unit in units:
            if unit.exports:
                body.append(_declare_exports(unit))
            body.extend(unit.tree.body)
        body.append(self._installer(self.registry(units)))
        body.append(
            ast.Assign(
                targets=[ast.Name(id="__all__", ctx=ast.Store())],
                value=ast.List(elts=[ast.Constant(value=self.install_name)], ctx=ast.Load()),
            )
        )
        program = ast.Module(body=body, type_ignores=[])
        return ast.fix_missing_locations(program)

    def _require_prologue(self) -> List[ast.stmt]:
        return [
            ast.ImportFrom(
                module="proplink.runtime",
                names=[ast.alias(name="bind_require", asname=_BIND_REQUIRE)],
                level=0,
            ),
            ast.Assign(
                targets=[ast.Name(id=self.require_name, ctx=ast.Store())],
                value=ast.Call(
                    func=ast.Name(id=_BIND_REQUIRE, ctx=ast.Load()),
                    args=[ast.Name(id="__file__", ctx=ast.Load())],
                    keywords=[],
                ),
            ),
        ]

    def _installer(self, entries: Dict[str, str]) -> ast.FunctionDef:
        registry = ast.Dict(
            keys=[ast.Constant(value=key) for key in entries],
            values=[ast.Name(id=identifier, ctx=ast.Load()) for identifier in entries.values()],
        )
        loop = ast.For(
            target=ast.Tuple(
                elts=[
                    ast.Name(id="key", ctx=ast.Store()),
                    ast.Name(id="definition", ctx=ast.Store()),
                ],
                ctx=ast.Store(),
            ),
            iter=ast.Call(
                func=ast.Attribute(value=registry, attr="items", ctx=ast.Load()),
                args=[],
                keywords=[],
            ),
            body=[
                ast.Expr(
                    value=ast.Call(
                        func=ast.Name(id="setattr", ctx=ast.Load()),
                        args=[
                            ast.Name(id="target", ctx=ast.Load()),
                            ast.Name(id="key", ctx=ast.Load()),
                            ast.Name(id="definition", ctx=ast.Load()),
                        ],
                        keywords=[],
                    )
                )
            ],
            orelse=[],
        )
        return ast.FunctionDef(
            name=self.install_name,
            args=ast.arguments(
                posonlyargs=[],
                args=[ast.arg(arg="target")],
                vararg=None,
                kwonlyargs=[],
                kw_defaults=[],
                kwarg=None,
                defaults=[],
            ),
            body=[loop],
            decorator_list=[],
            returns=None,
            type_params=[],
        )


def _declare_exports(unit: Unit) -> ast.Assign:
    return ast.Assign(
        targets=[ast.Name(id=identifier, ctx=ast.Store()) for identifier in unit.exports.values()],
        value=ast.Constant(value=None),
    )


def render_header(
    header: HeaderConfig,
    *,
    today: Optional[date] = None,
    units: Sequence[Unit] = (),
) -> str:
    """Render the comment block written above the merged program."""
    if header.template is not None:
        template_path = Path(header.template)
        env = Environment(
            loader=FileSystemLoader(str(template_path.parent)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        try:
            template = env.get_template(template_path.name)
        except TemplateNotFound as exc:
            raise ConfigError(f"Header template not found: {template_path}") from exc
    else:
        env = Environment(
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        template = env.from_string(DEFAULT_HEADER_TEMPLATE)

    rendered = template.render(
        date=today or date.today(),
        banner=header.banner,
        units=[unit.name for unit in units],
    )
    if rendered and not rendered.endswith("\n"):
        rendered += "\n"
    return rendered


__all__ = ["Assembler", "DEFAULT_HEADER_TEMPLATE", "render_header"]
