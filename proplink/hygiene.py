"""Symbol hygiene and import inlining for individual units.

Each unit's tree is rewritten in place before it is concatenated with the
others:

* ``exports.<name>`` becomes ``<unit>_export_<name>``;
* names bound at module scope become ``<unit>_local_fn_<name>``,
  ``<unit>_local_class_<name>`` or ``<unit>_local_var_<name>``;
* ``require("./other").member`` becomes the producer's export identifier,
  ``require("./other")`` becomes a namespace holding its exports and
  external targets become their shared binding;
* a top-level ``alias = require(...)`` is dropped and every use of
  ``alias`` is replaced with the resolved value.

Units must be rewritten in dependency order so a producer's export table is
complete before a consumer resolves against it.
"""

from __future__ import annotations

import ast
import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .errors import MissingExportError, ReservedNameError, UnresolvedImportError
from .externals import ExternalRegistry
from .logging import get_logger
from .models import Unit
from .names import NameAllocator, sanitize_identifier
from .syntax import import_target, is_import_call

logger = get_logger("hygiene")

NAMESPACE_HELPER = "proplink_namespace"
ALIAS_PREFIX = "compiled_local_variable_reference"


# ----------------------------------------------------------------------
# Scope analysis


class _BindingCollector(ast.NodeVisitor):
    """Collects the names bound directly in one scope."""

    def __init__(self) -> None:
        self.bindings: Dict[str, List[str]] = {}
        self.globals: Set[str] = set()
        self.nonlocals: Set[str] = set()

    def collect(self, nodes: Iterable[ast.AST]) -> "_BindingCollector":
        for node in nodes:
            self.visit(node)
        return self

    def _bind(self, name: str, kind: str = "var") -> None:
        self.bindings.setdefault(name, []).append(kind)

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._bind(node.name, "fn")

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._bind(node.name, "fn")

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        self._bind(node.name, "class")

    def visit_Lambda(self, node: ast.Lambda) -> None:
        return

    def _visit_comprehension(self, node: ast.AST) -> None:
        # only assignment expressions leak out of a comprehension
        for child in ast.walk(node):
            if isinstance(child, ast.NamedExpr) and isinstance(child.target, ast.Name):
                self._bind(child.target.id)

    visit_ListComp = visit_SetComp = visit_GeneratorExp = visit_DictComp = _visit_comprehension

    def visit_Name(self, node: ast.Name) -> None:
        if isinstance(node.ctx, (ast.Store, ast.Del)):
            self._bind(node.id)

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self._bind(alias.asname or alias.name.split(".")[0])

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        for alias in node.names:
            if alias.name != "*":
                self._bind(alias.asname or alias.name)

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> None:
        if node.name:
            self._bind(node.name)
        self.generic_visit(node)

    def visit_MatchAs(self, node: ast.MatchAs) -> None:
        if node.name:
            self._bind(node.name)
        self.generic_visit(node)

    def visit_MatchStar(self, node: ast.MatchStar) -> None:
        if node.name:
            self._bind(node.name)

    def visit_MatchMapping(self, node: ast.MatchMapping) -> None:
        if node.rest:
            self._bind(node.rest)
        self.generic_visit(node)

    def visit_Global(self, node: ast.Global) -> None:
        self.globals.update(node.names)

    def visit_Nonlocal(self, node: ast.Nonlocal) -> None:
        self.nonlocals.update(node.names)


@dataclass
class _Scope:
    kind: str
    locals: Set[str] = field(default_factory=set)
    globals: Set[str] = field(default_factory=set)


def _function_scope(node: ast.FunctionDef | ast.AsyncFunctionDef | ast.Lambda) -> _Scope:
    args = node.args
    params = {arg.arg for arg in args.posonlyargs + args.args + args.kwonlyargs}
    if args.vararg:
        params.add(args.vararg.arg)
    if args.kwarg:
        params.add(args.kwarg.arg)
    body = [node.body] if isinstance(node, ast.Lambda) else node.body
    collector = _BindingCollector().collect(body)
    local = (params | set(collector.bindings) | collector.nonlocals) - collector.globals
    return _Scope("function", local, collector.globals)


def _class_scope(node: ast.ClassDef) -> _Scope:
    collector = _BindingCollector().collect(node.body)
    return _Scope("class", set(collector.bindings) - collector.globals, collector.globals)


class _ScopeRenamer(ast.NodeTransformer):
    """Renames references that resolve to module scope."""

    def __init__(self, mapping: Mapping[str, str]) -> None:
        self.mapping = mapping
        self._scopes: List[_Scope] = []

    def _resolves_to_module(self, name: str, *, skip_comprehensions: bool = False) -> bool:
        for depth, scope in enumerate(reversed(self._scopes)):
            if scope.kind == "class" and depth > 0:
                continue
            if skip_comprehensions and scope.kind == "comprehension":
                continue
            if name in scope.globals:
                return True
            if name in scope.locals:
                return False
        return True

    def _rename(self, name: str, *, skip_comprehensions: bool = False) -> str:
        if name in self.mapping and self._resolves_to_module(
            name, skip_comprehensions=skip_comprehensions
        ):
            return self.mapping[name]
        return name

    def _visit_body(self, body: List[ast.stmt]) -> List[ast.stmt]:
        result: List[ast.stmt] = []
        for statement in body:
            new = self.visit(statement)
            if new is None:
                continue
            if isinstance(new, list):
                result.extend(new)
            else:
                result.append(new)
        return result

    def _visit_outer_arguments(self, args: ast.arguments) -> None:
        # defaults and annotations are evaluated in the enclosing scope
        for default in args.defaults:
            self.visit(default)
        for default in args.kw_defaults:
            if default is not None:
                self.visit(default)
        for arg in args.posonlyargs + args.args + args.kwonlyargs + [args.vararg, args.kwarg]:
            if arg is not None and arg.annotation is not None:
                self.visit(arg.annotation)

    def visit_Name(self, node: ast.Name) -> ast.Name:
        node.id = self._rename(node.id)
        return node

    def visit_Global(self, node: ast.Global) -> ast.Global:
        node.names = [self.mapping.get(name, name) for name in node.names]
        return node

    def visit_FunctionDef(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> ast.AST:
        node.name = self._rename(node.name)
        for decorator in node.decorator_list:
            self.visit(decorator)
        self._visit_outer_arguments(node.args)
        if node.returns is not None:
            self.visit(node.returns)
        self._scopes.append(_function_scope(node))
        node.body = self._visit_body(node.body)
        self._scopes.pop()
        return node

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_Lambda(self, node: ast.Lambda) -> ast.Lambda:
        self._visit_outer_arguments(node.args)
        self._scopes.append(_function_scope(node))
        node.body = self.visit(node.body)
        self._scopes.pop()
        return node

    def visit_ClassDef(self, node: ast.ClassDef) -> ast.ClassDef:
        node.name = self._rename(node.name)
        for expr in [*node.decorator_list, *node.bases]:
            self.visit(expr)
        for keyword in node.keywords:
            self.visit(keyword.value)
        self._scopes.append(_class_scope(node))
        node.body = self._visit_body(node.body)
        self._scopes.pop()
        return node

    def _visit_comprehension(self, node: ast.AST) -> ast.AST:
        generators: List[ast.comprehension] = node.generators  # type: ignore[attr-defined]
        generators[0].iter = self.visit(generators[0].iter)
        targets = {
            child.id
            for generator in generators
            for child in ast.walk(generator.target)
            if isinstance(child, ast.Name)
        }
        self._scopes.append(_Scope("comprehension", targets))
        for index, generator in enumerate(generators):
            if index:
                generator.iter = self.visit(generator.iter)
            generator.target = self.visit(generator.target)
            generator.ifs = [self.visit(condition) for condition in generator.ifs]
        for attr in ("elt", "key", "value"):
            child = getattr(node, attr, None)
            if child is not None:
                setattr(node, attr, self.visit(child))
        self._scopes.pop()
        return node

    visit_ListComp = visit_SetComp = visit_GeneratorExp = visit_DictComp = _visit_comprehension

    def visit_NamedExpr(self, node: ast.NamedExpr) -> ast.NamedExpr:
        node.target.id = self._rename(node.target.id, skip_comprehensions=True)
        node.value = self.visit(node.value)
        return node

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> ast.ExceptHandler:
        if node.name:
            node.name = self._rename(node.name)
        self.generic_visit(node)
        return node

    def visit_MatchAs(self, node: ast.MatchAs) -> ast.MatchAs:
        if node.name:
            node.name = self._rename(node.name)
        self.generic_visit(node)
        return node

    def visit_MatchStar(self, node: ast.MatchStar) -> ast.MatchStar:
        if node.name:
            node.name = self._rename(node.name)
        return node

    def visit_MatchMapping(self, node: ast.MatchMapping) -> ast.MatchMapping:
        if node.rest:
            node.rest = self._rename(node.rest)
        self.generic_visit(node)
        return node

    def visit_Import(self, node: ast.Import) -> ast.stmt | List[ast.stmt]:
        kept: List[ast.alias] = []
        extra: List[ast.stmt] = []
        for alias in node.names:
            bound = alias.asname or alias.name.split(".")[0]
            renamed = self._rename(bound)
            if renamed != bound and "." in alias.name and not alias.asname:
                # ``import a.b`` binds ``a``; __import__ keeps that behaviour
                extra.append(
                    ast.copy_location(
                        ast.Assign(
                            targets=[ast.Name(id=renamed, ctx=ast.Store())],
                            value=ast.Call(
                                func=ast.Name(id="__import__", ctx=ast.Load()),
                                args=[ast.Constant(value=alias.name)],
                                keywords=[],
                            ),
                        ),
                        node,
                    )
                )
                continue
            if renamed != bound:
                alias.asname = renamed
            kept.append(alias)
        result: List[ast.stmt] = []
        if kept:
            node.names = kept
            result.append(node)
        result.extend(extra)
        return result[0] if len(result) == 1 else result

    def visit_ImportFrom(self, node: ast.ImportFrom) -> ast.ImportFrom:
        for alias in node.names:
            if alias.name == "*":
                continue
            bound = alias.asname or alias.name
            renamed = self._rename(bound)
            if renamed != bound:
                alias.asname = renamed
        return node


def _bound_names(node: ast.AST) -> List[str]:
    """Names that ``node`` itself binds in whatever scope contains it."""
    if isinstance(node, ast.Name) and not isinstance(node.ctx, ast.Load):
        return [node.id]
    if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
        return [node.name]
    if isinstance(node, ast.arg):
        return [node.arg]
    if isinstance(node, ast.alias):
        return [node.asname or node.name.split(".")[0]]
    if isinstance(node, (ast.Global, ast.Nonlocal)):
        return list(node.names)
    if isinstance(node, (ast.ExceptHandler, ast.MatchAs, ast.MatchStar)) and node.name:
        return [node.name]
    return []


# ----------------------------------------------------------------------
# Import and export rewriting


def _has_docstring(body: List[ast.stmt]) -> bool:
    return bool(
        body
        and isinstance(body[0], ast.Expr)
        and isinstance(body[0].value, ast.Constant)
        and isinstance(body[0].value.value, str)
    )


class _LinkTransformer(ast.NodeTransformer):
    """Replaces export writes and import expressions with merged names."""

    def __init__(self, rewrite: "_UnitRewrite") -> None:
        self.rewrite = rewrite
        self._writes: List[Set[str]] = []

    def _visit_scope(self, node: ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef) -> ast.AST:
        self._writes.append(set())
        self.generic_visit(node)
        written = self._writes.pop()
        if written:
            # export writes inside a def or class body must reach module scope
            index = 1 if _has_docstring(node.body) else 0
            node.body.insert(index, ast.Global(names=sorted(written)))
        return node

    visit_FunctionDef = visit_AsyncFunctionDef = visit_ClassDef = _visit_scope

    def visit_Attribute(self, node: ast.Attribute) -> ast.AST:
        rewrite = self.rewrite
        if isinstance(node.value, ast.Name) and node.value.id == rewrite.exports_name:
            identifier = rewrite.export_identifier(node.attr)
            if self._writes and isinstance(node.ctx, (ast.Store, ast.Del)):
                self._writes[-1].add(identifier)
            return ast.copy_location(ast.Name(id=identifier, ctx=node.ctx), node)
        if rewrite.is_literal_import(node.value):
            return ast.copy_location(rewrite.resolve(node.value, node.attr, node.ctx), node)
        self.generic_visit(node)
        return node

    def visit_Call(self, node: ast.Call) -> ast.AST:
        if self.rewrite.is_literal_import(node):
            return ast.copy_location(self.rewrite.resolve(node), node)
        self.generic_visit(node)
        return node


class _Substituter(ast.NodeTransformer):
    """Inlines alias values and replaces bare references to the exports object."""

    def __init__(self, rewrite: "_UnitRewrite", values: Mapping[str, ast.expr]) -> None:
        self.rewrite = rewrite
        self.values = values

    def visit_Name(self, node: ast.Name) -> ast.AST:
        value = self.values.get(node.id)
        if value is not None:
            return ast.copy_location(copy.deepcopy(value), node)
        if node.id == self.rewrite.exports_name and isinstance(node.ctx, ast.Load):
            return ast.copy_location(self.rewrite.namespace_object(self.rewrite.unit.exports), node)
        return node


# ----------------------------------------------------------------------
# Pass


class HygienePass:
    """Rewrites units so they can share one module scope.

    One instance serves a whole link run; ``uses_namespace``,
    ``residual_imports`` and ``future_features`` tell the assembler which
    prologue the merged program needs.
    """

    def __init__(
        self,
        units: Mapping[Path, Unit],
        externals: ExternalRegistry,
        allocator: NameAllocator,
        *,
        require_name: str = "require",
        exports_name: str = "exports",
    ) -> None:
        self.units = units
        self.externals = externals
        self.allocator = allocator
        self.require_name = require_name
        self.exports_name = exports_name
        self.uses_namespace = False
        self.residual_imports = 0
        self.future_features: List[str] = []
        self._namespaces: Dict[str, Path] = {}

    def rewrite(self, unit: Unit) -> None:
        """Rewrite ``unit.tree`` in place and record its export table."""
        namespace = self._claim_namespace(unit)
        _UnitRewrite(self, unit, namespace).run()
        self.residual_imports += sum(
            1 for node in ast.walk(unit.tree) if is_import_call(node, self.require_name)
        )
        logger.debug(
            "Rewrote %s as %s_* with exports: %s",
            unit.name,
            namespace,
            ", ".join(sorted(unit.exports)) or "(none)",
        )

    def _claim_namespace(self, unit: Unit) -> str:
        namespace = sanitize_identifier(unit.name)
        owner = self._namespaces.get(namespace)
        if owner is not None and owner != unit.path:
            namespace = self.allocator.fresh(namespace)
        self._namespaces[namespace] = unit.path
        return namespace


class _UnitRewrite:
    """State for rewriting a single unit."""

    def __init__(self, hygiene: HygienePass, unit: Unit, namespace: str) -> None:
        self.hygiene = hygiene
        self.unit = unit
        self.namespace = namespace
        self.exports_name = hygiene.exports_name
        self._sites: Dict[Tuple[int, int], Path] = {
            (site.lineno, site.col_offset): site.path
            for site in unit.imports
            if site.path is not None
        }

    def run(self) -> None:
        tree = self.unit.tree
        self._extract_future_imports(tree)
        self._reject_reserved_bindings(tree)
        module = _BindingCollector().collect(tree.body)
        declared_global = {
            name
            for node in ast.walk(tree)
            if isinstance(node, ast.Global)
            for name in node.names
        }

        aliases = self._extract_aliases(tree, module.bindings, declared_global)

        mapping: Dict[str, str] = {}
        kinds = {name: entries[0] for name, entries in module.bindings.items()}
        for name in declared_global:
            kinds.setdefault(name, "var")
        for name, kind in kinds.items():
            mapping[name] = f"{self.namespace}_local_{kind}_{name}"
        values: Dict[str, ast.expr] = {}
        for name, value in aliases.items():
            temporary = self.hygiene.allocator.fresh(ALIAS_PREFIX)
            mapping[name] = temporary
            values[temporary] = value
            logger.debug("Inlining %s.%s via %s", self.unit.name, name, temporary)

        tree = _ScopeRenamer(mapping).visit(tree)
        tree = _LinkTransformer(self).visit(tree)
        tree = _Substituter(self, values).visit(tree)
        self.unit.tree = tree

    def _extract_future_imports(self, tree: ast.Module) -> None:
        body: List[ast.stmt] = []
        for statement in tree.body:
            if isinstance(statement, ast.ImportFrom) and statement.module == "__future__":
                for alias in statement.names:
                    if alias.name not in self.hygiene.future_features:
                        self.hygiene.future_features.append(alias.name)
                continue
            body.append(statement)
        tree.body = body

    def _reject_reserved_bindings(self, tree: ast.Module) -> None:
        reserved = (self.hygiene.require_name, self.exports_name)
        for node in ast.walk(tree):
            for name in _bound_names(node):
                if name in reserved:
                    raise ReservedNameError(name, self.unit.path, getattr(node, "lineno", None))

    def _extract_aliases(
        self,
        tree: ast.Module,
        bindings: Mapping[str, List[str]],
        declared_global: Set[str],
    ) -> Dict[str, ast.expr]:
        aliases: Dict[str, ast.expr] = {}
        body: List[ast.stmt] = []
        for statement in tree.body:
            if isinstance(statement, ast.Assign):
                name = self._alias_name(statement, bindings, declared_global)
                if name is not None:
                    aliases[name] = _LinkTransformer(self).visit(statement.value)
                    continue
            body.append(statement)
        tree.body = body
        return aliases

    def _alias_name(
        self,
        statement: ast.Assign,
        bindings: Mapping[str, List[str]],
        declared_global: Set[str],
    ) -> Optional[str]:
        if len(statement.targets) != 1:
            return None
        target = statement.targets[0]
        if not isinstance(target, ast.Name):
            return None
        value = statement.value
        if isinstance(value, ast.Attribute):
            value = value.value
        if not self.is_literal_import(value):
            return None
        if len(bindings.get(target.id, [])) != 1 or target.id in declared_global:
            return None
        return target.id

    # -- helpers used by the transformers

    def is_literal_import(self, node: ast.AST) -> bool:
        return import_target(node, self.hygiene.require_name) is not None

    def export_identifier(self, name: str) -> str:
        identifier = self.unit.exports.get(name)
        if identifier is None:
            identifier = f"{self.namespace}_export_{name}"
            self.unit.exports[name] = identifier
        return identifier

    def namespace_object(self, exports: Mapping[str, str]) -> ast.expr:
        self.hygiene.uses_namespace = True
        return ast.Call(
            func=ast.Name(id=NAMESPACE_HELPER, ctx=ast.Load()),
            args=[],
            keywords=[
                ast.keyword(arg=name, value=ast.Name(id=identifier, ctx=ast.Load()))
                for name, identifier in exports.items()
            ],
        )

    def resolve(
        self,
        call: ast.AST,
        member: Optional[str] = None,
        ctx: Optional[ast.expr_context] = None,
    ) -> ast.expr:
        """Return the merged expression for ``require(...)`` or ``require(...).member``."""
        ctx = ctx or ast.Load()
        path = self._sites.get((call.lineno, call.col_offset))  # type: ignore[attr-defined]
        if path is None:
            target = import_target(call, self.hygiene.require_name) or ""
            raise UnresolvedImportError(target, self.unit.path, getattr(call, "lineno", None))

        producer = self.hygiene.units.get(path)
        if producer is not None:
            if member is None:
                return self.namespace_object(producer.exports)
            identifier = producer.exports.get(member)
            if identifier is None:
                raise MissingExportError(member, producer.name, self.unit.name)
            return ast.Name(id=identifier, ctx=ctx)

        binding = self.hygiene.externals.binding_for(path)
        value = ast.Name(id=binding.identifier, ctx=ast.Load())
        if member is None:
            return value
        return ast.Attribute(value=value, attr=member, ctx=ctx)


__all__ = ["ALIAS_PREFIX", "HygienePass", "NAMESPACE_HELPER"]
