"""Single forward pass over one source file.

The visitor finds route-decorated declarations and records import bindings
and re-export redirects on the way. The same class answers a
:class:`ScanQuery` when the constant resolver scans another file for a
constant.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional

import structlog

from .bindings import BindingTable
from .config import ScanConfig
from .parser.ast import (
    Attr,
    ClassDecl,
    Decorator,
    ExportDecl,
    Expr,
    ExprStmt,
    ImportDecl,
    Literal,
    MissingDecl,
    Name,
    ObjectLiteral,
    OtherStmt,
    SourceFile,
    Stmt,
    VarStmt,
)
from .types import DEFAULT_PARAM_NAME, AnalyzeResult, LiteralValue, ScanQuery

if TYPE_CHECKING:
    from .constants import ConstantResolver

log = structlog.get_logger("routescan.visitor")


class State(enum.Enum):
    IDLE = "idle"
    # A route decorator was seen outside a class; waiting for `struct Name`.
    AWAITING_NAME = "awaiting_name"
    IN_DECLARATION = "in_declaration"


@dataclass
class _Pending:
    source_file_path: str
    component_name: str = ""
    route_name: str = ""
    requires_login: bool = False
    has_route_param: bool = False
    route_param_name: str = DEFAULT_PARAM_NAME

    def freeze(self) -> AnalyzeResult:
        return AnalyzeResult(
            route_name=self.route_name,
            component_name=self.component_name,
            source_file_path=self.source_file_path,
            requires_login=self.requires_login,
            has_route_param=self.has_route_param,
            route_param_name=self.route_param_name,
        )


def literal_value(expr: Optional[Expr]) -> Optional[LiteralValue]:
    if isinstance(expr, Literal) and isinstance(expr.value, (str, bool)):
        return expr.value
    return None


class DeclarationVisitor:
    def __init__(
        self,
        path: str | Path,
        config: Optional[ScanConfig] = None,
        resolver: Optional["ConstantResolver"] = None,
        query: Optional[ScanQuery] = None,
        resolving: Optional[FrozenSet[Path]] = None,
    ) -> None:
        self.path = Path(path)
        self.config = config or ScanConfig()
        self.resolver = resolver
        self.query = query
        # Files on the current resolution path, this one included.
        self.resolving = resolving if resolving is not None else frozenset({self.path.resolve()})
        self.bindings = BindingTable()
        self.results: List[AnalyzeResult] = []
        self.state = State.IDLE
        self._pending: Optional[_Pending] = None
        self._marker_seen = False
        self._variables: Dict[str, Optional[Expr]] = {}
        self._classes: Dict[str, ClassDecl] = {}
        self._dispatch = {
            ImportDecl: self._visit_import,
            ExportDecl: self._visit_export,
            ClassDecl: self._visit_class,
            VarStmt: self._visit_var,
            ExprStmt: self._visit_expr,
            MissingDecl: self._visit_missing,
            OtherStmt: self._visit_other,
        }

    def visit(self, source_file: SourceFile) -> List[AnalyzeResult]:
        for node in source_file.statements:
            if self.query is not None and self.query.done:
                break
            try:
                self._visit(node)
            except Exception:
                log.warning(
                    "visitor.node_failed",
                    path=str(self.path),
                    line=node.loc.line,
                    node=type(node).__name__,
                    exc_info=True,
                )
        return list(self.results)

    def _visit(self, node: Stmt) -> None:
        handler = self._dispatch.get(type(node))
        if handler is None:
            raise NotImplementedError(f"unsupported node {type(node).__name__}")
        handler(node)

    def _visit_import(self, node: ImportDecl) -> None:
        self.bindings.record_import_decl(node)

    def _visit_export(self, node: ExportDecl) -> None:
        self.bindings.record_export_decl(node)
        if self.query is not None and self.query.indexed:
            self._answer_index_query()

    def _visit_class(self, node: ClassDecl) -> None:
        self._classes.setdefault(node.name, node)
        if self.query is not None:
            self._answer_class_query(node)
            return
        self.state = State.IN_DECLARATION
        self._pending = _Pending(source_file_path=str(self.path), component_name=node.name)
        try:
            for decorator in node.decorators:
                self._visit_decorator(decorator)
        finally:
            self._reset()

    def _visit_var(self, node: VarStmt) -> None:
        for decl in node.declarations:
            self._variables.setdefault(decl.name, decl.initializer)
        if self.query is not None:
            self._answer_variable_query(node)

    def _visit_expr(self, node: ExprStmt) -> None:
        if isinstance(node.value, Name):
            self._visit_identifier(node.value)

    def _visit_missing(self, node: MissingDecl) -> None:
        for decorator in node.decorators:
            self._visit_decorator(decorator)

    def _visit_other(self, node: OtherStmt) -> None:
        pass

    def _visit_decorator(self, node: Decorator) -> None:
        if self.query is not None or node.name not in self.config.annotation.decorators:
            return
        if self.state is State.AWAITING_NAME:
            self._trace("visitor.decorator_ignored", line=node.loc.line, reason="awaiting declaration name")
            return
        if not node.args:
            return
        if self.state is State.IN_DECLARATION:
            pending = self._pending
        else:
            pending = _Pending(source_file_path=str(self.path))
        if not self._apply_arguments(pending, node.args[0]):
            self._trace("visitor.decorator_unresolved", line=node.loc.line)
            return
        if self.state is State.IN_DECLARATION:
            self._record(pending)
            self._reset()
        else:
            self._pending = pending
            self._marker_seen = False
            self.state = State.AWAITING_NAME

    def _visit_identifier(self, node: Name) -> None:
        if self.state is not State.AWAITING_NAME:
            return
        if node.ident in self.config.view_keywords:
            self._marker_seen = True
            return
        if not self._marker_seen:
            return
        self._pending.component_name = node.ident
        self._record(self._pending)
        self._reset()

    def _apply_arguments(self, pending: _Pending, argument: Expr) -> bool:
        if not isinstance(argument, ObjectLiteral):
            return False
        keys = self.config.annotation
        route_name = self._evaluate(argument.get(keys.name))
        if not isinstance(route_name, str) or not route_name:
            return False
        pending.route_name = route_name
        login = self._evaluate(argument.get(keys.login))
        if isinstance(login, bool):
            pending.requires_login = login
        has_param = self._evaluate(argument.get(keys.has_param))
        if isinstance(has_param, bool):
            pending.has_route_param = has_param
        param_name = self._evaluate(argument.get(keys.param_name))
        if isinstance(param_name, str) and param_name:
            pending.route_param_name = param_name
        return True

    def _evaluate(self, expr: Optional[Expr]) -> Optional[LiteralValue]:
        if expr is None:
            return None
        if isinstance(expr, Literal):
            return literal_value(expr)
        if not isinstance(expr, (Name, Attr)):
            return None
        value = self._local_constant(expr)
        if value is not None:
            return value
        if self.resolver is None:
            return None
        return self.resolver.resolve(self.path, self.bindings, expr, self.resolving)

    def _local_constant(self, expr: Name | Attr) -> Optional[LiteralValue]:
        """Constants declared earlier in the same file."""
        if isinstance(expr, Name):
            return literal_value(self._variables.get(expr.ident))
        if not isinstance(expr.value, Name):
            return None
        owner = expr.value.ident
        cls = self._classes.get(owner)
        if cls is not None:
            member = cls.static_member(expr.attr)
            return literal_value(member.initializer) if member is not None else None
        initializer = self._variables.get(owner)
        if isinstance(initializer, ObjectLiteral):
            return literal_value(initializer.get(expr.attr))
        return None

    def _answer_class_query(self, node: ClassDecl) -> None:
        query = self.query
        if node.name != query.class_name or query.attr_name is None:
            return
        member = node.static_member(query.attr_name)
        if member is not None:
            self._found(literal_value(member.initializer))

    def _answer_variable_query(self, node: VarStmt) -> None:
        query = self.query
        for decl in node.declarations:
            value = None
            if query.attr_name is None:
                if decl.name == query.class_name:
                    value = literal_value(decl.initializer)
            elif decl.name == query.attr_name:
                value = literal_value(decl.initializer)
            elif decl.name == query.class_name and isinstance(decl.initializer, ObjectLiteral):
                value = literal_value(decl.initializer.get(query.attr_name))
            if value is not None:
                self._found(value)
                return

    def _answer_index_query(self) -> None:
        redirect = self.bindings.lookup_export_redirect(self.query.class_name)
        if redirect is None or self.resolver is None:
            return
        target = self.resolver.modules.resolve(self.path, redirect.module)
        if target is None:
            return
        self.query.resolved_path = target.path

    def _found(self, value: Optional[LiteralValue]) -> None:
        if value is None:
            return
        self.query.resolved_value = value

    def _record(self, pending: _Pending) -> None:
        result = pending.freeze()
        self.results.append(result)
        self._trace("visitor.route_found", route=result.route_name, component=result.component_name)

    def _reset(self) -> None:
        self.state = State.IDLE
        self._pending = None
        self._marker_seen = False

    def _trace(self, event: str, **fields) -> None:
        if self.config.verbose:
            log.debug(event, path=str(self.path), **fields)
