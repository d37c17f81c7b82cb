from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Located:
    line: int
    column: int


class Expr:
    loc: Located


@dataclass
class Literal(Expr):
    """String, boolean or numeric literal with its decoded value."""

    loc: Located
    value: object


@dataclass
class Name(Expr):
    loc: Located
    ident: str


@dataclass
class Attr(Expr):
    loc: Located
    value: Expr
    attr: str


@dataclass
class Call(Expr):
    loc: Located
    func: Expr
    args: List[Expr]


@dataclass
class Property:
    name: str
    value: Expr


@dataclass
class ObjectLiteral(Expr):
    loc: Located
    properties: List[Property]

    def get(self, name: str) -> Optional[Expr]:
        for prop in self.properties:
            if prop.name == name:
                return prop.value
        return None


@dataclass
class OtherExpr(Expr):
    """Anything the builder does not model; keeps the source text."""

    loc: Located
    text: str


class Stmt:
    loc: Located


@dataclass
class Decorator(Stmt):
    loc: Located
    func: Expr
    # None when the decorator is not called, e.g. `@Component`.
    args: Optional[List[Expr]] = None

    @property
    def name(self) -> Optional[str]:
        if isinstance(self.func, Name):
            return self.func.ident
        return None


@dataclass
class ImportSpec:
    imported: str
    local: str


@dataclass
class ImportDecl(Stmt):
    loc: Located
    module: str
    default: Optional[str] = None
    namespace: Optional[str] = None
    names: List[ImportSpec] = field(default_factory=list)


@dataclass
class ExportSpec:
    local: str
    exported: str


@dataclass
class ExportDecl(Stmt):
    loc: Located
    # None for `export { a, b }` without a `from` clause.
    module: Optional[str]
    names: List[ExportSpec] = field(default_factory=list)
    star: bool = False
    namespace: Optional[str] = None


@dataclass
class ClassMember:
    loc: Located
    name: str
    is_static: bool
    initializer: Optional[Expr]


@dataclass
class ClassDecl(Stmt):
    loc: Located
    name: str
    decorators: List[Decorator]
    members: List[ClassMember]
    modifiers: List[str] = field(default_factory=list)

    def static_member(self, name: str) -> Optional[ClassMember]:
        for member in self.members:
            if member.is_static and member.name == name:
                return member
        return None


@dataclass
class VarDecl:
    loc: Located
    name: str
    initializer: Optional[Expr]


@dataclass
class VarStmt(Stmt):
    loc: Located
    kind: str
    declarations: List[VarDecl]
    modifiers: List[str] = field(default_factory=list)

    @property
    def exported(self) -> bool:
        return "export" in self.modifiers


@dataclass
class MissingDecl(Stmt):
    """Decorators that are not followed by a class, e.g. ahead of `struct`."""

    loc: Located
    decorators: List[Decorator]


@dataclass
class ExprStmt(Stmt):
    loc: Located
    value: Expr
    modifiers: List[str] = field(default_factory=list)


@dataclass
class OtherStmt(Stmt):
    loc: Located
    text: str


@dataclass
class SourceFile:
    statements: List[Stmt]
    filename: Optional[str] = None
