from __future__ import annotations

import ast
from pathlib import Path
from typing import List, Optional

import structlog
from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedInput, UnexpectedToken

from ..errors import SourceParseError, SourceReadError
from .ast import (
    Attr,
    Call,
    ClassDecl,
    ClassMember,
    Decorator,
    ExportDecl,
    ExportSpec,
    Expr,
    ExprStmt,
    ImportDecl,
    ImportSpec,
    Literal,
    Located,
    MissingDecl,
    Name,
    ObjectLiteral,
    OtherExpr,
    OtherStmt,
    Property,
    SourceFile,
    Stmt,
    VarDecl,
    VarStmt,
)

log = structlog.get_logger("routescan.parser")

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_KEYWORDS = {
    "IMPORT",
    "EXPORT",
    "FROM",
    "AS",
    "DEFAULT",
    "CLASS",
    "ABSTRACT",
    "DECLARE",
    "CONST",
    "LET",
    "VAR",
    "TRUE",
    "FALSE",
}

_MEMBER_MODIFIERS = {
    "public",
    "private",
    "protected",
    "static",
    "readonly",
    "declare",
    "abstract",
    "override",
    "accessor",
}


class TerminatorInserter:
    always_accept = ("NEWLINE", "SEMI")

    TERMINABLE = {
        "NAME",
        "STRING",
        "TEMPLATE",
        "NUMBER",
        "TRUE",
        "FALSE",
        "RPAR",
        "RSQB",
        "RBRACE",
    }

    # A line starting with one of these continues the previous line.
    CONTINUATION = {
        "LBRACE",
        "DOT",
        "OP",
        "COMMA",
        "COLON",
    }

    def __init__(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self.paren_depth = 0
        self.bracket_depth = 0
        self.can_terminate = False

    def process(self, stream):
        self._reset()
        pending: Optional[Token] = None
        last: Optional[Token] = None
        for token in stream:
            ttype = token.type
            if ttype == "NEWLINE":
                if pending is None and self._should_emit_terminator():
                    pending = token
                continue
            if ttype == "SEMI":
                pending = None
                yield Token.new_borrow_pos("TERMINATOR", token.value, token)
                self.can_terminate = False
                continue
            if pending is not None:
                if ttype not in self.CONTINUATION:
                    yield Token.new_borrow_pos("TERMINATOR", pending.value, pending)
                pending = None
            yield token
            last = token
            self._update_depth(ttype)
            self.can_terminate = self._is_terminable(ttype)
        if pending is not None:
            yield Token.new_borrow_pos("TERMINATOR", pending.value, pending)
        elif last is not None and self._should_emit_terminator():
            yield Token.new_borrow_pos("TERMINATOR", "", last)

    def _update_depth(self, ttype: str) -> None:
        if ttype == "LPAR":
            self.paren_depth += 1
        elif ttype == "RPAR" and self.paren_depth:
            self.paren_depth -= 1
        elif ttype == "LSQB":
            self.bracket_depth += 1
        elif ttype == "RSQB" and self.bracket_depth:
            self.bracket_depth -= 1

    def _is_terminable(self, ttype: str) -> bool:
        return ttype in self.TERMINABLE

    def _should_emit_terminator(self) -> bool:
        return (
            self.paren_depth == 0
            and self.bracket_depth == 0
            and self.can_terminate
        )


_PARSER = Lark(
    _GRAMMAR_SRC,
    parser="lalr",
    lexer="basic",
    start="start",
    propagate_positions=True,
    maybe_placeholders=False,
    postlex=TerminatorInserter(),
)


def read_source(path: str | Path) -> str:
    source_path = Path(path)
    try:
        return source_path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceReadError(str(source_path), str(exc)) from exc


def parse_source(source: str, filename: str = "<source>") -> SourceFile:
    """Parse ArkTS source into a :class:`SourceFile`.

    Unexpected tokens and characters are skipped (and logged) so that one
    construct outside the supported subset does not hide the rest of the
    file. Errors the parser cannot step over raise ``SourceParseError``.
    """

    def _recover(err: UnexpectedInput) -> bool:
        if isinstance(err, UnexpectedToken):
            if err.token.type == "$END":
                return False
            found = err.token.value
        else:
            found = getattr(err, "char", "")
        log.warning(
            "parse.skipped",
            filename=filename,
            line=err.line,
            column=err.column,
            found=found,
        )
        return True

    try:
        tree = _PARSER.parse(source, on_error=_recover)
    except UnexpectedInput as exc:
        raise SourceParseError(filename, exc.line, exc.column, "unexpected end of input") from exc
    return _build_source_file(tree, filename)


def _build_source_file(tree: Tree, filename: str) -> SourceFile:
    statements: List[Stmt] = []
    decorators: List[Decorator] = []

    def flush_decorators() -> None:
        if decorators:
            statements.append(MissingDecl(loc=decorators[0].loc, decorators=list(decorators)))
            decorators.clear()

    for child in tree.children:
        if isinstance(child, Token):
            if child.type == "TERMINATOR":
                continue
            flush_decorators()
            statements.append(OtherStmt(loc=_loc_from_token(child), text=child.value))
            continue
        kind = _name(child)
        if kind == "decorator":
            decorators.append(_build_decorator(child))
            continue
        if kind == "class_decl":
            statements.append(_build_class_decl(child, list(decorators)))
            decorators.clear()
            continue
        flush_decorators()
        if kind == "import_decl":
            statements.append(_build_import_decl(child))
        elif kind in ("export_from", "export_names"):
            statements.append(_build_export_decl(child))
        elif kind == "var_stmt":
            statements.append(_build_var_stmt(child))
        elif kind == "word":
            statements.append(_build_word(child))
        else:
            statements.append(OtherStmt(loc=_loc(child), text=_text(child.children)))
    flush_decorators()
    return SourceFile(statements=statements, filename=filename)


def _build_import_decl(tree: Tree) -> ImportDecl:
    module_token = _child_token(tree, "STRING")
    decl = ImportDecl(loc=_loc(tree), module=_decode_string(module_token))
    clause = _child_tree(tree, "import_clause")
    if clause is None:
        return decl
    for part in clause.children:
        if not isinstance(part, Tree):
            continue
        kind = _name(part)
        if kind == "default_import":
            decl.default = _child_token(part, "NAME").value
        elif kind == "namespace_import":
            decl.namespace = _child_token(part, "NAME").value
        elif kind == "named_imports":
            decl.names = [_build_import_spec(spec) for spec in part.children if isinstance(spec, Tree)]
    return decl


def _build_import_spec(tree: Tree) -> ImportSpec:
    names = [child.value for child in tree.children if isinstance(child, Token) and child.type in ("NAME", "DEFAULT")]
    return ImportSpec(imported=names[0], local=names[-1])


def _build_export_decl(tree: Tree) -> ExportDecl:
    module_token = _child_token(tree, "STRING")
    module = _decode_string(module_token) if module_token is not None else None
    decl = ExportDecl(loc=_loc(tree), module=module)
    named = _child_tree(tree, "named_exports")
    if named is not None:
        decl.names = [_build_export_spec(spec) for spec in named.children if isinstance(spec, Tree)]
    elif _child_token(tree, "STAR") is not None:
        decl.star = True
        alias = _child_token(tree, "NAME")
        if alias is not None:
            decl.namespace = alias.value
    return decl


def _build_export_spec(tree: Tree) -> ExportSpec:
    names = [child.value for child in tree.children if isinstance(child, Token) and child.type in ("NAME", "DEFAULT")]
    return ExportSpec(local=names[0], exported=names[-1])


def _build_decorator(tree: Tree) -> Decorator:
    names = [child for child in tree.children if isinstance(child, Token) and child.type == "NAME"]
    func: Expr = Name(loc=_loc_from_token(names[0]), ident=names[0].value)
    for token in names[1:]:
        func = Attr(loc=func.loc, value=func, attr=token.value)
    paren = _child_tree(tree, "paren")
    args = _build_call_args(paren) if paren is not None else None
    return Decorator(loc=_loc(tree), func=func, args=args)


def _build_class_decl(tree: Tree, decorators: List[Decorator]) -> ClassDecl:
    name_token = _child_token(tree, "NAME")
    body = tree.children[-1]
    members: List[ClassMember] = []
    for part in _split(body.children[1:-1], "TERMINATOR"):
        member = _build_class_member(part)
        if member is not None:
            members.append(member)
    return ClassDecl(
        loc=_loc(tree),
        name=name_token.value,
        decorators=decorators,
        members=members,
        modifiers=_modifiers(tree),
    )


def _build_class_member(items: list) -> Optional[ClassMember]:
    idx = 0
    is_static = False
    while idx < len(items):
        item = items[idx]
        if isinstance(item, Token) and item.type == "AT":
            # Member decorator: @Name(.Name)*(args)?
            idx += 2
            while idx + 1 < len(items) and _is_token(items[idx], "DOT"):
                idx += 2
            if idx < len(items) and isinstance(items[idx], Tree) and _name(items[idx]) == "paren":
                idx += 1
            continue
        if (
            isinstance(item, Token)
            and item.value in _MEMBER_MODIFIERS
            and idx + 1 < len(items)
            and _is_word(items[idx + 1])
        ):
            is_static = is_static or item.value == "static"
            idx += 1
            continue
        break
    if idx >= len(items) or not _is_word(items[idx]):
        return None
    name_token = items[idx]
    rest = items[idx + 1 :]
    if rest and _is_token(rest[0], "OP") and rest[0].value in ("?", "!"):
        rest = rest[1:]
    if rest and isinstance(rest[0], Tree):
        # method or accessor
        return None
    initializer = None
    eq = _index_of_assign(rest)
    if eq is not None:
        initializer = _build_expr(rest[eq + 1 :])
    return ClassMember(
        loc=_loc_from_token(name_token),
        name=name_token.value,
        is_static=is_static,
        initializer=initializer,
    )


def _build_var_stmt(tree: Tree) -> VarStmt:
    children = [child for child in tree.children if not (isinstance(child, Tree) and _name(child) == "modifiers")]
    kind_token = children[0]
    declarations: List[VarDecl] = []
    for part in _split_declarators(children[1:-1]):
        decl = _build_var_decl(part)
        if decl is not None:
            declarations.append(decl)
    return VarStmt(
        loc=_loc(tree),
        kind=kind_token.value,
        declarations=declarations,
        modifiers=_modifiers(tree),
    )


def _build_var_decl(items: list) -> Optional[VarDecl]:
    if not items or not _is_token(items[0], "NAME"):
        # destructuring patterns are not tracked
        return None
    initializer = None
    eq = _index_of_assign(items)
    if eq is not None:
        initializer = _build_expr(items[eq + 1 :])
    return VarDecl(loc=_loc_from_token(items[0]), name=items[0].value, initializer=initializer)


def _split_declarators(items: list) -> List[list]:
    """Split `a: Map<K, V> = x, b = y` on the commas between declarators."""
    parts: List[list] = [[]]
    angle_depth = 0
    in_initializer = False
    for item in items:
        if isinstance(item, Token):
            if item.type == "OP" and not in_initializer:
                if item.value == "=" and angle_depth == 0:
                    in_initializer = True
                elif set(item.value) == {"<"}:
                    angle_depth += len(item.value)
                elif set(item.value) == {">"}:
                    angle_depth = max(0, angle_depth - len(item.value))
            elif item.type == "COMMA" and angle_depth == 0:
                parts.append([])
                in_initializer = False
                continue
        parts[-1].append(item)
    return [part for part in parts if part]


def _build_word(tree: Tree) -> ExprStmt:
    items = [child for child in tree.children if not (isinstance(child, Tree) and _name(child) == "modifiers")]
    value = _build_expr(items)
    return ExprStmt(loc=_loc(tree), value=value, modifiers=_modifiers(tree))


def _build_call_args(paren: Tree) -> List[Expr]:
    args: List[Expr] = []
    for part in _split(_group_items(paren), "COMMA"):
        expr = _build_expr(part)
        if expr is not None:
            args.append(expr)
    return args


def _build_expr(items: list) -> Optional[Expr]:
    if not items:
        return None
    head = items[0]
    loc = _item_loc(head)
    if len(items) == 1:
        if isinstance(head, Tree):
            if _name(head) == "brace":
                return _build_object_literal(head)
            return OtherExpr(loc=loc, text=_text(items))
        if head.type == "STRING":
            return Literal(loc=loc, value=_decode_string(head))
        if head.type == "TEMPLATE" and "${" not in head.value:
            return Literal(loc=loc, value=head.value[1:-1])
        if head.type in ("TRUE", "FALSE"):
            return Literal(loc=loc, value=head.type == "TRUE")
        if head.type == "NUMBER":
            return Literal(loc=loc, value=_decode_number(head))
        if head.type == "NAME":
            return Name(loc=loc, ident=head.value)
        return OtherExpr(loc=loc, text=head.value)
    if _is_token(head, "NAME"):
        return _build_chain(items)
    return OtherExpr(loc=loc, text=_text(items))


def _build_chain(items: list) -> Expr:
    head = items[0]
    expr: Expr = Name(loc=_loc_from_token(head), ident=head.value)
    idx = 1
    while idx < len(items):
        item = items[idx]
        if _is_token(item, "DOT") and idx + 1 < len(items) and _is_word(items[idx + 1]):
            expr = Attr(loc=expr.loc, value=expr, attr=items[idx + 1].value)
            idx += 2
        elif isinstance(item, Tree) and _name(item) == "paren":
            expr = Call(loc=expr.loc, func=expr, args=_build_call_args(item))
            idx += 1
        else:
            return OtherExpr(loc=expr.loc, text=_text(items))
    return expr


def _build_object_literal(tree: Tree) -> ObjectLiteral:
    properties: List[Property] = []
    for part in _split(_group_items(tree), "COMMA"):
        if not part or not isinstance(part[0], Token):
            continue
        key = part[0]
        if key.type == "STRING":
            name = _decode_string(key)
        elif _is_word(key):
            name = key.value
        else:
            continue
        if len(part) == 1 and key.type == "NAME":
            properties.append(Property(name=name, value=Name(loc=_loc_from_token(key), ident=name)))
        elif len(part) > 2 and _is_token(part[1], "COLON"):
            value = _build_expr(part[2:])
            if value is not None:
                properties.append(Property(name=name, value=value))
    return ObjectLiteral(loc=_loc(tree), properties=properties)


def _group_items(tree: Tree) -> list:
    return [child for child in tree.children[1:-1] if not _is_token(child, "TERMINATOR")]


def _split(items: list, separator: str) -> List[list]:
    parts: List[list] = [[]]
    for item in items:
        if _is_token(item, separator):
            parts.append([])
        else:
            parts[-1].append(item)
    return [part for part in parts if part]


def _index_of_assign(items: list) -> Optional[int]:
    for idx, item in enumerate(items):
        if _is_token(item, "OP") and item.value == "=":
            return idx
    return None


def _modifiers(tree: Tree) -> List[str]:
    mods = _child_tree(tree, "modifiers")
    if mods is None:
        return []
    return [token.value for token in mods.children if isinstance(token, Token)]


def _decode_string(token: Token) -> str:
    try:
        value = ast.literal_eval(token.value)
    except (ValueError, SyntaxError):
        return token.value[1:-1]
    if not isinstance(value, str):
        return token.value[1:-1]
    return value


def _decode_number(token: Token) -> object:
    text = token.value.replace("_", "").rstrip("n")
    try:
        return int(text, 0)
    except ValueError:
        return float(text)


def _text(items: list) -> str:
    parts: List[str] = []
    for item in items:
        if isinstance(item, Token):
            parts.append(item.value)
        else:
            parts.append(_text(item.children))
    return " ".join(parts)


def _child_tree(tree: Tree, name: str) -> Optional[Tree]:
    return next((child for child in tree.children if isinstance(child, Tree) and _name(child) == name), None)


def _child_token(tree: Tree, ttype: str) -> Optional[Token]:
    return next((child for child in tree.children if isinstance(child, Token) and child.type == ttype), None)


def _is_token(node, ttype: str) -> bool:
    return isinstance(node, Token) and node.type == ttype


def _is_word(node) -> bool:
    return isinstance(node, Token) and (node.type == "NAME" or node.type in _KEYWORDS)


def _item_loc(node: Tree | Token) -> Located:
    if isinstance(node, Token):
        return _loc_from_token(node)
    return _loc(node)


def _loc(tree: Tree) -> Located:
    meta = tree.meta
    if meta.empty:
        return Located(line=0, column=0)
    return Located(line=meta.line, column=meta.column)


def _loc_from_token(token: Token) -> Located:
    return Located(line=token.line, column=token.column)


def _name(node: Tree | Token) -> str:
    if isinstance(node, Tree):
        data = node.data
        if isinstance(data, Token):
            return data.value
        return data
    if isinstance(node, Token):
        return node.type
    return str(node)
