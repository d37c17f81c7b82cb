from __future__ import annotations

from pathlib import Path

import pytest
from lark import Token

from routescan.errors import SourceParseError, SourceReadError
from routescan.parser import TerminatorInserter, parse_source, read_source
from routescan.parser.ast import (
    Attr,
    ClassDecl,
    Call,
    ExportDecl,
    ExprStmt,
    ImportDecl,
    Literal,
    MissingDecl,
    Name,
    ObjectLiteral,
    OtherExpr,
    VarStmt,
)


def _of_type(source_file, cls):
    return [stmt for stmt in source_file.statements if isinstance(stmt, cls)]


def test_parse_import_shapes():
    source = """
import { Constants } from './constants'
import Default, { A as B, default as D } from "../x";
import * as NS from '@ohos/pkg'
import './side-effect'
"""
    imports = _of_type(parse_source(source), ImportDecl)

    assert [imp.module for imp in imports] == ["./constants", "../x", "@ohos/pkg", "./side-effect"]
    assert [(s.imported, s.local) for s in imports[0].names] == [("Constants", "Constants")]
    assert imports[1].default == "Default"
    assert [(s.imported, s.local) for s in imports[1].names] == [("A", "B"), ("default", "D")]
    assert imports[2].namespace == "NS"
    assert imports[3].default is None and imports[3].names == []


def test_parse_export_redirects_and_local_exports():
    source = """
export { Constants } from './real-constants'
export { A as B, C, } from "./abc";
export * from './all'
export * as ns from './ns'
export { Local }
"""
    exports = _of_type(parse_source(source), ExportDecl)

    assert [e.module for e in exports] == ["./real-constants", "./abc", "./all", "./ns", None]
    assert [(s.local, s.exported) for s in exports[1].names] == [("A", "B"), ("C", "C")]
    assert exports[2].star and exports[2].namespace is None
    assert exports[3].star and exports[3].namespace == "ns"
    assert [s.local for s in exports[4].names] == ["Local"]


def test_decorators_before_struct_form_missing_declaration():
    source = """
@AppRouter({ name: "login/Page", login: true })
@Component
export struct LoginPage {
  @State message: string = 'Hello'

  build() {
    Column() {
      Text(this.message)
    }
  }
}
"""
    statements = parse_source(source).statements

    assert isinstance(statements[0], MissingDecl)
    assert [d.name for d in statements[0].decorators] == ["AppRouter", "Component"]
    assert isinstance(statements[1], ExprStmt)
    assert statements[1].value == Name(loc=statements[1].value.loc, ident="struct")
    assert statements[1].modifiers == ["export"]
    assert isinstance(statements[2], ExprStmt)
    assert statements[2].value.ident == "LoginPage"

    arg = statements[0].decorators[0].args[0]
    assert isinstance(arg, ObjectLiteral)
    assert arg.get("name").value == "login/Page"
    assert arg.get("login").value is True
    assert statements[0].decorators[1].args is None


def test_decorators_attach_to_class_declaration():
    source = """
@AppRouter({ name: 'b' })
@Observed
export default class Foo<T> extends Base<T> implements A, B {
  static readonly X: string = "y";
  static Y = true
  private z = 'instance'
  static method(): string { return 'm' }
}
"""
    classes = _of_type(parse_source(source), ClassDecl)

    assert len(classes) == 1
    cls = classes[0]
    assert cls.name == "Foo"
    assert cls.modifiers == ["export", "default"]
    assert [d.name for d in cls.decorators] == ["AppRouter", "Observed"]
    assert [(m.name, m.is_static) for m in cls.members] == [("X", True), ("Y", True), ("z", False)]
    assert cls.static_member("X").initializer.value == "y"
    assert cls.static_member("Y").initializer.value is True
    assert cls.static_member("z") is None


def test_variable_statements_and_initializers():
    source = """
export const LOGIN_PAGE = "login/Page"
const A: Map<string, number> = new Map(), B = 'b'
let flag = false; var n = 0x10
export const Routes = {
  HOME: 'home',
  'quoted-key': `tpl`,
}
"""
    stmts = _of_type(parse_source(source), VarStmt)

    assert [(s.kind, s.exported) for s in stmts] == [
        ("const", True),
        ("const", False),
        ("let", False),
        ("var", False),
        ("const", True),
    ]
    assert stmts[0].declarations[0].initializer.value == "login/Page"
    assert [d.name for d in stmts[1].declarations] == ["A", "B"]
    assert isinstance(stmts[1].declarations[0].initializer, OtherExpr)
    assert stmts[1].declarations[1].initializer.value == "b"
    assert stmts[2].declarations[0].initializer.value is False
    assert stmts[3].declarations[0].initializer.value == 16
    routes = stmts[4].declarations[0].initializer
    assert isinstance(routes, ObjectLiteral)
    assert routes.get("HOME").value == "home"
    assert routes.get("quoted-key").value == "tpl"


def test_decorator_argument_expressions():
    source = """
@AppRouter({ name: Constants.LOGIN_PAGE, paramName: PARAM, hasParam: check(), login })
struct P {}
"""
    decorator = parse_source(source).statements[0].decorators[0]
    arg = decorator.args[0]

    name = arg.get("name")
    assert isinstance(name, Attr)
    assert name.value.ident == "Constants" and name.attr == "LOGIN_PAGE"
    assert isinstance(arg.get("paramName"), Name)
    assert isinstance(arg.get("hasParam"), Call)
    assert arg.get("login").ident == "login"


def test_string_escapes_are_decoded():
    source = r"""
export const A = 'it\'s'
export const B = "tab\there"
"""
    stmts = _of_type(parse_source(source), VarStmt)

    assert stmts[0].declarations[0].initializer.value == "it's"
    assert stmts[1].declarations[0].initializer.value == "tab\there"


def test_comments_and_template_literals_are_skipped():
    source = """
// @AppRouter({ name: "commented" })
/* export const X = 'block' */
export const Y = `a ${b} c`
"""
    source_file = parse_source(source)
    stmts = _of_type(source_file, VarStmt)

    assert not _of_type(source_file, MissingDecl)
    assert [d.name for s in stmts for d in s.declarations] == ["Y"]
    assert isinstance(stmts[0].declarations[0].initializer, OtherExpr)


def test_stray_tokens_are_skipped():
    source = """
foo())
]
@AppRouter({ name: "ok" })
struct Ok {}
"""
    source_file = parse_source(source)
    missing = _of_type(source_file, MissingDecl)

    assert len(missing) == 1
    assert missing[0].decorators[0].args[0].get("name").value == "ok"


def test_unclosed_group_raises_parse_error():
    with pytest.raises(SourceParseError):
        parse_source("@AppRouter({ name: 'x' }\nstruct A {}", filename="broken.ets")


def test_locations_are_one_based():
    source_file = parse_source("\n\n@AppRouter({ name: 'x' })\nstruct A {}\n")
    decorator = source_file.statements[0].decorators[0]

    assert decorator.loc.line == 3
    assert decorator.loc.column == 1


def test_read_source_missing_file(tmp_path: Path):
    with pytest.raises(SourceReadError) as excinfo:
        read_source(tmp_path / "nope.ets")
    assert "nope.ets" in str(excinfo.value)


def test_read_source_strips_bom(tmp_path: Path):
    path = tmp_path / "bom.ets"
    path.write_bytes("\ufeffexport const A = 'a'\n".encode("utf-8"))

    assert read_source(path).startswith("export")


def test_literal_numbers():
    stmts = _of_type(parse_source("const a = 1.5\nconst b = 1_000\n"), VarStmt)

    assert isinstance(stmts[0].declarations[0].initializer, Literal)
    assert stmts[0].declarations[0].initializer.value == 1.5
    assert stmts[1].declarations[0].initializer.value == 1000


def test_terminator_inserter_newline_rules():
    raw = [
        ("NAME", "a"),
        ("NEWLINE", "\n"),
        ("DOT", "."),
        ("NAME", "b"),
        ("NEWLINE", "\n"),
        ("NAME", "c"),
        ("SEMI", ";"),
        ("NEWLINE", "\n"),
        ("LPAR", "("),
        ("NAME", "d"),
        ("NEWLINE", "\n"),
        ("RPAR", ")"),
    ]
    tokens = list(TerminatorInserter().process(Token(ttype, value) for ttype, value in raw))

    assert [t.type for t in tokens] == [
        "NAME",
        "DOT",
        "NAME",
        "TERMINATOR",
        "NAME",
        "TERMINATOR",
        "LPAR",
        "NAME",
        "RPAR",
        "TERMINATOR",
    ]
