#!/usr/bin/env python3
"""
Small builders over the standard ``ast`` module.

Generated host modules are assembled as ``ast.Module`` trees and only
turned into text by ``unparse``. ``node`` papers over fields that differ
between interpreter versions (``type_params`` and friends).
"""

from __future__ import annotations

import ast
import keyword
from typing import Iterable, List, Optional, Sequence, Tuple, Union

_LIST_FIELDS = frozenset({
    "body", "orelse", "finalbody", "handlers", "decorator_list", "bases", "keywords",
    "names", "elts", "targets", "args", "posonlyargs", "kwonlyargs", "kw_defaults",
    "defaults", "type_params", "type_ignores",
})

Expr = ast.expr
Stmt = ast.stmt


def node(cls, **fields):
    """Build ``cls`` from the fields it actually has on this interpreter."""
    present = {k: v for k, v in fields.items() if k in cls._fields}
    for f in cls._fields:
        if f not in present and f in _LIST_FIELDS:
            present[f] = []
    return cls(**present)


def py_ident(name: str) -> str:
    return name + "_" if keyword.iskeyword(name) else name


# ===============================================
# EXPRESSIONS
# ===============================================


def name(ident: str) -> Expr:
    return node(ast.Name, id=ident, ctx=ast.Load())


def dotted(path: str) -> Expr:
    parts = path.split(".")
    expr = name(parts[0])
    for part in parts[1:]:
        expr = node(ast.Attribute, value=expr, attr=part, ctx=ast.Load())
    return expr


def const(value) -> Expr:
    return node(ast.Constant, value=value, kind=None)


def call(func: Union[str, Expr], args: Sequence[Expr] = (), **kwargs: Expr) -> Expr:
    fn = dotted(func) if isinstance(func, str) else func
    keywords = [node(ast.keyword, arg=k, value=v) for k, v in kwargs.items()]
    return node(ast.Call, func=fn, args=list(args), keywords=keywords)


def tuple_(elts: Iterable[Expr]) -> Expr:
    return node(ast.Tuple, elts=list(elts), ctx=ast.Load())


def list_(elts: Iterable[Expr]) -> Expr:
    return node(ast.List, elts=list(elts), ctx=ast.Load())


def subscript(value: Union[str, Expr], index: Union[str, Expr]) -> Expr:
    v = dotted(value) if isinstance(value, str) else value
    i = dotted(index) if isinstance(index, str) else index
    return node(ast.Subscript, value=v, slice=i, ctx=ast.Load())


def not_(operand: Expr) -> Expr:
    return node(ast.UnaryOp, op=ast.Not(), operand=operand)


def parse_expr(text: str) -> Expr:
    return ast.parse(text, mode="eval").body


# ===============================================
# STATEMENTS
# ===============================================


def docstring(text: str) -> Stmt:
    return node(ast.Expr, value=const(text))


def import_(module: str) -> Stmt:
    return node(ast.Import, names=[node(ast.alias, name=module, asname=None)])


def import_from(module: str, names: Iterable[str]) -> Stmt:
    aliases = [node(ast.alias, name=n, asname=None) for n in sorted(set(names))]
    return node(ast.ImportFrom, module=module, names=aliases, level=0)


def assign(target: str, value: Expr) -> Stmt:
    tgt = node(ast.Name, id=target, ctx=ast.Store())
    return node(ast.Assign, targets=[tgt], value=value, type_comment=None)


def return_(value: Optional[Expr]) -> Stmt:
    return node(ast.Return, value=value)


def expr_stmt(value: Expr) -> Stmt:
    return node(ast.Expr, value=value)


def ellipsis() -> Stmt:
    return expr_stmt(const(...))


def pass_() -> Stmt:
    return node(ast.Pass)


def raise_(exc: Expr) -> Stmt:
    return node(ast.Raise, exc=exc, cause=None)


def if_(test: Expr, body: List[Stmt], orelse: Optional[List[Stmt]] = None) -> Stmt:
    return node(ast.If, test=test, body=body, orelse=orelse or [])


def type_checking(body: List[Stmt]) -> Stmt:
    return if_(name("TYPE_CHECKING"), body)


def arg(ident: str, ann: Optional[str] = None) -> ast.arg:
    return node(ast.arg, arg=ident, annotation=annotation(ann), type_comment=None)


def _is_dotted(s: str) -> bool:
    return all(part.isidentifier() for part in s.split("."))


def annotation(text: Optional[str]) -> Optional[Expr]:
    if text is None:
        return None
    if text == "None":
        return const(None)
    return dotted(text) if _is_dotted(text) else subscript_text(text)


def subscript_text(text: str) -> Expr:
    # "Generic[T]" style annotations
    head, _, rest = text.partition("[")
    return subscript(head, rest.rstrip("]"))


def arguments(params: Sequence[Tuple[str, Optional[str]]]) -> ast.arguments:
    return node(ast.arguments, posonlyargs=[], args=[arg(p, a) for p, a in params],
                vararg=None, kwonlyargs=[], kw_defaults=[], kwarg=None, defaults=[])


def function_def(ident: str, params: Sequence[Tuple[str, Optional[str]]], body: List[Stmt],
                 returns: Optional[str] = None, decorators: Sequence[Expr] = ()) -> Stmt:
    return node(ast.FunctionDef, name=ident, args=arguments(params), body=body or [pass_()],
                decorator_list=list(decorators), returns=annotation(returns), type_comment=None)


def class_def(ident: str, bases: Sequence[Union[str, Expr]], body: List[Stmt],
              decorators: Sequence[Expr] = ()) -> Stmt:
    base_exprs = [dotted(b) if isinstance(b, str) else b for b in bases]
    return node(ast.ClassDef, name=ident, bases=base_exprs, keywords=[], body=body or [pass_()],
                decorator_list=list(decorators))


def all_(names: Iterable[str]) -> Stmt:
    return assign("__all__", list_(const(n) for n in names))


# ===============================================
# MODULES
# ===============================================


def future_annotations() -> Stmt:
    return import_from("__future__", ["annotations"])


def module(body: List[Stmt], doc: Optional[str] = None) -> ast.Module:
    stmts = ([docstring(doc)] if doc else []) + body
    return node(ast.Module, body=stmts, type_ignores=[])


def unparse(mod: ast.Module, banner: str = "") -> str:
    text = ast.unparse(ast.fix_missing_locations(mod))
    header = "".join(f"# {line}\n" if line else "#\n" for line in banner.splitlines())
    return header + text + "\n"


__all__ = [
    "node", "py_ident", "name", "dotted", "const", "call", "tuple_", "list_", "subscript", "not_", "parse_expr",
    "docstring", "import_", "import_from", "assign", "return_", "expr_stmt", "ellipsis", "pass_",
    "raise_", "if_", "type_checking", "arg", "annotation", "arguments", "function_def", "class_def",
    "all_", "future_annotations", "module", "unparse",
]
