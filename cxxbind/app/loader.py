#!/usr/bin/env python3
"""
JSON declaration loader.

A declaration file describes one package:

    {
      "package": {"name": "MySample", "cheader_prefix": "MySample", "module_prefix": "MySample"},
      "classes": [
        {"name": "A", "parents": [], "abstract": false, "protected": [], "alias": null,
         "functions": [{"kind": "constructor", "args": []},
                       {"kind": "virtual", "ret": "void", "name": "method1", "args": []},
                       {"kind": "destructor"}]}
      ],
      "toplevel": [{"ret": "int", "name": "answer", "args": [["p.char", "s"]]}],
      "templates": [{"name": "Vec", "param": "T", "header": "Vec.h", "functions": [...]}],
      "instantiations": [{"template": "Vec", "argument": "int"}],
      "header_map": {"A": {"namespaces": [], "headers": ["A.h"]}},
      "extra_libs": []
    }

Types are encoded as a chain of operators ending in a primitive keyword or
a class name:

    p.T            pointer to T
    r.T            reference to T
    a(N).T         array of N T
    q(const).T     const / volatile / restrict qualified T
    f(A,B).R       function taking A, B returning R
    m(C).T         pointer to member of C of type T
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from cxxbind.bind_types import FunctionKind, HeaderName
from cxxbind.core.cpp_types import (
    Arr, ClassRef, CPPType, Fun, MPtr, Prim, Primitive, PrimitiveType, Ptr, QConst, QRestrict, QVolatile, Ref,
)
from cxxbind.core.errors import DeclarationError, UndeclaredClassError
from cxxbind.core.model import (
    Arg, Class, ClassHeaderInfo, Constructor, Destructor, Function, NonVirtual, Package, PackageDeclaration,
    Static, TemplateClass, TemplateInstantiation, TopLevelFunction, Virtual,
)

logger = logging.getLogger(__name__)

PRIMITIVES: Dict[str, Primitive] = {
    "char": Primitive.CHAR,
    "int": Primitive.INT,
    "long": Primitive.LONG,
    "uchar": Primitive.UCHAR,
    "uint": Primitive.UINT,
    "ulong": Primitive.ULONG,
    "longlong": Primitive.LONGLONG,
    "ulonglong": Primitive.ULONGLONG,
    "double": Primitive.DOUBLE,
    "longdouble": Primitive.LONGDOUBLE,
    "bool": Primitive.BOOL,
    "void": Primitive.VOID,
}

QUALIFIERS = {"const": QConst, "volatile": QVolatile, "restrict": QRestrict}


# ===============================================
# TYPE ENCODING
# ===============================================


class _TypeParser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def fail(self, message: str) -> DeclarationError:
        return DeclarationError(f"bad type encoding '{self.text}' at {self.pos}: {message}")

    def peek(self, prefix: str) -> bool:
        return self.text.startswith(prefix, self.pos)

    def expect(self, token: str) -> None:
        if not self.peek(token):
            raise self.fail(f"expected '{token}'")
        self.pos += len(token)

    def until(self, stop: str) -> str:
        end = self.text.find(stop, self.pos)
        if end < 0:
            raise self.fail(f"missing '{stop}'")
        word = self.text[self.pos:end]
        self.pos = end + len(stop)
        return word

    def identifier(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and (self.text[self.pos].isalnum() or self.text[self.pos] in "_:"):
            self.pos += 1
        if start == self.pos:
            raise self.fail("expected a type name")
        return self.text[start:self.pos]

    def primitive(self) -> PrimitiveType:
        word = self.identifier()
        return PRIMITIVES.get(word) or ClassRef(word)

    def parse(self) -> CPPType:
        if self.peek("p."):
            self.pos += 2
            return Ptr(self.parse())
        if self.peek("r."):
            self.pos += 2
            return Ref(self.parse())
        if self.peek("a("):
            self.pos += 2
            size = self.until(").")
            if not size.isdigit():
                raise self.fail(f"array size '{size}' is not a number")
            return Arr(int(size), self.parse())
        if self.peek("q("):
            self.pos += 2
            qualifier = self.until(").")
            if qualifier not in QUALIFIERS:
                raise self.fail(f"unknown qualifier '{qualifier}'")
            return QUALIFIERS[qualifier](self.parse())
        if self.peek("f("):
            self.pos += 2
            args: List[CPPType] = []
            if not self.peek(")"):
                args.append(self.parse())
                while self.peek(","):
                    self.pos += 1
                    args.append(self.parse())
            self.expect(").")
            return Fun(tuple(args), self.parse())
        if self.peek("m("):
            self.pos += 2
            owner = self.until(").")
            if not owner:
                raise self.fail("member pointer needs a class")
            return MPtr(ClassRef(owner), self.primitive())
        return Prim(self.primitive())


def parse_type(text: str) -> CPPType:
    """Decode one type string; the whole string must be consumed."""
    if not isinstance(text, str):
        raise DeclarationError(f"type must be a string, got {text!r}")
    parser = _TypeParser(text.strip())
    t = parser.parse()
    if parser.pos != len(parser.text):
        raise parser.fail("trailing characters")
    return t


# ===============================================
# FUNCTIONS
# ===============================================


def _field(obj: Mapping[str, Any], key: str, context: str) -> Any:
    if key not in obj:
        raise DeclarationError(f"{context}: missing '{key}'")
    return obj[key]


def parse_args(raw: Sequence[Any], context: str) -> Tuple[Arg, ...]:
    args = []
    for i, a in enumerate(raw or ()):
        if isinstance(a, Mapping):
            args.append((parse_type(_field(a, "type", context)), a.get("name") or f"arg{i}"))
        elif isinstance(a, (list, tuple)) and len(a) == 2:
            args.append((parse_type(a[0]), a[1]))
        else:
            raise DeclarationError(f"{context}: argument {i} must be [type, name] or {{type, name}}")
    return tuple(args)


def parse_function(obj: Mapping[str, Any], context: str) -> Function:
    try:
        kind = FunctionKind(_field(obj, "kind", context))
    except ValueError:
        raise DeclarationError(f"{context}: unknown function kind {obj.get('kind')!r}") from None
    alias = obj.get("alias")
    if kind is FunctionKind.DESTRUCTOR:
        return Destructor(alias=alias)
    args = parse_args(obj.get("args", ()), context)
    if kind is FunctionKind.CONSTRUCTOR:
        return Constructor(args, alias=alias)
    name = _field(obj, "name", context)
    ret = parse_type(obj.get("ret", "void"))
    cls = {FunctionKind.VIRTUAL: Virtual, FunctionKind.NON_VIRTUAL: NonVirtual, FunctionKind.STATIC: Static}[kind]
    return cls(ret, name, args, alias=alias)


def parse_toplevel(obj: Mapping[str, Any]) -> TopLevelFunction:
    name = _field(obj, "name", "top-level function")
    context = f"top-level function {name}"
    return TopLevelFunction(parse_type(obj.get("ret", "void")), name,
                            parse_args(obj.get("args", ()), context), alias=obj.get("alias"))


# ===============================================
# DECLARATION
# ===============================================


def parse_package(obj: Mapping[str, Any]) -> Package:
    return Package(
        name=_field(obj, "name", "package"),
        cheader_prefix=obj.get("cheader_prefix") or "",
        module_prefix=obj.get("module_prefix") or "",
    )


def parse_classes(package: Package, raw: Sequence[Mapping[str, Any]]) -> List[Class]:
    """Create every class first, then wire parents by name."""
    classes: List[Class] = []
    by_name: Dict[str, Class] = {}
    for obj in raw:
        name = _field(obj, "name", "class")
        context = f"class {name}"
        c = Class(
            package=package,
            name=name,
            protected=frozenset(obj.get("protected", ())),
            alias=obj.get("alias"),
            funcs=[parse_function(f, context) for f in obj.get("functions", ())],
            abstract=bool(obj.get("abstract", False)),
        )
        classes.append(c)
        by_name.setdefault(name, c)
    for obj, c in zip(raw, classes):
        for parent in obj.get("parents", ()):
            if parent not in by_name:
                raise UndeclaredClassError(parent, f"parents of {c.name}")
            c.parents.append(by_name[parent])
    return classes


def parse_templates(package: Package, raw: Sequence[Mapping[str, Any]]) -> List[Tuple[TemplateClass, HeaderName]]:
    out = []
    for obj in raw:
        name = _field(obj, "name", "template")
        context = f"template {name}"
        t = TemplateClass(package, name, obj.get("param", "T"),
                          [parse_function(f, context) for f in obj.get("functions", ())])
        out.append((t, HeaderName(obj.get("header") or f"{name}.h")))
    return out


def parse_instantiations(templates: Sequence[Tuple[TemplateClass, HeaderName]],
                         raw: Sequence[Mapping[str, Any]]) -> List[TemplateInstantiation]:
    by_name = {t.name: t for t, _ in templates}
    out = []
    for obj in raw:
        name = _field(obj, "template", "instantiation")
        if name not in by_name:
            raise UndeclaredClassError(name, "template instantiation")
        out.append(TemplateInstantiation(by_name[name], parse_type(_field(obj, "argument", f"instantiation of {name}")),
                                         module=obj.get("module")))
    return out


def parse_header_map(raw: Mapping[str, Any]) -> Dict[str, ClassHeaderInfo]:
    return {
        name: ClassHeaderInfo(tuple(info.get("namespaces", ())),
                              tuple(HeaderName(h) for h in info.get("headers", ())))
        for name, info in (raw or {}).items()
    }


def load_declaration(data: Mapping[str, Any]) -> PackageDeclaration:
    if not isinstance(data, Mapping):
        raise DeclarationError("declaration must be a JSON object")
    package = parse_package(_field(data, "package", "declaration"))
    templates = parse_templates(package, data.get("templates", ()))
    decl = PackageDeclaration(
        package=package,
        classes=parse_classes(package, data.get("classes", ())),
        toplevel_functions=[parse_toplevel(f) for f in data.get("toplevel", ())],
        templates=templates,
        instantiations=parse_instantiations(templates, data.get("instantiations", ())),
        header_map=parse_header_map(data.get("header_map", {})),
        extra_libs=list(data.get("extra_libs", ())),
    )
    logger.debug("loaded %s: %d classes, %d top-level functions, %d templates",
                 package.name, len(decl.classes), len(decl.toplevel_functions), len(decl.templates))
    return decl


def load_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_declaration_file(path: str) -> PackageDeclaration:
    try:
        data = load_json(path)
    except json.JSONDecodeError as e:
        raise DeclarationError(f"{path}: {e}") from e
    return load_declaration(data)


__all__ = [
    "PRIMITIVES", "parse_type", "parse_args", "parse_function", "parse_toplevel",
    "parse_package", "parse_classes", "parse_templates", "parse_instantiations", "parse_header_map",
    "load_declaration", "load_json", "load_declaration_file",
]
