#!/usr/bin/env python3
"""
C-linkage wrapper layer: the package type header, one header/source pair
per class and the free-function header/source.

Every class ``X`` is seen from C as the opaque ``X_t`` behind the handle
``X_p`` (``const_X_p`` when const). Arguments are narrowed back to the
declared class with ``to_nonconst``/``to_const``; class results are
turned into handles the same way.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Tuple

from cxxbind.core.cpp_types import (
    Arr, CPPType, Fun, Ptr, Ref, class_of, is_const, is_void, render, strip_cv, wrapper_type,
)
from cxxbind.core.model import (
    Class, Constructor, Destructor, Function, Static, TopLevelFunction, args_and_return,
)
from cxxbind.core.modules import ClassModule, PackageConfig, TopLevelImportHeader
from cxxbind.core.naming import SymbolTable, toplevel_symbol
from cxxbind.gen.cxx.decl import CFunction, CSource
from cxxbind.meta import DEFAULT_META, LayoutMeta

logger = logging.getLogger(__name__)

SELF = "p"

TYPE_CASTS = (
    "#ifdef __cplusplus",
    "template<class ToType, class FromType>",
    "const ToType* to_const(const FromType* x) {",
    "  return reinterpret_cast<const ToType*>(x);",
    "}",
    "",
    "template<class ToType, class FromType>",
    "ToType* to_nonconst(const FromType* x) {",
    "  return const_cast<ToType*>(reinterpret_cast<const ToType*>(x));",
    "}",
    "#endif",
)


# ===============================================
# TYPE SPELLING
# ===============================================


def c_param(t: CPPType, name: str) -> str:
    """C parameter declarator for ``t``."""
    if class_of(t) is not None:
        return f"{wrapper_type(t)} {name}"
    bare = strip_cv(t)
    if isinstance(bare, Ptr) and isinstance(bare.target, Fun):
        bare = bare.target
    if isinstance(bare, Fun):
        args = ",".join(render(a) for a in bare.args)
        return f"{render(bare.ret)} (*{name})({args})"
    if isinstance(bare, Arr):
        return f"{render(bare.target)} {name}[{bare.size}]"
    return f"{render(t)} {name}"


def c_return(t: CPPType) -> str:
    return wrapper_type(t)


def _narrow(t: CPPType, name: str) -> str:
    c = class_of(t)
    cast = "to_const" if is_const(t) else "to_nonconst"
    return f"{cast}<{c.name},{c.name}_t>({name})"


def call_arg(t: CPPType, name: str) -> str:
    """Argument as passed to the C++ callee."""
    if class_of(t) is None:
        return name
    if isinstance(strip_cv(t), Ptr):
        return _narrow(t, name)
    # by value and by reference both dereference the handle
    return "*" + _narrow(t, name)


def return_stmt(t: CPPType, call: str) -> str:
    if is_void(t):
        return call + ";"
    c = class_of(t)
    if c is None:
        return f"return {call};"
    cast = "to_const" if is_const(t) else "to_nonconst"
    bare = strip_cv(t)
    if isinstance(bare, Ptr):
        value = call
    elif isinstance(bare, Ref):
        value = f"&({call})"
    else:
        value = f"new {c.name}({call})"
    return f"return {cast}<{c.name}_t,{c.name}>({value});"


# ===============================================
# PER FUNCTION
# ===============================================


def wrapper_function(c: Class, f: Function, symbol: str) -> CFunction:
    """Definition of the wrapper of ``f`` on class ``c``."""
    args, ret = args_and_return(f, c.self_type)
    params: List[str] = []
    if not isinstance(f, (Constructor, Static)):
        params.append(f"{c.name}_p {SELF}")
    params.extend(c_param(t, n) for t, n in args)
    call_args = ", ".join(call_arg(t, n) for t, n in args)
    this = f"to_nonconst<{c.name},{c.name}_t>({SELF})"

    if isinstance(f, Constructor):
        body: Tuple[str, ...] = (
            f"{c.name}* newp = new {c.name}({call_args});",
            f"return to_nonconst<{c.name}_t,{c.name}>(newp);",
        )
        return CFunction(f"{c.name}_p", symbol, tuple(params), body)
    if isinstance(f, Destructor):
        return CFunction("void", symbol, tuple(params), (f"delete {this};",))
    if isinstance(f, Static):
        call = f"{c.name}::{f.name}({call_args})"
    else:
        call = f"{this}->{f.name}({call_args})"
    return CFunction(c_return(ret), symbol, tuple(params), (return_stmt(ret, call),))


def prototype(fn: CFunction) -> CFunction:
    return CFunction(fn.ret, fn.symbol, fn.params)


def toplevel_function(fn: TopLevelFunction, symbol: str) -> CFunction:
    params = tuple(c_param(t, n) for t, n in fn.args)
    call = f"{fn.name}({', '.join(call_arg(t, n) for t, n in fn.args)})"
    return CFunction(c_return(fn.ret), symbol, params, (return_stmt(fn.ret, call),))


# ===============================================
# FILES
# ===============================================


def _quoted(h: str) -> str:
    return f'"{h}"'


def _system(h: str) -> str:
    return h if h.startswith("<") or h.startswith('"') else f"<{h}>"


def _using(namespaces: Iterable[str]) -> Tuple[str, ...]:
    return tuple(f"using namespace {ns};" for ns in namespaces)


def type_header(config: PackageConfig, meta: LayoutMeta = DEFAULT_META, banner: str = "") -> CSource:
    lines: List[str] = []
    for m in config.class_modules:
        name = m.cls.name
        lines.append(f"typedef struct {name}_tag {name}_t;")
        lines.append(f"typedef {name}_t * {name}_p;")
        lines.append(f"typedef {name}_t const* const_{name}_p;")
        lines.append("")
    return CSource(
        name=config.type_header,
        guard=meta.cxx.guard(config.type_header),
        extern_c=True,
        prelude=tuple(lines[:-1]),
        epilogue=TYPE_CASTS,
        banner=banner,
    )


def wrapper_definitions(module: ClassModule, symbols: SymbolTable) -> Tuple[CFunction, ...]:
    return tuple(wrapper_function(module.cls, w.function, symbols.symbol_for(module.cls, w.function))
                 for w in module.wrapped)


def wrapper_header(module: ClassModule, config: PackageConfig, symbols: SymbolTable,
                   meta: LayoutMeta = DEFAULT_META, banner: str = "") -> CSource:
    protos = tuple(prototype(fn) for fn in wrapper_definitions(module, symbols))
    return CSource(
        name=module.header.self_header,
        includes=(_quoted(config.type_header),),
        guard=meta.cxx.guard(module.header.self_header),
        extern_c=True,
        functions=protos,
        banner=banner,
    )


def wrapper_source(module: ClassModule, symbols: SymbolTable, banner: str = "") -> CSource:
    hdr = module.header
    includes = tuple(_system(h) for h in hdr.headers + hdr.dependency_headers) + (_quoted(hdr.self_header),)
    logger.debug("cpp definitions for %s: %d wrappers", module.cls.name, len(module.wrapped))
    return CSource(
        name=hdr.self_source,
        includes=includes,
        prelude=_using(hdr.namespaces),
        functions=wrapper_definitions(module, symbols),
        banner=banner,
    )


def toplevel_definitions(top: TopLevelImportHeader) -> Tuple[CFunction, ...]:
    return tuple(toplevel_function(fn, toplevel_symbol(top.package, fn))
                 for fn in top.functions)


def toplevel_header(top: TopLevelImportHeader, config: PackageConfig,
                    meta: LayoutMeta = DEFAULT_META, banner: str = "") -> CSource:
    return CSource(
        name=top.self_header,
        includes=(_quoted(config.type_header),),
        guard=meta.cxx.guard(top.self_header),
        extern_c=True,
        functions=tuple(prototype(fn) for fn in toplevel_definitions(top)),
        banner=banner,
    )


def toplevel_source(top: TopLevelImportHeader, namespaces: Sequence[str] = (), banner: str = "") -> CSource:
    includes = tuple(_system(h) for h in top.headers) + (_quoted(top.self_header),)
    return CSource(
        name=top.self_source,
        includes=includes,
        prelude=_using(namespaces),
        functions=toplevel_definitions(top),
        banner=banner,
    )


__all__ = [
    "c_param", "c_return", "call_arg", "return_stmt",
    "wrapper_function", "toplevel_function", "prototype",
    "type_header", "wrapper_header", "wrapper_source", "wrapper_definitions",
    "toplevel_header", "toplevel_source", "toplevel_definitions",
]
