#!/usr/bin/env python3
"""
Host (Python) binding layer.

Every class module ``<pkg>.<c>`` is split into flat sibling modules:

    <c>_rawtype          opaque Raw<C> and the handle class <C>
    <c>_ffi              lazily resolved prototypes of the C wrappers
    <c>_interface        capability I<C>: the class's own virtual methods
    <c>_cast             upcast<C> / downcast<C>
    <c>_implementation   concrete handle class plus module-level entries
    <c>_interface_stub   forward declaration, only for deferred targets
    <c>                  public surface

Handle modules depend on nothing but the runtime, so any layer may import
any handle. Interface modules only import parent and non-deferred
reference interfaces; deferred ones are named through their stub. This
keeps the import graph acyclic whatever the hierarchy looks like.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from cxxbind.core.cpp_types import CPPType, class_of, is_void
from cxxbind.core.hierarchy import HierarchyResolver, WrappedFunction
from cxxbind.core.model import (
    Class, Constructor, Destructor, Function, Static, TopLevelFunction, args_and_return,
    is_virtual,
)
from cxxbind.core.modules import ClassModule, PackageConfig
from cxxbind.core.naming import (
    SymbolTable, capability_name, class_module, downcast_name, host_class_name, host_entry_name,
    package_module, toplevel_entry_name, toplevel_module, toplevel_symbol, upcast_name,
)
from cxxbind.gen.py import pysyntax as py
from cxxbind.gen.py.ctypes_map import VOID_P, ctype, py_annotation
from cxxbind.meta import LayoutMeta

logger = logging.getLogger(__name__)

RUNTIME = "cxxbind.runtime"
LIBRARY_MODULE = "_library"
LIBRARY_VAR = "lib"


@dataclass
class HostContext:
    """Everything the host emitters need about one run."""
    config: PackageConfig
    resolver: HierarchyResolver
    symbols: SymbolTable
    library_name: str
    meta: LayoutMeta = field(default_factory=LayoutMeta)
    runtime: str = RUNTIME
    _handles: Dict[str, str] = field(default_factory=dict)

    @property
    def package(self) -> str:
        return package_module(self.config.package)

    @property
    def library_module(self) -> str:
        return f"{self.package}.{LIBRARY_MODULE}"

    def layer(self, c: Class, suffix: str) -> str:
        return self.meta.host.layer(class_module(c), suffix)

    def handle_of(self, cxx_name: str) -> str:
        if cxx_name not in self._handles:
            c = self.resolver.class_named(cxx_name)
            self._handles[cxx_name] = host_class_name(c)[0] if c is not None else cxx_name
        return self._handles[cxx_name]

    def class_of_type(self, t: CPPType) -> Optional[Class]:
        ref = class_of(t)
        return self.resolver.class_named(ref.name) if ref is not None else None


def _split(module: str) -> Tuple[str, str]:
    pkg, _, leaf = module.rpartition(".")
    return pkg, leaf


class _Imports:
    """Collects ``from X import a, b`` statements, deterministically ordered."""

    def __init__(self):
        self._names: Dict[str, Set[str]] = {}
        self._typing: Dict[str, Set[str]] = {}

    def add(self, module: str, *names: str) -> None:
        self._names.setdefault(module, set()).update(names)

    def add_layer(self, module: str) -> None:
        pkg, leaf = _split(module)
        self.add(pkg, leaf)

    def add_typing(self, module: str, *names: str) -> None:
        self._typing.setdefault(module, set()).update(names)

    def statements(self) -> List[ast.stmt]:
        stmts = [py.import_from(m, names) for m, names in sorted(self._names.items())]
        typing_only = {m: n - self._names.get(m, set()) for m, n in self._typing.items()}
        typing_only = {m: n for m, n in typing_only.items() if n}
        if typing_only:
            stmts.insert(0, py.import_from("typing", ["TYPE_CHECKING"]))
            stmts.append(py.type_checking([py.import_from(m, n) for m, n in sorted(typing_only.items())]))
        return stmts


def _ctype_expr(t: Optional[str]) -> ast.expr:
    return py.const(None) if t is None else py.parse_expr(t)


# ===============================================
# HANDLE TYPE
# ===============================================


def rawtype_module(ctx: HostContext, c: Class) -> ast.Module:
    handle, raw = host_class_name(c)
    body = [
        py.import_from(ctx.runtime, ["ForeignHandle", "RawObject", "castable"]),
        py.class_def(raw, ["RawObject"], [py.docstring(f"Opaque foreign {c.name}."), py.pass_()]),
        py.class_def(handle, ["ForeignHandle"], [
            py.assign("__slots__", py.tuple_([])),
            py.assign("raw_type", py.name(raw)),
        ], decorators=[py.name("castable")]),
        py.all_([raw, handle]),
    ]
    return py.module(body, doc=f"Handle type of {c.name}.")


# ===============================================
# FFI DECLARATIONS
# ===============================================


def _prototype(ctx: HostContext, c: Class, f: Function) -> Tuple[Optional[str], List[Optional[str]]]:
    args, ret = args_and_return(f, c.self_type)
    argtypes: List[Optional[str]] = []
    if not isinstance(f, (Constructor, Static)):
        argtypes.append(VOID_P)
    argtypes.extend(ctype(t) or VOID_P for t, _ in args)
    restype = VOID_P if isinstance(f, Constructor) else ctype(ret)
    return restype, argtypes


def _declare(symbol: str, restype: Optional[str], argtypes: List[Optional[str]]) -> ast.stmt:
    value = py.call(f"{LIBRARY_VAR}.function", [
        py.const(symbol), _ctype_expr(restype), py.list_(_ctype_expr(a) for a in argtypes),
    ])
    return py.assign(symbol, value)


def ffi_module(ctx: HostContext, m: ClassModule) -> ast.Module:
    body: List[ast.stmt] = [py.import_("ctypes"), py.import_from(ctx.library_module, [LIBRARY_VAR])]
    for w in m.wrapped:
        restype, argtypes = _prototype(ctx, m.cls, w.function)
        body.append(_declare(ctx.symbols.symbol_for(m.cls, w.function), restype, argtypes))
    return py.module(body, doc=f"Foreign prototypes of the {m.cls.name} wrappers.")


# ===============================================
# CAPABILITY INTERFACE
# ===============================================


def _params(ctx: HostContext, args) -> List[Tuple[str, Optional[str]]]:
    return [(py.py_ident(n), py_annotation(t, ctx.handle_of, argument=True)) for t, n in args]


def _returns(ctx: HostContext, t: CPPType) -> str:
    return py_annotation(t, ctx.handle_of, argument=False)


def own_virtuals(c: Class) -> List[Function]:
    return [f for f in c.funcs if is_virtual(f) and f.name not in c.protected]


def capability_methods(ctx: HostContext, c: Class) -> List[Function]:
    """Own virtuals plus the destructor when ``c`` is the topmost class deleting through it."""
    methods = own_virtuals(c)
    if ctx.resolver.declares_delete(c):
        methods.extend(f for f in c.funcs if isinstance(f, Destructor))
    return methods


def interface_module(ctx: HostContext, m: ClassModule) -> ast.Module:
    c = m.cls
    imports = _Imports()
    for x in m.parent_imports:
        imports.add(ctx.layer(x, ctx.meta.host.interface), capability_name(x))
    for x in m.deferred_imports:
        imports.add(ctx.layer(x, ctx.meta.host.forward_stub), host_class_name(x)[0], capability_name(x))
    bases = [capability_name(p) for p in c.parents]
    if not bases:
        imports.add(ctx.runtime, "Capability")
        bases = ["Capability"]

    deferred = {id(d) for d in m.deferred_imports}
    methods: List[ast.stmt] = []
    for f in capability_methods(ctx, c):
        args, ret = args_and_return(f, c.self_type)
        for t in [a for a, _ in args] + [ret]:
            x = ctx.class_of_type(t)
            if x is not None and id(x) not in deferred:
                imports.add(ctx.layer(x, ctx.meta.host.rawtype), host_class_name(x)[0])
        methods.append(py.function_def(
            host_entry_name(c, f), [("self", None)] + _params(ctx, args), [py.ellipsis()],
            returns=_returns(ctx, ret), decorators=[py.dotted("abc.abstractmethod")],
        ))
    cls_body: List[ast.stmt] = [
        py.docstring(f"Virtual methods declared by {c.name}."),
        py.assign("__slots__", py.tuple_([])),
    ] + methods
    body = [py.future_annotations(), py.import_("abc")] + imports.statements() + [
        py.class_def(capability_name(c), bases, cls_body),
        py.all_([capability_name(c)]),
    ]
    return py.module(body, doc=f"Capability interface of {c.name}.")


def stub_module(ctx: HostContext, c: Class) -> ast.Module:
    handle, raw = host_class_name(c)
    cap = capability_name(c)
    body = [
        py.import_from(ctx.runtime, ["ForwardCapability"]),
        py.import_from(ctx.layer(c, ctx.meta.host.rawtype), [handle, raw]),
        py.assign(cap, py.call("ForwardCapability", [
            py.const(ctx.layer(c, ctx.meta.host.interface)), py.const(cap),
        ])),
        py.all_([raw, handle, cap]),
    ]
    return py.module(body, doc=f"Forward declaration of {cap}.")


# ===============================================
# CAST GLUE
# ===============================================


def cast_module(ctx: HostContext, m: ClassModule) -> ast.Module:
    c = m.cls
    handle, raw = host_class_name(c)
    cap = capability_name(c)
    up, down = upcast_name(c), downcast_name(c)
    upcast_fn = py.function_def(up, [("h", cap)], [
        py.docstring(f"The same foreign object seen as a {handle} handle."),
        py.if_(py.not_(py.call("isinstance", [py.name("h"), py.tuple_([py.name(cap), py.name(handle)])])), [
            py.raise_(py.call("TypeError", [py.const(f"{up} expects an object implementing {cap}")])),
        ]),
        py.return_(py.call("upcast", [py.name(raw), py.name("h")])),
    ], returns=handle)
    downcast_fn = py.function_def(down, [("h", handle), ("target", None)], [
        py.docstring(f"Unchecked narrowing of a {handle} handle to ``target``."),
        py.if_(py.not_(py.call("issubclass", [py.name("target"), py.name(cap)])), [
            py.raise_(py.call("TypeError", [py.const(f"{down} target must implement {cap}")])),
        ]),
        py.return_(py.call("downcast", [py.name("h"), py.name("target")])),
    ])
    body = [
        py.future_annotations(),
        py.import_from(ctx.runtime, ["downcast", "upcast"]),
        py.import_from(ctx.layer(c, ctx.meta.host.interface), [cap]),
        py.import_from(ctx.layer(c, ctx.meta.host.rawtype), [handle, raw]),
        upcast_fn,
        downcast_fn,
        py.all_([up, down]),
    ]
    return py.module(body, doc=f"Casts between {handle} and its descendants.")


# ===============================================
# IMPLEMENTATION GLUE
# ===============================================


class _Implementation:
    def __init__(self, ctx: HostContext, m: ClassModule):
        self.ctx = ctx
        self.m = m
        self.c = m.cls
        self.imports = _Imports()
        self.ffi = _split(ctx.layer(self.c, ctx.meta.host.ffi))[1]
        self.rawtype = _split(ctx.layer(self.c, ctx.meta.host.rawtype))[1]
        self.uses_cast = False
        self.capabilities: List[Class] = []

    def raw_of(self, x: Class) -> str:
        if x is self.c:
            return f"{self.rawtype}.{host_class_name(x)[1]}"
        return host_class_name(x)[1]

    def call(self, symbol: str, ret: CPPType, call_args: List[ast.expr], constructor: bool = False) -> ast.stmt:
        expr = py.call(f"{self.ffi}.{symbol}", call_args)
        x = self.c if constructor else self.ctx.class_of_type(ret)
        if x is not None:
            self.uses_cast = True
            return py.return_(py.call("cast_fptr_to_obj", [py.dotted(self.raw_of(x)), expr]))
        if is_void(ret):
            return py.expr_stmt(expr)
        return py.return_(expr)

    def implemented_by(self, w: WrappedFunction) -> Optional[Class]:
        """Class whose capability declares ``w``, if any."""
        if isinstance(w.function, Destructor):
            return self.ctx.resolver.destructor_capability(self.c)
        if is_virtual(w.function):
            return w.origin
        return None

    def method(self, w: WrappedFunction) -> ast.stmt:
        f = w.function
        args, ret = args_and_return(f, self.c.self_type)
        symbol = self.ctx.symbols.symbol_for(self.c, f)
        call_args = [py.name("self")] + [py.name(py.py_ident(n)) for _, n in args]
        decorators = []
        owner = self.implemented_by(w)
        if owner is not None:
            if not any(x is owner for x in self.capabilities):
                self.capabilities.append(owner)
            decorators.append(py.call("implements", [py.name(capability_name(owner))]))
        return py.function_def(
            host_entry_name(self.c, f), [("self", None)] + _params(self.ctx, args),
            [self.call(symbol, ret, call_args)], returns=_returns(self.ctx, ret), decorators=decorators,
        )

    def function(self, w: WrappedFunction) -> ast.stmt:
        f = w.function
        args, ret = args_and_return(f, self.c.self_type)
        symbol = self.ctx.symbols.symbol_for(self.c, f)
        params = _params(self.ctx, args)
        call_args = [py.name(py.py_ident(n)) for _, n in args]
        if not isinstance(f, (Constructor, Static)):
            params = [("obj", host_class_name(self.c)[0])] + params
            call_args = [py.name("obj")] + call_args
        constructor = isinstance(f, Constructor)
        returns = host_class_name(self.c)[0] if constructor else _returns(self.ctx, ret)
        return py.function_def(host_entry_name(self.c, f), params,
                               [self.call(symbol, ret, call_args, constructor=constructor)], returns=returns)

    def add_imports(self) -> None:
        ctx, c = self.ctx, self.c
        host = ctx.meta.host
        ancestors = {id(a) for a in ctx.resolver.ancestor_closure(c)}
        for x in self.m.raw_imports:
            self.imports.add(ctx.layer(x, host.rawtype), *host_class_name(x))
            self.imports.add_typing(ctx.layer(x, host.interface), capability_name(x))
        for x in self.m.same_layer_imports:
            if id(x) in ancestors:
                self.imports.add(ctx.layer(x, host.interface), capability_name(x))
        if not c.abstract or any(x is c for x in self.capabilities):
            self.imports.add(ctx.layer(c, host.interface), capability_name(c))
        self.imports.add_typing(ctx.layer(c, host.interface), capability_name(c))
        self.imports.add_layer(ctx.layer(c, host.ffi))
        self.imports.add_layer(ctx.layer(c, host.rawtype))
        self.imports.add(ctx.runtime, "castable")
        if self.capabilities:
            self.imports.add(ctx.runtime, "implements")
        if self.uses_cast:
            self.imports.add(ctx.runtime, "cast_fptr_to_obj")

    def build(self) -> ast.Module:
        c = self.c
        handle = host_class_name(c)[0]
        methods: List[ast.stmt] = []
        functions: List[ast.stmt] = []
        for w in self.m.wrapped:
            if is_virtual(w.function) or isinstance(w.function, Destructor):
                methods.append(self.method(w))
            else:
                functions.append(self.function(w))
        bases = [f"{self.rawtype}.{handle}"]
        if not c.abstract:
            bases.append(capability_name(c))
        self.add_imports()

        kind = "abstract " if c.abstract else ""
        cls_body: List[ast.stmt] = [
            py.docstring(f"Handle of a {kind}{c.name} with its wrapped methods."),
            py.assign("__slots__", py.tuple_([])),
        ] + methods
        body = [py.future_annotations()] + self.imports.statements() + [
            py.class_def(handle, bases, cls_body, decorators=[py.name("castable")]),
        ] + functions + [py.all_([handle] + [f.name for f in functions])]
        return py.module(body, doc=f"Implementation glue of {c.name}.")


def implementation_module(ctx: HostContext, m: ClassModule) -> ast.Module:
    return _Implementation(ctx, m).build()


# ===============================================
# SURFACE, AGGREGATE, LIBRARY
# ===============================================


def surface_names(ctx: HostContext, m: ClassModule) -> List[Tuple[str, List[str]]]:
    """(layer module, public names) pairs re-exported by the class surface."""
    c = m.cls
    handle, raw = host_class_name(c)
    entries = [host_entry_name(c, w.function) for w in m.wrapped
               if not (is_virtual(w.function) or isinstance(w.function, Destructor))]
    return [
        (ctx.layer(c, ctx.meta.host.rawtype), [raw]),
        (ctx.layer(c, ctx.meta.host.interface), [capability_name(c)]),
        (ctx.layer(c, ctx.meta.host.cast), [upcast_name(c), downcast_name(c)]),
        (ctx.layer(c, ctx.meta.host.implementation), [handle] + entries),
    ]


def _reexport(pairs: List[Tuple[str, List[str]]], doc: str) -> ast.Module:
    body: List[ast.stmt] = [py.import_from(mod, names) for mod, names in pairs if names]
    body.append(py.all_([n for _, names in pairs for n in names]))
    return py.module(body, doc=doc)


def surface_module(ctx: HostContext, m: ClassModule) -> ast.Module:
    return _reexport(surface_names(ctx, m), f"Public surface of {m.cls.name}.")


def aggregate_module(ctx: HostContext, extra: List[Tuple[str, List[str]]] = ()) -> ast.Module:
    pairs: List[Tuple[str, List[str]]] = []
    for m in ctx.config.class_modules:
        pairs.append((m.name, [n for _, names in surface_names(ctx, m) for n in names]))
    pairs.extend(extra)
    return _reexport(pairs, f"{ctx.config.package.name} bindings.")


def library_module(ctx: HostContext) -> ast.Module:
    body = [
        py.import_("os"),
        py.import_from(ctx.runtime, ["ForeignLibrary"]),
        py.assign(LIBRARY_VAR, py.call("ForeignLibrary", [
            py.const(ctx.library_name),
            py.call("os.path.dirname", [py.call("os.path.abspath", [py.name("__file__")])]),
        ])),
    ]
    return py.module(body, doc=f"Wrapper library of {ctx.config.package.name}, loaded on first use.")


# ===============================================
# TOP LEVEL FUNCTIONS
# ===============================================


def toplevel_names(ctx: HostContext) -> List[str]:
    return [toplevel_entry_name(fn) for fn in ctx.config.toplevel.functions]


def toplevel_host_module(ctx: HostContext) -> ast.Module:
    imports = _Imports()
    decls: List[ast.stmt] = []
    functions: List[ast.stmt] = []
    uses_cast = False
    for fn in ctx.config.toplevel.functions:
        symbol = toplevel_symbol(ctx.config.package, fn)
        decls.append(_declare(symbol, ctype(fn.ret), [ctype(t) or VOID_P for t, _ in fn.args]))
        for t, _ in fn.args:
            x = ctx.class_of_type(t)
            if x is not None:
                imports.add_typing(ctx.layer(x, ctx.meta.host.interface), capability_name(x))
        expr = py.call(symbol, [py.name(py.py_ident(n)) for _, n in fn.args])
        x = ctx.class_of_type(fn.ret)
        if x is not None:
            imports.add(ctx.layer(x, ctx.meta.host.rawtype), *host_class_name(x))
            stmt = py.return_(py.call("cast_fptr_to_obj", [py.name(host_class_name(x)[1]), expr]))
            uses_cast = True
        elif _returns(ctx, fn.ret) == "None":
            stmt = py.expr_stmt(expr)
        else:
            stmt = py.return_(expr)
        functions.append(py.function_def(toplevel_entry_name(fn), _params(ctx, fn.args), [stmt],
                                         returns=_returns(ctx, fn.ret)))
    imports.add(ctx.library_module, LIBRARY_VAR)
    if uses_cast:
        imports.add(ctx.runtime, "cast_fptr_to_obj")
    body = [py.future_annotations(), py.import_("ctypes")] + imports.statements() + decls + functions
    body.append(py.all_(toplevel_names(ctx)))
    return py.module(body, doc=f"Free functions of {ctx.config.package.name}.")


def toplevel_module_name(ctx: HostContext) -> str:
    return toplevel_module(ctx.config.package)


__all__ = [
    "HostContext", "RUNTIME", "LIBRARY_MODULE",
    "rawtype_module", "ffi_module", "interface_module", "stub_module", "cast_module",
    "implementation_module", "surface_names", "surface_module", "aggregate_module",
    "library_module", "toplevel_names", "toplevel_host_module", "toplevel_module_name",
    "own_virtuals", "capability_methods",
]
