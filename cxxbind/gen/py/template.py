#!/usr/bin/env python3
"""
Host side of template classes.

``<t>_template`` is emitted once per template class and is generic over a
``TypeVar``; ``<t>_instantiation`` lists one ``InstantiationRequest`` per
requested argument. Nothing here binds a concrete instantiation.
"""

from __future__ import annotations

import ast
import logging
from typing import List, Optional, Tuple

from cxxbind.core.cpp_types import CPPType, class_of, render
from cxxbind.core.model import (
    Constructor, Function, Static, TemplateClass, TemplateInstantiation, args_and_return, is_constructor,
    is_virtual,
)
from cxxbind.core.modules import TemplateClassModule
from cxxbind.core.naming import first_lower, template_entry_name, template_module, template_symbol, type_tag
from cxxbind.gen.py import pysyntax as py
from cxxbind.gen.py.ctypes_map import VOID_P, ctype, py_annotation
from cxxbind.gen.py.frontend import HostContext
from cxxbind.meta import DEFAULT_META, LayoutMeta

logger = logging.getLogger(__name__)

TYPE_VAR = "T"


def template_names(t: TemplateClass) -> Tuple[str, str, str]:
    """(handle, raw, capability) names of a template class."""
    return t.name, "Raw" + t.name, "I" + t.name


def requests_name(t: TemplateClass) -> str:
    return t.name.upper() + "_REQUESTS"


def instantiation_module(inst: TemplateInstantiation) -> str:
    if inst.module:
        return inst.module
    return f"{template_module(inst.template)}_{type_tag(inst.argument)}".lower()


def _annotation(ctx: HostContext, t: CPPType, tmpl: TemplateClass, *, argument: bool) -> str:
    c = class_of(t)
    if c is not None and c.name == tmpl.param:
        return TYPE_VAR
    if c is not None and c.name == tmpl.name:
        return f"{tmpl.name}[{TYPE_VAR}]"
    return py_annotation(t, ctx.handle_of, argument=argument)


def template_host_module(ctx: HostContext, module: TemplateClassModule) -> ast.Module:
    t = module.template
    handle, raw, cap = template_names(t)
    methods: List[ast.stmt] = []
    for f in t.funcs:
        if not is_virtual(f):
            continue
        args, ret = args_and_return(f, t.param_type)
        params = [("self", None)] + [(py.py_ident(n), _annotation(ctx, a, t, argument=True)) for a, n in args]
        methods.append(py.function_def(
            first_lower(template_entry_name(t, f)), params, [py.ellipsis()],
            returns=_annotation(ctx, ret, t, argument=False), decorators=[py.dotted("abc.abstractmethod")],
        ))
    body = [
        py.future_annotations(),
        py.import_("abc"),
        py.import_from("typing", ["Generic", "TypeVar"]),
        py.import_from(ctx.runtime, ["Capability", "ForeignHandle", "RawObject", "castable"]),
        py.assign(TYPE_VAR, py.call("TypeVar", [py.const(TYPE_VAR)])),
        py.class_def(raw, ["RawObject"], [py.docstring(f"Opaque foreign {t.name}<{t.param}>."), py.pass_()]),
        py.class_def(handle, ["ForeignHandle", py.subscript("Generic", TYPE_VAR)], [
            py.assign("__slots__", py.tuple_([])),
            py.assign("raw_type", py.name(raw)),
        ], decorators=[py.name("castable")]),
        py.class_def(cap, ["Capability", py.subscript("Generic", TYPE_VAR)], [
            py.docstring(f"Virtual methods of {t.name}, for every argument type."),
            py.assign("__slots__", py.tuple_([])),
        ] + methods),
        py.all_([TYPE_VAR, raw, handle, cap]),
    ]
    return py.module(body, doc=f"Generic declaration of template class {t.name}.")


def _member(ctx: HostContext, t: TemplateClass, f: Function, inst: TemplateInstantiation) -> ast.expr:
    args, ret = args_and_return(f, t.param_type)
    argtypes = [] if isinstance(f, (Constructor, Static)) else [VOID_P]
    argtypes += [_concrete_ctype(a, t, inst) for a, _ in args]
    restype = VOID_P if is_constructor(f) else _concrete_ctype(ret, t, inst)
    return py.call("TemplateMember", [], **{
        "name": py.const(first_lower(template_entry_name(t, f))),
        "symbol": py.const(template_symbol(t, f, inst.argument)),
        "kind": py.const(f.kind.value),
        "argtypes": py.tuple_(py.const(a) for a in argtypes),
        "restype": py.const(restype),
    })


def _concrete_ctype(a: CPPType, t: TemplateClass, inst: TemplateInstantiation) -> Optional[str]:
    c = class_of(a)
    if c is not None and c.name == t.param:
        return ctype(inst.argument) or VOID_P
    return ctype(a)


def instantiation_request(ctx: HostContext, module: TemplateClassModule, inst: TemplateInstantiation) -> ast.expr:
    t = module.template
    return py.call("InstantiationRequest", [], **{
        "template": py.const(t.name),
        "argument": py.const(render(inst.argument)),
        "tag": py.const(type_tag(inst.argument)),
        "module": py.const(instantiation_module(inst)),
        "members": py.tuple_(_member(ctx, t, f, inst) for f in t.funcs),
    })


def instantiation_host_module(ctx: HostContext, module: TemplateClassModule) -> ast.Module:
    requests = [instantiation_request(ctx, module, i) for i in module.instantiations]
    body = [
        py.import_from(ctx.runtime, ["InstantiationRequest", "TemplateMember"]),
        py.assign(requests_name(module.template), py.tuple_(requests)),
        py.all_([requests_name(module.template)]),
    ]
    logger.debug("template %s: %d instantiation requests", module.template.name, len(requests))
    return py.module(body, doc=f"Instantiations requested for {module.template.name}.")


def template_surface_names(ctx: HostContext, module: TemplateClassModule,
                           meta: LayoutMeta = DEFAULT_META) -> List[Tuple[str, List[str]]]:
    handle, raw, cap = template_names(module.template)
    return [
        (module.name + meta.host.template, [raw, handle, cap]),
        (module.name + meta.host.instantiation, [requests_name(module.template)]),
    ]


def template_surface_module(ctx: HostContext, module: TemplateClassModule) -> ast.Module:
    pairs = template_surface_names(ctx, module, ctx.meta)
    body: List[ast.stmt] = [py.import_from(mod, names) for mod, names in pairs]
    body.append(py.all_([n for _, names in pairs for n in names]))
    return py.module(body, doc=f"Public surface of template class {module.template.name}.")


__all__ = [
    "TYPE_VAR", "template_names", "requests_name", "instantiation_module",
    "template_host_module", "instantiation_request", "instantiation_host_module",
    "template_surface_names", "template_surface_module",
]
