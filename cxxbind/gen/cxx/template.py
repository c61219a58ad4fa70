#!/usr/bin/env python3
"""
Generic foreign declaration of a template class.

The generator never instantiates a template; it writes one header of
macros per template class. Each member gets a ``_decl`` and an ``_inst``
macro taking the concrete C++ type and an identifier-safe tag, and
``<T>_instance(Type, Tag)`` expands every member at once. The late-bound
instantiation step expands these macros once per requested argument.
"""

from __future__ import annotations

from typing import List, Tuple

from cxxbind.core.cpp_types import (
    CPPType, ClassRef, Prim, Ptr, Ref, Arr, Fun, QConst, QVolatile, QRestrict, class_of, render,
)
from cxxbind.core.model import Constructor, Destructor, Function, Static, args_and_return
from cxxbind.core.modules import PackageConfig, TemplateClassModule
from cxxbind.core.naming import template_macro, template_member_name
from cxxbind.gen.cxx.decl import CSource
from cxxbind.gen.cxx.wrapper import c_param, c_return, call_arg, return_stmt
from cxxbind.meta import DEFAULT_META, LayoutMeta

TYPE = "Type"
TAG = "Tag"
HANDLE = "void*"


def substitute(t: CPPType, param: str, by: str = TYPE) -> CPPType:
    """Replace the template parameter inside ``t``."""
    if isinstance(t, Prim):
        if isinstance(t.prim, ClassRef) and t.prim.name == param:
            return Prim(ClassRef(by))
        return t
    if isinstance(t, (Ptr, Ref, QConst, QVolatile, QRestrict)):
        return type(t)(substitute(t.target, param, by))
    if isinstance(t, Arr):
        return Arr(t.size, substitute(t.target, param, by))
    if isinstance(t, Fun):
        return Fun(tuple(substitute(a, param, by) for a in t.args), substitute(t.ret, param, by))
    return t


def _is_param(t: CPPType, param: str) -> bool:
    c = class_of(t)
    return c is not None and c.name == param


def _param_decl(t: CPPType, name: str, param: str) -> str:
    if _is_param(t, param):
        return f"{render(substitute(t, param))} {name}"
    return c_param(t, name)


def _call_arg(t: CPPType, name: str, param: str) -> str:
    return name if _is_param(t, param) else call_arg(t, name)


def _macro(lines: List[str]) -> List[str]:
    """Join lines with line continuations."""
    return [line + " \\" for line in lines[:-1]] + [lines[-1]]


def member_macros(module: TemplateClassModule, f: Function) -> Tuple[str, ...]:
    t = module.template
    member = template_member_name(t, f)
    symbol = f"{t.name}_{member}_ ## {TAG}"
    args, ret = args_and_return(f, t.param_type)
    params: List[str] = []
    if not isinstance(f, (Constructor, Static)):
        params.append(f"{HANDLE} p")
    params.extend(_param_decl(a, n, t.param) for a, n in args)
    call_args = ", ".join(_call_arg(a, n, t.param) for a, n in args)
    instance = f"{t.name}<{TYPE}>"
    this = f"static_cast<{instance}*>(p)"

    if isinstance(f, Constructor):
        ret_spelling = HANDLE
        body = f"return static_cast<{HANDLE}>(new {instance}({call_args}));"
    elif isinstance(f, Destructor):
        ret_spelling = "void"
        body = f"delete {this};"
    else:
        call = f"{instance}::{f.name}({call_args})" if isinstance(f, Static) else f"{this}->{f.name}({call_args})"
        if _is_param(ret, t.param):
            ret_spelling = render(substitute(ret, t.param))
            body = f"return {call};"
        else:
            ret_spelling = c_return(ret)
            body = return_stmt(ret, call)
    signature = f"{ret_spelling} {symbol} ( {', '.join(params)} )"
    decl_macro = template_macro(t, f, "decl")
    decl = _macro([f"#define {decl_macro}({TYPE}, {TAG})", f"  {signature};"])
    inst = _macro([
        f"#define {template_macro(t, f, 'inst')}({TYPE}, {TAG})",
        f"  extern \"C\" {{ {decl_macro}({TYPE}, {TAG}) }}",
        f"  {signature} {{",
        f"    {body}",
        "  }",
    ])
    return tuple(decl + [""] + inst)


def template_header(module: TemplateClassModule, config: PackageConfig,
                    meta: LayoutMeta = DEFAULT_META, banner: str = "") -> CSource:
    t = module.template
    lines: List[str] = []
    for f in t.funcs:
        lines.extend(member_macros(module, f))
        lines.append("")
    lines.extend(_macro([f"#define {t.name}_instance({TYPE}, {TAG})"]
                        + [f"  {template_macro(t, f, 'inst')}({TYPE}, {TAG})" for f in t.funcs]))
    return CSource(
        name=module.header,
        includes=(f'"{config.type_header}"', f"<{module.cxx_header}>"),
        guard=meta.cxx.guard(module.header),
        prelude=tuple(lines),
        banner=banner,
    )


__all__ = ["substitute", "member_macros", "template_header"]
