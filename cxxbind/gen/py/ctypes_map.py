#!/usr/bin/env python3
"""
Mapping of C++ types to ctypes prototypes and host annotations.
"""

from __future__ import annotations

from typing import Callable, Optional

from cxxbind.core.cpp_types import (
    Arr, CPPType, Fun, MPtr, Prim, Primitive, Ptr, Ref, class_of, is_void, strip_cv,
)

CTYPES = {
    Primitive.CHAR: "ctypes.c_char",
    Primitive.INT: "ctypes.c_int",
    Primitive.LONG: "ctypes.c_long",
    Primitive.UCHAR: "ctypes.c_ubyte",
    Primitive.UINT: "ctypes.c_uint",
    Primitive.ULONG: "ctypes.c_ulong",
    Primitive.LONGLONG: "ctypes.c_longlong",
    Primitive.ULONGLONG: "ctypes.c_ulonglong",
    Primitive.DOUBLE: "ctypes.c_double",
    Primitive.LONGDOUBLE: "ctypes.c_longdouble",
    Primitive.BOOL: "ctypes.c_bool",
}

ANNOTATIONS = {
    Primitive.CHAR: "bytes",
    Primitive.UCHAR: "int",
    Primitive.DOUBLE: "float",
    Primitive.LONGDOUBLE: "float",
    Primitive.BOOL: "bool",
}

VOID_P = "ctypes.c_void_p"


def ctype(t: CPPType) -> Optional[str]:
    """Dotted ctypes spelling; None for void."""
    if class_of(t) is not None:
        return VOID_P
    t = strip_cv(t)
    if isinstance(t, Prim):
        if t.prim is Primitive.VOID:
            return None
        return CTYPES.get(t.prim, VOID_P)
    if isinstance(t, (Ptr, Ref, Arr)):
        target = strip_cv(t.target)
        if isinstance(target, Fun):
            return VOID_P
        if isinstance(t, Ptr) and isinstance(target, Prim) and target.prim is Primitive.CHAR:
            return "ctypes.c_char_p"
        inner = ctype(target)
        if inner is None or inner == VOID_P:
            return VOID_P
        return f"ctypes.POINTER({inner})"
    if isinstance(t, (Fun, MPtr)):
        return VOID_P
    return VOID_P


def py_annotation(t: CPPType, class_name: Callable[[str], str], *, argument: bool) -> str:
    """Host annotation for ``t``.

    ``class_name`` maps a C++ class name to its handle name; class
    arguments are annotated with the capability ``I<handle>``.
    """
    c = class_of(t)
    if c is not None:
        handle = class_name(c.name)
        return "I" + handle if argument else handle
    if is_void(t):
        return "None"
    bare = strip_cv(t)
    if isinstance(bare, Prim):
        return ANNOTATIONS.get(bare.prim, "int")
    if isinstance(bare, Ptr) and isinstance(strip_cv(bare.target), Prim) \
            and strip_cv(bare.target).prim is Primitive.CHAR:
        return "bytes"
    return "object"


__all__ = ["CTYPES", "VOID_P", "ctype", "py_annotation"]
