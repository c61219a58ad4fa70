#!/usr/bin/env python3
"""
C++ type model.

A type is a primitive (or a class reference) wrapped in any number of type
operators: pointer, reference, array, function, const/volatile/restrict
qualifiers and pointer-to-member. Values are immutable and compare
structurally, so they can be used as dictionary keys and in sets.

Rendering to C++ syntax is purely structural and never looks at class
metadata.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple, Union

from cxxbind.core.errors import UnsupportedTypeError

# ===============================================
# PRIMITIVES
# ===============================================


class Primitive(Enum):
    CHAR = "char"
    INT = "int"
    LONG = "long int"
    UCHAR = "unsigned char"
    UINT = "unsigned int"
    ULONG = "unsigned long"
    LONGLONG = "long long"
    ULONGLONG = "unsigned long long"
    DOUBLE = "double"
    LONGDOUBLE = "long double"
    BOOL = "bool"
    VOID = "void"


@dataclass(frozen=True)
class ClassRef:
    """Reference to a class (or to a template parameter) by name."""
    name: str

    def __str__(self) -> str:
        return self.name


PrimitiveType = Union[Primitive, ClassRef]


def prim_name(p: PrimitiveType) -> str:
    if isinstance(p, ClassRef):
        return p.name
    return p.value


# ===============================================
# TYPE OPERATORS
# ===============================================


class CPPType:
    """Base of the recursive type tag."""

    __slots__ = ()

    def __str__(self) -> str:
        return render(self)


@dataclass(frozen=True)
class Ptr(CPPType):
    target: CPPType


@dataclass(frozen=True)
class Ref(CPPType):
    target: CPPType


@dataclass(frozen=True)
class Arr(CPPType):
    size: int
    target: CPPType


@dataclass(frozen=True)
class Fun(CPPType):
    args: Tuple[CPPType, ...]
    ret: CPPType


@dataclass(frozen=True)
class QConst(CPPType):
    target: CPPType


@dataclass(frozen=True)
class QVolatile(CPPType):
    target: CPPType


@dataclass(frozen=True)
class QRestrict(CPPType):
    """restrict qualified type. Renders, but can never be wrapped."""
    target: CPPType


@dataclass(frozen=True)
class MPtr(CPPType):
    owner: ClassRef
    prim: PrimitiveType


@dataclass(frozen=True)
class Prim(CPPType):
    prim: PrimitiveType


# ===============================================
# RENDERING
# ===============================================


def render(t: CPPType) -> str:
    """Canonical C++ spelling of a type."""
    if isinstance(t, Prim):
        return prim_name(t.prim)
    if isinstance(t, Ptr):
        if isinstance(t.target, Fun):
            return render(t.target)
        return render(t.target) + "*"
    if isinstance(t, Ref):
        return render(t.target) + "&"
    if isinstance(t, Arr):
        return f"{render(t.target)}[{t.size}]"
    if isinstance(t, Fun):
        return "(" + render(t.ret) + ") (*)(" + ",".join(render(a) for a in t.args) + ")"
    if isinstance(t, QConst):
        return _qualified("const", t.target)
    if isinstance(t, QVolatile):
        return _qualified("volatile", t.target)
    if isinstance(t, QRestrict):
        return _qualified("restrict", t.target)
    if isinstance(t, MPtr):
        return f"{prim_name(t.prim)} {t.owner.name}::*"
    raise TypeError(f"not a CPPType: {t!r}")


def _qualified(qualifier: str, target: CPPType) -> str:
    # a qualified pointer puts the qualifier after the star
    if isinstance(target, Ptr):
        return f"{render(target)} {qualifier}"
    return f"{qualifier} {render(target)}"


# ===============================================
# QUERIES
# ===============================================


def strip_cv(t: CPPType) -> CPPType:
    while isinstance(t, (QConst, QVolatile)):
        t = t.target
    return t


def is_const(t: CPPType) -> bool:
    """Constness of the value, or of the pointee for pointers and references."""
    if isinstance(t, QConst):
        return is_const(t.target) if isinstance(t.target, (Ptr, Ref)) else True
    if isinstance(t, QVolatile):
        return is_const(t.target)
    if isinstance(t, (Ptr, Ref)):
        return isinstance(t.target, QConst)
    return False


def class_of(t: CPPType) -> Optional[ClassRef]:
    """Class carried by value, pointer or reference, if any."""
    t = strip_cv(t)
    if isinstance(t, (Ptr, Ref)):
        t = strip_cv(t.target)
    if isinstance(t, Prim) and isinstance(t.prim, ClassRef):
        return t.prim
    return None


def is_class_type(t: CPPType) -> bool:
    return class_of(t) is not None


def is_void(t: CPPType) -> bool:
    return isinstance(t, Prim) and t.prim is Primitive.VOID


def walk(t: CPPType) -> Iterator[CPPType]:
    """Every node of the type tree, outermost first."""
    yield t
    if isinstance(t, (Ptr, Ref, Arr, QConst, QVolatile, QRestrict)):
        yield from walk(t.target)
    elif isinstance(t, Fun):
        for a in t.args:
            yield from walk(a)
        yield from walk(t.ret)


def referenced_classes(t: CPPType) -> Tuple[ClassRef, ...]:
    refs = []
    for node in walk(t):
        if isinstance(node, Prim) and isinstance(node.prim, ClassRef):
            refs.append(node.prim)
        elif isinstance(node, MPtr):
            refs.append(node.owner)
            if isinstance(node.prim, ClassRef):
                refs.append(node.prim)
    return tuple(refs)


def check_supported(t: CPPType, context: str = "") -> None:
    for node in walk(t):
        if isinstance(node, QRestrict):
            raise UnsupportedTypeError(render(t), context)


def wrapper_type(t: CPPType) -> str:
    """C-linkage spelling: class values, pointers and references become handles."""
    c = class_of(t)
    if c is not None:
        prefix = "const_" if is_const(t) else ""
        return f"{prefix}{c.name}_p"
    return render(t)


# ===============================================
# CONSTRUCTORS
# ===============================================

void_ = Prim(Primitive.VOID)
bool_ = Prim(Primitive.BOOL)
char_ = Prim(Primitive.CHAR)
int_ = Prim(Primitive.INT)
uint_ = Prim(Primitive.UINT)
long_ = Prim(Primitive.LONG)
ulong_ = Prim(Primitive.ULONG)
double_ = Prim(Primitive.DOUBLE)
cstring_ = Ptr(QConst(char_))


def _class_name(c: object) -> str:
    return c if isinstance(c, str) else getattr(c, "name")


def cppclass_(c: object) -> CPPType:
    """Class by value; accepts a class name or anything with a ``name``."""
    return Prim(ClassRef(_class_name(c)))


def cppclass(c: object, var: str) -> Tuple[CPPType, str]:
    """Class-by-value argument."""
    return cppclass_(c), var


def cppclassref_(c: object) -> CPPType:
    return Ref(cppclass_(c))


def cppclassptr_(c: object) -> CPPType:
    return Ptr(cppclass_(c))


__all__ = [
    "Primitive", "ClassRef", "PrimitiveType",
    "CPPType", "Ptr", "Ref", "Arr", "Fun", "QConst", "QVolatile", "QRestrict", "MPtr", "Prim",
    "render", "prim_name", "strip_cv", "is_const", "class_of", "is_class_type", "is_void",
    "walk", "referenced_classes", "check_supported", "wrapper_type",
    "void_", "bool_", "char_", "int_", "uint_", "long_", "ulong_", "double_", "cstring_",
    "cppclass_", "cppclass", "cppclassref_", "cppclassptr_",
]
