#!/usr/bin/env python3
"""
Function / class / template model supplied by the caller.

Classes are mutable nodes while a declaration is being assembled (a loader
creates every class first and wires ``parents`` afterwards) and compare by
identity, so two distinct declarations never collapse into one even when
they share a name. Everything derived from them downstream is immutable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple, Union

from cxxbind.bind_types import FunctionKind, HeaderName
from cxxbind.core.cpp_types import CPPType, ClassRef, Prim, void_
from cxxbind.core.errors import NamingConflictError

Arg = Tuple[CPPType, str]
Args = Tuple[Arg, ...]

# ===============================================
# PACKAGE IDENTITY
# ===============================================


@dataclass(frozen=True)
class Package:
    """Identity of the generated package."""
    name: str                        # "MySample"
    cheader_prefix: str = ""         # prefix of generated C headers
    module_prefix: str = ""          # host module prefix

    def __post_init__(self) -> None:
        if not self.cheader_prefix:
            object.__setattr__(self, "cheader_prefix", self.name)
        if not self.module_prefix:
            object.__setattr__(self, "module_prefix", self.name)


# ===============================================
# FUNCTIONS
# ===============================================


@dataclass(frozen=True)
class Constructor:
    args: Args = ()
    alias: Optional[str] = None

    kind = FunctionKind.CONSTRUCTOR


@dataclass(frozen=True)
class Virtual:
    ret: CPPType
    name: str
    args: Args = ()
    alias: Optional[str] = None

    kind = FunctionKind.VIRTUAL


@dataclass(frozen=True)
class NonVirtual:
    ret: CPPType
    name: str
    args: Args = ()
    alias: Optional[str] = None

    kind = FunctionKind.NON_VIRTUAL


@dataclass(frozen=True)
class Static:
    ret: CPPType
    name: str
    args: Args = ()
    alias: Optional[str] = None

    kind = FunctionKind.STATIC


@dataclass(frozen=True)
class Destructor:
    alias: Optional[str] = None

    kind = FunctionKind.DESTRUCTOR


Function = Union[Constructor, Virtual, NonVirtual, Static, Destructor]


def is_constructor(f: Function) -> bool:
    return f.kind is FunctionKind.CONSTRUCTOR


def is_virtual(f: Function) -> bool:
    return f.kind is FunctionKind.VIRTUAL


def is_non_virtual(f: Function) -> bool:
    return f.kind is FunctionKind.NON_VIRTUAL


def is_static(f: Function) -> bool:
    return f.kind is FunctionKind.STATIC


def is_destructor(f: Function) -> bool:
    return f.kind is FunctionKind.DESTRUCTOR


def func_name(f: Function) -> Optional[str]:
    """Declared C++ name; None for constructors and destructors."""
    return getattr(f, "name", None)


def args_and_return(f: Function, self_type: Optional[CPPType] = None) -> Tuple[Args, CPPType]:
    """Arguments and return type as seen by the wrapper.

    A constructor returns the handle of its class (``self_type``); a
    destructor takes nothing and returns void whatever was declared.
    """
    if isinstance(f, Constructor):
        if self_type is None:
            raise ValueError("constructor needs the type of its class")
        return f.args, self_type
    if isinstance(f, Destructor):
        return (), void_
    return f.args, f.ret


# ===============================================
# CLASSES
# ===============================================


@dataclass(eq=False)
class Class:
    """A foreign class. ``abstract`` classes are never constructed."""
    package: Package
    name: str
    parents: List["Class"] = field(default_factory=list)
    protected: FrozenSet[str] = frozenset()
    alias: Optional[str] = None
    funcs: List[Function] = field(default_factory=list)
    abstract: bool = False

    def __repr__(self) -> str:
        kind = "AbstractClass" if self.abstract else "Class"
        return f"{kind}({self.name!r})"

    @property
    def ref(self) -> ClassRef:
        return ClassRef(self.name)

    @property
    def self_type(self) -> CPPType:
        return Prim(self.ref)


def AbstractClass(package: Package, name: str, parents: Optional[List[Class]] = None,
                  protected: FrozenSet[str] = frozenset(), alias: Optional[str] = None,
                  funcs: Optional[List[Function]] = None) -> Class:
    return Class(package, name, list(parents or []), protected, alias, list(funcs or []), abstract=True)


def is_abstract_class(c: Class) -> bool:
    return c.abstract


@dataclass(frozen=True)
class FunctionGroups:
    """Disjoint categorization of a function list."""
    constructors: Tuple[Function, ...]
    virtuals: Tuple[Function, ...]
    non_virtuals: Tuple[Function, ...]
    statics: Tuple[Function, ...]
    destructor: Optional[Function]


def partition_functions(funcs: Sequence[Function]) -> FunctionGroups:
    groups: Dict[FunctionKind, List[Function]] = {k: [] for k in FunctionKind}
    for f in funcs:
        groups[f.kind].append(f)
    destructors = groups[FunctionKind.DESTRUCTOR]
    if len(destructors) > 1:
        raise NamingConflictError("delete", repr(destructors[0]), repr(destructors[1]), what="destructor")
    return FunctionGroups(
        constructors=tuple(groups[FunctionKind.CONSTRUCTOR]),
        virtuals=tuple(groups[FunctionKind.VIRTUAL]),
        non_virtuals=tuple(groups[FunctionKind.NON_VIRTUAL]),
        statics=tuple(groups[FunctionKind.STATIC]),
        destructor=destructors[0] if destructors else None,
    )


def public_funcs(c: Class) -> List[Function]:
    """Functions not hidden by the class's protected list."""
    return [f for f in c.funcs if func_name(f) not in c.protected]


# ===============================================
# TOP LEVEL FUNCTIONS
# ===============================================


@dataclass(frozen=True)
class TopLevelFunction:
    ret: CPPType
    name: str
    args: Args = ()
    alias: Optional[str] = None


# ===============================================
# TEMPLATES
# ===============================================


@dataclass(eq=False)
class TemplateClass:
    """A class template with one type parameter.

    Inside ``funcs`` the parameter is spelled ``ClassRef(param)``.
    """
    package: Package
    name: str
    param: str
    funcs: List[Function] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"TemplateClass({self.name!r})"

    @property
    def param_type(self) -> CPPType:
        return Prim(ClassRef(self.param))


@dataclass(frozen=True)
class TemplateInstantiation:
    """Request for one concrete argument of a template class."""
    template: TemplateClass
    argument: CPPType
    module: Optional[str] = None     # concrete host module; derived when omitted


# ===============================================
# PACKAGE DECLARATION
# ===============================================


@dataclass(frozen=True)
class ClassHeaderInfo:
    namespaces: Tuple[str, ...] = ()
    headers: Tuple[HeaderName, ...] = ()


@dataclass
class PackageDeclaration:
    """Everything the caller supplies for one generator run."""
    package: Package
    classes: List[Class] = field(default_factory=list)
    toplevel_functions: List[TopLevelFunction] = field(default_factory=list)
    templates: List[Tuple[TemplateClass, HeaderName]] = field(default_factory=list)
    instantiations: List[TemplateInstantiation] = field(default_factory=list)
    header_map: Dict[str, ClassHeaderInfo] = field(default_factory=dict)
    extra_libs: List[str] = field(default_factory=list)


__all__ = [
    "Arg", "Args", "Package",
    "Constructor", "Virtual", "NonVirtual", "Static", "Destructor", "Function",
    "is_constructor", "is_virtual", "is_non_virtual", "is_static", "is_destructor",
    "func_name", "args_and_return",
    "Class", "AbstractClass", "is_abstract_class", "FunctionGroups", "partition_functions", "public_funcs",
    "TopLevelFunction", "TemplateClass", "TemplateInstantiation",
    "ClassHeaderInfo", "PackageDeclaration",
]
