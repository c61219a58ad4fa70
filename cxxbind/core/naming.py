#!/usr/bin/env python3
"""
Derived names: host-side class and entry names, module identities and the
flattened C-linkage wrapper symbols.

The symbol table is built once per run from every (class, function) pair
that gets a wrapper, checked for collisions before anything is emitted,
and dropped with the run.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, Optional, Sequence, Tuple

from cxxbind.bind_types import EntryName, ModuleName, SymbolName
from cxxbind.core.cpp_types import CPPType, render
from cxxbind.core.errors import NamingConflictError
from cxxbind.core.model import (
    Class, Constructor, Destructor, Function, Package, TemplateClass, TopLevelFunction,
    func_name, is_virtual,
)

logger = logging.getLogger(__name__)

DESTRUCTOR_NAME = "delete"


def first_lower(s: str) -> str:
    return s[:1].lower() + s[1:]


def first_upper(s: str) -> str:
    return s[:1].upper() + s[1:]


# ===============================================
# CLASS LEVEL NAMES
# ===============================================


def host_class_name(c: Class) -> Tuple[str, str]:
    """(handle name, raw name); the alias wins over the C++ name."""
    name = c.alias or c.name
    return name, "Raw" + name


def capability_name(c: Class) -> str:
    return "I" + host_class_name(c)[0]


def constructor_name(c: Class) -> str:
    return "new" + host_class_name(c)[0]


def nonvirtual_name(c: Class, name: str) -> str:
    return first_lower(host_class_name(c)[0]) + name


def upcast_name(c: Class) -> str:
    return "upcast" + host_class_name(c)[0]


def downcast_name(c: Class) -> str:
    return "downcast" + host_class_name(c)[0]


def class_module(c: Class) -> ModuleName:
    return ModuleName(f"{c.package.module_prefix}.{host_class_name(c)[0]}".lower())


def template_module(t: TemplateClass) -> ModuleName:
    return ModuleName(f"{t.package.module_prefix}.{t.name}".lower())


def toplevel_module(package: Package) -> ModuleName:
    return ModuleName(f"{package.module_prefix}.toplevel".lower())


def package_module(package: Package) -> ModuleName:
    return ModuleName(package.module_prefix.lower())


# ===============================================
# ENTRY NAMES
# ===============================================


def entry_name(c: Class, f: Function) -> EntryName:
    if f.alias:
        return EntryName(f.alias)
    if isinstance(f, Constructor):
        return EntryName(constructor_name(c))
    if isinstance(f, Destructor):
        return EntryName(DESTRUCTOR_NAME)
    if is_virtual(f):
        return EntryName(f.name)
    return EntryName(nonvirtual_name(c, f.name))


def host_entry_name(c: Class, f: Function) -> EntryName:
    return EntryName(first_lower(entry_name(c, f)))


def wrapper_symbol(c: Class, f: Function) -> SymbolName:
    return SymbolName(f"{c.package.name}_{c.name.lower()}_{entry_name(c, f).lower()}")


def toplevel_entry_name(fn: TopLevelFunction) -> EntryName:
    return EntryName(first_lower(fn.alias or fn.name))


def toplevel_symbol(package: Package, fn: TopLevelFunction) -> SymbolName:
    return SymbolName(f"{package.name}_{toplevel_entry_name(fn).lower()}")


def template_member_name(t: TemplateClass, f: Function) -> str:
    """Member spelling used in template macros: ``new``, ``delete`` or the C++ name."""
    if isinstance(f, Constructor):
        return "new"
    if isinstance(f, Destructor):
        return DESTRUCTOR_NAME
    return f.name


def template_entry_name(t: TemplateClass, f: Function) -> EntryName:
    if f.alias:
        return EntryName(f.alias)
    if isinstance(f, Constructor):
        return EntryName("new" + t.name)
    if isinstance(f, Destructor):
        return EntryName(DESTRUCTOR_NAME + t.name)
    return EntryName(f.name)


def type_tag(t: CPPType) -> str:
    """Identifier-safe spelling of a concrete template argument."""
    spelled = render(t).replace("*", " ptr ").replace("&", " ref ")
    return re.sub(r"\W+", "_", spelled).strip("_")


def template_symbol(t: TemplateClass, f: Function, argument: CPPType) -> SymbolName:
    return SymbolName(f"{t.name}_{template_member_name(t, f)}_{type_tag(argument)}")


def template_macro(t: TemplateClass, f: Function, suffix: str) -> SymbolName:
    """Name of a member's ``_decl`` or ``_inst`` macro."""
    return SymbolName(f"{t.name}_{template_member_name(t, f)}_{suffix}")


def describe(owner: object, f: Optional[Function] = None) -> str:
    """Human readable name of a declaration, used in error messages."""
    owner_name = getattr(owner, "name", str(owner))
    if f is None:
        return owner_name
    return f"{owner_name}::{func_name(f) or f.kind.value}"


# ===============================================
# SYMBOL TABLE
# ===============================================


class SymbolTable:
    """Run-scoped registry of every wrapper symbol.

    Any two declarations flattening to the same symbol abort the run.
    """

    def __init__(self) -> None:
        self._owners: Dict[SymbolName, str] = {}
        self._by_decl: Dict[Tuple[int, Function], SymbolName] = {}

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._owners

    def __len__(self) -> int:
        return len(self._owners)

    def add(self, symbol: SymbolName, owner: str) -> None:
        if symbol in self._owners:
            raise NamingConflictError(symbol, self._owners[symbol], owner)
        self._owners[symbol] = owner

    def add_method(self, c: Class, f: Function) -> SymbolName:
        symbol = wrapper_symbol(c, f)
        self.add(symbol, describe(c, f))
        self._by_decl[(id(c), f)] = symbol
        return symbol

    def symbol_for(self, c: Class, f: Function) -> SymbolName:
        return self._by_decl[(id(c), f)]

    def add_template(self, t: TemplateClass, arguments: Iterable[CPPType] = ()) -> None:
        """Macro names of every member, then the symbol of each requested instantiation."""
        arguments = tuple(arguments)
        for f in t.funcs:
            owner = describe(t, f)
            self.add(template_macro(t, f, "decl"), owner)
            for argument in arguments:
                self.add(template_symbol(t, f, argument), f"{owner}<{render(argument)}>")

    def symbols(self) -> Tuple[SymbolName, ...]:
        return tuple(sorted(self._owners))

    @classmethod
    def build(cls, package: Package,
              methods: Iterable[Tuple[Class, Function]],
              toplevels: Iterable[TopLevelFunction] = (),
              templates: Iterable[Tuple[TemplateClass, Sequence[CPPType]]] = ()) -> "SymbolTable":
        table = cls()
        for c, f in methods:
            table.add_method(c, f)
        for fn in toplevels:
            table.add(toplevel_symbol(package, fn), describe(package, None) + "::" + fn.name)
        for t, arguments in templates:
            table.add_template(t, arguments)
        logger.debug("symbol table built with %d symbols", len(table))
        return table


def check_entry_names(c: Class, funcs: Iterable[Function]) -> None:
    """Public entry names must be unique within one class."""
    seen: Dict[str, Function] = {}
    for f in funcs:
        name = host_entry_name(c, f)
        if name in seen:
            raise NamingConflictError(name, describe(c, seen[name]), describe(c, f), what="entry name")
        seen[name] = f


__all__ = [
    "DESTRUCTOR_NAME", "first_lower", "first_upper",
    "host_class_name", "capability_name", "constructor_name", "nonvirtual_name",
    "upcast_name", "downcast_name",
    "class_module", "template_module", "toplevel_module", "package_module",
    "entry_name", "host_entry_name", "wrapper_symbol",
    "toplevel_entry_name", "toplevel_symbol",
    "template_member_name", "template_entry_name", "type_tag", "template_symbol", "template_macro",
    "describe", "SymbolTable", "check_entry_names",
]
