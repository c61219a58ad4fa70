#!/usr/bin/env python3
"""
Hierarchy resolver: ancestor closures, daughter maps and the per-class list
of wrapped functions.

The resolver validates the class set once when it is built (undeclared
parents, parent cycles, duplicate class names/modules, class references in
signatures) and is read-only afterwards. Closures are computed lazily and
cached per class.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from cxxbind.bind_types import ModuleName
from cxxbind.core.cpp_types import CPPType, referenced_classes
from cxxbind.core.errors import NamingConflictError, ParentCycleError, UndeclaredClassError
from cxxbind.core.model import (
    Class, Function, Package, TemplateClass, TopLevelFunction,
    args_and_return, is_constructor, is_destructor, is_virtual, public_funcs,
)
from cxxbind.core.naming import (
    SymbolTable, check_entry_names, class_module, describe, entry_name,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WrappedFunction:
    """One C wrapper of ``owner``; ``origin`` is the class declaring it."""
    owner: Class
    origin: Class
    function: Function

    @property
    def inherited(self) -> bool:
        return self.origin is not self.owner


def _by_name(classes: Iterable[Class]) -> List[Class]:
    return sorted(classes, key=lambda c: c.name)


class HierarchyResolver:
    def __init__(self, classes: Sequence[Class]):
        self.classes: Tuple[Class, ...] = tuple(classes)
        self._members = {id(c) for c in self.classes}
        self._named: Dict[str, Class] = {}
        self._ancestors: Dict[int, Tuple[Class, ...]] = {}
        self._wrapped: Dict[int, Tuple[WrappedFunction, ...]] = {}
        self._check_identities()
        self._check_parents()
        self._check_cycles()

    # ===============================================
    # VALIDATION
    # ===============================================

    def _check_identities(self) -> None:
        modules: Dict[ModuleName, Class] = {}
        for c in self.classes:
            if c.name in self._named:
                raise NamingConflictError(c.name, repr(self._named[c.name]), repr(c), what="class name")
            self._named[c.name] = c
            module = class_module(c)
            if module in modules:
                raise NamingConflictError(module, repr(modules[module]), repr(c), what="module")
            modules[module] = c

    def _check_parents(self) -> None:
        for c in self.classes:
            for p in c.parents:
                if id(p) not in self._members:
                    logger.error("parent %s of %s is not declared", p.name, c.name)
                    raise UndeclaredClassError(p.name, c.name)

    def _check_cycles(self) -> None:
        # iterative DFS with an explicit path so the reported cycle is exact
        done: set = set()
        for root in self.classes:
            if id(root) in done:
                continue
            path: List[Class] = []
            on_path: Dict[int, int] = {}
            stack: List[Tuple[Class, Iterator[Class]]] = [(root, iter(root.parents))]
            path.append(root)
            on_path[id(root)] = 0
            while stack:
                node, children = stack[-1]
                child = next(children, None)
                if child is None:
                    stack.pop()
                    path.pop()
                    del on_path[id(node)]
                    done.add(id(node))
                    continue
                if id(child) in on_path:
                    cycle = [c.name for c in path[on_path[id(child)]:]] + [child.name]
                    logger.error("parent cycle detected: %s", " -> ".join(cycle))
                    raise ParentCycleError(cycle)
                if id(child) in done:
                    continue
                on_path[id(child)] = len(path)
                path.append(child)
                stack.append((child, iter(child.parents)))

    def check_references(self, toplevels: Iterable[TopLevelFunction] = (),
                         templates: Iterable[TemplateClass] = ()) -> None:
        """Every class named in a signature must be part of the class set."""
        for c in self.classes:
            for f in c.funcs:
                args, ret = args_and_return(f, c.self_type)
                self._check_types([t for t, _ in args] + [ret], describe(c, f))
        for fn in toplevels:
            self._check_types([t for t, _ in fn.args] + [fn.ret], fn.name)
        for t in templates:
            for f in t.funcs:
                args, ret = args_and_return(f, t.param_type)
                self._check_types([a for a, _ in args] + [ret], describe(t, f), allowed=(t.param,))

    def _check_types(self, types: Iterable[CPPType], context: str, allowed: Tuple[str, ...] = ()) -> None:
        for t in types:
            for ref in referenced_classes(t):
                if ref.name not in self._named and ref.name not in allowed:
                    logger.error("%s references undeclared class %s", context, ref.name)
                    raise UndeclaredClassError(ref.name, context)

    # ===============================================
    # CLOSURES AND DAUGHTER MAPS
    # ===============================================

    def class_named(self, name: str) -> Optional[Class]:
        return self._named.get(name)

    def ancestor_closure(self, c: Class) -> Tuple[Class, ...]:
        """Transitive parents, breadth-first, each class once; ``c`` excluded."""
        cached = self._ancestors.get(id(c))
        if cached is not None:
            return cached
        seen = {id(c)}
        order: List[Class] = []
        queue = deque(c.parents)
        while queue:
            p = queue.popleft()
            if id(p) in seen:
                continue
            seen.add(id(p))
            order.append(p)
            queue.extend(p.parents)
        result = tuple(order)
        self._ancestors[id(c)] = result
        return result

    def self_closure(self, c: Class) -> Tuple[Class, ...]:
        return (c,) + self.ancestor_closure(c)

    def daughter_map(self) -> Dict[ModuleName, List[Class]]:
        """Module of each class -> its strict descendants."""
        result: Dict[ModuleName, List[Class]] = {}
        for c in _by_name(self.classes):
            result[class_module(c)] = _by_name(d for d in self.classes if self.is_descendant(d, c))
        return result

    def daughter_self_map(self) -> Dict[ModuleName, List[Class]]:
        """Module of each class -> the class and its descendants."""
        result: Dict[ModuleName, List[Class]] = {}
        for module, daughters in self.daughter_map().items():
            owner = next(c for c in self.classes if class_module(c) == module)
            result[module] = _by_name(daughters + [owner])
        return result

    def is_descendant(self, c: Class, of: Class) -> bool:
        return any(a is of for a in self.ancestor_closure(c))

    # ===============================================
    # WRAPPED FUNCTIONS
    # ===============================================

    def wrapped_functions(self, c: Class) -> Tuple[WrappedFunction, ...]:
        cached = self._wrapped.get(id(c))
        if cached is not None:
            return cached
        own = public_funcs(c)
        if c.abstract:
            own = [f for f in own if not (is_constructor(f) or is_virtual(f))]
        result = [WrappedFunction(c, c, f) for f in own]
        if not c.abstract:
            result.extend(self._inherited_virtuals(c))
        if not any(is_destructor(f) for f in c.funcs):
            inherited = self.inherited_destructor(c)
            if inherited is not None:
                result.append(WrappedFunction(c, *inherited))
        check_entry_names(c, (w.function for w in result))
        wrapped = tuple(result)
        self._wrapped[id(c)] = wrapped
        return wrapped

    def _inherited_virtuals(self, c: Class) -> List[WrappedFunction]:
        # own virtuals hide inherited ones, protected or not
        own = {entry_name(c, f) for f in c.funcs if is_virtual(f)}
        found: Dict[str, WrappedFunction] = {}
        for a in self.ancestor_closure(c):
            for f in public_funcs(a):
                if not is_virtual(f) or f.name in c.protected:
                    continue
                name = entry_name(a, f)
                if name in own:
                    continue
                current = found.get(name)
                if current is None or self.is_descendant(a, current.origin):
                    found[name] = WrappedFunction(c, a, f)
                elif not self.is_descendant(current.origin, a):
                    logger.error("%s inherits %s from unrelated parents", c.name, name)
                    raise NamingConflictError(name, describe(current.origin, current.function), describe(a, f),
                                              what="inherited virtual")
        return list(found.values())

    def inherited_destructor(self, c: Class) -> Optional[Tuple[Class, Function]]:
        """Nearest ancestor destructor; deleting through ``c`` is never ambiguous."""
        for a in self.ancestor_closure(c):
            for f in a.funcs:
                if is_destructor(f):
                    return a, f
        return None

    def destructor_capability(self, c: Class) -> Optional[Class]:
        """Class whose capability declares ``delete`` for ``c``: the topmost destructor declarer."""
        for x in self.self_closure(c):
            if any(is_destructor(f) for f in x.funcs) and self.inherited_destructor(x) is None:
                return x
        return None

    def declares_delete(self, c: Class) -> bool:
        return self.destructor_capability(c) is c

    def symbol_table(self, package: Package, toplevels: Iterable[TopLevelFunction] = (),
                     templates: Iterable[Tuple[TemplateClass, Sequence[CPPType]]] = ()) -> SymbolTable:
        pairs = [(w.owner, w.function) for c in self.classes for w in self.wrapped_functions(c)]
        return SymbolTable.build(package, pairs, toplevels, templates)


__all__ = ["WrappedFunction", "HierarchyResolver"]
