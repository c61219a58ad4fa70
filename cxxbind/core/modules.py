#!/usr/bin/env python3
"""
Module partitioner.

Turns the resolved hierarchy into compilation/import units: one module per
class, one per template class and one for the package's free functions.
Every class module carries four import sets:

- raw imports: handle layers needed by the wrapped signatures
- same-layer imports: what only the implementation glue needs
- parent-layer imports: capability layers the interface subclasses or
  names eagerly
- deferred imports: capability layers that can only be named through a
  forward stub, because eagerly importing them would close a cycle

Modules are immutable; a changed class set means a new partition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from cxxbind.bind_types import HeaderName, ModuleName
from cxxbind.core.cpp_types import referenced_classes
from cxxbind.core.hierarchy import HierarchyResolver, WrappedFunction
from cxxbind.core.model import (
    Class, ClassHeaderInfo, Package, PackageDeclaration, TemplateClass, TemplateInstantiation,
    TopLevelFunction, args_and_return, is_virtual,
)
from cxxbind.core.naming import class_module, template_module, toplevel_module
from cxxbind.meta import DEFAULT_META, LayoutMeta

logger = logging.getLogger(__name__)


def default_header_info(c: Class) -> ClassHeaderInfo:
    return ClassHeaderInfo(namespaces=(), headers=(HeaderName(f"{c.name}.h"),))


# ===============================================
# MODULE RECORDS
# ===============================================


@dataclass(frozen=True)
class ClassImportHeader:
    """C side of one class module."""
    cls: Class
    self_header: HeaderName
    self_source: str
    namespaces: Tuple[str, ...]
    headers: Tuple[HeaderName, ...]             # C++ headers of the class itself
    dependency_headers: Tuple[HeaderName, ...]  # C++ headers of classes in its signatures


@dataclass(frozen=True)
class ClassModule:
    name: ModuleName
    cls: Class
    header: ClassImportHeader
    wrapped: Tuple[WrappedFunction, ...]
    raw_imports: Tuple[Class, ...]
    interface_refs: Tuple[Class, ...]
    parent_imports: Tuple[Class, ...]
    deferred_imports: Tuple[Class, ...]
    same_layer_imports: Tuple[Class, ...]

    @property
    def parents(self) -> Tuple[Class, ...]:
        return tuple(self.cls.parents)

    def modules_of(self, classes: Iterable[Class]) -> Tuple[ModuleName, ...]:
        return tuple(class_module(c) for c in classes)


@dataclass(frozen=True)
class TemplateClassModule:
    name: ModuleName
    template: TemplateClass
    header: HeaderName
    cxx_header: HeaderName                       # user header declaring the template
    instantiations: Tuple[TemplateInstantiation, ...]


@dataclass(frozen=True)
class TopLevelImportHeader:
    name: ModuleName
    package: Package
    functions: Tuple[TopLevelFunction, ...]
    self_header: HeaderName
    self_source: str
    raw_imports: Tuple[Class, ...]
    headers: Tuple[HeaderName, ...]


@dataclass(frozen=True)
class PackageConfig:
    """The complete partition of one package."""
    package: Package
    class_modules: Tuple[ClassModule, ...]
    template_modules: Tuple[TemplateClassModule, ...]
    toplevel: TopLevelImportHeader
    forward_stubs: FrozenSet[ModuleName]
    type_header: HeaderName
    extra_libs: Tuple[str, ...] = ()

    def module_for(self, c: Class) -> ClassModule:
        for m in self.class_modules:
            if m.cls is c:
                return m
        raise KeyError(c.name)


# ===============================================
# PARTITIONER
# ===============================================


def _unique(classes: Iterable[Class]) -> List[Class]:
    seen: Set[int] = set()
    out: List[Class] = []
    for c in classes:
        if id(c) not in seen:
            seen.add(id(c))
            out.append(c)
    return out


def _sorted(classes: Iterable[Class]) -> Tuple[Class, ...]:
    return tuple(sorted(_unique(classes), key=lambda c: c.name))


class ModulePartitioner:
    def __init__(self, resolver: HierarchyResolver,
                 header_map: Optional[Mapping[str, ClassHeaderInfo]] = None,
                 meta: LayoutMeta = DEFAULT_META):
        self.resolver = resolver
        self.header_map = dict(header_map or {})
        self.meta = meta

    def header_info(self, c: Class) -> ClassHeaderInfo:
        return self.header_map.get(c.name) or default_header_info(c)

    def _classes_in(self, types) -> List[Class]:
        found = []
        for t in types:
            for ref in referenced_classes(t):
                c = self.resolver.class_named(ref.name)
                if c is not None:
                    found.append(c)
        return found

    # -------- per-class sets --------

    def raw_imports(self, c: Class) -> Tuple[Class, ...]:
        types = []
        for w in self.resolver.wrapped_functions(c):
            args, ret = args_and_return(w.function, c.self_type)
            types.extend(t for t, _ in args)
            types.append(ret)
        return _sorted(x for x in self._classes_in(types) if x is not c)

    def interface_refs(self, c: Class) -> Tuple[Class, ...]:
        types = []
        for f in c.funcs:
            if is_virtual(f) and f.name not in c.protected:
                types.extend(t for t, _ in f.args)
                types.append(f.ret)
        parents = {id(p) for p in c.parents}
        return _sorted(x for x in self._classes_in(types) if x is not c and id(x) not in parents)

    def deferred_edges(self) -> Dict[int, Tuple[Class, ...]]:
        """Interface references that would close an import cycle.

        An edge C -> R is deferred when R's interface layer reaches C's
        through parent or reference edges; a descendant named by an
        ancestor is the common case.
        """
        refs = {id(c): self.interface_refs(c) for c in self.resolver.classes}
        daughters = self.resolver.daughter_map()

        def reaches(start: Class, goal: Class) -> bool:
            seen: Set[int] = set()
            stack = [start]
            while stack:
                node = stack.pop()
                if node is goal:
                    return True
                if id(node) in seen:
                    continue
                seen.add(id(node))
                stack.extend(node.parents)
                stack.extend(refs[id(node)])
            return False

        deferred: Dict[int, Tuple[Class, ...]] = {}
        for c in self.resolver.classes:
            descendants = {id(d) for d in daughters[class_module(c)]}
            deferred[id(c)] = tuple(r for r in refs[id(c)] if id(r) in descendants or reaches(r, c))
        return deferred

    def build_class_module(self, c: Class, deferred: Tuple[Class, ...],
                           dsm: Optional[Dict[ModuleName, List[Class]]] = None) -> ClassModule:
        raw = self.raw_imports(c)
        refs = self.interface_refs(c)
        deferred_ids = {id(d) for d in deferred}
        parent_layer = _unique(list(c.parents) + [r for r in refs if id(r) not in deferred_ids])
        # ancestors via the inclusive daughter map
        if dsm is None:
            dsm = self.resolver.daughter_self_map()
        ancestors = [a for a in self.resolver.classes
                     if a is not c and any(d is c for d in dsm[class_module(a)])]
        same_layer = _sorted(ancestors + list(raw))

        info = self.header_info(c)
        dep_headers: List[HeaderName] = []
        for r in _unique(list(self.resolver.ancestor_closure(c)) + list(raw)):
            for h in self.header_info(r).headers:
                if h not in info.headers and h not in dep_headers:
                    dep_headers.append(h)
        prefix = c.package.cheader_prefix
        header = ClassImportHeader(
            cls=c,
            self_header=HeaderName(self.meta.cxx.header_for(prefix, c.name)),
            self_source=self.meta.cxx.source_for(prefix, c.name),
            namespaces=tuple(info.namespaces),
            headers=tuple(info.headers),
            dependency_headers=tuple(dep_headers),
        )
        return ClassModule(
            name=class_module(c),
            cls=c,
            header=header,
            wrapped=self.resolver.wrapped_functions(c),
            raw_imports=raw,
            interface_refs=refs,
            parent_imports=tuple(parent_layer),
            deferred_imports=_sorted(deferred),
            same_layer_imports=same_layer,
        )

    # -------- package level --------

    def toplevel_header(self, package: Package, functions: Iterable[TopLevelFunction]) -> TopLevelImportHeader:
        functions = tuple(functions)
        types = []
        for fn in functions:
            types.extend(t for t, _ in fn.args)
            types.append(fn.ret)
        raw = _sorted(self._classes_in(types))
        headers: List[HeaderName] = []
        for c in raw:
            for h in self.header_info(c).headers:
                if h not in headers:
                    headers.append(h)
        prefix = package.cheader_prefix
        return TopLevelImportHeader(
            name=toplevel_module(package),
            package=package,
            functions=functions,
            self_header=HeaderName(self.meta.cxx.toplevel_header.format(prefix=prefix)),
            self_source=self.meta.cxx.toplevel_source.format(prefix=prefix),
            raw_imports=raw,
            headers=tuple(headers),
        )

    def template_modules(self, decl: PackageDeclaration) -> Tuple[TemplateClassModule, ...]:
        modules = []
        for t, cxx_header in decl.templates:
            requests = tuple(i for i in decl.instantiations if i.template is t)
            modules.append(TemplateClassModule(
                name=template_module(t),
                template=t,
                header=HeaderName(self.meta.cxx.template_header.format(prefix=t.package.cheader_prefix, name=t.name)),
                cxx_header=cxx_header,
                instantiations=requests,
            ))
        return tuple(modules)

    def partition(self, decl: PackageDeclaration) -> PackageConfig:
        deferred = self.deferred_edges()
        dsm = self.resolver.daughter_self_map()
        modules = tuple(self.build_class_module(c, deferred[id(c)], dsm)
                        for c in sorted(self.resolver.classes, key=lambda c: c.name))
        stubs = frozenset(class_module(d) for m in modules for d in m.deferred_imports)
        for m in modules:
            logger.debug("module %s: raw=%s parent=%s deferred=%s", m.name,
                         [c.name for c in m.raw_imports], [c.name for c in m.parent_imports],
                         [c.name for c in m.deferred_imports])
        config = PackageConfig(
            package=decl.package,
            class_modules=modules,
            template_modules=self.template_modules(decl),
            toplevel=self.toplevel_header(decl.package, decl.toplevel_functions),
            forward_stubs=stubs,
            type_header=HeaderName(self.meta.cxx.type_header.format(prefix=decl.package.cheader_prefix)),
            extra_libs=tuple(decl.extra_libs),
        )
        logger.info("partitioned %d classes into %d class modules, %d template modules, %d forward stubs",
                    len(self.resolver.classes), len(modules), len(config.template_modules), len(stubs))
        return config


__all__ = [
    "default_header_info",
    "ClassImportHeader", "ClassModule", "TemplateClassModule", "TopLevelImportHeader", "PackageConfig",
    "ModulePartitioner",
]
