#!/usr/bin/env python3
"""
Emission engine: structured declarations for every module of a package.

The engine never touches the file system. It validates the wrapped
signatures, then turns the partition into ``Artifact`` records holding
either a ``CSource`` (foreign side) or an ``ast.Module`` (host side),
each tagged with its install path and the module it belongs to.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Union

from cxxbind.bind_types import ArtifactKind, ArtifactPath, ModuleKind
from cxxbind.core.cpp_types import check_supported
from cxxbind.core.errors import NamingConflictError
from cxxbind.core.hierarchy import HierarchyResolver
from cxxbind.core.model import args_and_return
from cxxbind.core.modules import ClassModule, PackageConfig, TemplateClassModule
from cxxbind.core.naming import SymbolTable, describe, package_module
from cxxbind.gen.cxx import template as cxx_template
from cxxbind.gen.cxx import wrapper
from cxxbind.gen.cxx.decl import CSource
from cxxbind.gen.py import frontend
from cxxbind.gen.py import template as py_template
from cxxbind.meta import DEFAULT_META, LayoutMeta

logger = logging.getLogger(__name__)

Declaration = Union[ast.Module, CSource, str]

PACKAGE_UNIT = "package"


@dataclass(frozen=True)
class Artifact:
    kind: ArtifactKind
    path: ArtifactPath                # posix, relative to the install root
    unit: str                         # module the artifact belongs to
    unit_kind: ModuleKind
    declaration: Declaration


class EmissionEngine:
    def __init__(self, config: PackageConfig, resolver: HierarchyResolver, symbols: SymbolTable,
                 library_name: str, summary_module: Optional[str] = None,
                 meta: LayoutMeta = DEFAULT_META, runtime: str = frontend.RUNTIME,
                 namespaces: Iterable[str] = ()):
        self.config = config
        self.resolver = resolver
        self.symbols = symbols
        self.meta = meta
        self.summary_module = summary_module or package_module(config.package)
        self.namespaces = tuple(namespaces)
        self.host = frontend.HostContext(config, resolver, symbols, library_name, meta, runtime)
        self._paths: Dict[str, str] = {}

    # ===============================================
    # VALIDATION
    # ===============================================

    def validate(self) -> None:
        """Reject signatures the wrapper layer cannot express."""
        for m in self.config.class_modules:
            for w in m.wrapped:
                args, ret = args_and_return(w.function, m.cls.self_type)
                context = describe(w.origin, w.function)
                for t, _ in args:
                    check_supported(t, context)
                check_supported(ret, context)
        for fn in self.config.toplevel.functions:
            for t, _ in fn.args:
                check_supported(t, fn.name)
            check_supported(fn.ret, fn.name)
        for tm in self.config.template_modules:
            for f in tm.template.funcs:
                args, ret = args_and_return(f, tm.template.param_type)
                for t in [a for a, _ in args] + [ret]:
                    check_supported(t, describe(tm.template, f))
            for inst in tm.instantiations:
                check_supported(inst.argument, describe(tm.template))

    # ===============================================
    # PATHS
    # ===============================================

    def cxx_path(self, name: str) -> ArtifactPath:
        return ArtifactPath(f"{self.meta.cxx.source_dir}/{name}")

    def host_path(self, module: str) -> ArtifactPath:
        return ArtifactPath(f"{self.meta.host.source_dir}/{module.replace('.', '/')}{self.meta.host.extension}")

    def package_path(self) -> ArtifactPath:
        pkg = package_module(self.config.package)
        if self.summary_module == pkg:
            return ArtifactPath(f"{self.meta.host.source_dir}/{pkg.replace('.', '/')}/__init__.py")
        return self.host_path(self.summary_module)

    def _artifact(self, kind: ArtifactKind, path: ArtifactPath, unit: str, unit_kind: ModuleKind,
                  declaration: Declaration) -> Artifact:
        key = path.lower()
        if key in self._paths:
            raise NamingConflictError(path, self._paths[key], unit, what="artifact path")
        self._paths[key] = unit
        return Artifact(kind, path, unit, unit_kind, declaration)

    # ===============================================
    # PHASES
    # ===============================================

    def type_header_artifacts(self, banner: str = "") -> List[Artifact]:
        src = wrapper.type_header(self.config, self.meta, banner)
        return [self._artifact(ArtifactKind.TYPE_HEADER, self.cxx_path(src.name), PACKAGE_UNIT,
                               ModuleKind.PACKAGE, src)]

    def header_artifacts(self, banner: str = "") -> List[Artifact]:
        out = []
        for m in self.config.class_modules:
            src = wrapper.wrapper_header(m, self.config, self.symbols, self.meta, banner)
            out.append(self._artifact(ArtifactKind.WRAPPER_HEADER, self.cxx_path(src.name), m.name,
                                      ModuleKind.CLASS, src))
        return out

    def source_artifacts(self, banner: str = "") -> List[Artifact]:
        out = []
        for m in self.config.class_modules:
            src = wrapper.wrapper_source(m, self.symbols, banner)
            out.append(self._artifact(ArtifactKind.WRAPPER_SOURCE, self.cxx_path(src.name), m.name,
                                      ModuleKind.CLASS, src))
        return out

    def class_module_artifacts(self, m: ClassModule) -> List[Artifact]:
        h = self.host
        layers = [
            (ArtifactKind.HANDLE, self.meta.host.rawtype, frontend.rawtype_module(h, m.cls)),
            (ArtifactKind.FFI, self.meta.host.ffi, frontend.ffi_module(h, m)),
            (ArtifactKind.INTERFACE, self.meta.host.interface, frontend.interface_module(h, m)),
            (ArtifactKind.CAST, self.meta.host.cast, frontend.cast_module(h, m)),
            (ArtifactKind.IMPLEMENTATION, self.meta.host.implementation, frontend.implementation_module(h, m)),
        ]
        if m.name in self.config.forward_stubs:
            layers.append((ArtifactKind.FORWARD_STUB, self.meta.host.forward_stub, frontend.stub_module(h, m.cls)))
        out = [self._artifact(kind, self.host_path(m.name + suffix), m.name, ModuleKind.CLASS, tree)
               for kind, suffix, tree in layers]
        out.append(self._artifact(ArtifactKind.MODULE, self.host_path(m.name), m.name, ModuleKind.CLASS,
                                  frontend.surface_module(h, m)))
        return out

    def host_artifacts(self) -> List[Artifact]:
        out: List[Artifact] = []
        for m in self.config.class_modules:
            out.extend(self.class_module_artifacts(m))
        return out

    def template_artifacts(self, banner: str = "") -> List[Artifact]:
        out: List[Artifact] = []
        for tm in self.config.template_modules:
            out.extend(self.template_module_artifacts(tm, banner))
        return out

    def template_module_artifacts(self, tm: TemplateClassModule, banner: str = "") -> List[Artifact]:
        h = self.host
        src = cxx_template.template_header(tm, self.config, self.meta, banner)
        return [
            self._artifact(ArtifactKind.TEMPLATE_HEADER, self.cxx_path(src.name), tm.name, ModuleKind.TEMPLATE, src),
            self._artifact(ArtifactKind.TEMPLATE, self.host_path(tm.name + self.meta.host.template), tm.name,
                           ModuleKind.TEMPLATE, py_template.template_host_module(h, tm)),
            self._artifact(ArtifactKind.INSTANTIATION, self.host_path(tm.name + self.meta.host.instantiation),
                           tm.name, ModuleKind.TEMPLATE, py_template.instantiation_host_module(h, tm)),
            self._artifact(ArtifactKind.MODULE, self.host_path(tm.name), tm.name, ModuleKind.TEMPLATE,
                           py_template.template_surface_module(h, tm)),
        ]

    def toplevel_artifacts(self, banner: str = "") -> List[Artifact]:
        top = self.config.toplevel
        if not top.functions:
            return []
        header = wrapper.toplevel_header(top, self.config, self.meta, banner)
        source = wrapper.toplevel_source(top, self.namespaces, banner)
        return [
            self._artifact(ArtifactKind.TOPLEVEL_HEADER, self.cxx_path(header.name), top.name,
                           ModuleKind.TOPLEVEL, header),
            self._artifact(ArtifactKind.TOPLEVEL_SOURCE, self.cxx_path(source.name), top.name,
                           ModuleKind.TOPLEVEL, source),
            self._artifact(ArtifactKind.TOPLEVEL, self.host_path(top.name), top.name, ModuleKind.TOPLEVEL,
                           frontend.toplevel_host_module(self.host)),
        ]

    def package_artifacts(self) -> List[Artifact]:
        h = self.host
        extra = []
        if self.config.toplevel.functions:
            extra.append((self.config.toplevel.name, frontend.toplevel_names(h)))
        for tm in self.config.template_modules:
            extra.append((tm.name, [n for _, names in py_template.template_surface_names(h, tm, self.meta)
                                    for n in names]))
        return [
            self._artifact(ArtifactKind.LIBRARY, self.host_path(h.library_module), PACKAGE_UNIT,
                           ModuleKind.PACKAGE, frontend.library_module(h)),
            self._artifact(ArtifactKind.AGGREGATE, self.package_path(), PACKAGE_UNIT, ModuleKind.PACKAGE,
                           frontend.aggregate_module(h, extra)),
        ]

    def emit(self, banner: str = "") -> List[Artifact]:
        """Every artifact of the package, validation first."""
        self.validate()
        self._paths.clear()
        phases = [
            ("type header generation", lambda: self.type_header_artifacts(banner)),
            ("header file generation", lambda: self.header_artifacts(banner)),
            ("cpp file generation", lambda: self.source_artifacts(banner)),
            ("host module generation", self.host_artifacts),
            ("template glue generation", lambda: self.template_artifacts(banner)),
            ("top-level function generation", lambda: self.toplevel_artifacts(banner)),
            ("package module generation", self.package_artifacts),
        ]
        artifacts: List[Artifact] = []
        for phase, run in phases:
            logger.info(phase)
            artifacts += run()
        logger.info("emitted %d artifacts for %d modules", len(artifacts), len({a.unit for a in artifacts}))
        return artifacts


__all__ = ["Artifact", "Declaration", "EmissionEngine", "PACKAGE_UNIT"]
