#!/usr/bin/env python3
"""
Pipeline driver.

declarations -> hierarchy resolver -> module partitioner -> emission engine
-> template glue -> materializer. Everything that can fail on the model
fails before the first file is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Tuple

from cxxbind.app.config import DEFAULT_CONFIG, GeneratorConfig
from cxxbind.bind_types import ArtifactKind, ArtifactPath, ModuleKind
from cxxbind.core.errors import BindingError, UndeclaredClassError
from cxxbind.core.hierarchy import HierarchyResolver
from cxxbind.core.model import PackageDeclaration
from cxxbind.core.modules import ModulePartitioner, PackageConfig
from cxxbind.core.naming import SymbolTable, package_module
from cxxbind.gen.engine import Artifact, EmissionEngine
from cxxbind.gen.manifest import build_manifest
from cxxbind.gen.materializer import MaterializeReport, Materializer, digests_of
from cxxbind.meta import DEFAULT_META, LayoutMeta

logger = logging.getLogger(__name__)

MANIFEST_UNIT = "manifest"


@dataclass
class BuildResult:
    package: PackageConfig
    symbols: SymbolTable
    artifacts: List[Artifact]
    rendered: Dict[ArtifactPath, str]
    report: MaterializeReport


def layout_for(config: GeneratorConfig) -> LayoutMeta:
    return LayoutMeta(
        cxx=replace(DEFAULT_META.cxx, source_dir=config.cxx_source_dir),
        host=replace(DEFAULT_META.host, source_dir=config.host_source_dir),
    )


def _check_instantiations(decl: PackageDeclaration) -> None:
    declared = {id(t) for t, _ in decl.templates}
    for inst in decl.instantiations:
        if id(inst.template) not in declared:
            raise UndeclaredClassError(inst.template.name, "template instantiation")


def prepare(decl: PackageDeclaration, config: GeneratorConfig = DEFAULT_CONFIG
            ) -> Tuple[PackageConfig, SymbolTable, List[Artifact]]:
    """Validate the model and emit every declaration, without any I/O."""
    meta = layout_for(config)
    logger.info("hierarchy resolution")
    resolver = HierarchyResolver(decl.classes)
    resolver.check_references(decl.toplevel_functions, [t for t, _ in decl.templates])
    _check_instantiations(decl)

    logger.info("symbol table construction")
    requested = [(t, [i.argument for i in decl.instantiations if i.template is t]) for t, _ in decl.templates]
    symbols = resolver.symbol_table(decl.package, decl.toplevel_functions, requested)

    logger.info("module partitioning")
    package = ModulePartitioner(resolver, decl.header_map, meta).partition(decl)

    engine = EmissionEngine(package, resolver, symbols,
                            library_name=config.library_name or decl.package.name,
                            summary_module=config.summary_module, meta=meta,
                            runtime=config.runtime_module, namespaces=config.toplevel_namespaces)
    return package, symbols, engine.emit(config.banner)


def simple_builder(decl: PackageDeclaration, config: GeneratorConfig = DEFAULT_CONFIG) -> BuildResult:
    logger.info("----------------------------------------------------")
    logger.info("-- binding generation for %s", decl.package.name)
    logger.info("----------------------------------------------------")
    try:
        package, symbols, artifacts = prepare(decl, config)
    except BindingError as e:
        logger.error("generation aborted before writing: %s", e)
        raise

    materializer = Materializer(config.working_directory, config.install_directory, config.banner)
    rendered = materializer.render(artifacts)
    units: Dict[str, List[Tuple[ArtifactPath, str]]] = {}
    for a in artifacts:
        units.setdefault(a.unit, []).append((a.path, rendered[a.path]))

    if config.emit_manifest:
        logger.info("manifest generation")
        manifest = build_manifest(decl.package.name, config.summary_module or package_module(decl.package),
                                  config.library_name or decl.package.name, artifacts, digests_of(rendered))
        path = ArtifactPath(config.manifest_name)
        rendered[path] = manifest
        units[MANIFEST_UNIT] = [(path, manifest)]
        artifacts = artifacts + [Artifact(ArtifactKind.MANIFEST, path, MANIFEST_UNIT, ModuleKind.PACKAGE, manifest)]

    logger.info("writing files")
    report = materializer.materialize(units)
    return BuildResult(package, symbols, artifacts, rendered, report)


__all__ = ["BuildResult", "layout_for", "prepare", "simple_builder", "MANIFEST_UNIT"]
