from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Optional

DEFAULT_BANNER = "Generated by cxxbind. Do not edit."


@dataclass
class GeneratorConfig:
    # ===== OUTPUT LOCATIONS =====
    working_directory: str = "working"          # staging tree, every run writes here first
    install_directory: Optional[str] = None     # staged files are copied here when set

    # ===== PACKAGE IDENTITY =====
    summary_module: Optional[str] = None        # aggregate module; the package __init__ by default
    library_name: Optional[str] = None          # shared wrapper library; the package name by default

    # ===== EMISSION =====
    runtime_module: str = "cxxbind.runtime"
    cxx_source_dir: str = "csrc"
    host_source_dir: str = "src"
    emit_manifest: bool = True
    manifest_name: str = "MANIFEST.xml"
    banner: str = DEFAULT_BANNER
    toplevel_namespaces: List[str] = field(default_factory=list)

    def with_overrides(self, **changes) -> "GeneratorConfig":
        """Copy with every non-None keyword applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


DEFAULT_CONFIG = GeneratorConfig()

__all__ = [
    "DEFAULT_BANNER",
    "GeneratorConfig",
    "DEFAULT_CONFIG",
]
