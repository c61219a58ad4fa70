#!/usr/bin/env python3
"""
Binding model: types, classes, naming, hierarchy and module partitioning.
"""

from .errors import (
    BindingError, ModelError, DeclarationError, UndeclaredClassError,
    ParentCycleError, UnsupportedTypeError, NamingConflictError, MaterializeError,
)
from .hierarchy import HierarchyResolver, WrappedFunction
from .modules import ModulePartitioner, PackageConfig, ClassModule, TemplateClassModule

__all__ = [
    "BindingError", "ModelError", "DeclarationError", "UndeclaredClassError",
    "ParentCycleError", "UnsupportedTypeError", "NamingConflictError", "MaterializeError",
    "HierarchyResolver", "WrappedFunction",
    "ModulePartitioner", "PackageConfig", "ClassModule", "TemplateClassModule",
]
