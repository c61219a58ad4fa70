#!/usr/bin/env python3
"""
Types module for cxxbind.
Centralized type definitions organized by domain.
"""

from .names import (
    ClassName, ModuleName, SymbolName, EntryName,
    HeaderName, ArtifactPath, Digest
)

from .kinds import (
    FunctionKind, ArtifactKind, ModuleKind
)

__all__ = [
    # Names
    'ClassName', 'ModuleName', 'SymbolName', 'EntryName',
    'HeaderName', 'ArtifactPath', 'Digest',

    # Kinds
    'FunctionKind', 'ArtifactKind', 'ModuleKind',
]
