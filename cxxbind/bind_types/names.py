#!/usr/bin/env python3
"""
Name aliases shared by the model, the partitioner and the emitters.
"""

from typing import NewType

# ---------- Identities ----------
ClassName = NewType('ClassName', str)
ModuleName = NewType('ModuleName', str)      # dotted host module, e.g. "mysample.a"

# ---------- Generated identifiers ----------
SymbolName = NewType('SymbolName', str)      # C-linkage export
EntryName = NewType('EntryName', str)        # public host-side name
HeaderName = NewType('HeaderName', str)

# ---------- Materialization ----------
ArtifactPath = NewType('ArtifactPath', str)  # posix path relative to the install root
Digest = NewType('Digest', str)
