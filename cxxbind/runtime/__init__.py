#!/usr/bin/env python3
"""
Runtime support imported by generated binding packages.
"""

from .handle import (
    RawObject, ForeignHandle, get_fptr,
    castable, handle_class, cast_fptr_to_obj, upcast, downcast,
    Capability, implements, ForwardCapability,
)
from .library import ForeignLibrary, ForeignFunction, LIBRARY_PATH_ENV
from .template import InstantiationRequest, TemplateMember

__all__ = [
    "RawObject", "ForeignHandle", "get_fptr",
    "castable", "handle_class", "cast_fptr_to_obj", "upcast", "downcast",
    "Capability", "implements", "ForwardCapability",
    "ForeignLibrary", "ForeignFunction", "LIBRARY_PATH_ENV",
    "InstantiationRequest", "TemplateMember",
]
