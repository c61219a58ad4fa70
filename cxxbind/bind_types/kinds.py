#!/usr/bin/env python3
"""
Enums for member categories and generated artifacts.
"""

from enum import Enum


class FunctionKind(Enum):
    CONSTRUCTOR = "constructor"
    VIRTUAL = "virtual"
    NON_VIRTUAL = "nonvirtual"
    STATIC = "static"
    DESTRUCTOR = "destructor"


class ModuleKind(Enum):
    CLASS = "class"
    TEMPLATE = "template"
    TOPLEVEL = "toplevel"
    PACKAGE = "package"


class ArtifactKind(Enum):
    """Every file the generator can produce."""
    # foreign side
    TYPE_HEADER = "type-header"
    WRAPPER_HEADER = "wrapper-header"
    WRAPPER_SOURCE = "wrapper-source"
    TEMPLATE_HEADER = "template-header"
    TOPLEVEL_HEADER = "toplevel-header"
    TOPLEVEL_SOURCE = "toplevel-source"
    # host side
    HANDLE = "handle"
    FFI = "ffi"
    INTERFACE = "interface"
    CAST = "cast"
    IMPLEMENTATION = "implementation"
    FORWARD_STUB = "forward-stub"
    MODULE = "module"
    TEMPLATE = "template"
    INSTANTIATION = "instantiation"
    TOPLEVEL = "toplevel"
    AGGREGATE = "aggregate"
    LIBRARY = "library"
    # packaging
    MANIFEST = "manifest"
