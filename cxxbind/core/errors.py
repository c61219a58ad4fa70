#!/usr/bin/env python3
"""
Error taxonomy of the generator.

Model errors and naming conflicts are raised while the declarations are
validated, before anything reaches the Materializer. I/O errors are raised
by the Materializer itself.
"""

from __future__ import annotations

from typing import Iterable, Sequence, Tuple


class BindingError(Exception):
    """Base class for every error the generator reports."""


# ===============================================
# MODEL ERRORS
# ===============================================

class ModelError(BindingError):
    """The declarative model is inconsistent."""


class DeclarationError(ModelError):
    """Malformed declaration input (unknown kind, bad type encoding, ...)."""


class UndeclaredClassError(ModelError):
    def __init__(self, class_name: str, context: str = "") -> None:
        self.class_name = class_name
        self.context = context
        where = f" (referenced from {context})" if context else ""
        super().__init__(f"class '{class_name}' is not part of the class set{where}")


class ParentCycleError(ModelError):
    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle: Tuple[str, ...] = tuple(cycle)
        super().__init__("parent cycle: " + " -> ".join(self.cycle))


class UnsupportedTypeError(ModelError):
    def __init__(self, rendered: str, context: str = "") -> None:
        self.rendered = rendered
        self.context = context
        where = f" in {context}" if context else ""
        super().__init__(f"unsupported type '{rendered}'{where}: restrict qualifier cannot be wrapped")


# ===============================================
# NAMING CONFLICTS
# ===============================================

class NamingConflictError(BindingError):
    def __init__(self, name: str, first: str, second: str, what: str = "wrapper symbol") -> None:
        self.name = name
        self.first = first
        self.second = second
        self.what = what
        super().__init__(f"{what} '{name}' is produced by both {first} and {second}")


# ===============================================
# I/O ERRORS
# ===============================================

class MaterializeError(BindingError):
    def __init__(self, paths: Iterable[str], reason: str = "") -> None:
        self.paths: Tuple[str, ...] = tuple(paths)
        self.reason = reason
        suffix = f": {reason}" if reason else ""
        super().__init__("failed to materialize " + ", ".join(self.paths) + suffix)


__all__ = [
    "BindingError",
    "ModelError",
    "DeclarationError",
    "UndeclaredClassError",
    "ParentCycleError",
    "UnsupportedTypeError",
    "NamingConflictError",
    "MaterializeError",
]
