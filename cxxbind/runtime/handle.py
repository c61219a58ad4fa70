#!/usr/bin/env python3
"""
Handles and capabilities used by generated binding code.

A handle is an identity-only reference to a foreign instance: it wraps the
raw address and nothing else. Equality, ordering, hashing and display all
go through the address. Each generated handle class names its opaque
``raw_type`` and registers itself with ``castable`` so that a raw address
coming back from the wrapper layer can be turned into the right handle.
"""

from __future__ import annotations

import abc
import ctypes
import functools
import importlib
import logging
from typing import Callable, Dict, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

H = TypeVar("H", bound="ForeignHandle")


class RawObject(ctypes.Structure):
    """Opaque foreign object; never instantiated on the host side."""
    _fields_ = []


@functools.total_ordering
class ForeignHandle:
    __slots__ = ("_fptr",)

    raw_type: Type[RawObject] = RawObject

    def __init__(self, fptr: Optional[int]):
        self._fptr = int(fptr or 0)

    @property
    def _as_parameter_(self) -> ctypes.c_void_p:
        return ctypes.c_void_p(self._fptr)

    @classmethod
    def from_param(cls, obj):
        if obj is None:
            return ctypes.c_void_p(0)
        if isinstance(obj, ForeignHandle):
            return obj._as_parameter_
        raise TypeError(f"expected a foreign handle, got {type(obj).__name__}")

    def __eq__(self, other):
        if not isinstance(other, ForeignHandle):
            return NotImplemented
        return self._fptr == other._fptr

    def __lt__(self, other):
        if not isinstance(other, ForeignHandle):
            return NotImplemented
        return self._fptr < other._fptr

    def __hash__(self) -> int:
        return hash(self._fptr)

    def __bool__(self) -> bool:
        return self._fptr != 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}(0x{self._fptr:x})"


def get_fptr(h: ForeignHandle) -> int:
    return h._fptr


# ===============================================
# CAST REGISTRY
# ===============================================

_CASTABLE: Dict[Type[RawObject], Type[ForeignHandle]] = {}


def castable(cls: Type[H]) -> Type[H]:
    """Register ``cls`` as the handle class of its ``raw_type``.

    The most derived registration wins, so an implementation class
    registered after its plain handle class takes over the raw type.
    """
    raw = cls.raw_type
    current = _CASTABLE.get(raw)
    if current is None or issubclass(cls, current):
        _CASTABLE[raw] = cls
    return cls


def handle_class(raw: Type[RawObject]) -> Type[ForeignHandle]:
    try:
        return _CASTABLE[raw]
    except KeyError:
        raise TypeError(f"no handle class registered for {raw.__name__}") from None


def cast_fptr_to_obj(raw: Type[RawObject], fptr: Optional[int]) -> ForeignHandle:
    return handle_class(raw)(fptr)


def upcast(target: Type[RawObject], h: ForeignHandle) -> ForeignHandle:
    """Same address, seen through an ancestor's handle class."""
    return cast_fptr_to_obj(target, get_fptr(h))


def downcast(h: ForeignHandle, target: Type[H]) -> H:
    """Unchecked narrowing: the caller vouches for the dynamic type."""
    return target(get_fptr(h))


# ===============================================
# CAPABILITIES
# ===============================================


class Capability(abc.ABC):
    """Base of every generated capability interface."""
    __slots__ = ()


def implements(capability) -> Callable:
    """Tag an implementation method with the capability it fulfils."""
    def decorate(fn):
        fn.__capability__ = capability
        return fn
    return decorate


class ForwardCapability:
    """Capability named before its module can be imported."""

    def __init__(self, module: str, name: str):
        self.module = module
        self.name = name

    def resolve(self) -> Type[Capability]:
        return getattr(importlib.import_module(self.module), self.name)

    def __instancecheck__(self, obj) -> bool:
        return isinstance(obj, self.resolve())

    def __repr__(self) -> str:
        return f"ForwardCapability({self.module}.{self.name})"


__all__ = [
    "RawObject", "ForeignHandle", "get_fptr",
    "castable", "handle_class", "cast_fptr_to_obj", "upcast", "downcast",
    "Capability", "implements", "ForwardCapability",
]
