#!/usr/bin/env python3
"""
Lazily loaded wrapper library.

Generated ``*_ffi`` modules declare every wrapper symbol up front, but the
shared library is only opened on the first call, so importing a binding
package never requires the compiled wrapper layer to be present.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

LIBRARY_PATH_ENV = "CXXBIND_LIBRARY_PATH"


def library_filenames(name: str) -> List[str]:
    if sys.platform == "win32":
        return [f"{name}.dll", f"lib{name}.dll"]
    if sys.platform == "darwin":
        return [f"lib{name}.dylib", f"lib{name}.so"]
    return [f"lib{name}.so"]


def search_dirs(package_dir: Optional[str] = None) -> List[str]:
    dirs = [d for d in os.environ.get(LIBRARY_PATH_ENV, "").split(os.pathsep) if d]
    if package_dir:
        dirs.append(package_dir)
    return dirs


def find_library(name: str, package_dir: Optional[str] = None) -> Optional[str]:
    for d in search_dirs(package_dir):
        for fname in library_filenames(name):
            candidate = os.path.join(d, fname)
            if os.path.exists(candidate):
                return candidate
    return ctypes.util.find_library(name)


class ForeignLibrary:
    def __init__(self, name: str, package_dir: Optional[str] = None):
        self.name = name
        self.package_dir = package_dir
        self._dll: Optional[ctypes.CDLL] = None
        self._functions: Dict[str, "ForeignFunction"] = {}

    @property
    def loaded(self) -> bool:
        return self._dll is not None

    def load(self) -> ctypes.CDLL:
        if self._dll is None:
            path = find_library(self.name, self.package_dir)
            if path is None:
                raise OSError(f"wrapper library '{self.name}' not found; "
                              f"searched {LIBRARY_PATH_ENV} and {self.package_dir or 'no package directory'}")
            logger.debug("loading wrapper library %s from %s", self.name, path)
            self._dll = ctypes.CDLL(path)
        return self._dll

    def function(self, symbol: str, restype: Any, argtypes: Sequence[Any]) -> "ForeignFunction":
        fn = self._functions.get(symbol)
        if fn is None:
            fn = ForeignFunction(self, symbol, restype, tuple(argtypes))
            self._functions[symbol] = fn
        return fn

    @property
    def symbols(self) -> List[str]:
        return sorted(self._functions)


class ForeignFunction:
    """Prototype of one wrapper symbol, resolved on first call."""

    def __init__(self, library: ForeignLibrary, symbol: str, restype: Any, argtypes: tuple):
        self.library = library
        self.symbol = symbol
        self.restype = restype
        self.argtypes = argtypes
        self._fn = None

    def resolve(self):
        if self._fn is None:
            fn = getattr(self.library.load(), self.symbol)
            fn.restype = self.restype
            fn.argtypes = list(self.argtypes)
            self._fn = fn
        return self._fn

    def __call__(self, *args):
        return self.resolve()(*args)

    def __repr__(self) -> str:
        return f"ForeignFunction({self.library.name}:{self.symbol})"


__all__ = ["LIBRARY_PATH_ENV", "library_filenames", "search_dirs", "find_library",
           "ForeignLibrary", "ForeignFunction"]
