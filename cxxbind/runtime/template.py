#!/usr/bin/env python3
"""
Records describing template instantiations.

The generator only describes what a concrete instantiation must provide;
expanding the foreign macros and binding the resulting symbols is left to
whatever consumes these requests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class TemplateMember:
    name: str               # host entry name
    symbol: str             # wrapper symbol of this instantiation
    kind: str               # constructor, virtual, nonvirtual, static, destructor
    argtypes: Tuple[str, ...] = ()
    restype: Optional[str] = None


@dataclass(frozen=True)
class InstantiationRequest:
    template: str
    argument: str           # rendered C++ argument type
    tag: str                # identifier-safe argument tag
    module: str             # concrete host module
    members: Tuple[TemplateMember, ...] = ()

    def symbol(self, member: str) -> str:
        for m in self.members:
            if m.name == member:
                return m.symbol
        raise KeyError(member)


__all__ = ["TemplateMember", "InstantiationRequest"]
