#!/usr/bin/env python3
"""
Structured C/C++ declarations and their serialization.

Emitters build ``CSource`` records; only ``render_source`` turns them into
text, so every generated header and source shares one layout.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class CFunction:
    ret: str
    symbol: str
    params: Tuple[str, ...] = ()      # full parameter declarators, e.g. "A_p p"
    body: Tuple[str, ...] = ()        # statements; empty for a prototype

    @property
    def signature(self) -> str:
        params = ", ".join(self.params) if self.params else ""
        return f"{self.ret} {self.symbol}({params})"


@dataclass(frozen=True)
class CSource:
    name: str
    includes: Tuple[str, ...] = ()    # already bracketed: '"X.h"' or '<x.h>'
    guard: Optional[str] = None
    extern_c: bool = False
    prelude: Tuple[str, ...] = ()     # verbatim lines before the functions
    functions: Tuple[CFunction, ...] = ()
    epilogue: Tuple[str, ...] = ()    # verbatim lines after the functions
    banner: str = ""


def _prototype(f: CFunction) -> str:
    return f.signature + ";"


def _definition(f: CFunction) -> List[str]:
    lines = [f.signature + " {"]
    lines.extend("  " + stmt for stmt in f.body)
    lines.append("}")
    return lines


def render_source(src: CSource) -> str:
    out: List[str] = []
    if src.banner:
        out.extend("// " + line if line else "//" for line in src.banner.splitlines())
        out.append("")
    if src.guard:
        out.append(f"#ifndef {src.guard}")
        out.append(f"#define {src.guard}")
        out.append("")
    for inc in src.includes:
        out.append(f"#include {inc}")
    if src.includes:
        out.append("")
    if src.extern_c:
        out.extend(["#ifdef __cplusplus", 'extern "C" {', "#endif", ""])
    if src.prelude:
        out.extend(src.prelude)
        out.append("")
    for f in src.functions:
        if f.body:
            out.extend(_definition(f))
            out.append("")
        else:
            out.append(_prototype(f))
    if src.functions and not src.functions[-1].body:
        out.append("")
    if src.extern_c:
        out.extend(["#ifdef __cplusplus", "}", "#endif", ""])
    if src.epilogue:
        out.extend(src.epilogue)
        out.append("")
    if src.guard:
        out.append(f"#endif // {src.guard}")
    while out and out[-1] == "":
        out.pop()
    return "\n".join(out) + "\n"


__all__ = ["CFunction", "CSource", "render_source"]
