from __future__ import annotations

import hashlib
from typing import Optional, Union

from cxxbind.bind_types import Digest


def to_bytes(content: Union[str, bytes]) -> bytes:
    return content.encode("utf-8") if isinstance(content, str) else content


def digest(content: Union[str, bytes]) -> Digest:
    return Digest(hashlib.sha1(to_bytes(content)).hexdigest())


def file_digest(path: str) -> Optional[Digest]:
    """sha1 of a file's bytes, or None when it does not exist."""
    h = hashlib.sha1()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(65536), b""):
                h.update(chunk)
    except FileNotFoundError:
        return None
    return Digest(h.hexdigest())


__all__ = ["to_bytes", "digest", "file_digest"]
