from __future__ import annotations

from typing import Optional, Union

XmlValue = Optional[Union[str, int, bool]]


def xml_text(v: XmlValue) -> str:
    if v is None:
        return ""
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


__all__ = ["XmlValue", "xml_text"]
