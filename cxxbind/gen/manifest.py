from __future__ import annotations

import io
import logging
from typing import Dict, Iterable, List, Mapping, Optional

from lxml import etree

from cxxbind.bind_types import Digest
from cxxbind.gen.engine import Artifact
from cxxbind.utils.xml import xml_text

logger = logging.getLogger(__name__)


class ManifestWriter:
    """Streams the package manifest through ``etree.xmlfile``."""

    def __init__(self, xf: etree.xmlfile) -> None:
        self.xf = xf
        self._ctx_stack: List = []

    def start_doc(self, package: str, summary_module: str, library: str) -> None:
        self.xf.write_declaration()
        ctx = self.xf.element("package", name=xml_text(package), **{
            "summary-module": xml_text(summary_module),
            "library": xml_text(library),
        })
        ctx.__enter__()
        self._ctx_stack.append(ctx)

    def start_module(self, name: str, kind: str) -> None:
        ctx = self.xf.element("module", name=xml_text(name), kind=xml_text(kind))
        ctx.__enter__()
        self._ctx_stack.append(ctx)

    def end_module(self) -> None:
        ctx = self._ctx_stack.pop()
        ctx.__exit__(None, None, None)

    def write_artifact(self, kind: str, path: str, digest: Optional[str]) -> None:
        el = etree.Element("artifact", kind=xml_text(kind), path=xml_text(path), digest=xml_text(digest))
        self.xf.write(el)

    def end_doc(self) -> None:
        while self._ctx_stack:
            ctx = self._ctx_stack.pop()
            ctx.__exit__(None, None, None)


def build_manifest(package: str, summary_module: str, library: str,
                   artifacts: Iterable[Artifact], digests: Mapping[str, Digest]) -> str:
    """Manifest text; modules and artifacts sorted for stable output."""
    grouped: Dict[str, List[Artifact]] = {}
    kinds: Dict[str, str] = {}
    for a in artifacts:
        grouped.setdefault(a.unit, []).append(a)
        kinds[a.unit] = a.unit_kind.value
    buf = io.BytesIO()
    with etree.xmlfile(buf, encoding="utf-8") as xf:
        writer = ManifestWriter(xf)
        writer.start_doc(package, summary_module, library)
        for unit in sorted(grouped):
            writer.start_module(unit, kinds[unit])
            for a in sorted(grouped[unit], key=lambda x: x.path):
                writer.write_artifact(a.kind.value, a.path, digests.get(a.path))
            writer.end_module()
        writer.end_doc()
    logger.debug("manifest lists %d modules", len(grouped))
    return buf.getvalue().decode("utf-8") + "\n"


def read_manifest(text: str) -> Dict[str, Dict[str, str]]:
    """path -> {kind, digest, module} for every artifact listed in ``text``."""
    root = etree.fromstring(text.encode("utf-8"))
    entries: Dict[str, Dict[str, str]] = {}
    for module in root.iter("module"):
        for art in module.iter("artifact"):
            entries[art.get("path")] = {
                "kind": art.get("kind"),
                "digest": art.get("digest"),
                "module": module.get("name"),
            }
    return entries


__all__ = ["ManifestWriter", "build_manifest", "read_manifest"]
