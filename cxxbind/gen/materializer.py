#!/usr/bin/env python3
"""
Materializer: serialization plus digest-compared, atomic persistence.

A file is only (re)written when its sha1 differs from the new content, so
running the generator twice over an unchanged model touches nothing.
Writes go to a temporary file in the target directory and are moved into
place with ``os.replace``.
"""

from __future__ import annotations

import ast
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from cxxbind.bind_types import ArtifactPath, Digest
from cxxbind.core.errors import MaterializeError
from cxxbind.gen.cxx.decl import CSource, render_source
from cxxbind.gen.engine import Artifact
from cxxbind.gen.py.pysyntax import unparse
from cxxbind.utils.digest import digest, file_digest, to_bytes

logger = logging.getLogger(__name__)


def serialize(declaration: Union[ast.Module, CSource, str], banner: str = "") -> str:
    if isinstance(declaration, CSource):
        return render_source(declaration)
    if isinstance(declaration, ast.Module):
        return unparse(declaration, banner)
    return declaration


def _atomic_write(path: str, data: bytes) -> None:
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=directory, prefix=".cxxbind-", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def write(path: str, content: Union[str, bytes]) -> bool:
    """Write ``content`` unless the file already holds exactly it."""
    data = to_bytes(content)
    if file_digest(path) == digest(data):
        logger.debug("unchanged %s", path)
        return False
    _atomic_write(path, data)
    logger.debug("wrote %s", path)
    return True


def stage(staged: str, installed: str) -> bool:
    """Copy ``staged`` over ``installed`` when their digests differ."""
    if file_digest(installed) == file_digest(staged):
        logger.debug("up to date %s", installed)
        return False
    directory = os.path.dirname(installed) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=directory, prefix=".cxxbind-", suffix=".tmp")
    os.close(fd)
    try:
        shutil.copyfile(staged, tmp)
        os.replace(tmp, installed)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    logger.debug("installed %s", installed)
    return True


@dataclass
class MaterializeReport:
    written: List[ArtifactPath] = field(default_factory=list)
    unchanged: List[ArtifactPath] = field(default_factory=list)
    installed: List[ArtifactPath] = field(default_factory=list)
    failed: Dict[str, List[ArtifactPath]] = field(default_factory=dict)   # unit -> paths

    @property
    def touched(self) -> int:
        return len(self.written) + len(self.installed)


class Materializer:
    """Writes artifacts into a working tree and stages them into the install tree.

    Artifacts are grouped into units (one per module). An I/O error stops
    the rest of its unit; other units still complete, and the failure is
    reported once everything else is done.
    """

    def __init__(self, working_dir: str, install_dir: Optional[str] = None, banner: str = ""):
        self.working_dir = working_dir
        self.install_dir = install_dir
        self.banner = banner

    def render(self, artifacts: Iterable[Artifact]) -> Dict[ArtifactPath, str]:
        return {a.path: serialize(a.declaration, self.banner) for a in artifacts}

    def _target(self, root: str, path: ArtifactPath) -> str:
        return os.path.join(root, *path.split("/"))

    def materialize(self, units: Mapping[str, List[Tuple[ArtifactPath, str]]]) -> MaterializeReport:
        report = MaterializeReport()
        for unit in sorted(units):
            for path, text in units[unit]:
                try:
                    staged = self._target(self.working_dir, path)
                    if write(staged, text):
                        report.written.append(path)
                    else:
                        report.unchanged.append(path)
                    if self.install_dir:
                        if stage(staged, self._target(self.install_dir, path)):
                            report.installed.append(path)
                except OSError as e:
                    logger.error("materializing %s failed: %s", path, e)
                    report.failed.setdefault(unit, []).append(path)
                    break
        logger.info("materialized: %d written, %d unchanged, %d installed",
                    len(report.written), len(report.unchanged), len(report.installed))
        if report.failed:
            paths = [p for unit in sorted(report.failed) for p in report.failed[unit]]
            err = MaterializeError(paths, f"{len(report.failed)} unit(s) incomplete")
            err.report = report
            raise err
        return report


def digests_of(rendered: Mapping[ArtifactPath, str]) -> Dict[str, Digest]:
    return {path: digest(text) for path, text in rendered.items()}


__all__ = ["serialize", "write", "stage", "MaterializeReport", "Materializer", "digests_of"]
