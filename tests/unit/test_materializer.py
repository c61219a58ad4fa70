#!/usr/bin/env python3
"""
Tests for digest-compared persistence and the package manifest.
"""

import os
import tempfile

import pytest

from cxxbind.bind_types import ArtifactKind, ModuleKind
from cxxbind.core.errors import MaterializeError
from cxxbind.gen.cxx.decl import CFunction, CSource
from cxxbind.gen.engine import Artifact
from cxxbind.gen.manifest import build_manifest, read_manifest
from cxxbind.gen.materializer import Materializer, serialize, stage, write
from cxxbind.gen.py import pysyntax as py
from cxxbind.utils.digest import digest, file_digest


class TestWrite:
    def test_write_then_skip(self):
        """A second write of identical content touches nothing"""
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "sub", "a.txt")
            assert write(path, "hello\n") is True
            mtime = os.stat(path).st_mtime_ns
            assert write(path, "hello\n") is False
            assert os.stat(path).st_mtime_ns == mtime
            assert write(path, "changed\n") is True
            with open(path, encoding="utf-8") as f:
                assert f.read() == "changed\n"

    def test_no_temporary_files_left(self):
        with tempfile.TemporaryDirectory() as tmp:
            write(os.path.join(tmp, "a.txt"), "x")
            assert os.listdir(tmp) == ["a.txt"]

    def test_stage_copies_only_changes(self):
        with tempfile.TemporaryDirectory() as tmp:
            staged = os.path.join(tmp, "work", "a.h")
            installed = os.path.join(tmp, "install", "a.h")
            write(staged, "int x;\n")
            assert stage(staged, installed) is True
            assert stage(staged, installed) is False
            assert file_digest(installed) == digest("int x;\n")

    def test_file_digest_of_missing_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            assert file_digest(os.path.join(tmp, "missing")) is None


class TestSerialize:
    def test_host_module_gets_banner(self):
        mod = py.module([py.assign("x", py.const(1))], doc="Doc.")
        assert serialize(mod, "Generated") == '# Generated\n"""Doc."""\nx = 1\n'

    def test_foreign_source(self):
        src = CSource(name="a.h", functions=(CFunction("void", "f"),))
        assert serialize(src) == "void f();\n"

    def test_text_passes_through(self):
        assert serialize("<xml/>") == "<xml/>"


class TestMaterializer:
    def test_units_and_reruns(self):
        units = {
            "mysample.a": [("src/mysample/a.py", "A = 1\n"), ("csrc/A.h", "// a\n")],
            "mysample.b": [("src/mysample/b.py", "B = 1\n")],
        }
        with tempfile.TemporaryDirectory() as tmp:
            m = Materializer(os.path.join(tmp, "work"), os.path.join(tmp, "install"))
            first = m.materialize(units)
            assert sorted(first.written) == ["csrc/A.h", "src/mysample/a.py", "src/mysample/b.py"]
            assert len(first.installed) == 3
            second = m.materialize(units)
            assert second.touched == 0
            assert len(second.unchanged) == 3
            assert os.path.exists(os.path.join(tmp, "install", "src", "mysample", "b.py"))

    def test_failing_unit_does_not_stop_others(self):
        """An I/O error ends its own unit; the rest still complete"""
        with tempfile.TemporaryDirectory() as tmp:
            work = os.path.join(tmp, "work")
            os.makedirs(work)
            # a plain file where a directory is needed
            with open(os.path.join(work, "blocked"), "w") as f:
                f.write("")
            units = {
                "bad": [("blocked/x.py", "x\n"), ("bad_after.py", "y\n")],
                "good": [("good.py", "z\n")],
            }
            with pytest.raises(MaterializeError) as exc:
                Materializer(work).materialize(units)
            assert exc.value.paths == ("blocked/x.py",)
            report = exc.value.report
            assert report.written == ["good.py"]
            assert not os.path.exists(os.path.join(work, "bad_after.py"))


class TestManifest:
    def _artifacts(self):
        return [
            Artifact(ArtifactKind.MODULE, "src/mysample/b.py", "mysample.b", ModuleKind.CLASS, ""),
            Artifact(ArtifactKind.HANDLE, "src/mysample/a_rawtype.py", "mysample.a", ModuleKind.CLASS, ""),
            Artifact(ArtifactKind.MODULE, "src/mysample/a.py", "mysample.a", ModuleKind.CLASS, ""),
        ]

    def test_manifest_lists_every_artifact(self):
        digests = {"src/mysample/a.py": "d1", "src/mysample/b.py": "d2", "src/mysample/a_rawtype.py": "d3"}
        text = build_manifest("MySample", "mysample", "MySample", self._artifacts(), digests)
        entries = read_manifest(text)
        assert entries["src/mysample/a.py"] == {"kind": "module", "digest": "d1", "module": "mysample.a"}
        assert entries["src/mysample/a_rawtype.py"]["kind"] == "handle"
        assert len(entries) == 3

    def test_manifest_is_deterministic(self):
        """Input order does not change the manifest"""
        first = build_manifest("MySample", "mysample", "MySample", self._artifacts(), {})
        second = build_manifest("MySample", "mysample", "MySample", list(reversed(self._artifacts())), {})
        assert first == second
        assert first.index("mysample.a") < first.index("mysample.b")
        assert 'summary-module="mysample"' in first
