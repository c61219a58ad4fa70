#!/usr/bin/env python3
"""
Tests for the host binding layer emitted for each class module.
"""

import ast
import dataclasses

import pytest

from cxxbind.core.cpp_types import cppclass_, cppclassptr_, int_
from cxxbind.core.hierarchy import HierarchyResolver
from cxxbind.core.model import (
    AbstractClass, Class, Constructor, Destructor, PackageDeclaration, TemplateClass, TemplateInstantiation,
    TopLevelFunction, Virtual,
)
from cxxbind.core.modules import ModulePartitioner
from cxxbind.core.naming import class_module
from cxxbind.gen.engine import EmissionEngine
from cxxbind.gen.py import frontend
from cxxbind.gen.py.ctypes_map import ctype, py_annotation
from cxxbind.gen.py.pysyntax import unparse
from cxxbind.meta import LayoutMeta


def partition_and_emit(decl):
    resolver = HierarchyResolver(decl.classes)
    requested = [(t, [i.argument for i in decl.instantiations if i.template is t]) for t, _ in decl.templates]
    symbols = resolver.symbol_table(decl.package, decl.toplevel_functions, requested)
    config = ModulePartitioner(resolver, decl.header_map).partition(decl)
    engine = EmissionEngine(config, resolver, symbols, library_name=decl.package.name)
    return config, {a.path: a for a in engine.emit()}


def emit(decl):
    return partition_and_emit(decl)[1]


def text_of(artifacts, path):
    return unparse(artifacts[path].declaration)


@pytest.fixture
def ab_artifacts(ab_declaration):
    return emit(ab_declaration)


class TestTypeMapping:
    def test_ctypes(self):
        assert ctype(int_) == "ctypes.c_int"
        assert ctype(cppclass_("A")) == "ctypes.c_void_p"
        assert ctype(cppclassptr_("A")) == "ctypes.c_void_p"

    def test_annotations(self):
        """Class arguments take a capability, class results are handles"""
        assert py_annotation(cppclass_("A"), str, argument=True) == "IA"
        assert py_annotation(cppclass_("A"), str, argument=False) == "A"
        assert py_annotation(int_, str, argument=True) == "int"


class TestClassModules:
    """Scenario A/B: A declares method1, B extends A with method2(A) -> A."""

    def test_every_layer_is_valid_python(self, ab_artifacts):
        for path, artifact in ab_artifacts.items():
            if path.endswith(".py"):
                compile(unparse(artifact.declaration), path, "exec")

    def test_layer_files(self, ab_artifacts):
        paths = set(ab_artifacts)
        for layer in ("_rawtype", "_ffi", "_interface", "_cast", "_implementation", ""):
            assert f"src/mysample/b{layer}.py" in paths
        assert "src/mysample/__init__.py" in paths
        assert "src/mysample/_library.py" in paths
        assert not any(p.endswith("_interface_stub.py") for p in paths)

    def test_handle_module(self, ab_artifacts):
        text = text_of(ab_artifacts, "src/mysample/a_rawtype.py")
        assert "class RawA(RawObject):" in text
        assert "@castable\nclass A(ForeignHandle):" in text
        assert "raw_type = RawA" in text

    def test_interface_declares_only_own_virtuals(self, ab_artifacts):
        """IB subclasses IA and declares method2 alone"""
        text = text_of(ab_artifacts, "src/mysample/b_interface.py")
        assert "from mysample.a_interface import IA" in text
        assert "from mysample.a_rawtype import A" in text
        assert "class IB(IA):" in text
        assert "def method2(self, x: IA) -> A:" in text
        assert "method1" not in text

    def test_root_interface_uses_capability_base(self, ab_artifacts):
        text = text_of(ab_artifacts, "src/mysample/a_interface.py")
        assert "class IA(Capability):" in text
        assert "@abc.abstractmethod\n    def method1(self) -> None:" in text

    def test_ffi_prototypes(self, ab_artifacts):
        text = text_of(ab_artifacts, "src/mysample/b_ffi.py")
        assert "from mysample._library import lib" in text
        assert "MySample_b_newb = lib.function('MySample_b_newb', ctypes.c_void_p, [])" in text
        assert ("MySample_b_method2 = lib.function('MySample_b_method2', ctypes.c_void_p, "
                "[ctypes.c_void_p, ctypes.c_void_p])") in text
        assert "MySample_b_method1 = lib.function('MySample_b_method1', None, [ctypes.c_void_p])" in text

    def test_implementation(self, ab_artifacts):
        """Inherited method1 implements IA and routes to B's own wrapper"""
        text = text_of(ab_artifacts, "src/mysample/b_implementation.py")
        assert "@castable\nclass B(b_rawtype.B, IB):" in text
        assert "@implements(IA)\n    def method1(self) -> None:\n        b_ffi.MySample_b_method1(self)" in text
        assert "@implements(IB)\n    def method2(self, x: IA) -> A:" in text
        assert "return cast_fptr_to_obj(RawA, b_ffi.MySample_b_method2(self, x))" in text
        assert "def delete(self) -> None:\n        b_ffi.MySample_b_delete(self)" in text
        assert "def newB() -> B:\n    return cast_fptr_to_obj(b_rawtype.RawB, b_ffi.MySample_b_newb())" in text

    def test_cast_module(self, ab_artifacts):
        text = text_of(ab_artifacts, "src/mysample/a_cast.py")
        assert "def upcastA(h: IA) -> A:" in text
        assert "isinstance(h, (IA, A))" in text
        assert "return upcast(RawA, h)" in text
        assert "def downcastA(h: A, target):" in text

    def test_surface_and_aggregate(self, ab_artifacts):
        surface = text_of(ab_artifacts, "src/mysample/b.py")
        assert "from mysample.b_implementation import B, newB" in surface
        assert "from mysample.b_cast import downcastB, upcastB" in surface
        aggregate = text_of(ab_artifacts, "src/mysample/__init__.py")
        assert "from mysample.a import A, IA, RawA, downcastA, newA, upcastA" in aggregate
        assert "'newB'" in aggregate

    def test_library_module(self, ab_artifacts):
        text = text_of(ab_artifacts, "src/mysample/_library.py")
        assert "lib = ForeignLibrary('MySample', os.path.dirname(os.path.abspath(__file__)))" in text

    def test_banner_becomes_comments(self, ab_artifacts):
        text = unparse(ab_artifacts["src/mysample/a.py"].declaration, "Generated\nDo not edit")
        assert text.startswith("# Generated\n# Do not edit\n")


class TestSpecialClasses:
    def test_forward_stub_for_deferred_reference(self, package):
        parent = Class(package, "P")
        child = Class(package, "Q", parents=[parent], funcs=[Constructor()])
        parent.funcs.append(Virtual(cppclassptr_(child), "make"))
        artifacts = emit(PackageDeclaration(package, [parent, child]))
        stub = text_of(artifacts, "src/mysample/q_interface_stub.py")
        assert "IQ = ForwardCapability('mysample.q_interface', 'IQ')" in stub
        interface = text_of(artifacts, "src/mysample/p_interface.py")
        assert "from mysample.q_interface_stub import IQ, Q" in interface
        assert "mysample.q_interface import" not in interface
        assert "def make(self) -> Q:" in interface

    def test_abstract_class(self, package):
        shape = AbstractClass(package, "Shape", funcs=[Constructor(), Virtual(int_, "sides"), Destructor()])
        square = Class(package, "Square", parents=[shape], funcs=[Constructor()])
        artifacts = emit(PackageDeclaration(package, [shape, square]))
        impl = text_of(artifacts, "src/mysample/shape_implementation.py")
        assert "class Shape(shape_rawtype.Shape):" in impl
        assert "newShape" not in impl
        assert "def sides" not in impl
        interface = text_of(artifacts, "src/mysample/shape_interface.py")
        assert "def sides(self) -> int:" in interface
        square_impl = text_of(artifacts, "src/mysample/square_implementation.py")
        assert "@implements(IShape)\n    def sides(self) -> int:" in square_impl

    def test_toplevel_module(self, package, ab):
        a, _ = ab
        decl = PackageDeclaration(package, list(ab), toplevel_functions=[
            TopLevelFunction(cppclassptr_(a), "MakeA"), TopLevelFunction(int_, "answer"),
        ])
        artifacts = emit(decl)
        text = text_of(artifacts, "src/mysample/toplevel.py")
        assert "MySample_makea = lib.function('MySample_makea', ctypes.c_void_p, [])" in text
        assert "def makeA() -> A:\n    return cast_fptr_to_obj(RawA, MySample_makea())" in text
        assert "def answer() -> int:\n    return MySample_answer()" in text
        aggregate = text_of(artifacts, "src/mysample/__init__.py")
        assert "from mysample.toplevel import answer, makeA" in aggregate
        assert "csrc/MySampleTopLevel.cpp" in artifacts

    def test_no_toplevel_artifacts_without_functions(self, ab_artifacts):
        assert not any("TopLevel" in p or p.endswith("toplevel.py") for p in ab_artifacts)


class TestTemplateGlue:
    @pytest.fixture
    def vec_artifacts(self, package, ab_declaration):
        vec = TemplateClass(package, "Vec", "T", [
            Constructor(), Virtual(cppclass_("T"), "at", ((int_, "i"),)), Destructor(),
        ])
        ab_declaration.templates.append((vec, "vec.hpp"))
        ab_declaration.instantiations.append(TemplateInstantiation(vec, int_))
        return emit(ab_declaration)

    def test_generic_declaration(self, vec_artifacts):
        text = text_of(vec_artifacts, "src/mysample/vec_template.py")
        assert "T = TypeVar('T')" in text
        assert "class Vec(ForeignHandle, Generic[T]):" in text
        assert "class IVec(Capability, Generic[T]):" in text
        assert "def at(self, i: int) -> T:" in text

    def test_instantiation_requests(self, vec_artifacts):
        text = text_of(vec_artifacts, "src/mysample/vec_instantiation.py")
        assert "VEC_REQUESTS = (InstantiationRequest(template='Vec', argument='int', tag='int'," in text
        assert "module='mysample.vec_int'" in text
        assert ("TemplateMember(name='at', symbol='Vec_at_int', kind='virtual', "
                "argtypes=('ctypes.c_void_p', 'ctypes.c_int'), restype='ctypes.c_int')") in text

    def test_template_files(self, vec_artifacts):
        assert "csrc/MySampleVec.h" in vec_artifacts
        assert "src/mysample/vec.py" in vec_artifacts
        aggregate = text_of(vec_artifacts, "src/mysample/__init__.py")
        assert "from mysample.vec import IVec, RawVec, VEC_REQUESTS, Vec" in aggregate


class TestHostContext:
    def test_handle_of_uses_alias(self, package):
        c = Class(package, "Foo", alias="Bar")
        decl = PackageDeclaration(package, [c])
        resolver = HierarchyResolver(decl.classes)
        config = ModulePartitioner(resolver).partition(decl)
        ctx = frontend.HostContext(config, resolver, resolver.symbol_table(package), "MySample")
        assert ctx.handle_of("Foo") == "Bar"
        assert ctx.layer(c, "_ffi") == "mysample.bar_ffi"
        assert ctx.library_module == "mysample._library"

    def test_default_layout(self, package):
        """A context built without a layout gets its own default one"""
        c = Class(package, "Foo")
        decl = PackageDeclaration(package, [c])
        resolver = HierarchyResolver(decl.classes)
        config = ModulePartitioner(resolver).partition(decl)
        first = frontend.HostContext(config, resolver, resolver.symbol_table(package), "MySample")
        second = frontend.HostContext(config, resolver, resolver.symbol_table(package), "MySample")
        assert first.meta == LayoutMeta()
        assert hash(first.meta) == hash(second.meta)
        with pytest.raises(dataclasses.FrozenInstanceError):
            first.meta.host = None


class TestDeletion:
    """``delete`` is declared once, on the capability of the topmost class with a destructor."""

    def test_root_capability_declares_delete(self, ab_artifacts):
        text = text_of(ab_artifacts, "src/mysample/a_interface.py")
        assert "@abc.abstractmethod\n    def delete(self) -> None:" in text

    def test_derived_capability_does_not_redeclare_delete(self, ab_artifacts):
        text = text_of(ab_artifacts, "src/mysample/b_interface.py")
        assert "delete" not in text

    def test_delete_implements_root_capability(self, ab_artifacts):
        a_impl = text_of(ab_artifacts, "src/mysample/a_implementation.py")
        assert "@implements(IA)\n    def delete(self) -> None:\n        a_ffi.MySample_a_delete(self)" in a_impl
        b_impl = text_of(ab_artifacts, "src/mysample/b_implementation.py")
        assert "@implements(IA)\n    def delete(self) -> None:\n        b_ffi.MySample_b_delete(self)" in b_impl

    def test_class_without_destructor_inherits_delete(self, package, ab):
        a, _ = ab
        c = Class(package, "C", parents=[a], funcs=[Constructor()])
        artifacts = emit(PackageDeclaration(package, [a, c]))
        impl = text_of(artifacts, "src/mysample/c_implementation.py")
        assert "@implements(IA)\n    def delete(self) -> None:\n        c_ffi.MySample_c_delete(self)" in impl
        ffi = text_of(artifacts, "src/mysample/c_ffi.py")
        assert "MySample_c_delete = lib.function('MySample_c_delete', None, [ctypes.c_void_p])" in ffi
        assert "delete" not in text_of(artifacts, "src/mysample/c_interface.py")
        assert "delete" not in text_of(artifacts, "src/mysample/c.py")

    def test_abstract_root_implements_its_own_delete(self, package):
        shape = AbstractClass(package, "Shape", funcs=[Virtual(int_, "sides"), Destructor()])
        artifacts = emit(PackageDeclaration(package, [shape]))
        impl = text_of(artifacts, "src/mysample/shape_implementation.py")
        assert "from mysample.shape_interface import IShape" in impl
        assert "class Shape(shape_rawtype.Shape):" in impl
        assert "@implements(IShape)\n    def delete(self) -> None:" in impl


def _imported(tree, suffix):
    return {n.module for n in ast.walk(tree)
            if isinstance(n, ast.ImportFrom) and n.module and n.module.endswith(suffix)}


def _layers(classes, suffix):
    return {class_module(x) + suffix for x in classes}


def _deferred_declaration(package):
    parent = Class(package, "P", funcs=[Destructor()])
    child = Class(package, "Q", parents=[parent], funcs=[Constructor()])
    parent.funcs.append(Virtual(cppclassptr_(child), "make"))
    return PackageDeclaration(package, [parent, child])


class TestImportsFollowPartition:
    """Each layer imports exactly the modules its import sets name."""

    @pytest.fixture(params=["ab", "diamond", "deferred"])
    def emitted(self, request, package):
        if request.param == "ab":
            decl = request.getfixturevalue("ab_declaration")
        elif request.param == "diamond":
            decl = PackageDeclaration(package, list(request.getfixturevalue("diamond")))
        else:
            decl = _deferred_declaration(package)
        return partition_and_emit(decl)

    def test_interface_imports(self, emitted):
        config, artifacts = emitted
        for m in config.class_modules:
            tree = artifacts[f"src/{m.name.replace('.', '/')}_interface.py"].declaration
            assert _imported(tree, "_interface") == _layers(m.parent_imports, "_interface")
            assert _imported(tree, "_interface_stub") == _layers(m.deferred_imports, "_interface_stub")

    def test_implementation_imports(self, emitted):
        config, artifacts = emitted
        for m in config.class_modules:
            tree = artifacts[f"src/{m.name.replace('.', '/')}_implementation.py"].declaration
            assert _imported(tree, "_rawtype") == _layers(m.raw_imports, "_rawtype")
            expected = _layers(m.same_layer_imports, "_interface") | {m.name + "_interface"}
            assert _imported(tree, "_interface") == expected
