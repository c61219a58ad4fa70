#!/usr/bin/env python3
"""
Tests for the module partitioner: import sets, deferral and headers.
"""

from cxxbind.core.cpp_types import cppclass_, cppclassptr_, int_, void_
from cxxbind.core.hierarchy import HierarchyResolver
from cxxbind.core.model import (
    Class, ClassHeaderInfo, Constructor, PackageDeclaration, TemplateClass, TemplateInstantiation,
    TopLevelFunction, Virtual,
)
from cxxbind.core.modules import ModulePartitioner


def partition(decl):
    resolver = HierarchyResolver(decl.classes)
    return ModulePartitioner(resolver, decl.header_map).partition(decl)


def _names(classes):
    return [c.name for c in classes]


class TestScenarioAB:
    """A: method1() -> void; B extends A: method2(x: A) -> A."""

    def test_two_modules(self, ab_declaration):
        config = partition(ab_declaration)
        assert [m.name for m in config.class_modules] == ["mysample.a", "mysample.b"]
        assert config.forward_stubs == frozenset()

    def test_b_imports_a(self, ab_declaration):
        """B names A's raw handle and A's interface layer"""
        a, b = ab_declaration.classes
        mb = partition(ab_declaration).module_for(b)
        assert mb.raw_imports == (a,)
        assert mb.parent_imports == (a,)
        assert mb.same_layer_imports == (a,)
        assert mb.interface_refs == ()
        assert mb.deferred_imports == ()

    def test_a_imports_nothing(self, ab_declaration):
        a, _ = ab_declaration.classes
        ma = partition(ab_declaration).module_for(a)
        assert ma.raw_imports == ma.parent_imports == ma.same_layer_imports == ()

    def test_class_headers(self, ab_declaration):
        a, b = ab_declaration.classes
        config = partition(ab_declaration)
        ha = config.module_for(a).header
        assert ha.self_header == "MySampleA.h"
        assert ha.self_source == "MySampleA.cpp"
        assert ha.headers == ("A.h",)
        assert config.module_for(b).header.dependency_headers == ("A.h",)
        assert config.type_header == "MySampleType.h"

    def test_header_map_overrides_default(self, ab_declaration):
        a, b = ab_declaration.classes
        ab_declaration.header_map["A"] = ClassHeaderInfo(("geo",), ("geo/a.hpp",))
        config = partition(ab_declaration)
        assert config.module_for(a).header.namespaces == ("geo",)
        assert config.module_for(b).header.dependency_headers == ("geo/a.hpp",)


class TestDeferral:
    """Interface references that would close an import cycle."""

    def test_ancestor_naming_descendant_is_deferred(self, package):
        parent = Class(package, "P")
        child = Class(package, "Q", parents=[parent])
        parent.funcs.append(Virtual(cppclassptr_(child), "make"))
        config = partition(PackageDeclaration(package, [parent, child]))
        mp = config.module_for(parent)
        assert mp.interface_refs == (child,)
        assert mp.deferred_imports == (child,)
        assert mp.parent_imports == ()
        assert config.forward_stubs == frozenset({"mysample.q"})
        assert config.module_for(child).parent_imports == (parent,)

    def test_symmetric_references_defer_both_ways(self, package):
        x = Class(package, "X")
        y = Class(package, "Y")
        x.funcs.append(Virtual(void_, "f", ((cppclassptr_(y), "y"),)))
        y.funcs.append(Virtual(void_, "g", ((cppclassptr_(x), "x"),)))
        config = partition(PackageDeclaration(package, [x, y]))
        assert config.module_for(x).deferred_imports == (y,)
        assert config.module_for(y).deferred_imports == (x,)
        assert config.forward_stubs == frozenset({"mysample.x", "mysample.y"})

    def test_one_way_reference_is_eager(self, package):
        x = Class(package, "X", funcs=[Virtual(void_, "f", ((cppclassptr_("Y"), "y"),))])
        y = Class(package, "Y")
        config = partition(PackageDeclaration(package, [x, y]))
        mx = config.module_for(x)
        assert mx.deferred_imports == ()
        assert mx.parent_imports == (y,)
        assert config.forward_stubs == frozenset()

    def test_parent_edges_are_never_deferred(self, diamond):
        base, left, right, bottom = diamond
        config = partition(PackageDeclaration(base.package, list(diamond)))
        assert _names(config.module_for(bottom).parent_imports) == ["Left", "Right"]
        assert all(m.deferred_imports == () for m in config.class_modules)

    def test_same_layer_holds_every_ancestor(self, diamond):
        base, left, right, bottom = diamond
        config = partition(PackageDeclaration(base.package, list(diamond)))
        assert _names(config.module_for(bottom).same_layer_imports) == ["Base", "Left", "Right"]


class TestPackageParts:
    def test_toplevel_header(self, package, ab):
        a, _ = ab
        decl = PackageDeclaration(package, list(ab), toplevel_functions=[
            TopLevelFunction(cppclassptr_(a), "makeA"), TopLevelFunction(int_, "answer"),
        ])
        top = partition(decl).toplevel
        assert top.name == "mysample.toplevel"
        assert top.self_header == "MySampleTopLevel.h"
        assert top.self_source == "MySampleTopLevel.cpp"
        assert top.raw_imports == (a,)
        assert top.headers == ("A.h",)

    def test_template_modules(self, package, ab):
        vec = TemplateClass(package, "Vec", "T", [Constructor(), Virtual(cppclass_("T"), "at", ((int_, "i"),))])
        inst = TemplateInstantiation(vec, int_)
        decl = PackageDeclaration(package, list(ab), templates=[(vec, "vec.hpp")], instantiations=[inst])
        (tm,) = partition(decl).template_modules
        assert tm.name == "mysample.vec"
        assert tm.header == "MySampleVec.h"
        assert tm.cxx_header == "vec.hpp"
        assert tm.instantiations == (inst,)
