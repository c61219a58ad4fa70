#!/usr/bin/env python3
"""
Tests for the function/class model and the derived names.
"""

import pytest

from cxxbind.core.cpp_types import char_, cppclass_, double_, int_, Prim, Primitive, Ptr, void_
from cxxbind.core.errors import NamingConflictError
from cxxbind.core.model import (
    AbstractClass, Class, Constructor, Destructor, NonVirtual, Package, Static, TemplateClass,
    TopLevelFunction, Virtual, args_and_return, partition_functions, public_funcs,
)
from cxxbind.core.naming import (
    SymbolTable, capability_name, check_entry_names, class_module, entry_name, host_class_name,
    host_entry_name, package_module, template_symbol, toplevel_symbol, type_tag, wrapper_symbol,
)


class TestModel:
    """Function categorization and class identity."""

    def test_package_prefixes_default_to_name(self):
        p = Package("MySample")
        assert p.cheader_prefix == "MySample"
        assert p.module_prefix == "MySample"
        assert Package("MySample", module_prefix="mysample_py").module_prefix == "mysample_py"

    def test_args_and_return(self, ab):
        """Constructors return the self handle, destructors nothing"""
        a, b = ab
        ctor, method1, dtor = a.funcs
        assert args_and_return(ctor, a.self_type) == ((), cppclass_("A"))
        assert args_and_return(dtor, a.self_type) == ((), void_)
        assert args_and_return(b.funcs[1]) == (((cppclass_("A"), "x"),), cppclass_("A"))

    def test_constructor_needs_self_type(self):
        with pytest.raises(ValueError):
            args_and_return(Constructor())

    def test_partition_functions(self, diamond):
        """Each function lands in exactly one group"""
        base, left, right, bottom = diamond
        groups = partition_functions(right.funcs + base.funcs)
        assert len(groups.constructors) == 1
        assert len(groups.non_virtuals) == 1
        assert len(groups.virtuals) == 1
        assert groups.statics == ()
        assert groups.destructor is base.funcs[1]

    def test_two_destructors_conflict(self, package):
        with pytest.raises(NamingConflictError):
            partition_functions([Destructor(), Destructor(alias="free")])

    def test_classes_compare_by_identity(self, package):
        """Two declarations sharing a name stay distinct"""
        one = Class(package, "A")
        two = Class(package, "A")
        assert one != two
        assert len({one, two}) == 2

    def test_protected_functions_are_not_public(self, package):
        c = Class(package, "A", protected=frozenset({"hidden"}), funcs=[
            Virtual(void_, "hidden"), Virtual(void_, "shown"),
        ])
        assert [f.name for f in public_funcs(c)] == ["shown"]

    def test_abstract_class_factory(self, package):
        c = AbstractClass(package, "Shape", funcs=[Virtual(void_, "draw")])
        assert c.abstract
        assert repr(c) == "AbstractClass('Shape')"


class TestNames:
    """Entry names, wrapper symbols and module identities."""

    def test_entry_names(self, ab, diamond):
        a, _ = ab
        _, _, right, bottom = diamond
        ctor, method1, dtor = a.funcs
        assert entry_name(a, ctor) == "newA"
        assert entry_name(a, method1) == "method1"
        assert entry_name(a, dtor) == "delete"
        assert entry_name(right, right.funcs[1]) == "rightweight"
        assert entry_name(bottom, bottom.funcs[1]) == "bottomcount"

    def test_alias_wins(self, package):
        c = Class(package, "Foo", alias="Bar", funcs=[Constructor(), NonVirtual(int_, "size", alias="Length")])
        assert host_class_name(c) == ("Bar", "RawBar")
        assert capability_name(c) == "IBar"
        assert class_module(c) == "mysample.bar"
        assert entry_name(c, c.funcs[0]) == "newBar"
        assert host_entry_name(c, c.funcs[1]) == "length"

    def test_wrapper_symbols(self, ab):
        a, b = ab
        assert wrapper_symbol(a, a.funcs[0]) == "MySample_a_newa"
        assert wrapper_symbol(a, a.funcs[1]) == "MySample_a_method1"
        assert wrapper_symbol(b, a.funcs[1]) == "MySample_b_method1"
        assert wrapper_symbol(b, b.funcs[2]) == "MySample_b_delete"

    def test_module_names(self, package, ab):
        a, _ = ab
        assert class_module(a) == "mysample.a"
        assert package_module(package) == "mysample"

    def test_toplevel_symbol(self, package):
        fn = TopLevelFunction(int_, "Answer")
        assert toplevel_symbol(package, fn) == "MySample_answer"

    def test_type_tags(self):
        """Template argument tags are identifier safe"""
        assert type_tag(int_) == "int"
        assert type_tag(Ptr(char_)) == "char_ptr"
        assert type_tag(Prim(Primitive.ULONG)) == "unsigned_long"

    def test_template_symbol(self, package):
        vec = TemplateClass(package, "Vec", "T", [Constructor(), Destructor()])
        assert template_symbol(vec, vec.funcs[0], int_) == "Vec_new_int"
        assert template_symbol(vec, vec.funcs[1], Ptr(char_)) == "Vec_delete_char_ptr"


class TestSymbolTable:
    def test_collision_names_both_declarations(self, package):
        """A second owner for a symbol aborts with both owners named"""
        table = SymbolTable()
        table.add("MySample_a_f", "A::f")
        with pytest.raises(NamingConflictError) as exc:
            table.add("MySample_a_f", "A::F")
        assert exc.value.first == "A::f"
        assert exc.value.second == "A::F"

    def test_case_collision_through_lowercasing(self, package):
        """Entry names differing only in case flatten to one symbol"""
        c = Class(package, "A", funcs=[Virtual(void_, "run"), Virtual(void_, "Run")])
        with pytest.raises(NamingConflictError):
            SymbolTable.build(package, [(c, f) for f in c.funcs])

    def test_build_and_lookup(self, package, ab):
        a, b = ab
        table = SymbolTable.build(package, [(a, f) for f in a.funcs], [TopLevelFunction(int_, "answer")])
        assert table.symbol_for(a, a.funcs[1]) == "MySample_a_method1"
        assert "MySample_answer" in table
        assert len(table) == 4
        assert table.symbols() == tuple(sorted(table.symbols()))

    def test_duplicate_entry_names(self, package):
        c = Class(package, "A", funcs=[Virtual(void_, "f"), NonVirtual(void_, "g", alias="f")])
        with pytest.raises(NamingConflictError) as exc:
            check_entry_names(c, c.funcs)
        assert exc.value.what == "entry name"

    def test_template_members_and_instances(self, package):
        vec = TemplateClass(package, "Vec", "T", [Constructor(), Virtual(cppclass_("T"), "at", ((int_, "i"),))])
        table = SymbolTable.build(package, [], templates=[(vec, [int_, Ptr(char_)])])
        assert "Vec_new_decl" in table
        assert "Vec_at_decl" in table
        assert "Vec_at_int" in table
        assert "Vec_new_char_ptr" in table
        assert len(table) == 6

    def test_overloaded_template_members_collide(self, package):
        """Two template members sharing a name would emit one macro twice"""
        pair = TemplateClass(package, "Pair", "T", [
            Virtual(int_, "get", ((int_, "i"),)), Virtual(double_, "get", ((double_, "d"),)),
        ])
        with pytest.raises(NamingConflictError) as exc:
            SymbolTable.build(package, [], templates=[(pair, [])])
        assert exc.value.name == "Pair_get_decl"
        assert exc.value.first == exc.value.second == "Pair::get"

    def test_duplicate_instantiation_collides(self, package):
        vec = TemplateClass(package, "Vec", "T", [Constructor()])
        with pytest.raises(NamingConflictError) as exc:
            SymbolTable.build(package, [], templates=[(vec, [int_, int_])])
        assert exc.value.name == "Vec_new_int"
