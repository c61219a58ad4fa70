import os
import sys

import pytest

# Ensure project root is first on sys.path so the local cxxbind package is used
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from cxxbind.core.cpp_types import cppclass, cppclass_, int_, void_  # noqa: E402
from cxxbind.core.model import (  # noqa: E402
    Class, Constructor, Destructor, NonVirtual, Package, PackageDeclaration, Static, Virtual,
)


@pytest.fixture
def package():
    return Package("MySample")


def make_ab(package):
    """A: virtual method1() -> void; B extends A: virtual method2(x: A) -> A."""
    a = Class(package, "A", funcs=[
        Constructor(),
        Virtual(void_, "method1"),
        Destructor(),
    ])
    b = Class(package, "B", parents=[a], funcs=[
        Constructor(),
        Virtual(cppclass_(a), "method2", (cppclass(a, "x"),)),
        Destructor(),
    ])
    return a, b


@pytest.fixture
def ab(package):
    return make_ab(package)


@pytest.fixture
def ab_declaration(package, ab):
    return PackageDeclaration(package=package, classes=list(ab))


def make_diamond(package):
    base = Class(package, "Base", funcs=[Virtual(int_, "id"), Destructor()])
    left = Class(package, "Left", parents=[base], funcs=[Constructor()])
    right = Class(package, "Right", parents=[base], funcs=[Constructor(), NonVirtual(int_, "weight")])
    bottom = Class(package, "Bottom", parents=[left, right], funcs=[
        Constructor(), Static(int_, "count"),
    ])
    return base, left, right, bottom


@pytest.fixture
def diamond(package):
    return make_diamond(package)


@pytest.fixture
def ab_factory(package):
    """Builds fresh, equivalent A/B declarations."""
    return lambda: PackageDeclaration(package=package, classes=list(make_ab(package)))
