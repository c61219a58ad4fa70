"""cxxbind: C wrapper and ctypes binding generator for C++ class libraries."""

__version__ = "0.1.0"
