from .config import DEFAULT_BANNER, DEFAULT_CONFIG, GeneratorConfig
from .loader import load_declaration, load_declaration_file, parse_type

__all__ = [
    "DEFAULT_BANNER",
    "DEFAULT_CONFIG",
    "GeneratorConfig",
    "load_declaration",
    "load_declaration_file",
    "parse_type",
]
