from .cxx_meta import CxxLayoutMeta
from .host_meta import HostLayoutMeta
from .default_model import LayoutMeta, DEFAULT_META

__all__ = [
    "CxxLayoutMeta",
    "HostLayoutMeta",
    "LayoutMeta",
    "DEFAULT_META",
]
