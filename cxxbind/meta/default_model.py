from dataclasses import dataclass, field

from .cxx_meta import CxxLayoutMeta
from .host_meta import HostLayoutMeta


@dataclass(frozen=True)
class LayoutMeta:
    cxx: CxxLayoutMeta = field(default_factory=CxxLayoutMeta)
    host: HostLayoutMeta = field(default_factory=HostLayoutMeta)


DEFAULT_META = LayoutMeta()
