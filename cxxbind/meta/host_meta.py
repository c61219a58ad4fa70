from dataclasses import dataclass
from typing import Tuple

ModuleSuffix = str


@dataclass(frozen=True)
class HostLayoutMeta:
    source_dir: str = "src"
    rawtype: ModuleSuffix = "_rawtype"
    ffi: ModuleSuffix = "_ffi"
    interface: ModuleSuffix = "_interface"
    cast: ModuleSuffix = "_cast"
    implementation: ModuleSuffix = "_implementation"
    forward_stub: ModuleSuffix = "_interface_stub"
    template: ModuleSuffix = "_template"
    instantiation: ModuleSuffix = "_instantiation"
    toplevel: str = "toplevel"
    extension: str = ".py"

    def layer(self, module: str, suffix: ModuleSuffix) -> str:
        return module + suffix

    @property
    def class_layers(self) -> Tuple[ModuleSuffix, ...]:
        return (self.rawtype, self.ffi, self.interface, self.cast, self.implementation)
