from dataclasses import dataclass

Pattern = str


@dataclass(frozen=True)
class CxxLayoutMeta:
    source_dir: str = "csrc"
    type_header: Pattern = "{prefix}Type.h"
    wrapper_header: Pattern = "{prefix}{name}.h"
    wrapper_source: Pattern = "{prefix}{name}.cpp"
    template_header: Pattern = "{prefix}{name}.h"
    toplevel_header: Pattern = "{prefix}TopLevel.h"
    toplevel_source: Pattern = "{prefix}TopLevel.cpp"
    handle_suffix: str = "_p"
    const_prefix: str = "const_"
    raw_suffix: str = "_t"

    def header_for(self, prefix: str, name: str) -> str:
        return self.wrapper_header.format(prefix=prefix, name=name)

    def source_for(self, prefix: str, name: str) -> str:
        return self.wrapper_source.format(prefix=prefix, name=name)

    def guard(self, header: str) -> str:
        return "__" + "".join(ch.upper() if ch.isalnum() else "_" for ch in header) + "__"
