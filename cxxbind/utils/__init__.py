from .logging_config import configure_logging, verbosity_level
from .digest import digest, file_digest, to_bytes
from .xml import xml_text

__all__ = [
    "configure_logging",
    "verbosity_level",
    "digest",
    "file_digest",
    "to_bytes",
    "xml_text",
]
