"""Template compilation and rendering modules."""

from .template import Template
from .parser import BlockParser
from .cache import (
    MemoryTemplateCache,
    TemplateCache,
    checksum,
    compile_template,
    deserialize,
    load_template,
    serialize,
)

__all__ = [
    "Template",
    "BlockParser",
    "MemoryTemplateCache",
    "TemplateCache",
    "checksum",
    "compile_template",
    "deserialize",
    "load_template",
    "serialize",
]
