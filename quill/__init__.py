"""Compile text templates once, render them against many variable bindings."""

from .config import BaseLoader, MemoryLoader, TemplateLoader
from .rendering import (
    MemoryTemplateCache,
    Template,
    TemplateCache,
    checksum,
    compile_template,
    deserialize,
    load_template,
    serialize,
)
from .template import (
    Expression,
    IncludeNotFound,
    RecursiveInclude,
    TemplateError,
    TemplateNotFound,
    TemplateSyntaxError,
)

__version__ = "1.0.0"

__all__ = [
    "BaseLoader",
    "MemoryLoader",
    "TemplateLoader",
    "MemoryTemplateCache",
    "Template",
    "TemplateCache",
    "checksum",
    "compile_template",
    "deserialize",
    "load_template",
    "serialize",
    "Expression",
    "IncludeNotFound",
    "RecursiveInclude",
    "TemplateError",
    "TemplateNotFound",
    "TemplateSyntaxError",
]
