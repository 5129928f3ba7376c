"""Template loading modules."""

from .loaders import BaseLoader, TemplateLoader, MemoryLoader

__all__ = ["BaseLoader", "TemplateLoader", "MemoryLoader"]
