"""
Template document loaders.

Loaders are the only place a template touches storage: they turn an include
or template path into the lines of a document.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Union

from ..template.errors import TemplateNotFound


class BaseLoader(ABC):
    """Reads template documents by path."""

    @abstractmethod
    def load(self, path: str) -> List[str]:
        """
        Load a document.

        Args:
            path: Template path (e.g., "partials/header.html")

        Returns:
            Document lines, each keeping its line ending

        Raises:
            TemplateNotFound: If the path does not name a document
        """


class TemplateLoader(BaseLoader):
    """Loads template files relative to a base directory."""

    def __init__(self, template_dir: Union[str, Path] = "templates", encoding: str = "utf-8"):
        self.template_dir = Path(template_dir)
        self.encoding = encoding

    def resolve(self, path: str) -> Path:
        """Resolve a template path, refusing paths that leave the template directory."""
        base = self.template_dir.resolve()
        template_file = (base / path).resolve()
        if base != template_file and base not in template_file.parents:
            raise TemplateNotFound(path)
        return template_file

    def load(self, path: str) -> List[str]:
        template_file = self.resolve(path)
        if not template_file.is_file():
            raise TemplateNotFound(path)

        with open(template_file, encoding=self.encoding) as f:
            return f.readlines()

    def list_templates(self) -> List[str]:
        """Paths of all files below the template directory."""
        return sorted(
            file.relative_to(self.template_dir).as_posix()
            for file in self.template_dir.rglob("*")
            if file.is_file()
        )


class MemoryLoader(BaseLoader):
    """Serves documents from a dict of path -> text."""

    def __init__(self, templates: Dict[str, str]):
        self.templates = dict(templates)

    def load(self, path: str) -> List[str]:
        if path not in self.templates:
            raise TemplateNotFound(path)
        return self.templates[path].splitlines(keepends=True)
