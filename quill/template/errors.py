"""Exceptions raised while compiling templates."""

from typing import Optional


class TemplateError(Exception):
    """Base exception for all template errors."""

    pass


class TemplateSyntaxError(TemplateError):
    """Raised for malformed expressions and block markers."""

    def __init__(
        self,
        message: str,
        source: str = "",
        line: Optional[int] = None,
        template: Optional[str] = None,
    ):
        self.source = source
        self.line = line
        self.template = template

        location = []
        if template:
            location.append(template)
        if line is not None:
            location.append(f"line {line}")
        if location:
            message = f"{message} ({', '.join(location)})"
        super().__init__(message)


class TemplateNotFound(TemplateError, FileNotFoundError):
    """Raised when a loader cannot resolve a template path."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"Template not found: {path}")


class IncludeNotFound(TemplateNotFound):
    """Raised when an include marker names a document the loader cannot find."""

    def __init__(self, path: str, template: str):
        self.template = template
        super().__init__(path, f"Include not found: {path} (included from {template})")


class RecursiveInclude(TemplateError):
    """Raised when a document includes itself, directly or transitively."""

    def __init__(self, chain):
        self.chain = tuple(chain)
        super().__init__(f"Recursive include: {' -> '.join(self.chain)}")
