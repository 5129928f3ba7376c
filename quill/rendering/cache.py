"""
Compiling templates, with optional caching of the compiled form.

A compiled Template serializes to an opaque payload. Caches store payloads
under the template name plus a checksum of the document text, and every
lookup deserializes a fresh copy, so variables set on one copy never show
up in another.
"""

import hashlib
import logging
import pickle
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Dict, Optional, Union

from ..config.loaders import BaseLoader, TemplateLoader
from .template import Document, Template, join_document

logger = logging.getLogger(__name__)


def checksum(document: Document) -> str:
    """SHA-1 of the document text."""
    return hashlib.sha1(join_document(document).encode("utf-8")).hexdigest()


def serialize(template: Template) -> bytes:
    return pickle.dumps(template, protocol=pickle.HIGHEST_PROTOCOL)


def deserialize(payload: bytes) -> Template:
    """Restore a template from serialize(); only use payloads you produced."""
    template = pickle.loads(payload)
    if not isinstance(template, Template):
        raise TypeError(f"Payload does not hold a Template: {type(template).__name__}")
    return template


class TemplateCache(ABC):
    """Stores serialized templates by key."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the payload stored under key, or None."""

    @abstractmethod
    def put(self, key: str, payload: bytes) -> None:
        """Store a payload under key."""


class MemoryTemplateCache(TemplateCache):
    """In-process cache of serialized templates."""

    def __init__(self):
        self._payloads: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self._payloads.get(key)

    def put(self, key: str, payload: bytes) -> None:
        self._payloads[key] = payload

    def clear(self) -> None:
        self._payloads.clear()

    def __len__(self) -> int:
        return len(self._payloads)

    def __contains__(self, key: str) -> bool:
        return key in self._payloads


def compile_template(
    document: Document,
    base_path: Union[str, Path] = ".",
    loader: Optional[BaseLoader] = None,
    cache: Optional[TemplateCache] = None,
    name: str = "template",
) -> Template:
    """
    Compile a document into a Template.

    Args:
        document: Raw text or a sequence of lines
        base_path: Directory includes are resolved against (ignored if loader is given)
        loader: Collaborator used to read included documents
        cache: Optional cache of compiled templates
        name: Template name, used in diagnostics and cache keys

    Returns:
        A fresh Template, compiled or restored from the cache
    """
    if loader is None:
        loader = TemplateLoader(base_path)
    return _compile(join_document(document), loader, cache, name, ())


def load_template(
    path: str,
    loader: BaseLoader,
    cache: Optional[TemplateCache] = None,
) -> Template:
    """
    Load a document through a loader and compile it.

    Raises:
        TemplateNotFound: If the loader cannot find the path
    """
    text = join_document(loader.load(path))
    return _compile(text, loader, cache, PurePosixPath(path).name, (path,))


def _compile(text, loader, cache, name, include_chain) -> Template:
    if cache is None:
        return Template(text, loader, name, include_chain)

    key = f"{name}{checksum(text)}"
    payload = cache.get(key)
    if payload is not None:
        logger.debug("Template cache hit: %s", key)
        return deserialize(payload)

    logger.debug("Template cache miss: %s", key)
    template = Template(text, loader, name, include_chain)
    cache.put(key, serialize(template))
    return template
