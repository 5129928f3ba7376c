"""
Compiled templates: variable scope and rendering.

A Template owns the children compiled from its blocks and includes. Setting
a variable stores it locally and pushes it down to every child; a child may
overwrite what it received without affecting its parent or siblings.
"""

import logging
from itertools import chain
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union, TYPE_CHECKING

from ..template import Expression, is_collection, is_constant, is_record_list, is_truthy, to_text
from ..template.errors import IncludeNotFound, RecursiveInclude, TemplateNotFound
from .parser import EXPR_PATTERN, VAR_PATTERN, BlockParser, block_placeholder, include_placeholder

if TYPE_CHECKING:
    from ..config.loaders import BaseLoader

logger = logging.getLogger(__name__)

Document = Union[str, Sequence[str]]


def join_document(document: Document) -> str:
    """Document text from raw text or a sequence of lines (concatenated as-is)."""
    if isinstance(document, str):
        return document
    return ''.join(document)


def unescape(text: str) -> str:
    return text.replace('\\{', '{').replace('\\}', '}')


class Template:
    """A compiled document fragment."""

    def __init__(
        self,
        document: Document,
        loader: Optional['BaseLoader'] = None,
        name: str = "template",
        include_chain: Tuple[str, ...] = (),
    ):
        """
        Compile a document.

        Args:
            document: Raw text or a sequence of lines
            loader: Collaborator used to read included documents
            name: Name used in diagnostics
            include_chain: Paths of the includes leading to this document

        Raises:
            TemplateSyntaxError: On malformed expressions or block markers
            IncludeNotFound: If an included document cannot be loaded
            RecursiveInclude: If a document includes itself
        """
        self.name = name
        self.loader = loader
        self.include_chain = include_chain

        # Variable scope; written by set(), read by render()
        self.variables: Dict[str, Any] = {}
        # Names seen as {name}; dict for insertion order
        self.stubs: Dict[str, None] = {}

        self.expressions: Dict[str, Expression] = {}
        self.conditionals: Dict[str, List['Template']] = {}
        self.loops: Dict[str, List['Template']] = {}
        self.includes: Dict[str, 'Template'] = {}

        self.text = BlockParser(self).parse(join_document(document))

    def __repr__(self) -> str:
        return f"Template({self.name!r})"

    # -- Compilation hooks used by BlockParser ---------------------------------

    def add_expression(self, source: str) -> Expression:
        """Compile an expression, reusing an existing one with the same id."""
        expression = Expression(source)
        return self.expressions.setdefault(expression.id, expression)

    def add_conditional(self, expression: Expression, body: str) -> int:
        instances = self.conditionals.setdefault(expression.id, [])
        index = len(instances)
        instances.append(self._child(body, f"{self.name}_if_{expression.id}_{index}"))
        return index

    def add_loop(self, name: str, body: str) -> int:
        instances = self.loops.setdefault(name, [])
        index = len(instances)
        instances.append(self._child(body, f"{self.name}_for_{name}_{index}"))
        return index

    def add_include(self, path: str) -> 'Template':
        if path in self.includes:
            return self.includes[path]

        if path in self.include_chain:
            raise RecursiveInclude(self.include_chain + (path,))
        if self.loader is None:
            raise IncludeNotFound(path, self.name)

        try:
            lines = self.loader.load(path)
        except TemplateNotFound as e:
            raise IncludeNotFound(path, self.name) from e

        logger.debug("Compiling include %s from %s", path, self.name)
        include = Template(lines, self.loader, path, self.include_chain + (path,))
        self.includes[path] = include
        return include

    def _child(self, body: str, name: str) -> 'Template':
        return Template(body, self.loader, name, self.include_chain)

    # -- Scope ---------------------------------------------------------------------

    def children(self) -> Iterator['Template']:
        """Every conditional, repetition and include child, in that order."""
        return chain(
            chain.from_iterable(self.conditionals.values()),
            chain.from_iterable(self.loops.values()),
            self.includes.values(),
        )

    def set(self, name: str, value: Any) -> None:
        """Bind a variable here and in every child."""
        self.variables[name] = value
        for child in self.children():
            child.set(name, value)

    def update(self, variables: Mapping[str, Any]) -> None:
        for name, value in variables.items():
            self.set(name, value)

    def get(self, name: str, default: Any = None) -> Any:
        return self.variables.get(name, default)

    # -- Rendering -----------------------------------------------------------------

    def render(self) -> str:
        """Render the template against its current scope."""
        return unescape(self._render())

    def _render(self) -> str:
        """
        Render without resolving escapes.

        Passes run in a fixed order: includes, conditionals, repetitions,
        variables, then inline expressions. Each expression is evaluated at
        most once per pass.
        """
        text = self.text
        results: Dict[str, Any] = {}

        for path, include in self.includes.items():
            text = text.replace(include_placeholder(path), include._render())

        for expr_id, instances in self.conditionals.items():
            passed = is_truthy(self._evaluate(expr_id, results))
            for index, child in enumerate(instances):
                output = child._render() if passed else ""
                text = text.replace(block_placeholder("if", expr_id, index), output)

        for name, instances in self.loops.items():
            records = self.variables.get(name)
            for index, child in enumerate(instances):
                output = self._render_loop(child, records)
                text = text.replace(block_placeholder("foreach", name, index), output)

        text = VAR_PATTERN.sub(self._substitute_variable, text)

        def substitute_expression(match):
            expr_id = match.group(1)
            if expr_id not in self.expressions:
                return match.group(0)
            return to_text(self._evaluate(expr_id, results))

        return EXPR_PATTERN.sub(substitute_expression, text)

    def _evaluate(self, expr_id: str, results: Dict[str, Any]) -> Any:
        if expr_id not in results:
            results[expr_id] = self.expressions[expr_id].evaluate(self.variables)
        return results[expr_id]

    @staticmethod
    def _render_loop(child: 'Template', records: Any) -> str:
        if not is_record_list(records):
            return ""

        parts = []
        for record in records:
            for key, value in record.items():
                child.set(key, value)
            parts.append(child._render())
        return ''.join(parts)

    def _substitute_variable(self, match) -> str:
        name = match.group(1)
        # Number and boolean literals are printed by the expression pass
        if is_constant(name):
            return match.group(0)
        if name in self.variables:
            value = self.variables[name]
            # Collections are left for the expression pass, which prints their size
            if is_collection(value):
                return match.group(0)
            return to_text(value)
        if name in self.stubs:
            return ""
        return match.group(0)
