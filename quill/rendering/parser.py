"""
Block parsing for template documents.

Carves conditional and repetition blocks out of a document, compiles each
block body into a child template, and leaves a placeholder in the parent:

    {if a > b}...{/if}        ->  {if:a>b:0}
    {foreach items}...{/foreach}  ->  {for:items:0}
    {include header.html}     ->  {include:header.html}
    {a + 1}                   ->  {a+1}

Comments ``{* ... *}`` are removed. A marker preceded by a backslash is
escaped and left alone.
"""

import logging
import re
from typing import TYPE_CHECKING, Match, Optional, Tuple

from ..template import is_constant
from ..template.errors import TemplateSyntaxError

if TYPE_CHECKING:
    from .template import Template

logger = logging.getLogger(__name__)

# Characters allowed inside an expression marker
EXPR_CHARS = r"A-Za-z0-9_=<>\-+()\s'!*%&|/"
NAME_PATTERN = re.compile(r'[A-Za-z0-9_]+')

VAR_PATTERN = re.compile(r'(?<!\\)\{([A-Za-z0-9_]+)\}')
EXPR_PATTERN = re.compile(r'(?<!\\)\{([' + EXPR_CHARS + r']+)\}')
INCLUDE_PATTERN = re.compile(r'(?<!\\)\{include\s+([A-Za-z0-9_./-]+)\}')
COMMENT_OPEN = re.compile(r'(?<!\\)\{\*')
COMMENT_CLOSE = re.compile(r'\*\}')

# Block open/close markers; kind is "foreach" or "if"
BLOCK_PATTERN = re.compile(
    r'(?<!\\)\{(?:(?P<kind>foreach|if)\s+(?P<arg>[' + EXPR_CHARS + r']+)|/(?P<end>foreach|if))\}'
)

PLACEHOLDER_KIND = {"foreach": "for", "if": "if"}


def block_placeholder(kind: str, key: str, index: int) -> str:
    return '{%s:%s:%d}' % (PLACEHOLDER_KIND.get(kind, kind), key, index)


def include_placeholder(path: str) -> str:
    return '{include:%s}' % path


def line_number(text: str, pos: int) -> int:
    return text.count('\n', 0, pos) + 1


def standalone_span(text: str, start: int, end: int) -> Tuple[int, int]:
    """
    Widen a marker span to its whole line when nothing else is on that line.

    Returns (start, end) unchanged otherwise.
    """
    line_start = text.rfind('\n', 0, start) + 1
    line_end = text.find('\n', end)
    line_end = len(text) if line_end == -1 else line_end + 1
    if text[line_start:start].strip() or text[end:line_end].strip():
        return start, end
    return line_start, line_end


class BlockParser:
    """Compiles document text into the tables of a Template."""

    def __init__(self, template: 'Template'):
        self.template = template

    def parse(self, text: str) -> str:
        """
        Parse a document and fill the owning template's tables.

        Order matters: comments go first so nothing inside them is parsed,
        blocks next so their bodies belong to the children, then includes,
        variables and inline expressions on whatever text remains.

        Args:
            text: Full document text

        Returns:
            The template text with placeholders in place of markers
        """
        text = self.strip_comments(text)
        text = self.parse_blocks(text)
        text = self.parse_includes(text)
        self.collect_variables(text)
        return self.parse_expressions(text)

    def strip_comments(self, text: str) -> str:
        """Remove {* ... *} comments; a comment alone on its lines removes those lines."""
        parts = []
        pos = 0
        while True:
            opening = COMMENT_OPEN.search(text, pos)
            if not opening:
                parts.append(text[pos:])
                break

            closing = COMMENT_CLOSE.search(text, opening.end())
            if closing:
                start, end = standalone_span(text, opening.start(), closing.end())
            else:
                logger.warning(
                    "Comment opened on line %d of %s is never closed",
                    line_number(text, opening.start()), self.template.name,
                )
                start, end = opening.start(), len(text)

            start = max(start, pos)
            parts.append(text[pos:start])
            pos = end

        return ''.join(parts)

    def parse_blocks(self, text: str) -> str:
        """Replace every top-level block with a placeholder and a compiled child."""
        parts = []
        pos = 0
        while True:
            marker = BLOCK_PATTERN.search(text, pos)
            if not marker:
                parts.append(text[pos:])
                break

            if marker.group('end'):
                # A close marker with no open one
                logger.warning(
                    "Unexpected {/%s} on line %d of %s",
                    marker.group('end'), line_number(text, marker.start()), self.template.name,
                )
                start, end = standalone_span(text, marker.start(), marker.end())
                start = max(start, pos)
                parts.append(text[pos:start])
                pos = end
                continue

            start, end, placeholder = self._carve_block(text, marker)
            start = max(start, pos)
            parts.append(text[pos:start])
            parts.append(placeholder)
            pos = end

        return ''.join(parts)

    def _carve_block(self, text: str, marker: Match[str]) -> Tuple[int, int, str]:
        kind = marker.group('kind')
        arg = marker.group('arg')
        line = line_number(text, marker.start())

        open_start, body_start = standalone_span(text, marker.start(), marker.end())

        closing = self._find_close(text, marker.end(), kind)
        if closing is None:
            logger.warning(
                "Block {%s %s} opened on line %d of %s has no closing {/%s}",
                kind, arg.strip(), line, self.template.name, kind,
            )
            body_end = close_end = len(text)
        else:
            body_end, close_end = standalone_span(text, closing.start(), closing.end())

        body = text[body_start:max(body_start, body_end)]

        if kind == 'foreach':
            name = arg.strip()
            if not NAME_PATTERN.fullmatch(name):
                raise TemplateSyntaxError(
                    f"Invalid foreach name {name!r}",
                    source=marker.group(0), line=line, template=self.template.name,
                )
            index = self.template.add_loop(name, body)
            placeholder = block_placeholder(kind, name, index)
        else:
            expression = self._compile_expression(arg, marker.group(0), line)
            index = self.template.add_conditional(expression, body)
            placeholder = block_placeholder(kind, expression.id, index)

        return open_start, close_end, placeholder

    @staticmethod
    def _find_close(text: str, pos: int, kind: str) -> Optional[Match[str]]:
        """Find the close marker matching an open marker, counting nesting of the same kind."""
        depth = 1
        for marker in BLOCK_PATTERN.finditer(text, pos):
            if marker.group('kind') == kind:
                depth += 1
            elif marker.group('end') == kind:
                depth -= 1
                if depth == 0:
                    return marker
        return None

    def parse_includes(self, text: str) -> str:
        """Compile each distinct include once and leave include placeholders."""
        def replace_include(match: Match[str]) -> str:
            path = match.group(1)
            self.template.add_include(path)
            return include_placeholder(path)

        return INCLUDE_PATTERN.sub(replace_include, text)

    def collect_variables(self, text: str) -> None:
        """Remember every {name} so unset names render as empty text."""
        for match in VAR_PATTERN.finditer(text):
            if is_constant(match.group(1)):
                continue
            self.template.stubs.setdefault(match.group(1), None)

    def parse_expressions(self, text: str) -> str:
        """Compile inline {expressions} and rewrite them to their expression ids."""
        def replace_expression(match: Match[str]) -> str:
            source = match.group(1)
            if not source.strip():
                return match.group(0)
            expression = self._compile_expression(
                source, match.group(0), line_number(text, match.start())
            )
            return '{%s}' % expression.id

        return EXPR_PATTERN.sub(replace_expression, text)

    def _compile_expression(self, source: str, fragment: str, line: int):
        try:
            return self.template.add_expression(source)
        except TemplateSyntaxError as e:
            raise TemplateSyntaxError(
                str(e), source=fragment, line=line, template=self.template.name
            ) from e
