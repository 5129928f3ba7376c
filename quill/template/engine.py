"""
Expression tokenizing and compilation.

Turns an infix expression such as ``a > b && !c`` into a flat sequence of
atoms in postfix order using operator precedence (shunting-yard). The
sequence is built once and evaluated from its tail by
:class:`~quill.template.conditions.ExpressionEvaluator`.
"""

import re
from typing import Any, Iterator, List, Mapping, Optional, Tuple

from .atoms import Atom, AtomType
from .conditions import ExpressionEvaluator
from .errors import TemplateSyntaxError


def expression_id(source: str) -> str:
    """Return the identity of an expression: its source without whitespace."""
    return re.sub(r'\s', '', source)


class Tokenizer:
    """Splits an expression string into atoms."""

    # Literals and identifiers: numbers, 'quoted' words, true/false, variable names
    LITERAL_PATTERN = re.compile(r"[A-Za-z0-9_'][A-Za-z0-9_'-]*")

    SINGLE_OPERATORS = {
        '*': AtomType.MUL,
        '/': AtomType.DIV,
        '%': AtomType.MOD,
        '+': AtomType.ADD,
        '-': AtomType.SUB,
        '(': AtomType.GROUP_OPEN,
        ')': AtomType.GROUP_CLOSE,
    }

    # operator char -> (type alone, second char, type when followed by it)
    PAIRED_OPERATORS = {
        '<': (AtomType.LESS, '=', AtomType.LESS_EQ),
        '>': (AtomType.GREATER, '=', AtomType.GREATER_EQ),
        '!': (AtomType.NOT, '=', AtomType.NOT_EQUAL),
        '=': (AtomType.EQUAL, '=', AtomType.EQUAL),
        '&': (AtomType.AND, '&', AtomType.AND),
        '|': (AtomType.OR, '|', AtomType.OR),
    }

    def __init__(self, source: str):
        self.source = source

    def __iter__(self) -> Iterator[Atom]:
        return self.tokenize()

    def tokenize(self) -> Iterator[Atom]:
        """Yield the atoms of the expression from left to right."""
        source = self.source
        buffer: List[str] = []
        i = 0
        count = len(source)

        while i < count:
            char = source[i]

            if char in self.PAIRED_OPERATORS:
                yield from self._flush(buffer)
                single, follower, double = self.PAIRED_OPERATORS[char]
                if i + 1 < count and source[i + 1] == follower:
                    yield Atom(double)
                    i += 2
                    continue
                yield Atom(single)
            elif char in self.SINGLE_OPERATORS:
                yield from self._flush(buffer)
                yield Atom(self.SINGLE_OPERATORS[char])
            else:
                buffer.append(char)
            i += 1

        yield from self._flush(buffer)

    def _flush(self, buffer: List[str]) -> Iterator[Atom]:
        token = ''.join(buffer).strip()
        buffer.clear()
        if not token:
            return
        if not self.LITERAL_PATTERN.fullmatch(token):
            raise TemplateSyntaxError(
                f"Invalid token {token!r} in expression {self.source!r}",
                source=self.source,
            )
        yield Atom(AtomType.LITERAL, token)


class ExpressionCompiler:
    """Orders atoms for stack evaluation using operator precedence."""

    def compile(self, source: str) -> Tuple[Atom, ...]:
        """
        Compile an expression into postfix order.

        Literals go straight to the output; operators wait on a stack until an
        operator of lower or equal rank arrives, which gives left-to-right
        grouping for operators of the same rank. ``!`` is a prefix operator and
        is pushed without popping so ``!!a`` nests correctly.

        Args:
            source: Infix expression (e.g., "(a + b) * 2 > limit")

        Returns:
            Tuple of atoms, operands before their operators

        Raises:
            TemplateSyntaxError: On bad tokens, unbalanced parentheses or an
                empty expression
        """
        output: List[Atom] = []
        stack: List[Atom] = []

        for atom in Tokenizer(source):
            if atom.is_literal:
                output.append(atom)
            elif atom.type is AtomType.GROUP_OPEN:
                stack.append(atom)
            elif atom.type is AtomType.GROUP_CLOSE:
                self._close_group(source, output, stack)
            else:
                if not atom.is_unary:
                    while (
                        stack
                        and stack[-1].type is not AtomType.GROUP_OPEN
                        and atom.precedence <= stack[-1].precedence
                    ):
                        output.append(stack.pop())
                stack.append(atom)

        while stack:
            top = stack.pop()
            if top.type is AtomType.GROUP_OPEN:
                raise TemplateSyntaxError(
                    f"Unmatched '(' in expression {source!r}", source=source
                )
            output.append(top)

        if not output:
            raise TemplateSyntaxError(f"Empty expression {source!r}", source=source)

        return tuple(output)

    @staticmethod
    def _close_group(source: str, output: List[Atom], stack: List[Atom]) -> None:
        while stack:
            top = stack.pop()
            if top.type is AtomType.GROUP_OPEN:
                return
            output.append(top)
        raise TemplateSyntaxError(f"Unmatched ')' in expression {source!r}", source=source)


class Expression:
    """A compiled expression, evaluable any number of times."""

    compiler = ExpressionCompiler()

    def __init__(self, source: str):
        self.source = source
        self.id = expression_id(source)
        self.atoms = self.compiler.compile(source)

    def evaluate(self, scope: Optional[Mapping[str, Any]] = None) -> Any:
        """Evaluate against a variable scope (unset names default to 0)."""
        return ExpressionEvaluator(self.atoms, scope or {}).evaluate()

    def __repr__(self) -> str:
        return f"Expression({self.source!r})"

    def postfix(self) -> str:
        """Space-separated postfix form, e.g. ``2 3 4 * +``."""
        return ' '.join(str(atom) for atom in self.atoms)
