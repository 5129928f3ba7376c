"""
Expression atoms and operator precedence.

An atom is the smallest unit of an expression: one operator, or one
literal/identifier token.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class AtomType(Enum):
    """Tag of an expression atom."""

    LITERAL = "literal"
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    EQUAL = "="
    NOT_EQUAL = "!="
    LESS = "<"
    GREATER = ">"
    LESS_EQ = "<="
    GREATER_EQ = ">="
    NOT = "!"
    AND = "&&"
    OR = "||"
    GROUP_OPEN = "("
    # Emitted by the tokenizer only, never stored in a compiled expression
    GROUP_CLOSE = ")"


# Higher rank binds tighter. GROUP_OPEN is a stack sentinel and has no rank.
PRECEDENCE: Dict[AtomType, int] = {
    AtomType.EQUAL: 1,
    AtomType.NOT_EQUAL: 1,
    AtomType.LESS: 1,
    AtomType.GREATER: 1,
    AtomType.LESS_EQ: 1,
    AtomType.GREATER_EQ: 1,
    AtomType.AND: 2,
    AtomType.OR: 2,
    AtomType.ADD: 3,
    AtomType.SUB: 3,
    AtomType.MUL: 4,
    AtomType.DIV: 4,
    AtomType.MOD: 4,
    AtomType.NOT: 5,
}


@dataclass(frozen=True)
class Atom:
    """One operator or literal token of an expression."""

    type: AtomType
    value: str = ""

    @property
    def is_literal(self) -> bool:
        return self.type is AtomType.LITERAL

    @property
    def is_unary(self) -> bool:
        return self.type is AtomType.NOT

    @property
    def precedence(self) -> int:
        """Rank used by the compiler; raises KeyError for literals and groups."""
        return PRECEDENCE[self.type]

    def __str__(self) -> str:
        return self.value if self.is_literal else self.type.value
