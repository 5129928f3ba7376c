"""
Expression evaluation for template logic.

Evaluates compiled expressions against a variable scope. Types are resolved
at evaluation time and mixed operands are coerced loosely, so evaluation
never fails on a type mismatch.
"""

import logging
import math
import operator
import re
from typing import Any, Callable, Dict, Mapping, Sequence, Tuple, Union

from .atoms import Atom, AtomType

logger = logging.getLogger(__name__)

Number = Union[int, float]

NUMBER_PATTERN = re.compile(r'[0-9]+(?:[eE][0-9]+)?')
NUMERIC_TEXT_PATTERN = re.compile(r'\s*[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?\s*')
QUOTED_PATTERN = re.compile(r"'([A-Za-z0-9_-]*)'")


def is_collection(value: Any) -> bool:
    """True for lists, tuples and mappings (strings are scalars)."""
    return isinstance(value, (list, tuple, Mapping))


def is_record_list(value: Any) -> bool:
    """True for an ordered sequence of mappings, the shape repetition blocks iterate."""
    return isinstance(value, (list, tuple)) and all(isinstance(item, Mapping) for item in value)


def is_numeric(value: Any) -> bool:
    """True for numbers and numeric strings (bools excluded)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and NUMERIC_TEXT_PATTERN.fullmatch(value) is not None


def to_number(value: Any) -> Number:
    """
    Coerce a value to a number.

    bool -> int, numeric string -> int/float, collection -> element count,
    anything else -> 0.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        if not NUMERIC_TEXT_PATTERN.fullmatch(value):
            return 0
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return float(text)
    if is_collection(value):
        return len(value)
    return 0


def to_text(value: Any) -> str:
    """Render a value the way placeholders print it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_collection(value):
        return str(len(value))
    return str(value)


def is_truthy(value: Any) -> bool:
    return bool(value)


def is_constant(token: str) -> bool:
    """True for number and true/false literals, which never name a variable."""
    return NUMBER_PATTERN.fullmatch(token) is not None or token in ("true", "false")


def resolve_literal(token: str, scope: Mapping[str, Any]) -> Any:
    """
    Classify a literal token.

    In order: number, 'quoted' string, true/false, variable in scope.
    Anything else is an unset variable and evaluates to 0.
    """
    if NUMBER_PATTERN.fullmatch(token):
        return to_number(token)

    quoted = QUOTED_PATTERN.fullmatch(token)
    if quoted:
        return quoted.group(1)

    if token == "true":
        return True
    if token == "false":
        return False

    if token in scope:
        return scope[token]

    return 0


def loose_equals(a: Any, b: Any) -> bool:
    """Cross-type equality: bools by truthiness, numbers numerically, else by text."""
    if isinstance(a, bool) or isinstance(b, bool):
        return is_truthy(a) == is_truthy(b)
    if is_numeric(a) and is_numeric(b):
        return to_number(a) == to_number(b)
    if type(a) is type(b):
        return a == b
    return to_text(a) == to_text(b)


def loose_compare(op: Callable[[Any, Any], bool], a: Any, b: Any) -> bool:
    """Apply an ordering operator, falling back to numeric then text ordering."""
    if is_numeric(a) and is_numeric(b) and (isinstance(a, str) or isinstance(b, str)):
        return op(to_number(a), to_number(b))
    try:
        return bool(op(a, b))
    except TypeError:
        pass
    if is_numeric(a) and is_numeric(b):
        return op(to_number(a), to_number(b))
    return op(to_text(a), to_text(b))


def divide(a: Any, b: Any) -> Number:
    """
    Integer division truncating toward zero; dividing by zero yields 0.

    An infinite quotient is returned as it is, since it has no integer form.
    """
    a, b = to_number(a), to_number(b)
    if b == 0:
        logger.warning("Division by zero in expression, using 0")
        return 0
    if isinstance(a, int) and isinstance(b, int):
        quotient = abs(a) // abs(b)
        return quotient if (a < 0) == (b < 0) else -quotient
    try:
        quotient = a / b
    except OverflowError:
        logger.warning("Numeric overflow in expression, using 0")
        return 0
    if not math.isfinite(quotient):
        return quotient
    return math.trunc(quotient)


def modulo(a: Any, b: Any) -> Number:
    a, b = to_number(a), to_number(b)
    if b == 0:
        logger.warning("Modulo by zero in expression, using 0")
        return 0
    try:
        return a % b
    except OverflowError:
        logger.warning("Numeric overflow in expression, using 0")
        return 0


def arithmetic(op: Callable[[Number, Number], Number]) -> Callable[[Any, Any], Number]:
    """Wrap a numeric operator so both operands are coerced and overflow yields 0."""
    def apply(a: Any, b: Any) -> Number:
        try:
            return op(to_number(a), to_number(b))
        except OverflowError:
            logger.warning("Numeric overflow in expression, using 0")
            return 0
    return apply


BINARY_OPERATIONS: Dict[AtomType, Callable[[Any, Any], Any]] = {
    AtomType.ADD: arithmetic(operator.add),
    AtomType.SUB: arithmetic(operator.sub),
    AtomType.MUL: arithmetic(operator.mul),
    AtomType.DIV: divide,
    AtomType.MOD: modulo,
    AtomType.AND: lambda a, b: is_truthy(a) and is_truthy(b),
    AtomType.OR: lambda a, b: is_truthy(a) or is_truthy(b),
    AtomType.EQUAL: loose_equals,
    AtomType.NOT_EQUAL: lambda a, b: not loose_equals(a, b),
    AtomType.LESS: lambda a, b: loose_compare(operator.lt, a, b),
    AtomType.GREATER: lambda a, b: loose_compare(operator.gt, a, b),
    AtomType.LESS_EQ: lambda a, b: loose_compare(operator.le, a, b),
    AtomType.GREATER_EQ: lambda a, b: loose_compare(operator.ge, a, b),
}


class ExpressionEvaluator:
    """
    Stack machine over a compiled expression.

    Reads atoms from the tail of the sequence through a cursor; the compiled
    tuple itself is never modified, so one expression can be evaluated by any
    number of evaluators.
    """

    def __init__(self, atoms: Sequence[Atom], scope: Mapping[str, Any]):
        self.atoms: Tuple[Atom, ...] = tuple(atoms)
        self.scope = scope
        self.cursor = len(self.atoms)

    def evaluate(self) -> Any:
        """Evaluate the whole expression."""
        self.cursor = len(self.atoms)
        return self._next()

    def _next(self) -> Any:
        # A missing operand (e.g. the left side of "-5") reads as 0
        if self.cursor == 0:
            return 0
        self.cursor -= 1
        atom = self.atoms[self.cursor]

        if atom.is_literal:
            return resolve_literal(atom.value, self.scope)

        if atom.type is AtomType.NOT:
            return not is_truthy(self._next())

        # Right operand sits closer to the tail
        b = self._next()
        a = self._next()
        return BINARY_OPERATIONS[atom.type](a, b)
