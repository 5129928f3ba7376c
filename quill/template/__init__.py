"""Expression compilation and evaluation."""

from .atoms import Atom, AtomType, PRECEDENCE
from .engine import Expression, ExpressionCompiler, Tokenizer, expression_id
from .conditions import (
    ExpressionEvaluator,
    is_collection,
    is_constant,
    is_record_list,
    is_truthy,
    loose_equals,
    to_number,
    to_text,
)
from .errors import (
    IncludeNotFound,
    RecursiveInclude,
    TemplateError,
    TemplateNotFound,
    TemplateSyntaxError,
)

__all__ = [
    "Atom",
    "AtomType",
    "PRECEDENCE",
    "Expression",
    "ExpressionCompiler",
    "Tokenizer",
    "expression_id",
    "ExpressionEvaluator",
    "is_collection",
    "is_constant",
    "is_record_list",
    "is_truthy",
    "loose_equals",
    "to_number",
    "to_text",
    "IncludeNotFound",
    "RecursiveInclude",
    "TemplateError",
    "TemplateNotFound",
    "TemplateSyntaxError",
]
