"""Operator symbols and their classification.

Every operator is either inclusive or exclusive. Regex-ness and numeric
comparison are independent axes. Classification depends only on the symbol.
"""

from enum import Enum


class FilterOp(str, Enum):
    """Operators for label, metadata and field filters."""

    Equal = "="
    NotEqual = "!="
    RegexEqual = "=~"
    RegexNotEqual = "!~"
    gt = ">"
    lt = "<"
    gte = ">="
    lte = "<="


class LineFilterOp(str, Enum):
    """Operators for free-text filters against the log line."""

    match = "|="
    negativeMatch = "!="
    regex = "|~"
    negativeRegex = "!~"


class LineFilterCaseSensitive(str, Enum):
    """Line filters store their case sensitivity in the filter key."""

    caseSensitive = "caseSensitive"
    caseInsensitive = "caseInsensitive"


EXCLUSIVE_OPERATORS = frozenset(
    {
        FilterOp.NotEqual.value,
        FilterOp.RegexNotEqual.value,
        LineFilterOp.negativeMatch.value,
        LineFilterOp.negativeRegex.value,
    }
)

REGEX_OPERATORS = frozenset(
    {
        FilterOp.RegexEqual.value,
        FilterOp.RegexNotEqual.value,
        LineFilterOp.regex.value,
        LineFilterOp.negativeRegex.value,
    }
)

NUMERIC_OPERATORS = (
    FilterOp.gt.value,
    FilterOp.gte.value,
    FilterOp.lt.value,
    FilterOp.lte.value,
)


def _symbol(op: str | Enum) -> str:
    return op.value if isinstance(op, Enum) else op


def is_operator_exclusive(op: str | Enum) -> bool:
    return _symbol(op) in EXCLUSIVE_OPERATORS


def is_operator_inclusive(op: str | Enum) -> bool:
    """Anything not exclusive is inclusive, unknown symbols included."""
    return not is_operator_exclusive(op)


def is_operator_regex(op: str | Enum) -> bool:
    return _symbol(op) in REGEX_OPERATORS


def is_operator_numeric(op: str | Enum) -> bool:
    return _symbol(op) in NUMERIC_OPERATORS
