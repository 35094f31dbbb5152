"""Classification of formula tokens.

Formulas arrive pre-split into tokens: single digit or decimal-point
characters (or longer numeric runs), the operators ``+ - * /``, parentheses,
and cell-reference labels such as ``A1``.
"""

from __future__ import annotations

import re

# Leading characters that mark a token as a cell reference.  This is a fixed
# allow-list, not "any letter": F and G are deliberately absent.
REFERENCE_PREFIXES: frozenset[str] = frozenset("ABCDEHIJK")

OPERATOR_PRECEDENCE: dict[str, int] = {
    "+": 1,
    "-": 1,
    "*": 2,
    "/": 2,
}

MULTIPLY = "*"
OPEN_PAREN = "("
CLOSE_PAREN = ")"

_NUMERIC_FRAGMENT_RE = re.compile(r"[0-9.]")


def is_reference_token(token: str) -> bool:
    """True if *token* should be resolved as a cell reference."""
    return bool(token) and token[0] in REFERENCE_PREFIXES


def is_numeric_fragment(token: str) -> bool:
    """True if *token* belongs in the number buffer (contains a digit or ``.``)."""
    return _NUMERIC_FRAGMENT_RE.search(token) is not None


def is_operator(token: str) -> bool:
    return token in OPERATOR_PRECEDENCE
