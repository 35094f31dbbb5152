"""Text <-> number conversion for formula literals and cell values.

Numbers reach the evaluator as text: literal digits typed in a formula and
the stringified values of referenced cells.  A literal is only accepted when
it is already in canonical form, i.e. ``format_number(parse_float(s)) == s``.

Canonical form follows the conventions spreadsheet engines inherited from
ECMAScript ``Number.prototype.toString``:

- shortest digit string that round-trips to the same float
- integers carry no decimal point (``5``, never ``5.0``)
- decimal notation for ``1e-6 <= |x| < 1e21``, exponent notation otherwise
  with an explicit exponent sign (``1e+21``, ``1.5e-7``)
- ``NaN``, ``Infinity`` and ``-Infinity`` for the non-finite values
"""

from __future__ import annotations

import math
import re
from decimal import Decimal

# Longest numeric prefix accepted by ``parse_float``.
_FLOAT_PREFIX_RE = re.compile(
    r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)

_DECIMAL_MAX_EXP = 21
_DECIMAL_MIN_EXP = -6


def parse_float(text: str) -> float:
    """Parse the longest leading float in *text*.

    Leading whitespace is skipped and trailing characters are ignored, so
    ``"1.2.3"`` parses as ``1.2``.  Text with no numeric prefix gives NaN.
    """
    m = _FLOAT_PREFIX_RE.match(text.lstrip())
    if m is None:
        return math.nan
    literal = m.group(0)
    if literal.lstrip("+-") == "Infinity":
        return -math.inf if literal.startswith("-") else math.inf
    return float(literal)


def format_number(value: float) -> str:
    """Return the canonical text of *value*.

    Examples:
        ``5.0`` -> ``"5"``, ``0.1`` -> ``"0.1"``, ``-0.0`` -> ``"0"``,
        ``1e21`` -> ``"1e+21"``, ``1.5e-7`` -> ``"1.5e-7"``.
    """
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr() yields the shortest round-tripping digits.
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = "".join(str(d) for d in digit_tuple).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    k = len(digits)
    n = exponent + k  # position of the decimal point relative to digits

    if k <= n <= _DECIMAL_MAX_EXP:
        return sign + digits + "0" * (n - k)
    if 0 < n <= _DECIMAL_MAX_EXP:
        return sign + digits[:n] + "." + digits[n:]
    if _DECIMAL_MIN_EXP < n <= 0:
        return sign + "0." + "0" * (-n) + digits

    e = n - 1
    exp_text = ("+" if e >= 0 else "-") + str(abs(e))
    mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
    return f"{sign}{mantissa}e{exp_text}"


def is_canonical_number(text: str) -> bool:
    """True if *text* is exactly the canonical form of the number it parses to."""
    return format_number(parse_float(text)) == text


_NUMERIC_TEXT_RE = re.compile(
    r"\s*(?:[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))?\s*"
)


def is_numeric_text(text: str) -> bool:
    """True if the whole of *text* reads as a number.

    Blank text counts as numeric (it converts to zero).
    """
    return _NUMERIC_TEXT_RE.fullmatch(text) is not None
