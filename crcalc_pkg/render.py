"""Display formatting for ``UnifiedReal`` results.

Exact values whose irrational factor is a named constant are rendered
through SymPy so that they print the way the rest of the SymPy ecosystem
prints them (``sqrt(2)/2``, ``pi/6``, ``3*log(2)``). Everything else is
rendered as a truncated decimal.
"""

from __future__ import annotations

import sympy as sp

from . import cr
from . import unified_real as ur
from .unified_real import UnifiedReal


def _named_factor(x: cr.CR):
    """SymPy counterpart of a named constant, or None."""
    if x is ur.CR_ONE:
        return sp.Integer(1)
    if x is ur.CR_PI:
        return sp.pi
    if x is ur.CR_E:
        return sp.E
    for i, entry in enumerate(ur.SQRTS):
        if entry is x:
            return sp.sqrt(i)
    for i, entry in enumerate(ur.LOGS):
        if entry is x:
            return sp.log(i)
    return None


def to_sympy(value: UnifiedReal) -> sp.Expr | None:
    """Exact SymPy expression for ``value``, or None if it has no closed form here.

    Examples:
        >>> to_sympy(UnifiedReal.from_int(1).asin())
        pi/2
    """
    rat = value.rat_factor.reduce().positive_den()
    coefficient = sp.Rational(rat.num, rat.den)
    if rat.num == 0:
        return sp.Integer(0)
    factor = _named_factor(value.cr_factor)
    if factor is None:
        return None
    return coefficient * factor


def format_decimal(value: UnifiedReal, digits: int) -> str:
    """``value`` truncated to ``digits`` places, without trailing ``.`` for zero digits."""
    text = value.to_string_truncated(digits)
    if digits == 0 and text.endswith("."):
        text = text[:-1]
    return text


def format_result(value: UnifiedReal, digits: int) -> tuple[str, bool]:
    """Decimal text for ``value`` and whether that text is exact.

    A value whose decimal expansion ends within ``digits`` places is printed
    in full (integers without a decimal point); anything else is truncated
    toward zero to ``digits`` places.
    """
    required = value.digits_required()
    if required <= digits:
        if required == 0:
            return str(value.integer_value()), True
        return value.to_string_truncated(required), True
    return format_decimal(value, digits), False


def format_exact(value: UnifiedReal) -> str:
    """Exact symbolic text, falling back to the engine's own notation."""
    expr = to_sympy(value)
    if expr is None:
        return value.to_nice_string()
    return sp.sstr(expr)
