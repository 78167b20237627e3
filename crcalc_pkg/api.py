"""Public API for crcalc - returns structured objects without side effects."""

from __future__ import annotations

from .parser import evaluate_expression, parse, validate_input
from .types import EvalResult, ExpressionError, ValidationError
from .unified_real import UnifiedReal
from .worker import evaluate_safely


def evaluate(
    expression: str, digits: int | None = None, degree_mode: bool = False
) -> EvalResult:
    """Evaluate an expression in the worker process.

    Args:
        expression: Expression string (e.g., "2+2", "sin(pi/6)", "2^0.5")
        digits: Digits after the decimal point for approximate results
        degree_mode: Interpret trigonometric arguments in degrees

    Returns:
        EvalResult with the exact form where known and a truncated decimal

    Example:
        >>> from crcalc_pkg.api import evaluate
        >>> result = evaluate("sqrt(8)")
        >>> print(result.result)
        2*sqrt(2)
        >>> print(result.approx)
        2.82842712474619009760
        >>> evaluate("1/0").error_code
        'DIVISION_BY_ZERO'
    """
    data = evaluate_safely(expression, digits=digits, degree_mode=degree_mode)
    if not data.get("ok"):
        return EvalResult(
            ok=False,
            error=data.get("error") or "Unknown error",
            error_code=data.get("error_code"),
        )
    return EvalResult(
        ok=True,
        result=data.get("result"),
        exact=data.get("exact"),
        approx=data.get("approx"),
        digits_required=data.get("digits_required"),
    )


def evaluate_value(expression: str, degree_mode: bool = False) -> UnifiedReal:
    """Evaluate an expression in this process and return the number itself.

    Unlike ``evaluate`` there is no timeout, so comparisons on the result
    can run forever. Errors propagate as exceptions.

    Example:
        >>> from crcalc_pkg.api import evaluate_value
        >>> x = evaluate_value("sqrt(2)^2")
        >>> x.definitely_rational()
        True
    """
    return evaluate_expression(expression, degree_mode)


def validate_expression(expression: str) -> tuple[bool, str | None]:
    """Validate an expression without evaluating it.

    Args:
        expression: Expression string to validate

    Returns:
        Tuple of (is_valid, error_message)

    Example:
        >>> from crcalc_pkg.api import validate_expression
        >>> validate_expression("2 + 2")
        (True, None)
        >>> validate_expression("2 $ 2")
        (False, "Unknown char '$' at position (2)")
    """
    try:
        parse(validate_input(expression))
        return True, None
    except (ExpressionError, ValidationError) as e:
        return False, str(e)
