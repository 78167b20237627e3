"""Type definitions, result dataclasses and the exception taxonomy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class EvalResult:
    """Result of evaluating an expression."""

    ok: bool
    result: str | None = None
    exact: bool | None = None
    approx: str | None = None
    digits_required: int | None = None
    error: str | None = None
    error_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result_dict: dict[str, Any] = {"ok": self.ok}
        if self.result is not None:
            result_dict["result"] = self.result
        if self.exact is not None:
            result_dict["exact"] = self.exact
        if self.approx is not None:
            result_dict["approx"] = self.approx
        if self.digits_required is not None:
            result_dict["digits_required"] = self.digits_required
        if self.error is not None:
            result_dict["error"] = self.error
        if self.error_code is not None:
            result_dict["error_code"] = self.error_code
        return result_dict

    def __repr__(self) -> str:
        """Return string representation of the result."""
        if not self.ok:
            return f"EvalResult(ok=False, error={self.error!r}, error_code={self.error_code!r})"
        parts = [f"ok={self.ok}"]
        if self.result is not None:
            parts.append(f"result={self.result!r}")
        if self.exact is not None:
            parts.append(f"exact={self.exact!r}")
        if self.approx is not None:
            parts.append(f"approx={self.approx!r}")
        return f"EvalResult({', '.join(parts)})"


class ValidationError(Exception):
    """Raised when input validation fails."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class ExpressionError(Exception):
    """Base class for errors tied to a location in the input expression.

    ``position`` is either a single character index or a ``(start, end)``
    pair; ``None`` when no location is known.
    """

    def __init__(
        self,
        message: str,
        code: str = "EXPRESSION_ERROR",
        position: int | tuple[int, int] | None = None,
    ):
        self.message = message
        self.code = code
        self.position = position
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class ParseError(ExpressionError):
    """Raised when tokenizing or parsing fails."""

    def __init__(self, message: str, code: str = "PARSE_ERROR", position=None):
        super().__init__(message, code, position)


class EvaluationError(ExpressionError):
    """Raised when an operator fails while evaluating a parsed expression."""

    def __init__(self, message: str, code: str = "EVAL_ERROR", position=None):
        super().__init__(message, code, position)


class PrecisionOverflowError(ArithmeticError):
    """A requested binary precision left the safe 32-bit range.

    Almost always the symptom of approximating something that is exactly
    zero, e.g. dividing by or taking the msd of a zero value.
    """

    def __init__(self, message: str = "Precision overflow", code: str = "PRECISION_OVERFLOW"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class DomainError(ArithmeticError):
    """Raised when an argument lies outside an operation's domain."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message
