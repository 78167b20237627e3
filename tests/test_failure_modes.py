"""Tests for failure modes, timeouts, and invalid input handling."""

import sys

import pytest

from crcalc_pkg import cr
from crcalc_pkg.parser import evaluate_expression, parse, validate_input
from crcalc_pkg.types import (
    EvaluationError,
    ParseError,
    PrecisionOverflowError,
    ValidationError,
)
from crcalc_pkg.unified_real import UnifiedReal
from crcalc_pkg.worker import HAS_RESOURCE, ExpressionStore, _limit_resources, evaluate_safely


class TestInputValidationFailures:
    """Test input validation failure modes."""

    def test_empty_input(self):
        with pytest.raises(ValidationError):
            validate_input("")

    def test_whitespace_only(self):
        with pytest.raises(ValidationError):
            validate_input("   ")

    def test_too_long_input(self):
        with pytest.raises(ValidationError):
            validate_input("1" * 10001)

    def test_unbalanced_parentheses_are_closed(self):
        assert evaluate_expression("(1+(2").integer_value() == 3

    def test_extra_closing_parenthesis(self):
        with pytest.raises(ParseError):
            parse("(1+2))")

    def test_python_syntax_is_not_evaluated(self):
        with pytest.raises(ParseError):
            parse("__import__('os')")
        with pytest.raises(ParseError):
            parse("2**3")


class TestEvaluationFailures:
    """Test errors raised while evaluating."""

    def test_zero_division_through_identity(self):
        with pytest.raises(EvaluationError) as exc_info:
            evaluate_expression("1/(pi-pi)")
        assert exc_info.value.code == "DIVISION_BY_ZERO"

    def test_factorial_too_big(self):
        with pytest.raises(EvaluationError) as exc_info:
            evaluate_expression("2000000!")
        assert "too big" in str(exc_info.value)

    def test_precision_overflow_on_exact_zero_divisor(self):
        with pytest.raises(PrecisionOverflowError):
            cr.ONE.divide(cr.value_of(0)).get_appr(-10)

    def test_unknown_sign_base_still_powers(self):
        x = UnifiedReal.from_int(13).sqrt().pow(UnifiedReal.from_int(2))
        assert x.approx_equals(UnifiedReal.from_int(13), -40)


class TestWorkerFailures:
    """Test that failures surface as structured results."""

    def test_deep_nesting(self):
        store = ExpressionStore()
        expr = "sqrt(" * 1500 + "2"
        out = store.handle({"type": "evaluate", "expr": expr, "digits": 5})
        assert out["ok"] is False
        assert out["error_code"] == "TOO_DEEP"

    def test_errors_do_not_raise(self):
        for expr in ("(((", ")))", "1++2", "2^", "*/1", "sin", "ln(-1)", "1/0"):
            result = evaluate_safely(expr)
            assert isinstance(result, dict)
            assert result["ok"] is False
            assert result["error_code"]

    @pytest.mark.slow
    def test_timeout(self):
        result = evaluate_safely("1/(sqrt(13)*sqrt(13)-13)", timeout=2)
        assert result["ok"] is False
        assert result["error_code"] == "TIMEOUT"
        # The worker is replaced and keeps serving
        assert evaluate_safely("2+2")["result"] == "4"


class TestPlatform:
    """Resource limits degrade gracefully where unsupported."""

    def test_resource_module_availability(self):
        if sys.platform == "win32":
            assert not HAS_RESOURCE
        else:
            assert HAS_RESOURCE

    def test_limit_resources_without_support(self, monkeypatch):
        import crcalc_pkg.worker as worker_module

        monkeypatch.setattr(worker_module, "HAS_RESOURCE", False)
        _limit_resources(1, 1)
