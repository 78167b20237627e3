"""Tests for SymPy-backed result rendering."""

import sympy as sp

from crcalc_pkg import bounded_rational as br
from crcalc_pkg import unified_real as ur
from crcalc_pkg.bounded_rational import BoundedRational
from crcalc_pkg.render import format_decimal, format_exact, format_result, to_sympy
from crcalc_pkg.unified_real import UnifiedReal


class TestToSympy:
    """Test conversion of exactly known values into SymPy expressions."""

    def test_named_factors(self):
        assert to_sympy(ur.ONE.asin()) == sp.pi / 2
        assert to_sympy(UnifiedReal.from_int(8).sqrt()) == 2 * sp.sqrt(2)
        assert to_sympy(UnifiedReal.from_int(8).ln()) == 3 * sp.log(2)
        assert to_sympy(ur.E) == sp.E

    def test_rationals(self):
        assert to_sympy(UnifiedReal.from_rational(BoundedRational(6, -4))) == sp.Rational(-3, 2)
        assert to_sympy(UnifiedReal(br.ZERO, ur.CR_PI)) == 0

    def test_unnamed_values_have_no_form(self):
        assert to_sympy(UnifiedReal.from_int(13).sqrt()) is None

    def test_values_agree_numerically(self):
        x = UnifiedReal(BoundedRational(3, 7), ur.CR_SQRT3)
        assert x.to_string_truncated(20) == str(sp.N(to_sympy(x), 40))[:22]


class TestFormatting:
    """Test exact and decimal output strings."""

    def test_format_exact(self):
        assert format_exact(UnifiedReal.from_int(8).sqrt()) == "2*sqrt(2)"
        assert format_exact(ur.ONE.divide(ur.TWO.sqrt())) == "sqrt(2)/2"
        assert format_exact(ur.PI_OVER_6) == "pi/6"
        assert format_exact(UnifiedReal.from_rational(BoundedRational(-2, 3))) == "-2/3"

    def test_format_exact_falls_back(self):
        root = UnifiedReal.from_int(13).sqrt()
        assert format_exact(root) == root.to_nice_string()

    def test_format_result_terminating(self):
        assert format_result(ur.HALF, 20) == ("0.5", True)
        assert format_result(UnifiedReal.from_int(-5), 20) == ("-5", True)
        assert format_result(UnifiedReal.from_rational(BoundedRational(1, 8)), 3) == ("0.125", True)

    def test_format_result_truncates(self):
        third = UnifiedReal.from_rational(br.THIRD)
        assert format_result(third, 5) == ("0.33333", False)
        assert format_result(UnifiedReal.from_rational(BoundedRational(1, 8)), 2) == ("0.12", False)
        assert format_result(ur.PI.negate(), 4) == ("-3.1415", False)

    def test_format_decimal_zero_digits(self):
        assert format_decimal(ur.PI, 0) == "3"
        assert format_decimal(ur.PI, 2) == "3.14"
