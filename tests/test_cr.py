"""Tests for the constructive real framework."""

import math

import pytest
import sympy as sp

from crcalc_pkg import cr
from crcalc_pkg.cr import CR
from crcalc_pkg.types import DomainError, PrecisionOverflowError


def assert_within_one_ulp(x, exact, p):
    """|get_appr(p) * 2**p - exact| < 2**p, checked against a SymPy value."""
    appr = x.get_appr(p)
    digits = int(-p * 0.302) + 40
    true_value = sp.N(exact, digits)
    error = abs(sp.Integer(appr) * sp.Rational(2) ** p - true_value)
    assert error < sp.Rational(2) ** p, f"approximation at {p} off by {error}"


CASES = [
    ("sqrt(3)", lambda: cr.value_of(3).sqrt(), sp.sqrt(3)),
    ("pi", lambda: cr.GaussLegendrePiCR(), sp.pi),
    ("machin pi", lambda: cr.ATAN_PI, sp.pi),
    ("e", lambda: cr.ONE.exp(), sp.E),
    ("exp(-5/2)", lambda: cr.value_of_str("-2.5").exp(), sp.exp(sp.Rational(-5, 2))),
    ("ln(2)", lambda: cr.value_of(2).ln(), sp.log(2)),
    ("ln(1000)", lambda: cr.value_of(1000).ln(), sp.log(1000)),
    ("ln(0.3)", lambda: cr.value_of_str("0.3").ln(), sp.log(sp.Rational(3, 10))),
    ("sin(1/2)", lambda: cr.value_of_str("0.5").sin(), sp.sin(sp.Rational(1, 2))),
    ("cos(7)", lambda: cr.value_of(7).cos(), sp.cos(7)),
    ("tan(1)", lambda: cr.ONE.tan(), sp.tan(1)),
    ("asin(3/10)", lambda: cr.value_of_str("0.3").asin(), sp.asin(sp.Rational(3, 10))),
    ("asin(-0.9)", lambda: cr.value_of_str("-0.9").asin(), sp.asin(sp.Rational(-9, 10))),
    ("acos(0.1)", lambda: cr.value_of_str("0.1").acos(), sp.acos(sp.Rational(1, 10))),
    ("atan(-4)", lambda: cr.value_of(-4).atan(), sp.atan(-4)),
    ("1/7", lambda: cr.ONE.divide(cr.value_of(7)), sp.Rational(1, 7)),
    ("pi*e", lambda: cr.PI.multiply(cr.ONE.exp()), sp.pi * sp.E),
    ("sqrt(2)-1.4", lambda: cr.value_of(2).sqrt().subtract(cr.value_of_str("1.4")), sp.sqrt(2) - sp.Rational(7, 5)),
]


class TestApproximationError:
    @pytest.mark.parametrize("name,build,exact", CASES, ids=[c[0] for c in CASES])
    @pytest.mark.parametrize("p", [0, -10, -64, -200])
    def test_error_below_one_ulp(self, name, build, exact, p):
        assert_within_one_ulp(build(), exact, p)

    def test_positive_precision(self):
        x = cr.value_of(1000)
        assert_within_one_ulp(x, 1000, 3)

    def test_assume_int_returns_integer_scaled(self):
        x = cr.value_of(12).sqrt().multiply(cr.value_of(3).sqrt()).assume_int()
        assert x.get_appr(-20) == 6 << 20


class TestCaching:
    def test_weaker_request_served_from_cache(self):
        x = cr.value_of(5).sqrt()
        precise = x.get_appr(-100)
        CR.reset_approximation_count()
        coarse = x.get_appr(-50)
        assert CR.approximation_count == 0
        assert coarse == cr.scale(precise, -50)

    def test_stronger_request_recomputes(self):
        x = cr.value_of(5).sqrt()
        x.get_appr(-10)
        CR.reset_approximation_count()
        x.get_appr(-40)
        assert CR.approximation_count >= 1
        assert x.min_prec == -40

    def test_slow_nodes_round_precision(self):
        pi = cr.GaussLegendrePiCR()
        pi.get_appr(-10)
        assert pi.min_prec == cr.SlowCR.MAX_PREC
        pi.get_appr(-100)
        assert pi.min_prec % cr.SlowCR.PREC_INCR == 0
        assert pi.min_prec <= -100

    def test_reset_returns_previous_count(self):
        CR.reset_approximation_count()
        cr.value_of(3).get_appr(-5)
        assert CR.reset_approximation_count() == 1
        assert CR.approximation_count == 0


class TestPrecisionGuard:
    def test_check_prec_bounds(self):
        cr.check_prec(2**27)
        cr.check_prec(-(2**28))
        with pytest.raises(PrecisionOverflowError):
            cr.check_prec(2**28)
        with pytest.raises(PrecisionOverflowError):
            cr.check_prec(-(2**28) - 1)

    def test_get_appr_rejects_huge_precision(self):
        with pytest.raises(PrecisionOverflowError) as exc_info:
            cr.ONE.get_appr(-(2**30))
        assert exc_info.value.code == "PRECISION_OVERFLOW"

    def test_msd_of_zero_is_unknown(self):
        assert cr.ZERO.msd(-100) == cr.INTEGER_MIN

    def test_msd_get_on_zero_overflows(self):
        with pytest.raises(PrecisionOverflowError):
            cr.value_of(0).msd_get()

    def test_iter_msd_floor(self):
        tiny = cr.ONE.shift_right(200)
        assert tiny.iter_msd(-100) == cr.INTEGER_MIN
        assert tiny.iter_msd(-300) == -200
        assert cr.value_of(0).iter_msd(-100) == cr.INTEGER_MIN

    def test_msd_bounds(self):
        x = cr.value_of(100)
        # 2**(msd-1) < |x| < 2**(msd+1)
        msd = x.msd_get()
        assert 2 ** (msd - 1) < 100 < 2 ** (msd + 1)


class TestComparison:
    def test_compare_to(self):
        assert cr.ONE.compare_to(cr.value_of(2)) == -1
        assert cr.PI.compare_to(cr.ONE.exp()) == 1

    def test_compare_to_a_tolerates_equal_values(self):
        root = cr.value_of(2).sqrt()
        assert root.multiply(root).compare_to_a(cr.value_of(2), -100) == 0

    def test_compare_to_ra(self):
        big = cr.value_of(10**30)
        assert big.compare_to_ra(big.add(cr.ONE), -200, -200) == -1
        assert cr.ZERO.compare_to_ra(cr.ZERO, -10, -50) == 0

    def test_signum(self):
        assert cr.value_of(-3).signum() == -1
        assert cr.value_of_str("0.001").signum() == 1
        assert cr.ZERO.signum_a(-20) == 0

    def test_pi_formulas_agree(self):
        assert cr.PI.compare_to_a(cr.ATAN_PI, -300) == 0

    def test_exp_ln_round_trip(self):
        assert cr.ONE.exp().ln().compare_to_a(cr.ONE, -50) == 0

    def test_sin_half_pi(self):
        assert cr.HALF_PI.sin().compare_to_a(cr.ONE, -50) == 0

    def test_sqrt13_squared(self):
        root = cr.value_of(13).sqrt()
        assert root.multiply(root).compare_to_a(cr.value_of(13), -50) == 0

    def test_asin_one_is_half_pi(self):
        assert cr.ONE.asin().compare_to_a(cr.HALF_PI, -50) == 0


class TestArithmetic:
    def test_select_min_max_abs(self):
        a = cr.value_of(-3)
        b = cr.value_of(2)
        assert a.abs().get_appr(0) == 3
        assert a.max(b).get_appr(0) == 2
        assert a.min(b).get_appr(0) == -3
        assert cr.value_of(-1).select(a, b).get_appr(0) == -3

    def test_shifts(self):
        x = cr.value_of(3)
        assert x.shift_left(4).get_appr(0) == 48
        assert x.shift_right(1).get_appr(-1) == 3

    def test_operators(self):
        x = cr.value_of(6)
        assert (x + 1).get_appr(0) == 7
        assert (1 - x).get_appr(0) == -5
        assert (x * 2).get_appr(0) == 12
        assert (x / 4).get_appr(-2) == 6
        assert (-x).get_appr(0) == -6
        assert (3 / x).get_appr(-1) == 1

    def test_value_of_rejects_non_integers(self):
        with pytest.raises(TypeError):
            cr.value_of(1.5)
        with pytest.raises(TypeError):
            cr.value_of(True)

    def test_no_value_equality(self):
        assert cr.value_of(1) != cr.value_of(1)


class TestDomainErrors:
    def test_ln_negative(self):
        with pytest.raises(DomainError):
            cr.value_of(-2).ln()

    def test_sqrt_negative(self):
        with pytest.raises(DomainError):
            cr.value_of(-4).sqrt().get_appr(-10)


class TestConversion:
    def test_to_string(self):
        assert cr.PI.to_string(20) == "3.14159265358979323846"
        assert cr.value_of(-7).divide(cr.value_of(2)).to_string(3) == "-3.500"
        assert cr.ONE.divide(cr.value_of(8)).to_string(5) == "0.12500"
        assert cr.value_of(5).to_string(0) == "5"
        assert str(cr.value_of(2)) == "2.0000000000"

    def test_to_string_radix(self):
        assert cr.value_of(255).to_string(0, 16) == "ff"
        assert cr.value_of(5).to_string(2, 2) == "101.00"
        assert cr.ONE.divide(cr.value_of(2)).to_string(1, 16) == "0.8"

    def test_value_of_str(self):
        assert cr.value_of_str("ff.8", 16).to_string(1) == "255.5"
        assert cr.value_of_str("-.25").to_string(2) == "-0.25"
        assert cr.value_of_str("101", 2).get_appr(0) == 5
        with pytest.raises(ValueError):
            cr.value_of_str("1.2.3")
        with pytest.raises(ValueError):
            cr.value_of_str("12", 7)
        with pytest.raises(ValueError):
            cr.value_of_str("-")

    def test_string_round_trip(self):
        x = cr.value_of(2).sqrt()
        y = cr.value_of_str(x.to_string(30))
        diff = x.subtract(y).get_appr(-110)
        # |x - y| < 10**-30, measured in units of 2**-110.
        assert abs(diff) <= 2**110 // 10**30 + 1

    def test_double_value(self):
        assert cr.PI.double_value() == pytest.approx(math.pi, rel=1e-15)
        assert cr.ZERO.double_value() == 0.0
        assert cr.value_of(-3).divide(cr.value_of(4)).double_value() == -0.75

    def test_big_integer_value(self):
        assert cr.value_of(10**40).add(cr.ONE.shift_right(3)).big_integer_value() == 10**40


class TestGaussLegendreMemo:
    def test_memo_lists_grow_together(self):
        pi = cr.GaussLegendrePiCR()
        pi.get_appr(-200)
        assert len(pi.b_prec) == len(pi.b_val) > 1

    def test_seeded_refinement_matches_machin(self):
        pi = cr.GaussLegendrePiCR()
        pi.get_appr(-100)
        assert pi.compare_to_a(cr.ATAN_PI, -400) == 0

    def test_repairs_partial_append(self):
        pi = cr.GaussLegendrePiCR()
        pi.get_appr(-100)
        pi.b_prec.append(-100)
        assert pi.compare_to_a(cr.ATAN_PI, -300) == 0
        assert len(pi.b_prec) == len(pi.b_val)
