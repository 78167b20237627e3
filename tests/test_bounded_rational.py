"""Unit tests for size-bounded rationals."""

import unittest
from unittest import mock

from crcalc_pkg import bounded_rational as br
from crcalc_pkg import cr
from crcalc_pkg.bounded_rational import BoundedRational
from crcalc_pkg.types import DomainError


def long_division(num, den, n):
    """Reference truncated decimal expansion."""
    negative = (num < 0) != (den < 0) and num != 0
    num, den = abs(num), abs(den)
    whole, rem = divmod(num, den)
    digits = []
    for _ in range(n):
        rem *= 10
        d, rem = divmod(rem, den)
        digits.append(str(d))
    return ("-" if negative else "") + str(whole) + "." + "".join(digits)


class TestConstruction(unittest.TestCase):
    def test_zero_denominator(self):
        with self.assertRaises(ZeroDivisionError):
            BoundedRational(1, 0)

    def test_immutable(self):
        r = BoundedRational(1, 2)
        with self.assertRaises(AttributeError):
            r.num = 3

    def test_value_of_str(self):
        self.assertEqual(BoundedRational.value_of_str("1.25"), BoundedRational(5, 4))
        self.assertEqual(BoundedRational.value_of_str("-.5"), br.MINUS_HALF)
        self.assertEqual(BoundedRational.value_of_str("7."), BoundedRational(7))
        self.assertEqual(BoundedRational.value_of_str("a.8", 16), BoundedRational(21, 2))
        self.assertEqual(BoundedRational.value_of_str("0.1", 2), br.HALF)
        for bad in ("1.2.3", "", ".", "1e5", "--1"):
            with self.assertRaises(ValueError, msg=bad):
                BoundedRational.value_of_str(bad)

    def test_equality_is_by_value(self):
        self.assertEqual(BoundedRational(2, 4), br.HALF)
        self.assertEqual(BoundedRational(-1, -2), br.HALF)
        self.assertEqual(hash(BoundedRational(2, -4)), hash(br.MINUS_HALF))
        self.assertNotEqual(br.HALF, br.THIRD)


class TestStrings(unittest.TestCase):
    def test_str_is_raw(self):
        self.assertEqual(str(BoundedRational(2, 4)), "2/4")
        self.assertEqual(br.to_string(None), "not a small rational")

    def test_to_nice_string(self):
        self.assertEqual(BoundedRational(6, -4).to_nice_string(), "-3/2")
        self.assertEqual(BoundedRational(10, 5).to_nice_string(), "2")
        self.assertEqual(br.ZERO.to_nice_string(), "0")

    def test_to_string_truncated_matches_long_division(self):
        cases = [(1, 3, 5), (-7, 2, 3), (2, 3, 0), (-1, 3, 4), (1, -4, 2), (22, 7, 30), (10**20, 3, 2)]
        for num, den, n in cases:
            with self.subTest(num=num, den=den, n=n):
                self.assertEqual(
                    BoundedRational(num, den).to_string_truncated(n), long_division(num, den, n)
                )

    def test_truncation_is_toward_zero(self):
        self.assertEqual(BoundedRational(-2, 3).to_string_truncated(3), "-0.666")


class TestArithmetic(unittest.TestCase):
    def test_basic_operations(self):
        self.assertEqual(br.add(br.HALF, br.THIRD), BoundedRational(5, 6))
        self.assertEqual(br.subtract(br.HALF, br.THIRD), br.SIXTH)
        self.assertEqual(br.multiply(br.TWO, br.THIRD), BoundedRational(2, 3))
        self.assertEqual(br.divide(br.ONE, br.QUARTER), BoundedRational(4))
        self.assertEqual(br.negate(br.HALF), br.MINUS_HALF)
        self.assertEqual(br.inverse(BoundedRational(-2, 3)), BoundedRational(-3, 2))

    def test_none_propagates(self):
        self.assertIsNone(br.add(None, br.ONE))
        self.assertIsNone(br.negate(None))
        self.assertIsNone(br.multiply(br.ZERO, None))
        self.assertIsNone(br.divide(None, br.TWO))
        self.assertIsNone(br.sqrt(None))
        self.assertIsNone(br.power(br.TWO, None))

    def test_division_by_zero(self):
        with self.assertRaises(ZeroDivisionError):
            br.inverse(br.ZERO)
        with self.assertRaises(ZeroDivisionError):
            br.divide(br.ONE, BoundedRational(0, 5))

    def test_multiply_by_one_is_identity(self):
        r = BoundedRational(3, 7)
        self.assertIs(br._raw_multiply(br.ONE, r), r)

    def test_compare_to_with_negative_denominators(self):
        self.assertEqual(BoundedRational(1, -2).compare_to(br.THIRD), -1)
        self.assertEqual(br.THIRD.compare_to(BoundedRational(1, -2)), 1)
        self.assertEqual(BoundedRational(-1, -2).compare_to(br.THIRD), 1)
        self.assertEqual(BoundedRational(1, -3).compare_to(BoundedRational(-2, 6)), 0)
        self.assertEqual(BoundedRational(-3, -1).signum(), 1)

    def test_int_value(self):
        self.assertEqual(BoundedRational(6, -3).int_value(), -2)
        with self.assertRaises(DomainError):
            br.HALF.int_value()
        self.assertEqual(br.as_integer(BoundedRational(9, 3)), 3)
        self.assertIsNone(br.as_integer(br.HALF))

    def test_whole_number_bits(self):
        self.assertEqual(BoundedRational(1024).whole_number_bits(), 10)
        self.assertEqual(BoundedRational(1, 1024).whole_number_bits(), -10)
        self.assertEqual(br.ZERO.whole_number_bits(), cr.INTEGER_MIN)

    def test_cr_value(self):
        self.assertEqual(br.THIRD.cr_value().to_string(5), "0.33333")


class TestSizeBound(unittest.TestCase):
    def test_integers_are_never_too_big(self):
        self.assertFalse(BoundedRational(2**20000).too_big())

    def test_product_past_ceiling_is_none(self):
        tiny = BoundedRational(1, 3**5000)
        self.assertIsNone(br.multiply(tiny, tiny))

    def test_reducible_product_survives(self):
        big = 3**4000
        r = br.multiply(BoundedRational(big, 7), BoundedRational(7, big))
        self.assertEqual(r, br.ONE)

    def test_third_to_a_huge_power_is_none(self):
        self.assertIsNone(br.THIRD.pow(10**12))

    def test_maybe_reduce_is_occasional(self):
        r = BoundedRational(2, 4)
        with mock.patch("crcalc_pkg.bounded_rational.random.random", return_value=0.0):
            self.assertIs(br.maybe_reduce(r), r)
        with mock.patch("crcalc_pkg.bounded_rational.random.random", return_value=0.5):
            reduced = br.maybe_reduce(r)
        self.assertEqual((reduced.num, reduced.den), (1, 2))

    def test_maybe_reduce_gives_up(self):
        r = BoundedRational(1, 3**7000)
        self.assertIsNone(br.maybe_reduce(r))


class TestPowersAndRoots(unittest.TestCase):
    def test_pow(self):
        self.assertEqual(BoundedRational(2, 3).pow(-2), BoundedRational(9, 4))
        self.assertIs(BoundedRational(5, 7).pow(0), br.ONE)
        self.assertIs(BoundedRational(-3, 3).pow(3), br.MINUS_ONE)
        self.assertIs(BoundedRational(-1).pow(10**2000), br.ONE)
        self.assertEqual(br.TWO.pow(100), BoundedRational(2**100))
        self.assertIsNone(br.TWO.pow(2**1001))

    def test_power(self):
        self.assertEqual(br.power(br.TWO, BoundedRational(6, 2)), BoundedRational(8))
        self.assertIsNone(br.power(br.TWO, br.HALF))

    def test_sqrt(self):
        self.assertEqual(br.sqrt(BoundedRational(9, 4)), BoundedRational(3, 2))
        self.assertEqual(br.sqrt(BoundedRational(-8, -2)), br.TWO)
        self.assertIsNone(br.sqrt(br.TWO))
        with self.assertRaises(DomainError):
            br.sqrt(BoundedRational(-4))

    def test_digits_required(self):
        self.assertEqual(br.digits_required(BoundedRational(5)), 0)
        self.assertEqual(br.digits_required(BoundedRational(1, 8)), 3)
        self.assertEqual(br.digits_required(BoundedRational(3, 20)), 2)
        self.assertEqual(br.digits_required(BoundedRational(2, 4)), 1)
        self.assertEqual(br.digits_required(BoundedRational(6, 3)), 0)
        self.assertEqual(br.digits_required(br.THIRD), cr.INTEGER_MAX)
        self.assertEqual(br.digits_required(None), cr.INTEGER_MAX)


if __name__ == "__main__":
    unittest.main()
