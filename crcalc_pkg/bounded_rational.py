"""Exact rationals that give up instead of growing without bound.

A ``BoundedRational`` is a possibly unreduced fraction of Python ints. The
arithmetic functions in this module take and return ``BoundedRational | None``;
``None`` means "exact arithmetic was abandoned because the result would need
more than ``MAX_SIZE`` bits", and it propagates through every further
operation. Callers then fall back to constructive reals.

Fractions are reduced lazily: a result is left unreduced with probability
1/16 unless it would otherwise exceed the size ceiling.
"""

from __future__ import annotations

import math
import random
import re
from math import gcd

from . import cr
from .logging_config import get_logger
from .types import DomainError

logger = get_logger("bounded_rational")

MAX_SIZE = 10000  # total bits of numerator and denominator

_NUMBER_RE = {
    2: re.compile(r"^-?[01]*(\.[01]*)?$"),
    8: re.compile(r"^-?[0-7]*(\.[0-7]*)?$"),
    10: re.compile(r"^-?[0-9]*(\.[0-9]*)?$"),
    16: re.compile(r"^-?[0-9a-fA-F]*(\.[0-9a-fA-F]*)?$"),
}


class BoundedRational:
    """Immutable ``num / den``; ``den`` may be negative and the fraction unreduced."""

    __slots__ = ("num", "den")

    def __init__(self, num: int, den: int = 1) -> None:
        if den == 0:
            raise ZeroDivisionError("BoundedRational with zero denominator")
        object.__setattr__(self, "num", num)
        object.__setattr__(self, "den", den)

    def __setattr__(self, name, value):
        raise AttributeError("BoundedRational is immutable")

    @staticmethod
    def value_of_str(s: str, radix: int = 10) -> BoundedRational:
        """Parse ``[-]digits[.digits]`` in radix 2, 8, 10 or 16."""
        if radix not in _NUMBER_RE:
            raise ValueError(f"Radix: {radix}")
        s = s.strip(" ")
        if not _NUMBER_RE[radix].match(s) or not any(c not in "-." for c in s):
            raise ValueError(f"Invalid number: {s!r}")
        whole, _, fraction = s.partition(".")
        return BoundedRational(int(whole + fraction, radix), radix ** len(fraction))

    def __str__(self) -> str:
        return f"{self.num}/{self.den}"

    def __repr__(self) -> str:
        return f"BoundedRational({self.num}, {self.den})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, BoundedRational):
            return NotImplemented
        return self.compare_to(other) == 0

    def __hash__(self) -> int:
        r = self.reduce().positive_den()
        return hash((r.num, r.den))

    def to_nice_string(self) -> str:
        """Reduced form, ``n`` or ``n/d`` with a positive denominator."""
        nicer = self.reduce().positive_den()
        if nicer.den == 1:
            return str(nicer.num)
        return f"{nicer.num}/{nicer.den}"

    def to_string_truncated(self, n: int) -> str:
        """Decimal string truncated toward zero to ``n`` digits after the point."""
        digits = str(abs(self.num) * 10**n // abs(self.den))
        if len(digits) < n + 1:
            digits = "0" * (n + 1 - len(digits)) + digits
        split = len(digits) - n
        sign = "-" if self.signum() < 0 else ""
        return f"{sign}{digits[:split]}.{digits[split:]}"

    def cr_value(self) -> cr.CR:
        return cr.value_of(self.num).divide(cr.value_of(self.den))

    def int_value(self) -> int:
        reduced = self.reduce().positive_den()
        if reduced.den != 1:
            raise DomainError("int_value of non-integer")
        return reduced.num

    def whole_number_bits(self) -> int:
        """Approximate number of bits left of the binary point (negative for leading zeroes)."""
        if self.num == 0:
            return cr.INTEGER_MIN
        return abs(self.num).bit_length() - abs(self.den).bit_length()

    def too_big(self) -> bool:
        if self.den == 1:
            return False
        return abs(self.num).bit_length() + abs(self.den).bit_length() > MAX_SIZE

    def positive_den(self) -> BoundedRational:
        if self.den > 0:
            return self
        return BoundedRational(-self.num, -self.den)

    def reduce(self) -> BoundedRational:
        if self.den == 1:
            return self
        divisor = gcd(self.num, self.den)
        return BoundedRational(self.num // divisor, self.den // divisor)

    def compare_to(self, r: BoundedRational) -> int:
        diff = self.num * r.den - r.num * self.den
        return ((diff > 0) - (diff < 0)) * _signum(self.den) * _signum(r.den)

    def signum(self) -> int:
        return _signum(self.num) * _signum(self.den)

    def _raw_pow(self, exp: int) -> BoundedRational | None:
        if exp == 1:
            return self
        if exp & 1:
            return _raw_multiply(self._raw_pow(exp - 1), self)
        if exp == 0:
            return ONE
        tmp = self._raw_pow(exp >> 1)
        result = _raw_multiply(tmp, tmp)
        if result is None or result.too_big():
            return None
        return result

    def pow(self, exp: int) -> BoundedRational | None:
        """``self ** exp`` for an integer exponent, or None if too big."""
        if exp == 0:
            # Like math.pow, 0**0 is 1.
            return ONE
        if exp == 1:
            return self
        reduced = self.reduce().positive_den()
        if reduced.den == 1:
            if reduced.num == 0:
                return ZERO
            if reduced.num == 1:
                return ONE
            if reduced.num == -1:
                return MINUS_ONE if exp & 1 else ONE
        if exp.bit_length() > 1000:
            return None
        if exp < 0:
            return inverse(reduced)._raw_pow(-exp)
        return reduced._raw_pow(exp)


def _signum(n: int) -> int:
    return (n > 0) - (n < 0)


def maybe_reduce(r: BoundedRational | None) -> BoundedRational | None:
    """Reduce now and then, or when needed to stay under ``MAX_SIZE``."""
    if r is None:
        return None
    if not r.too_big() and random.random() < 1 / 16:
        return r
    result = r.positive_den().reduce()
    if not result.too_big():
        return result
    logger.debug("Abandoning exact rational of %d bits", abs(result.num).bit_length() + abs(result.den).bit_length())
    return None


def as_integer(r: BoundedRational | None) -> int | None:
    """The integer value of ``r``, or None if it is not an integer."""
    if r is None:
        return None
    if r.num % r.den == 0:
        return r.num // r.den
    return None


def add(r1: BoundedRational | None, r2: BoundedRational | None) -> BoundedRational | None:
    if r1 is None or r2 is None:
        return None
    den = r1.den * r2.den
    num = r1.num * r2.den + r2.num * r1.den
    return maybe_reduce(BoundedRational(num, den))


def negate(r: BoundedRational | None) -> BoundedRational | None:
    if r is None:
        return None
    return BoundedRational(-r.num, r.den)


def subtract(r1: BoundedRational | None, r2: BoundedRational | None) -> BoundedRational | None:
    return add(r1, negate(r2))


def _raw_multiply(r1: BoundedRational | None, r2: BoundedRational | None) -> BoundedRational | None:
    # 0 * None stays None: the None may stand for an unrepresentably large value.
    if r1 is None or r2 is None:
        return None
    if r1 is ONE:
        return r2
    if r2 is ONE:
        return r1
    return BoundedRational(r1.num * r2.num, r1.den * r2.den)


def multiply(r1: BoundedRational | None, r2: BoundedRational | None) -> BoundedRational | None:
    return maybe_reduce(_raw_multiply(r1, r2))


def inverse(r: BoundedRational | None) -> BoundedRational | None:
    if r is None:
        return None
    if r.num == 0:
        raise ZeroDivisionError("division by zero")
    return BoundedRational(r.den, r.num)


def divide(r1: BoundedRational | None, r2: BoundedRational | None) -> BoundedRational | None:
    return multiply(r1, inverse(r2))


def _exact_sqrt(n: int) -> int | None:
    try:
        root = round(math.sqrt(float(n)))
    except OverflowError:
        return None
    if root * root != n:
        return None
    return root


def sqrt(r: BoundedRational | None) -> BoundedRational | None:
    """Exact square root if numerator and denominator are perfect squares, else None."""
    if r is None:
        return None
    r = r.positive_den().reduce()
    if r.num < 0:
        raise DomainError("sqrt(negative)")
    num_sqrt = _exact_sqrt(r.num)
    if num_sqrt is None:
        return None
    den_sqrt = _exact_sqrt(r.den)
    if den_sqrt is None:
        return None
    return BoundedRational(num_sqrt, den_sqrt)


def power(base: BoundedRational | None, exp: BoundedRational | None) -> BoundedRational | None:
    """``base ** exp`` for an integer-valued rational exponent, else None."""
    if exp is None or base is None:
        return None
    exp = exp.reduce().positive_den()
    if exp.den != 1:
        return None
    return base.pow(exp.num)


def digits_required(r: BoundedRational | None) -> int:
    """Digits after the decimal point needed to write ``r`` exactly.

    Returns ``cr.INTEGER_MAX`` if the decimal expansion does not terminate
    (or ``r`` is None or unreasonably large).
    """
    if r is None:
        return cr.INTEGER_MAX
    if r.den == 1:
        return 0
    r = r.positive_den().reduce()
    den = r.den
    if den.bit_length() > MAX_SIZE:
        return cr.INTEGER_MAX
    powers_of_two = (den & -den).bit_length() - 1
    den >>= powers_of_two
    powers_of_five = 0
    while den % 5 == 0:
        powers_of_five += 1
        den //= 5
    # Any other prime factor makes the expansion periodic.
    if den != 1:
        return cr.INTEGER_MAX
    return max(powers_of_two, powers_of_five)


def to_string(r: BoundedRational | None) -> str:
    if r is None:
        return "not a small rational"
    return str(r)


ZERO = BoundedRational(0)
HALF = BoundedRational(1, 2)
MINUS_HALF = BoundedRational(-1, 2)
THIRD = BoundedRational(1, 3)
QUARTER = BoundedRational(1, 4)
SIXTH = BoundedRational(1, 6)
ONE = BoundedRational(1)
MINUS_ONE = BoundedRational(-1)
TWO = BoundedRational(2)
MINUS_TWO = BoundedRational(-2)
TEN = BoundedRational(10)
TWELVE = BoundedRational(12)
