"""Reals that are compared symbolically where possible.

A ``UnifiedReal`` is ``rat_factor * cr_factor``: an exact
``BoundedRational`` coefficient times a constructive real. Wherever
possible ``cr_factor`` is one of a fixed set of singleton constants
(1, pi, e, square roots of 2, 3, 5, 6, 7, 10 and natural logs of
2, 3, 5, 6, 7, 10). Those singletons are compared by identity, so values
that share one can be added, multiplied and compared exactly, and values
with different named factors can often be proven unequal without
evaluating anything.

When no shortcut applies the result falls back to a plain constructive
real with a coefficient of one.

Example:
    >>> from crcalc_pkg.unified_real import UnifiedReal
    >>> two = UnifiedReal.from_int(2)
    >>> root = two.sqrt()
    >>> root.multiply(root).definitely_equals(two)
    True
    >>> UnifiedReal.from_int(1).asin().to_nice_string()
    '(1/2)π'
"""

from __future__ import annotations

import math

from . import bounded_rational as br
from . import cr
from .bounded_rational import BoundedRational
from .logging_config import get_logger
from .types import DomainError

logger = get_logger("unified_real")

DEFAULT_COMPARE_TOLERANCE = -1000

# Bits evaluated beyond the requested digit in approximate truncation, so
# that truncation rarely turns into rounding.  Must be <= 30.
EXTRA_PREC = 10

# Exponent magnitude above which integer powers use exp(ln(x) * n) instead of
# repeated multiplication.
RECURSIVE_POW_LIMIT = 1000
# The same limit for exact rational powers, which fail fast on their own.
HARD_RECURSIVE_POW_LIMIT = 1 << 1000

CR_ONE = cr.ONE
CR_PI = cr.PI
CR_E = cr.ONE.exp()
CR_SQRT2 = cr.value_of(2).sqrt()
CR_SQRT3 = cr.value_of(3).sqrt()
CR_LN2 = cr.value_of(2).ln()
CR_LN3 = cr.value_of(3).ln()
CR_LN5 = cr.value_of(5).ln()
CR_LN6 = cr.value_of(6).ln()
CR_LN7 = cr.value_of(7).ln()
CR_LN10 = cr.value_of(10).ln()

# SQRTS[i] is sqrt(i); only square-free i are present.
SQRTS = (
    None,
    CR_ONE,
    CR_SQRT2,
    CR_SQRT3,
    None,
    cr.value_of(5).sqrt(),
    cr.value_of(6).sqrt(),
    cr.value_of(7).sqrt(),
    None,
    None,
    cr.value_of(10).sqrt(),
)

# LOGS[i] is ln(i).
LOGS = (
    None,
    None,
    CR_LN2,
    CR_LN3,
    None,
    CR_LN5,
    CR_LN6,
    CR_LN7,
    None,
    None,
    CR_LN10,
)


def _index_of(table, x: cr.CR) -> int | None:
    for i, entry in enumerate(table):
        if entry is x:
            return i
    return None


def get_square(x: cr.CR) -> BoundedRational | None:
    """``x**2`` if ``x`` is a tabulated square root."""
    i = _index_of(SQRTS, x)
    return None if i is None else BoundedRational(i)


def get_exp(x: cr.CR) -> BoundedRational | None:
    """``exp(x)`` if ``x`` is a tabulated logarithm."""
    i = _index_of(LOGS, x)
    return None if i is None else BoundedRational(i)


def cr_name(x: cr.CR) -> str | None:
    """Display name of a named constant, '' for one, None if unnamed."""
    if x is CR_ONE:
        return ""
    if x is CR_PI:
        return "π"
    if x is CR_E:
        return "e"
    i = _index_of(SQRTS, x)
    if i is not None:
        return f"√{i}"
    i = _index_of(LOGS, x)
    if i is not None:
        return f"ln({i})"
    return None


def is_named(x: cr.CR) -> bool:
    if x is CR_ONE or x is CR_PI or x is CR_E:
        return True
    return _index_of(SQRTS, x) is not None or _index_of(LOGS, x) is not None


def definitely_algebraic(x: cr.CR) -> bool:
    return x is CR_ONE or get_square(x) is not None


def definitely_independent(r1: cr.CR, r2: cr.CR) -> bool:
    """True if ``r1 == q * r2`` has no rational solution ``q``.

    - 1 against any other named constant: the others are irrational.
    - Two distinct tabulated square roots: square-free radicands.
    - e or pi against an algebraic constant: transcendence.
    - Two distinct tabulated logs: m**b == n**a has no solution.
    - A log against a square root: logs of integers are transcendental
      (Lindemann-Weierstrass).

    Whether e/pi is rational is unknown, so that pair is never independent.
    """
    if r1 is r2:
        return False
    if r1 is CR_E or r1 is CR_PI:
        return definitely_algebraic(r2)
    if r2 is CR_E or r2 is CR_PI:
        return definitely_algebraic(r1)
    return is_named(r1) and is_named(r2)


def _gen_factorial(n: int, step: int) -> int:
    # Product n * (n - step) * (n - 2*step) * ..., split for balanced multiplication.
    if n > 4 * step:
        prod1 = _gen_factorial(n, 2 * step)
        prod2 = _gen_factorial(n - step, 2 * step)
        return prod1 * prod2
    if n == 0:
        return 1
    res = n
    i = n - step
    while i > 1:
        res *= i
        i -= step
    return res


def _pow16(n: int) -> int:
    if n > 10:
        raise ValueError(f"Unexpected pow16 argument: {n}")
    return n**16


def get_int_log(n: int, base: int) -> int:
    """k if ``n == base**k`` for some k > 0, else 0."""
    if n <= 0:
        return 0
    approx = math.log(n) / math.log(base)
    if abs(approx - round(approx)) > 1.0e-6:
        return 0
    result = 0
    base16th = None
    while n % base == 0:
        n //= base
        result += 1
        if base16th is None:
            base16th = _pow16(base)
        while n % base16th == 0:
            n //= base16th
            result += 16
    return result if n == 1 else 0


def _recursive_pow(base: cr.CR, exp: int) -> cr.CR:
    if exp == 1:
        return base
    if exp & 1:
        return base.multiply(_recursive_pow(base, exp - 1))
    tmp = _recursive_pow(base, exp >> 1)
    return tmp.multiply(tmp)


class UnifiedReal:
    """``rat_factor * cr_factor``, immutable.

    No ``__eq__`` is defined: exact equality is not always decidable. Use
    ``definitely_equals``, ``approx_equals`` or ``compare_to`` explicitly.
    """

    __slots__ = ("rat_factor", "cr_factor")

    def __init__(self, rat: BoundedRational | None, cr_factor: cr.CR = CR_ONE) -> None:
        if rat is None:
            raise DomainError("Building UnifiedReal from None")
        self.rat_factor = rat
        self.cr_factor = cr_factor

    @classmethod
    def from_cr(cls, x: cr.CR) -> UnifiedReal:
        return cls(br.ONE, x)

    @classmethod
    def from_rational(cls, r: BoundedRational) -> UnifiedReal:
        return cls(r, CR_ONE)

    @classmethod
    def from_int(cls, n: int) -> UnifiedReal:
        return cls(BoundedRational(n), CR_ONE)

    def __str__(self) -> str:
        return f"{self.rat_factor}*{self.cr_factor}"

    def __repr__(self) -> str:
        return f"UnifiedReal({self.to_nice_string()!r})"

    # Symbolic predicates; none of these evaluate anything.

    def definitely_rational(self) -> bool:
        return self.cr_factor is CR_ONE or self.rat_factor.signum() == 0

    def definitely_irrational(self) -> bool:
        return not self.definitely_rational() and is_named(self.cr_factor)

    def definitely_algebraic(self) -> bool:
        return definitely_algebraic(self.cr_factor) or self.rat_factor.signum() == 0

    def definitely_transcendental(self) -> bool:
        return not self.definitely_algebraic() and is_named(self.cr_factor)

    def definitely_zero(self) -> bool:
        return self.rat_factor.signum() == 0

    def definitely_non_zero(self) -> bool:
        return is_named(self.cr_factor) and self.rat_factor.signum() != 0

    def definitely_one(self) -> bool:
        return self.cr_factor is CR_ONE and self.rat_factor == br.ONE

    # Rendering

    def to_nice_string(self) -> str:
        """Exact text such as ``3``, ``-2/3``, ``(1/2)π`` or ``2√3`` where possible."""
        if self.cr_factor is CR_ONE or self.rat_factor.signum() == 0:
            return self.rat_factor.to_nice_string()
        name = cr_name(self.cr_factor)
        if name is not None:
            bi = br.as_integer(self.rat_factor)
            if bi is not None:
                if bi == 1:
                    return name
                return self.rat_factor.to_nice_string() + name
            return f"({self.rat_factor.to_nice_string()}){name}"
        if self.rat_factor is br.ONE:
            return str(self.cr_factor)
        return str(self.cr_value())

    def exactly_displayable(self) -> bool:
        return cr_name(self.cr_factor) is not None

    def exactly_truncatable(self) -> bool:
        """True if ``to_string_truncated`` is exact, i.e. comparisons cannot diverge."""
        return (
            self.cr_factor is CR_ONE
            or self.rat_factor.signum() == 0
            or self.definitely_irrational()
        )

    def to_string_truncated(self, n: int) -> str:
        """Fixed point text truncated toward zero to ``n`` digits after the point.

        Exact when ``exactly_truncatable()``; otherwise the last digit may
        occasionally be rounded up.
        """
        if self.cr_factor is CR_ONE or self.rat_factor.signum() == 0:
            return self.rat_factor.to_string_truncated(n)
        scaled = cr.value_of(10**n).multiply(self.cr_value())
        negative = False
        if self.exactly_truncatable():
            int_scaled = scaled.get_appr(0)
            if int_scaled < 0:
                negative = True
                int_scaled = -int_scaled
            # Irrational, so these comparisons terminate.
            if cr.value_of(int_scaled).compare_to(scaled.abs()) > 0:
                int_scaled -= 1
            if cr.value_of(int_scaled).compare_to(scaled.abs()) >= 0:
                raise ArithmeticError("Truncation of an irrational value failed")
        else:
            int_scaled = scaled.get_appr(-EXTRA_PREC)
            if int_scaled < 0:
                negative = True
                int_scaled = -int_scaled
            int_scaled >>= EXTRA_PREC
        digits = str(int_scaled)
        if len(digits) < n + 1:
            digits = "0" * (n + 1 - len(digits)) + digits
        split = len(digits) - n
        return ("-" if negative else "") + digits[:split] + "." + digits[split:]

    def cr_value(self) -> cr.CR:
        if self.rat_factor is br.ONE:
            return self.cr_factor
        return self.rat_factor.cr_value().multiply(self.cr_factor)

    def digits_required(self) -> int:
        """Digits after the point for an exact decimal, or ``cr.INTEGER_MAX``."""
        if self.cr_factor is CR_ONE or self.rat_factor.signum() == 0:
            return br.digits_required(self.rat_factor)
        return cr.INTEGER_MAX

    def leading_binary_zeroes(self) -> int:
        """Upper bound on zero bits right of the binary point before the first 1."""
        if is_named(self.cr_factor):
            # Only ln(2) is below one, so +3 is a loose but safe bound.
            whole_bits = self.rat_factor.whole_number_bits()
            if whole_bits == cr.INTEGER_MIN:
                return cr.INTEGER_MAX
            if whole_bits >= 3:
                return 0
            return -whole_bits + 3
        return cr.INTEGER_MAX

    def approx_whole_number_bits_greater_than(self, bound: int) -> bool:
        if is_named(self.cr_factor):
            return self.rat_factor.whole_number_bits() > bound
        return abs(self.cr_value().get_appr(bound - 2)).bit_length() > 2

    def bounded_rational_value(self) -> BoundedRational | None:
        if self.cr_factor is CR_ONE or self.rat_factor.signum() == 0:
            return self.rat_factor
        return None

    def integer_value(self) -> int | None:
        return br.as_integer(self.bounded_rational_value())

    # Comparison

    def is_comparable(self, u: UnifiedReal) -> bool:
        """True if ``compare_to(u)`` is guaranteed to terminate.

        The final fallback uses a tolerance, so this may spuriously return
        False but never spuriously True.
        """
        return (
            (
                self.cr_factor is u.cr_factor
                and (
                    is_named(self.cr_factor)
                    or self.cr_factor.signum_a(DEFAULT_COMPARE_TOLERANCE) != 0
                )
            )
            or (self.rat_factor.signum() == 0 and u.rat_factor.signum() == 0)
            or definitely_independent(self.cr_factor, u.cr_factor)
            or self.cr_value().compare_to_a(u.cr_value(), DEFAULT_COMPARE_TOLERANCE) != 0
        )

    def compare_to(self, u: UnifiedReal) -> int:
        """-1, 0 or 1. May diverge unless ``is_comparable(u)``."""
        if self.definitely_zero() and u.definitely_zero():
            return 0
        if self.cr_factor is u.cr_factor:
            # Every named constant is positive.
            sign = 1 if is_named(self.cr_factor) else self.cr_factor.signum()
            return sign * self.rat_factor.compare_to(u.rat_factor)
        return self.cr_value().compare_to(u.cr_value())

    def compare_to_a(self, u: UnifiedReal, a: int) -> int:
        if self.is_comparable(u):
            return self.compare_to(u)
        return self.cr_value().compare_to_a(u.cr_value(), a)

    def signum_a(self, a: int) -> int:
        return self.compare_to_a(ZERO, a)

    def signum(self) -> int:
        """Diverges on values equal to, but not provably, zero."""
        return self.compare_to(ZERO)

    def approx_equals(self, u: UnifiedReal, a: int) -> bool:
        if self.is_comparable(u):
            if definitely_independent(self.cr_factor, u.cr_factor) and (
                self.rat_factor.signum() != 0 or u.rat_factor.signum() != 0
            ):
                return False
            return self.compare_to(u) == 0
        return self.cr_value().compare_to_a(u.cr_value(), a) == 0

    def definitely_equals(self, u: UnifiedReal) -> bool:
        return self.is_comparable(u) and self.compare_to(u) == 0

    def definitely_not_equals(self, u: UnifiedReal) -> bool:
        named = is_named(self.cr_factor)
        u_named = is_named(u.cr_factor)
        if named and u_named:
            if definitely_independent(self.cr_factor, u.cr_factor):
                return self.rat_factor.signum() != 0 or u.rat_factor.signum() != 0
            return self.rat_factor != u.rat_factor
        if self.rat_factor.signum() == 0:
            return u_named and u.rat_factor.signum() != 0
        if u.rat_factor.signum() == 0:
            return named and self.rat_factor.signum() != 0
        return False

    # Arithmetic

    def add(self, u: UnifiedReal) -> UnifiedReal:
        if self.cr_factor is u.cr_factor:
            rat = br.add(self.rat_factor, u.rat_factor)
            if rat is not None:
                return UnifiedReal(rat, self.cr_factor)
        if self.definitely_zero():
            return u
        if u.definitely_zero():
            return self
        return UnifiedReal.from_cr(self.cr_value().add(u.cr_value()))

    def negate(self) -> UnifiedReal:
        return UnifiedReal(br.negate(self.rat_factor), self.cr_factor)

    def subtract(self, u: UnifiedReal) -> UnifiedReal:
        return self.add(u.negate())

    def multiply(self, u: UnifiedReal) -> UnifiedReal:
        if self.cr_factor is CR_ONE:
            rat = br.multiply(self.rat_factor, u.rat_factor)
            if rat is not None:
                return UnifiedReal(rat, u.cr_factor)
        if u.cr_factor is CR_ONE:
            rat = br.multiply(self.rat_factor, u.rat_factor)
            if rat is not None:
                return UnifiedReal(rat, self.cr_factor)
        if self.definitely_zero() or u.definitely_zero():
            return ZERO
        if self.cr_factor is u.cr_factor:
            square = get_square(self.cr_factor)
            if square is not None:
                rat = br.multiply(br.multiply(square, self.rat_factor), u.rat_factor)
                if rat is not None:
                    return UnifiedReal.from_rational(rat)
        rat = br.multiply(self.rat_factor, u.rat_factor)
        if rat is not None:
            return UnifiedReal(rat, self.cr_factor.multiply(u.cr_factor))
        return UnifiedReal.from_cr(self.cr_value().multiply(u.cr_value()))

    def inverse(self) -> UnifiedReal:
        if self.definitely_zero():
            raise ZeroDivisionError("division by zero")
        square = get_square(self.cr_factor)
        if square is not None:
            # 1/sqrt(n) == sqrt(n)/n
            rat = br.inverse(br.multiply(self.rat_factor, square))
            if rat is not None:
                return UnifiedReal(rat, self.cr_factor)
        return UnifiedReal(br.inverse(self.rat_factor), self.cr_factor.inverse())

    def divide(self, u: UnifiedReal) -> UnifiedReal:
        if self.cr_factor is u.cr_factor:
            if u.definitely_zero():
                raise ZeroDivisionError("division by zero")
            rat = br.divide(self.rat_factor, u.rat_factor)
            if rat is not None:
                return UnifiedReal(rat, CR_ONE)
        return self.multiply(u.inverse())

    def sqrt(self) -> UnifiedReal:
        if self.definitely_zero():
            return ZERO
        if self.cr_factor is CR_ONE:
            # Recognize (perfect rational square) * (tabulated radicand), including radicand 1.
            for divisor, root in enumerate(SQRTS):
                if root is None:
                    continue
                rat_sqrt = br.sqrt(br.divide(self.rat_factor, BoundedRational(divisor)))
                if rat_sqrt is not None:
                    return UnifiedReal(rat_sqrt, root)
        return UnifiedReal.from_cr(self.cr_value().sqrt())

    # Trigonometry

    def _get_pi_twelfths(self) -> int | None:
        """``k mod 24`` if the value is ``k * pi / 12`` for an integer k."""
        if self.definitely_zero():
            return 0
        if self.cr_factor is CR_PI:
            quotient = br.as_integer(br.multiply(self.rat_factor, br.TWELVE))
            if quotient is None:
                return None
            return quotient % 24
        return None

    @staticmethod
    def _sin_pi_twelfths(n: int) -> UnifiedReal | None:
        if n >= 12:
            neg_result = UnifiedReal._sin_pi_twelfths(n - 12)
            return None if neg_result is None else neg_result.negate()
        return _SIN_PI_TWELFTHS.get(n)

    @staticmethod
    def _cos_pi_twelfths(n: int) -> UnifiedReal | None:
        sin_arg = n + 6
        if sin_arg >= 24:
            sin_arg -= 24
        return UnifiedReal._sin_pi_twelfths(sin_arg)

    def sin(self) -> UnifiedReal:
        pi_twelfths = self._get_pi_twelfths()
        if pi_twelfths is not None:
            result = self._sin_pi_twelfths(pi_twelfths)
            if result is not None:
                return result
        return UnifiedReal.from_cr(self.cr_value().sin())

    def cos(self) -> UnifiedReal:
        pi_twelfths = self._get_pi_twelfths()
        if pi_twelfths is not None:
            result = self._cos_pi_twelfths(pi_twelfths)
            if result is not None:
                return result
        return UnifiedReal.from_cr(self.cr_value().cos())

    def tan(self) -> UnifiedReal:
        pi_twelfths = self._get_pi_twelfths()
        if pi_twelfths is not None:
            if pi_twelfths in (6, 18):
                raise DomainError("Tangent undefined")
            top = self._sin_pi_twelfths(pi_twelfths)
            bottom = self._cos_pi_twelfths(pi_twelfths)
            if top is not None and bottom is not None:
                return top.divide(bottom)
        return self.sin().divide(self.cos())

    def _check_asin_domain(self) -> None:
        if self.is_comparable(ONE) and (
            self.compare_to(ONE) > 0 or self.compare_to(MINUS_ONE) < 0
        ):
            raise DomainError("inverse trig argument out of range")

    @staticmethod
    def asin_halves(n: int) -> UnifiedReal:
        """asin(n/2) for n in -2..2."""
        if n < 0:
            return UnifiedReal.asin_halves(-n).negate()
        if n == 0:
            return ZERO
        if n == 1:
            return UnifiedReal(br.SIXTH, CR_PI)
        if n == 2:
            return PI_OVER_2
        raise ValueError(f"asin_halves: bad argument {n}")

    def _asin_non_halves(self) -> UnifiedReal:
        if self.compare_to_a(ZERO, -10) < 0:
            return self.negate()._asin_non_halves().negate()
        if self.definitely_equals(HALF_SQRT2):
            return PI_OVER_4
        if self.definitely_equals(HALF_SQRT3):
            return PI_OVER_3
        return UnifiedReal.from_cr(self.cr_value().asin())

    def asin(self) -> UnifiedReal:
        self._check_asin_domain()
        halves = self.multiply(TWO).integer_value()
        if halves is not None:
            return self.asin_halves(halves)
        if self.cr_factor is CR_ONE or self.cr_factor is CR_SQRT2 or self.cr_factor is CR_SQRT3:
            return self._asin_non_halves()
        return UnifiedReal.from_cr(self.cr_value().asin())

    def acos(self) -> UnifiedReal:
        return PI_OVER_2.subtract(self.asin())

    def atan(self) -> UnifiedReal:
        if self.compare_to_a(ZERO, -10) < 0:
            return self.negate().atan().negate()
        as_int = self.integer_value()
        if as_int == 0:
            return ZERO
        if as_int == 1:
            return PI_OVER_4
        if self.definitely_equals(THIRD_SQRT3):
            return PI_OVER_6
        if self.definitely_equals(SQRT3):
            return PI_OVER_3
        return UnifiedReal.from_cr(self.cr_value().atan())

    # Powers, logarithms, exponentials

    def _exp_ln_pow(self, exp: int) -> UnifiedReal:
        sign = self.signum_a(DEFAULT_COMPARE_TOLERANCE)
        if sign > 0:
            # Avoids deep recursion for huge exponents.
            return UnifiedReal.from_cr(self.cr_value().ln().multiply(cr.value_of(exp)).exp())
        if sign < 0:
            result = self.cr_value().negate().ln().multiply(cr.value_of(exp)).exp()
            if exp & 1:
                result = result.negate()
            return UnifiedReal.from_cr(result)
        # Unknown sign: logs are unusable, multiply it out.
        logger.debug("Base of unknown sign, raising to %d by repeated squaring", exp)
        if exp < 0:
            return UnifiedReal.from_cr(_recursive_pow(self.cr_value(), -exp).inverse())
        return UnifiedReal.from_cr(_recursive_pow(self.cr_value(), exp))

    def _pow_n(self, exp: int) -> UnifiedReal:
        if exp == 1:
            return self
        if exp == 0:
            # Like math.pow, x**0 is 1 even for x == 0.
            return ONE
        if exp < 0 and self.definitely_zero():
            raise ZeroDivisionError("division by zero")
        abs_exp = abs(exp)
        if self.cr_factor is CR_ONE and abs_exp <= HARD_RECURSIVE_POW_LIMIT:
            rat_pow = self.rat_factor.pow(exp)
            if rat_pow is not None:
                return UnifiedReal.from_rational(rat_pow)
        if abs_exp > RECURSIVE_POW_LIMIT:
            return self._exp_ln_pow(exp)
        square = get_square(self.cr_factor)
        if square is not None:
            rat = br.multiply(self.rat_factor.pow(exp), square.pow(exp >> 1))
            if rat is not None:
                if exp & 1:
                    # Odd power keeps one square root factor.
                    return UnifiedReal(rat, self.cr_factor)
                return UnifiedReal.from_rational(rat)
        return self._exp_ln_pow(exp)

    def pow(self, expon: UnifiedReal) -> UnifiedReal:
        if self.cr_factor is CR_E:
            if self.rat_factor == br.ONE:
                return expon.exp()
            rat_part = UnifiedReal.from_rational(self.rat_factor).pow(expon)
            return expon.exp().multiply(rat_part)
        exp_as_br = expon.bounded_rational_value()
        if exp_as_br is not None:
            exp_as_int = br.as_integer(exp_as_br)
            if exp_as_int is not None:
                return self._pow_n(exp_as_int)
            # Multiple of one half.
            exp_as_int = br.as_integer(br.multiply(br.TWO, exp_as_br))
            if exp_as_int is not None:
                return self._pow_n(exp_as_int).sqrt()
        if self.definitely_zero():
            return ZERO
        if self.signum_a(DEFAULT_COMPARE_TOLERANCE) < 0:
            raise DomainError("Negative base for pow() with non-integer exponent")
        return UnifiedReal.from_cr(self.cr_value().ln().multiply(expon.cr_value()).exp())

    def ln(self) -> UnifiedReal:
        if self.cr_factor is CR_E:
            return UnifiedReal(self.rat_factor, CR_ONE).ln().add(ONE)
        if self.is_comparable(ZERO):
            if self.signum() <= 0:
                raise DomainError("log(non-positive)")
            compare1 = self.compare_to_a(ONE, DEFAULT_COMPARE_TOLERANCE)
            if compare1 == 0:
                if self.definitely_equals(ONE):
                    return ZERO
            elif compare1 < 0:
                return self.inverse().ln().negate()
            bi = br.as_integer(self.rat_factor)
            if bi is not None:
                if self.cr_factor is CR_ONE:
                    # Powers of a tabulated base become k * ln(base).
                    for i, log in enumerate(LOGS):
                        if log is None:
                            continue
                        int_log = get_int_log(bi, i)
                        if int_log != 0:
                            return UnifiedReal(BoundedRational(int_log), log)
                else:
                    # n**k * sqrt(n) becomes (k + 1/2) * ln(n), only for tabulated n.
                    square = get_square(self.cr_factor)
                    if square is not None:
                        int_square = square.int_value()
                        if LOGS[int_square] is not None:
                            int_log = get_int_log(bi, int_square)
                            if int_log != 0:
                                rat = br.add(BoundedRational(int_log), br.HALF)
                                if rat is not None:
                                    return UnifiedReal(rat, LOGS[int_square])
        return UnifiedReal.from_cr(self.cr_value().ln())

    def exp(self) -> UnifiedReal:
        if self.definitely_equals(ZERO):
            return ONE
        if self.definitely_equals(ONE):
            # Always the same e singleton.
            return E
        cr_exp = get_exp(self.cr_factor)
        if cr_exp is not None:
            need_sqrt = False
            rat_exponent = self.rat_factor
            if br.as_integer(rat_exponent) is None:
                need_sqrt = True
                rat_exponent = br.multiply(rat_exponent, br.TWO)
            rat = br.power(cr_exp, rat_exponent)
            if rat is not None:
                result = UnifiedReal.from_rational(rat)
                if need_sqrt:
                    result = result.sqrt()
                return result
        return UnifiedReal.from_cr(self.cr_value().exp())

    def fact(self) -> UnifiedReal:
        """n! for a non-negative integer n below 2**20."""
        as_int = self.integer_value()
        if as_int is None:
            as_int = self.cr_value().get_appr(0)  # correct if it is an integer
            if not self.approx_equals(UnifiedReal.from_int(as_int), DEFAULT_COMPARE_TOLERANCE):
                raise DomainError("Non-integral factorial argument")
        if as_int < 0:
            raise DomainError("Negative factorial argument")
        if as_int.bit_length() > 20:
            raise DomainError("Factorial argument too big")
        return UnifiedReal.from_int(_gen_factorial(as_int, 1))

    # Operators

    def __add__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else self.add(other)

    def __radd__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else other.add(self)

    def __sub__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else self.subtract(other)

    def __rsub__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else other.subtract(self)

    def __mul__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else self.multiply(other)

    def __rmul__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else other.multiply(self)

    def __truediv__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else self.divide(other)

    def __rtruediv__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else other.divide(self)

    def __pow__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else self.pow(other)

    def __rpow__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else other.pow(self)

    def __neg__(self):
        return self.negate()


def _coerce(x):
    if isinstance(x, UnifiedReal):
        return x
    if isinstance(x, int) and not isinstance(x, bool):
        return UnifiedReal.from_int(x)
    if isinstance(x, BoundedRational):
        return UnifiedReal.from_rational(x)
    return None


PI = UnifiedReal.from_cr(CR_PI)
E = UnifiedReal.from_cr(CR_E)
ZERO = UnifiedReal.from_rational(br.ZERO)
ONE = UnifiedReal.from_rational(br.ONE)
MINUS_ONE = UnifiedReal.from_rational(br.MINUS_ONE)
TWO = UnifiedReal.from_rational(br.TWO)
MINUS_TWO = UnifiedReal.from_rational(br.MINUS_TWO)
HALF = UnifiedReal.from_rational(br.HALF)
MINUS_HALF = UnifiedReal.from_rational(br.MINUS_HALF)
TEN = UnifiedReal.from_rational(br.TEN)
RADIANS_PER_DEGREE = UnifiedReal(BoundedRational(1, 180), CR_PI)
SIX = UnifiedReal.from_int(6)
HALF_SQRT2 = UnifiedReal(br.HALF, CR_SQRT2)
SQRT3 = UnifiedReal.from_cr(CR_SQRT3)
HALF_SQRT3 = UnifiedReal(br.HALF, CR_SQRT3)
THIRD_SQRT3 = UnifiedReal(br.THIRD, CR_SQRT3)
PI_OVER_2 = UnifiedReal(br.HALF, CR_PI)
PI_OVER_3 = UnifiedReal(br.THIRD, CR_PI)
PI_OVER_4 = UnifiedReal(br.QUARTER, CR_PI)
PI_OVER_6 = UnifiedReal(br.SIXTH, CR_PI)

# sin(k * pi / 12) for 0 <= k < 12 where it has a tabulated form.
_SIN_PI_TWELFTHS = {
    0: ZERO,
    2: HALF,
    3: HALF_SQRT2,
    4: HALF_SQRT3,
    6: ONE,
    8: HALF_SQRT3,
    9: HALF_SQRT2,
    10: HALF,
}
