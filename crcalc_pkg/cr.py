"""Constructive real numbers.

A ``CR`` is a lazily evaluated real. It never holds a fixed-width value;
instead ``get_appr(p)`` returns an integer ``a`` such that ``a * 2**p``
differs from the true value by strictly less than ``2**p``. Smaller
(more negative) ``p`` means more accuracy.

Every operation builds a new node whose ``approximate`` method requests
approximations of its operands at whatever precision its own error budget
requires. Each node caches its most precise approximation so that weaker
requests are answered by rescaling.

Comparisons come in two flavours:

- tolerance bounded (``compare_to_a``, ``compare_to_ra``, ``signum_a``),
  which always terminate;
- exact (``compare_to``, ``signum``, ``msd_get``), which only terminate
  when the operands differ. On equal operands they keep refining until the
  precision leaves the safe range and ``PrecisionOverflowError`` is raised.

Example:
    >>> from crcalc_pkg import cr
    >>> cr.PI.to_string(20)
    '3.14159265358979323846'
    >>> cr.value_of(2).sqrt().to_string(5)
    '1.41421'
"""

from __future__ import annotations

import math
import re

from .logging_config import get_logger
from .types import DomainError, PrecisionOverflowError

logger = get_logger("cr")

# Precisions and msd values are kept within a signed 32-bit range.
INTEGER_MIN = -(2**31)
INTEGER_MAX = 2**31 - 1

_RADIX_DIGITS = "0123456789abcdef"
_NUMBER_RE = {
    2: re.compile(r"^-?[01]*(\.[01]*)?$"),
    8: re.compile(r"^-?[0-7]*(\.[0-7]*)?$"),
    10: re.compile(r"^-?[0-9]*(\.[0-9]*)?$"),
    16: re.compile(r"^-?[0-9a-fA-F]*(\.[0-9a-fA-F]*)?$"),
}


def check_prec(n: int) -> None:
    """Raise unless ``n`` is at least a factor of 8 away from 32-bit overflow."""
    if (n >> 28) != (n >> 29):
        raise PrecisionOverflowError(f"Precision overflow: {n}")


def bound_log2(n: int) -> int:
    """ceil(log2(|n| + 1))"""
    return abs(n).bit_length()


def shift(k: int, n: int) -> int:
    """Multiply ``k`` by ``2**n``, truncating toward minus infinity."""
    if n < 0:
        return k >> -n
    return k << n


def scale(k: int, n: int) -> int:
    """Multiply ``k`` by ``2**n``, rounding to nearest."""
    if n >= 0:
        return k << n
    return (shift(k, n + 1) + 1) >> 1


def _tdiv(a: int, b: int) -> int:
    # Quotient truncated toward zero, so negative series terms shrink to 0.
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def _signum(n: int) -> int:
    return (n > 0) - (n < 0)


def _to_radix(k: int, radix: int) -> str:
    if radix == 10:
        return str(k)
    if k == 0:
        return "0"
    digits = []
    while k:
        k, d = divmod(k, radix)
        digits.append(_RADIX_DIGITS[d])
    return "".join(reversed(digits))


class CR:
    """Base class of all constructive real nodes.

    Subclasses implement ``approximate(p)``; callers use ``get_appr(p)``,
    which adds caching. The cache is the only mutable state of a node and is
    only ever refined, so a node must not be shared between threads.
    """

    # Number of cache misses across all nodes; lets tests prove that a
    # symbolic shortcut really avoided numeric evaluation.
    approximation_count = 0

    def __init__(self) -> None:
        self.min_prec = 0
        self.max_appr = 0
        self.appr_valid = False

    @classmethod
    def reset_approximation_count(cls) -> int:
        """Zero the global cache-miss counter and return its previous value."""
        previous = CR.approximation_count
        CR.approximation_count = 0
        return previous

    def approximate(self, p: int) -> int:
        raise NotImplementedError

    def get_appr(self, precision: int) -> int:
        """Return ``value / 2**precision`` rounded to an integer, error < 1."""
        check_prec(precision)
        if self.appr_valid and precision >= self.min_prec:
            return scale(self.max_appr, self.min_prec - precision)
        CR.approximation_count += 1
        result = self.approximate(precision)
        self.min_prec = precision
        self.max_appr = result
        self.appr_valid = True
        return result

    # Most significant digit.  If x.msd() == n then 2**(n-1) < |x| < 2**(n+1).

    def known_msd(self) -> int:
        """msd from the cached approximation, which must be well away from 0."""
        return self.min_prec + abs(self.max_appr).bit_length() - 1

    def msd(self, n: int) -> int:
        """msd, or ``INTEGER_MIN`` if the value is indistinguishable from 0 at ``n``."""
        if not self.appr_valid or -1 <= self.max_appr <= 1:
            self.get_appr(n - 1)
            if abs(self.max_appr) <= 1:
                return INTEGER_MIN
        return self.known_msd()

    def iter_msd(self, n: int) -> int:
        """Like ``msd(n)`` but tries cheap precisions first, on a geometric schedule."""
        prec = 0
        while prec > n + 30:
            msd = self.msd(prec)
            if msd != INTEGER_MIN:
                return msd
            check_prec(prec)
            prec = ((prec * 3) >> 1) - 16
        return self.msd(n)

    def msd_get(self) -> int:
        """msd of a value known to be nonzero.

        Does not terminate normally on zero; it ends with
        ``PrecisionOverflowError`` once the search leaves the safe range.
        """
        return self.iter_msd(INTEGER_MIN)

    # Comparison

    def compare_to_ra(self, x: CR, r: int, a: int) -> int:
        """Compare with relative tolerance ``2**r`` and absolute tolerance ``2**a``.

        Returns 0 if the values are equal; if they differ by less than the
        tolerance the result is unspecified.
        """
        this_msd = self.iter_msd(a)
        x_msd = x.iter_msd(this_msd if this_msd > a else a)
        max_msd = max(x_msd, this_msd)
        if max_msd == INTEGER_MIN:
            return 0
        check_prec(r)
        rel = max_msd + r
        abs_prec = rel if rel > a else a
        return self.compare_to_a(x, abs_prec)

    def compare_to_a(self, x: CR, a: int) -> int:
        """Compare with absolute tolerance ``2**a``; 0 is returned for equal values."""
        needed_prec = a - 1
        this_appr = self.get_appr(needed_prec)
        x_appr = x.get_appr(needed_prec)
        if this_appr > x_appr + 1:
            return 1
        if this_appr < x_appr - 1:
            return -1
        return 0

    def compare_to(self, x: CR) -> int:
        """-1 or +1. Must only be called on values known to differ."""
        a = -20
        while True:
            check_prec(a)
            result = self.compare_to_a(x, a)
            if result != 0:
                return result
            a *= 2

    def signum_a(self, a: int) -> int:
        if self.appr_valid:
            quick_try = _signum(self.max_appr)
            if quick_try != 0:
                return quick_try
        return _signum(self.get_appr(a - 1))

    def signum(self) -> int:
        """-1 or +1. Must only be called on values known to be nonzero."""
        a = -20
        while True:
            check_prec(a)
            result = self.signum_a(a)
            if result != 0:
                return result
            a *= 2

    # Conversion

    def to_string(self, n: int = 10, radix: int = 10) -> str:
        """Text accurate to ``n`` digits after the radix point."""
        if radix == 16:
            scaled_cr = self.shift_left(4 * n)
        else:
            scaled_cr = self.multiply(IntegerCR(radix**n))
        scaled_int = scaled_cr.get_appr(0)
        scaled_string = _to_radix(abs(scaled_int), radix)
        if n == 0:
            result = scaled_string
        else:
            if len(scaled_string) <= n:
                scaled_string = "0" * (n + 1 - len(scaled_string)) + scaled_string
            split = len(scaled_string) - n
            result = scaled_string[:split] + "." + scaled_string[split:]
        if scaled_int < 0:
            result = "-" + result
        return result

    def __str__(self) -> str:
        return self.to_string(10)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} at {id(self):#x}>"

    def big_integer_value(self) -> int:
        """An integer differing from the value by less than one."""
        return self.get_appr(0)

    def double_value(self) -> float:
        """A float close to the value; not correctly rounded."""
        my_msd = self.iter_msd(-1080)
        if my_msd == INTEGER_MIN:
            return 0.0
        needed_prec = my_msd - 60
        scaled_int = self.get_appr(needed_prec)
        try:
            return math.ldexp(float(scaled_int), needed_prec)
        except OverflowError:
            return math.inf if scaled_int > 0 else -math.inf

    # Arithmetic

    def add(self, x: CR) -> CR:
        return SumCR(self, x)

    def shift_left(self, n: int) -> CR:
        """Multiply by ``2**n``."""
        check_prec(n)
        return ShiftedCR(self, n)

    def shift_right(self, n: int) -> CR:
        """Multiply by ``2**-n``."""
        check_prec(n)
        return ShiftedCR(self, -n)

    def assume_int(self) -> CR:
        """Same value, promising it is an integer so fraction digits are never computed."""
        return AssumedIntCR(self)

    def negate(self) -> CR:
        return NegatedCR(self)

    def subtract(self, x: CR) -> CR:
        return SumCR(self, x.negate())

    def multiply(self, x: CR) -> CR:
        return ProductCR(self, x)

    def inverse(self) -> CR:
        """1/x. Diverges rather than raising if the value is zero."""
        return InverseCR(self)

    def divide(self, x: CR) -> CR:
        return ProductCR(self, x.inverse())

    def select(self, x: CR, y: CR) -> CR:
        """``x`` if self < 0 else ``y``; ``x`` and ``y`` must agree when self == 0."""
        return SelectCR(self, x, y)

    def max(self, x: CR) -> CR:
        return self.subtract(x).select(x, self)

    def min(self, x: CR) -> CR:
        return self.subtract(x).select(self, x)

    def abs(self) -> CR:
        return self.select(self.negate(), self)

    def exp(self) -> CR:
        rough_appr = self.get_appr(-10)
        # Large arguments use exp(x) = exp(x/2)**2 until the series applies.
        if rough_appr > 2 or rough_appr < -2:
            square_root = self.shift_right(1).exp()
            return square_root.multiply(square_root)
        return ExpSeriesCR(self)

    def cos(self) -> CR:
        halfpi_multiples = self.divide(PI).get_appr(-1)
        if abs(halfpi_multiples) >= 2:
            pi_multiples = scale(halfpi_multiples, -1)
            adjustment = PI.multiply(IntegerCR(pi_multiples))
            if pi_multiples & 1:
                return self.subtract(adjustment).cos().negate()
            return self.subtract(adjustment).cos()
        if abs(self.get_appr(-1)) >= 2:
            cos_half = self.shift_right(1).cos()
            return cos_half.multiply(cos_half).shift_left(1).subtract(ONE)
        return CosSeriesCR(self)

    def sin(self) -> CR:
        return HALF_PI.subtract(self).cos()

    def tan(self) -> CR:
        return self.sin().divide(self.cos())

    def asin(self) -> CR:
        rough_appr = self.get_appr(-10)
        # 750/1024 is a little above 1/sqrt(2)
        if rough_appr > 750:
            new_arg = ONE.subtract(self.multiply(self)).sqrt()
            return new_arg.acos()
        if rough_appr < -750:
            return self.negate().asin().negate()
        return AsinSeriesCR(self)

    def acos(self) -> CR:
        return HALF_PI.subtract(self.asin())

    def atan(self) -> CR:
        # sin(atan x)**2 == x**2 / (1 + x**2); the sign of the sine is the sign of x.
        x2 = self.multiply(self)
        abs_sin_atan = x2.divide(ONE.add(x2)).sqrt()
        sin_atan = self.select(abs_sin_atan.negate(), abs_sin_atan)
        return sin_atan.asin()

    def simple_ln(self) -> CR:
        """ln(x) for x close to 1, via the ln(1 + u) series."""
        return LnSeriesCR(self.subtract(ONE))

    def ln(self) -> CR:
        rough_appr = self.get_appr(-4)  # sixteenths
        if rough_appr < 0:
            raise DomainError("ln(negative)")
        if rough_appr <= 8:
            return self.inverse().ln().negate()
        if rough_appr >= 24:
            if rough_appr <= 64:
                quarter = self.sqrt().sqrt().ln()
                return quarter.shift_left(2)
            extra_bits = rough_appr.bit_length() - 3
            scaled_result = self.shift_right(extra_bits).ln()
            return scaled_result.add(IntegerCR(extra_bits).multiply(LN2))
        return self.simple_ln()

    def sqrt(self) -> CR:
        return SqrtCR(self)

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

    def __neg__(self):
        return self.negate()


class SlowCR(CR):
    """A node that is expensive to re-evaluate.

    On a cache miss it evaluates at a precision rounded down to a multiple
    of 32 (and never coarser than -64), so that nearby future requests are
    served from the cache.
    """

    MAX_PREC = -64
    PREC_INCR = 32

    def get_appr(self, precision: int) -> int:
        check_prec(precision)
        if self.appr_valid and precision >= self.min_prec:
            return scale(self.max_appr, self.min_prec - precision)
        if precision >= self.MAX_PREC:
            eval_prec = self.MAX_PREC
        else:
            eval_prec = (precision - self.PREC_INCR + 1) & ~(self.PREC_INCR - 1)
        CR.approximation_count += 1
        result = self.approximate(eval_prec)
        self.min_prec = eval_prec
        self.max_appr = result
        self.appr_valid = True
        return scale(result, eval_prec - precision)


class IntegerCR(CR):
    def __init__(self, value: int) -> None:
        super().__init__()
        self.value = value

    def approximate(self, p: int) -> int:
        return scale(self.value, -p)


class AssumedIntCR(CR):
    def __init__(self, op: CR) -> None:
        super().__init__()
        self.op = op

    def approximate(self, p: int) -> int:
        if p >= 0:
            return self.op.get_appr(p)
        return scale(self.op.get_appr(0), -p)


class SumCR(CR):
    def __init__(self, op1: CR, op2: CR) -> None:
        super().__init__()
        self.op1 = op1
        self.op2 = op2

    def approximate(self, p: int) -> int:
        # Each operand error < 1/4 ulp, final rounding <= 1/2 ulp.
        return scale(self.op1.get_appr(p - 2) + self.op2.get_appr(p - 2), -2)


class ShiftedCR(CR):
    def __init__(self, op: CR, count: int) -> None:
        super().__init__()
        self.op = op
        self.count = count

    def approximate(self, p: int) -> int:
        return self.op.get_appr(p - self.count)


class NegatedCR(CR):
    def __init__(self, op: CR) -> None:
        super().__init__()
        self.op = op

    def approximate(self, p: int) -> int:
        return -self.op.get_appr(p)


class SelectCR(CR):
    """op1 if selector < 0, op2 if selector >= 0 (op1 == op2 when selector == 0)."""

    def __init__(self, selector: CR, op1: CR, op2: CR) -> None:
        super().__init__()
        self.selector = selector
        self.selector_sign = _signum(selector.get_appr(-20))
        self.op1 = op1
        self.op2 = op2

    def approximate(self, p: int) -> int:
        if self.selector_sign < 0:
            return self.op1.get_appr(p)
        if self.selector_sign > 0:
            return self.op2.get_appr(p)
        op1_appr = self.op1.get_appr(p - 1)
        op2_appr = self.op2.get_appr(p - 1)
        if abs(op1_appr - op2_appr) <= 1:
            return scale(op1_appr, -1)
        # The branches differ, so the selector is nonzero and signum() terminates.
        if self.selector.signum() < 0:
            self.selector_sign = -1
            return scale(op1_appr, -1)
        self.selector_sign = 1
        return scale(op2_appr, -1)


class ProductCR(CR):
    def __init__(self, op1: CR, op2: CR) -> None:
        super().__init__()
        self.op1 = op1
        self.op2 = op2

    def approximate(self, p: int) -> int:
        half_prec = (p >> 1) - 1
        msd_op1 = self.op1.msd(half_prec)
        if msd_op1 == INTEGER_MIN:
            msd_op2 = self.op2.msd(half_prec)
            if msd_op2 == INTEGER_MIN:
                # Both factors are tiny; 0 is close enough.
                return 0
            # Keep the larger operand first.
            self.op1, self.op2 = self.op2, self.op1
            msd_op1 = msd_op2
        # Each approximation contributes 1/4 ulp, the final rounding 1/2 ulp.
        prec2 = p - msd_op1 - 3
        appr2 = self.op2.get_appr(prec2)
        if appr2 == 0:
            return 0
        msd_op2 = self.op2.known_msd()
        prec1 = p - msd_op2 - 3
        appr1 = self.op1.get_appr(prec1)
        scale_digits = prec1 + prec2 - p
        return scale(appr1 * appr2, scale_digits)


class InverseCR(CR):
    def __init__(self, op: CR) -> None:
        super().__init__()
        self.op = op

    def approximate(self, p: int) -> int:
        msd = self.op.msd_get()
        inv_msd = 1 - msd
        # Significant digits of the argument, plus slop for the msd estimate
        # and the final rounding.
        digits_needed = inv_msd - p + 3
        prec_needed = msd - digits_needed
        log_scale_factor = -p - prec_needed
        if log_scale_factor < 0:
            return 0
        dividend = 1 << log_scale_factor
        scaled_divisor = self.op.get_appr(prec_needed)
        abs_scaled_divisor = abs(scaled_divisor)
        adj_dividend = dividend + (abs_scaled_divisor >> 1)
        result = adj_dividend // abs_scaled_divisor
        return -result if scaled_divisor < 0 else result


class ExpSeriesCR(CR):
    """exp(x) by Taylor series, for |x| <= 1/2."""

    def __init__(self, op: CR) -> None:
        super().__init__()
        self.op = op

    def approximate(self, p: int) -> int:
        if p >= 1:
            return 0
        iterations_needed = (-p >> 1) + 2
        calc_precision = p - bound_log2(2 * iterations_needed) - 4
        op_prec = p - 3
        op_appr = self.op.get_appr(op_prec)
        scaled_1 = 1 << -calc_precision
        current_term = scaled_1
        current_sum = scaled_1
        n = 0
        max_trunc_error = 1 << (p - 4 - calc_precision)
        while abs(current_term) >= max_trunc_error:
            n += 1
            current_term = scale(current_term * op_appr, op_prec)
            current_term = _tdiv(current_term, n)
            current_sum += current_term
        return scale(current_sum, calc_precision - p)


class CosSeriesCR(SlowCR):
    """cos(x) by Taylor series, for |x| < 1."""

    def __init__(self, op: CR) -> None:
        super().__init__()
        self.op = op

    def approximate(self, p: int) -> int:
        if p >= 1:
            return 0
        iterations_needed = (-p >> 1) + 4
        calc_precision = p - bound_log2(2 * iterations_needed) - 4
        op_prec = p - 2
        op_appr = self.op.get_appr(op_prec)
        max_trunc_error = 1 << (p - 4 - calc_precision)
        n = 0
        current_term = 1 << -calc_precision
        current_sum = current_term
        while abs(current_term) >= max_trunc_error:
            n += 2
            # current_term *= -x*x / (n * (n-1))
            current_term = scale(current_term * op_appr, op_prec)
            current_term = scale(current_term * op_appr, op_prec)
            current_term = _tdiv(current_term, -n * (n - 1))
            current_sum += current_term
        return scale(current_sum, calc_precision - p)


class AtanReciprocalCR(SlowCR):
    """atan(1/n) for a small integer n > 1."""

    def __init__(self, op: int) -> None:
        super().__init__()
        self.op = op

    def approximate(self, p: int) -> int:
        if p >= 1:
            return 0
        iterations_needed = (-p >> 1) + 2
        calc_precision = p - bound_log2(2 * iterations_needed) - 2
        scaled_1 = 1 << -calc_precision
        op_squared = self.op * self.op
        op_inverse = scaled_1 // self.op
        current_power = op_inverse
        current_term = op_inverse
        current_sum = op_inverse
        current_sign = 1
        n = 1
        max_trunc_error = 1 << (p - 2 - calc_precision)
        while abs(current_term) >= max_trunc_error:
            n += 2
            current_power //= op_squared
            current_sign = -current_sign
            current_term = _tdiv(current_power, current_sign * n)
            current_sum += current_term
        return scale(current_sum, calc_precision - p)


class LnSeriesCR(SlowCR):
    """ln(1 + x) by Taylor series, for |x| <= 1/2."""

    def __init__(self, op: CR) -> None:
        super().__init__()
        self.op = op

    def approximate(self, p: int) -> int:
        if p >= 0:
            return 0
        iterations_needed = -p
        calc_precision = p - bound_log2(2 * iterations_needed) - 4
        op_prec = p - 3
        op_appr = self.op.get_appr(op_prec)
        x_nth = scale(op_appr, op_prec - calc_precision)
        current_term = x_nth
        current_sum = current_term
        n = 1
        current_sign = 1
        max_trunc_error = 1 << (p - 4 - calc_precision)
        while abs(current_term) >= max_trunc_error:
            n += 1
            current_sign = -current_sign
            x_nth = scale(x_nth * op_appr, op_prec)
            current_term = _tdiv(x_nth, n * current_sign)
            current_sum += current_term
        return scale(current_sum, calc_precision - p)


class AsinSeriesCR(SlowCR):
    """asin(x) by Taylor series, for |x| a little above 1/sqrt(2) at most.

    Terms are x**(2n+1) * (2n)! / (4**n * n!**2 * (2n+1)), each bounded by
    x**(2n+1).
    """

    def __init__(self, op: CR) -> None:
        super().__init__()
        self.op = op

    def approximate(self, p: int) -> int:
        if p >= 2:
            return 0  # never bigger than 4
        iterations_needed = -3 * (p >> 1) + 4
        calc_precision = p - bound_log2(2 * iterations_needed) - 4
        op_prec = p - 3
        op_appr = self.op.get_appr(op_prec)
        max_last_term = 1 << (p - 4 - calc_precision)
        exp = 1
        current_term = op_appr << (op_prec - calc_precision)
        current_sum = current_term
        # Term before division by the exponent, accurate to 3 ulp.
        current_factor = current_term
        while abs(current_term) >= max_last_term:
            exp += 2
            # current_factor *= x*x * (exp-2) / (exp-1), carrying 2 extra bits
            current_factor *= exp - 2
            current_factor = scale(current_factor * op_appr, op_prec + 2)
            current_factor *= op_appr
            current_factor = _tdiv(current_factor, exp - 1)
            current_factor = scale(current_factor, op_prec - 2)
            current_term = _tdiv(current_factor, exp)
            current_sum += current_term
        return scale(current_sum, calc_precision - p)


class SqrtCR(CR):
    """Square root.

    Up to 50 result bits come from a float estimate; beyond that one Newton
    step refines this node's own coarser approximation. A seed approximation
    ``max_a`` at precision ``min_p`` may be supplied, which lets iterative
    callers skip the low-precision steps.
    """

    FP_PREC = 50
    FP_OP_PREC = 60

    def __init__(self, op: CR, min_p: int = 0, max_a: int | None = None) -> None:
        super().__init__()
        self.op = op
        self.min_prec = min_p
        if max_a is not None:
            self.max_appr = max_a
            self.appr_valid = True

    def approximate(self, p: int) -> int:
        max_op_prec_needed = (p << 1) - 1
        msd = self.op.iter_msd(max_op_prec_needed)
        if msd <= max_op_prec_needed:
            return 0
        result_msd = msd >> 1  # +- 1
        result_digits = result_msd - p  # +- 2
        if result_digits > self.FP_PREC:
            appr_digits = (result_digits >> 1) + 6
            appr_prec = result_msd - appr_digits
            prod_prec = appr_prec << 1
            # Evaluate the argument once, at full precision.
            op_appr = self.op.get_appr(prod_prec)
            last_appr = self.get_appr(appr_prec)
            # (last**2 + op) / last / 2, rescaled
            prod_prec_scaled_numerator = last_appr * last_appr + op_appr
            scaled_numerator = scale(prod_prec_scaled_numerator, appr_prec - p)
            shifted_result = scaled_numerator // last_appr
            return (shifted_result + 1) >> 1
        # Even precisions keep the square root exact in the exponent.
        op_prec = (msd - self.FP_OP_PREC) & ~1
        working_prec = op_prec - self.FP_OP_PREC
        scaled_bi_appr = self.op.get_appr(op_prec) << self.FP_OP_PREC
        scaled_appr = float(scaled_bi_appr)
        if scaled_appr < 0.0:
            raise DomainError("sqrt(negative)")
        scaled_sqrt = math.floor(math.sqrt(scaled_appr))
        shift_count = (working_prec >> 1) - p
        return shift(scaled_sqrt, shift_count)


class GaussLegendrePiCR(SlowCR):
    """pi by the Gauss-Legendre arithmetic-geometric mean iteration.

    Besides the usual cache the node remembers every geometric mean term
    ``b[n]`` it has computed, as ``(b_prec[n], b_val[n])``, and reuses them
    as square root seeds when asked for more precision later.
    """

    TOLERANCE = 4

    def __init__(self) -> None:
        super().__init__()
        # Entry 0 unused.
        self.b_prec: list[int | None] = [None]
        self.b_val: list[int | None] = [None]

    def approximate(self, p: int) -> int:
        # An interrupted evaluation may have appended to b_prec only.
        if len(self.b_prec) > len(self.b_val):
            logger.debug("Dropping unmatched pi memo slot %d", len(self.b_prec) - 1)
            self.b_prec.pop()
        if p >= 0:
            return scale(3, -p)
        # About log2(-p) iterations, each contributing at most 2 ulps.
        extra_eval_prec = (-p - 1).bit_length() + 10
        eval_prec = p - extra_eval_prec
        a = 1 << -eval_prec
        b = SQRT_HALF.get_appr(eval_prec)
        t = 1 << (-eval_prec - 2)
        n = 0
        while a - b - self.TOLERANCE > 0:
            next_a = (a + b) >> 1
            a_diff = a - next_a
            b_prod = (a * b) >> -eval_prec
            b_prod_as_cr = IntegerCR(b_prod).shift_right(-eval_prec)
            if len(self.b_prec) == n + 1:
                next_b = b_prod_as_cr.sqrt().get_appr(eval_prec)
                # b_prec first: a partial append is repaired on the next call.
                self.b_prec.append(p)
                self.b_val.append(scale(next_b, -extra_eval_prec))
            else:
                seeded = SqrtCR(b_prod_as_cr, self.b_prec[n + 1], self.b_val[n + 1])
                next_b = seeded.get_appr(eval_prec)
                self.b_prec[n + 1] = p
                self.b_val[n + 1] = scale(next_b, -extra_eval_prec)
            t -= shift(a_diff * a_diff, n + eval_prec)
            a = next_a
            b = next_b
            n += 1
        total = a + b
        result = (total * total // t) >> 2
        return scale(result, -extra_eval_prec)


def value_of(n: int) -> CR:
    """The constructive real equal to the integer ``n``."""
    if isinstance(n, bool) or not isinstance(n, int):
        raise TypeError(f"value_of expects an int, got {type(n).__name__}")
    return IntegerCR(n)


def value_of_str(s: str, radix: int = 10) -> CR:
    """Parse ``[-]digits[.digits]`` in radix 2, 8, 10 or 16."""
    if radix not in _NUMBER_RE:
        raise ValueError(f"Radix: {radix}")
    s = s.strip(" ")
    if not _NUMBER_RE[radix].match(s) or not any(c not in "-." for c in s):
        raise ValueError(f"Invalid number: {s!r}")
    whole, _, fraction = s.partition(".")
    scaled_result = int(whole + fraction, radix)
    divisor = radix ** len(fraction)
    return IntegerCR(scaled_result).divide(IntegerCR(divisor))


def atan_reciprocal(n: int) -> CR:
    return AtanReciprocalCR(n)


def _coerce(x):
    if isinstance(x, CR):
        return x
    if isinstance(x, int) and not isinstance(x, bool):
        return IntegerCR(x)
    return None


ZERO = value_of(0)
ONE = value_of(1)
FOUR = value_of(4)
SQRT_HALF = SqrtCR(ONE.shift_right(1))
PI = GaussLegendrePiCR()
HALF_PI = PI.shift_right(1)
# pi/4 = 4*atan(1/5) - atan(1/239); the slower Machin formula, kept as a cross-check.
ATAN_PI = FOUR.multiply(FOUR.multiply(atan_reciprocal(5)).subtract(atan_reciprocal(239)))
# ln(2) = 7ln(10/9) - 2ln(25/24) + 3ln(81/80)
LN2 = (
    value_of(7).multiply(value_of(10).divide(value_of(9)).simple_ln())
    .subtract(value_of(2).multiply(value_of(25).divide(value_of(24)).simple_ln()))
    .add(value_of(3).multiply(value_of(81).divide(value_of(80)).simple_ln()))
)
