"""Expression parsing and evaluation.

This module handles:
- Tokenizing calculator input (implicit multiplication, unary signs,
  automatic closing of parentheses)
- Conversion to reverse Polish notation (shunting-yard)
- Evaluation of the RPN sequence into a ``UnifiedReal``, with memo tables
  that keep repeated sub-expressions identical between evaluations

Error messages carry a locator: ``at position (i)`` for a single character
and ``at position [start,end]`` for a token, both zero based and inclusive.
"""

from __future__ import annotations

from typing import NamedTuple

from . import bounded_rational as br
from . import unified_real as ur
from .config import MAX_INPUT_LENGTH
from .logging_config import get_logger
from .types import EvaluationError, ParseError, ValidationError
from .unified_real import UnifiedReal

logger = get_logger("parser")

FUNCTIONS = frozenset(
    {
        "ln",
        "log",
        "exp",
        "sqrt",
        "sin",
        "cos",
        "tan",
        "asin",
        "acos",
        "atan",
        "arcsin",
        "arccos",
        "arctan",
    }
)
CONSTANTS = frozenset({"e", "pi", "π"})

# Longest first, so that "exp" wins over "e" and "asin" over "sin".
_NAMES = sorted(FUNCTIONS | CONSTANTS, key=len, reverse=True)

PRIORITY = {
    "!": 6,
    "√": 5,
    "unary+pow": 5,
    "unary-pow": 5,
    "^": 4,
    "unary+": 3,
    "unary-": 3,
    "*": 2,
    "/": 2,
    "+": 1,
    "-": 1,
}
RIGHT_ASSOC = frozenset({"√", "unary+", "unary-", "unary+pow", "unary-pow", "^"})
UNARY_OPS = frozenset({"√", "unary+", "unary-", "unary+pow", "unary-pow", "!"})
BINARY_OPS = frozenset({"+", "-", "*", "/", "^"})

_SYMBOL_ALIASES = {"×": "*", "÷": "/", "−": "-"}
_DIGITS = frozenset("0123456789.")

# Exact integer powers are computed directly up to this many result bits.
MAX_INT_POW_BITS = 1 << 20


class Token(NamedTuple):
    """A token and the inclusive character range it came from."""

    text: str
    start: int
    end: int

    def locator(self) -> str:
        return f"at position [{self.start},{self.end}]"


def _is_letter(ch: str) -> bool:
    return ch == "π" or ("a" <= ch <= "z") or ("A" <= ch <= "Z")


def _split_name_run(run: str, start: int) -> list[Token]:
    """Split a run of letters such as ``"pie"`` into known names."""
    tokens = []
    i = 0
    while i < len(run):
        for name in _NAMES:
            if run.startswith(name, i):
                tokens.append(Token(name, start + i, start + i + len(name) - 1))
                i += len(name)
                break
        else:
            raise ParseError(
                f"Unknown name '{run[i:]}' at position [{start + i},{start + len(run) - 1}]",
                position=(start + i, start + len(run) - 1),
            )
    return tokens


def tokenize(expr: str) -> list[Token]:
    """Split ``expr`` into tokens.

    Implicit multiplication is made explicit (``2π``, ``3(4)``, ``(1)(2)``,
    ``2sin(x)``), signs are tagged as unary where no operand precedes them
    and unclosed parentheses are closed at the end of the input.

    A sign directly after ``^`` is accepted and binds tighter than ``^``, so
    ``2^-1`` is ``2^(-1)`` while ``-2^2`` is still ``-(2^2)``. A sign after
    another sign or a binary ``+``/``-`` is rejected.

    Raises:
        ParseError: on unknown characters or names, a second decimal point,
            misplaced operators and unmatched closing parentheses.
    """
    tokens: list[Token] = []
    # What the previous token was: None (start), "operand", "operator",
    # "open", "function" or "sign" (a unary sign).
    prev: str | None = None
    depth = 0
    i = 0
    n = len(expr)

    def invalid(ch: str, pos: int) -> ParseError:
        return ParseError(f"Invalid char '{ch}' at position ({pos})", position=pos)

    def require_paren_after_function(pos: int) -> None:
        if prev == "function":
            func = tokens[-1]
            raise ParseError(
                f"Missing '(' after '{func.text}' {func.locator()}",
                position=(func.start, func.end),
            )

    def implicit_multiply(pos: int) -> None:
        if prev == "operand":
            tokens.append(Token("*", pos, pos))

    while i < n:
        ch = _SYMBOL_ALIASES.get(expr[i], expr[i])
        if ch.isspace():
            i += 1
            continue
        if ch in _DIGITS:
            require_paren_after_function(i)
            implicit_multiply(i)
            start = i
            seen_point = False
            while i < n and expr[i] in _DIGITS:
                if expr[i] == ".":
                    if seen_point:
                        raise invalid(".", i)
                    seen_point = True
                i += 1
            text = expr[start:i]
            if text == ".":
                raise invalid(".", start)
            tokens.append(Token(text, start, i - 1))
            prev = "operand"
            continue
        if _is_letter(ch):
            start = i
            while i < n and _is_letter(expr[i]):
                i += 1
            for name in _split_name_run(expr[start:i], start):
                require_paren_after_function(name.start)
                implicit_multiply(name.start)
                tokens.append(name)
                prev = "function" if name.text in FUNCTIONS else "operand"
            continue
        if ch != "(":
            require_paren_after_function(i)
        if ch == "√":
            implicit_multiply(i)
            tokens.append(Token("√", i, i))
            prev = "operator"
        elif ch in "+-":
            if prev == "operand":
                tokens.append(Token(ch, i, i))
                prev = "operator"
            elif prev is None or prev == "open" or (prev == "operator" and tokens[-1].text in ("*", "/", "√")):
                tokens.append(Token("unary" + ch, i, i))
                prev = "sign"
            elif prev == "operator" and tokens[-1].text == "^":
                tokens.append(Token("unary" + ch + "pow", i, i))
                prev = "sign"
            else:
                raise ParseError(f"Missing '(' before '{ch}' at position ({i})", position=i)
        elif ch in "*/^":
            if prev != "operand":
                raise invalid(ch, i)
            tokens.append(Token(ch, i, i))
            prev = "operator"
        elif ch == "(":
            implicit_multiply(i)
            tokens.append(Token("(", i, i))
            depth += 1
            prev = "open"
        elif ch == ")":
            if prev != "operand" or depth == 0:
                raise invalid(")", i)
            tokens.append(Token(")", i, i))
            depth -= 1
        elif ch == "!":
            if prev != "operand":
                raise invalid("!", i)
            tokens.append(Token("!", i, i))
        else:
            raise ParseError(f"Unknown char '{expr[i]}' at position ({i})", position=i)
        i += 1
    require_paren_after_function(n)
    tokens.extend(Token(")", n, n) for _ in range(depth))
    return tokens


def to_rpn(tokens: list[Token]) -> list[Token]:
    """Reorder ``tokens`` into reverse Polish notation."""
    output: list[Token] = []
    stack: list[Token] = []
    for token in tokens:
        text = token.text
        if text in FUNCTIONS or text == "(":
            stack.append(token)
        elif text == ")":
            while stack and stack[-1].text != "(":
                output.append(stack.pop())
            if not stack:
                raise ParseError(
                    f"Mismatched parentheses {token.locator()}",
                    position=(token.start, token.end),
                )
            stack.pop()
            if stack and stack[-1].text in FUNCTIONS:
                output.append(stack.pop())
        elif text in PRIORITY:
            current = PRIORITY[text]
            right_assoc = text in RIGHT_ASSOC
            while stack:
                top = stack[-1].text
                if top == "(" or top in FUNCTIONS:
                    break
                top_prio = PRIORITY[top]
                if top_prio > current or (not right_assoc and top_prio == current):
                    output.append(stack.pop())
                else:
                    break
            stack.append(token)
        else:
            output.append(token)
    while stack:
        top = stack.pop()
        if top.text == "(":
            raise ParseError(
                f"Mismatched parentheses {top.locator()}", position=(top.start, top.end)
            )
        output.append(top)
    return output


def parse(expr: str) -> list[Token]:
    """Tokenize ``expr`` into RPN and check operator arity without evaluating."""
    tokens = tokenize(expr)
    if not tokens:
        raise ParseError("Empty expression")
    rpn = to_rpn(tokens)
    depth = 0
    for token in rpn:
        if token.text in BINARY_OPS:
            needed = 2
        elif token.text in UNARY_OPS or token.text in FUNCTIONS:
            needed = 1
        else:
            depth += 1
            continue
        if depth < needed:
            kind = "function" if token.text in FUNCTIONS else "operator"
            raise ParseError(
                f"Insufficient number of parameters for {kind} '{token.text}' {token.locator()}",
                position=(token.start, token.end),
            )
        depth -= needed - 1
    if depth != 1:
        raise ParseError(f"Invalid stack length: {depth}")
    return rpn


class Evaluator:
    """Evaluates token streams into ``UnifiedReal`` values.

    The memo tables are keyed by operand identity and live as long as the
    evaluator, so evaluating the same input twice yields the same objects
    and any approximations cached on them are reused.
    """

    def __init__(self, degree_mode: bool = False) -> None:
        self.degree_mode = degree_mode
        self._literals: dict[str | int, UnifiedReal] = {}
        self._unary: dict[str, dict[UnifiedReal, UnifiedReal]] = {}
        self._binary: dict[str, dict[tuple[UnifiedReal, UnifiedReal], UnifiedReal]] = {}
        self._int_pow: dict[tuple[int, int], int] = {}
        self._ln10: UnifiedReal | None = None

    def clear(self) -> None:
        self._literals.clear()
        self._unary.clear()
        self._binary.clear()
        self._int_pow.clear()

    # Memoized primitives

    def literal(self, text: str | int) -> UnifiedReal:
        cached = self._literals.get(text)
        if cached is None:
            if isinstance(text, int):
                cached = UnifiedReal.from_int(text)
            else:
                cached = UnifiedReal.from_rational(br.BoundedRational.value_of_str(text))
            self._literals[text] = cached
        return cached

    def _memo_unary(self, name: str, x: UnifiedReal, compute) -> UnifiedReal:
        table = self._unary.setdefault(name, {})
        cached = table.get(x)
        if cached is None:
            cached = compute(x)
            table[x] = cached
        return cached

    def _memo_binary(self, name: str, x: UnifiedReal, y: UnifiedReal, compute, symmetric=False):
        table = self._binary.setdefault(name, {})
        cached = table.get((x, y))
        if cached is None:
            cached = compute(x, y)
            table[(x, y)] = cached
            if symmetric:
                table[(y, x)] = cached
        return cached

    def negate(self, x: UnifiedReal) -> UnifiedReal:
        table = self._unary.setdefault("negate", {})
        cached = table.get(x)
        if cached is None:
            cached = x.negate()
            table[x] = cached
            table[cached] = x
        return cached

    def add(self, x: UnifiedReal, y: UnifiedReal) -> UnifiedReal:
        return self._memo_binary("add", x, y, UnifiedReal.add, symmetric=True)

    def multiply(self, x: UnifiedReal, y: UnifiedReal) -> UnifiedReal:
        return self._memo_binary("multiply", x, y, UnifiedReal.multiply, symmetric=True)

    def divide(self, x: UnifiedReal, y: UnifiedReal) -> UnifiedReal:
        return self._memo_binary("divide", x, y, UnifiedReal.divide)

    def pow(self, x: UnifiedReal, y: UnifiedReal) -> UnifiedReal:
        if x is ur.E:
            return self._memo_unary("exp", y, UnifiedReal.exp)
        if x.digits_required() == 0 and y.digits_required() == 0:
            base = x.integer_value()
            exponent = y.integer_value()
            if (
                base is not None
                and exponent is not None
                and exponent >= 0
                and abs(base).bit_length() * exponent <= MAX_INT_POW_BITS
            ):
                key = (base, exponent)
                value = self._int_pow.get(key)
                if value is None:
                    value = base**exponent
                    self._int_pow[key] = value
                return self.literal(value)
        return self._memo_binary("pow", x, y, UnifiedReal.pow)

    def ln10(self) -> UnifiedReal:
        if self._ln10 is None:
            self._ln10 = ur.TEN.ln()
        return self._ln10

    # Operators and functions

    def _apply_unary(self, op: str, x: UnifiedReal) -> UnifiedReal:
        if op in ("unary+", "unary+pow"):
            return x
        if op in ("unary-", "unary-pow"):
            return self.negate(x)
        if op == "!":
            return self._memo_unary("fact", x, UnifiedReal.fact)
        return self._memo_unary("sqrt", x, UnifiedReal.sqrt)

    def _apply_binary(self, op: str, x: UnifiedReal, y: UnifiedReal) -> UnifiedReal:
        if op == "+":
            return self.add(x, y)
        if op == "-":
            return self.add(x, self.negate(y))
        if op == "*":
            return self.multiply(x, y)
        if op == "/":
            return self.divide(x, y)
        return self.pow(x, y)

    def _apply_function(self, name: str, x: UnifiedReal) -> UnifiedReal:
        if name.startswith("arc"):
            name = "a" + name[3:]
        if name == "ln":
            return self._memo_unary("ln", x, UnifiedReal.ln)
        if name == "log":
            return self.divide(self._memo_unary("ln", x, UnifiedReal.ln), self.ln10())
        if name == "exp":
            return self._memo_unary("exp", x, UnifiedReal.exp)
        if name == "sqrt":
            return self._memo_unary("sqrt", x, UnifiedReal.sqrt)
        if name in ("sin", "cos", "tan"):
            if self.degree_mode:
                x = self.multiply(x, ur.RADIANS_PER_DEGREE)
            return self._memo_unary(name, x, getattr(UnifiedReal, name))
        # asin, acos, atan
        result = self._memo_unary(name, x, getattr(UnifiedReal, name))
        if self.degree_mode:
            result = self.divide(result, ur.RADIANS_PER_DEGREE)
        return result

    def _operand(self, token: Token) -> UnifiedReal:
        text = token.text
        if text[0] in _DIGITS:
            return self.literal(text)
        if text == "e":
            return ur.E
        if text in ("pi", "π"):
            return ur.PI
        raise ParseError(
            f"Unknown variable '{text}' {token.locator()}", position=(token.start, token.end)
        )

    def evaluate_rpn(self, rpn: list[Token]) -> UnifiedReal:
        stack: list[UnifiedReal] = []
        for token in rpn:
            text = token.text
            if text in BINARY_OPS:
                if len(stack) < 2:
                    raise ParseError(
                        f"Insufficient number of parameters for operator '{text}' {token.locator()}",
                        position=(token.start, token.end),
                    )
                y = stack.pop()
                x = stack.pop()
                stack.append(self._guarded(token, self._apply_binary, text, x, y))
            elif text in UNARY_OPS:
                if not stack:
                    raise ParseError(
                        f"Insufficient number of parameters for operator '{text}' {token.locator()}",
                        position=(token.start, token.end),
                    )
                stack.append(self._guarded(token, self._apply_unary, text, stack.pop()))
            elif text in FUNCTIONS:
                if not stack:
                    raise ParseError(
                        f"Insufficient number of parameters for function '{text}' {token.locator()}",
                        position=(token.start, token.end),
                    )
                stack.append(self._guarded(token, self._apply_function, text, stack.pop()))
            else:
                stack.append(self._operand(token))
        if len(stack) != 1:
            raise ParseError(f"Invalid stack length: {len(stack)}")
        return stack[0]

    @staticmethod
    def _guarded(token: Token, func, *args) -> UnifiedReal:
        try:
            return func(*args)
        except (ArithmeticError, ValueError) as e:
            # ArithmeticError covers DomainError, PrecisionOverflowError and
            # ZeroDivisionError.
            logger.debug("Operator %r failed: %s", token.text, e)
            message = getattr(e, "message", None) or str(e) or type(e).__name__
            code = getattr(e, "code", None) or (
                "DIVISION_BY_ZERO" if isinstance(e, ZeroDivisionError) else "EVAL_ERROR"
            )
            raise EvaluationError(
                f"{message} {token.locator()}", code=code, position=(token.start, token.end)
            ) from e

    def evaluate(self, expr: str) -> UnifiedReal:
        """Tokenize, parse and evaluate ``expr``."""
        return self.evaluate_rpn(parse(expr))


_session_evaluators: dict[bool, Evaluator] = {}


def get_evaluator(degree_mode: bool = False) -> Evaluator:
    """Return the session evaluator for ``degree_mode``."""
    evaluator = _session_evaluators.get(degree_mode)
    if evaluator is None:
        evaluator = Evaluator(degree_mode)
        _session_evaluators[degree_mode] = evaluator
    return evaluator


def validate_input(expr: str) -> str:
    """Check length and emptiness of raw input and return it unchanged.

    Raises:
        ValidationError: with code ``TOO_LONG`` or ``EMPTY_INPUT``.
    """
    if len(expr) > MAX_INPUT_LENGTH:
        raise ValidationError(
            f"Input too long (max {MAX_INPUT_LENGTH} characters)", "TOO_LONG"
        )
    if not expr.strip():
        raise ValidationError("Empty expression", "EMPTY_INPUT")
    return expr


def evaluate_expression(expr: str, degree_mode: bool = False) -> UnifiedReal:
    """Evaluate ``expr`` with the session evaluator.

    Examples:
        >>> evaluate_expression("sqrt(2)*sqrt(2)").to_nice_string()
        '2'
        >>> evaluate_expression("sin(30)", degree_mode=True).to_nice_string()
        '1/2'
    """
    expr = validate_input(expr)
    logger.debug("Evaluating %r (degree_mode=%s)", expr, degree_mode)
    return get_evaluator(degree_mode).evaluate(expr)
