from __future__ import annotations

import argparse
import json
from typing import Any

from .config import DEFAULT_DIGITS, VERSION
from .logging_config import get_logger
from .worker import evaluate_safely, shutdown_worker

logger = get_logger("cli")


def _health_check() -> int:
    """Run health check to verify dependencies and basic operations.

    Returns:
        Exit code (0 for success, non-zero for failures)
    """
    checks_passed = 0
    checks_failed = 0

    print("Running crcalc health check...")
    print("-" * 50)

    try:
        import sympy as sp

        print(f"[OK] SymPy {sp.__version__} imported successfully")
        checks_passed += 1
    except ImportError as e:
        print(f"[FAIL] SymPy import failed: {e}")
        checks_failed += 1

    # Exact arithmetic must not evaluate anything
    try:
        from .cr import CR
        from .parser import Evaluator

        CR.reset_approximation_count()
        value = Evaluator().evaluate("sqrt(2)*sqrt(2)")
        if value.to_nice_string() == "2" and CR.approximation_count == 0:
            print("[OK] Exact arithmetic works")
            checks_passed += 1
        else:
            print(f"[FAIL] Exact arithmetic check failed: {value}")
            checks_failed += 1
    except Exception as e:
        print(f"[FAIL] Exact arithmetic check failed: {e}")
        checks_failed += 1

    try:
        result = evaluate_safely("4*atan(1)", digits=10)
        if result.get("ok") and result.get("approx") == "3.1415926535":
            print("[OK] Worker evaluation works")
            checks_passed += 1
        else:
            print(f"[FAIL] Worker check failed: {result}")
            checks_failed += 1
    except Exception as e:
        print(f"[WARN] Worker check skipped: {e}")

    print("-" * 50)
    print(f"Results: {checks_passed} passed, {checks_failed} failed")

    if checks_failed > 0:
        print("\n[WARN] Some health checks failed. Core functionality may be impaired.")
        return 1

    print("\n[OK] All health checks passed!")
    return 0


def print_result_pretty(res: dict[str, Any], output_format: str = "human") -> None:
    """Print result in specified format.

    Args:
        res: Result dictionary
        output_format: "json" for JSON output, "human" for human-readable
    """
    if output_format == "json":
        print(json.dumps(res, indent=2, ensure_ascii=False))
        return
    if not res.get("ok"):
        print("Error:", res.get("error"))
        return
    result = res.get("result")
    approx = res.get("approx")
    print(result)
    if approx and approx != result:
        print("Decimal:", approx)


def print_help_text() -> None:
    """Print help text for REPL commands."""
    print(
        f"""crcalc version {VERSION}

Expressions:
  2+3, (2+3)*4, 2^-3, 5!, 1/3
  sqrt(8), √2, ln(8), log(1000), exp(2), e^2, pi, π
  sin cos tan, asin acos atan (also arcsin arccos arctan)
  Implicit multiplication: 2pi, 3(4+5), (1+2)(3+4)

Results are exact where the value is recognized (rationals, multiples of
pi, e, square roots and logarithms of small integers) and are otherwise
shown truncated, never rounded.

Commands:
  deg / rad      switch angle unit (currently shown in the prompt)
  digits N       digits after the decimal point
  more           show the previous result with twice as many digits
  help           show this text
  quit / exit    leave"""
    )


def repl_loop(
    output_format: str = "human", digits: int = DEFAULT_DIGITS, degree_mode: bool = False
) -> None:
    """Interactive REPL loop with graceful interrupt handling."""
    try:
        import readline  # noqa: F401
    except ImportError:
        # readline not available on Windows - that's fine
        pass

    print("crcalc - type 'help' for commands, 'quit' to exit.")
    last_expr = None
    last_digits = digits
    while True:
        prompt = "deg> " if degree_mode else ">>> "
        try:
            raw = input(prompt)
        except (EOFError, KeyboardInterrupt):
            print()
            return
        line = raw.strip()
        if not line:
            continue
        command = line.lower()
        if command in ("quit", "exit"):
            return
        if command == "help":
            print_help_text()
            continue
        if command in ("deg", "rad"):
            degree_mode = command == "deg"
            continue
        if command.startswith("digits"):
            try:
                digits = int(command.split(None, 1)[1])
            except (IndexError, ValueError):
                print("Error: usage: digits N")
                continue
            print(f"Showing {digits} digits")
            continue
        if command == "more":
            if last_expr is None:
                print("Error: nothing to show")
                continue
            last_digits *= 2
            res = evaluate_safely(last_expr, digits=last_digits, degree_mode=degree_mode)
            print_result_pretty(res, output_format)
            continue
        last_expr = line
        last_digits = digits
        res = evaluate_safely(line, digits=digits, degree_mode=degree_mode)
        print_result_pretty(res, output_format)


def main_entry(argv: list[str] | None = None) -> int:
    """
    Main entry point for crcalc CLI.

    Args:
        argv: Optional command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = argparse.ArgumentParser(prog="crcalc")
    parser.add_argument(
        "-e",
        "--eval",
        type=str,
        help="Evaluate one expression and exit (non-interactive)",
        dest="eval_expr",
    )
    parser.add_argument(
        "-d",
        "--digits",
        type=int,
        default=DEFAULT_DIGITS,
        help=f"Digits after the decimal point (default: {DEFAULT_DIGITS})",
    )
    parser.add_argument(
        "--degrees",
        action="store_true",
        help="Interpret trigonometric arguments and results in degrees",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["json", "human"],
        default="human",
        help="Output format: json (machine-readable) or human (human-readable)",
    )
    parser.add_argument(
        "-t", "--timeout", type=int, help="Override worker timeout (seconds)"
    )
    parser.add_argument(
        "-v", "--version", action="store_true", help="Show program version"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set logging level",
    )
    parser.add_argument("--log-file", type=str, help="Write logs to file")
    parser.add_argument(
        "--health-check",
        action="store_true",
        help="Run health check and verify dependencies",
    )
    args = parser.parse_args(argv)

    from .logging_config import setup_logging

    setup_logging(level=args.log_level, log_file=args.log_file)

    # Apply CLI configuration overrides
    import crcalc_pkg.worker as _worker_module

    if args.timeout and args.timeout > 0:
        _worker_module.WORKER_TIMEOUT = int(args.timeout)

    if args.version:
        print(VERSION)
        return 0
    if args.health_check:
        return _health_check()
    try:
        if args.eval_expr is not None:
            res = evaluate_safely(
                args.eval_expr, digits=args.digits, degree_mode=args.degrees
            )
            print_result_pretty(res, output_format=args.format)
            return 0 if res.get("ok") else 1
        repl_loop(
            output_format=args.format, digits=args.digits, degree_mode=args.degrees
        )
    finally:
        # Ensure the worker process is stopped on exit
        shutdown_worker()
    return 0


if __name__ == "__main__":
    """Allow running the CLI module directly with python -m crcalc_pkg.cli"""
    import sys

    sys.exit(main_entry())
