"""crcalc package: constructive reals, bounded rationals and the calculator built on them."""

__all__ = [
    "bounded_rational",
    "config",
    "cr",
    "unified_real",
    "parser",
    "render",
    "worker",
    "cli",
    "types",
    "api",
    "logging_config",
]

# Public API exports

__api_exports__ = [
    "evaluate",
    "evaluate_value",
    "validate_expression",
]
