"""Centralized configuration for crcalc.

This module defines:
- Worker resource limits (CPU time, memory, timeouts)
- Input validation limits
- Display defaults

Configuration can be overridden via:
- CLI flags (see cli.py)
- Environment variables (prefixed with CRCALC_)

Numeric engine constants (the bounded rational size ceiling, comparison
tolerances, power recursion limits) live next to the code that uses them and
are deliberately not configurable.
"""

import os

try:
    import importlib.metadata

    VERSION = importlib.metadata.version("crcalc")
except Exception:
    # Fallback if package not installed
    VERSION = "1.0.0"

# Resource limits (can be overridden via environment variables)
WORKER_CPU_SECONDS = int(os.getenv("CRCALC_WORKER_CPU_SECONDS", "30"))
WORKER_AS_MB = int(os.getenv("CRCALC_WORKER_AS_MB", "400"))
WORKER_TIMEOUT = int(os.getenv("CRCALC_WORKER_TIMEOUT", "60"))
ENABLE_PERSISTENT_WORKER = (
    os.getenv("CRCALC_ENABLE_PERSISTENT_WORKER", "true").lower() == "true"
)

# Input validation limits
MAX_INPUT_LENGTH = int(os.getenv("CRCALC_MAX_INPUT_LENGTH", "10000"))  # characters

# Display
DEFAULT_DIGITS = int(os.getenv("CRCALC_DEFAULT_DIGITS", "20"))  # digits after the point
MAX_DIGITS = int(os.getenv("CRCALC_MAX_DIGITS", "100000"))
LOG_LEVEL = os.getenv("CRCALC_LOG_LEVEL", "INFO")
