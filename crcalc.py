#!/usr/bin/env python3
"""
crcalc - Constructive Real Calculator

Main entry point for the crcalc calculator application.
This file serves as a thin wrapper that delegates all functionality
to the crcalc_pkg package.

Usage:
    python crcalc.py                    # Interactive REPL
    python crcalc.py -e "sqrt(2)^2"     # Evaluate expression
    python crcalc.py --help             # Show help

For PyInstaller:
    pyinstaller --onefile --console --collect-all sympy crcalc.py
"""

from __future__ import annotations

import sys
from typing import List, Optional

# Allow frozen executables (PyInstaller) on Windows to spawn child processes.
from multiprocessing import freeze_support


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for crcalc.

    Delegates all functionality to the crcalc_pkg.cli module,
    which handles argument parsing, expression evaluation, and output formatting.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    freeze_support()

    try:
        from crcalc_pkg.cli import main_entry

        return main_entry(sys.argv[1:] if argv is None else argv)
    except KeyboardInterrupt:
        from crcalc_pkg.worker import shutdown_worker

        shutdown_worker()
        print("\nInterrupted by user.")
        return 1
    except ImportError as e:
        print(f"Error: Failed to import crcalc_pkg: {e}")
        print("Please ensure all dependencies are installed: pip install -e .")
        return 1


if __name__ == "__main__":
    sys.exit(main())
