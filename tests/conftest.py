"""Shared test configuration.

Worker processes started by the tests import SymPy; give them room so the
default address-space limit does not turn into spurious MemoryErrors on
machines with large baseline mappings.
"""

import os

os.environ.setdefault("CRCALC_WORKER_AS_MB", "4096")
