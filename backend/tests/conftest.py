"""
backend/tests/conftest.py

Purpose:
    Shared pytest bootstrap: import paths and the environment the settings
    module requires at import time.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

_THIS_FILE = Path(__file__).resolve()
_TESTS_DIR = _THIS_FILE.parent
_BACKEND_DIR = _THIS_FILE.parents[1]

for candidate in (str(_BACKEND_DIR), str(_TESTS_DIR)):
    if candidate not in sys.path:
        sys.path.insert(0, candidate)

os.environ.setdefault("JWT_SECRET", "test-secret-with-enough-length-for-hs256")
os.environ.setdefault("SCRAPER_ENABLED", "false")
os.environ.setdefault("FOOTBALL_DATA_API_KEY", "")
os.environ.setdefault("BET_RESULT_SOURCE", "simulated")
os.environ.setdefault("PREDICTION_RESULT_SOURCE", "simulated")
