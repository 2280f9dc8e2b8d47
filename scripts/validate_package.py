#!/usr/bin/env python3
"""Validate a QTI item document or zip package.

Usage:
    python scripts/validate_package.py export.zip
    python scripts/validate_package.py question-1.xml --json

Exits 1 when the document is invalid, 2 when the file does not exist.
"""
from __future__ import annotations

import sys

# Ensure project root is on sys.path
sys.path.insert(0, ".")

from qtiguard.core.logging import setup_logging
from qtiguard.validation.cli import main

if __name__ == "__main__":
    setup_logging()
    sys.exit(main())
