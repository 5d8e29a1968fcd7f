"""
DebtLens package
================

This package contains the debt-exposure reconciliation engine.

- The CLI entry point is in `debtlens/cli.py`.
- The core engine (selection, valuation mode, derived outputs) is in `debtlens/engine.py`.
- Dataset loading is in `debtlens/loader.py`.
"""

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = '0.1.0'
