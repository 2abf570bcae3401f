"""
Main entry point for qEEG Engine package

This allows running the package with: python -m qeeg_engine
"""

import sys

from .cli.main import main

if __name__ == "__main__":
    sys.exit(main())
