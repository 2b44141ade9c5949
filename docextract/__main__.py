"""
Entry point for running the package as a module: python -m docextract
"""

import sys
from docextract.cli import main

if __name__ == "__main__":
    sys.exit(main())
