"""
Entry point for running gpdev as a module: python -m gpdev
"""

import sys
from .cli import main

if __name__ == "__main__":
    sys.exit(main())
