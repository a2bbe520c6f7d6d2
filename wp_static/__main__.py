"""
Main entry point for the wp_static package.

Allows running the mirror as: python -m wp_static
"""

import sys

from wp_static.cli import main

if __name__ == "__main__":
    sys.exit(main())
