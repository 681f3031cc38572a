"""
Main entry point for running the package as a module.

Usage:
    python -m previewgen preview photo.jpg
    python -m previewgen upload ./incoming --folder contributors/42
    python -m previewgen tile -o tile.png
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
