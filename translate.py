"""
Command-line launcher: python translate.py [options]
"""
import sys

from speranto.cli import main


if __name__ == "__main__":
    sys.exit(main())
