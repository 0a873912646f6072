"""Entry point for todolist when run as a module.

This allows the package to be run with: python -m todolist
"""

import sys

from todolist.cli import main

if __name__ == "__main__":
    sys.exit(main())
