# src/oplock/__main__.py

import sys

from oplock.cli import main

if __name__ == "__main__":
    sys.exit(main())
