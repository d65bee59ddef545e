"""
Allow `python -m mssqladmin`.
"""

import sys

from mssqladmin.interface.cli import main

if __name__ == "__main__":
    sys.exit(main())
