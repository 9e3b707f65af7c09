"""Allow ``python -m metalock``."""

import sys

from metalock.cli import main

if __name__ == "__main__":
    sys.exit(main())
