"""Allow ``python -m asmdriver``."""

import sys

from asmdriver.main import main

if __name__ == "__main__":
    sys.exit(main())
