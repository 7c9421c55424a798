"""Allow running ccpolicy as ``python -m ccpolicy``."""

import sys

from ccpolicy.cli import main

sys.exit(main())
