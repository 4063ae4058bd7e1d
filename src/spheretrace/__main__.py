"""Allow running the renderer with ``python -m spheretrace``."""

import sys

from spheretrace.cli import main

sys.exit(main())
