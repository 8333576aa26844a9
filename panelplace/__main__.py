"""Allow running as `python -m panelplace`."""

import sys

from .cli import main

sys.exit(main())
