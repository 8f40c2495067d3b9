"""Allow ``python -m sheetmd``."""

import sys

from .cli import main

sys.exit(main())
