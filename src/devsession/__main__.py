"""Allow ``python -m devsession``."""

from __future__ import annotations

import sys

from devsession.cli import main

sys.exit(main())
