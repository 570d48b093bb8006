"""Allow ``python -m stashkit``."""

from __future__ import annotations

from stashkit.cli import main

raise SystemExit(main())
