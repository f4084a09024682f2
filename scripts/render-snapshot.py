#!/usr/bin/env python3
"""Snapshot entrypoint.

Thin wrapper around cast_engine.cli.main() for direct invocation:
    python3 scripts/render-snapshot.py run.cast --at 90 --snapshot frame.png
"""

import sys
from pathlib import Path

# Ensure project root is on sys.path
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from cast_engine.cli import main

if __name__ == "__main__":
    main()
