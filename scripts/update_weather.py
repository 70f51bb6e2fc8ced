#!/usr/bin/env python3
"""Run the weather feed updater from a source checkout."""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from weatherfeed.cli import main


if __name__ == "__main__":
    sys.exit(main())
