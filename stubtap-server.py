#!/usr/bin/env python3
"""
StubTap Stub Server CLI

Runs the StubTap command line from a source checkout without installing.

Examples:
    # Start stub server
    python3 stubtap-server.py serve --dir responses --port 3000

    # Resolve one request
    python3 stubtap-server.py resolve --category user --lookup 123
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from stubtap.cli import main


if __name__ == '__main__':
    main()
