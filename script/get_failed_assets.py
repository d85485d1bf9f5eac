#!/usr/bin/env python3
"""
CSPM Failed Asset Reporting Script - Wrapper

This is a wrapper script that delegates to the failed_asset_report package.
It mints tokens for each account under a license, pages through the failed
asset audit findings and writes them to a single timestamped CSV file.

The actual implementation is in the failed_asset_report/ directory.
"""

import sys
from pathlib import Path

# Add the script directory to the Python path
script_dir = Path(__file__).parent
sys.path.insert(0, str(script_dir))

# Import and run the main function from the package
from failed_asset_report.main import main

if __name__ == "__main__":
    sys.exit(main())
