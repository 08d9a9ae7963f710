#!/usr/bin/env python3
"""
Dev tools installer - check for development tools and install missing ones.

Usage:
    install.py                    # Process tool_list from installer.yaml
    install.py --config FILE      # Use another catalog
    install.py go subfinder       # Only these tools
"""

import os
import sys

# Add current directory to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from devtools_installer.cli import run


if __name__ == "__main__":
    run()
