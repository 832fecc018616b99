#!/usr/bin/env python3
"""
Launcher script for posecap.

Usage:
    python run.py demo      # Record and export a synthetic take
    python run.py --help    # Show CLI options
"""

if __name__ == "__main__":
    import sys
    from posecap.cli import main
    sys.exit(main())
