#!/usr/bin/env python
"""
StarXref - SAO catalog cross-identification for Gaia DR3 stars

This is the main entry point for StarXref. All arguments are passed on to the
command line interface (see `python main.py --help`).

Version: 1.0.0
"""

import sys

# Version information for scientific reproducibility
__version__ = "1.0.0"


def main():
    """Main entry point for StarXref."""
    try:
        from starxref.cli.main import main as cli_main
        sys.exit(cli_main(sys.argv[1:]))
    except ImportError as e:
        print(f"ERROR: Failed to import required module: {e}", file=sys.stderr)
        print("Ensure all dependencies are installed: pip install -e .", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.", file=sys.stderr)
        sys.exit(130)  # Standard exit code for SIGINT


if __name__ == "__main__":
    main()
