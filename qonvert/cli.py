"""CLI entry point for the qonvert package."""

import sys


def main():
    """Entry point for the qonvert command."""
    from qonvert.core.main import main as run
    sys.exit(run())


if __name__ == "__main__":
    main()
