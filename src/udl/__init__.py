"""Command-line client for a remote object store."""

import asyncio
import sys

from udl.cli import cli

__version__ = "0.1.0"


def main():
    try:
        code = asyncio.run(cli())
    except KeyboardInterrupt:
        print("\nInterrupted by user.", file=sys.stderr)
        code = 1
    sys.exit(code)
