import argparse
import sys

from udl.constants import (
    COMMAND_DELETE,
    COMMAND_DOWNLOAD,
    COMMAND_LIST,
    COMMAND_SAVE_CONFIG,
    COMMAND_UPLOAD,
    DEFAULT_PARALLEL_PARTS,
)
from udl.utils import parse_size


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser exiting with status 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="udl",
        description="Upload, download and manage files in a remote object store.",
    )

    # Global arguments
    parser.add_argument("--url", type=str, help="The URL of the store")
    parser.add_argument("--key", type=str, help="The authentication key")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--no-progress", action="store_true", help="Do not draw a progress line"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    upload_parser = subparsers.add_parser(COMMAND_UPLOAD, help="Upload a file")
    upload_parser.add_argument("name", help="The name of the file")
    upload_parser.add_argument("path", help="The path to the file to upload")
    upload_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the remote file if it already exists",
    )
    upload_parser.add_argument(
        "--part-size",
        type=str,
        default="10MB",
        help="Size of each uploaded part (e.g., '10MB'). Accepts suffixes KB, MB, GB.",
    )
    upload_parser.add_argument(
        "--parallel-parts",
        type=int,
        default=DEFAULT_PARALLEL_PARTS,
        help=f"Number of parts to upload in parallel. Default: {DEFAULT_PARALLEL_PARTS}",
    )

    download_parser = subparsers.add_parser(COMMAND_DOWNLOAD, help="Download a file")
    download_parser.add_argument("name", help="The name of the file")
    download_parser.add_argument("path", help="The path to save the file to")
    download_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the local file if it already exists",
    )

    delete_parser = subparsers.add_parser(COMMAND_DELETE, help="Delete a file")
    delete_parser.add_argument("name", help="The name of the file to delete")

    list_parser = subparsers.add_parser(
        COMMAND_LIST, help="List files, optionally filtering by a prefix"
    )
    list_parser.add_argument("prefix", nargs="?", help="Optional prefix to filter by")

    subparsers.add_parser(
        COMMAND_SAVE_CONFIG,
        help="Save --url and --key to avoid having to pass them in every time",
    )

    return parser


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Validate command-specific arguments
    if args.command == COMMAND_SAVE_CONFIG and not (args.url and args.key):
        parser.error("Both --url and --key must be provided to save config")

    if args.command == COMMAND_UPLOAD:
        try:
            args.part_size_bytes = parse_size(args.part_size)
        except ValueError as e:
            parser.error(str(e))
        if args.parallel_parts < 1:
            parser.error("--parallel-parts must be at least 1")

    return args
