import logging
import sys

import httpx

from udl.client import ObjectStoreClient
from udl.config import ConfigStore, resolve_credentials
from udl.constants import (
    COMMAND_DELETE,
    COMMAND_DOWNLOAD,
    COMMAND_LIST,
    COMMAND_SAVE_CONFIG,
    COMMAND_UPLOAD,
)
from udl.errors import UdlError
from udl.main import run_delete, run_download, run_list, run_upload
from udl.parsing import parse_arguments

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False, log_level: str | None = None) -> int:
    """
    Configure the root logger with a single stderr handler.

    Returns:
        Effective logging level
    """
    if debug:
        level = logging.DEBUG
    elif log_level:
        level = getattr(logging, log_level.upper(), logging.INFO)
    else:
        level = logging.INFO

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Request lines from httpx are only useful when debugging
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
    return level


async def cli(
    argv=None,
    config_store: ConfigStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """
    Main entry point for the command line tool.

    Returns:
        Process exit code
    """
    args = parse_arguments(argv)
    setup_logging(args.debug, args.log_level)

    try:
        store = (config_store or ConfigStore()).load()

        if args.command == COMMAND_SAVE_CONFIG:
            store.save(key=args.key, url=args.url)
            logger.info("Saved config")
            logger.warning("Note that credentials are saved in clear-text!")
            return 0

        url, key = resolve_credentials(args.url, args.key, store)
        async with ObjectStoreClient(url, key, transport=transport) as client:
            await dispatch(args, client)
    except UdlError as e:
        logger.error("%s", e)
        return 1

    return 0


async def dispatch(args, client: ObjectStoreClient):
    """Run the selected command."""
    show_progress = not args.no_progress

    if args.command == COMMAND_UPLOAD:
        await run_upload(
            client,
            args.name,
            args.path,
            force=args.force,
            part_size_bytes=args.part_size_bytes,
            parallel_parts=args.parallel_parts,
            show_progress=show_progress,
        )
    elif args.command == COMMAND_DOWNLOAD:
        await run_download(
            client,
            args.name,
            args.path,
            force=args.force,
            show_progress=show_progress,
        )
    elif args.command == COMMAND_DELETE:
        await run_delete(client, args.name)
    elif args.command == COMMAND_LIST:
        await run_list(client, args.prefix)
