"""
Command implementations.

Each ``run_*`` function performs one command against an open
ObjectStoreClient and prints its user-facing output.
"""

import logging
import time

from udl.client import ObjectStoreClient
from udl.download import DownloadStreamer
from udl.errors import NotFoundError
from udl.structs import ObjectInfo, TransferSummary
from udl.upload import UploadCoordinator
from udl.utils import (
    ProgressDisplay,
    ProgressTracker,
    format_size,
    format_speed,
    summarize,
)

BOLD_WHITE = "\x1b[1;37m"
CLEAR_COLOR = "\x1b[0m"

logger = logging.getLogger(__name__)


async def run_upload(
    client: ObjectStoreClient,
    name: str,
    path: str,
    *,
    force: bool,
    part_size_bytes: int,
    parallel_parts: int,
    show_progress: bool = True,
) -> TransferSummary:
    """
    Upload one file and print its statistics.

    Args:
        client: Open ObjectStoreClient
        name: Remote object name
        path: Local file to upload
        force: Overwrite an existing remote object
        part_size_bytes: Size of each part in bytes
        parallel_parts: Number of parts to upload in parallel
        show_progress: Draw a progress line while uploading

    Returns:
        TransferSummary of the upload
    """
    tracker = ProgressTracker()
    display = ProgressDisplay(tracker) if show_progress else None
    coordinator = UploadCoordinator(
        client,
        part_size=part_size_bytes,
        max_concurrent=parallel_parts,
        progress=tracker,
    )

    start_time = time.time()
    if display:
        display.start()
    try:
        await coordinator.upload(name, path, overwrite=force)
    finally:
        if display and tracker.total_parts:
            display.finish()

    summary = summarize(tracker, start_time)
    display_final_stats(summary, "Upload")
    return summary


async def run_download(
    client: ObjectStoreClient,
    name: str,
    path: str,
    *,
    force: bool,
    show_progress: bool = True,
) -> TransferSummary:
    """Download one object and print its statistics."""
    tracker = ProgressTracker()
    display = ProgressDisplay(tracker) if show_progress else None
    streamer = DownloadStreamer(client, progress=tracker)

    start_time = time.time()
    if display:
        display.start()
    try:
        await streamer.download(name, path, overwrite=force)
    finally:
        if display and tracker.transferred:
            display.finish()

    summary = summarize(tracker, start_time)
    display_final_stats(summary, "Download")
    return summary


async def run_delete(client: ObjectStoreClient, name: str):
    """Delete an object after making sure it exists."""
    if not await client.exists(name):
        raise NotFoundError(f"The file {name!r} does not exist")

    await client.delete(name)
    logger.info("Deleted %r", name)


async def run_list(client: ObjectStoreClient, prefix: str | None = None) -> list[ObjectInfo]:
    objects = await client.list_objects(prefix)
    print_listing(objects)
    return objects


def print_listing(objects: list[ObjectInfo]):
    """
    Print objects as a two-column table.

    Args:
        objects: Listing returned by the store
    """
    if not objects:
        print(f"{BOLD_WHITE}No files found{CLEAR_COLOR}")
        return

    print(f"{BOLD_WHITE}{'Key':<40} {'Size':>12}{CLEAR_COLOR}")
    for item in objects:
        print(f"{item.key:<40} {format_size(item.size):>12}")


def display_final_stats(summary: TransferSummary, operation: str):
    """
    Display final transfer statistics.

    Args:
        summary: Statistics of the finished transfer
        operation: "Upload" or "Download"
    """
    print(f"Total data transferred: {format_size(summary.total_bytes)}")
    print(f"Total time: {summary.total_time:.2f} seconds")
    print(f"Average {operation.lower()} speed: {format_speed(summary.average_speed)}")
