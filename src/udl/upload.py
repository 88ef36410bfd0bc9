import asyncio
import enum
import logging
from contextlib import aclosing
from pathlib import Path

import aiofiles
import httpx

from udl.client import ObjectStoreClient
from udl.constants import DEFAULT_PARALLEL_PARTS, DEFAULT_PART_SIZE, READ_BLOCK_SIZE
from udl.errors import (
    AlreadyExistsError,
    EmptyFileError,
    LocalFileError,
    PartTransferError,
    UdlError,
)
from udl.structs import ByteRange, PartResult, UploadSession
from udl.utils import ProgressTracker, split_ranges

logger = logging.getLogger(__name__)


class UploadState(enum.Enum):
    CHECK_EXISTING = "check-existing"
    START_UPLOAD = "start-upload"
    FAN_OUT_PARTS = "fan-out-parts"
    COLLECT_RESULTS = "collect-results"
    COMPLETE_UPLOAD = "complete-upload"
    DONE = "done"
    ABORTED = "aborted"


class PartUploader:
    """Upload one byte range of a local file as a numbered part."""

    def __init__(
        self,
        *,
        client: ObjectStoreClient,
        path: Path,
        session: UploadSession,
        part_number: int,
        byte_range: ByteRange,
        progress: ProgressTracker,
    ):
        self.client = client
        self.path = path
        self.session = session
        self.part_number = part_number
        self.byte_range = byte_range
        self.progress = progress

    async def read_range(self):
        """
        Yield the bytes of the assigned range, never reading past its end.

        Raises:
            LocalFileError: If the file ends before the range does
        """
        remaining = self.byte_range.length
        async with aiofiles.open(self.path, "rb") as f:
            await f.seek(self.byte_range.start)
            while remaining > 0:
                block = await f.read(min(READ_BLOCK_SIZE, remaining))
                if not block:
                    raise LocalFileError(
                        f"{self.path} ended {remaining} bytes before the end of part {self.part_number}"
                    )
                remaining -= len(block)
                yield block

    async def upload(self) -> PartResult:
        """
        Send the part once.

        Returns:
            PartResult with this uploader's part number

        Raises:
            PartTransferError: On any network, status, parsing or read failure
        """
        logger.debug(
            "Uploading part %d (bytes %d-%d)",
            self.part_number,
            self.byte_range.start,
            self.byte_range.end,
        )
        try:
            async with aclosing(self.read_range()) as body:
                result = await self.client.upload_part(
                    self.session,
                    self.part_number,
                    body,
                    self.byte_range.length,
                )
        except (UdlError, httpx.HTTPError, OSError) as exc:
            raise PartTransferError(self.part_number, exc) from exc

        # Only count bytes the store has acknowledged
        await self.progress.update(self.byte_range.length)
        await self.progress.part_completed()
        logger.debug("Uploaded part %d, etag %s", self.part_number, result.etag)

        return result


class UploadCoordinator:
    """Drive a whole multipart upload with a fixed bound on parallel parts."""

    def __init__(
        self,
        client: ObjectStoreClient,
        *,
        part_size: int = DEFAULT_PART_SIZE,
        max_concurrent: int = DEFAULT_PARALLEL_PARTS,
        progress: ProgressTracker | None = None,
    ):
        """
        Initialize the coordinator.

        Args:
            client: ObjectStoreClient instance
            part_size: Size of each part in bytes
            max_concurrent: Maximum number of parts in flight, guarded by Semaphore
            progress: Tracker to report into; a fresh one is created if omitted
        """
        if part_size <= 0:
            raise ValueError(f"Part size must be positive, got {part_size}")
        if max_concurrent < 1:
            raise ValueError(f"Parallel parts must be at least 1, got {max_concurrent}")

        self.client = client
        self.part_size = part_size
        self.max_concurrent = max_concurrent
        self.semaphore = asyncio.Semaphore(max_concurrent)
        self.progress = progress if progress is not None else ProgressTracker()
        self.state = UploadState.CHECK_EXISTING
        self.session: UploadSession | None = None

    async def upload(self, name: str, path, overwrite: bool = False):
        """
        Upload ``path`` as the remote object ``name``.

        Args:
            name: Remote object name
            path: Local file to upload
            overwrite: Replace the remote object if it already exists

        Returns:
            Decoded acknowledgement of the completion call
        """
        path = Path(path)
        try:
            size = self._validate_file(path)

            self.state = UploadState.CHECK_EXISTING
            if not overwrite and await self.client.exists(name):
                raise AlreadyExistsError(
                    f"A file with the name {name!r} already exists, not overwriting without --force"
                )

            self.state = UploadState.START_UPLOAD
            self.session = await self.client.start_upload(name)
            logger.info("Starting upload of %s (upload id %s)", path, self.session.upload_id)

            self.state = UploadState.FAN_OUT_PARTS
            ranges = split_ranges(size, self.part_size)
            self.progress.total_bytes = size
            self.progress.total_parts = len(ranges)
            logger.info(
                "Uploading %d parts, %d at a time", len(ranges), self.max_concurrent
            )
            parts = await self.upload_all(path, ranges)

            self.state = UploadState.COMPLETE_UPLOAD
            response = await self.client.complete_upload(self.session, parts)
        except BaseException:
            self.state = UploadState.ABORTED
            raise

        self.state = UploadState.DONE
        logger.info("Upload complete")

        return response

    def _validate_file(self, path: Path) -> int:
        try:
            meta = path.stat()
        except FileNotFoundError:
            raise LocalFileError(f"The file at {str(path)!r} does not exist") from None
        except OSError as exc:
            raise LocalFileError(f"Cannot access {str(path)!r}: {exc}") from exc

        if not path.is_file():
            raise LocalFileError(f"The item at {str(path)!r} is not a file")
        if meta.st_size == 0:
            raise EmptyFileError(f"The file at {str(path)!r} is empty, nothing to upload")

        return meta.st_size

    async def upload_part(
        self, path: Path, part_number: int, byte_range: ByteRange
    ) -> PartResult:
        """Upload a single part once a semaphore slot is free."""
        async with self.semaphore:
            uploader = PartUploader(
                client=self.client,
                path=path,
                session=self.session,
                part_number=part_number,
                byte_range=byte_range,
                progress=self.progress,
            )
            return await uploader.upload()

    async def upload_all(self, path: Path, ranges: list[ByteRange]) -> list[PartResult]:
        """
        Upload all parts in parallel with concurrency control.

        Failed parts do not cancel their siblings: every task is awaited
        before the earliest failure is raised.

        Returns:
            Part results sorted by part number
        """
        tasks = [
            asyncio.create_task(self.upload_part(path, part_number, byte_range))
            for part_number, byte_range in enumerate(ranges, start=1)
        ]

        self.state = UploadState.COLLECT_RESULTS
        results = []
        failures = []
        for next_done in asyncio.as_completed(tasks):
            try:
                results.append(await next_done)
            except PartTransferError as exc:
                logger.debug("Part %d failed: %s", exc.part_number, exc.cause)
                failures.append(exc)

        if failures:
            if len(failures) > 1:
                logger.info("%d of %d parts failed", len(failures), len(tasks))
            raise failures[0]

        return sorted(results, key=lambda part: part.part_number)

