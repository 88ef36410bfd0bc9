import logging
from pathlib import Path

import aiofiles

from udl.client import ObjectStoreClient
from udl.errors import AlreadyExistsError, LocalFileError
from udl.utils import ProgressTracker

logger = logging.getLogger(__name__)


class DownloadStreamer:
    """Stream a remote object into a local file as a single sequential consumer."""

    def __init__(
        self,
        client: ObjectStoreClient,
        progress: ProgressTracker | None = None,
    ):
        """
        Initialize the streamer.

        Args:
            client: ObjectStoreClient instance
            progress: Tracker to report into; a fresh one is created if omitted
        """
        self.client = client
        self.progress = progress if progress is not None else ProgressTracker()

    async def download(self, name: str, destination, overwrite: bool = False) -> int:
        """
        Download ``name`` into ``destination``.

        The destination is only created once the store has answered 2xx.
        A failure mid-stream leaves the partial file on disk.

        Args:
            name: Remote object name
            destination: Local path to write to
            overwrite: Replace the destination if it already exists

        Returns:
            Number of bytes written
        """
        destination = Path(destination)
        if not overwrite and destination.exists():
            raise AlreadyExistsError(
                f"A file at {str(destination)!r} already exists, not overwriting without --force"
            )

        async with self.client.download(name) as response:
            content_length = response.headers.get("Content-Length")
            if content_length and content_length.isdigit():
                self.progress.total_bytes = int(content_length)

            logger.info("Downloading %s to %s", name, destination)
            written = 0
            try:
                async with aiofiles.open(destination, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        await f.write(chunk)
                        written += len(chunk)
                        await self.progress.update(len(chunk))
            except OSError as exc:
                raise LocalFileError(f"Failed writing {str(destination)!r}: {exc}") from exc

        logger.info("Download complete")

        return written

