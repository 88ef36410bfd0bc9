import asyncio
import re
import sys
import time
from collections.abc import Callable

from udl.constants import DEFAULT_UPDATE_INTERVAL
from udl.structs import ByteRange, TransferSummary

ProgressObserver = Callable[[int, int], None]


def split_ranges(length: int, chunk_size: int) -> list[ByteRange]:
    """
    Split a byte length into contiguous ranges of at most ``chunk_size``.

    Args:
        length: Total number of bytes
        chunk_size: Maximum size of each range in bytes

    Returns:
        Ordered list of half-open ranges tiling ``[0, length)``; the final
        range may be shorter than ``chunk_size``
    """
    if chunk_size <= 0:
        raise ValueError(f"Chunk size must be positive, got {chunk_size}")
    if length < 0:
        raise ValueError(f"Length must not be negative, got {length}")

    ranges = []
    for start in range(0, length, chunk_size):
        ranges.append(ByteRange(start, min(start + chunk_size, length)))

    return ranges


class ProgressTracker:
    """Byte counter shared by every transfer unit of one operation."""

    def __init__(self, total_bytes: int = 0, total_parts: int = 0):
        """
        Initialize the tracker.

        Args:
            total_bytes: Expected size of the transfer, 0 when unknown
            total_parts: Number of parts in the transfer, 0 for streams
        """
        self.total_bytes = total_bytes
        self.total_parts = total_parts
        self.completed_parts = 0
        self.lock = asyncio.Lock()
        self._transferred = 0
        self._observers: list[ProgressObserver] = []

    @property
    def transferred(self) -> int:
        """Bytes transferred so far; never waits on writers."""
        return self._transferred

    def subscribe(self, observer: ProgressObserver):
        """Register a callable invoked with ``(transferred, total_bytes)``."""
        self._observers.append(observer)

    async def update(self, nbytes: int):
        """
        Add transferred bytes.

        Args:
            nbytes: Number of bytes just transferred
        """
        if nbytes < 0:
            raise ValueError("Progress can only increase")

        async with self.lock:
            self._transferred += nbytes
            transferred = self._transferred

        self._notify(transferred)

    async def part_completed(self):
        """Increment the completed parts counter."""
        async with self.lock:
            self.completed_parts += 1
            transferred = self._transferred

        self._notify(transferred)

    def _notify(self, transferred: int):
        for observer in self._observers:
            observer(transferred, self.total_bytes)


class ProgressDisplay:
    """Render a tracker as a single self-overwriting status line."""

    def __init__(
        self,
        tracker: ProgressTracker,
        update_interval: float = DEFAULT_UPDATE_INTERVAL,
        speed_window_size: int = 5,
        stream=None,
    ):
        """
        Initialize the display.

        Args:
            tracker: ProgressTracker to observe
            update_interval: Minimum interval in seconds between redraws
            speed_window_size: Number of recent measurements to use for speed calculation
            stream: Text stream to draw on, stderr by default
        """
        self.tracker = tracker
        self.update_interval = update_interval
        self.speed_window_size = speed_window_size
        self.stream = stream if stream is not None else sys.stderr
        self.start_time = None
        self.last_update = 0
        self.last_transferred = 0
        self.current_speed = 0
        self.recent_speeds = []
        self.last_line_length = 0  # Track the length of the last printed line

    def start(self):
        """Start monitoring."""
        self.start_time = time.time()
        self.last_update = self.start_time
        self.tracker.subscribe(self.on_progress)

    def on_progress(self, transferred: int, total_bytes: int):
        current_time = time.time()
        if current_time - self.last_update < self.update_interval:
            return

        # Calculate speed based on data transferred since last update
        time_since_last_update = current_time - self.last_update
        if time_since_last_update > 0:
            recent_speed = (transferred - self.last_transferred) / time_since_last_update
            self.recent_speeds.append(recent_speed)

            # Keep only the most recent measurements
            if len(self.recent_speeds) > self.speed_window_size:
                self.recent_speeds = self.recent_speeds[-self.speed_window_size :]

            self.current_speed = sum(self.recent_speeds) / len(self.recent_speeds)

        self.last_transferred = transferred
        self.last_update = current_time
        self.display_progress(transferred, total_bytes)

    def display_progress(self, transferred: int, total_bytes: int):
        """Display current speed, completed parts and total data transferred."""
        progress_str = f"Current speed: {format_speed(self.current_speed)} | Transferred: {format_size(transferred)}"
        if total_bytes > 0:
            progress_str += f"/{format_size(total_bytes)}"
        if self.tracker.total_parts > 0:
            progress_str += (
                f" | Parts: {self.tracker.completed_parts}/{self.tracker.total_parts}"
            )

        # Pad with spaces to overwrite any remaining characters from previous line
        if len(progress_str) < self.last_line_length:
            progress_str += " " * (self.last_line_length - len(progress_str))

        self.last_line_length = len(progress_str)

        print(f"\r{progress_str}", end="", file=self.stream, flush=True)

    def finish(self):
        """Draw the final state and move to a fresh line."""
        self.display_progress(self.tracker.transferred, self.tracker.total_bytes)
        print(file=self.stream)


def summarize(tracker: ProgressTracker, start_time: float) -> TransferSummary:
    """
    Build final statistics for a finished transfer.

    Args:
        tracker: Tracker of the finished transfer
        start_time: Value of ``time.time()`` when the transfer started

    Returns:
        TransferSummary with total bytes, elapsed time and average speed
    """
    total_time = time.time() - start_time
    total_bytes = tracker.transferred
    average_speed = total_bytes / total_time if total_time > 0 else 0.0

    return TransferSummary(
        total_bytes=total_bytes,
        total_time=total_time,
        average_speed=average_speed,
    )


def format_size(size: int) -> str:
    """
    Format size in bytes to human-readable format.

    Args:
        size: Size in bytes

    Returns:
        Formatted size string
    """
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_index = 0

    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1

    return f"{size:.2f} {units[unit_index]}"


def format_speed(speed: float) -> str:
    """
    Format speed in bytes/second to human-readable format.

    Args:
        speed: Speed in bytes per second

    Returns:
        Formatted speed string
    """
    units = ["B/s", "KB/s", "MB/s", "GB/s"]
    unit_index = 0

    while speed >= 1024 and unit_index < len(units) - 1:
        speed /= 1024
        unit_index += 1

    return f"{speed:.2f} {units[unit_index]}"


def parse_size(size_str: str) -> int:
    """
    Parse a size string with optional suffix (KB, MB, GB) to bytes.

    Args:
        size_str: Size string (e.g., "5MB", "10KB", "1GB")

    Returns:
        Size in bytes
    """
    match = re.match(r"^(\d+)([KMG]B)?$", size_str.strip(), re.IGNORECASE)
    if not match:
        raise ValueError(
            f"Invalid size format: {size_str}. Expected format: NUMBER[KB|MB|GB]"
        )

    value, unit = match.groups()
    value = int(value)

    if unit:
        value *= {"KB": 1024, "MB": 1024**2, "GB": 1024**3}[unit.upper()]

    if value <= 0:
        raise ValueError(f"Size must be positive: {size_str}")

    return value
