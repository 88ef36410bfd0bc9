from typing import NamedTuple


class ByteRange(NamedTuple):
    """Half-open byte interval ``[start, end)``."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


class UploadSession(NamedTuple):
    name: str
    upload_id: str


class PartResult(NamedTuple):
    part_number: int
    etag: str

    def to_wire(self) -> dict:
        return {"partNumber": self.part_number, "etag": self.etag}


class ObjectInfo(NamedTuple):
    key: str
    size: int
    etag: str


class TransferSummary(NamedTuple):
    total_bytes: int
    total_time: float
    average_speed: float
