"""Error types raised by the transfer engine and the store client."""


class UdlError(Exception):
    """Base class for every error surfaced to the command line."""


class ConfigError(UdlError):
    """Missing or unreadable credential/URL configuration."""


class NotFoundError(UdlError):
    """The requested remote object does not exist."""


class AlreadyExistsError(UdlError):
    """The target exists and overwriting was not requested."""


class LocalFileError(UdlError):
    """Reading or writing a local file failed."""


class EmptyFileError(LocalFileError):
    """Zero-length files cannot be uploaded as a multipart object."""


class RequestFailedError(UdlError):
    """An HTTP request or its response stream could not be completed."""


class ConnectionFailedError(RequestFailedError):
    """The connection to the store failed."""


class ResponseParseError(UdlError):
    """The store answered 2xx with a body that does not match the contract."""


class HttpStatusError(UdlError):
    """The store answered with an unexpected status code."""

    def __init__(self, status_code: int, method: str, url: str, detail: str = ""):
        self.status_code = status_code
        self.method = method
        self.url = url
        self.detail = detail
        message = f"{method} {url} returned status {status_code}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class PartTransferError(UdlError):
    """A single part of a multipart upload failed."""

    def __init__(self, part_number: int, cause: BaseException):
        self.part_number = part_number
        self.cause = cause
        super().__init__(f"Error uploading part {part_number}: {cause}")
