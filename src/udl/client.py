"""HTTP adapter for the remote object store."""

import logging
from collections.abc import AsyncIterable, AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import quote

import httpx

from udl.errors import (
    ConnectionFailedError,
    HttpStatusError,
    NotFoundError,
    RequestFailedError,
    ResponseParseError,
)
from udl.structs import ObjectInfo, PartResult, UploadSession

logger = logging.getLogger(__name__)


def _object_path(name: str, suffix: str = "") -> str:
    path = f"/objects/{quote(name, safe='')}"
    return f"{path}/{suffix}" if suffix else path


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return str(body)


def _raise_for_status(response: httpx.Response):
    if response.is_success:
        return
    raise HttpStatusError(
        response.status_code,
        response.request.method,
        str(response.request.url),
        _error_detail(response),
    )


def _parse_json(response: httpx.Response, what: str):
    try:
        return response.json()
    except ValueError as exc:
        raise ResponseParseError(f"Failed to parse {what} response: {exc}") from exc


class ObjectStoreClient:
    """
    Async client for the object store HTTP API.

    Every request carries the credential verbatim in the ``Authorization``
    header. Use as an async context manager so the underlying connection
    pool is closed.
    """

    def __init__(
        self,
        base_url: str,
        key: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: URL of the store, with or without a trailing slash
            key: Authentication credential
            transport: Optional httpx transport, used by tests
        """
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": key},
            timeout=httpx.Timeout(None),
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self):
        await self.client.__aenter__()
        return self

    async def __aexit__(self, *exc_info):
        await self.client.__aexit__(*exc_info)

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise ConnectionFailedError(
                f"{method} {self.base_url}{path} failed: {exc}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RequestFailedError(
                f"{method} {self.base_url}{path} failed: {exc}"
            ) from exc

    async def exists(self, name: str) -> bool:
        """
        Check whether an object exists.

        Only the status code is used: 404 means absent, any 2xx present.
        """
        response = await self._request(
            "GET", _object_path(name, "stats"), params={"key": name}
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return False
        _raise_for_status(response)
        return True

    async def start_upload(self, name: str) -> UploadSession:
        """Open a multipart upload session for ``name``."""
        response = await self._request(
            "POST", "/uploads/create", params={"key": name}
        )
        _raise_for_status(response)

        body = _parse_json(response, "start upload")
        try:
            return UploadSession(name=name, upload_id=str(body["uploadId"]))
        except (KeyError, TypeError) as exc:
            raise ResponseParseError(
                f"Malformed start upload response: {body!r}"
            ) from exc

    async def upload_part(
        self,
        session: UploadSession,
        part_number: int,
        content: AsyncIterable[bytes],
        content_length: int,
    ) -> PartResult:
        """
        Send one part of a multipart upload.

        Args:
            session: Session returned by ``start_upload``
            part_number: 1-based part number
            content: Async iterator producing exactly ``content_length`` bytes
            content_length: Size of the part in bytes

        Returns:
            PartResult carrying ``part_number`` and the etag from the store
        """
        response = await self._request(
            "POST",
            "/uploads/upload-part",
            params={
                "key": session.name,
                "uploadId": session.upload_id,
                "partNumber": str(part_number),
            },
            headers={"Content-Length": str(content_length)},
            content=content,
        )
        _raise_for_status(response)

        body = _parse_json(response, "upload part")
        try:
            etag = body["etag"]
        except (KeyError, TypeError) as exc:
            raise ResponseParseError(
                f"Malformed upload part response: {body!r}"
            ) from exc
        if not isinstance(etag, str) or not etag:
            raise ResponseParseError(f"No ETag received for part {part_number}")

        # The store echoes a part number; ours is authoritative.
        return PartResult(part_number=part_number, etag=etag)

    async def complete_upload(
        self, session: UploadSession, parts: list[PartResult]
    ):
        """
        Finalize a multipart upload.

        Args:
            session: Session returned by ``start_upload``
            parts: Parts sorted by part number

        Returns:
            Decoded JSON acknowledgement from the store
        """
        response = await self._request(
            "POST",
            "/uploads/complete",
            params={"key": session.name, "uploadId": session.upload_id},
            json=[part.to_wire() for part in parts],
        )
        _raise_for_status(response)

        return _parse_json(response, "complete upload")

    @asynccontextmanager
    async def download(self, name: str) -> AsyncIterator[httpx.Response]:
        """
        Open a streamed download of ``name``.

        The status is checked before the response is handed out, so the
        caller only ever sees a 2xx response.
        """
        path = _object_path(name, "download")
        try:
            async with self.client.stream(
                "GET", path, params={"key": name}
            ) as response:
                if response.status_code == httpx.codes.NOT_FOUND:
                    raise NotFoundError(f"The file {name!r} does not exist")
                if not response.is_success:
                    await response.aread()
                    _raise_for_status(response)
                yield response
        except httpx.TransportError as exc:
            raise ConnectionFailedError(
                f"GET {self.base_url}{path} failed: {exc}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RequestFailedError(
                f"GET {self.base_url}{path} failed: {exc}"
            ) from exc

    async def delete(self, name: str):
        response = await self._request("DELETE", _object_path(name))
        _raise_for_status(response)

    async def list_objects(self, prefix: str | None = None) -> list[ObjectInfo]:
        """List objects, optionally only those whose key starts with ``prefix``."""
        params = {"prefix": prefix} if prefix is not None else None
        response = await self._request("GET", "/objects", params=params)
        _raise_for_status(response)

        body = _parse_json(response, "list")
        try:
            return [
                ObjectInfo(key=str(item["key"]), size=int(item["size"]), etag=str(item["etag"]))
                for item in body
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise ResponseParseError(f"Malformed list response: {body!r}") from exc
