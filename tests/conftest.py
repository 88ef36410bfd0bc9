"""In-memory object store served through httpx.MockTransport."""
import asyncio
import json
from urllib.parse import unquote

import httpx
import pytest

from udl.client import ObjectStoreClient

BASE_URL = "http://store.test"
KEY = "secret-key"


class FakeStore:
    def __init__(self, key=KEY):
        self.key = key
        self.objects = {}
        self.uploads = {}
        self.calls = []
        self.completions = []
        self.part_order = []
        self.fail_parts = set()
        self.part_delays = {}
        self.echo_part_number = None
        self.stat_status = None
        self.in_flight = 0
        self.max_in_flight = 0
        self._next_upload = 0

    def routes_called(self):
        return [route for _, route in self.calls]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        route = self._route(request)
        self.calls.append((request.method, route))

        if request.headers.get("Authorization") != self.key:
            return httpx.Response(401, json={"error": "Unauthorized"})

        if route == "stats":
            if self.stat_status is not None:
                return httpx.Response(self.stat_status, json={"error": "boom"})
            data = self.objects.get(request.url.params["key"])
            if data is None:
                return httpx.Response(404, json={"error": "Not found"})
            return httpx.Response(200, json={"size": len(data), "etag": f"etag-{len(data)}"})

        if route == "create":
            self._next_upload += 1
            upload_id = f"upload-{self._next_upload}"
            self.uploads[upload_id] = {"key": request.url.params["key"], "parts": {}}
            return httpx.Response(
                200, json={"key": request.url.params["key"], "uploadId": upload_id}
            )

        if route == "upload-part":
            return await self._upload_part(request)

        if route == "complete":
            parts = json.loads(request.content)
            self.completions.append(parts)
            if not parts:
                return httpx.Response(400, json={"error": "No parts"})
            upload = self.uploads.pop(request.url.params["uploadId"])
            self.objects[upload["key"]] = b"".join(
                upload["parts"][part["partNumber"]] for part in parts
            )
            return httpx.Response(200, json={"key": upload["key"]})

        if route == "download":
            data = self.objects.get(request.url.params["key"])
            if data is None:
                return httpx.Response(404, json={"error": "Not found"})
            return httpx.Response(200, content=data)

        if route == "delete":
            name = unquote(path[len("/objects/"):])
            self.objects.pop(name, None)
            return httpx.Response(204)

        if route == "list":
            prefix = request.url.params.get("prefix", "")
            return httpx.Response(
                200,
                json=[
                    {"key": key, "size": len(data), "etag": f"etag-{len(data)}"}
                    for key, data in sorted(self.objects.items())
                    if key.startswith(prefix)
                ],
            )

        return httpx.Response(404, json={"error": "Not found"})

    def _route(self, request):
        path = request.url.path
        if path.startswith("/uploads/"):
            return path[len("/uploads/"):]
        if path == "/objects":
            return "list"
        if request.method == "DELETE":
            return "delete"
        return path.rsplit("/", 1)[-1]

    async def _upload_part(self, request):
        part_number = int(request.url.params["partNumber"])
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.part_delays.get(part_number, 0.01))
        finally:
            self.in_flight -= 1

        self.part_order.append(part_number)
        if part_number in self.fail_parts:
            return httpx.Response(500, json={"error": "Internal server error"})

        upload = self.uploads[request.url.params["uploadId"]]
        upload["parts"][part_number] = request.content
        echoed = self.echo_part_number or part_number
        return httpx.Response(
            200, json={"partNumber": echoed, "etag": f"etag-part-{part_number}"}
        )


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def transport(store):
    return httpx.MockTransport(store.handler)


@pytest.fixture
def client(transport):
    return ObjectStoreClient(BASE_URL, KEY, transport=transport)


@pytest.fixture
def make_file(tmp_path):
    def _make_file(size, name="data.bin"):
        path = tmp_path / name
        path.write_bytes(bytes(i % 251 for i in range(size)))
        return path

    return _make_file
