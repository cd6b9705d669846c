from __future__ import annotations

import asyncio

import pytest

from services.upload.application.part_uploader import PartUploader
from services.upload.domain.errors import TransportError


class FakeRecordingApi:
    def __init__(self, destinations: list[str] | None = None) -> None:
        self.destinations = destinations if destinations is not None else []
        self.calls: list[tuple[str, dict]] = []
        self.start_error: Exception | None = None
        self.presign_error: Exception | None = None
        self.complete_error: Exception | None = None
        self.direct_error: Exception | None = None

    async def start_multipart_upload(self, **kwargs) -> str:
        self.calls.append(("start", kwargs))
        if self.start_error:
            raise self.start_error
        return "upload-123"

    async def generate_presigned_urls(self, **kwargs) -> list[str]:
        self.calls.append(("presign", kwargs))
        if self.presign_error:
            raise self.presign_error
        return list(self.destinations)

    async def complete_multipart_upload(self, **kwargs):
        self.calls.append(("complete", kwargs))
        if self.complete_error:
            raise self.complete_error
        return {"message": "Upload completed successfully", "id": "rec-1"}

    async def upload_direct(self, **kwargs):
        self.calls.append(("direct", kwargs))
        if self.direct_error:
            raise self.direct_error
        return {"message": "Upload successful"}

    def called(self, name: str) -> list[dict]:
        return [kwargs for call, kwargs in self.calls if call == name]


class FakePartTransport:
    """Confirms every part with tag ``etag-<url>`` unless told to fail it."""

    def __init__(self) -> None:
        self.puts: list[tuple[str, bytes, str]] = []
        self.failures: dict[str, int] = {}

    def fail(self, destination: str, times: int = 10**6) -> None:
        self.failures[destination] = times

    async def put_part(self, destination: str, chunk: bytes, content_type: str) -> str:
        self.puts.append((destination, chunk, content_type))
        await asyncio.sleep(0)
        remaining = self.failures.get(destination, 0)
        if remaining:
            self.failures[destination] = remaining - 1
            raise TransportError(f"connection reset for {destination}")
        return f"etag-{destination}"


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def transport() -> FakePartTransport:
    return FakePartTransport()


@pytest.fixture
def part_uploader(transport, sleeper) -> PartUploader:
    return PartUploader(transport=transport, sleep=sleeper)


@pytest.fixture
def make_api():
    return FakeRecordingApi
