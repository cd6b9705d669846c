from __future__ import annotations

from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Mapping,
    Protocol,
    Sequence,
)

if TYPE_CHECKING:
    from ..domain.upload import CompletedPart, ProgressEvent, RecordingArtifact


class RecordingApiClient(Protocol):
    """Collaborator that issues upload destinations and accepts completed uploads."""

    async def start_multipart_upload(
        self, *, filename: str, file_size: int, content_type: str, auth_token: str
    ) -> str: ...

    async def generate_presigned_urls(
        self, *, filename: str, upload_id: str, file_size: int, auth_token: str
    ) -> list[str]: ...

    async def complete_multipart_upload(
        self,
        *,
        filename: str,
        upload_id: str,
        parts: Sequence["CompletedPart"],
        auth_token: str,
    ) -> Mapping[str, Any]: ...

    async def upload_direct(
        self, *, data: bytes, filename: str, content_type: str, auth_token: str
    ) -> Mapping[str, Any]: ...


class PartTransport(Protocol):
    async def put_part(
        self, destination: str, chunk: bytes, content_type: str
    ) -> str: ...


class RecordingStore(Protocol):
    def save(self, artifact: "RecordingArtifact", filename: str) -> Path: ...


ProgressObserver = Callable[["ProgressEvent"], None]
Sleeper = Callable[[float], Awaitable[None]]
