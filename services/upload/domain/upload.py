from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

DIRECT_UPLOAD_THRESHOLD_BYTES = 10 * 1024 * 1024


class UploadStrategy(str, Enum):
    DIRECT = "direct"
    MULTIPART = "multipart"


class UploadState(str, Enum):
    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.COMPLETED, UploadState.FAILED)


class PartState(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class RecordingArtifact:
    data: bytes
    content_type: str = "video/webm"

    @property
    def size(self) -> int:
        return len(self.data)

    def read_range(self, byte_range: "ByteRange") -> bytes:
        return bytes(memoryview(self.data)[byte_range.start : byte_range.end])


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass
class PartTask:
    part_number: int
    byte_range: ByteRange
    destination: str
    confirmation_tag: Optional[str] = None
    attempt_count: int = 0
    state: PartState = PartState.PENDING

    def confirm(self, tag: str) -> None:
        if self.state is PartState.CONFIRMED:
            raise ValueError(f"Part {self.part_number} is already confirmed")
        self.confirmation_tag = tag
        self.state = PartState.CONFIRMED


@dataclass(frozen=True)
class CompletedPart:
    part_number: int
    confirmation_tag: str


@dataclass(frozen=True)
class UploadResult:
    session_id: str
    filename: str
    strategy: UploadStrategy
    upload_id: Optional[str]
    parts: list[CompletedPart]
    response: Mapping[str, Any]


@dataclass(frozen=True)
class ProgressEvent:
    session_id: str
    filename: str
    percent: float
    status: str
    state: UploadState


@dataclass
class UploadProgress:
    handle: str
    filename: str
    size: int
    started_at: datetime
    updated_at: datetime
    percent: float = 0.0
    status: str = "Pending"
    state: UploadState = UploadState.PLANNING


def choose_strategy(
    size: int, threshold: int = DIRECT_UPLOAD_THRESHOLD_BYTES
) -> UploadStrategy:
    if size < threshold:
        return UploadStrategy.DIRECT
    return UploadStrategy.MULTIPART
