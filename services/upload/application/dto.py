from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from ..domain.upload import RecordingArtifact, UploadResult


@dataclass(frozen=True)
class UploadRecordingCommand:
    artifact: RecordingArtifact
    auth_token: Optional[str]
    filename: Optional[str] = None


@dataclass(frozen=True)
class UploadOutcome:
    success: bool
    handle: str
    filename: str
    result: Optional[UploadResult] = None
    error: Optional[str] = None
    saved_path: Optional[Path] = None

    @property
    def response(self) -> Mapping[str, Any]:
        return self.result.response if self.result is not None else {}
