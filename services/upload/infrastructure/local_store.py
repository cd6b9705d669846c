from __future__ import annotations

from pathlib import Path

from ..domain.upload import RecordingArtifact


class FilesystemRecordingStore:
    """Keeps a local copy of recordings that could not be uploaded."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    def save(self, artifact: RecordingArtifact, filename: str) -> Path:
        self._directory.mkdir(parents=True, exist_ok=True)
        target = self._directory / _safe_name(filename)
        stem, suffix = target.stem, target.suffix
        counter = 1
        while target.exists():
            target = self._directory / f"{stem}-{counter}{suffix}"
            counter += 1
        target.write_bytes(artifact.data)
        return target


def _safe_name(filename: str) -> str:
    safe_name = Path(filename or "").name
    if not safe_name:
        return "recording.webm"
    return safe_name.replace(" ", "_")
