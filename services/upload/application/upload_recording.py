from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from ..domain.errors import UploadError
from ..domain.upload import (
    DIRECT_UPLOAD_THRESHOLD_BYTES,
    RecordingArtifact,
    UploadState,
)
from .dto import UploadOutcome, UploadRecordingCommand
from .interfaces import ProgressObserver, RecordingApiClient, RecordingStore
from .part_uploader import PartUploader
from .upload_registry import UploadRegistry
from .upload_session import UploadSession

logger = logging.getLogger(__name__)


class UploadRecordingUseCase:
    """Uploads a finished recording and saves it locally if the upload fails."""

    def __init__(
        self,
        *,
        api: RecordingApiClient,
        part_uploader: PartUploader,
        registry: UploadRegistry,
        fallback_store: RecordingStore | None = None,
        direct_threshold_bytes: int = DIRECT_UPLOAD_THRESHOLD_BYTES,
        max_concurrent_parts: int = 1,
        observers: Iterable[ProgressObserver] = (),
    ) -> None:
        self._api = api
        self._part_uploader = part_uploader
        self._registry = registry
        self._fallback_store = fallback_store
        self._direct_threshold_bytes = direct_threshold_bytes
        self._max_concurrent_parts = max_concurrent_parts
        self._observers = list(observers)

    async def execute(
        self,
        command: UploadRecordingCommand,
        cancel_event: asyncio.Event | None = None,
    ) -> UploadOutcome:
        filename = command.filename or default_recording_filename()
        handle = self._registry.begin(filename, command.artifact.size)

        try:
            session = UploadSession(
                artifact=command.artifact,
                filename=filename,
                auth_token=command.auth_token,
                api=self._api,
                part_uploader=self._part_uploader,
                session_id=handle,
                direct_threshold_bytes=self._direct_threshold_bytes,
                max_concurrent_parts=self._max_concurrent_parts,
                observers=[self._registry.observer_for(handle), *self._observers],
                cancel_event=cancel_event,
            )
            result = await session.run()
        except UploadError as exc:
            saved_path = self._save_locally(command.artifact, filename)
            return UploadOutcome(
                success=False,
                handle=handle,
                filename=filename,
                error=exc.reason,
                saved_path=saved_path,
            )
        except (Exception, asyncio.CancelledError) as exc:
            self._mark_failed(handle, exc)
            self._save_locally(command.artifact, filename)
            raise

        return UploadOutcome(
            success=True, handle=handle, filename=filename, result=result
        )

    def _mark_failed(self, handle: str, exc: BaseException) -> None:
        record = self._registry.get(handle)
        if record is not None and not record.state.is_terminal:
            self._registry.update_progress(
                handle,
                record.percent,
                f"Upload failed: {exc}",
                UploadState.FAILED,
            )

    def _save_locally(
        self, artifact: RecordingArtifact, filename: str
    ) -> Optional[Path]:
        if self._fallback_store is None:
            return None
        try:
            path = self._fallback_store.save(artifact, filename)
        except OSError as exc:
            logger.error("Failed to save %s locally: %s", filename, exc)
            return None
        logger.info("Saved %s locally to %s", filename, path)
        return path


def default_recording_filename(now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    stamp = moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return f"lecture-{stamp.replace(':', '-').replace('.', '-')}.webm"
