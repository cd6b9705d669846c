from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

from ..domain.errors import (
    AuthError,
    CompletionError,
    SessionPlanningError,
    UploadCancelled,
    UploadError,
)
from ..domain.upload import (
    DIRECT_UPLOAD_THRESHOLD_BYTES,
    CompletedPart,
    PartState,
    PartTask,
    ProgressEvent,
    RecordingArtifact,
    UploadResult,
    UploadState,
    UploadStrategy,
    choose_strategy,
)
from .chunk_slicer import slice_ranges
from .interfaces import ProgressObserver, RecordingApiClient
from .part_uploader import PartUploader

logger = logging.getLogger(__name__)

MISSING_TOKEN_REASON = "No authentication token available. Please login first."

MULTIPART_PARTS_START = 20.0
MULTIPART_PARTS_SPAN = 70.0


class UploadSession:
    """One logical upload of a recording, from planning to a terminal state.

    Artifacts below the direct threshold go up in a single request. Larger ones
    use a multipart upload whose part count is dictated by the number of
    destination URLs the API hands back.
    """

    def __init__(
        self,
        *,
        artifact: RecordingArtifact,
        filename: str,
        auth_token: str | None,
        api: RecordingApiClient,
        part_uploader: PartUploader,
        session_id: str | None = None,
        direct_threshold_bytes: int = DIRECT_UPLOAD_THRESHOLD_BYTES,
        max_concurrent_parts: int = 1,
        observers: Iterable[ProgressObserver] = (),
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        if max_concurrent_parts < 1:
            raise ValueError("max_concurrent_parts must be at least 1")
        self.id = session_id or uuid.uuid4().hex
        self.filename = filename
        self.total_size = artifact.size
        self.strategy = choose_strategy(artifact.size, direct_threshold_bytes)
        self.state = UploadState.PLANNING
        self.created_at = datetime.now(timezone.utc)
        self.parts: List[PartTask] = []
        self.upload_id: Optional[str] = None
        self.failure: Optional[UploadError] = None
        self.percent = 0.0

        self._artifact = artifact
        self._auth_token = auth_token
        self._api = api
        self._part_uploader = part_uploader
        self._max_concurrent_parts = max_concurrent_parts
        self._observers = list(observers)
        self._cancel_event = cancel_event
        self._confirmed = 0
        self._started = False

    async def run(self) -> UploadResult:
        if self._started:
            raise RuntimeError(f"Upload session {self.id} has already run")
        self._started = True

        logger.info(
            "Uploading %s (%s bytes) using %s strategy",
            self.filename,
            self.total_size,
            self.strategy.value,
        )
        try:
            if not self._auth_token:
                raise AuthError(MISSING_TOKEN_REASON)
            if self.strategy is UploadStrategy.DIRECT:
                response = await self._run_direct()
                parts: List[CompletedPart] = []
            else:
                parts, response = await self._run_multipart()
        except UploadError as exc:
            self._fail(exc)
            raise
        except asyncio.CancelledError:
            self._fail(UploadCancelled("Upload task was cancelled"))
            raise
        except Exception as exc:
            self._fail(UploadError(f"Unexpected upload failure: {exc}"))
            raise

        self._transition(UploadState.COMPLETED, 100.0, "Upload complete")
        return UploadResult(
            session_id=self.id,
            filename=self.filename,
            strategy=self.strategy,
            upload_id=self.upload_id,
            parts=parts,
            response=response,
        )

    async def _run_direct(self) -> Mapping[str, Any]:
        # Direct uploads stay in Planning until the single request settles.
        self._notify(10.0, "Preparing upload...")
        self._notify(50.0, "Uploading - 50%")
        return await self._api.upload_direct(
            data=self._artifact.data,
            filename=self.filename,
            content_type=self._artifact.content_type,
            auth_token=self._auth_token,
        )

    async def _run_multipart(self) -> tuple[List[CompletedPart], Mapping[str, Any]]:
        await self._plan()

        self._transition(
            UploadState.IN_PROGRESS, MULTIPART_PARTS_START, "Uploading - 0%"
        )
        if self._max_concurrent_parts == 1:
            for task in self.parts:
                await self._upload_part(task)
        else:
            await self._upload_parts_concurrently()

        self._transition(UploadState.FINALIZING, 90.0, "Completing upload...")
        return await self._finalize()

    async def _plan(self) -> None:
        self._notify(0.0, "Starting multipart upload...")
        try:
            upload_id = await self._api.start_multipart_upload(
                filename=self.filename,
                file_size=self.total_size,
                content_type=self._artifact.content_type,
                auth_token=self._auth_token,
            )
            if not upload_id:
                raise SessionPlanningError("Upload service returned no upload id")
            self.upload_id = upload_id

            self._notify(10.0, "Generating upload URLs...")
            destinations = await self._api.generate_presigned_urls(
                filename=self.filename,
                upload_id=upload_id,
                file_size=self.total_size,
                auth_token=self._auth_token,
            )
        except (AuthError, SessionPlanningError):
            raise
        except UploadError as exc:
            raise SessionPlanningError(
                f"Failed to plan multipart upload: {exc.reason}"
            ) from exc

        if not destinations:
            raise SessionPlanningError("Upload service returned no presigned URLs")

        ranges = slice_ranges(self.total_size, len(destinations))
        self.parts = [
            PartTask(part_number=index + 1, byte_range=byte_range, destination=url)
            for index, (byte_range, url) in enumerate(zip(ranges, destinations))
        ]
        logger.info(
            "Planned %s parts of up to %s bytes for upload %s",
            len(self.parts),
            ranges[0].length,
            upload_id,
        )

    async def _upload_parts_concurrently(self) -> None:
        semaphore = asyncio.Semaphore(self._max_concurrent_parts)

        async def bounded(task: PartTask) -> None:
            async with semaphore:
                await self._upload_part(task)

        pending = [asyncio.ensure_future(bounded(task)) for task in self.parts]
        try:
            await asyncio.gather(*pending)
        except BaseException:
            for future in pending:
                future.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise

    async def _upload_part(self, task: PartTask) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise UploadCancelled(
                f"Upload cancelled before part {task.part_number} of {len(self.parts)}"
            )
        chunk = self._artifact.read_range(task.byte_range)
        await self._part_uploader.upload(task, chunk, self._artifact.content_type)

        self._confirmed += 1
        percent = MULTIPART_PARTS_START + MULTIPART_PARTS_SPAN * (
            self._confirmed / len(self.parts)
        )
        done = round(100 * self._confirmed / len(self.parts))
        self._notify(percent, f"Uploading - {done}%")

    async def _finalize(self) -> tuple[List[CompletedPart], Mapping[str, Any]]:
        unconfirmed = [
            task.part_number
            for task in self.parts
            if task.state is not PartState.CONFIRMED
        ]
        if unconfirmed:
            raise CompletionError(f"Parts {unconfirmed} are not confirmed")

        parts = sorted(
            (
                CompletedPart(
                    part_number=task.part_number,
                    confirmation_tag=task.confirmation_tag,
                )
                for task in self.parts
            ),
            key=lambda part: part.part_number,
        )
        try:
            response = await self._api.complete_multipart_upload(
                filename=self.filename,
                upload_id=self.upload_id,
                parts=parts,
                auth_token=self._auth_token,
            )
        except AuthError:
            raise
        except UploadError as exc:
            raise CompletionError(
                f"Failed to complete multipart upload: {exc.reason}"
            ) from exc
        return parts, response

    def _transition(self, state: UploadState, percent: float, status: str) -> None:
        logger.info("Upload %s: %s -> %s", self.id, self.state.value, state.value)
        self.state = state
        self._notify(percent, status)

    def _fail(self, error: UploadError) -> None:
        self.failure = error
        logger.error(
            "Upload %s of %s failed: %s", self.id, self.filename, error.reason
        )
        self._transition(
            UploadState.FAILED, self.percent, f"Upload failed: {error.reason}"
        )

    def _notify(self, percent: float, status: str) -> None:
        self.percent = percent
        event = ProgressEvent(
            session_id=self.id,
            filename=self.filename,
            percent=percent,
            status=status,
            state=self.state,
        )
        for observer in self._observers:
            try:
                observer(event)
            except Exception:
                logger.exception("Progress observer failed for upload %s", self.id)
