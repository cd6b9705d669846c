from __future__ import annotations

import asyncio
import logging

from ..domain.errors import RETRYABLE_ERRORS, PartUploadFailed
from ..domain.upload import PartState, PartTask
from .interfaces import PartTransport, Sleeper

logger = logging.getLogger(__name__)


class PartUploader:
    """Uploads one part to its destination, retrying transient failures.

    A part gets ``1 + max_retries`` attempts. Before retry ``n`` the uploader waits
    ``base_delay_seconds * n``.
    """

    def __init__(
        self,
        *,
        transport: PartTransport,
        max_retries: int = 3,
        base_delay_seconds: float = 2.0,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._max_retries = max_retries
        self._base_delay_seconds = base_delay_seconds
        self._sleep = sleep

    async def upload(self, task: PartTask, chunk: bytes, content_type: str) -> str:
        task.state = PartState.UPLOADING
        last_error = None
        for attempt in range(self._max_retries + 1):
            if attempt:
                delay = self._base_delay_seconds * attempt
                logger.warning(
                    "Retrying part %s (attempt %s/%s) in %.1fs: %s",
                    task.part_number,
                    attempt,
                    self._max_retries,
                    delay,
                    last_error,
                )
                await self._sleep(delay)

            task.attempt_count += 1
            try:
                tag = await self._transport.put_part(
                    task.destination, chunk, content_type
                )
            except RETRYABLE_ERRORS as exc:
                last_error = exc
                continue

            task.confirm(tag)
            logger.info(
                "Part %s uploaded (%s bytes)", task.part_number, task.byte_range.length
            )
            return tag

        task.state = PartState.FAILED
        logger.error(
            "Part %s failed after %s attempts", task.part_number, task.attempt_count
        )
        raise PartUploadFailed(
            task.part_number, attempts=task.attempt_count, last_error=last_error
        )
