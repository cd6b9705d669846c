from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import replace
from datetime import datetime, timezone
from typing import List

from ..domain.upload import ProgressEvent, UploadProgress, UploadState

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 2


class UploadRegistry:
    """In-memory progress records for recent uploads.

    Only the ``capacity`` most recently begun uploads are kept. Older records are
    evicted in insertion order whether or not they have finished.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("Registry capacity must be at least 1")
        self._capacity = capacity
        self._records: OrderedDict[str, UploadProgress] = OrderedDict()

    def begin(self, filename: str, size: int) -> str:
        handle = uuid.uuid4().hex
        now = datetime.now(timezone.utc)
        self._records[handle] = UploadProgress(
            handle=handle,
            filename=filename,
            size=size,
            started_at=now,
            updated_at=now,
        )
        while len(self._records) > self._capacity:
            evicted, _ = self._records.popitem(last=False)
            logger.debug("Evicted upload record %s", evicted)
        return handle

    def update_progress(
        self,
        handle: str,
        percent: float,
        status: str,
        state: UploadState | None = None,
    ) -> bool:
        record = self._records.get(handle)
        if record is None:
            logger.debug("Ignoring progress for unknown upload %s", handle)
            return False
        record.percent = min(max(percent, 0.0), 100.0)
        record.status = status
        if state is not None:
            record.state = state
        record.updated_at = datetime.now(timezone.utc)
        return True

    def observer_for(self, handle: str):
        def observe(event: ProgressEvent) -> None:
            self.update_progress(handle, event.percent, event.status, event.state)

        return observe

    def get(self, handle: str) -> UploadProgress | None:
        record = self._records.get(handle)
        return replace(record) if record is not None else None

    def records(self) -> List[UploadProgress]:
        return [replace(record) for record in self._records.values()]

    def __len__(self) -> int:
        return len(self._records)
