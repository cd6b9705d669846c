from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..domain.upload import ProgressEvent

LOGGER = logging.getLogger(__name__)


class LoggingProgressObserver:
    def __call__(self, event: ProgressEvent) -> None:
        LOGGER.info(
            "[%s] %s: %.0f%% %s",
            event.session_id,
            event.filename,
            event.percent,
            event.status,
        )


class RedisProgressPublisher:
    """Publishes upload progress as JSON on a Redis pub/sub channel.

    Each event is published from a background task so a slow or unreachable
    Redis never holds up the upload. Call ``aclose`` before the event loop
    stops to flush pending publishes.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int,
        db: int,
        channel: str,
        socket_timeout_seconds: float = 2.0,
        redis: aioredis.Redis | None = None,
    ) -> None:
        self._redis = redis or aioredis.Redis(
            host=host,
            port=port,
            db=db,
            socket_connect_timeout=socket_timeout_seconds,
            socket_timeout=socket_timeout_seconds,
        )
        self._channel = channel
        self._pending: set[asyncio.Task] = set()

    def __call__(self, event: ProgressEvent) -> None:
        payload: dict[str, Any] = {
            "type": "upload_progress",
            "sessionId": event.session_id,
            "filename": event.filename,
            "progress": event.percent,
            "status": event.status,
            "state": event.state.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        task = asyncio.get_running_loop().create_task(
            self._publish(event.session_id, json.dumps(payload))
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def aclose(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._redis.aclose()

    async def _publish(self, session_id: str, message: str) -> None:
        try:
            await self._redis.publish(self._channel, message)
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            LOGGER.error(
                "Failed to publish progress for upload %s: %s", session_id, exc
            )
