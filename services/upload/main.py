from __future__ import annotations

import httpx
from fastapi import FastAPI

from .api.status_routes import create_status_router
from .application.interfaces import ProgressObserver, RecordingApiClient
from .application.part_uploader import PartUploader
from .application.upload_recording import UploadRecordingUseCase
from .application.upload_registry import UploadRegistry
from .config import UploadConfig
from .infrastructure.events import LoggingProgressObserver, RedisProgressPublisher
from .infrastructure.http_api import HttpPartTransport, HttpRecordingApiClient
from .infrastructure.local_store import FilesystemRecordingStore
from .infrastructure.s3_uploads import S3RecordingUploadClient, create_s3_client


def build_app(registry: UploadRegistry) -> FastAPI:
    app = FastAPI()

    @app.get("/ping")
    async def ping():
        return {"message": "pong"}

    app.include_router(create_status_router(registry))
    return app


def build_api_client(
    cfg: UploadConfig, http_client: httpx.AsyncClient
) -> RecordingApiClient:
    if cfg.backend == "s3":
        s3_client = create_s3_client(
            endpoint_url=cfg.storage_endpoint_url,
            region_name=cfg.storage_region,
            access_key=cfg.storage_access_key,
            secret_key=cfg.storage_secret_key,
        )
        return S3RecordingUploadClient(
            client=s3_client,
            bucket_name=cfg.storage_bucket,
            object_prefix=cfg.storage_object_prefix,
            part_size_bytes=cfg.storage_part_size_bytes,
        )
    return HttpRecordingApiClient(
        client=http_client,
        base_url=cfg.api_base_url,
        metadata_timeout_seconds=cfg.metadata_timeout_seconds,
        completion_timeout_seconds=cfg.completion_timeout_seconds,
        direct_timeout_seconds=cfg.direct_timeout_seconds,
    )


def build_progress_observers(cfg: UploadConfig) -> list[ProgressObserver]:
    observers: list[ProgressObserver] = [LoggingProgressObserver()]
    if cfg.redis_enabled:
        observers.append(
            RedisProgressPublisher(
                host=cfg.redis_host,
                port=cfg.redis_port,
                db=cfg.redis_db,
                channel=cfg.redis_channel,
                socket_timeout_seconds=cfg.redis_socket_timeout_seconds,
            )
        )
    return observers


def build_upload_use_case(
    cfg: UploadConfig,
    *,
    registry: UploadRegistry,
    http_client: httpx.AsyncClient,
    observers: list[ProgressObserver] | None = None,
) -> UploadRecordingUseCase:
    part_uploader = PartUploader(
        transport=HttpPartTransport(
            client=http_client, timeout_seconds=cfg.part_timeout_seconds
        ),
        max_retries=cfg.max_part_retries,
        base_delay_seconds=cfg.retry_base_delay_seconds,
    )
    return UploadRecordingUseCase(
        api=build_api_client(cfg, http_client),
        part_uploader=part_uploader,
        registry=registry,
        fallback_store=FilesystemRecordingStore(cfg.fallback_dir),
        direct_threshold_bytes=cfg.direct_threshold_bytes,
        max_concurrent_parts=cfg.max_concurrent_parts,
        observers=build_progress_observers(cfg) if observers is None else observers,
    )
