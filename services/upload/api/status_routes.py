"""REST API routes for upload progress."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..application.upload_registry import UploadRegistry
from ..domain.upload import UploadProgress


class UploadProgressResponse(BaseModel):
    """Upload progress response model."""

    handle: str
    filename: str
    size: int
    percent: float
    status: str
    state: str
    started_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, record: UploadProgress) -> "UploadProgressResponse":
        return cls(
            handle=record.handle,
            filename=record.filename,
            size=record.size,
            percent=record.percent,
            status=record.status,
            state=record.state.value,
            started_at=record.started_at.isoformat().replace("+00:00", "Z"),
            updated_at=record.updated_at.isoformat().replace("+00:00", "Z"),
        )


def create_status_router(registry: UploadRegistry) -> APIRouter:
    router = APIRouter(prefix="/uploads", tags=["uploads"])

    @router.get("", response_model=list[UploadProgressResponse])
    async def list_uploads() -> list[UploadProgressResponse]:
        return [UploadProgressResponse.from_domain(r) for r in registry.records()]

    @router.get("/{handle}", response_model=UploadProgressResponse)
    async def get_upload(handle: str) -> UploadProgressResponse:
        record = registry.get(handle)
        if record is None:
            raise HTTPException(status_code=404, detail="Upload not found")
        return UploadProgressResponse.from_domain(record)

    return router
