from __future__ import annotations

import asyncio
import math
from pathlib import Path
from typing import Any, Mapping, Sequence

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..domain.errors import ServiceError, TransportError
from ..domain.upload import CompletedPart

MAX_MULTIPART_PARTS = 10_000


def create_s3_client(
    *,
    endpoint_url: str,
    region_name: str,
    access_key: str,
    secret_key: str,
):
    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        region_name=region_name,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
    )


class S3RecordingUploadClient:
    """Issues upload destinations straight from an S3-compatible bucket.

    Stands in for the recordings API when the client holds bucket credentials
    itself. The bearer token is accepted for interface parity and not used.
    """

    def __init__(
        self,
        *,
        client,
        bucket_name: str,
        object_prefix: str = "",
        part_size_bytes: int = 8 * 1024 * 1024,
        url_expires_in_seconds: int = 3600,
    ) -> None:
        if part_size_bytes < 1:
            raise ValueError("part_size_bytes must be positive")
        self._client = client
        self._bucket_name = bucket_name
        self._object_prefix = object_prefix.strip("/")
        self._part_size_bytes = part_size_bytes
        self._expires_in = max(url_expires_in_seconds, 60)

    async def start_multipart_upload(
        self, *, filename: str, file_size: int, content_type: str, auth_token: str
    ) -> str:
        response = await self._call(
            self._client.create_multipart_upload,
            Bucket=self._bucket_name,
            Key=self._object_key(filename),
            ContentType=content_type,
        )
        return response["UploadId"]

    async def generate_presigned_urls(
        self, *, filename: str, upload_id: str, file_size: int, auth_token: str
    ) -> list[str]:
        object_key = self._object_key(filename)
        # Presigning is local computation, no request is made.
        return [
            self._client.generate_presigned_url(
                ClientMethod="upload_part",
                Params={
                    "Bucket": self._bucket_name,
                    "Key": object_key,
                    "UploadId": upload_id,
                    "PartNumber": part_no,
                },
                ExpiresIn=self._expires_in,
            )
            for part_no in range(1, self.part_count(file_size) + 1)
        ]

    async def complete_multipart_upload(
        self,
        *,
        filename: str,
        upload_id: str,
        parts: Sequence[CompletedPart],
        auth_token: str,
    ) -> Mapping[str, Any]:
        object_key = self._object_key(filename)
        response = await self._call(
            self._client.complete_multipart_upload,
            Bucket=self._bucket_name,
            Key=object_key,
            UploadId=upload_id,
            MultipartUpload={
                "Parts": [
                    {"ETag": part.confirmation_tag, "PartNumber": part.part_number}
                    for part in parts
                ]
            },
        )
        return {"key": object_key, "location": response.get("Location")}

    async def upload_direct(
        self, *, data: bytes, filename: str, content_type: str, auth_token: str
    ) -> Mapping[str, Any]:
        object_key = self._object_key(filename)
        response = await self._call(
            self._client.put_object,
            Bucket=self._bucket_name,
            Key=object_key,
            Body=data,
            ContentType=content_type,
        )
        return {"key": object_key, "etag": response.get("ETag", "").replace('"', "")}

    def part_count(self, file_size: int) -> int:
        parts = math.ceil(file_size / self._part_size_bytes)
        return min(max(parts, 1), MAX_MULTIPART_PARTS)

    def _object_key(self, filename: str) -> str:
        safe_name = Path(filename).name or "recording.bin"
        return "/".join(s for s in [self._object_prefix, safe_name] if s)

    async def _call(self, method, **kwargs):
        try:
            return await asyncio.to_thread(method, **kwargs)
        except ClientError as exc:
            status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            raise ServiceError(
                f"Object storage error: {exc}", status_code=status
            ) from exc
        except BotoCoreError as exc:
            raise TransportError(f"Object storage unreachable: {exc}") from exc
