"""HTTP clients for the recordings API and for presigned part destinations."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

import httpx

from ..domain.errors import (
    AuthError,
    PayloadTooLargeError,
    ProtocolError,
    ServiceError,
    TransportError,
)
from ..domain.upload import CompletedPart

logger = logging.getLogger(__name__)

AUTH_FAILED_REASON = "Authentication failed: Invalid or expired token."


class HttpRecordingApiClient:
    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        base_url: str,
        metadata_timeout_seconds: float = 30.0,
        completion_timeout_seconds: float = 60.0,
        direct_timeout_seconds: float = 120.0,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._metadata_timeout = metadata_timeout_seconds
        self._completion_timeout = completion_timeout_seconds
        self._direct_timeout = direct_timeout_seconds

    async def start_multipart_upload(
        self, *, filename: str, file_size: int, content_type: str, auth_token: str
    ) -> str:
        payload = await self._post_json(
            "/recordings/start-multipart-upload",
            {"fileName": filename, "fileSize": file_size, "contentType": content_type},
            auth_token=auth_token,
            timeout=self._metadata_timeout,
            action="start multipart upload",
        )
        upload_id = payload.get("uploadId") if isinstance(payload, dict) else None
        if not isinstance(upload_id, str) or not upload_id:
            raise ServiceError("Invalid response format: missing uploadId")
        logger.info("Multipart upload started for %s: %s", filename, upload_id)
        return upload_id

    async def generate_presigned_urls(
        self, *, filename: str, upload_id: str, file_size: int, auth_token: str
    ) -> list[str]:
        payload = await self._post_json(
            "/recordings/generate-presigned-url",
            {"fileName": filename, "uploadId": upload_id, "fileSize": file_size},
            auth_token=auth_token,
            timeout=self._metadata_timeout,
            action="generate presigned URLs",
        )
        urls = payload.get("presignedUrls") if isinstance(payload, dict) else None
        if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
            raise ServiceError("Invalid response format: missing presignedUrls")
        logger.info("Presigned URLs generated: %s", len(urls))
        return urls

    async def complete_multipart_upload(
        self,
        *,
        filename: str,
        upload_id: str,
        parts: Sequence[CompletedPart],
        auth_token: str,
    ) -> Mapping[str, Any]:
        body = {
            "fileName": filename,
            "uploadId": upload_id,
            "parts": [
                {"PartNumber": part.part_number, "etag": part.confirmation_tag}
                for part in parts
            ],
        }
        payload = await self._post_json(
            "/recordings/complete-multipart-upload",
            body,
            auth_token=auth_token,
            timeout=self._completion_timeout,
            action="complete multipart upload",
            fallback={"message": "Upload completed successfully"},
        )
        logger.info("Multipart upload %s completed", upload_id)
        return payload

    async def upload_direct(
        self, *, data: bytes, filename: str, content_type: str, auth_token: str
    ) -> Mapping[str, Any]:
        try:
            response = await self._client.post(
                f"{self._base_url}/recordings/upload",
                files={"file": (filename, data, content_type)},
                headers=_auth_headers(auth_token),
                timeout=self._direct_timeout,
            )
        except httpx.TimeoutException as exc:
            raise TransportError(
                "Upload timeout: Request took too long. "
                "Large files may take longer to upload."
            ) from exc
        except httpx.TransportError as exc:
            raise TransportError(
                f"Network error: Unable to connect to server ({exc})"
            ) from exc

        if response.status_code == 401:
            raise AuthError(
                "Authentication failed: Invalid or expired token. Please login again."
            )
        if response.status_code == 413:
            raise PayloadTooLargeError("File too large for single upload.")
        if not response.is_success:
            raise ServiceError(
                f"Upload failed: {response.status_code} - {response.text[:200]}",
                status_code=response.status_code,
            )
        return _json_or(response, {"message": "Upload successful"})

    async def _post_json(
        self,
        path: str,
        body: Mapping[str, Any],
        *,
        auth_token: str,
        timeout: float,
        action: str,
        fallback: Mapping[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._client.post(
                f"{self._base_url}{path}",
                json=body,
                headers=_auth_headers(auth_token),
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"Failed to {action}: request timeout") from exc
        except httpx.TransportError as exc:
            raise TransportError(f"Failed to {action}: {exc}") from exc

        if response.status_code == 401:
            raise AuthError(AUTH_FAILED_REASON)
        if not response.is_success:
            raise ServiceError(
                f"Failed to {action}: {response.status_code}",
                status_code=response.status_code,
            )
        if fallback is not None:
            return _json_or(response, fallback)
        try:
            return response.json()
        except ValueError as exc:
            raise ServiceError(f"Failed to {action}: invalid response format") from exc


class HttpPartTransport:
    """PUTs part bytes to a presigned URL and returns the unquoted ETag."""

    def __init__(
        self, *, client: httpx.AsyncClient, timeout_seconds: float = 300.0
    ) -> None:
        self._client = client
        self._timeout = timeout_seconds

    async def put_part(self, destination: str, chunk: bytes, content_type: str) -> str:
        try:
            response = await self._client.put(
                destination,
                content=chunk,
                headers={"Content-Type": content_type},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise TransportError("Part upload timeout") from exc
        except httpx.TransportError as exc:
            raise TransportError(f"Part upload error: {exc}") from exc

        if not response.is_success:
            raise ProtocolError(
                f"Part upload failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        etag = response.headers.get("etag")
        if not etag:
            raise ProtocolError(
                "Missing ETag in response", status_code=response.status_code
            )
        return etag.replace('"', "")


def _auth_headers(auth_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth_token}"}


def _json_or(response: httpx.Response, fallback: Mapping[str, Any]) -> Any:
    try:
        return response.json()
    except ValueError:
        return dict(fallback)
