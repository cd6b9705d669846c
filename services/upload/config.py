from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .domain.upload import DIRECT_UPLOAD_THRESHOLD_BYTES


def _load_repo_env() -> None:
    """Load the nearest .env starting from this file upward."""
    current = Path(__file__).resolve()
    for candidate in [current.parent, *current.parents]:
        env_file = candidate / ".env"
        if env_file.exists():
            load_dotenv(env_file)
            return


_load_repo_env()


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or value == "":
        raise ValueError(f"Environment variable {name} is required")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a number") from exc


@dataclass(frozen=True)
class UploadConfig:
    backend: str
    api_base_url: str | None
    content_type: str
    direct_threshold_bytes: int
    max_part_retries: int
    retry_base_delay_seconds: float
    part_timeout_seconds: float
    metadata_timeout_seconds: float
    completion_timeout_seconds: float
    direct_timeout_seconds: float
    max_concurrent_parts: int
    registry_capacity: int
    fallback_dir: Path
    storage_endpoint_url: str | None
    storage_region: str | None
    storage_bucket: str | None
    storage_access_key: str | None
    storage_secret_key: str | None
    storage_object_prefix: str
    storage_part_size_bytes: int
    redis_host: str | None
    redis_port: int
    redis_db: int
    redis_channel: str
    redis_socket_timeout_seconds: float
    log_level: str

    @property
    def redis_enabled(self) -> bool:
        return bool(self.redis_host)


def load_config() -> UploadConfig:
    backend = os.getenv("UPLOAD_BACKEND", "api").strip().lower()
    if backend not in {"api", "s3"}:
        raise ValueError("Environment variable UPLOAD_BACKEND must be 'api' or 's3'")

    use_s3 = backend == "s3"
    cfg = UploadConfig(
        backend=backend,
        api_base_url=(
            None if use_s3 else _require_env("UPLOAD_API_BASE_URL").rstrip("/")
        ),
        content_type=os.getenv("UPLOAD_CONTENT_TYPE", "video/webm"),
        direct_threshold_bytes=_env_int(
            "UPLOAD_DIRECT_THRESHOLD_BYTES", DIRECT_UPLOAD_THRESHOLD_BYTES
        ),
        max_part_retries=_env_int("UPLOAD_MAX_PART_RETRIES", 3),
        retry_base_delay_seconds=_env_float("UPLOAD_RETRY_BASE_DELAY_SECONDS", 2.0),
        part_timeout_seconds=_env_float("UPLOAD_PART_TIMEOUT_SECONDS", 300.0),
        metadata_timeout_seconds=_env_float("UPLOAD_METADATA_TIMEOUT_SECONDS", 30.0),
        completion_timeout_seconds=_env_float(
            "UPLOAD_COMPLETION_TIMEOUT_SECONDS", 60.0
        ),
        direct_timeout_seconds=_env_float("UPLOAD_DIRECT_TIMEOUT_SECONDS", 120.0),
        max_concurrent_parts=_env_int("UPLOAD_MAX_CONCURRENT_PARTS", 1),
        registry_capacity=_env_int("UPLOAD_REGISTRY_CAPACITY", 2),
        fallback_dir=Path(
            os.getenv("UPLOAD_FALLBACK_DIR", str(Path.home() / "Recordings"))
        ),
        storage_endpoint_url=(
            _require_env("UPLOAD_STORAGE_ENDPOINT_URL") if use_s3 else None
        ),
        storage_region=os.getenv("UPLOAD_STORAGE_REGION", "us-east-1"),
        storage_bucket=_require_env("UPLOAD_STORAGE_BUCKET") if use_s3 else None,
        storage_access_key=(
            _require_env("UPLOAD_STORAGE_ACCESS_KEY") if use_s3 else None
        ),
        storage_secret_key=(
            _require_env("UPLOAD_STORAGE_SECRET_KEY") if use_s3 else None
        ),
        storage_object_prefix=os.getenv("UPLOAD_STORAGE_OBJECT_PREFIX", "recordings"),
        storage_part_size_bytes=_env_int(
            "UPLOAD_STORAGE_PART_SIZE_BYTES", 8 * 1024 * 1024
        ),
        redis_host=os.getenv("UPLOAD_REDIS_HOST") or None,
        redis_port=_env_int("UPLOAD_REDIS_PORT", 6379),
        redis_db=_env_int("UPLOAD_REDIS_DB", 0),
        redis_channel=os.getenv("UPLOAD_REDIS_CHANNEL", "upload_progress"),
        redis_socket_timeout_seconds=_env_float(
            "UPLOAD_REDIS_SOCKET_TIMEOUT_SECONDS", 2.0
        ),
        log_level=os.getenv("UPLOAD_LOG_LEVEL", "INFO"),
    )
    if cfg.max_concurrent_parts < 1:
        raise ValueError(
            "Environment variable UPLOAD_MAX_CONCURRENT_PARTS must be at least 1"
        )
    if cfg.max_part_retries < 0:
        raise ValueError(
            "Environment variable UPLOAD_MAX_PART_RETRIES must not be negative"
        )
    return cfg
