from pathlib import Path

import pytest

from services.upload.config import load_config

UPLOAD_VARS = [
    "UPLOAD_BACKEND",
    "UPLOAD_API_BASE_URL",
    "UPLOAD_DIRECT_THRESHOLD_BYTES",
    "UPLOAD_MAX_PART_RETRIES",
    "UPLOAD_RETRY_BASE_DELAY_SECONDS",
    "UPLOAD_MAX_CONCURRENT_PARTS",
    "UPLOAD_REGISTRY_CAPACITY",
    "UPLOAD_FALLBACK_DIR",
    "UPLOAD_STORAGE_ENDPOINT_URL",
    "UPLOAD_STORAGE_BUCKET",
    "UPLOAD_STORAGE_ACCESS_KEY",
    "UPLOAD_STORAGE_SECRET_KEY",
    "UPLOAD_REDIS_HOST",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in UPLOAD_VARS:
        monkeypatch.delenv(name, raising=False)


def test_api_backend_defaults(monkeypatch):
    monkeypatch.setenv("UPLOAD_API_BASE_URL", "https://api.example.test/")

    cfg = load_config()

    assert cfg.backend == "api"
    assert cfg.api_base_url == "https://api.example.test"
    assert cfg.direct_threshold_bytes == 10 * 1024 * 1024
    assert cfg.max_part_retries == 3
    assert cfg.retry_base_delay_seconds == 2.0
    assert cfg.part_timeout_seconds == 300.0
    assert cfg.max_concurrent_parts == 1
    assert cfg.registry_capacity == 2
    assert cfg.redis_enabled is False


def test_api_backend_requires_base_url():
    with pytest.raises(ValueError, match="UPLOAD_API_BASE_URL"):
        load_config()


def test_invalid_integer_names_variable(monkeypatch):
    monkeypatch.setenv("UPLOAD_API_BASE_URL", "https://api.example.test")
    monkeypatch.setenv("UPLOAD_MAX_CONCURRENT_PARTS", "four")

    with pytest.raises(ValueError, match="UPLOAD_MAX_CONCURRENT_PARTS"):
        load_config()


def test_s3_backend_reads_storage_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("UPLOAD_BACKEND", "S3")
    monkeypatch.setenv("UPLOAD_STORAGE_ENDPOINT_URL", "http://minio:9000")
    monkeypatch.setenv("UPLOAD_STORAGE_BUCKET", "recordings")
    monkeypatch.setenv("UPLOAD_STORAGE_ACCESS_KEY", "AK")
    monkeypatch.setenv("UPLOAD_STORAGE_SECRET_KEY", "SK")
    monkeypatch.setenv("UPLOAD_FALLBACK_DIR", str(tmp_path))
    monkeypatch.setenv("UPLOAD_REDIS_HOST", "redis")

    cfg = load_config()

    assert cfg.backend == "s3"
    assert cfg.api_base_url is None
    assert cfg.storage_bucket == "recordings"
    assert cfg.fallback_dir == Path(tmp_path)
    assert cfg.redis_enabled is True


def test_unknown_backend_rejected(monkeypatch):
    monkeypatch.setenv("UPLOAD_BACKEND", "ftp")

    with pytest.raises(ValueError, match="UPLOAD_BACKEND"):
        load_config()


def test_zero_concurrent_parts_rejected(monkeypatch):
    monkeypatch.setenv("UPLOAD_API_BASE_URL", "https://api.example.test")
    monkeypatch.setenv("UPLOAD_MAX_CONCURRENT_PARTS", "0")

    with pytest.raises(ValueError, match="UPLOAD_MAX_CONCURRENT_PARTS"):
        load_config()


def test_negative_retries_rejected(monkeypatch):
    monkeypatch.setenv("UPLOAD_API_BASE_URL", "https://api.example.test")
    monkeypatch.setenv("UPLOAD_MAX_PART_RETRIES", "-1")

    with pytest.raises(ValueError, match="UPLOAD_MAX_PART_RETRIES"):
        load_config()
