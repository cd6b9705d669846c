import pytest

from services.upload.application.upload_registry import UploadRegistry
from services.upload.domain.upload import ProgressEvent, UploadState


def test_registry_keeps_two_most_recent_records():
    registry = UploadRegistry()
    handles = [registry.begin(f"rec-{n}.webm", n * 100) for n in range(5)]

    assert len(registry) == 2
    assert [r.handle for r in registry.records()] == handles[-2:]
    for evicted in handles[:3]:
        assert registry.get(evicted) is None


def test_eviction_follows_insertion_not_completion():
    registry = UploadRegistry(capacity=2)
    first = registry.begin("a.webm", 1)
    second = registry.begin("b.webm", 1)
    registry.update_progress(second, 100.0, "Upload complete", UploadState.COMPLETED)

    third = registry.begin("c.webm", 1)

    assert registry.get(first) is None
    assert registry.get(second).state is UploadState.COMPLETED
    assert registry.get(third) is not None


def test_update_progress_changes_record():
    registry = UploadRegistry()
    handle = registry.begin("lecture.webm", 2048)

    assert registry.update_progress(handle, 48.0, "Uploading - 40%") is True

    record = registry.get(handle)
    assert record.percent == 48.0
    assert record.status == "Uploading - 40%"
    assert record.size == 2048
    assert record.updated_at >= record.started_at


def test_update_progress_clamps_percent():
    registry = UploadRegistry()
    handle = registry.begin("lecture.webm", 1)

    registry.update_progress(handle, 140.0, "done")
    assert registry.get(handle).percent == 100.0
    registry.update_progress(handle, -3.0, "huh")
    assert registry.get(handle).percent == 0.0


def test_update_progress_for_evicted_handle_is_ignored():
    registry = UploadRegistry(capacity=1)
    old = registry.begin("old.webm", 1)
    registry.begin("new.webm", 1)

    assert registry.update_progress(old, 50.0, "Uploading") is False


def test_observer_applies_progress_events():
    registry = UploadRegistry()
    handle = registry.begin("lecture.webm", 10)
    observe = registry.observer_for(handle)

    observe(
        ProgressEvent(
            session_id=handle,
            filename="lecture.webm",
            percent=0.0,
            status="Upload failed: boom",
            state=UploadState.FAILED,
        )
    )

    assert registry.get(handle).state is UploadState.FAILED
    assert registry.get(handle).status == "Upload failed: boom"


def test_records_are_snapshots():
    registry = UploadRegistry()
    handle = registry.begin("lecture.webm", 10)

    snapshot = registry.get(handle)
    snapshot.percent = 99.0

    assert registry.get(handle).percent == 0.0


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        UploadRegistry(capacity=0)
