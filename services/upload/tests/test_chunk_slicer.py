import pytest

from services.upload.application.chunk_slicer import slice_ranges
from services.upload.domain.upload import ByteRange


def test_slice_ranges_truncates_final_range():
    ranges = slice_ranges(1000, 3)

    assert ranges == [ByteRange(0, 334), ByteRange(334, 668), ByteRange(668, 1000)]


def test_slice_ranges_even_split():
    size = 25 * 1024 * 1024
    ranges = slice_ranges(size, 5)

    assert len(ranges) == 5
    assert all(r.length == 5 * 1024 * 1024 for r in ranges)


def test_slice_ranges_single_part_covers_everything():
    assert slice_ranges(42, 1) == [ByteRange(0, 42)]


def test_slice_ranges_empty_payload():
    assert slice_ranges(0, 3) == [ByteRange(0, 0)] * 3


@pytest.mark.parametrize("total_size", [0, 1, 2, 5, 9, 10, 17, 100, 1001])
@pytest.mark.parametrize("part_count", [1, 2, 3, 4, 7, 16])
def test_slice_ranges_tile_payload(total_size, part_count):
    ranges = slice_ranges(total_size, part_count)

    assert len(ranges) == part_count
    assert ranges[0].start == 0
    assert ranges[-1].end == total_size
    for previous, current in zip(ranges, ranges[1:]):
        assert previous.end == current.start
    assert all(r.length >= 0 for r in ranges)
    assert sum(r.length for r in ranges) == total_size


def test_slice_ranges_rejects_bad_arguments():
    with pytest.raises(ValueError):
        slice_ranges(10, 0)
    with pytest.raises(ValueError):
        slice_ranges(-1, 2)
