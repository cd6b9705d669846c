from __future__ import annotations

import math
from typing import List

from ..domain.upload import ByteRange


def slice_ranges(total_size: int, part_count: int) -> List[ByteRange]:
    """Divide ``[0, total_size)`` into ``part_count`` contiguous ranges.

    Every range but the last spans ``ceil(total_size / part_count)`` bytes. When
    there are more parts than the range size can fill, the trailing ranges are
    empty and sit at ``total_size`` so the ranges still tile the payload.
    """
    if part_count < 1:
        raise ValueError("part_count must be at least 1")
    if total_size < 0:
        raise ValueError("total_size must not be negative")

    chunk_size = math.ceil(total_size / part_count)
    ranges = []
    for index in range(part_count):
        start = min(index * chunk_size, total_size)
        end = min(start + chunk_size, total_size)
        ranges.append(ByteRange(start=start, end=end))
    return ranges
