"""Chunk sizing and next-range planning from server range reports."""

import re
from dataclasses import dataclass
from typing import List, Optional

from common.constants import MAX_CHUNK_SIZE_BYTES, MIN_CHUNK_SIZE_BYTES, PERCENT_PRECISION
from common.types import ByteRange

RANGE_REPORT_PATTERN = re.compile(r'^\d+-\d+/\d+(,\d+-\d+/\d+)*$')


@dataclass(frozen=True)
class ChunkPlan:
    """
    Next chunk to send and the bytes the server has confirmed.

    Attributes:
        start: First byte of the next chunk (inclusive)
        end: Last byte of the next chunk (inclusive)
        confirmed: Bytes the server reports as received
        complete: True when nothing remains to send
    """
    start: int
    end: int
    confirmed: int
    complete: bool = False

    @property
    def size(self) -> int:
        return self.end - self.start + 1


def compute_chunk_size(
    length: int,
    min_chunk_size: int = MIN_CHUNK_SIZE_BYTES,
    max_chunk_size: int = MAX_CHUNK_SIZE_BYTES,
    percent_precision: float = PERCENT_PRECISION,
) -> int:
    """
    Chunk size for a file: one ``percent_precision`` step of its length, clamped.

    Args:
        length: File length in bytes
        min_chunk_size: Lower clamp
        max_chunk_size: Upper clamp
        percent_precision: Progress granularity in percent

    Returns:
        Chunk size in bytes
    """
    size = int(length / (100 / percent_precision))
    return max(min_chunk_size, min(size, max_chunk_size))


def parse_range_report(text: Optional[str]) -> Optional[List[ByteRange]]:
    """
    Parse a comma separated ``start-end/total`` range report.

    Args:
        text: Response body from the server

    Returns:
        List of ranges in report order, or None if the body is not a range report
    """
    if text is None:
        return None
    body = text.strip()
    if not RANGE_REPORT_PATTERN.match(body):
        return None

    ranges = []
    for token in body.split(','):
        span, total = token.split('/')
        start, end = span.split('-')
        ranges.append(ByteRange(start=int(start), end=int(end), total=int(total)))
    return ranges


def next_range(file_length: int, chunk_size: int, report: Optional[str]) -> ChunkPlan:
    """
    Plan the next chunk from the last server response.

    No report means a fresh upload. A range report means a partial upload: the
    next chunk fills the first gap. Any other body means the server already
    holds the whole file.

    Args:
        file_length: Total file length in bytes
        chunk_size: Maximum chunk size in bytes
        report: Last response body, or None

    Returns:
        ChunkPlan for the next request
    """
    if not report:
        return ChunkPlan(start=0, end=min(chunk_size, file_length) - 1, confirmed=0)

    ranges = parse_range_report(report)
    if ranges is None:
        return ChunkPlan(start=file_length, end=file_length - 1, confirmed=file_length, complete=True)

    confirmed = min(sum(r.length for r in ranges), file_length)

    gap_start = 0
    gap_end = None
    for r in sorted(ranges, key=lambda r: (r.start, r.end)):
        if r.start > gap_start:
            gap_end = r.start - 1
            break
        gap_start = max(gap_start, r.end + 1)

    if gap_start >= file_length:
        return ChunkPlan(start=file_length, end=file_length - 1, confirmed=file_length, complete=True)

    if gap_end is None or gap_end >= file_length:
        gap_end = file_length - 1

    end = gap_start + min(chunk_size, gap_end - gap_start + 1) - 1
    return ChunkPlan(start=gap_start, end=end, confirmed=confirmed)
