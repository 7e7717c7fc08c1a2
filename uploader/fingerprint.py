"""
Content fingerprint for correlating a file with saved resume state.

The fingerprint samples up to ``points`` windows spread across the file and
takes an Adler-32 checksum of each window, so that a renamed or moved file
still resumes while large files are never read in full.
"""

import struct
import zlib
from typing import List

from common.constants import (
    FINGERPRINT_MAX_WINDOW_BYTES,
    FINGERPRINT_MIN_FILE_SIZE_BYTES,
    FINGERPRINT_POINTS,
)
from common.logging_config import get_logger
from common.types import FileHandle

logger = get_logger(__name__)

ADLER32_START = 1


def adler32(data: bytes) -> int:
    """
    Adler-32 checksum of data, starting from the algorithm's initial state.

    Args:
        data: Bytes to checksum

    Returns:
        Unsigned 32-bit checksum
    """
    return zlib.adler32(data, ADLER32_START) & 0xFFFFFFFF


def window_size(length: int, points: int = FINGERPRINT_POINTS,
                max_window: int = FINGERPRINT_MAX_WINDOW_BYTES) -> int:
    """Bytes per sample window: an equal share of the file, capped at ``max_window``."""
    return min(length // points, max_window)


def sample_checksums(
    handle: FileHandle,
    points: int = FINGERPRINT_POINTS,
    max_window: int = FINGERPRINT_MAX_WINDOW_BYTES,
) -> List[int]:
    """
    Checksum up to ``points`` sample windows of a file.

    Window ``i`` starts at ``i * length // points``; each checksum covers exactly
    the bytes read, so a short read at end of file is honored.

    Args:
        handle: File to sample
        points: Number of sample windows
        max_window: Upper bound on a window's size in bytes

    Returns:
        One checksum per window read

    Raises:
        OSError: If the file cannot be opened or read
    """
    size = window_size(handle.length, points, max_window)
    if size <= 0:
        return []

    checksums = []
    with open(handle.path, 'rb') as f:
        for index in range(points):
            f.seek(index * handle.length // points)
            data = f.read(size)
            if not data:
                break
            checksums.append(adler32(data))
    return checksums


def encode_checksums(checksums: List[int]) -> str:
    """Pack checksums as little-endian bytes, one character per byte."""
    packed = b''.join(struct.pack('<I', value) for value in checksums)
    return packed.decode('latin-1')


def fingerprint(
    handle: FileHandle,
    points: int = FINGERPRINT_POINTS,
    max_window: int = FINGERPRINT_MAX_WINDOW_BYTES,
    min_file_size: int = FINGERPRINT_MIN_FILE_SIZE_BYTES,
) -> str:
    """
    Compute the resume key for a file.

    Files smaller than ``min_file_size`` are never resumed and get an empty key.
    I/O failures also produce an empty key rather than failing the upload.

    Args:
        handle: File to fingerprint
        points: Number of sample windows
        max_window: Upper bound on a window's size in bytes
        min_file_size: Smallest file that gets a fingerprint

    Returns:
        Key of ``4 * windows`` characters, or "" when the file is not resumable
    """
    if handle.length < min_file_size:
        logger.debug(f"Skipping fingerprint for small file {handle.name} ({handle.length} bytes)")
        return ""

    try:
        checksums = sample_checksums(handle, points, max_window)
    except (OSError, ValueError) as e:
        logger.warning(f"Fingerprint failed for {handle.name}, upload will not be resumable: {e}")
        return ""

    return encode_checksums(checksums)
