"""Utility functions for shell output."""

from cli.constants import GREEN, RED, RESET
from uploader.events import (
    ProgressChanged,
    StatusChanged,
    UploadCompleted,
    UploadEvent,
    UploadFailed,
    UploadQueued,
)


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"


def format_progress(bytes_uploaded: int, total_bytes: int) -> str:
    """Progress as 'uploaded / total (pct%)'."""
    percent = (bytes_uploaded / total_bytes) * 100 if total_bytes else 100.0
    return (
        f"{format_file_size(bytes_uploaded)} / {format_file_size(total_bytes)} "
        f"({GREEN}{percent:.1f}%{RESET})"
    )


def format_event(event: UploadEvent) -> str | None:
    """
    Render an upload event as one line of shell output.

    Returns:
        Display line, or None for events that are not shown
    """
    if isinstance(event, UploadQueued):
        return (
            f"Queued: {event.name} ({format_file_size(event.total_bytes)}) "
            f"session {event.session_id}"
        )
    if isinstance(event, ProgressChanged):
        return f"[{event.session_id}] {format_progress(event.bytes_uploaded, event.total_bytes)}"
    if isinstance(event, UploadCompleted):
        response = event.response_text.strip()
        suffix = f" - server: {response[:120]}" if response else ""
        return f"[{event.session_id}] {GREEN}Complete{RESET} ({format_file_size(event.total_bytes)}){suffix}"
    if isinstance(event, UploadFailed):
        return f"[{event.session_id}] {RED}Failed{RESET} (code {event.error_code}): {event.error_description}"
    if isinstance(event, StatusChanged) and event.status.value == "canceled":
        return f"[{event.session_id}] Canceled"
    return None
