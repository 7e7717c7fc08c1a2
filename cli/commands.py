"""Command handler functions for shell operations."""

from typing import Optional

from common.constants import DEFAULT_CONFIG_PATH
from common.logging_config import get_logger
from cli.config import Config
from cli.models import (
    AddCommand,
    CancelCommand,
    EnableCommand,
    ListCommand,
    StartCommand,
    UploadCommand,
)
from cli.utils import format_file_size, format_progress
from uploader.exceptions import UploaderException
from uploader.registry import UploadRegistry

logger = get_logger(__name__)


_config: Optional[Config] = None
_registry: Optional[UploadRegistry] = None


def get_config() -> Config:
    """
    Get or create global Config instance.

    Returns:
        Config loaded from ~/.ferry/config.json
    """
    global _config
    if _config is None:
        _config = Config(DEFAULT_CONFIG_PATH)
    return _config


def get_registry() -> UploadRegistry:
    """
    Get or create global UploadRegistry instance.

    Returns:
        UploadRegistry built from the shell configuration
    """
    global _registry
    if _registry is None:
        logger.debug("Creating new UploadRegistry instance")
        _registry = UploadRegistry(get_config().get_upload_settings())
    return _registry


def _resolve_url(url: Optional[str], config: Optional[Config]) -> Optional[str]:
    if url:
        return url
    config = config or get_config()
    return config.get_default_upload_url()


def handle_add(cmd: AddCommand, registry: Optional[UploadRegistry] = None) -> str:
    """
    Handle 'add' command.

    Args:
        cmd: AddCommand with file_list
        registry: Optional UploadRegistry for dependency injection (testing)

    Returns:
        Success or error message
    """
    logger.info(f"Executing add command: {len(cmd.file_list)} file(s)")
    if registry is None:
        registry = get_registry()
    try:
        uploads = registry.add_files(cmd.file_list)
    except UploaderException as e:
        return f"Error: {e}"
    except OSError as e:
        return f"Error: cannot read file: {e}"

    lines = []
    for upload in uploads:
        state = " (resuming)" if upload.resumed else ""
        lines.append(f"{upload.session_id}  {upload.name}  {format_file_size(upload.file_length)}{state}")
    return '\n'.join(lines)


def handle_start(
    cmd: StartCommand,
    registry: Optional[UploadRegistry] = None,
    config: Optional[Config] = None,
) -> str:
    """
    Handle 'start' command.

    Args:
        cmd: StartCommand with session id, url and additional data
        registry: Optional UploadRegistry for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        Success or error message
    """
    if registry is None:
        registry = get_registry()
    url = _resolve_url(cmd.url, config)
    try:
        upload = registry.get(cmd.session_id)
        if not url and not upload.upload_url:
            return "Error: no upload url given and no default_upload_url configured"
        registry.start_upload(cmd.session_id, url or "", cmd.additional_data)
    except UploaderException as e:
        return f"Error: {e}"
    return f"Started {upload.name} [session {cmd.session_id}]"


def handle_upload(
    cmd: UploadCommand,
    registry: Optional[UploadRegistry] = None,
    config: Optional[Config] = None,
) -> str:
    """
    Handle 'upload' command: add one file and start it.

    Args:
        cmd: UploadCommand with file path, url and additional data
        registry: Optional UploadRegistry for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        Success or error message
    """
    if registry is None:
        registry = get_registry()
    url = _resolve_url(cmd.url, config)
    try:
        [upload] = registry.add_files([cmd.file_path])
        if not url and not upload.upload_url:
            registry.cancel_upload(upload.session_id)
            return "Error: no upload url given and no default_upload_url configured"
        registry.start_upload(upload.session_id, url or "", cmd.additional_data)
    except UploaderException as e:
        return f"Error: {e}"
    except OSError as e:
        return f"Error: cannot read file: {e}"

    state = "Resuming" if upload.resumed else "Uploading"
    return f"{state} {upload.name} ({format_file_size(upload.file_length)}) [session {upload.session_id}]"


def handle_cancel(cmd: CancelCommand, registry: Optional[UploadRegistry] = None) -> str:
    """
    Handle 'cancel' command.

    Args:
        cmd: CancelCommand with session id
        registry: Optional UploadRegistry for dependency injection (testing)

    Returns:
        Success or error message
    """
    if registry is None:
        registry = get_registry()
    try:
        registry.cancel_upload(cmd.session_id)
    except UploaderException as e:
        return f"Error: {e}"
    return f"Cancel requested for session {cmd.session_id}"


def handle_list(cmd: ListCommand, registry: Optional[UploadRegistry] = None) -> str:
    """
    Handle 'list' command.

    Returns:
        Table of active uploads
    """
    if registry is None:
        registry = get_registry()
    uploads = registry.active()
    if not uploads:
        return "No active uploads."

    output = [f"{len(uploads)} active upload(s):\n"]
    for upload in uploads:
        output.append(
            f"  - {upload.session_id}  {upload.name}  [{upload.status.value}]\n"
            f"    {format_progress(upload.bytes_uploaded, upload.file_length)}"
        )
        if upload.last_error is not None:
            output.append(f"    Last error: {upload.last_error.description}")
    return '\n'.join(output)


def handle_enable(cmd: EnableCommand, registry: Optional[UploadRegistry] = None) -> str:
    """
    Handle 'enable' and 'disable' commands.
    """
    if registry is None:
        registry = get_registry()
    registry.set_enabled(cmd.enabled)
    return "Adding files enabled." if cmd.enabled else "Adding files disabled."
