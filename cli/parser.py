"""Command parser for shell input."""

import shlex

from cli.models import (
    AddCommand,
    CancelCommand,
    CommandRequest,
    EnableCommand,
    ListCommand,
    StartCommand,
    UploadCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]
    args = tokens[1:]

    if command_name == "add":
        return _parse_add(args)
    elif command_name == "start":
        return _parse_start(args)
    elif command_name == "upload":
        return _parse_upload(args)
    elif command_name == "cancel":
        return _parse_cancel(args)
    elif command_name == "list":
        return _parse_list(args)
    elif command_name in ("enable", "disable"):
        if args:
            raise ParseError(f"{command_name} takes no arguments")
        return EnableCommand(enabled=command_name == "enable", command=command_name)
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_add(args: list[str]) -> AddCommand:
    """Parse 'add <file>...' command."""
    if not args:
        raise ParseError("add requires at least one file")
    return AddCommand(file_list=tuple(args))


def _parse_start(args: list[str]) -> StartCommand:
    """Parse 'start <session-id> [url] [additional-data]' command."""
    if not 1 <= len(args) <= 3:
        raise ParseError("start requires 1 to 3 arguments: <session-id> [url] [additional-data]")

    session_id = _parse_session_id(args[0])
    url = args[1] if len(args) > 1 else None
    additional_data = args[2] if len(args) > 2 else ""
    return StartCommand(session_id=session_id, url=url, additional_data=additional_data)


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <file> [url] [additional-data]' command."""
    if not 1 <= len(args) <= 3:
        raise ParseError("upload requires 1 to 3 arguments: <file> [url] [additional-data]")

    url = args[1] if len(args) > 1 else None
    additional_data = args[2] if len(args) > 2 else ""
    return UploadCommand(file_path=args[0], url=url, additional_data=additional_data)


def _parse_cancel(args: list[str]) -> CancelCommand:
    """Parse 'cancel <session-id>' command."""
    if len(args) != 1:
        raise ParseError("cancel requires exactly 1 argument: <session-id>")
    return CancelCommand(session_id=_parse_session_id(args[0]))


def _parse_list(args: list[str]) -> ListCommand:
    if args:
        raise ParseError("list takes no arguments")
    return ListCommand()


def _parse_session_id(token: str) -> str:
    if not token.isdigit():
        raise ParseError(f"Invalid session id: {token} (expected digits)")
    return token
