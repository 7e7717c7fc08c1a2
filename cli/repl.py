"""REPL with prompt_toolkit for user interaction."""

import asyncio
import os
import sys

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout

from common.logging_config import get_logger
from cli.commands import (
    get_config,
    get_registry,
    handle_add,
    handle_cancel,
    handle_enable,
    handle_list,
    handle_start,
    handle_upload,
)
from cli.completer import FerryCompleter
from cli.config import Config
from cli.constants import (
    HELP_TEXT,
    LOGO,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from cli.models import (
    AddCommand,
    CancelCommand,
    EnableCommand,
    ListCommand,
    StartCommand,
    UploadCommand,
)
from cli.parser import ParseError, parse_command
from cli.utils import format_event
from uploader.registry import UploadRegistry

logger = get_logger(__name__)


def clear_screen() -> None:
    """Clear the terminal screen (cross-platform)."""
    if sys.platform == "win32":
        os.system("cls")
    else:
        os.system("clear")


def show_welcome() -> None:
    print(LOGO)
    print(WELCOME_TITLE)
    print(WELCOME_HELP)


def dispatch_command(cmd_obj, registry: UploadRegistry, config: Config) -> str:
    """Dispatch parsed command to appropriate handler."""
    if isinstance(cmd_obj, AddCommand):
        return handle_add(cmd_obj, registry=registry)
    elif isinstance(cmd_obj, StartCommand):
        return handle_start(cmd_obj, registry=registry, config=config)
    elif isinstance(cmd_obj, UploadCommand):
        return handle_upload(cmd_obj, registry=registry, config=config)
    elif isinstance(cmd_obj, CancelCommand):
        return handle_cancel(cmd_obj, registry=registry)
    elif isinstance(cmd_obj, ListCommand):
        return handle_list(cmd_obj, registry=registry)
    elif isinstance(cmd_obj, EnableCommand):
        return handle_enable(cmd_obj, registry=registry)
    else:
        return f"Unknown command type: {type(cmd_obj)}"


async def print_events(registry: UploadRegistry) -> None:
    """Print upload notifications as they arrive on the registry queue."""
    while True:
        event = await registry.events.get()
        line = format_event(event)
        if line is not None:
            print(line)


async def repl_loop() -> None:
    """Start interactive REPL with prompt_toolkit."""
    config = get_config()
    registry = get_registry()

    completer = FerryCompleter(lambda: registry.uploads.keys())
    history = InMemoryHistory()
    session: PromptSession = PromptSession(
        completer=completer, history=history, style=STYLE
    )

    clear_screen()
    show_welcome()

    printer = asyncio.create_task(print_events(registry))
    try:
        with patch_stdout():
            while True:
                try:
                    user_input = await session.prompt_async([("class:prompt", PROMPT_TEXT)])

                    if not user_input.strip():
                        continue

                    if user_input.strip() == "exit":
                        print("Goodbye!")
                        break

                    if user_input.strip() == "help":
                        print(HELP_TEXT)
                        continue

                    if user_input.strip() == "clear":
                        clear_screen()
                        show_welcome()
                        continue

                    cmd_obj = parse_command(user_input)
                    result = dispatch_command(cmd_obj, registry, config)
                    print(result)

                except ParseError as e:
                    print(f"Error: {e}")
                except KeyboardInterrupt:
                    continue
                except EOFError:
                    print("\nGoodbye!")
                    break
    finally:
        printer.cancel()
        active = len(registry.active())
        if active:
            logger.info(f"Stopping {active} upload(s); saved progress resumes on next add")
        await registry.close()
