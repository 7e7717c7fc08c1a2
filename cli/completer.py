"""Custom completer for the Ferry shell with file and session id completion."""

from pathlib import Path
from typing import Callable, Iterable, Optional

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from cli.constants import COMMANDS, FILE_COMMANDS, SESSION_COMMANDS


class FerryCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - File path completion for 'add' and 'upload'
    - Active session id completion for 'start' and 'cancel'
    """

    def __init__(self, session_ids: Optional[Callable[[], Iterable[str]]] = None):
        """
        Args:
            session_ids: Callable returning the currently active session ids
        """
        self.session_ids = session_ids or (lambda: [])

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        text = document.text_before_cursor
        tokens = text.split()

        is_typing_new_token = text.endswith(" ") or not tokens

        if not tokens or (len(tokens) == 1 and not is_typing_new_token):
            yield from self._complete_commands(tokens[0] if tokens else "")
            return

        command = tokens[0].lower()
        current_word = "" if is_typing_new_token else tokens[-1]
        position = len(tokens) if is_typing_new_token else len(tokens) - 1

        if command in SESSION_COMMANDS and position == 1:
            yield from self._complete_session_ids(current_word)
        elif command == "add" or (command in FILE_COMMANDS and position == 1):
            yield from self._complete_paths(current_word)

    def _complete_commands(self, partial: str) -> Iterable[Completion]:
        """Complete command names matching the partial input."""
        partial_lower = partial.lower()
        for cmd in COMMANDS:
            if cmd.startswith(partial_lower):
                yield Completion(cmd, start_position=-len(partial))

    def _complete_session_ids(self, partial: str) -> Iterable[Completion]:
        for session_id in sorted(self.session_ids()):
            if session_id.startswith(partial):
                yield Completion(session_id, start_position=-len(partial))

    def _complete_paths(self, partial: str) -> Iterable[Completion]:
        """
        Complete file and directory paths relative to the working directory.

        Directories are offered with a trailing '/'.
        """
        dir_prefix = partial[:partial.rfind('/') + 1]
        name_prefix = partial[len(dir_prefix):]

        directory = Path(dir_prefix) if dir_prefix else Path('.')
        base = directory if directory.is_absolute() else Path.cwd() / directory
        if not base.is_dir():
            return

        show_hidden = name_prefix.startswith('.')
        for item in sorted(base.iterdir()):
            if not item.name.startswith(name_prefix):
                continue
            if item.name.startswith('.') and not show_hidden:
                continue
            completion = dir_prefix + item.name
            if item.is_dir():
                completion += '/'
            yield Completion(completion, start_position=-len(partial))
