"""Shell constants and display text."""

from prompt_toolkit.styles import Style

COMMANDS = ["add", "start", "upload", "cancel", "list", "enable", "disable", "clear", "exit", "help"]

SESSION_COMMANDS = ("start", "cancel")
FILE_COMMANDS = ("add", "upload")

STYLE = Style.from_dict(
    {
        "prompt": "#2E9CCA bold",
        "command": "#0088ff bold",
    }
)

BLUE = "\033[38;2;46;156;202m"
GREEN = "\033[32m"
RED = "\033[31m"
RESET = "\033[0m"

LOGO = f"""{BLUE}
  ______
 |  ____|
 | |__ ___ _ __ _ __ _   _
 |  __/ _ \\ '__| '__| | | |
 | | |  __/ |  | |  | |_| |
 |_|  \\___|_|  |_|   \\__, |
                      __/ |
                     |___/
{RESET}"""

WELCOME_TITLE = "Ferry - Resumable chunked uploads"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "ferry> "

HELP_TEXT = """Available commands:
  add <file>...                              Queue files for upload (prints their session ids)
  start <session-id> [url] [additional-data] Start a queued upload
  upload <file> [url] [additional-data]      Queue a file and start it immediately
  cancel <session-id>                        Cancel an upload after its current chunk
  list                                       Show active uploads
  enable | disable                           Allow or refuse new files
  clear                                      Clear screen and redisplay welcome message
  help                                       Show this help
  exit                                       Exit (interrupted uploads resume next time)

The url defaults to 'default_upload_url' from ~/.ferry/config.json.
additional-data is appended to the url as a query string.
Uploads of files restored from saved state keep their original url.
Examples:
  upload videos/talk.mp4 https://example.com/upload
  add backup.tar notes.pdf
  start 1155512345 https://example.com/upload folder=7
  cancel 1155512345"""
