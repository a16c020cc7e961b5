"""
Interactive terminal front-end for imagehub.

Architectural role:
- Exposes the image API and the describers to an operator at a terminal.
- Delegates every API call to `imagehub.llm.client.ApiClient`.
- Delegates frame descriptions to `imagehub.llm.service.describe_frame`.

Interface responsibilities:
- Maintain the active describer (provider + model) for the session.
- Parse local commands and render their results as text.

Request lifecycle (per user turn):
1. Read a line from stdin.
2. Dispatch it through `handle_command`, which returns the text to print.
3. Print the result.

Commands:
- `list`, `load <path>`, `delete <id>`, `clear`
- `describe <id> [frame] [prompt...]`
- `provider <name>`, `model <name>`, `help`, `exit`/`quit`

Error handling strategy:
- API failures are already converted to empty results by `ApiClient`.
- Malformed commands print usage text instead of raising.
- EOF and keyboard interrupts terminate the loop without traceback output.
"""

from dotenv import load_dotenv

load_dotenv()

import shlex
import sys

from imagehub.llm.client import ApiClient
from imagehub.llm.describers import DESCRIBERS, get_describer
from imagehub.llm.provider_config import DEFAULT_PROMPT, DESCRIBER_PROVIDER
from imagehub.llm.service import describe_frame


HELP_TEXT = "\n".join([
    "Commands:",
    " list                              registered images",
    " load <path>                       upload a local image file",
    " delete <id>                       remove one image",
    " clear                             remove every image",
    " describe <id> [frame] [prompt]    describe one frame",
    " provider <name>                   switch describer (" + ", ".join(sorted(DESCRIBERS)) + ")",
    " model <name>                      switch describer model",
    " exit | quit",
])


class SessionState:
    """Mutable per-session settings of the CLI."""

    def __init__(self, describer=None):
        self.describer = describer
        self.running = True

    def active_describer(self):
        if self.describer is None:
            self.describer = get_describer(DESCRIBER_PROVIDER)
        return self.describer


# =========================================================
# COMMAND DISPATCH
# =========================================================

def handle_command(client, line, state):
    """Execute one command line and return the text to print."""
    try:
        parts = shlex.split(line)
    except ValueError as e:
        return f"Could not parse command: {e}"

    if not parts:
        return ""

    command, args = parts[0].lower(), parts[1:]

    if command in ("exit", "quit"):
        state.running = False
        return "Shutting down."

    if command == "help":
        return HELP_TEXT

    if command == "list":
        images = client.list_images()
        if not images:
            return "No images loaded."
        return "\n".join(
            f"{info.id}  frames={info.frame_count}  {info.source_path}" for info in images
        )

    if command == "load":
        if not args:
            return "Usage: load <path>"
        info = client.upload_image(args[0])
        if info is None:
            return f"Could not load '{args[0]}'."
        return f"Loaded {info.id} ({info.frame_count} frame(s))."

    if command == "delete":
        if not args:
            return "Usage: delete <id>"
        if client.delete_image(args[0]):
            return f"Deleted {args[0]}."
        return f"Image '{args[0]}' not found."

    if command == "clear":
        return "All images removed." if client.clear_images() else "Clear failed."

    if command == "describe":
        return _describe(client, args, state)

    if command == "provider":
        if not args:
            return f"Current describer: {state.active_describer()!r}"
        try:
            state.describer = get_describer(args[0])
        except ValueError as e:
            return str(e)
        return f"Switched to {state.describer!r}."

    if command == "model":
        if not args:
            return f"Current model: {state.active_describer().model}"
        state.describer = state.active_describer().with_model(args[0])
        return f"Switched to {state.describer!r}."

    return f"Unknown command '{command}'. Type 'help' for a list of commands."


def _describe(client, args, state):
    if not args:
        return "Usage: describe <id> [frame] [prompt...]"

    image_id, rest = args[0], args[1:]
    frame = 0
    if rest and rest[0].isdecimal():
        frame = int(rest[0])
        rest = rest[1:]
    prompt = " ".join(rest) or DEFAULT_PROMPT

    return describe_frame(client, image_id, frame, prompt, describer=state.active_describer())


# =========================================================
# MAIN
# =========================================================

def main():
    """Run the interactive loop against the configured API base URL."""
    if hasattr(sys.stdout, "reconfigure"):
        try:
            sys.stdout.reconfigure(encoding="utf-8", errors="ignore")
        except (AttributeError, ValueError):
            pass

    client = ApiClient()
    state = SessionState()

    print(f"imagehub client connected to {client.base_url}. (Type 'help' for commands)")
    print("-" * 60)

    while state.running:

        try:
            line = input("imagehub> ").strip()

        except EOFError:
            print()
            break

        except KeyboardInterrupt:
            print("\nOperation cancelled by user.")
            break

        if not line:
            continue

        print(handle_command(client, line, state))


if __name__ == "__main__":
    main()
