"""Command parsing."""

from __future__ import annotations

COMMAND_PREFIX = "!"


def parse_command(text: str, prefix: str = COMMAND_PREFIX) -> tuple[str, str] | None:
    """Split a message into a command name and its arguments.

    Returns None if the text isn't a command. Exactly one whitespace
    character after the name is consumed; the rest is returned verbatim.

    >>> parse_command("!roll 20")
    ('roll', '20')
    >>> parse_command("!cmd  ")
    ('cmd', ' ')
    """
    if not text.startswith(prefix) or len(text) == len(prefix):
        return None

    body = text[len(prefix) :]
    for pos, char in enumerate(body):
        if char.isspace():
            # Commands cannot be empty.
            if pos == 0:
                return None
            return body[:pos], body[pos + 1 :]

    return body, ""
