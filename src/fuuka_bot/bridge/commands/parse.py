"""Command parsing utilities."""

from __future__ import annotations

import shlex


def strip_reply_fallback(text: str) -> str:
    """Drop the quoted ``> <@user> ...`` block clients prepend to replies."""
    lines = text.splitlines()
    if not lines or not lines[0].startswith("> <"):
        return text
    index = 0
    while index < len(lines) and lines[index].startswith(">"):
        index += 1
    if index < len(lines) and not lines[index].strip():
        index += 1
    return "\n".join(lines[index:])


def parse_prefixed_command(text: str, prefix: str) -> tuple[str | None, str]:
    """Parse a prefixed command from text, returning (command, args_text).

    Args:
        text: The message text to parse.
        prefix: The configured command prefix, e.g. ``%%``.

    Returns:
        A tuple of (command, args_text) where command is None if the text
        does not start with the prefix. Command names are kept as typed.
    """
    stripped = text.lstrip()
    if not prefix or not stripped.startswith(prefix):
        return None, text
    rest = stripped[len(prefix) :]
    lines = rest.splitlines()
    if not lines:
        return None, text
    first_line = lines[0]
    if not first_line or first_line[0].isspace():
        return None, text
    token, *remainder = first_line.split(None, 1)
    args_text = remainder[0] if remainder else ""
    if len(lines) > 1:
        tail = "\n".join(lines[1:])
        args_text = f"{args_text}\n{tail}" if args_text else tail
    return token, args_text.strip()


def split_command_args(args_text: str) -> tuple[str, ...]:
    """Shell-like split so quoted display names stay one argument.

    Unbalanced quotes fall back to plain whitespace splitting.
    """
    if not args_text.strip():
        return ()
    try:
        return tuple(shlex.split(args_text))
    except ValueError:
        return tuple(args_text.split())
