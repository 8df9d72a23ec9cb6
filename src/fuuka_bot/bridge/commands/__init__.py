"""Prefixed command parsing and handlers."""

from __future__ import annotations

from .builtin import ADMIN_COMMAND_IDS, BUILTIN_COMMAND_IDS
from .parse import parse_prefixed_command, split_command_args, strip_reply_fallback

__all__ = [
    "ADMIN_COMMAND_IDS",
    "BUILTIN_COMMAND_IDS",
    "parse_prefixed_command",
    "split_command_args",
    "strip_reply_fallback",
]
