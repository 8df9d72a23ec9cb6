"""Turn an inbound message into at most one typed request.

Patterns are tried in a fixed order and the first one that matches wins:
slash-style actions, links, fortune draws, then prefixed commands. Anything
else yields None and is ignored.
"""

from __future__ import annotations

from ..config import DEFAULT_PREFIX, RoomFeatures
from ..types import InboundMessage
from .commands.parse import (
    parse_prefixed_command,
    split_command_args,
    strip_reply_fallback,
)
from .links import find_link
from .requests import Command, Fortune, Request, Slash

NAHIDA_TRIGGER = "@Nahida"

# (prefix, formatted, reversed); "//" must be tried before "/".
REPLY_ACTION_PREFIXES: tuple[tuple[str, bool, bool], ...] = (
    ("//", True, False),
    ("/", False, False),
    ("!!", False, False),
    ("\\", False, True),
    ("¡¡", False, True),
)
FORTUNE_TRIGGERS: tuple[tuple[str, bool], ...] = (("@@", False), ("@%", True))


def _is_name(value: str) -> bool:
    return bool(value) and not any(ch.isspace() for ch in value)


def _classify_explicit_slash(body: str) -> Slash | None:
    parts = body.split("/", 2)
    if len(parts) != 3:
        return None
    from_, to, text = parts
    if not (_is_name(from_) and _is_name(to)):
        return None
    formatted = text.endswith("/")
    if formatted:
        text = text[:-1]
    if not text.strip():
        return None
    return Slash(from_=from_, to=to, body=text, formatted=formatted)


def _classify_reply_slash(body: str, msg: InboundMessage) -> Slash | None:
    if msg.reply_to_sender is None:
        return None
    for prefix, formatted, reverse in REPLY_ACTION_PREFIXES:
        if not body.startswith(prefix):
            continue
        text = body[len(prefix) :].strip()
        if not text:
            return None
        if not formatted and text.split()[0].isascii():
            # "/ping" and friends are not actions.
            return None
        from_, to = msg.sender, msg.reply_to_sender
        if reverse:
            from_, to = to, from_
        return Slash(from_=from_, to=to, body=text, formatted=formatted)
    return None


def _classify_slash(body: str, msg: InboundMessage) -> Slash | None:
    return _classify_explicit_slash(body) or _classify_reply_slash(body, msg)


def _classify_link(body: str, features: RoomFeatures) -> Request | None:
    if body.startswith(NAHIDA_TRIGGER):
        text = body[len(NAHIDA_TRIGGER) :]
    elif features.link_preview:
        text = body
    else:
        return None
    return find_link(text, allow_pixiv=features.pixiv)


def _classify_fortune(body: str, msg: InboundMessage) -> Fortune | None:
    for trigger, prob in FORTUNE_TRIGGERS:
        if body.startswith(trigger):
            text = body[len(trigger) :].strip()
            return Fortune(member=msg.sender, text=text, prob=prob)
    return None


def _classify_command(body: str, prefix: str) -> Command | None:
    name, args_text = parse_prefixed_command(body, prefix)
    if name is None:
        return None
    return Command(name=name, args=split_command_args(args_text), args_text=args_text)


def classify(
    msg: InboundMessage,
    features: RoomFeatures,
    *,
    prefix: str = DEFAULT_PREFIX,
) -> Request | None:
    body = strip_reply_fallback(msg.body).strip()
    if not body:
        return None
    if features.jerryxiao:
        request = _classify_slash(body, msg)
        if request is not None:
            return request
    request = _classify_link(body, features)
    if request is not None:
        return request
    if features.fortune:
        request = _classify_fortune(body, msg)
        if request is not None:
            return request
    return _classify_command(body, prefix)
