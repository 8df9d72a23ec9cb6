"""Core value types shared by the classifier, router and reply composer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from html import escape

MATRIX_TO = "https://matrix.to/#/"


@dataclass(frozen=True, slots=True)
class InboundMessage:
    """One delivered room message, built once per event."""

    room_id: str
    event_id: str
    sender: str
    body: str
    origin_server_ts: int
    html_body: str | None = None
    reply_to_event_id: str | None = None
    reply_to_sender: str | None = None


@dataclass(frozen=True, slots=True)
class RoomMember:
    user_id: str
    display_name: str | None = None

    @property
    def name(self) -> str:
        return self.display_name or self.user_id

    def pill(self) -> str:
        return f'<a href="{MATRIX_TO}{escape(self.user_id)}">{escape(self.name)}</a>'


@dataclass(frozen=True, slots=True)
class JoinedRoom:
    room_id: str
    name: str | None = None


class ThreadPolicy(Enum):
    NONE = "none"
    REPLY = "reply"


class MentionPolicy(Enum):
    NONE = "none"
    MENTION_SENDER = "mention_sender"


@dataclass(frozen=True, slots=True)
class ReplyPayload:
    """Handler output, consumed only by the reply composer."""

    plain_text: str
    html: str | None = None
    thread_policy: ThreadPolicy = ThreadPolicy.REPLY
    mention_policy: MentionPolicy = MentionPolicy.MENTION_SENDER
    mentions: tuple[str, ...] = ()
