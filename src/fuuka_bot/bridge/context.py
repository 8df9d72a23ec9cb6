"""Shared state handed to every handler."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from typing import Any, Protocol

import jinja2

from ..config import BotConfig, RoomFeatures
from ..ignores import IgnoreSet
from ..services.bilibili import BiliBiliClient
from ..services.crates import CratesClient
from ..services.hitokoto import HitokotoClient
from ..services.pixiv import PixivClient
from ..types import JoinedRoom, RoomMember
from .actions import FortuneDraw, seeded_draw


class ChatClient(Protocol):
    """The subset of the protocol client the handlers use."""

    @property
    def user_id(self) -> str: ...

    async def send_message(self, room_id: str, content: dict[str, Any]) -> str | None: ...

    async def redact(
        self, room_id: str, event_id: str, *, reason: str | None = None
    ) -> None: ...

    async def get_member(self, room_id: str, user: str) -> RoomMember | None: ...

    async def get_event_sender(self, room_id: str, event_id: str) -> str | None: ...

    async def joined_rooms(self) -> list[JoinedRoom]: ...


@dataclass(slots=True)
class BridgeContext:
    config: BotConfig
    client: ChatClient
    ignores: IgnoreSet
    templates: jinja2.Environment
    hitokoto: HitokotoClient | None = None
    pixiv: PixivClient | None = None
    bilibili: BiliBiliClient | None = None
    crates: CratesClient | None = None
    clock: Callable[[], float] = time.time
    fortune_draw: FortuneDraw = seeded_draw

    @property
    def bot_user_id(self) -> str:
        return self.client.user_id

    def features_for(self, room_id: str) -> RoomFeatures:
        return self.config.features_for(room_id)

    def is_admin(self, user_id: str) -> bool:
        return self.config.admin_user is not None and user_id == self.config.admin_user

    def now(self, tz: tzinfo = UTC) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=tz)
