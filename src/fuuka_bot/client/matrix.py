"""matrix-nio backed implementation of the chat client used by handlers."""

from __future__ import annotations

from typing import Any

import nio

from ..errors import ServiceFailure
from ..logging import get_logger
from ..types import JoinedRoom, RoomMember

logger = get_logger("fuuka_bot.client.matrix")

SERVICE = "matrix"


def _check(response: Any, action: str) -> Any:
    if isinstance(response, nio.ErrorResponse):
        raise ServiceFailure(SERVICE, f"{action} failed: {response.message}")
    return response


class MatrixClient:
    """Adapter over ``nio.AsyncClient``."""

    def __init__(self, client: nio.AsyncClient) -> None:
        self._client = client

    @property
    def raw(self) -> nio.AsyncClient:
        return self._client

    @property
    def user_id(self) -> str:
        return self._client.user_id

    async def send_message(self, room_id: str, content: dict[str, Any]) -> str | None:
        response = await self._client.room_send(
            room_id,
            message_type="m.room.message",
            content=content,
            ignore_unverified_devices=True,
        )
        response = _check(response, "room_send")
        return getattr(response, "event_id", None)

    async def redact(
        self, room_id: str, event_id: str, *, reason: str | None = None
    ) -> None:
        response = await self._client.room_redact(room_id, event_id, reason=reason)
        _check(response, "room_redact")
        logger.info("fuuka.matrix.redacted", room_id=room_id, event_id=event_id)

    async def get_event_sender(self, room_id: str, event_id: str) -> str | None:
        response = await self._client.room_get_event(room_id, event_id)
        if isinstance(response, nio.ErrorResponse):
            logger.warning(
                "fuuka.matrix.get_event_failed",
                room_id=room_id,
                event_id=event_id,
                error=response.message,
            )
            return None
        return getattr(response.event, "sender", None)

    def _cached_member(self, room_id: str, user: str) -> RoomMember | None:
        room = self._client.rooms.get(room_id)
        if room is None:
            return None
        cached = room.users.get(user)
        if cached is not None:
            return RoomMember(user_id=cached.user_id, display_name=cached.display_name)
        names = {user, user.removeprefix("@")}
        for candidate in room.users.values():
            if candidate.display_name in names:
                return RoomMember(
                    user_id=candidate.user_id, display_name=candidate.display_name
                )
        return None

    async def get_member(self, room_id: str, user: str) -> RoomMember | None:
        """Resolve ``user`` (a user id or display name) to a member of the room."""
        member = self._cached_member(room_id, user)
        if member is not None:
            return member
        response = await self._client.joined_members(room_id)
        if isinstance(response, nio.ErrorResponse):
            logger.warning(
                "fuuka.matrix.joined_members_failed",
                room_id=room_id,
                error=response.message,
            )
            return None
        names = {user, user.removeprefix("@")}
        for candidate in response.members:
            if candidate.user_id == user or candidate.display_name in names:
                return RoomMember(
                    user_id=candidate.user_id, display_name=candidate.display_name
                )
        return None

    async def joined_rooms(self) -> list[JoinedRoom]:
        response = _check(await self._client.joined_rooms(), "joined_rooms")
        rooms: list[JoinedRoom] = []
        for room_id in response.rooms:
            cached = self._client.rooms.get(room_id)
            rooms.append(
                JoinedRoom(
                    room_id=room_id,
                    name=cached.display_name if cached is not None else None,
                )
            )
        return rooms
