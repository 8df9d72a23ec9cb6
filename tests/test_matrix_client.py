"""Tests for the matrix-nio chat client adapter."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, cast
from unittest.mock import AsyncMock

import nio
import pytest

from fuuka_bot.client.matrix import MatrixClient
from fuuka_bot.errors import ServiceFailure
from fuuka_bot.types import JoinedRoom, RoomMember

from fuuka_fixtures import ALICE, BOB, BOT_ID, ROOM_ID


def _user(user_id: str, display_name: str | None) -> SimpleNamespace:
    return SimpleNamespace(user_id=user_id, display_name=display_name)


def _client(**overrides: Any) -> MatrixClient:
    room = SimpleNamespace(
        display_name="Test Room",
        users={ALICE: _user(ALICE, "Alice")},
    )
    raw = SimpleNamespace(
        user_id=BOT_ID,
        rooms={ROOM_ID: room},
        room_send=AsyncMock(return_value=SimpleNamespace(event_id="$sent")),
        room_redact=AsyncMock(return_value=SimpleNamespace(event_id="$redaction")),
        room_get_event=AsyncMock(
            return_value=SimpleNamespace(event=SimpleNamespace(sender=BOB))
        ),
        joined_members=AsyncMock(
            return_value=SimpleNamespace(members=[_user(BOB, "Bob")])
        ),
        joined_rooms=AsyncMock(
            return_value=SimpleNamespace(rooms=[ROOM_ID, "!uncached:example.org"])
        ),
    )
    for key, value in overrides.items():
        setattr(raw, key, value)
    return MatrixClient(cast(nio.AsyncClient, raw))


@pytest.mark.anyio
async def test_send_message_returns_event_id() -> None:
    client = _client()
    content = {"msgtype": "m.text", "body": "hi"}

    assert await client.send_message(ROOM_ID, content) == "$sent"
    client.raw.room_send.assert_awaited_once_with(
        ROOM_ID,
        message_type="m.room.message",
        content=content,
        ignore_unverified_devices=True,
    )


@pytest.mark.anyio
async def test_send_error_raises_service_failure() -> None:
    client = _client(room_send=AsyncMock(return_value=nio.ErrorResponse("forbidden")))

    with pytest.raises(ServiceFailure, match="room_send failed: forbidden"):
        await client.send_message(ROOM_ID, {"body": "hi"})


@pytest.mark.anyio
async def test_redact_passes_reason() -> None:
    client = _client()

    await client.redact(ROOM_ID, "$old", reason="requested by @alice:example.org")

    client.raw.room_redact.assert_awaited_once_with(
        ROOM_ID, "$old", reason="requested by @alice:example.org"
    )


@pytest.mark.anyio
async def test_get_event_sender() -> None:
    assert await _client().get_event_sender(ROOM_ID, "$x") == BOB

    failing = _client(
        room_get_event=AsyncMock(return_value=nio.ErrorResponse("not found"))
    )
    assert await failing.get_event_sender(ROOM_ID, "$x") is None


@pytest.mark.anyio
async def test_get_member_from_cache_by_id_and_name() -> None:
    client = _client()

    assert await client.get_member(ROOM_ID, ALICE) == RoomMember(ALICE, "Alice")
    assert await client.get_member(ROOM_ID, "Alice") == RoomMember(ALICE, "Alice")
    assert await client.get_member(ROOM_ID, "@Alice") == RoomMember(ALICE, "Alice")
    client.raw.joined_members.assert_not_awaited()


@pytest.mark.anyio
async def test_get_member_falls_back_to_joined_members() -> None:
    client = _client()

    assert await client.get_member(ROOM_ID, "Bob") == RoomMember(BOB, "Bob")
    assert await client.get_member(ROOM_ID, "nobody") is None


@pytest.mark.anyio
async def test_joined_rooms_uses_cached_names() -> None:
    rooms = await _client().joined_rooms()
    assert rooms == [
        JoinedRoom(ROOM_ID, "Test Room"),
        JoinedRoom("!uncached:example.org", None),
    ]
