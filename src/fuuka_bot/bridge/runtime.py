"""Bot runtime: startup, sync loop and per-room ordered processing."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any

import anyio
import httpx
import nio
from anyio.abc import TaskGroup
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from ..client.matrix import MatrixClient
from ..config import BotConfig
from ..errors import ServiceFailure
from ..ignores import IgnoreSet, resolve_ignore_state_path
from ..logging import get_logger
from ..render import build_environment
from ..services import build_http_client
from ..services.bilibili import BiliBiliClient
from ..services.crates import CratesClient
from ..services.hitokoto import HitokotoClient
from ..services.pixiv import PixivClient
from ..types import InboundMessage
from .context import BridgeContext, ChatClient
from .events import handle_message, message_from_event
from .routes import build_router

logger = get_logger("fuuka_bot.runtime")

ROOM_QUEUE_SIZE = 64


class RoomSequencer:
    """Runs one worker per room.

    Messages of one room are processed one at a time in arrival order;
    different rooms proceed concurrently.
    """

    def __init__(
        self,
        task_group: TaskGroup,
        process: Callable[[InboundMessage], Awaitable[Any]],
        *,
        buffer_size: int = ROOM_QUEUE_SIZE,
    ) -> None:
        self._task_group = task_group
        self._process = process
        self._buffer_size = buffer_size
        self._streams: dict[str, MemoryObjectSendStream[InboundMessage]] = {}

    async def submit(self, msg: InboundMessage) -> None:
        stream = self._streams.get(msg.room_id)
        if stream is None:
            send, receive = anyio.create_memory_object_stream[InboundMessage](
                self._buffer_size
            )
            self._streams[msg.room_id] = send
            self._task_group.start_soon(self._worker, msg.room_id, receive)
            stream = send
        await stream.send(msg)

    async def _worker(
        self, room_id: str, receive: MemoryObjectReceiveStream[InboundMessage]
    ) -> None:
        async with receive:
            async for msg in receive:
                try:
                    await self._process(msg)
                except Exception:
                    logger.exception(
                        "fuuka.runtime.message_failed",
                        room_id=room_id,
                        event_id=msg.event_id,
                    )

    async def aclose(self) -> None:
        streams, self._streams = self._streams, {}
        for stream in streams.values():
            await stream.aclose()


def build_context(
    config: BotConfig,
    client: ChatClient,
    http: httpx.AsyncClient,
    ignores: IgnoreSet,
) -> BridgeContext:
    services = config.services
    return BridgeContext(
        config=config,
        client=client,
        ignores=ignores,
        templates=build_environment(config.templates_dir),
        hitokoto=HitokotoClient(http, services.hitokoto) if services.hitokoto else None,
        pixiv=PixivClient(http, services.pixiv, token=config.pixiv.token)
        if config.pixiv.enabled
        else None,
        bilibili=BiliBiliClient(http, services.bilibili),
        crates=CratesClient(http, services.crates),
    )


def _build_nio_client(config: BotConfig) -> nio.AsyncClient:
    matrix = config.matrix
    client = nio.AsyncClient(
        matrix.homeserver,
        matrix.user_id,
        device_id=matrix.device_id or "",
        config=nio.AsyncClientConfig(store_sync_tokens=False, encryption_enabled=False),
    )
    client.restore_login(matrix.user_id, matrix.device_id or "", matrix.access_token)
    return client


async def _startup_sequence(client: nio.AsyncClient, *, timeout_ms: int) -> None:
    """Initial sync so that backlog from before startup is not answered."""
    response = await client.sync(timeout=timeout_ms, full_state=True)
    if isinstance(response, nio.ErrorResponse):
        raise ServiceFailure("matrix", f"initial sync failed: {response.message}")
    logger.info(
        "fuuka.runtime.synced",
        user_id=client.user_id,
        rooms=len(client.rooms),
    )


async def run_bot(config: BotConfig) -> None:
    timeout_ms = int(config.matrix.timeout * 1000)
    client = _build_nio_client(config)
    http = build_http_client(timeout=config.services.timeout)
    ignores = IgnoreSet(
        resolve_ignore_state_path(config.config_path)
        if config.config_path is not None
        else None
    )
    ctx = build_context(config, MatrixClient(client), http, ignores)
    router = build_router()
    try:
        await _startup_sequence(client, timeout_ms=timeout_ms)
        async with anyio.create_task_group() as task_group:
            sequencer = RoomSequencer(task_group, partial(handle_message, ctx, router))

            async def on_message(
                room: nio.MatrixRoom, event: nio.RoomMessageText
            ) -> None:
                await sequencer.submit(message_from_event(room.room_id, event))

            client.add_event_callback(on_message, nio.RoomMessageText)
            try:
                await client.sync_forever(timeout=timeout_ms, full_state=True)
            finally:
                await sequencer.aclose()
    finally:
        await http.aclose()
        await client.close()
