"""Per-event pipeline: enrich, classify, dispatch, compose and send."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

import structlog

from ..client.content_builders import compose_reply
from ..errors import DispatchError, PreconditionUnmet, ServiceFailure
from ..logging import get_logger
from ..types import InboundMessage
from .classify import classify
from .context import BridgeContext
from .router import Router

logger = get_logger("fuuka_bot.events")


def _reply_to_event_id(source: dict[str, Any]) -> str | None:
    content = source.get("content")
    if not isinstance(content, dict):
        return None
    relates_to = content.get("m.relates_to")
    if not isinstance(relates_to, dict):
        return None
    in_reply_to = relates_to.get("m.in_reply_to")
    if not isinstance(in_reply_to, dict):
        return None
    event_id = in_reply_to.get("event_id")
    return event_id if isinstance(event_id, str) and event_id else None


def message_from_event(room_id: str, event: Any) -> InboundMessage:
    """Build an ``InboundMessage`` from a ``nio.RoomMessageText`` event."""
    source = getattr(event, "source", None) or {}
    return InboundMessage(
        room_id=room_id,
        event_id=event.event_id,
        sender=event.sender,
        body=event.body or "",
        html_body=getattr(event, "formatted_body", None),
        reply_to_event_id=_reply_to_event_id(source),
        origin_server_ts=int(event.server_timestamp),
    )


async def _enrich_with_reply_sender(
    ctx: BridgeContext, msg: InboundMessage
) -> InboundMessage:
    if msg.reply_to_event_id is None or msg.reply_to_sender is not None:
        return msg
    sender = await ctx.client.get_event_sender(msg.room_id, msg.reply_to_event_id)
    if sender is None:
        return msg
    return replace(msg, reply_to_sender=sender)


async def handle_message(
    ctx: BridgeContext, router: Router, msg: InboundMessage
) -> str | None:
    """Process one message; returns the event id of the reply, if any."""
    if msg.sender == ctx.bot_user_id:
        return None
    with structlog.contextvars.bound_contextvars(
        room_id=msg.room_id, event_id=msg.event_id, sender=msg.sender
    ):
        msg = await _enrich_with_reply_sender(ctx, msg)
        request = classify(
            msg, ctx.features_for(msg.room_id), prefix=ctx.config.command.prefix
        )
        if request is None:
            return None
        try:
            reply = await router.dispatch(request, msg, ctx)
        except DispatchError as exc:
            if isinstance(exc.cause, (PreconditionUnmet, ServiceFailure)):
                logger.error(
                    "fuuka.dispatch.failed", route=exc.route, error=str(exc.cause)
                )
            else:
                logger.exception("fuuka.dispatch.failed", route=exc.route)
            return None
        if reply is None:
            return None
        content = compose_reply(reply, msg)
        try:
            return await ctx.client.send_message(msg.room_id, content)
        except ServiceFailure as exc:
            logger.warning("fuuka.reply.send_failed", error=str(exc))
            return None
