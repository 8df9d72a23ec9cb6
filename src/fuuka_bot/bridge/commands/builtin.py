"""Built-in prefixed commands."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from html import escape
from typing import TYPE_CHECKING

from ...errors import InvalidUserId, RequiresReply, UnresolvedReplyTarget
from ...logging import get_logger
from ...types import InboundMessage, ReplyPayload
from ..media import illust_reply, ranking_reply, video_reply
from ..requests import Command

if TYPE_CHECKING:
    from ..context import BridgeContext

logger = get_logger("fuuka_bot.commands")

BUILTIN_COMMAND_IDS = (
    "ping",
    "help",
    "user_id",
    "room_id",
    "delete",
    "ignore",
    "unignore",
    "hitokoto",
    "pixiv",
    "bilibili",
    "crazy_thursday",
    "rooms",
)
ADMIN_COMMAND_IDS = frozenset({"ignore", "unignore", "rooms"})

COMMAND_HELP = {
    "ping": "reply latency",
    "help": "show this message",
    "user_id": "show your user id, or the replied-to sender's",
    "room_id": "show this room's id",
    "delete": "delete a replied-to message sent by the bot",
    "ignore": "(admin) ignore a user: `ignore [user] [--global]`",
    "unignore": "(admin) stop ignoring a user: `unignore [user] [--global]`",
    "hitokoto": "a random sentence from hitokoto.cn",
    "pixiv": "`pixiv` for the daily ranking, `pixiv <illust_id>` for one work",
    "bilibili": "`bilibili <video_id>` for video info",
    "crazy_thursday": "time until next Thursday",
    "rooms": "(admin) list joined rooms",
}

PIXIV_USAGE = "usage: `pixiv` or `pixiv <illust_id>`"
BILIBILI_USAGE = "usage: `bilibili <video_id>`"
GLOBAL_FLAG = "--global"
PING_SECONDS_THRESHOLD_MS = 2000
UTC_PLUS_8 = timezone(timedelta(hours=8))
THURSDAY = 3
DONE = "Done."
USER_ID_RE = re.compile(r"^@[^:\s]+:\S+$")


def _reply(text: str, html: str | None = None) -> ReplyPayload:
    return ReplyPayload(plain_text=text, html=html)


def format_latency(delta_ms: int) -> str:
    delta_ms = max(delta_ms, 0)
    if delta_ms < PING_SECONDS_THRESHOLD_MS:
        return f"Pong after {delta_ms}ms"
    return f"Pong after {delta_ms / 1000:.3f}s"


async def handle_ping(
    request: Command, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload:
    now_ms = int(ctx.clock() * 1000)
    return _reply(format_latency(now_ms - msg.origin_server_ts))


async def handle_help(
    request: Command, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload:
    prefix = ctx.config.command.prefix
    lines = [f"{prefix}{name}: {COMMAND_HELP[name]}" for name in BUILTIN_COMMAND_IDS]
    items = "".join(
        f"<li><code>{escape(prefix + name)}</code>: {escape(COMMAND_HELP[name])}</li>"
        for name in BUILTIN_COMMAND_IDS
    )
    return _reply(
        "Fuuka Bot\nCommands:\n" + "\n".join(lines),
        f"<p>Fuuka Bot</p><p>Commands:</p><ul>{items}</ul>",
    )


def _reply_sender(msg: InboundMessage) -> str | None:
    """Sender of the replied-to event, or None when there is no reply target."""
    if msg.reply_to_event_id is None:
        return None
    if msg.reply_to_sender is None:
        raise UnresolvedReplyTarget(msg.reply_to_event_id)
    return msg.reply_to_sender


async def handle_user_id(
    request: Command, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload:
    return _reply(_reply_sender(msg) or msg.sender)


async def handle_room_id(
    request: Command, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload:
    return _reply(msg.room_id)


async def handle_delete(
    request: Command, msg: InboundMessage, ctx: BridgeContext
) -> None:
    if msg.reply_to_event_id is None:
        raise RequiresReply()
    if msg.reply_to_sender != ctx.bot_user_id:
        logger.debug(
            "fuuka.delete.not_own_message",
            event_id=msg.reply_to_event_id,
            target_sender=msg.reply_to_sender,
        )
        return None
    await ctx.client.redact(
        msg.room_id, msg.reply_to_event_id, reason=f"requested by {msg.sender}"
    )
    return None


@dataclass(frozen=True, slots=True)
class IgnoreTarget:
    user_id: str
    room_id: str | None


async def _resolve_ignore_target(
    request: Command, msg: InboundMessage, ctx: BridgeContext
) -> IgnoreTarget:
    global_scope = GLOBAL_FLAG in request.args
    users = [arg for arg in request.args if arg != GLOBAL_FLAG]
    if users:
        user_id = await _resolve_user_id(ctx, msg.room_id, users[0])
    else:
        user_id = _reply_sender(msg)
        if user_id is None:
            raise RequiresReply()
    return IgnoreTarget(
        user_id=user_id,
        room_id=None if global_scope else msg.room_id,
    )


async def _resolve_user_id(ctx: BridgeContext, room_id: str, value: str) -> str:
    if USER_ID_RE.match(value):
        return value
    member = await ctx.client.get_member(room_id, value)
    if member is None:
        raise InvalidUserId(value)
    return member.user_id


async def handle_ignore(
    request: Command, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload:
    target = await _resolve_ignore_target(request, msg, ctx)
    await ctx.ignores.ignore(target.room_id, target.user_id)
    return _reply(DONE)


async def handle_unignore(
    request: Command, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload:
    target = await _resolve_ignore_target(request, msg, ctx)
    await ctx.ignores.unignore(target.room_id, target.user_id)
    return _reply(DONE)


async def handle_hitokoto(
    request: Command, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload | None:
    if ctx.hitokoto is None:
        return None
    quote = await ctx.hitokoto.fetch()
    who = quote.attribution or ""
    plain = f"『{quote.text}』——{who}「{quote.source}」\nFrom {quote.url}"
    html = (
        f"<p><b>『{escape(quote.text)}』</b><br/>"
        f"——{escape(who)}「{escape(quote.source)}」</p>"
        f"<p>From {escape(quote.url)}</p>"
    )
    return _reply(plain, html)


async def handle_pixiv(
    request: Command, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload | None:
    if not ctx.features_for(msg.room_id).pixiv:
        return None
    if not request.args:
        return await ranking_reply(ctx)
    if len(request.args) != 1 or not request.args[0].isdecimal():
        return _reply(PIXIV_USAGE)
    return await illust_reply(ctx, msg.room_id, int(request.args[0]))


async def handle_bilibili(
    request: Command, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload | None:
    if len(request.args) != 1:
        return _reply(BILIBILI_USAGE)
    return await video_reply(ctx, request.args[0])


def time_until_thursday(now: datetime) -> str:
    now = now.astimezone(UTC_PLUS_8)
    if now.weekday() == THURSDAY:
        return "Crazy Thursday!"
    days_ahead = (THURSDAY - now.weekday()) % 7
    target_day = now.date() + timedelta(days=days_ahead)
    target = datetime.combine(target_day, datetime.min.time(), tzinfo=UTC_PLUS_8)
    remaining = int((target - now).total_seconds())
    days, remaining = divmod(remaining, 86400)
    hours, remaining = divmod(remaining, 3600)
    minutes, seconds = divmod(remaining, 60)
    return (
        f"Time until next thursday ({target_day.isoformat()}): "
        f"{days} days, {hours:02}:{minutes:02}:{seconds:02}"
    )


async def handle_crazy_thursday(
    request: Command, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload:
    return _reply(time_until_thursday(ctx.now()))


async def handle_rooms(
    request: Command, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload:
    rooms = await ctx.client.joined_rooms()
    lines = [f"- {room.name or room.room_id} ({room.room_id})" for room in rooms]
    items = "".join(
        f"<li>{escape(room.name or room.room_id)} ({escape(room.room_id)})</li>"
        for room in rooms
    )
    return _reply(
        "Joined rooms:\n" + "\n".join(lines),
        f"<p>Joined rooms:</p><ul>{items}</ul>",
    )
