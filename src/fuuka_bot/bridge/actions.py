"""Slash-style actions and fortune draws."""

from __future__ import annotations

import random
import zlib
from collections.abc import Callable
from datetime import date
from html import escape
from string import Template
from typing import TYPE_CHECKING

from ..errors import MissingParticipant
from ..logging import get_logger
from ..types import InboundMessage, MentionPolicy, ReplyPayload, RoomMember
from .requests import Fortune, Slash

if TYPE_CHECKING:
    from .context import BridgeContext

logger = get_logger("fuuka_bot.actions")

# (user_id, query, day) -> (value in [0, 1], lucky)
FortuneDraw = Callable[[str, str, date], tuple[float, bool]]

CAUSATIVE_PREFIXES = ("把", "拿", "被", "将", "令", "使", "让", "给", "替")
FORTUNE_CHOICES = ("大凶", "凶", "小凶", "尚可", "小吉", "吉", "大吉")
NO_FORMAT_SLOT = "No format slot ${from} ${to} found!"


def _is_cjk_word(word: str) -> bool:
    return all(not ch.isascii() for ch in word)


def render_action(
    from_member: RoomMember, to_member: RoomMember, text: str
) -> tuple[str, str] | None:
    """Render ``from`` doing ``text`` to ``to`` as (plain, html)."""
    words = text.split()
    if not words:
        return None
    verb = words[0]
    src, dst = f"@{from_member.name}", f"@{to_member.name}"
    src_pill, dst_pill = from_member.pill(), to_member.pill()

    if not _is_cjk_word(verb):
        rest = " ".join(words[1:])
        tail = f" {rest}" if rest else ""
        return (
            f"{src} {verb} {dst}{tail}",
            f"{src_pill} {escape(verb)} {dst_pill}{escape(tail)}",
        )

    if verb.startswith(CAUSATIVE_PREFIXES):
        # 把 @b 吃了 -> "@a 把 @b 吃了"
        obj = words[1].removesuffix("了") if len(words) > 1 else ""
        extra = words[2].removesuffix("了") if len(words) > 2 else ""
        phrase = f"{obj}了{extra}"
        return (
            f"{src} {verb} {dst} {phrase}",
            f"{src_pill} {escape(verb)} {dst_pill} {escape(phrase)}",
        )

    target = f" 的{words[1].removeprefix('了')}" if len(words) > 1 else ""
    if (len(verb) == 2 and verb[0] == verb[1]) or (
        len(verb) == 3 and verb[1] == "了" and verb[0] == verb[2]
    ):
        # 摸摸 / 摸了摸
        action = f"{verb[0]}了{verb[0]}"
    else:
        action = f"{verb.removesuffix('了')}了"
    return (
        f"{src} {action} {dst}{target}",
        f"{src_pill} {escape(action)} {dst_pill}{escape(target)}",
    )


def render_formatted(
    from_member: RoomMember, to_member: RoomMember, text: str
) -> tuple[str, str] | None:
    """Substitute ``${from}`` and ``${to}``; None when a slot is missing."""
    if "${from}" not in text or "${to}" not in text:
        return None
    text = text.strip()
    plain = Template(text).safe_substitute(
        {"from": f"@{from_member.name}", "to": f"@{to_member.name}"}
    )
    html = Template(escape(text, quote=False)).safe_substitute(
        {"from": from_member.pill(), "to": to_member.pill()}
    )
    return plain, html


async def _resolve_member(ctx: BridgeContext, room_id: str, who: str) -> RoomMember:
    member = await ctx.client.get_member(room_id, who)
    if member is None:
        raise MissingParticipant(who)
    return member


async def handle_slash(
    request: Slash, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload | None:
    from_member = await _resolve_member(ctx, msg.room_id, request.from_)
    to_member = await _resolve_member(ctx, msg.room_id, request.to)
    if request.formatted:
        rendered = render_formatted(from_member, to_member, request.body)
        if rendered is None:
            return ReplyPayload(plain_text=NO_FORMAT_SLOT)
    else:
        rendered = render_action(from_member, to_member, request.body)
        if rendered is None:
            return None
    plain, html = rendered
    return ReplyPayload(
        plain_text=plain,
        html=html,
        mention_policy=MentionPolicy.NONE,
        mentions=(from_member.user_id, to_member.user_id),
    )


def _fortune_seed(user_id: str, query: str, day: date) -> int:
    user_hash = zlib.crc32(user_id.encode())
    stamp = f"{day:%Y%m%d}{user_hash}"
    if not query:
        return int(stamp)
    query_hash = zlib.crc32(query.encode())
    return (query_hash << 32) | zlib.crc32(stamp.encode())


def seeded_draw(user_id: str, query: str, day: date) -> tuple[float, bool]:
    """Stable draw for one user, query and day."""
    rng = random.Random(_fortune_seed(user_id, query, day))
    value = rng.randint(0, 10000) / 10000
    return value, rng.random() < 0.5


def format_fortune(
    member: RoomMember, query: str, *, prob: bool, value: float, lucky: bool
) -> tuple[str, str]:
    if prob:
        result = f"{(value if lucky else 1 - value) * 100:.2f}%"
    else:
        index = min(int(value * len(FORTUNE_CHOICES)), len(FORTUNE_CHOICES) - 1)
        result = FORTUNE_CHOICES[index]
    name, pill = f"@{member.name}", member.pill()
    if not query:
        if prob:
            line = f"汝今天{'行大运' if lucky else '倒大霉'}概率是 {result}"
        else:
            line = f"汝的今日运势: {result}"
        return f"你好, {name}\n{line}", f"你好, {pill}<br/>{escape(line)}"
    if prob:
        outcome = f"此事有 {result} 的概率{'发生' if lucky else '不发生'}"
    else:
        outcome = result
    return (
        f"你好, {name}\n所求事项: {query}\n结果: {outcome}",
        f"你好, {pill}<br/>所求事项: {escape(query)}<br/>结果: {escape(outcome)}",
    )


async def handle_fortune(
    request: Fortune, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload:
    member = await ctx.client.get_member(msg.room_id, request.member)
    if member is None:
        member = RoomMember(user_id=request.member)
    value, lucky = ctx.fortune_draw(request.member, request.text, ctx.now().date())
    plain, html = format_fortune(
        member, request.text, prob=request.prob, value=value, lucky=lucky
    )
    logger.debug("fuuka.fortune.drawn", user_id=member.user_id, prob=request.prob)
    return ReplyPayload(plain_text=plain, html=html)
