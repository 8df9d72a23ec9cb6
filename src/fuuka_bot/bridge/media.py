"""Link previews and media lookups rendered through templates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..logging import get_logger
from ..render import render_pair
from ..services.bilibili import Video
from ..services.crates import Crate
from ..services.pixiv import Illust, RankingItem
from ..types import InboundMessage, ReplyPayload
from .requests import BiliBiliLink, CrateLink, PixivLink

if TYPE_CHECKING:
    from .context import BridgeContext

logger = get_logger("fuuka_bot.media")


def illust_context(illust: Illust, triggers: list[str]) -> dict[str, Any]:
    return {
        "id": illust.id,
        "title": illust.title,
        "author": {"id": illust.author_id, "name": illust.author_name},
        "tags": [
            {"original": tag.original, "translated": tag.translated}
            for tag in illust.tags
        ],
        "triggers": triggers,
    }


def ranking_context(items: list[RankingItem]) -> dict[str, Any]:
    return {
        "items": [
            {"id": item.id, "title": item.title, "tags": list(item.tags)}
            for item in items
        ]
    }


def video_context(video: Video) -> dict[str, Any]:
    return {
        "id": video.bvid,
        "title": video.title,
        "description_lines": video.description.splitlines() if video.description else [],
        "tags": list(video.tags),
        "author": {"id": video.owner_id, "name": video.owner_name},
        "counts": dict(video.counts),
    }


def crate_context(crate: Crate, version: str | None) -> dict[str, Any]:
    version = version or crate.max_stable_version
    info = crate.version(version)
    return {
        "name": crate.name,
        "version": version,
        "description": crate.description,
        "msrv": info.rust_version if info is not None else None,
        "documentation": crate.documentation or f"https://docs.rs/{crate.name}/{version}",
        "repository": crate.repository,
    }


def _r18_allowed(ctx: BridgeContext, room_id: str) -> bool:
    return ctx.config.pixiv.r18 and ctx.features_for(room_id).pixiv_r18


async def illust_reply(
    ctx: BridgeContext, room_id: str, illust_id: int
) -> ReplyPayload | None:
    if ctx.pixiv is None:
        return None
    illust = await ctx.pixiv.illust(illust_id)
    if illust.is_r18 and not _r18_allowed(ctx, room_id):
        logger.info("fuuka.pixiv.r18_filtered", illust_id=illust_id)
        return None
    triggers = ctx.config.pixiv.check_traps(
        {tag.original for tag in illust.tags}, room_id
    )
    plain, html = render_pair(
        ctx.templates, "pixiv/illust", illust_context(illust, triggers)
    )
    return ReplyPayload(plain_text=plain, html=html)


async def ranking_reply(ctx: BridgeContext) -> ReplyPayload | None:
    if ctx.pixiv is None:
        return None
    items = await ctx.pixiv.ranking(limit=5)
    plain, html = render_pair(ctx.templates, "pixiv/ranking", ranking_context(items))
    return ReplyPayload(plain_text=plain, html=html)


async def video_reply(ctx: BridgeContext, video_id: str) -> ReplyPayload | None:
    if ctx.bilibili is None:
        return None
    video = await ctx.bilibili.video(video_id)
    plain, html = render_pair(ctx.templates, "bilibili/video", video_context(video))
    return ReplyPayload(plain_text=plain, html=html)


async def handle_pixiv_link(
    request: PixivLink, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload | None:
    return await illust_reply(ctx, msg.room_id, request.illust_id)


async def handle_bilibili_link(
    request: BiliBiliLink, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload | None:
    return await video_reply(ctx, request.video_id)


async def handle_crate_link(
    request: CrateLink, msg: InboundMessage, ctx: BridgeContext
) -> ReplyPayload | None:
    if ctx.crates is None:
        return None
    crate = await ctx.crates.lookup(request.name)
    plain, html = render_pair(
        ctx.templates, "crates/crate", crate_context(crate, request.version)
    )
    return ReplyPayload(plain_text=plain, html=html)
