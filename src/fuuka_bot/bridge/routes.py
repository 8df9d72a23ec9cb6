"""The route table.

Order matters: the router runs the first matching entry. Non-command
requests come first since the classifier never produces two variants for one
message; commands follow in ``BUILTIN_COMMAND_IDS`` order.
"""

from __future__ import annotations

from .actions import handle_fortune, handle_slash
from .commands import builtin
from .media import handle_bilibili_link, handle_crate_link, handle_pixiv_link
from .requests import BiliBiliLink, CrateLink, Fortune, PixivLink, Slash
from .router import Handler, Route, Router, command_route


def _builtin(name: str, handler: Handler, *, bypass_ignore: bool = False) -> Route:
    return command_route(
        name,
        handler,
        privileged=name in builtin.ADMIN_COMMAND_IDS,
        bypass_ignore=bypass_ignore,
    )


ROUTES: tuple[Route, ...] = (
    Route(name="jerryxiao", kind=Slash, handler=handle_slash),
    Route(name="nahida.pixiv", kind=PixivLink, handler=handle_pixiv_link),
    Route(name="nahida.bilibili", kind=BiliBiliLink, handler=handle_bilibili_link),
    Route(name="nahida.crates", kind=CrateLink, handler=handle_crate_link),
    Route(name="fortune", kind=Fortune, handler=handle_fortune),
    _builtin("ping", builtin.handle_ping),
    _builtin("help", builtin.handle_help),
    _builtin("user_id", builtin.handle_user_id),
    _builtin("room_id", builtin.handle_room_id),
    _builtin("delete", builtin.handle_delete),
    # Always reachable so an admin can undo a self-ignore.
    _builtin("ignore", builtin.handle_ignore, bypass_ignore=True),
    _builtin("unignore", builtin.handle_unignore, bypass_ignore=True),
    _builtin("hitokoto", builtin.handle_hitokoto),
    _builtin("pixiv", builtin.handle_pixiv),
    _builtin("bilibili", builtin.handle_bilibili),
    _builtin("crazy_thursday", builtin.handle_crazy_thursday),
    _builtin("rooms", builtin.handle_rooms),
)


def build_router() -> Router:
    return Router(ROUTES)
