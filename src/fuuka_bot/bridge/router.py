"""Ordered request routing.

The route table is an immutable tuple built once at startup. ``dispatch``
walks it in order and runs the first route whose request type and predicate
match; later routes are never consulted for that request.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from ..errors import DispatchError
from ..logging import get_logger
from ..types import InboundMessage, ReplyPayload
from .requests import Command, Request

if TYPE_CHECKING:
    from .context import BridgeContext

logger = get_logger("fuuka_bot.router")

Handler = Callable[[Any, InboundMessage, "BridgeContext"], Awaitable[ReplyPayload | None]]


@dataclass(frozen=True, slots=True)
class Route:
    name: str
    kind: type
    handler: Handler
    when: Callable[[Any], bool] | None = None
    privileged: bool = False
    bypass_ignore: bool = False

    def matches(self, request: Request) -> bool:
        if not isinstance(request, self.kind):
            return False
        return self.when is None or self.when(request)


def command_route(
    name: str,
    handler: Handler,
    *,
    privileged: bool = False,
    bypass_ignore: bool = False,
) -> Route:
    return Route(
        name=name,
        kind=Command,
        handler=handler,
        when=lambda request: request.name == name,
        privileged=privileged,
        bypass_ignore=bypass_ignore,
    )


class Router:
    def __init__(self, routes: Iterable[Route]) -> None:
        self._routes = tuple(routes)

    @property
    def routes(self) -> tuple[Route, ...]:
        return self._routes

    def match(self, request: Request) -> Route | None:
        for route in self._routes:
            if route.matches(request):
                return route
        return None

    async def dispatch(
        self,
        request: Request,
        msg: InboundMessage,
        ctx: BridgeContext,
    ) -> ReplyPayload | None:
        """Run the first matching route.

        Returns None for unmatched, unauthorized and ignored requests.
        Handler failures are raised as ``DispatchError``.
        """
        route = self.match(request)
        if route is None:
            logger.debug("fuuka.dispatch.no_route", request=type(request).__name__)
            return None
        if route.privileged and not ctx.is_admin(msg.sender):
            logger.debug("fuuka.dispatch.unauthorized", route=route.name)
            return None
        if not route.bypass_ignore and await ctx.ignores.is_ignored(
            msg.room_id, msg.sender
        ):
            logger.debug("fuuka.dispatch.ignored", route=route.name)
            return None
        with structlog.contextvars.bound_contextvars(route=route.name):
            try:
                reply = await route.handler(request, msg, ctx)
            except Exception as exc:
                raise DispatchError(route.name, exc) from exc
            logger.debug("fuuka.dispatch.done", replied=reply is not None)
        return reply
