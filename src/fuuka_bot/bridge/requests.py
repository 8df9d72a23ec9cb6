"""Typed requests produced by the classifier.

``Request`` is a closed union: every classified message becomes exactly one
of these variants, and the route table matches on the variant type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True, slots=True)
class Command:
    name: str
    args: tuple[str, ...] = ()
    args_text: str = ""


@dataclass(frozen=True, slots=True)
class Slash:
    """Slash-style action of ``from_`` on ``to``.

    ``from_`` and ``to`` are user ids or display names; the handler resolves
    them against the room.
    """

    from_: str
    to: str
    body: str
    formatted: bool = False


@dataclass(frozen=True, slots=True)
class PixivLink:
    url: str
    illust_id: int


@dataclass(frozen=True, slots=True)
class BiliBiliLink:
    url: str
    video_id: str


@dataclass(frozen=True, slots=True)
class CrateLink:
    url: str
    name: str
    version: str | None = None


@dataclass(frozen=True, slots=True)
class Fortune:
    member: str
    text: str
    prob: bool


Link: TypeAlias = PixivLink | BiliBiliLink | CrateLink
Request: TypeAlias = Command | Slash | PixivLink | BiliBiliLink | CrateLink | Fortune
