"""Recognition of links to the supported content hosts."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from .requests import BiliBiliLink, CrateLink, Link, PixivLink

URL_RE = re.compile(r"https?://[^\s<>\"'，。！？）」]+")
BILIBILI_ID_RE = re.compile(r"^(?:BV[0-9A-Za-z]{10}|av\d+)$")
CRATE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")
TRAILING_PUNCT = ".,;:!?)]"

PIXIV_HOSTS = frozenset({"pixiv.net", "www.pixiv.net"})
BILIBILI_HOSTS = frozenset({"bilibili.com", "www.bilibili.com", "m.bilibili.com"})
CRATES_HOSTS = frozenset({"crates.io"})


def _path_segments(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def _pixiv_link(url: str, segments: list[str]) -> PixivLink | None:
    # /artworks/<id>, /<lang>/artworks/<id>, /i/<id>
    if len(segments) == 3 and segments[1] == "artworks":
        segments = segments[1:]
    if len(segments) != 2 or segments[0] not in ("artworks", "i"):
        return None
    if not segments[1].isdecimal():
        return None
    return PixivLink(url=url, illust_id=int(segments[1]))


def _bilibili_link(url: str, segments: list[str]) -> BiliBiliLink | None:
    if len(segments) != 2 or segments[0] != "video":
        return None
    if not BILIBILI_ID_RE.match(segments[1]):
        return None
    return BiliBiliLink(url=url, video_id=segments[1])


def _crate_link(url: str, segments: list[str]) -> CrateLink | None:
    if len(segments) not in (2, 3) or segments[0] != "crates":
        return None
    if not CRATE_NAME_RE.match(segments[1]):
        return None
    version = segments[2] if len(segments) == 3 else None
    return CrateLink(url=url, name=segments[1], version=version)


def parse_link(url: str, *, allow_pixiv: bool = True) -> Link | None:
    """Map ``url`` to a typed link, or None when it is not recognized."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    host = (parts.hostname or "").lower()
    segments = _path_segments(parts.path)
    if host in PIXIV_HOSTS:
        return _pixiv_link(url, segments) if allow_pixiv else None
    if host in BILIBILI_HOSTS:
        return _bilibili_link(url, segments)
    if host in CRATES_HOSTS:
        return _crate_link(url, segments)
    return None


def find_link(text: str, *, allow_pixiv: bool = True) -> Link | None:
    """Return the first recognized link in ``text``; malformed ones are skipped."""
    for match in URL_RE.finditer(text):
        url = match.group(0).rstrip(TRAILING_PUNCT)
        link = parse_link(url, allow_pixiv=allow_pixiv)
        if link is not None:
            return link
    return None
