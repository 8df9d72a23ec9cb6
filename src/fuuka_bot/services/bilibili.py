"""bilibili video page scraper."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

import httpx

from ..errors import ServiceFailure
from . import _get

SERVICE = "bilibili"

INITIAL_STATE_RE = re.compile(
    r"window\.__INITIAL_STATE__\s*=\s*(?P<json>\{.+?\})\s*;\s*\(function", re.DOTALL
)
INITIAL_STATE_FALLBACK_RE = re.compile(
    r"window\.__INITIAL_STATE__\s*=\s*(?P<json>\{.+\})\s*;", re.DOTALL
)
STAT_KEYS = ("view", "like", "coin", "favorite", "danmaku", "reply", "share")


@dataclass(frozen=True, slots=True)
class Video:
    bvid: str
    title: str
    description: str | None
    tags: tuple[str, ...]
    owner_id: int
    owner_name: str
    counts: dict[str, int]


def extract_initial_state(page: str) -> dict[str, Any]:
    for pattern in (INITIAL_STATE_RE, INITIAL_STATE_FALLBACK_RE):
        match = pattern.search(page)
        if match is None:
            continue
        try:
            data = json.loads(match.group("json"))
        except ValueError:
            continue
        if isinstance(data, dict):
            return data
    raise ServiceFailure(SERVICE, "no __INITIAL_STATE__ in page")


def parse_video(state: dict[str, Any]) -> Video:
    data = state.get("videoData") or state.get("videoInfo")
    if not isinstance(data, dict):
        raise ServiceFailure(SERVICE, "missing videoData")
    try:
        stat = data["stat"]
        owner = data["owner"]
        desc = str(data.get("desc") or "").strip()
        return Video(
            bvid=str(data["bvid"]),
            title=str(data["title"]),
            description=None if desc in ("", "-") else desc,
            tags=tuple(
                str(tag["tag_name"])
                for tag in state.get("tags", [])
                if isinstance(tag, dict) and "tag_name" in tag
            ),
            owner_id=int(owner["mid"]),
            owner_name=str(owner["name"]),
            counts={key: int(stat.get(key, 0)) for key in STAT_KEYS},
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ServiceFailure(SERVICE, f"malformed video payload: {exc}") from exc


class BiliBiliClient:
    def __init__(self, http: httpx.AsyncClient, base_url: str) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")

    async def video(self, video_id: str) -> Video:
        response = await _get(
            self._http, f"{self._base_url}/video/{video_id}", service=SERVICE
        )
        content_type = response.headers.get("content-type", "")
        if "text/html" not in content_type:
            raise ServiceFailure(SERVICE, f"unexpected content type {content_type!r}")
        return parse_video(extract_initial_state(response.text))
