"""pixiv ajax API client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from ..errors import ServiceFailure
from . import _field, _get_json

SERVICE = "pixiv"


@dataclass(frozen=True, slots=True)
class IllustTag:
    original: str
    translated: str | None = None


@dataclass(frozen=True, slots=True)
class Illust:
    id: int
    title: str
    author_id: int
    author_name: str
    tags: tuple[IllustTag, ...]
    restriction: int = 0

    @property
    def is_r18(self) -> bool:
        # 1 = R-18, 2 = R-18G
        return self.restriction > 0


@dataclass(frozen=True, slots=True)
class RankingItem:
    id: int
    title: str
    tags: tuple[str, ...]
    author_id: int
    author_name: str


def _unwrap(data: dict[str, Any]) -> Any:
    if data.get("error"):
        raise ServiceFailure(SERVICE, str(data.get("message") or "API error"))
    return _field(data, "body", service=SERVICE)


def _parse_tags(raw: Any) -> tuple[IllustTag, ...]:
    entries = raw.get("tags", []) if isinstance(raw, dict) else []
    tags: list[IllustTag] = []
    for entry in entries:
        if not isinstance(entry, dict) or "tag" not in entry:
            continue
        translation = entry.get("translation") or {}
        translated = translation.get("en") if isinstance(translation, dict) else None
        tags.append(IllustTag(original=str(entry["tag"]), translated=translated))
    return tuple(tags)


def parse_illust(body: dict[str, Any]) -> Illust:
    try:
        return Illust(
            id=int(body["id"]),
            title=str(body["title"]),
            author_id=int(body["userId"]),
            author_name=str(body["userName"]),
            tags=_parse_tags(body.get("tags")),
            restriction=int(body.get("xRestrict") or 0),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ServiceFailure(SERVICE, f"malformed illust payload: {exc}") from exc


class PixivClient:
    def __init__(
        self, http: httpx.AsyncClient, base_url: str, *, token: str | None = None
    ) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._token = token

    def _headers(self, referer: str) -> dict[str, str]:
        headers = {"Referer": referer}
        if self._token:
            headers["Cookie"] = f"PHPSESSID={self._token}"
        return headers

    async def illust(self, illust_id: int) -> Illust:
        data = await _get_json(
            self._http,
            f"{self._base_url}/ajax/illust/{illust_id}",
            service=SERVICE,
            headers=self._headers(f"{self._base_url}/artworks/{illust_id}"),
        )
        body = _unwrap(data)
        if not isinstance(body, dict):
            raise ServiceFailure(SERVICE, "illust body is not an object")
        return parse_illust(body)

    async def ranking(self, *, limit: int = 5) -> list[RankingItem]:
        """Daily illustration ranking, first page only."""
        data = await _get_json(
            self._http,
            f"{self._base_url}/ranking.php",
            service=SERVICE,
            params={"format": "json", "mode": "daily", "content": "illust", "p": 1},
            headers=self._headers(f"{self._base_url}/ranking.php"),
        )
        contents = _field(data, "contents", service=SERVICE)
        if not isinstance(contents, list):
            raise ServiceFailure(SERVICE, "ranking contents is not a list")
        items: list[RankingItem] = []
        for entry in contents[:limit]:
            try:
                items.append(
                    RankingItem(
                        id=int(entry["illust_id"]),
                        title=str(entry["title"]),
                        tags=tuple(str(t) for t in entry.get("tags", [])),
                        author_id=int(entry["user_id"]),
                        author_name=str(entry["user_name"]),
                    )
                )
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise ServiceFailure(SERVICE, f"malformed ranking entry: {exc}") from exc
        return items
