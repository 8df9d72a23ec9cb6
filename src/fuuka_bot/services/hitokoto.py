"""hitokoto.cn quote client."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from . import _field, _get_json

SERVICE = "hitokoto"


@dataclass(frozen=True, slots=True)
class Quote:
    text: str
    source: str
    attribution: str | None
    id: str

    @property
    def url(self) -> str:
        return f"https://hitokoto.cn/?uuid={self.id}"


class HitokotoClient:
    def __init__(self, http: httpx.AsyncClient, base_url: str) -> None:
        self._http = http
        self._base_url = base_url

    async def fetch(self) -> Quote:
        # No category filter: any sentence type.
        data = await _get_json(self._http, self._base_url, service=SERVICE)
        from_who = data.get("from_who")
        return Quote(
            text=str(_field(data, "hitokoto", service=SERVICE)),
            source=str(_field(data, "from", service=SERVICE)),
            attribution=str(from_who) if from_who else None,
            id=str(_field(data, "uuid", service=SERVICE)),
        )
