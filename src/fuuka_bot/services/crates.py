"""crates.io registry client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from ..errors import ServiceFailure
from . import _field, _get_json

SERVICE = "crates"


@dataclass(frozen=True, slots=True)
class CrateVersion:
    num: str
    rust_version: str | None = None
    yanked: bool = False


@dataclass(frozen=True, slots=True)
class Crate:
    name: str
    description: str | None
    max_stable_version: str
    documentation: str | None
    repository: str | None
    versions: tuple[CrateVersion, ...] = ()

    def version(self, num: str) -> CrateVersion | None:
        for version in self.versions:
            if version.num == num:
                return version
        return None


def parse_crate(data: dict[str, Any]) -> Crate:
    info = _field(data, "crate", service=SERVICE)
    if not isinstance(info, dict):
        raise ServiceFailure(SERVICE, "crate is not an object")
    try:
        versions = tuple(
            CrateVersion(
                num=str(v["num"]),
                rust_version=v.get("rust_version"),
                yanked=bool(v.get("yanked", False)),
            )
            for v in data.get("versions") or []
        )
        return Crate(
            name=str(info["name"]),
            description=info.get("description"),
            max_stable_version=str(
                info.get("max_stable_version") or info["max_version"]
            ),
            documentation=info.get("documentation"),
            repository=info.get("repository"),
            versions=versions,
        )
    except (AttributeError, KeyError, TypeError) as exc:
        raise ServiceFailure(SERVICE, f"malformed crate payload: {exc}") from exc


class CratesClient:
    def __init__(self, http: httpx.AsyncClient, base_url: str) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")

    async def lookup(self, name: str) -> Crate:
        data = await _get_json(
            self._http, f"{self._base_url}/api/v1/crates/{name}", service=SERVICE
        )
        return parse_crate(data)
