"""HTTP clients for the external services the bot queries."""

from __future__ import annotations

from typing import Any

import httpx

from ..errors import ServiceFailure
from ..logging import get_logger

logger = get_logger("fuuka_bot.services")

USER_AGENT = "fuuka-bot/0.1"


def build_http_client(*, timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
    )


async def _get(
    http: httpx.AsyncClient, url: str, *, service: str, **kwargs: Any
) -> httpx.Response:
    try:
        response = await http.get(url, **kwargs)
    except httpx.HTTPError as exc:
        logger.warning("fuuka.service.transport_error", service=service, url=url)
        raise ServiceFailure(service, str(exc) or type(exc).__name__) from exc
    if response.is_error:
        raise ServiceFailure(
            service, "server reported failure", status=response.status_code
        )
    return response


async def _get_json(
    http: httpx.AsyncClient, url: str, *, service: str, **kwargs: Any
) -> dict[str, Any]:
    response = await _get(http, url, service=service, **kwargs)
    try:
        data = response.json()
    except ValueError as exc:
        raise ServiceFailure(service, "invalid JSON") from exc
    if not isinstance(data, dict):
        raise ServiceFailure(service, "response is not a JSON object")
    return data


def _field(data: dict[str, Any], key: str, *, service: str) -> Any:
    if key not in data:
        raise ServiceFailure(service, f"missing field {key!r}")
    return data[key]
