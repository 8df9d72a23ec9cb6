"""Tests for service clients and the link preview handlers."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from fuuka_bot.bridge.media import (
    handle_bilibili_link,
    handle_crate_link,
    handle_pixiv_link,
    ranking_reply,
)
from fuuka_bot.bridge.requests import BiliBiliLink, CrateLink, PixivLink
from fuuka_bot.config import PixivConfig, RoomFeatures, TagTrigger
from fuuka_bot.errors import ServiceFailure, TemplateRenderFailure
from fuuka_bot.render import build_environment, render
from fuuka_bot.services.bilibili import (
    BiliBiliClient,
    extract_initial_state,
    parse_video,
)
from fuuka_bot.services.crates import CratesClient
from fuuka_bot.services.hitokoto import HitokotoClient
from fuuka_bot.services.pixiv import PixivClient

from fuuka_fixtures import make_config, make_context, make_message

PIXIV_BASE = "https://www.pixiv.net"
ILLUST_ID = 132235564
ILLUST_URL = f"{PIXIV_BASE}/artworks/{ILLUST_ID}"


def _http(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _illust_payload(*, restrict: int = 0) -> dict[str, Any]:
    return {
        "error": False,
        "message": "",
        "body": {
            "id": str(ILLUST_ID),
            "title": "夏",
            "userId": "1234",
            "userName": "Artist",
            "xRestrict": restrict,
            "tags": {
                "tags": [
                    {"tag": "オリジナル", "translation": {"en": "original"}},
                    {"tag": "女の子"},
                ]
            },
        },
    }


def _pixiv_handler(
    payload: dict[str, Any], seen: list[httpx.Request] | None = None
) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(200, json=payload)

    return handler


@pytest.mark.anyio
async def test_pixiv_link_renders_illust() -> None:
    seen: list[httpx.Request] = []
    async with _http(_pixiv_handler(_illust_payload(), seen)) as http:
        ctx = make_context(pixiv=PixivClient(http, PIXIV_BASE, token="session"))
        reply = await handle_pixiv_link(
            PixivLink(url=ILLUST_URL, illust_id=ILLUST_ID), make_message(), ctx
        )

    assert reply is not None
    assert reply.plain_text == (
        f"夏 {ILLUST_URL} | @Artist https://www.pixiv.net/u/1234\n"
        "#オリジナル (original) #女の子"
    )
    assert f'<a href="{ILLUST_URL}">夏</a>' in reply.html
    (request,) = seen
    assert request.url.path == f"/ajax/illust/{ILLUST_ID}"
    assert request.headers["Cookie"] == "PHPSESSID=session"
    assert request.headers["Referer"] == ILLUST_URL


@pytest.mark.anyio
async def test_pixiv_trap_tags_append_trigger_lines() -> None:
    pixiv = PixivConfig(
        enabled=True,
        traps=(
            TagTrigger(target="Alice", required_tags=frozenset({"女の子"})),
            TagTrigger(
                target="Bob",
                required_tags=frozenset({"女の子"}),
                rooms=frozenset({"!elsewhere:example.org"}),
            ),
        ),
    )
    async with _http(_pixiv_handler(_illust_payload())) as http:
        ctx = make_context(
            config=make_config(pixiv=pixiv), pixiv=PixivClient(http, PIXIV_BASE)
        )
        reply = await handle_pixiv_link(
            PixivLink(url=ILLUST_URL, illust_id=ILLUST_ID), make_message(), ctx
        )

    assert reply is not None
    assert reply.plain_text.endswith("#女の子\n#Alice诱捕器")
    assert "Bob" not in reply.plain_text


@pytest.mark.anyio
async def test_pixiv_r18_filtered_unless_enabled_for_room() -> None:
    payload = _illust_payload(restrict=1)
    request = PixivLink(url=ILLUST_URL, illust_id=ILLUST_ID)

    async with _http(_pixiv_handler(payload)) as http:
        ctx = make_context(pixiv=PixivClient(http, PIXIV_BASE))
        assert await handle_pixiv_link(request, make_message(), ctx) is None

        allowed = make_context(
            config=make_config(
                pixiv=PixivConfig(enabled=True, r18=True),
                features=RoomFeatures(pixiv=True, pixiv_r18=True),
            ),
            pixiv=PixivClient(http, PIXIV_BASE),
        )
        reply = await handle_pixiv_link(request, make_message(), allowed)

    assert reply is not None
    assert reply.plain_text.startswith("夏 ")


@pytest.mark.anyio
async def test_pixiv_api_error_is_service_failure() -> None:
    payload = {"error": True, "message": "Work has been deleted", "body": []}
    async with _http(_pixiv_handler(payload)) as http:
        client = PixivClient(http, PIXIV_BASE)
        with pytest.raises(ServiceFailure) as excinfo:
            await client.illust(ILLUST_ID)

    assert excinfo.value.service == "pixiv"
    assert "Work has been deleted" in str(excinfo.value)


@pytest.mark.anyio
async def test_http_error_status_is_service_failure() -> None:
    async with _http(lambda request: httpx.Response(500)) as http:
        client = PixivClient(http, PIXIV_BASE)
        with pytest.raises(ServiceFailure) as excinfo:
            await client.illust(ILLUST_ID)

    assert excinfo.value.status == 500


@pytest.mark.anyio
async def test_transport_error_is_service_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _http(handler) as http:
        client = HitokotoClient(http, "https://v1.hitokoto.cn")
        with pytest.raises(ServiceFailure) as excinfo:
            await client.fetch()

    assert excinfo.value.service == "hitokoto"
    assert excinfo.value.status is None


@pytest.mark.anyio
async def test_pixiv_ranking() -> None:
    seen: list[httpx.Request] = []
    payload = {
        "contents": [
            {
                "illust_id": index,
                "title": f"art {index}",
                "tags": ["風景", "空"],
                "user_id": 100 + index,
                "user_name": f"artist {index}",
            }
            for index in range(1, 8)
        ]
    }
    async with _http(_pixiv_handler(payload, seen)) as http:
        ctx = make_context(pixiv=PixivClient(http, PIXIV_BASE))
        reply = await ranking_reply(ctx)

    assert reply is not None
    lines = reply.plain_text.splitlines()
    assert lines[0] == "Pixiv Ranking: (Illust/Daily)"
    assert lines[1] == "#1: art 1 https://www.pixiv.net/artworks/1 | #風景 #空"
    assert len(lines) == 6
    (request,) = seen
    assert request.url.path == "/ranking.php"
    assert request.url.params["mode"] == "daily"
    assert request.url.params["format"] == "json"


@pytest.mark.anyio
@pytest.mark.parametrize("entry", ["oops", ["illust_id", 1], None])
async def test_pixiv_ranking_with_non_object_entry_is_service_failure(
    entry: Any,
) -> None:
    payload = {"contents": [entry]}
    async with _http(_pixiv_handler(payload)) as http:
        client = PixivClient(http, PIXIV_BASE)
        with pytest.raises(ServiceFailure, match="malformed ranking entry"):
            await client.ranking()


def _bilibili_page(state: dict[str, Any]) -> str:
    blob = json.dumps(state, ensure_ascii=False)
    return (
        "<html><head><script>"
        f"window.__INITIAL_STATE__={blob};(function(){{var s;}}());"
        "</script></head><body></body></html>"
    )


VIDEO_STATE = {
    "videoData": {
        "bvid": "BV1GJ411x7h7",
        "title": "【官方 MV】Never Gonna Give You Up - Rick Astley",
        "desc": "Never gonna give you up\nNever gonna let you down",
        "owner": {"mid": 486906719, "name": "索尼音乐中国"},
        "stat": {
            "view": 93000000,
            "like": 2450000,
            "coin": 1180000,
            "favorite": 1260000,
            "danmaku": 156000,
            "reply": 85000,
            "share": 460000,
        },
    },
    "tags": [{"tag_name": "音乐"}, {"tag_name": "Rick Astley"}],
}


@pytest.mark.anyio
async def test_bilibili_link_renders_video() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, html=_bilibili_page(VIDEO_STATE))

    async with _http(handler) as http:
        ctx = make_context(bilibili=BiliBiliClient(http, "https://www.bilibili.com"))
        reply = await handle_bilibili_link(
            BiliBiliLink(
                url="https://www.bilibili.com/video/BV1GJ411x7h7",
                video_id="BV1GJ411x7h7",
            ),
            make_message(),
            ctx,
        )

    assert reply is not None
    assert reply.plain_text == (
        "【官方 MV】Never Gonna Give You Up - Rick Astley "
        "https://www.bilibili.com/video/BV1GJ411x7h7 | "
        "@索尼音乐中国 https://space.bilibili.com/486906719\n"
        "▶️ 93000000 · 👍 2450000 · 🪙 1180000 · 🌟 1260000 · 🪧 156000 · "
        "💬 85000 · ↗️ 460000\n"
        "#音乐# #Rick Astley#\n"
        "> Never gonna give you up\n"
        "> Never gonna let you down"
    )
    assert "<br/>" in reply.html
    (request,) = seen
    assert request.url.path == "/video/BV1GJ411x7h7"


@pytest.mark.anyio
async def test_bilibili_requires_html_page() -> None:
    async with _http(lambda request: httpx.Response(200, json={})) as http:
        client = BiliBiliClient(http, "https://www.bilibili.com")
        with pytest.raises(ServiceFailure):
            await client.video("BV1GJ411x7h7")


def test_extract_initial_state_without_state() -> None:
    with pytest.raises(ServiceFailure):
        extract_initial_state("<html><body>nothing here</body></html>")


@pytest.mark.parametrize("field", ["stat", "owner"])
def test_bilibili_non_object_payload_field_is_service_failure(field: str) -> None:
    state = {"videoData": {**VIDEO_STATE["videoData"], field: [1, 2, 3]}}

    with pytest.raises(ServiceFailure, match="malformed video payload"):
        parse_video(state)


@pytest.mark.anyio
async def test_crate_link_renders_latest_version() -> None:
    payload = {
        "crate": {
            "name": "serde",
            "description": "A generic serialization/deserialization framework",
            "max_stable_version": "1.0.219",
            "max_version": "1.0.219",
            "documentation": None,
            "repository": "https://github.com/serde-rs/serde",
        },
        "versions": [
            {"num": "1.0.219", "rust_version": "1.31", "yanked": False},
            {"num": "1.0.0", "rust_version": None, "yanked": False},
        ],
    }
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=payload)

    async with _http(handler) as http:
        ctx = make_context(crates=CratesClient(http, "https://crates.io"))
        latest = await handle_crate_link(
            CrateLink(url="https://crates.io/crates/serde", name="serde"),
            make_message(),
            ctx,
        )
        pinned = await handle_crate_link(
            CrateLink(
                url="https://crates.io/crates/serde/1.0.0",
                name="serde",
                version="1.0.0",
            ),
            make_message(),
            ctx,
        )

    assert latest is not None and pinned is not None
    assert latest.plain_text == (
        "[Rust/Crate] serde v1.0.219: "
        "A generic serialization/deserialization framework\n"
        "MSRV: 1.31\n"
        "Docs: https://docs.rs/serde/1.0.219\n"
        "Repository: https://github.com/serde-rs/serde"
    )
    assert "MSRV" not in pinned.plain_text
    assert "Docs: https://docs.rs/serde/1.0.0" in pinned.plain_text
    assert seen[0].url.path == "/api/v1/crates/serde"


@pytest.mark.anyio
async def test_hitokoto_fetch() -> None:
    payload = {
        "hitokoto": "人生如逆旅，我亦是行人。",
        "from": "临江仙·送钱穆父",
        "from_who": None,
        "uuid": "4d4c8a0c",
    }
    async with _http(lambda request: httpx.Response(200, json=payload)) as http:
        quote = await HitokotoClient(http, "https://v1.hitokoto.cn").fetch()

    assert quote.text == "人生如逆旅，我亦是行人。"
    assert quote.attribution is None
    assert quote.url == "https://hitokoto.cn/?uuid=4d4c8a0c"


@pytest.mark.anyio
async def test_missing_handlers_return_none_without_client() -> None:
    ctx = make_context()
    assert (
        await handle_pixiv_link(
            PixivLink(url=ILLUST_URL, illust_id=ILLUST_ID), make_message(), ctx
        )
        is None
    )
    assert (
        await handle_crate_link(
            CrateLink(url="https://crates.io/crates/serde", name="serde"),
            make_message(),
            ctx,
        )
        is None
    )


def test_template_directory_overrides_builtin(tmp_path: Path) -> None:
    (tmp_path / "crates").mkdir()
    (tmp_path / "crates" / "crate.txt").write_text("{{ name }}@{{ version }}")
    env = build_environment(tmp_path)

    assert render(env, "crates/crate.txt", {"name": "serde", "version": "1"}) == (
        "serde@1"
    )


def test_template_failure_is_render_failure(tmp_path: Path) -> None:
    (tmp_path / "crates").mkdir()
    (tmp_path / "crates" / "crate.txt").write_text("{{ missing }}")
    env = build_environment(tmp_path)

    with pytest.raises(TemplateRenderFailure) as excinfo:
        render(env, "crates/crate.txt", {"name": "serde"})

    assert excinfo.value.template == "crates/crate.txt"


def test_html_templates_escape_values() -> None:
    env = build_environment()
    html = render(
        env,
        "crates/crate.html",
        {
            "name": "<b>x</b>",
            "version": "1",
            "description": None,
            "msrv": None,
            "documentation": "https://docs.rs/x/1",
            "repository": None,
        },
    )
    assert "&lt;b&gt;x&lt;/b&gt;" in html
    assert "(No Description)" in html
