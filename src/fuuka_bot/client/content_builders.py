"""Content builders for Matrix message formatting."""

from __future__ import annotations

from typing import Any

from ..types import InboundMessage, MentionPolicy, ReplyPayload, ThreadPolicy


def _build_text_content(body: str, formatted_body: str | None) -> dict[str, Any]:
    content: dict[str, Any] = {
        "msgtype": "m.text",
        "body": body,
    }
    if formatted_body:
        content["format"] = "org.matrix.custom.html"
        content["formatted_body"] = formatted_body
    return content


def _mentioned_users(payload: ReplyPayload, msg: InboundMessage) -> list[str]:
    users: list[str] = []
    if payload.mention_policy is MentionPolicy.MENTION_SENDER:
        users.append(msg.sender)
    for user_id in payload.mentions:
        if user_id not in users:
            users.append(user_id)
    return users


def compose_reply(payload: ReplyPayload, msg: InboundMessage) -> dict[str, Any]:
    """Build the event content answering ``msg``.

    Threading and mentions follow the payload's policies; ``m.mentions`` is
    always set so clients do not fall back to body-based highlighting.
    """
    content = _build_text_content(payload.plain_text, payload.html)
    if payload.thread_policy is ThreadPolicy.REPLY:
        content["m.relates_to"] = {
            "m.in_reply_to": {"event_id": msg.event_id},
        }
    users = _mentioned_users(payload, msg)
    content["m.mentions"] = {"user_ids": users} if users else {}
    return content
