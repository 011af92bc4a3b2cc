"""Builders for LINE message objects (plain dicts, sent as JSON)."""

from __future__ import annotations

from typing import Iterable, Optional
from urllib.parse import urlencode

from ..core.constants import MAX_QUICK_REPLY_ITEMS


def text_message(text: str, *, quick_reply: Optional[list[dict]] = None) -> dict:
    message: dict = {"type": "text", "text": text}
    if quick_reply:
        message["quickReply"] = {"items": quick_reply[:MAX_QUICK_REPLY_ITEMS]}
    return message


def message_action(label: str, text: str) -> dict:
    return {"type": "action", "action": {"type": "message", "label": label[:20], "text": text}}


def postback_action(label: str, **data: str) -> dict:
    return {
        "type": "action",
        "action": {"type": "postback", "label": label[:20], "data": urlencode(data), "displayText": label},
    }


def location_action(label: str) -> dict:
    return {"type": "action", "action": {"type": "location", "label": label[:20]}}


def location_request(text: str) -> dict:
    return text_message(text, quick_reply=[location_action("Share location")])


def choice_message(text: str, options: Iterable[tuple[str, str]]) -> dict:
    """Quick-reply message whose buttons send back plain text."""

    return text_message(text, quick_reply=[message_action(label, value) for label, value in options])


def checkin_prompt(title: str, text: str, code: str) -> dict:
    """Buttons template whose single action sends the check-in code back to the bot."""

    return {
        "type": "template",
        "altText": f"{title}: {text}",
        "template": {
            "type": "buttons",
            "title": title[:40],
            "text": text[:60],
            "actions": [{"type": "message", "label": "Check in", "text": code}],
        },
    }


STATUS_LABELS = {
    "ON_TIME": "On time",
    "LATE": "Late",
    "ABSENT": "Absent",
}


def status_label(status) -> str:
    value = getattr(status, "value", status)
    return STATUS_LABELS.get(value, str(value))
