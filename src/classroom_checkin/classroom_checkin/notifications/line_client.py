from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from typing import Any, Optional, Sequence

import requests

from ..core.exceptions import DeliveryFailure

logger = logging.getLogger(__name__)

LINE_API_URL = "https://api.line.me/v2/bot"


def verify_signature(channel_secret: str, body: bytes, signature: Optional[str]) -> bool:
    """Check the ``X-Line-Signature`` header (base64 HMAC-SHA256 of the raw body)."""

    if not channel_secret or not signature:
        return False
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    return hmac.compare_digest(base64.b64encode(digest).decode("ascii"), signature)


class LineMessagingClient:
    """Thin client over the LINE Messaging API push/reply/profile endpoints."""

    def __init__(
        self,
        channel_access_token: str,
        *,
        api_url: str = LINE_API_URL,
        timeout: float = 10,
        http: Optional[requests.Session] = None,
    ):
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._http = http or requests.Session()
        self._http.headers.update(
            {
                "Authorization": f"Bearer {channel_access_token}",
                "Content-Type": "application/json",
            }
        )

    def _post(self, path: str, payload: dict) -> None:
        try:
            response = self._http.post(f"{self._api_url}{path}", json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            raise DeliveryFailure(f"LINE API request failed: {e}") from e

        if response.status_code >= 400:
            raise DeliveryFailure(f"LINE API {path} returned {response.status_code}: {response.text[:200]}")

    def push_message(self, to: str, messages: Sequence[dict]) -> None:
        self._post("/message/push", {"to": to, "messages": list(messages)[:5]})

    def reply_message(self, reply_token: str, messages: Sequence[dict]) -> None:
        self._post("/message/reply", {"replyToken": reply_token, "messages": list(messages)[:5]})

    def get_profile(self, user_id: str) -> dict[str, Any]:
        try:
            response = self._http.get(f"{self._api_url}/profile/{user_id}", timeout=self._timeout)
        except requests.RequestException as e:
            raise DeliveryFailure(f"LINE profile request failed: {e}") from e

        if response.status_code >= 400:
            raise DeliveryFailure(f"LINE profile returned {response.status_code}")
        return response.json()
