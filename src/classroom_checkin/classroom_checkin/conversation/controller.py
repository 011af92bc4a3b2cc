from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, jsonify, request

from ..container import Container
from ..core.exceptions import DeliveryFailure
from ..notifications.line_client import verify_signature

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    service = container.conversation_service

    def _display_name(user_id: str) -> Optional[str]:
        if container.line_client is None:
            return None
        try:
            return container.line_client.get_profile(user_id).get("displayName")
        except DeliveryFailure as e:
            logger.warning("Profile lookup for %s failed: %s", user_id, e)
            return None

    def _reply(reply_token: Optional[str], messages: list[dict]) -> None:
        if not messages or not reply_token or container.line_client is None:
            return
        try:
            container.line_client.reply_message(reply_token, messages)
        except DeliveryFailure as e:
            logger.warning("Reply failed: %s", e)

    def _dispatch(event: dict) -> None:
        user_id = (event.get("source") or {}).get("userId")
        if not user_id:
            return

        event_type = event.get("type")
        replies: list[dict] = []

        if event_type == "message":
            message = event.get("message") or {}
            if message.get("type") == "text":
                replies = service.handle_text(user_id, message.get("text", ""), display_name=_display_name(user_id))
            elif message.get("type") == "location":
                replies = service.handle_location(user_id, float(message["latitude"]), float(message["longitude"]))
        elif event_type == "postback":
            data = (event.get("postback") or {}).get("data", "")
            replies = service.handle_postback(user_id, data, display_name=_display_name(user_id))

        _reply(event.get("replyToken"), replies)

    @app.route("/webhook", methods=["POST"], endpoint="line_webhook")
    def line_webhook():
        body = request.get_data()
        if not verify_signature(app.config.get("LINE_CHANNEL_SECRET", ""), body, request.headers.get("X-Line-Signature")):
            return jsonify({"success": False, "message": "Invalid signature"}), 400

        payload = request.get_json(force=True, silent=True) or {}
        handled = 0
        for event in payload.get("events", []):
            try:
                _dispatch(event)
                handled += 1
            except Exception:
                # One bad event must not lose the rest of the batch.
                logger.exception("Webhook event of type %s failed", event.get("type"))

        return jsonify({"success": True, "handled": handled})
