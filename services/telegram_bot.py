"""
Telegram webhook bot.

Telegram calls the webhook for every message sent to the bot. Requests are
authenticated with the secret token registered together with the webhook
(`X-Telegram-Bot-Api-Secret-Token`). Only `/start` is answered; every other
command gets a "not yet implemented" reply.

Replies are best effort: a failed send is logged and the update is still
acknowledged, otherwise Telegram keeps redelivering it.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"

WELCOME_TEXT = "Welcome to the Hashmi VIP Numbers bot! Send /help to see available commands."


def verify_secret(received: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time check of the webhook secret; an unset secret rejects everything."""

    if not expected or received is None:
        return False
    return hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8"))


def reply_for(text: str) -> str:
    command = text.strip().lower()
    if command == "/start":
        return WELCOME_TEXT
    return f"Command '{command}' is not yet implemented."


class TelegramClient:
    """Minimal Bot API client (sendMessage only)."""

    def __init__(self, token: Optional[str], http: Optional[httpx.Client] = None, timeout: float = 10.0) -> None:
        self._token = token
        self._http = http
        self._timeout = timeout

    def send_message(self, chat_id: int | str, text: str) -> bool:
        if not self._token:
            logger.error("Telegram bot token is not configured.")
            return False

        url = f"{TELEGRAM_API_BASE}/bot{self._token}/sendMessage"
        payload = {"chat_id": chat_id, "text": text}
        try:
            if self._http is not None:
                response = self._http.post(url, json=payload, timeout=self._timeout)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.post(url, json=payload)
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error sending message to Telegram", extra={"chat_id": chat_id, "error": str(e)})
            return False

        if not isinstance(body, dict):
            body = {"ok": False, "description": f"Unexpected response: {body!r}"}
        if not body.get("ok"):
            logger.error(
                "Failed to send message to Telegram",
                extra={"chat_id": chat_id, "description": body.get("description")},
            )
            return False
        return True


@dataclass(frozen=True, slots=True)
class BotReply:
    chat_id: int | str
    text: str


def handle_update(update: Mapping[str, Any], client: TelegramClient) -> Optional[BotReply]:
    """Answer one Telegram update; returns the reply sent (None when there was nothing to answer)."""

    message = update.get("message")
    if not isinstance(message, dict):
        return None
    text = message.get("text")
    chat = message.get("chat")
    if not isinstance(text, str) or not text.strip() or not isinstance(chat, dict) or "id" not in chat:
        return None

    reply = BotReply(chat_id=chat["id"], text=reply_for(text))
    client.send_message(reply.chat_id, reply.text)
    return reply


__all__ = [
    "BotReply",
    "SECRET_HEADER",
    "TelegramClient",
    "WELCOME_TEXT",
    "handle_update",
    "reply_for",
    "verify_secret",
]
