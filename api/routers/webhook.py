"""
Telegram webhook endpoint.

Mounted at the application root (not under /api/v1) because Telegram is
configured with the bare URL. Always answers "OK" to an authenticated update
so Telegram does not redeliver it.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Header, Request
from fastapi.responses import PlainTextResponse

from api.config import Settings
from api.dependencies import get_settings
from services.telegram_bot import SECRET_HEADER, handle_update, verify_secret

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook/telegram", summary="Telegram Webhook", response_class=PlainTextResponse)
def telegram_webhook(
    request: Request,
    update: dict = Body(...),
    secret: Optional[str] = Header(None, alias=SECRET_HEADER),
    settings: Settings = Depends(get_settings),
):
    if not verify_secret(secret, settings.telegram_webhook_secret):
        logger.warning("Rejected Telegram webhook call with a bad secret token")
        return PlainTextResponse("Forbidden", status_code=403)

    reply = handle_update(update, request.app.state.telegram)
    if reply is not None:
        logger.info("Telegram command answered", extra={"chat_id": reply.chat_id})
    return PlainTextResponse("OK")
