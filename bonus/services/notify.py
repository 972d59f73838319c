"""Telegram notification sink (best effort, never raises)."""
import logging
import re

import httpx

logger = logging.getLogger(__name__)

_MARKDOWN_SPECIAL = re.compile(r"([_*\[\]()~`>#+=|{}.!\-])")


def escape_markdown(text: str) -> str:
    """Backslash-escape MarkdownV2 special characters."""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


def format_message(title: str, body: str) -> str:
    return f"🎮 *{escape_markdown(title)}*\n\n{escape_markdown(body)}"


class TelegramNotifier:
    def __init__(self, bot_token: str = "", chat_id: str = "", http: httpx.AsyncClient | None = None):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self._http = http

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    async def send(self, title: str, body: str) -> bool:
        if not self.enabled:
            return False
        try:
            return await self._send(title, body)
        except Exception as exc:
            logger.warning("Telegram delivery failed: %s", exc)
            return False

    async def _send(self, title: str, body: str) -> bool:
        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": format_message(title, body),
            "parse_mode": "MarkdownV2",
            "disable_web_page_preview": True,
        }
        if self._http is not None:
            r = await self._http.post(url, json=payload)
        else:
            async with httpx.AsyncClient(timeout=15.0) as client:
                r = await client.post(url, json=payload)
        if r.is_success:
            return True
        msg = f"Telegram sendMessage failed {r.status_code}: {r.text}"
        if r.status_code == 401:
            msg += " (invalid bot token)"
        elif r.status_code == 400:
            msg += " (bad chat id, or the bot has no conversation with it)"
        logger.warning(msg)
        return False
