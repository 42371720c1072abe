from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from core.errors import NotificationFailure


class TelegramClient:
    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        session: Optional[requests.Session] = None,
        timeout_sec: float = 20.0,
    ):
        self.bot_token = bot_token.strip()
        self.chat_id = str(chat_id).strip()
        self.base = f"https://api.telegram.org/bot{self.bot_token}"
        self.session = session or requests.Session()
        self.timeout = timeout_sec

    def send(self, text: str, reply_to: Optional[int] = None, silent: bool = False) -> Dict[str, Any]:
        """sendMessage in HTML mode. Returns {"ok": True, "message_id": ...}."""
        body: Dict[str, Any] = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_notification": bool(silent),
            "disable_web_page_preview": True,
        }
        if reply_to is not None:
            body["reply_to_message_id"] = reply_to

        try:
            r = self.session.post(f"{self.base}/sendMessage", json=body, timeout=self.timeout)
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise NotificationFailure(f"telegram request failed: {e}") from e

        if not isinstance(data, dict) or not data.get("ok"):
            description = data.get("description") if isinstance(data, dict) else None
            raise NotificationFailure(f"Telegram API error: {description or 'Unknown error'}", {"response": data})

        return {"ok": True, "message_id": (data.get("result") or {}).get("message_id")}
