"""
Client for the remote chat-completion endpoint (Hugging Face router by default).
"""
from __future__ import annotations
from typing import Dict, List, Optional, Sequence
import logging

import httpx

from core.config import Settings
from core.errors import ReplyContentError, ReplyTransportError
from core.models import ConversationMessage
from core.prompt import build_messages, sanitize_reply

logger = logging.getLogger(__name__)


class ReplyEngine:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.s = settings
        self._transport = transport
        self._in_flight = False

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.s.HF_TOKEN:
            headers["Authorization"] = f"Bearer {self.s.HF_TOKEN}"
        return headers

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        """
        POST the payload and return the raw reply text.

        Raises:
            ReplyTransportError: network failure or non-2xx status.
            ReplyContentError: body is not JSON or has no choices[0].message.content.
        """
        payload = {"model": self.s.REPLY_MODEL, "messages": messages}
        logger.debug(f"[reply] POST {self.s.REPLY_API_URL} model={self.s.REPLY_MODEL} n_messages={len(messages)}")
        try:
            async with httpx.AsyncClient(timeout=self.s.REPLY_TIMEOUT, transport=self._transport) as client:
                resp = await client.post(self.s.REPLY_API_URL, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            raise ReplyTransportError(f"{type(e).__name__}: {e}") from e

        if not resp.is_success:
            logger.error(f"[reply] API error {resp.status_code}: {resp.text[:400]}")
            raise ReplyTransportError(f"API error {resp.status_code}", status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise ReplyContentError("response body is not JSON") from e
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ReplyContentError("response has no choices[0].message.content") from e
        if not isinstance(content, str):
            raise ReplyContentError("reply content is not text")
        return content

    async def reply(self, history: Sequence[ConversationMessage], emotion: str) -> str:
        """Build the mood-inverting prompt, fetch the reply and sanitize it."""
        if self._in_flight:
            raise RuntimeError("ReplyEngine.reply called while another reply is in flight")
        self._in_flight = True
        try:
            raw = await self.complete(build_messages(history, emotion))
        finally:
            self._in_flight = False
        text = sanitize_reply(raw)
        if not text:
            raise ReplyContentError("reply is empty after sanitizing")
        return text
