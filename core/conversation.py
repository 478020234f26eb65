"""
Conversation state: ordered transcript plus a single in-flight reply flag.
"""
from __future__ import annotations
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple
import asyncio
import logging

from core.errors import ConversationBusyError, EmptyMessageError, ReplyError
from core.models import ConversationMessage, is_canonical

logger = logging.getLogger(__name__)

GREETING = "Hi there! I'm your Mood Spoiler bot. I'll detect your emotions and give you the OPPOSITE vibes! 😈"
FALLBACK_REPLY = "Oops! The mood spoiling AI is having a bad day. Try again later."

ReplyFn = Callable[[Sequence[ConversationMessage], str], Awaitable[str]]


class ConversationState:
    """
    idle -> composing when a user message is accepted; composing -> idle once
    the reply settles, success or not. Only one reply may be outstanding.
    """
    def __init__(self, greeting: str = GREETING):
        self._messages: List[ConversationMessage] = [ConversationMessage(role="bot", text=greeting)]
        self._composing = False
        self._closed = False

    @property
    def messages(self) -> List[ConversationMessage]:
        return list(self._messages)

    @property
    def composing(self) -> bool:
        return self._composing

    @property
    def state(self) -> str:
        return "composing" if self._composing else "idle"

    @property
    def last_reply(self) -> Optional[ConversationMessage]:
        for m in reversed(self._messages):
            if m.role == "bot":
                return m
        return None

    def close(self) -> None:
        self._closed = True

    def begin(self, text: str) -> ConversationMessage:
        """Accept a user turn: append it right away and enter composing."""
        if self._composing:
            raise ConversationBusyError("a reply is already being composed")
        if not text or not text.strip():
            raise EmptyMessageError("message text is empty")
        msg = ConversationMessage(role="user", text=text)
        self._messages.append(msg)
        self._composing = True
        return msg

    async def submit(
        self, text: str, emotion: str, reply_fn: ReplyFn
    ) -> Tuple[ConversationMessage, Optional[ConversationMessage]]:
        """
        Run one full turn and return (user message, appended bot message).

        The user message is never rolled back. Any reply failure, cancellation
        included, appends exactly one fallback message. The bot message is None
        if the state was closed before the reply settled (the late result is
        discarded).
        """
        user = self.begin(text)
        try:
            try:
                reply_text = await reply_fn(self.messages, emotion)
                bot = ConversationMessage(
                    role="bot",
                    text=reply_text,
                    attached_emotion=emotion if is_canonical(emotion) else None,
                )
            except ReplyError as e:
                logger.warning(f"[chat] reply failed: {e}")
                bot = ConversationMessage(role="bot", text=FALLBACK_REPLY)
            except asyncio.CancelledError:
                if not self._closed:
                    logger.warning("[chat] reply cancelled")
                    self._messages.append(ConversationMessage(role="bot", text=FALLBACK_REPLY))
                raise
            except Exception:
                logger.exception("[chat] unexpected reply failure")
                bot = ConversationMessage(role="bot", text=FALLBACK_REPLY)

            if self._closed:
                logger.debug("[chat] conversation closed; discarding late reply")
                return user, None
            self._messages.append(bot)
            return user, bot
        finally:
            self._composing = False
