"""
Mood-inversion prompt construction and reply sanitization.
"""
from __future__ import annotations
from typing import Dict, List, Sequence
import re

from core.models import ConversationMessage, UNKNOWN_EMOTION, is_canonical

SYSTEM_TEMPLATE = """
You are "Mood Spoiler Bot", a sarcastic and witty chatbot who always replies with the opposite mood of the user's current emotion.

1. Carefully analyze the user's message against the detected facial emotion.
2. If the user's words and detected emotion do not match (e.g., user says they're happy but looks sad), cleverly and humorously point out or tease this discrepancy.
3. Always reply with the opposite mood of the user's detected emotion.
4. Your replies should be playful, sarcastic, and entertaining.
5. Do NOT repeat the user's message or emotion. Respond only as the chatbot.

Detected facial emotion: "{emotion}"
""".strip()

ROLE_MAP = {"user": "user", "bot": "assistant"}

_THINK_RE = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)


def render_instruction(emotion: str) -> str:
    label = emotion if is_canonical(emotion) else UNKNOWN_EMOTION
    return SYSTEM_TEMPLATE.format(emotion=label)


def build_messages(history: Sequence[ConversationMessage], emotion: str) -> List[Dict[str, str]]:
    """
    Build the chat-completion payload for the current turn.

    The instruction always comes first and depends only on the current emotion;
    emotions attached to earlier bot turns are ignored. The history follows in
    transcript order, so the just-submitted user message is the last entry.
    """
    messages = [{"role": "system", "content": render_instruction(emotion)}]
    for m in history:
        messages.append({"role": ROLE_MAP[m.role], "content": m.text})
    return messages


def sanitize_reply(text: str) -> str:
    """Drop every <think>...</think> block (any case, across lines) and trim.

    Repeats until nothing changes, since removing an inner block can join the
    surrounding text into a new one.
    """
    text = text or ""
    while True:
        cleaned = _THINK_RE.sub("", text)
        if cleaned == text:
            return cleaned.strip()
        text = cleaned
