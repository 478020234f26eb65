"""
Pydantic data models for detection, conversation and API IO.
"""
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Literal
import time
import uuid

EmotionLabel = Literal["happy", "sad", "angry", "surprised", "neutral", "fearful", "disgusted"]
EMOTION_LABELS: tuple[str, ...] = ("happy", "sad", "angry", "surprised", "neutral", "fearful", "disgusted")
UNKNOWN_EMOTION = "unknown"

DetectorKind = Literal["primary", "secondary", "simulated"]
Role = Literal["user", "bot"]


def is_canonical(label: Optional[str]) -> bool:
    return label in EMOTION_LABELS


class EmotionSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    confidence: float = Field(ge=0.0, le=1.0)
    timestamp: float
    canonical: bool = True
    backend: Optional[DetectorKind] = None

    @property
    def prompt_label(self) -> str:
        """Label safe to feed the prompt builder; unmapped labels become 'unknown'."""
        return self.label if self.canonical else UNKNOWN_EMOTION


class ConversationMessage(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Role
    text: str
    created_at: float = Field(default_factory=time.time)
    attached_emotion: Optional[str] = None


# API IO

class ProbeResult(BaseModel):
    backend: DetectorKind
    ok: bool
    reason: Optional[str] = None


class DetectionStatus(BaseModel):
    running: bool
    backend: Optional[DetectorKind] = None
    simulated: bool = False
    notice: Optional[str] = None
    probe_log: List[ProbeResult] = Field(default_factory=list)
    sample: Optional[EmotionSample] = None
    started_at: float | None = None


class ChatRequest(BaseModel):
    text: str


class ChatTurn(BaseModel):
    user: ConversationMessage
    reply: Optional[ConversationMessage] = None
    composing: bool = False
