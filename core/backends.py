"""
Detector backends: a uniform interface over DeepFace, FER and a simulator.

Every backend exposes:
  - async initialize() -> bool     (idempotent; may download weights / load models)
  - sample(frame) -> dict[str, float]
        backend-specific label -> confidence in [0, 1]; {} means no face in frame

Heavy libraries are imported lazily inside initialize() so a missing or
broken install only shows up as an unavailable backend.
"""
from __future__ import annotations
from typing import Dict, Optional, Tuple
import asyncio
import logging
import random

import numpy as np

from core.config import Settings
from core.models import EMOTION_LABELS, DetectorKind

logger = logging.getLogger(__name__)

RawClassification = Dict[str, float]

# Backend label -> canonical EmotionLabel. Labels missing here pass through unmapped.
EMOTION_MAPPING: Dict[str, str] = {
    "angry": "angry",
    "disgust": "disgusted",
    "disgusted": "disgusted",
    "fear": "fearful",
    "fearful": "fearful",
    "happy": "happy",
    "neutral": "neutral",
    "sad": "sad",
    "surprise": "surprised",
    "surprised": "surprised",
}

# Skewed toward happy/neutral so simulated output looks plausible
SIMULATED_WEIGHTS: Dict[str, float] = {
    "happy": 0.30,
    "neutral": 0.25,
    "surprised": 0.15,
    "sad": 0.10,
    "angry": 0.10,
    "fearful": 0.05,
    "disgusted": 0.05,
}
SIMULATED_CONFIDENCE = (0.6, 1.0)


def normalize(raw: Optional[RawClassification]) -> Optional[Tuple[str, float, bool]]:
    """
    Reduce a raw classification to (label, confidence, canonical).

    The top-scoring backend label is mapped through EMOTION_MAPPING; unknown
    labels are kept as-is with canonical=False. Returns None for an empty input.
    """
    if not raw:
        return None
    top = max(raw, key=lambda k: float(raw[k]))
    label = EMOTION_MAPPING.get(str(top).lower(), str(top))
    confidence = max(0.0, min(1.0, float(raw[top])))
    return label, confidence, label in EMOTION_LABELS


class DetectorBackend:
    """Base strategy. Subclasses implement _load() and sample()."""
    kind: DetectorKind = "simulated"
    name: str = "base"

    def __init__(self, settings: Settings):
        self.s = settings
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def interval(self) -> float:
        return float(self.s.ML_SAMPLE_INTERVAL)

    async def initialize(self) -> bool:
        if self._ready:
            return True
        self._ready = bool(await asyncio.to_thread(self._load))
        return self._ready

    def _load(self) -> bool:
        raise NotImplementedError

    def sample(self, frame) -> RawClassification:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind} ready={self._ready}>"


class DeepFaceBackend(DetectorBackend):
    """Primary backend: DeepFace emotion model."""
    kind = "primary"
    name = "deepface"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self._df = None

    def _load(self) -> bool:
        from deepface import DeepFace

        # Warm-up on a blank chip forces the emotion weights to download/load now
        DeepFace.analyze(
            np.zeros((48, 48, 3), dtype=np.uint8),
            actions=["emotion"],
            enforce_detection=False,
            detector_backend="skip",
        )
        self._df = DeepFace
        return True

    def sample(self, frame) -> RawClassification:
        res = self._df.analyze(
            frame,
            actions=["emotion"],
            enforce_detection=False,
            detector_backend=self.s.DEEPFACE_DETECTOR,
        )
        # DeepFace returns list[dict] or dict depending on version
        res = res if isinstance(res, list) else [res]
        for r in res:
            conf = (r or {}).get("face_confidence")
            if conf is not None and float(conf) < self.s.MIN_FACE_CONFIDENCE:
                continue
            probs = r.get("emotion")
            if isinstance(probs, dict) and probs:
                # DeepFace reports percentages
                return {k: float(v) / 100.0 for k, v in probs.items()}
        return {}


class FERBackend(DetectorBackend):
    """Secondary backend: the `fer` package."""
    kind = "secondary"
    name = "fer"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self._detector = None

    def _load(self) -> bool:
        from fer import FER

        self._detector = FER(mtcnn=self.s.FER_MTCNN)
        return True

    def sample(self, frame) -> RawClassification:
        faces = self._detector.detect_emotions(frame) or []
        if not faces:
            return {}
        emotions = faces[0].get("emotions") or {}
        return {k: float(v) for k, v in emotions.items()}


class SimulatedBackend(DetectorBackend):
    """Terminal fallback: weighted random emotions, always available."""
    kind = "simulated"
    name = "simulation"

    def __init__(self, settings: Settings, rng: Optional[random.Random] = None):
        super().__init__(settings)
        self.rng = rng or random.Random()
        self._labels = list(SIMULATED_WEIGHTS)
        self._weights = [SIMULATED_WEIGHTS[k] for k in self._labels]

    @property
    def interval(self) -> float:
        return float(self.s.SIM_SAMPLE_INTERVAL)

    async def initialize(self) -> bool:
        self._ready = True
        return True

    def sample(self, frame=None) -> RawClassification:
        label = self.rng.choices(self._labels, weights=self._weights, k=1)[0]
        lo, hi = SIMULATED_CONFIDENCE
        return {label: self.rng.uniform(lo, hi)}


BACKEND_CLASSES = {
    "primary": DeepFaceBackend,
    "secondary": FERBackend,
    "simulated": SimulatedBackend,
}


def build_backends(settings: Settings) -> list[DetectorBackend]:
    """Instantiate the configured backends in priority order."""
    return [BACKEND_CLASSES[k](settings) for k in settings.backend_kinds]
