# core/session.py
"""
One demo session: the committed detector backend, its sampling loop and the
conversation. Everything lives in memory for the lifetime of the session.
"""
from __future__ import annotations
from typing import Callable, Optional, Sequence, Tuple
import logging
import time

from core.backends import DetectorBackend, build_backends
from core.camera import open_camera
from core.cascade import ActiveBackend, CascadeSelector
from core.config import Settings
from core.conversation import ConversationState
from core.errors import CameraUnavailableError
from core.models import ConversationMessage, DetectionStatus, EmotionSample
from core.reply import ReplyEngine
from core.sampling import SamplingLoop

logger = logging.getLogger(__name__)

DEFAULT_EMOTION = "neutral"
CAMERA_NOTICE = "Failed to access webcam. Please allow camera permissions."


class MoodSession:
    def __init__(
        self,
        settings: Settings,
        candidates: Optional[Sequence[DetectorBackend]] = None,
        camera_factory: Callable = open_camera,
        engine: Optional[ReplyEngine] = None,
    ):
        self.s = settings
        self.selector = CascadeSelector(
            candidates if candidates is not None else build_backends(settings), settings
        )
        self.conversation = ConversationState()
        self.engine = engine or ReplyEngine(settings)
        self._camera_factory = camera_factory
        self._loop: Optional[SamplingLoop] = None
        self._started_at: Optional[float] = None
        self._camera_error: Optional[str] = None

    # ---- detection ----
    @property
    def detecting(self) -> bool:
        return self._loop is not None and self._loop.running

    @property
    def latest_sample(self) -> Optional[EmotionSample]:
        return self._loop.latest if self._loop is not None else None

    @property
    def current_emotion(self) -> str:
        sample = self.latest_sample
        return sample.prompt_label if sample is not None else DEFAULT_EMOTION

    async def start_detection(self) -> ActiveBackend:
        """
        Commit to a backend (once per session) and start sampling.

        Raises:
            CameraUnavailableError: the camera could not be opened.
        """
        active = await self.selector.select()
        if self.detecting:
            return active
        if self._loop is None:
            self._loop = SamplingLoop(active, self.s, camera_factory=self._camera_factory)
        try:
            await self._loop.start()
        except CameraUnavailableError as e:
            logger.error(f"[session] camera unavailable: {e}")
            self._camera_error = CAMERA_NOTICE
            raise
        self._camera_error = None
        self._started_at = time.time()
        return active

    async def stop_detection(self) -> bool:
        if not self.detecting:
            return False
        await self._loop.stop()
        self._started_at = None
        return True

    def status(self) -> DetectionStatus:
        active = self.selector.active
        return DetectionStatus(
            running=self.detecting,
            backend=active.kind if active else None,
            simulated=bool(active and active.simulated),
            notice=self._camera_error or (active.notice if active else None),
            probe_log=list(active.probe_log) if active else [],
            sample=self.latest_sample,
            started_at=self._started_at,
        )

    # ---- conversation ----
    async def send(self, text: str) -> Tuple[ConversationMessage, Optional[ConversationMessage]]:
        emotion = self.current_emotion
        logger.debug(f"[session] send emotion={emotion} chars={len(text or '')}")
        return await self.conversation.submit(text, emotion, self.engine.reply)

    async def close(self) -> None:
        self.conversation.close()
        if self._loop is not None:
            await self._loop.stop()
