# core/sampling.py
"""
Sampling loop: poll the committed backend and publish the latest EmotionSample.

Cadence follows the backend (about 1s for real models, 3s for the simulator).
Only the latest sample is kept. A failed tick is logged and skipped; it never
triggers re-probing of other backends.
"""
from __future__ import annotations
from typing import Callable, Optional
import asyncio
import logging
import time

from core.backends import normalize
from core.camera import open_camera
from core.cascade import ActiveBackend
from core.config import Settings
from core.errors import SampleTransientError
from core.models import EmotionSample

logger = logging.getLogger(__name__)


class SamplingLoop:
    def __init__(
        self,
        active: ActiveBackend,
        settings: Settings,
        camera_factory: Callable = open_camera,
        on_sample: Optional[Callable[[EmotionSample], None]] = None,
    ):
        self.active = active
        self.s = settings
        self._camera_factory = camera_factory
        self._on_sample = on_sample
        self._task: Optional[asyncio.Task] = None
        self._opened: Optional[asyncio.Future] = None
        self._running = False
        self._stopped = False
        self._latest: Optional[EmotionSample] = None
        self.ticks = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def latest(self) -> Optional[EmotionSample]:
        return self._latest

    @property
    def interval(self) -> float:
        return self.active.backend.interval

    # ---- lifecycle ----
    async def start(self) -> None:
        """Acquire the camera and begin polling. Camera errors propagate."""
        if self._running:
            return
        self._opened = asyncio.get_running_loop().create_future()
        self._running = True
        self._stopped = False
        self._task = asyncio.create_task(self._run())
        try:
            await self._opened
        except BaseException:
            await self.stop()
            raise

    async def stop(self) -> None:
        self._running = False
        self._stopped = True
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # ---- loop ----
    async def _run(self) -> None:
        try:
            with self._camera_factory(self.s) as camera:
                self._opened.set_result(True)
                logger.info(f"[sampling] started backend={self.active.kind} interval={self.interval}s")
                while self._running:
                    await self.tick(camera)
                    await asyncio.sleep(self.interval)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not self._opened.done():
                self._opened.set_exception(e)
            else:
                logger.exception("[sampling] loop crashed")
        finally:
            self._running = False
            if not self._opened.done():
                self._opened.cancel()
            logger.info("[sampling] stopped")

    async def tick(self, camera) -> Optional[EmotionSample]:
        """
        Run one sampling step against the active backend.

        Returns the newly published sample, or None when nothing was published
        (no face, transient failure, or the loop was stopped meanwhile).
        """
        self.ticks += 1
        backend = self.active.backend
        try:
            frame = camera.read()
            raw = await asyncio.wait_for(
                asyncio.to_thread(backend.sample, frame),
                timeout=self.s.SAMPLE_TIMEOUT,
            )
        except asyncio.TimeoutError:
            self.failures += 1
            logger.warning(f"[sampling] {backend.kind} sample timed out; keeping previous sample")
            return None
        except SampleTransientError as e:
            self.failures += 1
            logger.warning(f"[sampling] {e}; keeping previous sample")
            return None
        except Exception:
            self.failures += 1
            logger.exception(f"[sampling] {backend.kind} sample failed; keeping previous sample")
            return None

        try:
            result = normalize(raw)
            if result is None:
                logger.debug("[sampling] no face in frame")
                return None
            if self._stopped:
                # stopped while the classifier was busy; drop the stale result
                return None

            label, confidence, canonical = result
            if not canonical:
                logger.info(f"[sampling] unmapped emotion label passed through: {label!r}")
            sample = EmotionSample(
                label=label,
                confidence=confidence,
                timestamp=time.time(),
                canonical=canonical,
                backend=backend.kind,
            )
            self._latest = sample
            if self._on_sample is not None:
                self._on_sample(sample)
        except Exception:
            self.failures += 1
            logger.exception(f"[sampling] {backend.kind} returned a malformed classification; keeping previous sample")
            return None
        return sample
