"""
Scoped webcam access (OpenCV).
"""
from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, Optional
import logging

import cv2
import numpy as np

from core.config import Settings
from core.errors import CameraUnavailableError, SampleTransientError

logger = logging.getLogger(__name__)


class Camera:
    """Thin wrapper over cv2.VideoCapture; owned by exactly one sampling loop."""
    def __init__(self, cap):
        self._cap = cap
        self.released = False

    def read(self) -> np.ndarray:
        ok, frame = self._cap.read()
        if not ok or frame is None:
            raise SampleTransientError("camera returned no frame")
        return frame

    def release(self) -> None:
        if not self.released:
            self._cap.release()
            self.released = True


@contextmanager
def open_camera(settings: Settings, index: Optional[int] = None) -> Iterator[Camera]:
    """
    Acquire the webcam for the duration of the block.

    The capture device is released on every exit path, including
    cancellation of the owning task.

    Raises:
        CameraUnavailableError: device could not be opened.
    """
    idx = settings.CAMERA_INDEX if index is None else index
    cap = cv2.VideoCapture(idx)
    if not cap.isOpened():
        cap.release()
        raise CameraUnavailableError(f"Could not open camera index {idx}")
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, settings.CAMERA_WIDTH)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, settings.CAMERA_HEIGHT)
    logger.debug(f"[camera] opened index={idx}")

    camera = Camera(cap)
    try:
        yield camera
    finally:
        camera.release()
        logger.debug(f"[camera] released index={idx}")


class BlankCamera:
    """Frame source for running without a webcam (simulation only)."""
    def __init__(self, width: int = 64, height: int = 48):
        self._frame = np.zeros((height, width, 3), dtype=np.uint8)
        self.released = False

    def read(self) -> np.ndarray:
        return self._frame

    def release(self) -> None:
        self.released = True


@contextmanager
def no_camera(settings: Settings) -> Iterator[BlankCamera]:
    cam = BlankCamera()
    try:
        yield cam
    finally:
        cam.release()
