
import numpy as np
import pytest

import core.camera as camera
from core.errors import CameraUnavailableError, SampleTransientError


class DummyCap:
    def __init__(self, idx, opened=True, frames=1):
        self.idx = idx
        self.opened = opened
        self.frames = frames
        self.released = 0
        self.props = {}
    def isOpened(self): return self.opened
    def set(self, prop, value): self.props[prop] = value
    def read(self):
        if self.frames <= 0:
            return False, None
        self.frames -= 1
        return True, np.zeros((48, 64, 3), dtype=np.uint8)
    def release(self): self.released += 1


def test_open_camera_releases_on_exit(monkeypatch, settings):
    caps = []
    monkeypatch.setattr(camera.cv2, "VideoCapture", lambda idx: caps.append(DummyCap(idx)) or caps[-1])

    with camera.open_camera(settings, index=3) as cam:
        frame = cam.read()
        assert frame.shape == (48, 64, 3)
        with pytest.raises(SampleTransientError):
            cam.read()
    assert caps[0].idx == 3
    assert caps[0].released == 1
    assert caps[0].props[camera.cv2.CAP_PROP_FRAME_WIDTH] == settings.CAMERA_WIDTH

def test_open_camera_releases_on_error(monkeypatch, settings):
    caps = []
    monkeypatch.setattr(camera.cv2, "VideoCapture", lambda idx: caps.append(DummyCap(idx)) or caps[-1])

    with pytest.raises(RuntimeError):
        with camera.open_camera(settings):
            raise RuntimeError("sampling crashed")
    assert caps[0].released == 1

def test_open_camera_unavailable(monkeypatch, settings):
    monkeypatch.setattr(camera.cv2, "VideoCapture", lambda idx: DummyCap(idx, opened=False))
    with pytest.raises(CameraUnavailableError):
        with camera.open_camera(settings):
            pass

def test_no_camera_blank_frames(settings):
    with camera.no_camera(settings) as cam:
        assert cam.read().sum() == 0
    assert cam.released
