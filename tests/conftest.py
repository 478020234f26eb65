import pytest
from contextlib import contextmanager
import numpy as np

from core.backends import DetectorBackend
from core.config import Settings


class FakeCamera:
    def __init__(self, fail_reads: bool = False):
        self.reads = 0
        self.released = False
        self.fail_reads = fail_reads

    def read(self):
        self.reads += 1
        if self.fail_reads:
            raise RuntimeError("camera unplugged")
        return np.zeros((32, 32, 3), dtype=np.uint8)

    def release(self):
        self.released = True


class CameraFactory:
    """Context-manager factory recording every camera it hands out."""
    def __init__(self, fail_open: bool = False, fail_reads: bool = False):
        self.fail_open = fail_open
        self.fail_reads = fail_reads
        self.cameras = []

    @contextmanager
    def __call__(self, settings):
        if self.fail_open:
            from core.errors import CameraUnavailableError
            raise CameraUnavailableError("Could not open camera index 0")
        cam = FakeCamera(fail_reads=self.fail_reads)
        self.cameras.append(cam)
        try:
            yield cam
        finally:
            cam.release()


class StubBackend(DetectorBackend):
    """Backend with scripted init outcome and scripted samples."""
    def __init__(self, settings, kind="primary", init=True, samples=None):
        super().__init__(settings)
        self.kind = kind
        self.name = f"stub-{kind}"
        self.init = init
        self.samples = list(samples or [])
        self.init_calls = 0
        self.sample_calls = 0

    async def initialize(self):
        self.init_calls += 1
        if isinstance(self.init, Exception):
            raise self.init
        if callable(self.init):
            return await self.init()
        self._ready = bool(self.init)
        return self._ready

    def sample(self, frame):
        self.sample_calls += 1
        item = self.samples.pop(0) if self.samples else {"happy": 0.9}
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def settings():
    return Settings(
        ML_SAMPLE_INTERVAL=0.01,
        SIM_SAMPLE_INTERVAL=0.01,
        BACKEND_INIT_TIMEOUT=0.2,
        SAMPLE_TIMEOUT=0.5,
        HF_TOKEN="test-token",
        REPLY_API_URL="https://llm.test/v1/chat/completions",
    )


@pytest.fixture
def camera_factory():
    return CameraFactory()


@pytest.fixture
def make_backend(settings):
    def _make(**kw):
        return StubBackend(settings, **kw)
    return _make


@pytest.fixture
def make_camera_factory():
    return CameraFactory
