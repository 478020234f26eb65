import asyncio
import random
import pytest

from core.backends import SimulatedBackend
from core.cascade import ActiveBackend, CascadeSelector
from core.errors import CameraUnavailableError
from core.models import ProbeResult
from core.sampling import SamplingLoop


def _active(backend):
    return ActiveBackend(backend, [ProbeResult(backend=backend.kind, ok=True)])


def test_tick_publishes_normalized_sample(settings, make_backend, camera_factory):
    backend = make_backend(kind="primary", samples=[{"surprise": 0.7, "happy": 0.2}])
    loop = SamplingLoop(_active(backend), settings, camera_factory=camera_factory)
    published = []
    loop._on_sample = published.append

    async def scenario():
        with camera_factory(settings) as cam:
            return await loop.tick(cam)

    sample = asyncio.run(scenario())
    assert sample.label == "surprised"
    assert sample.confidence == 0.7
    assert sample.backend == "primary"
    assert loop.latest is sample
    assert published == [sample]

def test_failed_tick_keeps_previous_sample(settings, make_backend, camera_factory):
    backend = make_backend(kind="primary", samples=[{"sad": 0.9}, RuntimeError("model blew up"), {}])
    loop = SamplingLoop(_active(backend), settings, camera_factory=camera_factory)

    async def scenario():
        with camera_factory(settings) as cam:
            first = await loop.tick(cam)
            failed = await loop.tick(cam)
            no_face = await loop.tick(cam)
            return first, failed, no_face

    first, failed, no_face = asyncio.run(scenario())
    assert failed is None and no_face is None
    assert loop.latest is first
    assert loop.failures == 1

def test_unmapped_label_flagged(settings, make_backend, camera_factory):
    backend = make_backend(kind="primary", samples=[{"contempt": 0.8}])
    loop = SamplingLoop(_active(backend), settings, camera_factory=camera_factory)

    async def scenario():
        with camera_factory(settings) as cam:
            return await loop.tick(cam)

    sample = asyncio.run(scenario())
    assert sample.label == "contempt"
    assert not sample.canonical
    assert sample.prompt_label == "unknown"

def test_sample_timeout_is_skipped(settings, make_backend, camera_factory):
    import time

    class Slow(type(make_backend())):
        def sample(self, frame):
            time.sleep(0.3)
            return {"happy": 1.0}

    backend = Slow(settings, kind="primary")
    s = settings.model_copy(update={"SAMPLE_TIMEOUT": 0.05})
    loop = SamplingLoop(_active(backend), s, camera_factory=camera_factory)

    async def scenario():
        with camera_factory(s) as cam:
            return await loop.tick(cam)

    assert asyncio.run(scenario()) is None
    assert loop.latest is None

def test_loop_runs_and_releases_camera(settings, camera_factory):
    backend = SimulatedBackend(settings, rng=random.Random(7))
    loop = SamplingLoop(_active(backend), settings, camera_factory=camera_factory)

    async def scenario():
        await loop.start()
        assert loop.running
        await asyncio.sleep(0.08)
        await loop.stop()

    asyncio.run(scenario())
    assert not loop.running
    assert loop.ticks >= 2
    assert loop.latest is not None and loop.latest.backend == "simulated"
    assert len(camera_factory.cameras) == 1
    assert camera_factory.cameras[0].released

def test_camera_released_when_reads_fail(settings, make_backend, make_camera_factory):
    factory = make_camera_factory(fail_reads=True)
    backend = make_backend(kind="primary")
    loop = SamplingLoop(_active(backend), settings, camera_factory=factory)

    async def scenario():
        await loop.start()
        await asyncio.sleep(0.05)
        await loop.stop()

    asyncio.run(scenario())
    assert loop.latest is None
    assert loop.failures >= 1
    assert backend.sample_calls == 0
    assert factory.cameras[0].released

def test_camera_open_failure_propagates(settings, make_backend, make_camera_factory):
    factory = make_camera_factory(fail_open=True)
    loop = SamplingLoop(_active(make_backend(kind="primary")), settings, camera_factory=factory)
    with pytest.raises(CameraUnavailableError):
        asyncio.run(loop.start())
    assert not loop.running

def test_sampling_errors_never_reprobe(settings, make_backend, camera_factory):
    primary = make_backend(kind="primary", samples=[RuntimeError("boom")] * 5)
    secondary = make_backend(kind="secondary")
    selector = CascadeSelector([primary, secondary], settings)

    async def scenario():
        active = await selector.select()
        loop = SamplingLoop(active, settings, camera_factory=camera_factory)
        await loop.start()
        await asyncio.sleep(0.05)
        await loop.stop()
        again = await selector.select()
        return active, again, loop

    active, again, loop = asyncio.run(scenario())
    assert active is again and active.kind == "primary"
    assert loop.failures >= 1
    assert primary.init_calls == 1
    assert secondary.init_calls == 0

def test_result_after_stop_is_discarded(settings, make_backend, camera_factory):
    backend = make_backend(kind="primary", samples=[{"happy": 0.9}])
    loop = SamplingLoop(_active(backend), settings, camera_factory=camera_factory)

    async def scenario():
        await loop.stop()
        with camera_factory(settings) as cam:
            return await loop.tick(cam)

    assert asyncio.run(scenario()) is None
    assert loop.latest is None

def test_malformed_classification_does_not_kill_loop(settings, make_backend, camera_factory):
    backend = make_backend(kind="primary", samples=[{"happy": None}] + [{"sad": 0.9}] * 50)
    loop = SamplingLoop(_active(backend), settings, camera_factory=camera_factory)

    async def scenario():
        await loop.start()
        await asyncio.sleep(0.1)
        alive = loop.running
        await loop.stop()
        return alive

    assert asyncio.run(scenario())
    assert loop.failures >= 1
    assert loop.latest is not None and loop.latest.label == "sad"
    assert backend.sample_calls >= 2

def test_failing_publish_callback_is_contained(settings, make_backend, camera_factory):
    backend = make_backend(kind="primary", samples=[{"happy": 0.9}])
    loop = SamplingLoop(_active(backend), settings, camera_factory=camera_factory)

    def explode(sample):
        raise ValueError("listener broke")

    loop._on_sample = explode

    async def scenario():
        with camera_factory(settings) as cam:
            return await loop.tick(cam)

    assert asyncio.run(scenario()) is None
    assert loop.failures == 1
