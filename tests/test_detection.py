
import asyncio, itertools, random, time
import pytest
from emotion_core.config import Settings
from emotion_core.detection import EmotionDetector, WallClock
from emotion_core.loader import ModelLoader
from conftest import DummyHandle, DummySource


def make_detector(settings, candidates, handle=None, factory=None, **kw):
    loader = ModelLoader(candidates, factory or (lambda c: handle))
    return EmotionDetector(settings, loader=loader, rng=random.Random(1), **kw)

def test_primary_first_uses_model(settings, candidates, source):
    det = make_detector(settings, candidates, DummyHandle([{"label": "Joy", "score": 1.4}]))
    p = asyncio.run(det.detect_with_fallback(source))
    assert (p.emotion, p.confidence) == ("happy", 1.0)
    assert det.is_model_ready()

def test_fallback_only_never_touches_model(candidates, source):
    handle = DummyHandle()
    det = make_detector(Settings(DETECTION_MODE="fallback_only"), candidates, handle)
    p = asyncio.run(det.detect_with_fallback(source))
    assert p is not None and 0.4 <= p.confidence <= 0.7
    assert handle.calls == 0 and source.reads == 0
    assert det.loader.state == "uninitialized"

def test_mode_switch(settings, candidates):
    det = make_detector(settings, candidates, DummyHandle())
    det.mode = "fallback_only"
    assert det.mode == "fallback_only"
    with pytest.raises(ValueError):
        det.mode = "model_only"

def test_detect_returns_none_when_frame_unavailable(settings, candidates):
    det = make_detector(settings, candidates, DummyHandle())
    assert asyncio.run(det.detect(DummySource(ready=False))) is None
    p = asyncio.run(det.detect_with_fallback(DummySource(frame=False)))
    assert p is not None

def test_all_candidates_failed_still_predicts(settings, candidates, source):
    def factory(c):
        raise RuntimeError("nope")
    det = make_detector(settings, candidates, factory=factory)
    asyncio.run(det.initialize())  # failure is logged, not raised
    assert det.loader.state == "failed" and not det.is_model_ready()
    p = asyncio.run(det.detect_with_fallback(source))
    assert p.emotion in ("happy", "sad", "angry", "surprised", "fear", "disgust", "neutral")

def test_slow_primary_times_out_to_fallback(candidates, source):
    class SlowHandle(DummyHandle):
        def invoke(self, image):
            time.sleep(0.3)
            return super().invoke(image)
    s = Settings(DETECTION_MODE="primary_first", PRIMARY_TIMEOUT=0.05)
    det = make_detector(s, candidates, SlowHandle(), clock=lambda: 3000)
    p = asyncio.run(det.detect_with_fallback(source))
    assert p.emotion == "neutral" and p.timestamp == 3000

def test_call_during_timed_out_primary_skips_source(candidates, source):
    class SlowHandle(DummyHandle):
        def invoke(self, image):
            time.sleep(0.3)
            return super().invoke(image)
    handle = SlowHandle()
    s = Settings(DETECTION_MODE="primary_first", PRIMARY_TIMEOUT=0.05)
    det = make_detector(s, candidates, handle)

    async def go():
        first = await det.detect_with_fallback(source)
        busy = det.primary_busy()
        second = await det.detect_with_fallback(source)
        await det.wait_idle()
        return first, busy, second

    first, busy, second = asyncio.run(go())
    assert busy
    assert first is not None and second is not None
    assert source.reads == 1 and handle.calls == 1
    assert not det.primary_busy()

def test_dispose_during_load_falls_back(candidates, source):
    def slow_factory(c):
        time.sleep(0.3)
        return DummyHandle()
    det = make_detector(Settings(DETECTION_MODE="primary_first"), candidates, factory=slow_factory)

    async def go():
        pending = asyncio.ensure_future(det.detect_with_fallback(source))
        await asyncio.sleep(0.1)
        det.dispose()
        return await pending

    p = asyncio.run(go())
    assert p is not None and 0.4 <= p.confidence <= 0.7
    assert det.loader.state == "uninitialized"

def test_extractor_bug_is_contained(settings, candidates, source):
    def broken_extractor(src, min_side, quality):
        raise ZeroDivisionError("bad resize")
    det = make_detector(settings, candidates, DummyHandle(), extractor=broken_extractor)
    assert asyncio.run(det.detect_with_fallback(source)) is not None
    assert asyncio.run(det.detect(source)) is None

def test_never_none_across_conditions(candidates, source):
    healthy = DummyHandle([{"label": "sadness", "score": 0.8}])
    throwing = DummyHandle(exc=RuntimeError("model crashed"))
    empty = DummyHandle(results=[])
    ticks = itertools.count(0, 2000)

    def offline(candidate):
        raise OSError("offline")

    async def run():
        dets = [
            make_detector(Settings(DETECTION_MODE="primary_first"), candidates, h, clock=lambda: next(ticks))
            for h in (healthy, throwing, empty)
        ]
        dets.append(make_detector(Settings(DETECTION_MODE="primary_first"), candidates, factory=offline))
        out = []
        for i in range(1000):
            out.append(await dets[i % len(dets)].detect_with_fallback(source))
        return out

    results = asyncio.run(run())
    assert len(results) == 1000
    assert all(r is not None and 0.0 <= r.confidence <= 1.0 for r in results)
    assert any(r.emotion == "sad" and r.confidence == 0.8 for r in results)

def test_wall_clock_never_goes_backwards():
    values = iter([10.0, 9.0, 11.5])
    clock = WallClock(lambda: next(values))
    assert [clock(), clock(), clock()] == [10000, 10000, 11500]
