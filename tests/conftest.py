import numpy as np
import pytest

from emotion_core.config import Settings
from emotion_core.models import ModelCandidate


class DummySource:
    """Video-like source with a fixed intrinsic size."""
    def __init__(self, width=320, height=240, ready=True, frame=True):
        self._w, self._h = width, height
        self._ready = ready
        self.reads = 0
        self.frame = np.full((height or 8, width or 8, 3), 127, dtype=np.uint8) if frame else None

    @property
    def width(self): return self._w
    @property
    def height(self): return self._h
    @property
    def ready(self): return self._ready

    def read_frame(self):
        self.reads += 1
        return self.frame


class DummyHandle:
    def __init__(self, results=None, exc=None):
        self.results = results if results is not None else [{"label": "Joy", "score": 0.9}]
        self.exc = exc
        self.calls = 0

    def invoke(self, image):
        self.calls += 1
        if self.exc is not None:
            raise self.exc
        return self.results


@pytest.fixture
def settings():
    return Settings(
        EMOTION_MODELS="fake/model@accelerated,fake/model@cpu",
        DETECTION_MODE="primary_first",
        PRIMARY_TIMEOUT=5.0,
        LIVE_EMOTION_INTERVAL=2.0,
    )


@pytest.fixture
def candidates():
    return [ModelCandidate(model="fake/model", device="accelerated"),
            ModelCandidate(model="fake/model", device="cpu")]


@pytest.fixture
def source():
    return DummySource()
