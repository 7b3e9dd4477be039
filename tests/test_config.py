
from emotion_core.config import Settings
from emotion_core.models import ModelCandidate

def test_Settings():
    s = Settings()
    assert s.HISTORY_LIMIT >= 1
    assert s.DETECTION_MODE in ("primary_first", "fallback_only")
    # override via env-like behavior (construct new instance)
    s2 = Settings(LIVE_EMOTION_INTERVAL=0.5)
    assert s2.LIVE_EMOTION_INTERVAL == 0.5

def test_Settings_normalization():
    s = Settings(ACCELERATED_DEVICE="CUDA  # gpu box", DETECTION_MODE="Primary-First")
    assert s.ACCELERATED_DEVICE == "cuda"
    assert s.DETECTION_MODE == "primary_first"
    s2 = Settings(ACCELERATED_DEVICE="tpu", DETECTION_MODE="whatever", HISTORY_LIMIT=0)
    assert s2.ACCELERATED_DEVICE == "cuda"
    assert s2.DETECTION_MODE == "fallback_only"
    assert s2.HISTORY_LIMIT == 1

def test_model_candidates_order():
    s = Settings(EMOTION_MODELS="a/b@accelerated, a/b@cpu ,deepface,, c/d@webgpu")
    assert s.model_candidates() == [
        ModelCandidate(model="a/b", device="accelerated"),
        ModelCandidate(model="a/b", device="cpu"),
        ModelCandidate(model="deepface", device="cpu"),
        ModelCandidate(model="c/d", device="accelerated"),
    ]
