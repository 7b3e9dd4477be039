"""
Primary (model-backed) and fallback (model-free) emotion classifiers.
"""
from __future__ import annotations
from typing import Any, Optional
import asyncio
import logging
import random

from emotion_core.errors import AllModelCandidatesFailed, ClassifierInvocationFailed
from emotion_core.labels import clamp_confidence, normalize_label
from emotion_core.loader import ModelLoader
from emotion_core.models import EmotionPrediction, EncodedImage

logger = logging.getLogger(__name__)

FALLBACK_ORDER = ("happy", "neutral", "surprised", "sad", "angry", "fear", "disgust")


def prediction_from_results(results: Any, timestamp: int) -> EmotionPrediction:
    """
    Turn raw classifier output into a normalized prediction.

    Reads the top-ranked (first) entry; the label is normalized and the score
    clamped into [0, 1] (absent -> 0.5).

    Raises:
        ClassifierInvocationFailed: results are empty or not label/score records.
    """
    if isinstance(results, dict):
        results = [results]
    if not isinstance(results, (list, tuple)) or not results:
        raise ClassifierInvocationFailed("No emotion results returned from model")
    top = results[0]
    if not isinstance(top, dict) or not isinstance(top.get("label"), str):
        raise ClassifierInvocationFailed(f"Malformed classifier result: {top!r}")

    emotion = normalize_label(top["label"])
    confidence = clamp_confidence(top.get("score"))
    logger.debug(f"[classifier] detected {emotion} ({top['label']}) confidence={confidence:.3f}")
    return EmotionPrediction(emotion=emotion, confidence=confidence, timestamp=int(timestamp))


class PrimaryClassifier:
    """Runs the loaded model against an encoded frame."""
    def __init__(self, loader: ModelLoader):
        self.loader = loader

    async def classify(self, frame: EncodedImage, now: int) -> Optional[EmotionPrediction]:
        """Return a prediction, or None when the model cannot answer for this frame."""
        if not self.loader.is_ready():
            try:
                await self.loader.initialize()
            except AllModelCandidatesFailed:
                return None
        handle = self.loader.handle
        if handle is None:
            return None

        try:
            raw = await asyncio.to_thread(handle.invoke, frame)
            return prediction_from_results(raw, now)
        except ClassifierInvocationFailed as e:
            logger.warning(f"[classifier] primary classifier could not answer: {e}")
        except Exception:
            logger.exception("[classifier] error detecting emotion")
        return None


class FallbackClassifier:
    """
    Deterministic, model-free predictor.

    The label cycles through FALLBACK_ORDER, one step per `window_ms`;
    the confidence is drawn uniformly from [low, high].
    """
    def __init__(self, window_ms: int = 3000, low: float = 0.4, high: float = 0.7,
                 rng: Optional[random.Random] = None):
        self.window_ms = max(1, int(window_ms))
        self.low = clamp_confidence(min(low, high))
        self.high = clamp_confidence(max(low, high))
        self._rng = rng or random.Random()

    def label_at(self, now: int) -> str:
        return FALLBACK_ORDER[(int(now) // self.window_ms) % len(FALLBACK_ORDER)]

    def classify(self, now: int) -> EmotionPrediction:
        emotion = self.label_at(now)
        confidence = self._rng.uniform(self.low, self.high)
        logger.debug(f"[classifier] fallback emotion {emotion} (cycling) confidence={confidence:.3f}")
        return EmotionPrediction(emotion=emotion, confidence=confidence, timestamp=int(now))
