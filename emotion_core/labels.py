"""
Label normalization onto the seven-emotion taxonomy.
"""
from __future__ import annotations
import math
from typing import Any

EMOTIONS = ("happy", "sad", "angry", "surprised", "fear", "disgust", "neutral")

DEFAULT_CONFIDENCE = 0.5

# Vocabularies seen in FER/FER+/AffectNet style classifiers and DeepFace
_SYNONYMS = {
    "angry": "angry",
    "anger": "angry",
    "disgust": "disgust",
    "disgusted": "disgust",
    "contempt": "disgust",
    "fear": "fear",
    "fearful": "fear",
    "happy": "happy",
    "happiness": "happy",
    "joy": "happy",
    "neutral": "neutral",
    "sad": "sad",
    "sadness": "sad",
    "surprise": "surprised",
    "surprised": "surprised",
}


def normalize_label(raw: Any) -> str:
    """Map any classifier label to one of EMOTIONS; unknown input is 'neutral'."""
    if not isinstance(raw, str):
        return "neutral"
    return _SYNONYMS.get(raw.strip().lower(), "neutral")


def clamp_confidence(score: Any) -> float:
    """Clamp a raw model score into [0, 1]; absent/NaN/non-numeric -> 0.5."""
    if score is None or isinstance(score, bool):
        return DEFAULT_CONFIDENCE
    try:
        value = float(score)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if math.isnan(value):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, value))
