"""
Configuration for the emotion inference pipeline.
"""
from __future__ import annotations
from typing import List
from pydantic import BaseModel
import os

from emotion_core.models import ModelCandidate

DEFAULT_EMOTION_MODELS = (
    "dima806/facial_emotions_image_detection@cpu,"
    "dima806/facial_emotions_image_detection@accelerated,"
    "trpakov/vit-face-expression@cpu,"
    "deepface@cpu"
)

DETECTION_MODES = ("primary_first", "fallback_only")


class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    ACCELERATED_DEVICE: str = (os.getenv("ACCELERATED_DEVICE", "cuda") or "cuda")

    EMOTION_MODELS: str = os.getenv("EMOTION_MODELS", DEFAULT_EMOTION_MODELS)
    DETECTION_MODE: str = os.getenv("DETECTION_MODE", "fallback_only")
    PRIMARY_TIMEOUT: float = float(os.getenv("PRIMARY_TIMEOUT", "10"))

    MIN_FRAME_SIDE: int = int(os.getenv("MIN_FRAME_SIDE", "224"))
    JPEG_QUALITY: int = int(os.getenv("JPEG_QUALITY", "90"))

    FALLBACK_WINDOW_MS: int = int(os.getenv("FALLBACK_WINDOW_MS", "3000"))
    FALLBACK_MIN_CONFIDENCE: float = float(os.getenv("FALLBACK_MIN_CONFIDENCE", "0.4"))
    FALLBACK_MAX_CONFIDENCE: float = float(os.getenv("FALLBACK_MAX_CONFIDENCE", "0.7"))

    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))
    LIVE_EMOTION_INTERVAL: float = float(os.getenv("LIVE_EMOTION_INTERVAL", "2"))
    HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "50"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize ACCELERATED_DEVICE: strip comments/extra words, lower-case, validate
        dev = (self.ACCELERATED_DEVICE or "cuda").strip().split()[0].lower()
        if dev not in ("cuda", "mps"):
            dev = "cuda"
        object.__setattr__(self, "ACCELERATED_DEVICE", dev)

        mode = (self.DETECTION_MODE or "").strip().lower().replace("-", "_")
        if mode not in DETECTION_MODES:
            mode = "fallback_only"
        object.__setattr__(self, "DETECTION_MODE", mode)

        object.__setattr__(self, "HISTORY_LIMIT", max(1, int(self.HISTORY_LIMIT)))

    def model_candidates(self) -> List[ModelCandidate]:
        """Ordered (model, device) pairs parsed from EMOTION_MODELS."""
        return [
            ModelCandidate.parse(item)
            for item in (self.EMOTION_MODELS or "").split(",")
            if item.strip()
        ]
