"""
Pydantic data models shared by the pipeline and the API.
"""
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Literal, Optional

from emotion_core.labels import clamp_confidence

EmotionLabel = Literal["happy", "sad", "angry", "surprised", "fear", "disgust", "neutral"]
ComputeDevice = Literal["cpu", "accelerated"]
LoaderState = Literal["uninitialized", "initializing", "ready", "failed"]
DetectionMode = Literal["primary_first", "fallback_only"]


class EmotionPrediction(BaseModel):
    model_config = ConfigDict(frozen=True)

    emotion: EmotionLabel
    confidence: float
    timestamp: int

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, v):
        return clamp_confidence(v)


class ModelCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    device: ComputeDevice = "cpu"

    @classmethod
    def parse(cls, text: str) -> "ModelCandidate":
        """Parse ``model@device``; a missing or unknown device means cpu."""
        model, _, device = text.strip().rpartition("@")
        if not model:
            return cls(model=device.strip())
        device = device.strip().lower()
        if device in ("gpu", "cuda", "webgpu", "mps"):
            device = "accelerated"
        if device not in ("cpu", "accelerated"):
            device = "cpu"
        return cls(model=model.strip(), device=device)

    def __str__(self) -> str:
        return f"{self.model}@{self.device}"


class EncodedImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: Literal["image/jpeg", "image/png"]
    width: int
    height: int


class LoaderStatus(BaseModel):
    state: LoaderState
    model: Optional[str] = None
    device: Optional[ComputeDevice] = None
    errors: List[str] = Field(default_factory=list)


# live model


class LiveStatus(BaseModel):
    running: bool
    mode: DetectionMode
    model_ready: bool
    attached_at: float | None = None
    current: EmotionPrediction | None = None
    history: List[EmotionPrediction] = Field(default_factory=list)
    counts: Dict[str, int] = Field(default_factory=dict)
