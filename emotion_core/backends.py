"""
Concrete classifier adapters.

Each adapter exposes only ``invoke(image) -> [{"label": str, "score": float}, ...]``
ranked best-first. Heavy stacks (transformers/torch, DeepFace/TensorFlow) are
imported lazily at construction so that a missing stack fails the candidate,
not the process, and tests can inject fakes via sys.modules.
"""
from __future__ import annotations
from typing import Dict, List, Protocol
import logging

import cv2
import numpy as np

from emotion_core.config import Settings
from emotion_core.models import EncodedImage, ModelCandidate

logger = logging.getLogger(__name__)

DEEPFACE_MODEL = "deepface"


class ClassifierHandle(Protocol):
    def invoke(self, image: EncodedImage) -> List[Dict]: ...


def decode_image(image: EncodedImage) -> np.ndarray:
    """Decode an EncodedImage back into a BGR array."""
    buf = np.frombuffer(image.data, dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_COLOR) if buf.size else None
    if img is None:
        raise ValueError(f"Could not decode {image.mime_type} frame")
    return img


class TransformersClassifier:
    """Hugging Face ``image-classification`` pipeline."""
    def __init__(self, model: str, device: str = "cpu", top_k: int = 7):
        from transformers import pipeline
        from PIL import Image

        self._image_cls = Image
        self.model = model
        self.top_k = int(top_k)
        self._pipe = pipeline("image-classification", model=model, device=device)

    def invoke(self, image: EncodedImage) -> List[Dict]:
        rgb = cv2.cvtColor(decode_image(image), cv2.COLOR_BGR2RGB)
        preds = self._pipe(self._image_cls.fromarray(rgb), top_k=self.top_k)
        # Some pipelines nest results per input image
        if preds and isinstance(preds[0], list):
            preds = preds[0]
        return [{"label": p.get("label"), "score": p.get("score")} for p in preds or []]


class DeepFaceClassifier:
    """DeepFace emotion head with the OpenCV face detector."""
    def __init__(self, detector_backend: str = "opencv"):
        from deepface import DeepFace

        self._deepface = DeepFace
        self.detector_backend = detector_backend

    def invoke(self, image: EncodedImage) -> List[Dict]:
        res = self._deepface.analyze(
            decode_image(image),
            actions=["emotion"],
            enforce_detection=False,
            detector_backend=self.detector_backend,
        )
        res = res if isinstance(res, list) else [res]
        r0 = res[0] if res else {}
        if not isinstance(r0, dict):
            return []

        probs = r0.get("emotion")
        if isinstance(probs, dict) and probs:
            ranked = sorted(probs.items(), key=lambda kv: float(kv[1]), reverse=True)
            # DeepFace reports percentages
            scale = 100.0 if any(float(v) > 1.0 for _, v in ranked) else 1.0
            return [{"label": k, "score": float(v) / scale} for k, v in ranked]

        dom = r0.get("dominant_emotion")
        if isinstance(dom, str) and dom:
            return [{"label": dom}]
        return []


def create_classifier(candidate: ModelCandidate, settings: Settings | None = None) -> ClassifierHandle:
    """Build the classifier for one (model, device) candidate; raises on failure."""
    settings = settings or Settings()
    if candidate.model.lower() == DEEPFACE_MODEL:
        if candidate.device != "cpu":
            raise RuntimeError("DeepFace adapter only runs on cpu")
        return DeepFaceClassifier()

    device = "cpu" if candidate.device == "cpu" else settings.ACCELERATED_DEVICE
    logger.debug(f"[backends] building transformers pipeline model={candidate.model} device={device}")
    return TransformersClassifier(candidate.model, device=device)
