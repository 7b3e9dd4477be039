"""
Inference orchestrator: frame extraction -> primary classifier or fallback.
"""
from __future__ import annotations
from typing import Callable, Optional, Union
import asyncio
import logging
import random
import time

import numpy as np

from emotion_core.backends import create_classifier
from emotion_core.classifier import FallbackClassifier, PrimaryClassifier
from emotion_core.config import DETECTION_MODES, Settings
from emotion_core.errors import AllModelCandidatesFailed, RenderContextUnavailable
from emotion_core.frames import FrameSource, extract_frame
from emotion_core.loader import ModelLoader
from emotion_core.models import DetectionMode, EmotionPrediction, EncodedImage

logger = logging.getLogger(__name__)

Source = Union[FrameSource, np.ndarray]


class WallClock:
    """Wall-clock milliseconds that never go backwards."""
    def __init__(self, time_fn: Callable[[], float] = time.time):
        self._time_fn = time_fn
        self._last = 0

    def __call__(self) -> int:
        self._last = max(self._last, int(self._time_fn() * 1000))
        return self._last


class EmotionDetector:
    """
    Composes the pipeline pieces and picks the classification path.

    Lifecycle: construct -> initialize() -> ... -> dispose(). One instance is
    owned by the application composition (API lifespan or script main).
    """
    def __init__(self,
                 settings: Settings,
                 loader: Optional[ModelLoader] = None,
                 fallback: Optional[FallbackClassifier] = None,
                 extractor: Callable[..., EncodedImage] = extract_frame,
                 clock: Optional[Callable[[], int]] = None,
                 rng: Optional[random.Random] = None):
        self.s = settings
        self.loader = loader or ModelLoader(
            settings.model_candidates(),
            lambda candidate: create_classifier(candidate, settings),
        )
        self.primary = PrimaryClassifier(self.loader)
        self.fallback = fallback or FallbackClassifier(
            window_ms=settings.FALLBACK_WINDOW_MS,
            low=settings.FALLBACK_MIN_CONFIDENCE,
            high=settings.FALLBACK_MAX_CONFIDENCE,
            rng=rng,
        )
        self._extract = extractor
        self._clock = clock or WallClock()
        self._mode: DetectionMode = settings.DETECTION_MODE  # type: ignore[assignment]
        self._primary_task: Optional[asyncio.Future] = None

    # ---- policy ----
    @property
    def mode(self) -> DetectionMode:
        return self._mode

    @mode.setter
    def mode(self, value: str) -> None:
        if value not in DETECTION_MODES:
            raise ValueError(f"Unknown detection mode: {value!r}")
        logger.info(f"[detect] mode {self._mode} -> {value}")
        self._mode = value  # type: ignore[assignment]

    def is_model_ready(self) -> bool:
        return self.loader.is_ready()

    # ---- lifecycle ----
    async def initialize(self) -> None:
        """Load the primary model; failure leaves the fallback path in charge."""
        try:
            await self.loader.initialize()
        except AllModelCandidatesFailed as e:
            logger.warning(f"[detect] AI model initialization failed, using fallback: {e}")

    def dispose(self) -> None:
        self.loader.dispose()

    # ---- detection ----
    async def detect(self, source: Source) -> Optional[EmotionPrediction]:
        """Primary path only; None when the frame or the model cannot answer."""
        try:
            frame = await asyncio.to_thread(
                self._extract, source, self.s.MIN_FRAME_SIDE, self.s.JPEG_QUALITY
            )
        except RenderContextUnavailable as e:
            logger.warning(f"[detect] frame extraction skipped: {e}")
            return None
        except Exception:
            logger.exception("[detect] frame extraction failed")
            return None
        return await self.primary.classify(frame, self._clock())

    def primary_busy(self) -> bool:
        return self._primary_task is not None and not self._primary_task.done()

    async def detect_with_fallback(self, source: Source) -> EmotionPrediction:
        """
        Always returns a prediction; primary failures of any kind fall back.

        A primary detection that outlives PRIMARY_TIMEOUT is left to finish;
        calls made meanwhile go straight to the fallback, so the source and the
        model handle are never used by two detections at once.
        """
        if self._mode == "primary_first":
            if self.primary_busy():
                logger.debug("[detect] previous primary detection still running, using fallback")
            else:
                result = await self._run_primary(source)
                if result is not None:
                    return result

        return self.fallback.classify(self._clock())

    async def _run_primary(self, source: Source) -> Optional[EmotionPrediction]:
        task = asyncio.ensure_future(self.detect(source))
        self._primary_task = task
        done, _ = await asyncio.wait({task}, timeout=self.s.PRIMARY_TIMEOUT)
        if task not in done:
            logger.warning(f"[detect] primary detection exceeded {self.s.PRIMARY_TIMEOUT}s, using fallback")
            return None
        if task.cancelled():
            logger.warning("[detect] primary detection was cancelled, using fallback")
            return None
        if task.exception() is not None:
            logger.error("[detect] primary emotion detection failed, using fallback",
                         exc_info=task.exception())
            return None
        return task.result()

    async def wait_idle(self) -> None:
        """Wait for a primary detection left running past its timeout."""
        task = self._primary_task
        if task is not None and not task.done():
            await asyncio.wait({task})
