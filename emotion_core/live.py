# emotion_core/live.py
"""
Live (real-time) emotion polling.

While a video source is attached, a repeating task asks the detector for a
prediction every LIVE_EMOTION_INTERVAL seconds and folds the result into:
- `current`: the latest prediction
- `history`: the last HISTORY_LIMIT predictions, oldest first

Ticks never overlap: a firing that finds the previous tick still running is
skipped. detach() cancels the timer; a tick still in flight completes but its
result is discarded.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter, deque
from typing import Deque, Dict, List, Optional

from emotion_core.config import Settings
from emotion_core.detection import EmotionDetector, Source
from emotion_core.models import EmotionPrediction, LiveStatus

logger = logging.getLogger(__name__)


class LiveEmotionMonitor:
    """Owns the current prediction and the bounded emotion history."""
    def __init__(self, detector: EmotionDetector, settings: Settings):
        self.s = settings
        self.detector = detector
        self._interval = float(settings.LIVE_EMOTION_INTERVAL)
        self._history: Deque[EmotionPrediction] = deque(maxlen=settings.HISTORY_LIMIT)
        self._current: Optional[EmotionPrediction] = None
        self._source: Optional[Source] = None
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._busy = False
        self._idle: Optional[asyncio.Future] = None
        self._generation = 0
        self._attached_at: Optional[float] = None

    # ---- lifecycle ----
    def attach(self, source: Source) -> None:
        """Bind a source and start polling; history is kept across sources."""
        self._stop_timer()
        self._generation += 1
        self._source = source
        self._attached_at = time.time()
        self._timer = asyncio.get_running_loop().create_task(self._run(self._generation))
        logger.info(f"[live] attached source, polling every {self._interval}s")

    def detach(self) -> None:
        if self._source is None and self._timer is None:
            return
        self._stop_timer()
        self._generation += 1
        self._source = None
        self._attached_at = None
        logger.info("[live] detached source")

    async def wait_idle(self) -> None:
        """Wait until no detection started by this monitor is still touching a source."""
        idle = self._idle
        if idle is not None and not idle.done():
            await asyncio.shield(idle)
        await self.detector.wait_idle()

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def running(self) -> bool:
        return self._source is not None

    # ---- loop ----
    async def _run(self, generation: int) -> None:
        while generation == self._generation:
            await asyncio.sleep(self._interval)
            if self._busy:
                logger.debug("[live] previous detection still running; skipping tick")
                continue
            self._inflight = asyncio.ensure_future(self.tick())

    async def tick(self) -> Optional[EmotionPrediction]:
        """Run one detection and record it; None if skipped or discarded."""
        source = self._source
        if source is None or self._busy:
            return None

        generation = self._generation
        self._busy = True
        idle = self._idle = asyncio.get_running_loop().create_future()
        try:
            prediction = await self.detector.detect_with_fallback(source)
        except Exception:
            logger.exception("[live] error during emotion detection")
            return None
        finally:
            self._busy = False
            if not idle.done():
                idle.set_result(None)

        if generation != self._generation:
            logger.debug("[live] source changed during detection; discarding result")
            return None

        self._current = prediction
        self._history.append(prediction)
        logger.debug(f"[live] {prediction.emotion} confidence={prediction.confidence:.2f} "
                     f"history={len(self._history)}")
        return prediction

    # ---- read side ----
    @property
    def current(self) -> Optional[EmotionPrediction]:
        return self._current

    @property
    def history(self) -> List[EmotionPrediction]:
        return list(self._history)

    def emotion_counts(self) -> Dict[str, int]:
        return dict(Counter(p.emotion for p in self._history))

    def status(self) -> LiveStatus:
        return LiveStatus(
            running=self.running,
            mode=self.detector.mode,
            model_ready=self.detector.is_model_ready(),
            attached_at=self._attached_at,
            current=self._current,
            history=self.history,
            counts=self.emotion_counts(),
        )
