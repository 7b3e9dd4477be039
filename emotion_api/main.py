"""
FastAPI application entrypoint.
"""
from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI

from emotion_api.routes import router
from emotion_core.config import Settings
from emotion_core.detection import EmotionDetector
from emotion_core.frames import CameraSource
from emotion_core.live import LiveEmotionMonitor

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None,
               detector: Optional[EmotionDetector] = None,
               source_factory: Optional[Callable[[int], object]] = None) -> FastAPI:
    """
    Build the app; the lifespan owns one detector + monitor for the process.

    Args:
        settings: runtime settings (defaults read from the environment).
        detector: pre-built detector (tests inject one with a fake model factory).
        source_factory: opens the camera for /live/start (default CameraSource.open).
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        det = detector or EmotionDetector(settings)
        app.state.settings = settings
        app.state.detector = det
        app.state.monitor = LiveEmotionMonitor(det, settings)
        app.state.source_factory = source_factory or CameraSource.open
        app.state.camera = None
        # Model loading runs in the background; the fallback answers meanwhile
        init_task = asyncio.create_task(det.initialize())
        logger.info(f"[api] emotion detection ready (mode={det.mode})")
        try:
            yield
        finally:
            app.state.monitor.detach()
            await app.state.monitor.wait_idle()
            camera = app.state.camera
            if camera is not None and hasattr(camera, "release"):
                camera.release()
            init_task.cancel()
            det.dispose()

    app = FastAPI(title="Emotion Detection API", version="1.0.0", lifespan=lifespan)
    app.include_router(router)

    @app.get("/health")
    def health() -> dict:
        """
        Health check endpoint.

        Returns:
            dict: Simple status payload.
        """
        return {"status": "ok"}

    return app


_settings = Settings()
logging.basicConfig(level=getattr(logging, _settings.LOG_LEVEL.upper(), logging.INFO))
app = create_app(_settings)
