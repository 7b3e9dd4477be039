
"""Poll the webcam and print emotion predictions as JSON lines.

Usage:
    uvicorn emotion_api.main:app --reload  # (separate, for API)
    python scripts/live_monitor.py --seconds 20

Ctrl+C stops early; a per-emotion summary is printed at the end.
"""
from __future__ import annotations
import argparse, asyncio, json, logging
from typing import Optional

from emotion_core.config import Settings
from emotion_core.detection import EmotionDetector
from emotion_core.frames import CameraSource
from emotion_core.live import LiveEmotionMonitor


async def run_live_monitor(settings: Settings, seconds: float, camera_index: Optional[int] = None) -> dict:
    cam_idx = settings.CAMERA_INDEX if camera_index is None else camera_index
    camera = CameraSource.open(cam_idx)
    detector = EmotionDetector(settings)
    monitor = LiveEmotionMonitor(detector, settings)
    init_task = asyncio.create_task(detector.initialize())
    monitor.attach(camera)
    try:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + seconds
        last = None
        while loop.time() < deadline:
            await asyncio.sleep(0.1)
            if monitor.current is not None and monitor.current is not last:
                last = monitor.current
                print(json.dumps(last.model_dump()), flush=True)
    finally:
        monitor.detach()
        await monitor.wait_idle()
        init_task.cancel()
        detector.dispose()
        camera.release()
    return monitor.emotion_counts()


if __name__ == '__main__':
    p = argparse.ArgumentParser()
    p.add_argument("--seconds", type=float, default=30.0)
    p.add_argument("--camera", type=int, default=None)
    args = p.parse_args()

    s = Settings()
    logging.basicConfig(level=getattr(logging, s.LOG_LEVEL.upper(), logging.INFO))
    try:
        counts = asyncio.run(run_live_monitor(s, args.seconds, args.camera))
        print(json.dumps({"summary": counts}, indent=2))
    except KeyboardInterrupt:
        pass
