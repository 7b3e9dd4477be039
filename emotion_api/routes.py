"""
REST endpoints for live emotion polling and single-image analysis.
"""
from fastapi import APIRouter, File, HTTPException, Request, UploadFile
import logging

from emotion_core.frames import ImageSource
from emotion_core.models import EmotionPrediction, LiveStatus, LoaderStatus

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/analyze/image", response_model=EmotionPrediction)
async def analyze_image(request: Request, file: UploadFile = File(...)):
    """
    Classify the facial expression in an uploaded still image.

    Args:
        file: Uploaded image file (any format OpenCV can decode).

    Returns:
        EmotionPrediction: primary model result, or the fallback's when the
        model is unavailable or disabled.
    """
    logger.debug(f"[api] /analyze/image filename={file.filename}")
    try:
        source = ImageSource.from_bytes(await file.read())
    except Exception as e:
        logger.exception("[api] image decode failed")
        raise HTTPException(status_code=400, detail=f"Invalid image: {e}")

    return await request.app.state.detector.detect_with_fallback(source)


@router.post("/live/start")
async def live_start(request: Request):
    state = request.app.state
    if state.monitor.running:
        return {"status": "already_running"}
    try:
        camera = state.source_factory(state.settings.CAMERA_INDEX)
    except Exception as e:
        logger.exception("[api] camera open failed")
        raise HTTPException(status_code=503, detail=str(e))
    state.camera = camera
    state.monitor.attach(camera)
    return {"status": "started"}


@router.get("/live/status", response_model=LiveStatus)
async def live_status(request: Request):
    return request.app.state.monitor.status()


@router.get("/live/history", response_model=list[EmotionPrediction])
async def live_history(request: Request):
    return request.app.state.monitor.history


@router.post("/live/stop")
async def live_stop(request: Request):
    state = request.app.state
    if not state.monitor.running:
        return {"status": "not_running"}
    state.monitor.detach()
    # the in-flight detection may still be reading the camera
    await state.monitor.wait_idle()
    camera, state.camera = state.camera, None
    if camera is not None and hasattr(camera, "release"):
        camera.release()
    return {"status": "stopped"}


@router.get("/model/status", response_model=LoaderStatus)
async def model_status(request: Request):
    return request.app.state.detector.loader.status()
