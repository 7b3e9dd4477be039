"""Frame sources and the frame extractor.

- CameraSource: live webcam (cv2.VideoCapture) with intrinsic size and a ready signal
- ImageSource: a still BGR image (decoded upload, file on disk, test array)
- extract_frame: render the current frame at >= MIN_FRAME_SIDE per axis and encode it
"""
from __future__ import annotations
import logging
from typing import Optional, Protocol, Tuple, Union, runtime_checkable

import cv2
import numpy as np

from emotion_core.errors import RenderContextUnavailable
from emotion_core.models import EncodedImage

logger = logging.getLogger(__name__)

MIN_FRAME_SIDE = 224
DEFAULT_WIDTH, DEFAULT_HEIGHT = 640, 480
JPEG_QUALITY = 90


@runtime_checkable
class FrameSource(Protocol):
    """Anything that can hand out its current frame as a BGR array."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    @property
    def ready(self) -> bool: ...

    def read_frame(self) -> Optional[np.ndarray]: ...


class ImageSource:
    """Still image source."""
    def __init__(self, image: np.ndarray):
        self.image = image

    @classmethod
    def from_bytes(cls, data: bytes) -> "ImageSource":
        buf = np.frombuffer(data, dtype=np.uint8)
        img = cv2.imdecode(buf, cv2.IMREAD_COLOR) if buf.size else None
        if img is None:
            raise ValueError("Could not decode image data")
        return cls(img)

    @classmethod
    def from_file(cls, path: str) -> "ImageSource":
        img = cv2.imread(path, cv2.IMREAD_COLOR)
        if img is None:
            raise FileNotFoundError(f"Could not read image: {path}")
        return cls(img)

    @property
    def width(self) -> int:
        return int(self.image.shape[1]) if self.image is not None and self.image.ndim >= 2 else 0

    @property
    def height(self) -> int:
        return int(self.image.shape[0]) if self.image is not None and self.image.ndim >= 2 else 0

    @property
    def ready(self) -> bool:
        return self.image is not None and self.image.size > 0

    def read_frame(self) -> Optional[np.ndarray]:
        return self.image


class CameraSource:
    """Live video source backed by an OpenCV capture device."""
    def __init__(self, capture):
        self._cap = capture

    @classmethod
    def open(cls, index: int = 0) -> "CameraSource":
        cap = cv2.VideoCapture(index)
        if not cap.isOpened():
            cap.release()
            raise RuntimeError(f"Could not open camera index {index}")
        logger.debug(f"[frames] camera {index} opened")
        return cls(cap)

    @property
    def width(self) -> int:
        return int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)

    @property
    def height(self) -> int:
        return int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)

    @property
    def ready(self) -> bool:
        return bool(self._cap.isOpened())

    def read_frame(self) -> Optional[np.ndarray]:
        ok, frame = self._cap.read()
        return frame if ok else None

    def release(self) -> None:
        self._cap.release()


def as_source(source: Union[FrameSource, np.ndarray]) -> FrameSource:
    if isinstance(source, np.ndarray):
        return ImageSource(source)
    return source


def target_size(width: int, height: int, min_side: int = MIN_FRAME_SIDE) -> Tuple[int, int]:
    """Canvas size for a source: intrinsic size (640x480 when unknown), at least min_side per axis."""
    w = int(width or 0) or DEFAULT_WIDTH
    h = int(height or 0) or DEFAULT_HEIGHT
    return max(w, min_side), max(h, min_side)


def _encode(canvas: np.ndarray, quality: int) -> Tuple[bytes, str]:
    try:
        ok, buf = cv2.imencode(".jpg", canvas, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
        if ok:
            return buf.tobytes(), "image/jpeg"
        logger.warning("[frames] JPEG encoding failed, trying PNG")
    except cv2.error as e:
        logger.warning(f"[frames] JPEG encoder unavailable ({e}), trying PNG")

    try:
        ok, buf = cv2.imencode(".png", canvas)
    except cv2.error as e:
        raise RenderContextUnavailable(f"No image encoder available: {e}") from e
    if not ok:
        raise RenderContextUnavailable("PNG encoding failed")
    return buf.tobytes(), "image/png"


def extract_frame(source: Union[FrameSource, np.ndarray],
                  min_side: int = MIN_FRAME_SIDE,
                  jpeg_quality: int = JPEG_QUALITY) -> EncodedImage:
    """Render the source's current frame to a fixed-size canvas and encode it.

    Raises:
        RenderContextUnavailable: the source is not ready, yields no frame,
        or no encoder can produce an image.
    """
    src = as_source(source)
    if not src.ready:
        raise RenderContextUnavailable("Source is not ready")

    frame = src.read_frame()
    if frame is None or not getattr(frame, "size", 0):
        raise RenderContextUnavailable("Source produced no frame")

    width, height = target_size(src.width, src.height, min_side)
    if frame.ndim == 2:
        frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
    canvas = frame
    if frame.shape[1] != width or frame.shape[0] != height:
        canvas = cv2.resize(frame, (width, height), interpolation=cv2.INTER_LINEAR)

    data, mime = _encode(canvas, jpeg_quality)
    logger.debug(f"[frames] encoded {width}x{height} {mime} bytes={len(data)}")
    return EncodedImage(data=data, mime_type=mime, width=width, height=height)
