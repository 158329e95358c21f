"""
OpenCV camera capture.

The device is held only for the duration of one grab: it is released after a
successful capture, on cancel(), on context-manager exit, and when opening
or reading fails.
"""
import logging

import cv2

from infectoscan.capture.client import CaptureProvider
from infectoscan.constants import (
    CAMERA_JPEG_QUALITY,
    CAMERA_MIME_TYPE,
    DEFAULT_CAMERA_INDEX,
    MSG_CAMERA_DENIED,
    MSG_CAMERA_RELEASED,
    SOURCE_CAMERA,
)
from infectoscan.errors import CaptureAccessDenied
from infectoscan.models import CapturedImage

logger = logging.getLogger(__name__)


class CameraCaptureProvider(CaptureProvider):

    def __init__(self, index: int = DEFAULT_CAMERA_INDEX, jpeg_quality: int = CAMERA_JPEG_QUALITY) -> None:
        self._index = index
        self._jpeg_quality = jpeg_quality
        self._cap = None

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def open(self) -> None:
        match self._cap:
            case None:
                pass
            case _:
                return
        cap = cv2.VideoCapture(self._index)
        match cap.isOpened():
            case True:
                self._cap = cap
            case False:
                cap.release()
                raise CaptureAccessDenied(f"{MSG_CAMERA_DENIED} (device {self._index})")

    def capture(self) -> CapturedImage:
        self.open()
        try:
            ok, frame = self._cap.read()
            match (ok, frame):
                case (True, f) if f is not None:
                    pass
                case _:
                    raise RuntimeError(f"camera {self._index}: frame capture failed")
            ok, buf = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, self._jpeg_quality])
            match ok:
                case True:
                    return CapturedImage(data=bytes(buf), mime_type=CAMERA_MIME_TYPE, source=SOURCE_CAMERA)
                case _:
                    raise RuntimeError(f"camera {self._index}: JPEG encoding failed")
        finally:
            self.release()

    def cancel(self) -> None:
        self.release()

    def release(self) -> None:
        match self._cap:
            case None:
                pass
            case cap:
                cap.release()
                self._cap = None
                logger.debug(MSG_CAMERA_RELEASED, self._index)

    def __enter__(self) -> "CameraCaptureProvider":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
