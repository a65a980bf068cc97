# camera_utils.py
# Camera frame sources for the detection loop.

import logging

import cv2

logger = logging.getLogger(__name__)


def camera_delivers_frames(index: int) -> bool:
    """True if the camera at ``index`` opens and yields a frame."""
    cap = cv2.VideoCapture(index)
    try:
        if not cap.isOpened():
            return False
        ok, _ = cap.read()
        return bool(ok)
    finally:
        cap.release()


def list_available_cameras(max_index: int = 5):
    """Indices up to ``max_index`` whose camera delivers frames."""
    available = [idx for idx in range(max_index + 1) if camera_delivers_frames(idx)]
    logger.debug(f"Cameras delivering frames: {available}")
    return available


class CameraSource:
    """Frame source for a DetectionSession: returns a BGR frame or None."""

    def __init__(self, index: int = 0, width: int = 640, height: int = 480):
        self.index = index
        self.cap = cv2.VideoCapture(index)
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        if not self.cap.isOpened():
            raise RuntimeError(f"Could not open camera index {index}.")

    def __call__(self):
        success, frame = self.cap.read()
        if not success:
            logger.debug(f"CameraSource: no frame from camera {self.index}")
            return None
        return frame

    def release(self):
        if self.cap is not None:
            self.cap.release()
            self.cap = None
