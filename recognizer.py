# recognizer.py
# face_recognition based detector/recognizer feeding the detection loop.

import logging
import os
import threading
from typing import Iterable, List

import cv2
import face_recognition
import numpy as np

from config import DETECT_SCALE, T_KNOWN
from detection_loop import Detection
from geometry import Box
from matching import label_for

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".bmp")


def encode_image(img_bgr: np.ndarray):
    """Descriptor of the first face found in a BGR image, or None."""
    img_rgb = cv2.cvtColor(img_bgr, cv2.COLOR_BGR2RGB)
    boxes = face_recognition.face_locations(img_rgb)
    if not boxes:
        return None
    encodings = face_recognition.face_encodings(img_rgb, boxes)
    if not encodings:
        return None
    return np.array(encodings[0], dtype="float32")


class FaceRecognizer:
    """
    Detects faces in a BGR frame and labels them against reference descriptors.

    Frames are downscaled by ``scale`` before detection and the returned boxes
    stay in that downscaled space, so the session should use
    ``display_scale=(1 / scale, 1 / scale)``.
    """

    def __init__(self, threshold: float = T_KNOWN, scale: float = DETECT_SCALE, model: str = "hog"):
        self.threshold = float(threshold)
        self.scale = scale
        self.model = model
        self._lock = threading.RLock()
        self._labels: List[str] = []
        self._embeddings = np.empty((0, 128), dtype="float32")

    @property
    def labels(self) -> List[str]:
        with self._lock:
            return list(dict.fromkeys(self._labels))

    def set_threshold(self, value: float) -> None:
        self.threshold = float(value)

    def add_reference_images(self, name: str, paths: Iterable[str]) -> int:
        """Add descriptors for ``name``. Returns how many images were usable."""
        added = []
        for path in paths:
            img = cv2.imread(path)
            if img is None:
                logger.warning(f"Skipping unreadable file: {path}")
                continue
            embedding = encode_image(img)
            if embedding is None:
                logger.warning(f"No face found in {path}, skipped")
                continue
            added.append(embedding)

        if not added:
            return 0
        with self._lock:
            self._labels.extend([name] * len(added))
            self._embeddings = np.vstack([self._embeddings, np.vstack(added)]).astype("float32")
        logger.info(f"FaceRecognizer: {len(added)} reference(s) for {name}")
        return len(added)

    def load_reference_dir(self, root_dir: str) -> int:
        """Load ``root_dir/<name>/*.jpg`` style references, one folder per person."""
        total = 0
        for name in sorted(os.listdir(root_dir)):
            person_dir = os.path.join(root_dir, name)
            if name.startswith(".") or not os.path.isdir(person_dir):
                continue
            paths = [
                os.path.join(person_dir, f)
                for f in sorted(os.listdir(person_dir))
                if f.lower().endswith(IMAGE_EXTENSIONS)
            ]
            total += self.add_reference_images(name, paths)
        return total

    def __call__(self, frame_bgr: np.ndarray) -> List[Detection]:
        img_small = cv2.resize(frame_bgr, (0, 0), fx=self.scale, fy=self.scale)
        img_small_rgb = cv2.cvtColor(img_small, cv2.COLOR_BGR2RGB)

        locations = face_recognition.face_locations(
            img_small_rgb,
            number_of_times_to_upsample=1,
            model=self.model,
        )
        encodings = face_recognition.face_encodings(img_small_rgb, locations)

        with self._lock:
            labels, known = list(self._labels), self._embeddings.copy()

        detections = []
        for (top, right, bottom, left), encoding in zip(locations, encodings):
            emb = np.array(encoding, dtype="float32")
            label = label_for(emb, labels, known, self.threshold)
            detections.append(Detection(Box.from_ltrb(left, top, right, bottom), label))
        return detections
