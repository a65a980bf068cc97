import logging
import os
import time

from camera_utils import CameraSource, list_available_cameras
from detection_loop import DetectionSession
from notifier import LoggingNotifier, MultiSink, NotificationLog
from recognizer import FaceRecognizer

REFERENCES_DIR = "references"


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    recognizer = FaceRecognizer()
    if os.path.isdir(REFERENCES_DIR):
        recognizer.load_reference_dir(REFERENCES_DIR)

    available = list_available_cameras()
    camera = CameraSource(index=available[0] if available else 0)
    history = NotificationLog()
    session = DetectionSession(
        detector=recognizer,
        frame_source=camera,
        sink=MultiSink(LoggingNotifier(), history),
        display_scale=(1 / recognizer.scale, 1 / recognizer.scale),
    )

    session.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        session.stop(timeout=2)
        camera.release()


if __name__ == "__main__":
    main()
