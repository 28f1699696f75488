# tracker.py
# Detector-driven loop: camera -> hand landmarks -> gesture side effects.
# Runs on its own daemon thread so a slow or missing detector never blocks
# the render loop.

from __future__ import annotations

import logging
import threading
import time

import cv2

from gestures import GestureClassifier
from morph import SceneState
from params import Params

logger = logging.getLogger(__name__)


def open_camera(index: int = 0):
    cap = cv2.VideoCapture(int(index))
    if not cap.isOpened():
        cap.release()
        return None
    return cap


def _default_detector(params):
    # mediapipe is only imported when gestures are actually switched on
    from hands import create_detector
    return create_detector(params)


class HandTrackerLoop:
    """
    Polls the camera and classifies one hand per frame.

      loop = HandTrackerLoop(state, params)
      loop.start()     # gestures on
      loop.stop()      # gestures off; returns immediately

    Camera and detector are released on every exit path. Init failures
    switch gestures off in the shared state instead of raising.
    """

    def __init__(self, state: SceneState, params: Params | None = None,
                 detector_factory=None, camera_factory=None, classifier: GestureClassifier | None = None,
                 sleep=time.sleep):
        self.state = state
        self.params = params or Params()
        self.detector_factory = detector_factory or _default_detector
        self.camera_factory = camera_factory or open_camera
        self.classifier = classifier or GestureClassifier(state, self.params)
        self._sleep = sleep
        self._stop = threading.Event()
        self._thread = None
        self.frames_processed = 0
        self.frames_skipped = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running and not self._stop.is_set():
            return
        # fresh event per run; an abandoned worker keeps its own (set) flag
        self._stop = threading.Event()
        self.state.gestures_enabled = True
        self._thread = threading.Thread(target=self._run, args=(self._stop,), daemon=True)
        self._thread.start()

    def stop(self):
        self._stop.set()
        self.state.gestures_enabled = False
        self.classifier.reset()

    def join(self, timeout=None):
        if self._thread is not None:
            self._thread.join(timeout)

    def poll_once(self, detector, frame):
        """Classify the first hand in `frame`. Returns the label, or None when no hand is seen."""
        hands = detector.process(frame)
        if not hands:
            return None
        label = self.classifier.process(hands[0])
        self.frames_processed += 1
        return label

    # -------- internals --------

    def _disable(self):
        self.state.gestures_enabled = False
        self.classifier.reset()

    def _run(self, stop: threading.Event):
        cap = None
        detector = None
        try:
            try:
                detector = self.detector_factory(self.params)
            except Exception as e:
                logger.error("Hand detector init failed, gestures disabled: %s", e)
                self._disable()
                return
            logger.info("Hand detector ready")

            if stop.is_set():
                return
            try:
                cap = self.camera_factory(self.params.camera_index)
            except Exception as e:
                logger.warning("Camera %s could not be opened: %s", self.params.camera_index, e)
                cap = None
            if cap is None:
                logger.warning("Camera %s unavailable, gestures disabled", self.params.camera_index)
                self._disable()
                return

            while not stop.is_set():
                ok, frame = cap.read()
                if not ok or frame is None:
                    # camera warming up or dropped a frame: reschedule
                    self._sleep(self.params.retry_delay)
                    continue
                if stop.is_set():
                    break
                try:
                    self.poll_once(detector, frame)
                except Exception as e:
                    self.frames_skipped += 1
                    logger.warning("Gesture frame skipped: %s", e)
        finally:
            if cap is not None:
                cap.release()
            if detector is not None and callable(getattr(detector, "close", None)):
                try:
                    detector.close()
                except Exception as e:
                    logger.warning("Hand detector close failed: %s", e)
            logger.info("Hand tracker stopped")
