"""
Hand gesture heuristic.

A finger (index..pinky) counts as extended when its tip is noticeably
further from the wrist than its base knuckle:

    dist(tip, wrist) > dist(base, wrist) * extension_ratio

4+ extended -> OPEN_PALM, 0 -> CLOSED_FIST, anything else -> UNKNOWN.
"""
from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, field

from morph import Phase, SceneState
from params import Params

logger = logging.getLogger(__name__)

WRIST = 0
FINGER_TIPS = (8, 12, 16, 20)
FINGER_BASES = (5, 9, 13, 17)
NUM_LANDMARKS = 21


class GestureLabel(enum.Enum):
    OPEN_PALM = "Open_Palm"
    CLOSED_FIST = "Closed_Fist"
    UNKNOWN = "Unknown"


def _dist(a, b) -> float:
    return math.hypot(float(a[0]) - float(b[0]), float(a[1]) - float(b[1]))


def count_extended_fingers(landmarks, ratio: float = 1.3) -> int:
    if len(landmarks) < NUM_LANDMARKS:
        raise ValueError(f"expected {NUM_LANDMARKS} landmarks, got {len(landmarks)}")
    wrist = landmarks[WRIST]
    count = 0
    for tip, base in zip(FINGER_TIPS, FINGER_BASES):
        if _dist(landmarks[tip], wrist) > _dist(landmarks[base], wrist) * ratio:
            count += 1
    return count


def label_for_count(extended: int) -> GestureLabel:
    if extended >= 4:
        return GestureLabel.OPEN_PALM
    if extended == 0:
        return GestureLabel.CLOSED_FIST
    return GestureLabel.UNKNOWN


def classify_landmarks(landmarks, ratio: float = 1.3) -> GestureLabel:
    return label_for_count(count_extended_fingers(landmarks, ratio))


@dataclass
class GestureSample:
    landmarks: list = field(default_factory=list)   # [(x, y)] * 21, normalized
    label: GestureLabel = GestureLabel.UNKNOWN

    @classmethod
    def from_landmarks(cls, landmarks, ratio: float = 1.3) -> "GestureSample":
        pts = [(float(p[0]), float(p[1])) for p in landmarks]
        return cls(landmarks=pts, label=classify_landmarks(pts, ratio))


class GestureClassifier:
    """
    Turns samples into phase requests and swipe rotation.

    Phase requests go through the SceneState queue. A held pose sends one
    request per phase visit; a new classification or any phase change (from
    gestures, keyboard or pointer) re-arms it.
    Swipe rotation applies on every open-palm frame while dispersed.
    """

    def __init__(self, state: SceneState, params: Params | None = None):
        self.state = state
        self.params = params or Params()
        self._last_action = None

    def sample(self, landmarks) -> GestureSample:
        return GestureSample.from_landmarks(landmarks, self.params.extension_ratio)

    def process(self, landmarks) -> GestureLabel:
        sample = landmarks if isinstance(landmarks, GestureSample) else self.sample(landmarks)
        label = sample.label
        phase = self.state.phase
        if self._last_action is not None and self._last_action[0] is not label:
            self._last_action = None

        if label is GestureLabel.OPEN_PALM:
            if phase is Phase.STRUCTURED:
                self._request_once(label, phase, Phase.EXPANDING)
            elif phase is Phase.DISPERSED:
                self._swipe(sample)
        elif label is GestureLabel.CLOSED_FIST:
            if phase is Phase.DISPERSED:
                self._request_once(label, phase, Phase.COLLAPSING)

        if self.state.last_gesture != label.value:
            self.state.last_gesture = label.value
        return label

    def reset(self) -> None:
        self._last_action = None
        self.state.last_gesture = None

    def _request_once(self, label: GestureLabel, phase: Phase, target: Phase) -> None:
        key = (label, phase, self.state.phase_serial)
        if key == self._last_action:
            return
        self._last_action = key
        logger.debug("%s while %s -> requesting %s", label.value, phase.value, target.value)
        self.state.request(target, source=f"gesture:{label.value}")

    def _swipe(self, sample: GestureSample) -> None:
        p = self.params
        x = sample.landmarks[p.swipe_landmark][0]
        if x < p.swipe_left:
            self.state.dispersed_rotation += p.swipe_step
        elif x > p.swipe_right:
            self.state.dispersed_rotation -= p.swipe_step
