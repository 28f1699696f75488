"""
Phase state machine and the progress tween it drives.

Phases cycle STRUCTURED -> EXPANDING -> DISPERSED -> COLLAPSING -> STRUCTURED.
Transitions into the two moving phases are requested through the
SceneState request queue; the state machine drains and validates them on
the render loop, which is also the only writer of `phase` and `progress`.
"""
from __future__ import annotations

import enum
import logging
import queue
from dataclasses import dataclass, field
from typing import Callable

from easing import get_easing
from params import Params

logger = logging.getLogger(__name__)


class Phase(enum.Enum):
    STRUCTURED = "structured"
    EXPANDING = "expanding"
    DISPERSED = "dispersed"
    COLLAPSING = "collapsing"


@dataclass(frozen=True)
class TransitionRequest:
    target: Phase
    source: str = "unknown"


@dataclass
class SceneState:
    """
    State shared between the render loop and the detector loop.

    Written by the render loop: phase, phase_serial, progress, hovering, pointer_world,
    active_photo_index. Written by the detector loop: dispersed_rotation,
    last_gesture. Either side may put TransitionRequests on `requests`.
    """

    phase: Phase = Phase.STRUCTURED
    phase_serial: int = 0           # bumped on every phase change
    progress: float = 0.0
    dispersed_rotation: float = 0.0
    last_gesture: str | None = None
    gestures_enabled: bool = False
    hovering: bool = False
    pointer_world: tuple[float, float, float] = (0.0, 0.0, 0.0)
    active_photo_index: int | None = None
    requests: queue.Queue = field(default_factory=queue.Queue)

    def request(self, target: Phase, source: str = "unknown") -> None:
        self.requests.put(TransitionRequest(target, source))


@dataclass
class Tween:
    start_val: float
    end_val: float
    duration: float
    easing: str = "linear"
    elapsed: float = 0.0
    on_complete: Callable[[], None] | None = None


class MorphController:
    """Owns the scalar progress and at most one in-flight tween."""

    def __init__(self, state: SceneState):
        self.state = state
        self.tween: Tween | None = None

    @property
    def progress(self) -> float:
        return self.state.progress

    @property
    def active(self) -> bool:
        return self.tween is not None

    def start(self, end_val: float, duration: float, easing: str = "linear",
              on_complete: Callable[[], None] | None = None) -> bool:
        """Begin a tween from the current progress. Returns False if one is already running."""
        if self.tween is not None:
            return False
        get_easing(easing)  # fail early on a bad name
        self.tween = Tween(
            start_val=self.state.progress,
            end_val=float(end_val),
            duration=max(1e-6, float(duration)),
            easing=easing,
            on_complete=on_complete,
        )
        return True

    def advance(self, dt: float) -> float:
        tw = self.tween
        if tw is None or dt <= 0:
            return self.state.progress

        tw.elapsed += dt
        t = min(tw.elapsed / tw.duration, 1.0)
        value = tw.start_val + (tw.end_val - tw.start_val) * get_easing(tw.easing)(t)
        value = min(1.0, max(0.0, value))

        # fold overshoot so progress only moves towards end_val
        prev = self.state.progress
        if tw.end_val >= tw.start_val:
            value = max(prev, value)
        else:
            value = min(prev, value)
        self.state.progress = value

        if tw.elapsed >= tw.duration:
            self.state.progress = tw.end_val
            self.tween = None
            if tw.on_complete is not None:
                tw.on_complete()
        return self.state.progress


# (from, requested) -> entered phase; tween completion is handled separately
TRANSITIONS: dict[tuple[Phase, Phase], Phase] = {
    (Phase.STRUCTURED, Phase.EXPANDING): Phase.EXPANDING,
    (Phase.DISPERSED, Phase.COLLAPSING): Phase.COLLAPSING,
}

ON_TWEEN_COMPLETE: dict[Phase, Phase] = {
    Phase.EXPANDING: Phase.DISPERSED,
    Phase.COLLAPSING: Phase.STRUCTURED,
}


class PhaseStateMachine:
    def __init__(self, state: SceneState, params: Params | None = None,
                 on_transition: Callable[[Phase, Phase], None] | None = None):
        self.state = state
        self.params = params or Params()
        self.morph = MorphController(state)
        self.on_transition = on_transition

    @property
    def phase(self) -> Phase:
        return self.state.phase

    def can_request(self, target: Phase) -> bool:
        return (self.state.phase, target) in TRANSITIONS and not self.morph.active

    def request(self, target: Phase) -> bool:
        """Apply a transition now if the table allows it from the current phase."""
        if not self.can_request(target):
            logger.debug("Ignoring request %s while %s", target.value, self.state.phase.value)
            return False

        p = self.params
        if target is Phase.EXPANDING:
            started = self.morph.start(1.0, p.expand_duration, p.expand_easing, self._tween_done)
        else:
            started = self.morph.start(0.0, p.collapse_duration, p.collapse_easing, self._tween_done)
        if not started:
            return False
        self._enter(TRANSITIONS[(self.state.phase, target)])
        return True

    def drain_requests(self) -> int:
        applied = 0
        while True:
            try:
                req = self.state.requests.get_nowait()
            except queue.Empty:
                return applied
            if self.request(req.target):
                logger.info("Phase request %s from %s accepted", req.target.value, req.source)
                applied += 1

    def update(self, dt: float) -> float:
        """One render-loop step: apply pending requests, then advance the tween."""
        self.drain_requests()
        return self.morph.advance(dt)

    def _tween_done(self) -> None:
        nxt = ON_TWEEN_COMPLETE.get(self.state.phase)
        if nxt is not None:
            self._enter(nxt)

    def _enter(self, new: Phase) -> None:
        old = self.state.phase
        self.state.phase = new
        self.state.phase_serial += 1
        logger.debug("Phase %s -> %s", old.value, new.value)
        if self.on_transition is not None:
            self.on_transition(old, new)
