"""Easing curves for progress tweens. Each maps t in [0, 1] to eased t."""
from __future__ import annotations

import math
from typing import Callable


def linear(t: float) -> float:
    return t


def power3_in_out(t: float) -> float:
    if t < 0.5:
        return 4 * t * t * t
    return 1 - (-2 * t + 2) ** 3 / 2


def make_elastic_out(amplitude: float = 1.0, period: float = 0.5) -> Callable[[float], float]:
    """Decaying oscillation that overshoots 1 before settling on it."""
    amp = max(1.0, amplitude)
    freq = 2 * math.pi / period
    shift = period / (2 * math.pi) * math.asin(1 / amp)

    def elastic_out(t: float) -> float:
        if t <= 0.0:
            return 0.0
        if t >= 1.0:
            return 1.0
        return amp * 2 ** (-10 * t) * math.sin((t - shift) * freq) + 1

    return elastic_out


EASINGS: dict[str, Callable[[float], float]] = {
    "linear": linear,
    "power3_in_out": power3_in_out,
    "elastic_out": make_elastic_out(1.0, 0.5),
}


def get_easing(name: str) -> Callable[[float], float]:
    """Look up an easing by name. Raises KeyError for unknown names."""
    try:
        return EASINGS[name]
    except KeyError:
        raise KeyError(f"unknown easing: {name!r}") from None
