"""
Photo frames that fly out of the tree center onto a ring while expanding.

Slots are fixed at startup. Images can be swapped at any time; a slot
without an image (or with an out-of-range index) renders as a blank frame.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

import geometry

MAX_DIMENSION = 3.8
DEFAULT_ASPECT = 0.8
BLANK_SIZE = (2.5, 3.5)
REVEAL_START = 0.7
ACTIVE_SCALE = 1.1


@dataclass
class ImageAsset:
    texture: object = None     # whatever the renderer draws (BGR ndarray for cv2)
    width: float = 0.0
    height: float = 0.0
    source: str = ""


def _aspect(asset: ImageAsset | None) -> float:
    if asset is None:
        return DEFAULT_ASPECT
    try:
        w, h = float(asset.width), float(asset.height)
    except (TypeError, ValueError):
        return DEFAULT_ASPECT
    if not (math.isfinite(w) and math.isfinite(h)) or w <= 0 or h <= 0:
        return DEFAULT_ASPECT
    return w / h


def frame_size(asset: ImageAsset | None, max_dim: float = MAX_DIMENSION) -> tuple[float, float]:
    """(width, height) in world units; the long side is capped at max_dim."""
    aspect = _aspect(asset)
    if aspect >= 1:
        return max_dim, max_dim / aspect
    return max_dim * aspect, max_dim


def reveal_scale(progress: float) -> float:
    """0 until progress passes 0.7, then linear up to 1 at progress 1."""
    v = (progress - REVEAL_START) / (1.0 - REVEAL_START)
    return min(1.0, max(0.0, v))


@dataclass(frozen=True)
class PhotoSlot:
    index: int
    position: tuple[float, float, float]
    yaw: float
    asset: ImageAsset | None = None

    @property
    def empty(self) -> bool:
        return self.asset is None

    @property
    def size(self) -> tuple[float, float]:
        return BLANK_SIZE if self.asset is None else frame_size(self.asset)

    def scale(self, progress: float, active: bool = False) -> float:
        return reveal_scale(progress) * (ACTIVE_SCALE if active else 1.0)

    def world_position(self, progress: float) -> np.ndarray:
        return np.asarray(self.position, dtype=np.float32) * np.float32(progress)


class PhotoRing:
    def __init__(self, count: int = 12, radius: float = 12.0):
        self.count = int(count)
        self.radius = float(radius)
        pos, yaw = geometry.ring_positions(self.count, self.radius)
        self._positions = pos
        self._yaw = yaw
        self._assets: list[ImageAsset | None] = [None] * self.count

    def assign(self, assets) -> int:
        """Replace all images; extra assets beyond the slot count are dropped."""
        assets = list(assets)[: self.count]
        self._assets = assets + [None] * (self.count - len(assets))
        return len(assets)

    def asset_for(self, index) -> ImageAsset | None:
        if not isinstance(index, (int, np.integer)) or not 0 <= index < self.count:
            return None
        return self._assets[index]

    def slot(self, index) -> PhotoSlot:
        if isinstance(index, (int, np.integer)) and 0 <= index < self.count:
            return PhotoSlot(int(index), tuple(self._positions[index].tolist()), float(self._yaw[index]),
                             self._assets[index])
        return PhotoSlot(-1, (0.0, 0.0, 0.0), 0.0, None)

    def slots(self) -> list[PhotoSlot]:
        return [self.slot(i) for i in range(self.count)]

    def frame_states(self, progress: float, active_index: int | None = None):
        """Per-slot (slot, world position, scale) for the current frame."""
        out = []
        for s in self.slots():
            out.append((s, s.world_position(progress), s.scale(progress, s.index == active_index)))
        return out
