"""
Particle groups and the per-frame updater.

State:
- source / target: (N, 3) formation points, read-only after construction
- current:         (N, 3) smoothed positions, advanced every frame
- rotation_seed:   (N, 3) euler angles, fixed per particle
- color_index:     (N,)   palette index, fixed per particle

Each frame, per group:
- converge current towards lerp(source, target, progress)
- hover repulsion (structured phase only)
- kind-specific orientation/scale/color -> group InstanceBuffer
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Callable

import numpy as np

import geometry
import transforms
from morph import Phase, SceneState
from params import Params


def hex_to_rgb(code: str) -> tuple[float, float, float]:
    code = code.lstrip("#")
    return tuple(int(code[i:i + 2], 16) / 255.0 for i in (0, 2, 4))


def _palette(*codes) -> np.ndarray:
    return np.array([hex_to_rgb(c) for c in codes], dtype=np.float32)


class GroupKind(enum.Enum):
    FOLIAGE = "foliage"
    SEQUIN = "sequin"
    SPARKLE = "sparkle"
    SNOWFLAKE = "snowflake"
    ORNAMENT = "ornament"
    GOLD = "gold"
    GIFT = "gift"


@dataclass(frozen=True)
class GroupStyle:
    """Static mesh/material descriptor handed to the renderer once."""

    mesh: str
    size: float
    color: tuple[float, float, float]
    emissive: float = 0.0
    base_scale: float = 1.0


class InstanceBuffer:
    """
    Per-instance transforms (and optional colors) for one mesh.

    The FrameUpdater is the only writer; renderers read through view(),
    which hands out non-writeable arrays.
    """

    def __init__(self, count: int, with_colors: bool = False):
        self.count = int(count)
        self._matrices = np.zeros((self.count, 4, 4), dtype=np.float32)
        self._matrices[:, 0, 0] = self._matrices[:, 1, 1] = self._matrices[:, 2, 2] = 1.0
        self._matrices[:, 3, 3] = 1.0
        self._colors = np.ones((self.count, 3), dtype=np.float32) if with_colors else None
        self.version = 0

    @property
    def has_colors(self) -> bool:
        return self._colors is not None

    def write(self, matrices: np.ndarray, colors: np.ndarray | None = None) -> None:
        if matrices.shape != self._matrices.shape:
            raise ValueError(f"expected matrices {self._matrices.shape}, got {matrices.shape}")
        self._matrices[...] = matrices
        if colors is not None:
            if self._colors is None:
                raise ValueError("buffer was created without colors")
            self._colors[...] = colors
        self.version += 1

    def view(self):
        m = self._matrices.view()
        m.flags.writeable = False
        if self._colors is None:
            return m, None
        c = self._colors.view()
        c.flags.writeable = False
        return m, c


class ParticleGroup:
    def __init__(self, kind: GroupKind, source, target, style: GroupStyle,
                 palette: np.ndarray | None = None, rng=None):
        source = np.array(source, dtype=np.float32).reshape(-1, 3)
        target = np.array(target, dtype=np.float32).reshape(-1, 3)
        if len(source) != len(target):
            raise ValueError(f"{kind.value}: source has {len(source)} points, target has {len(target)}")

        g = rng if rng is not None else np.random.default_rng()
        n = len(source)

        self.kind = kind
        self.style = style
        self.rng = g
        self.source = source
        self.target = target
        self.source.flags.writeable = False
        self.target.flags.writeable = False
        self.current = source.copy()
        self.index = np.arange(n, dtype=np.float32)

        if kind is GroupKind.GIFT:
            self.rotation_seed = np.stack([np.zeros(n), g.random(n) * 2 * math.pi, np.zeros(n)], axis=1)
        else:
            self.rotation_seed = g.random((n, 3)) * math.pi
        self.rotation_seed = self.rotation_seed.astype(np.float32)
        self.rotation_seed.flags.writeable = False

        self.palette = palette
        npal = len(palette) if palette is not None else 1
        self.color_index = g.integers(0, npal, size=n)
        self.color_index.flags.writeable = False

        self.buffer = InstanceBuffer(n, with_colors=palette is not None)
        self.strategy = STRATEGIES[kind]

    @property
    def count(self) -> int:
        return len(self.source)

    def interpolated_target(self, progress: float) -> np.ndarray:
        return self.source + (self.target - self.source) * np.float32(progress)

    def converge(self, progress: float, smoothing: float) -> None:
        goal = self.interpolated_target(progress)
        self.current += (goal - self.current) * np.float32(smoothing)

    def repel(self, pointer, radius: float, force: float) -> int:
        """Push particles within `radius` (xy plane) of `pointer` away. Returns how many moved."""
        if self.count == 0:
            return 0
        px, py = float(pointer[0]), float(pointer[1])
        dx = self.current[:, 0] - px
        dy = self.current[:, 1] - py
        dist = np.sqrt(dx * dx + dy * dy)
        inside = dist < radius
        k = int(np.count_nonzero(inside))
        if k == 0:
            return 0
        f = (radius - dist[inside]) * force
        self.current[inside, 0] += dx[inside] * f
        self.current[inside, 1] += dy[inside] * f
        self.current[inside, 2] += (self.rng.random(k) - 0.5) * f
        return k


class GiftGroup(ParticleGroup):
    """Composite: box + two ribbon bands + bow share one position/rotation per gift."""

    PARTS = ("box", "ribbon_a", "ribbon_b", "bow")

    def __init__(self, source, target, style: GroupStyle, palette, bow_palette, rng=None):
        super().__init__(GroupKind.GIFT, source, target, style, palette=palette, rng=rng)
        self.bow_palette = bow_palette
        self.bow_index = self.rng.integers(0, len(bow_palette), size=self.count)
        self.bow_index.flags.writeable = False
        self.buffer = InstanceBuffer(self.count, with_colors=True)
        self.parts = {
            "box": self.buffer,
            "ribbon_a": InstanceBuffer(self.count, with_colors=True),
            "ribbon_b": InstanceBuffer(self.count, with_colors=True),
            "bow": InstanceBuffer(self.count, with_colors=True),
        }


@dataclass
class FrameContext:
    time: float
    progress: float
    positions: np.ndarray   # emitted positions (current + ambient bob)
    params: Params


# ---------------- kind strategies ----------------

def _shrink(progress: float) -> float:
    return 1.0 + (0.5 - 1.0) * progress


def _orient_foliage(group: ParticleGroup, ctx: FrameContext) -> None:
    spin = ctx.time * ctx.params.spin_speed
    angles = group.rotation_seed + np.array([spin, spin, 0.0], dtype=np.float32)
    scale = group.style.base_scale * _shrink(ctx.progress)
    group.buffer.write(transforms.compose(ctx.positions, transforms.euler_xyz(angles), scale))


def _facing(group: ParticleGroup, ctx: FrameContext) -> np.ndarray:
    rot = transforms.look_at(ctx.positions)
    return rot @ transforms.rot_z(np.float32(ctx.time))


def _orient_decoration(group: ParticleGroup, ctx: FrameContext) -> None:
    colors = None
    if group.palette is not None:
        colors = group.palette[group.color_index]
    group.buffer.write(transforms.compose(ctx.positions, _facing(group, ctx), group.style.base_scale), colors)


def _orient_sequin(group: ParticleGroup, ctx: FrameContext) -> None:
    flicker = 0.5 + 0.5 * np.sin(ctx.time * 5.0 + group.index)
    colors = group.palette[group.color_index] * (flicker * 2.0)[:, None]
    group.buffer.write(transforms.compose(ctx.positions, _facing(group, ctx), group.style.base_scale), colors)


def _orient_sparkle(group: ParticleGroup, ctx: FrameContext) -> None:
    twinkle = (np.sin(ctx.time * 8.0 + group.index * 2.0) + 1.0) * 0.5
    group.buffer.write(transforms.compose(ctx.positions, _facing(group, ctx), group.style.base_scale * twinkle))


def _orient_gift(group: GiftGroup, ctx: FrameContext) -> None:
    n = group.count
    p = ctx.progress
    s = _shrink(p)
    angles = group.rotation_seed + np.float32(p * ctx.time * 0.5)
    rot = transforms.euler_xyz(angles)
    pos = ctx.positions

    box_col = group.palette[group.color_index]
    bow_col = group.bow_palette[group.bow_index]

    group.parts["box"].write(transforms.compose(pos, rot, s), box_col)
    group.parts["ribbon_a"].write(
        transforms.compose(pos, rot, np.tile([s * 1.02, s * 1.02, s * 0.15], (n, 1))), bow_col)
    group.parts["ribbon_b"].write(
        transforms.compose(pos, rot, np.tile([s * 0.15, s * 1.02, s * 1.02], (n, 1))), bow_col)

    up = rot @ np.array([0.0, 0.2 * s, 0.0], dtype=np.float32)
    bow_angles = angles + np.array([math.pi / 2, 0.0, 0.0], dtype=np.float32)
    group.parts["bow"].write(transforms.compose(pos + up, transforms.euler_xyz(bow_angles), s), bow_col)


STRATEGIES: dict[GroupKind, Callable[[ParticleGroup, FrameContext], None]] = {
    GroupKind.FOLIAGE: _orient_foliage,
    GroupKind.SEQUIN: _orient_sequin,
    GroupKind.SPARKLE: _orient_sparkle,
    GroupKind.SNOWFLAKE: _orient_decoration,
    GroupKind.ORNAMENT: _orient_decoration,
    GroupKind.GOLD: _orient_decoration,
    GroupKind.GIFT: _orient_gift,
}


class FrameUpdater:
    """Runs once per rendered frame over every group."""

    def __init__(self, groups, state: SceneState, params: Params | None = None):
        self.groups = list(groups)
        self.state = state
        self.params = params or Params()
        self.formation_yaw = 0.0

    def update(self, t: float, dt: float = 0.0) -> None:
        p = self.params
        progress = self.state.progress
        hover = self.state.phase is Phase.STRUCTURED and self.state.hovering

        for group in self.groups:
            if group.count == 0:
                continue
            group.converge(progress, p.smoothing)
            if hover:
                group.repel(self.state.pointer_world, p.hover_radius, p.hover_force)

            emitted = group.current.copy()
            emitted[:, 1] += p.ambient_amplitude * np.sin(t * p.ambient_speed + group.index * p.ambient_phase)
            group.strategy(group, FrameContext(t, progress, emitted, p))

        self._update_yaw(dt)

    def _update_yaw(self, dt: float) -> None:
        phase = self.state.phase
        if phase is Phase.STRUCTURED:
            self.formation_yaw += dt * self.params.auto_rotate_speed
        elif phase is Phase.DISPERSED:
            goal = self.state.dispersed_rotation
            self.formation_yaw += (goal - self.formation_yaw) * self.params.rotation_follow


def build_tree_scene(params: Params | None = None, rng=None) -> list[ParticleGroup]:
    p = params or Params()
    g = rng if rng is not None else np.random.default_rng()
    R, H, E = p.tree_radius, p.tree_height, p.explosion_radius

    def group(kind, src, dst, style, palette=None):
        return ParticleGroup(kind, src, dst, style, palette=palette, rng=g)

    gifts_tree = np.concatenate([
        geometry.lower_biased_cone_points(p.gift_tree_count, R * 0.85, H, rng=g),
        geometry.disc_points(p.gift_base_count, R, -H / 2 + 0.4, rng=g),
    ])

    return [
        group(GroupKind.FOLIAGE,
              geometry.tree_points(p.foliage_count, R, H, rng=g),
              geometry.sphere_points(p.foliage_count, E, rng=g),
              GroupStyle("octahedron", 0.05, hex_to_rgb("#2d5a27"), emissive=0.2)),
        group(GroupKind.SEQUIN,
              geometry.cone_surface_points(p.sequin_count, R + 0.3, H, rng=g),
              geometry.sphere_points(p.sequin_count, E * 1.1, rng=g),
              GroupStyle("circle", 0.04, hex_to_rgb("#FFD700")),
              palette=_palette("#FFFACD", "#EEE8AA", "#F0E68C", "#FFD700", "#FFFAF0")),
        group(GroupKind.SPARKLE,
              geometry.cone_surface_points(p.sparkle_count, R + 0.2, H, rng=g),
              geometry.sphere_points(p.sparkle_count, E * 0.9, rng=g),
              GroupStyle("tetrahedron", 0.02, hex_to_rgb("#FFFACD"), emissive=5.0)),
        group(GroupKind.SNOWFLAKE,
              geometry.cone_surface_points(p.snowflake_count, R + 0.5, H, rng=g),
              geometry.sphere_points(p.snowflake_count, E * 1.2, rng=g),
              GroupStyle("dodecahedron", 0.03, hex_to_rgb("#E0F7FA"), emissive=0.8)),
        group(GroupKind.ORNAMENT,
              geometry.spiral_points(p.ornament_count, R + 0.4, H, 4),
              geometry.sphere_points(p.ornament_count, E * 0.8, rng=g),
              GroupStyle("sphere", 0.1, hex_to_rgb("#ff0044"), emissive=0.3)),
        group(GroupKind.GOLD,
              geometry.irregular_cone_points(p.gold_count, R, H, rng=g),
              geometry.sphere_points(p.gold_count, E * 0.9, rng=g),
              GroupStyle("sphere", 0.04, hex_to_rgb("#ffcc00"), emissive=0.5)),
        GiftGroup(gifts_tree,
                  geometry.sphere_points(p.gift_count, E * 1.3, rng=g),
                  GroupStyle("box", 0.4, hex_to_rgb("#D32F2F")),
                  palette=_palette("#D32F2F", "#388E3C", "#FBC02D", "#1976D2", "#7B1FA2", "#E91E63"),
                  bow_palette=_palette("#FFD700", "#FFFFFF", "#F0E68C"),
                  rng=g),
    ]
