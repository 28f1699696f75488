from __future__ import annotations
import math
import numpy as np
import cv2

import geometry
from particles import GiftGroup
from transforms import decompose_positions, rot_y

# gift ribbons: (part, long local axis, thin local axis)
RIBBONS = (("ribbon_a", 0, 2), ("ribbon_b", 2, 0))


def pixel_to_ndc(x: float, y: float, width: int, height: int) -> tuple[float, float]:
    return (2.0 * x / width - 1.0, 1.0 - 2.0 * y / height)


def pointer_to_world(ndc, fov_deg: float, distance: float, aspect: float) -> tuple[float, float, float]:
    """Pointer NDC -> point on the z=0 plane seen by a camera `distance` away."""
    view_h = 2.0 * distance * math.tan(math.radians(fov_deg) / 2.0)
    view_w = view_h * aspect
    return (float(ndc[0]) * view_w / 2.0, float(ndc[1]) * view_h / 2.0, 0.0)


def over_tree(point, radius: float, height: float, margin: float = 0.5) -> bool:
    """True when `point` (x, y) falls inside the tree's side silhouette."""
    x, y = float(point[0]), float(point[1])
    if not -height / 2.0 - margin <= y <= height / 2.0 + margin:
        return False
    frac = min(1.0, max(0.0, (y + height / 2.0) / height))
    return abs(x) <= radius * (1.0 - frac) + margin


def _bgr(rgb, gain=1.0):
    r, g, b = (min(1.0, max(0.0, c * gain)) for c in rgb)
    return (int(b * 255), int(g * 255), int(r * 255))


class Renderer:
    """
    Lightweight perspective renderer for the instance buffers.

    Reads each group's InstanceBuffer through view(); never writes to it.
    The photo quads of the last rendered frame are kept for pointer hit tests.
    """

    def __init__(self, width: int = 1280, height: int = 720, fov: float = 45.0,
                 distance: float = 25.0, cam_height: float = 2.0):
        self.width = int(width)
        self.height = int(height)
        self.fov = float(fov)
        self.eye = np.array([0.0, cam_height, distance], dtype=np.float32)
        self.focal = (self.height * 0.5) / math.tan(math.radians(self.fov) / 2.0)

        # camera looks at the origin
        fwd = -self.eye / np.linalg.norm(self.eye)
        right = np.cross(fwd, np.array([0.0, 1.0, 0.0], dtype=np.float32))
        right /= np.linalg.norm(right)
        up = np.cross(right, fwd)
        self._view = np.stack([right, up, fwd]).astype(np.float32)

        self.glow = True
        self.star = geometry.star_outline()
        self.photo_quads: list[tuple[int, np.ndarray, float]] = []

    @property
    def aspect(self) -> float:
        return self.width / float(self.height)

    def project(self, pts: np.ndarray):
        """World (n, 3) -> pixel coords (n, 2) float and camera depth (n,)."""
        cam = (np.asarray(pts, dtype=np.float32) - self.eye) @ self._view.T
        depth = np.maximum(cam[:, 2], 1e-3)
        sx = self.width * 0.5 + cam[:, 0] / depth * self.focal
        sy = self.height * 0.5 - cam[:, 1] / depth * self.focal
        return np.stack([sx, sy], axis=1), depth

    def photo_at(self, x: float, y: float) -> int | None:
        """Index of the nearest photo frame drawn under pixel (x, y), or None."""
        hit, best = None, math.inf
        for index, quad, depth in self.photo_quads:
            if cv2.pointPolygonTest(quad.reshape(-1, 1, 2), (float(x), float(y)), False) >= 0 and depth < best:
                hit, best = index, depth
        return hit

    def render_scene(self, groups, ring=None, state=None, formation_yaw: float = 0.0, tree_height: float = 12.0):
        img = np.full((self.height, self.width, 3), 5, dtype=np.uint8)
        yaw = rot_y(np.float32(formation_yaw))

        for group in groups:
            if group.count == 0:
                continue
            if isinstance(group, GiftGroup):
                self._draw_buffer(img, group.parts["box"], group.style.size, group.style.color, yaw)
                for part, axis, thin in RIBBONS:
                    self._draw_bands(img, group.parts[part], group.style.size, axis, thin, yaw)
                self._draw_buffer(img, group.parts["bow"], group.style.size * 0.5, group.style.color, yaw)
            else:
                gain = 1.0 + min(group.style.emissive, 2.0) * 0.25
                self._draw_buffer(img, group.buffer, group.style.size, group.style.color, yaw, gain)

        self._draw_star(img, tree_height, yaw)

        self.photo_quads = []
        if ring is not None and state is not None:
            self._draw_photos(img, ring, state.progress, state.active_photo_index, yaw)

        if self.glow:
            blur = cv2.GaussianBlur(img, (0, 0), 3)
            img = cv2.addWeighted(img, 0.85, blur, 0.45, 0)

        if state is not None:
            self._draw_hud(img, state)
        return img

    # ---------- internals ----------

    def _draw_buffer(self, img, buf, size, color, yaw, gain=1.0):
        mats, colors = buf.view()
        pos = decompose_positions(mats) @ yaw.T
        scale = np.linalg.norm(mats[:, :3, 0], axis=1)
        xy, depth = self.project(pos)
        radius = size * scale * self.focal / depth
        x = xy[:, 0].astype(np.int32)
        y = xy[:, 1].astype(np.int32)
        vis = (x >= 0) & (x < self.width) & (y >= 0) & (y < self.height) & (scale > 1e-3)

        if colors is None:
            cols = np.tile(np.array(_bgr(color, gain), dtype=np.uint8), (len(pos), 1))
        else:
            cols = (np.clip(colors[:, ::-1] * gain, 0.0, 1.0) * 255).astype(np.uint8)

        small = vis & (radius < 1.5)
        img[y[small], x[small]] = cols[small]

        big = np.nonzero(vis & ~small)[0]
        # far to near
        for i in big[np.argsort(-depth[big])]:
            c = tuple(int(v) for v in cols[i])
            cv2.circle(img, (int(x[i]), int(y[i])), int(radius[i]), c, -1, cv2.LINE_AA)

    def _draw_bands(self, img, buf, size, axis, thin, yaw):
        """Ribbons as projected strips along the instance's `axis` column, `thin` sets the width."""
        mats, colors = buf.view()
        pos = decompose_positions(mats)
        half = mats[:, :3, axis] * (size * 0.5)
        width = np.linalg.norm(mats[:, :3, thin], axis=1) * size
        a, depth = self.project((pos - half) @ yaw.T)
        b, _ = self.project((pos + half) @ yaw.T)
        px = np.clip(width * self.focal / depth, 1, 64).astype(np.int32)
        for i in np.argsort(-depth):
            if width[i] <= 1e-4:
                continue
            c = (255, 255, 255) if colors is None else _bgr(colors[i])
            p0 = (int(a[i, 0]), int(a[i, 1]))
            p1 = (int(b[i, 0]), int(b[i, 1]))
            cv2.line(img, p0, p1, c, int(px[i]), cv2.LINE_AA)

    def _draw_star(self, img, tree_height, yaw):
        pts = np.zeros((len(self.star), 3), dtype=np.float32)
        pts[:, :2] = self.star
        pts[:, 1] += tree_height / 2.0 + 0.5
        xy, _ = self.project(pts @ yaw.T)
        cv2.fillPoly(img, [xy.astype(np.int32)], (0, 215, 255), cv2.LINE_AA)

    def _draw_photos(self, img, ring, progress, active_index, yaw):
        frames = []
        for slot, pos, scale in ring.frame_states(progress, active_index):
            if scale <= 1e-3:
                continue
            w, h = slot.size
            local = np.array([[-w, h, 0], [w, h, 0], [w, -h, 0], [-w, -h, 0]], dtype=np.float32) * 0.5 * scale
            world = (local @ rot_y(np.float32(slot.yaw)).T + pos) @ yaw.T
            quad, depth = self.project(world)
            frames.append((float(depth.mean()), slot, quad.astype(np.float32)))

        # far to near
        for depth, slot, quad in sorted(frames, key=lambda f: -f[0]):
            self.photo_quads.append((slot.index, quad, depth))
            tex = slot.asset.texture if slot.asset is not None else None
            if tex is None:
                overlay = img.copy()
                cv2.fillConvexPoly(overlay, quad.astype(np.int32), (255, 255, 255), cv2.LINE_AA)
                cv2.addWeighted(overlay, 0.15, img, 0.85, 0, dst=img)
                continue

            th, tw = tex.shape[:2]
            src = np.array([[0, 0], [tw, 0], [tw, th], [0, th]], dtype=np.float32)
            M = cv2.getPerspectiveTransform(src, quad)
            warped = cv2.warpPerspective(tex, M, (self.width, self.height))
            mask = cv2.warpPerspective(np.full((th, tw), 255, np.uint8), M, (self.width, self.height))
            img[mask > 0] = warped[mask > 0]

    def _draw_hud(self, img, state):
        text = f"{state.phase.value.upper()}  progress {state.progress:.2f}"
        gesture = state.last_gesture or ("NO HAND" if state.gestures_enabled else "gestures off")
        for i, line in enumerate((text, gesture)):
            org = (12, 26 + 24 * i)
            cv2.putText(img, line, org, cv2.FONT_HERSHEY_SIMPLEX, 0.6, (25, 25, 25), 3, cv2.LINE_AA)
            cv2.putText(img, line, org, cv2.FONT_HERSHEY_SIMPLEX, 0.6, (235, 245, 255), 1, cv2.LINE_AA)
