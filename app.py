# app.py - particle tree that blooms into a nebula
import argparse
import logging
import os
import time

import cv2

from morph import Phase, PhaseStateMachine, SceneState
from params import Params
from particles import FrameUpdater, build_tree_scene
from photo_ring import ImageAsset, PhotoRing
from renderer import Renderer, over_tree, pixel_to_ndc, pointer_to_world
from tracker import HandTrackerLoop

WINDOW_NAME = "Particle Tree"

IMAGE_EXTS = (".jpg", ".jpeg", ".png", ".bmp", ".webp")

logger = logging.getLogger("app")


def load_photos(folder, limit=12):
    """Read up to `limit` images from `folder`. Unreadable files become empty slots."""
    if not folder or not os.path.isdir(folder):
        return []
    assets = []
    for name in sorted(os.listdir(folder)):
        if len(assets) >= limit:
            break
        if not name.lower().endswith(IMAGE_EXTS):
            continue
        path = os.path.join(folder, name)
        try:
            img = cv2.imread(path, cv2.IMREAD_COLOR)
        except Exception as e:
            logger.warning("Could not read %s: %s", path, e)
            img = None
        if img is None:
            assets.append(None)
            continue
        h, w = img.shape[:2]
        assets.append(ImageAsset(texture=img, width=w, height=h, source=path))
    return assets


class PointerInput:
    """
    cv2 mouse callback -> hover flag, world point, photo under the pointer
    and click-to-expand. A click on a photo selects it and does not reach the tree.
    """

    def __init__(self, state: SceneState, params: Params, renderer: Renderer | None = None):
        self.state = state
        self.params = params
        self.renderer = renderer

    def on_mouse(self, event, x, y, flags, param):
        p = self.params
        ndc = pixel_to_ndc(x, y, p.width, p.height)
        world = pointer_to_world(ndc, p.fov, p.camera_distance, p.width / float(p.height))
        self.state.pointer_world = world
        self.state.hovering = over_tree(world, p.tree_radius, p.tree_height)

        photo = self.renderer.photo_at(x, y) if self.renderer is not None else None
        self.state.active_photo_index = photo

        if event != cv2.EVENT_LBUTTONDOWN:
            return
        if photo is not None:
            logger.info("Photo %d selected", photo)
        elif self.state.hovering:
            self.state.request(Phase.EXPANDING, source="pointer")


def handle_key(key, state: SceneState, tracker: HandTrackerLoop):
    if key in (ord("g"), ord("G")):
        if state.gestures_enabled:
            tracker.stop()
            print("✋ Gestures off")
        else:
            tracker.start()
            print("✋ Gestures on (loading hand model...)")
    elif key in (ord("e"), ord("E")):
        state.request(Phase.EXPANDING, source="keyboard")
    elif key in (ord("c"), ord("C")):
        state.request(Phase.COLLAPSING, source="keyboard")


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Particle tree with gesture-driven morphing")
    ap.add_argument("--photos", default=None, help="folder with up to 12 images for the photo ring")
    ap.add_argument("--camera", type=int, default=0, help="camera index for hand tracking")
    ap.add_argument("--gestures", action="store_true", help="start with hand gestures enabled")
    ap.add_argument("--width", type=int, default=1280)
    ap.add_argument("--height", type=int, default=720)
    ap.add_argument("--log-level", default="INFO")
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    params = Params(camera_index=args.camera, width=args.width, height=args.height,
                    log_level=args.log_level)

    logging.basicConfig(
        level=getattr(logging, params.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    state = SceneState()
    fsm = PhaseStateMachine(state, params,
                            on_transition=lambda old, new: print(f"✨ {old.value} -> {new.value}"))
    groups = build_tree_scene(params)
    updater = FrameUpdater(groups, state, params)

    ring = PhotoRing(params.max_photos, params.photo_ring_radius)
    loaded = ring.assign(load_photos(args.photos, params.max_photos))

    renderer = Renderer(params.width, params.height, params.fov, params.camera_distance, params.camera_height)
    tracker = HandTrackerLoop(state, params)
    pointer = PointerInput(state, params, renderer)

    cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
    cv2.resizeWindow(WINDOW_NAME, params.width, params.height)
    cv2.setMouseCallback(WINDOW_NAME, pointer.on_mouse)

    print("\n" + "=" * 60)
    print("🎄 PARTICLE TREE")
    print("=" * 60)
    print(f"\n   {sum(g.count for g in groups)} particles in {len(groups)} groups, {loaded} photos")
    print("\n📋 CONTROLS:")
    print("   Hover tree - scatter | Click tree - bloom")
    print("   Hover photo - enlarge | Click photo - select")
    print("   E - bloom | C - collapse")
    print("   G - toggle hand gestures")
    print("   ESC - Exit")
    print("\n✋ GESTURES:")
    print("   Open palm - bloom / swipe left-right to spin")
    print("   Closed fist - collapse")
    print("\n" + "=" * 60 + "\n")

    if args.gestures:
        tracker.start()

    t0 = time.time()
    prev = t0
    try:
        while True:
            now = time.time()
            dt = max(1e-6, now - prev)
            prev = now

            fsm.update(dt)
            updater.update(now - t0, dt)

            frame = renderer.render_scene(groups, ring, state, updater.formation_yaw, params.tree_height)
            cv2.imshow(WINDOW_NAME, frame)

            key = cv2.waitKey(1) & 0xFF
            if key == 27:
                break
            if key != 255:
                handle_key(key, state, tracker)
    finally:
        tracker.stop()
        cv2.destroyAllWindows()

    print("\n✅ Particle tree shutdown complete")


if __name__ == "__main__":
    main()
