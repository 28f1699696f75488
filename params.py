def _pget(p, key, default=None):
    if isinstance(p, dict):
        return p.get(key, default)
    return getattr(p, key, default)


class Params:
    """
    All tunable knobs live here so you don't hunt through code.

    Pass overrides as keyword args or a dict:
      Params(foliage_count=500, smoothing=0.2)
      Params.from_overrides({"camera_index": 1})
    """
    def __init__(self, **overrides):
        # Formation sizes
        self.tree_height = 12.0
        self.tree_radius = 4.0
        self.explosion_radius = 15.0
        self.photo_ring_radius = 12.0

        # Particle counts per group
        self.foliage_count = 15000
        self.sequin_count = 3500
        self.sparkle_count = 3500
        self.snowflake_count = 900
        self.ornament_count = 150
        self.gold_count = 120
        self.gift_tree_count = 70
        self.gift_base_count = 40
        self.max_photos = 12

        # Frame update
        self.smoothing = 0.1             # exponential convergence per frame, must be in (0, 1)
        self.ambient_amplitude = 0.05    # vertical bob on the emitted position
        self.ambient_speed = 2.0         # rad / s
        self.ambient_phase = 0.1         # per-particle phase offset
        self.spin_speed = 0.5            # foliage tumble, rad / s
        self.auto_rotate_speed = 0.1     # formation yaw while structured, rad / s
        self.rotation_follow = 0.1       # formation yaw easing while dispersed

        # Hover repulsion (world units)
        self.hover_radius = 2.5
        self.hover_force = 0.5

        # Tweens (seconds)
        self.expand_duration = 2.5
        self.expand_easing = "elastic_out"
        self.collapse_duration = 2.0
        self.collapse_easing = "power3_in_out"

        # Gestures
        self.extension_ratio = 1.3       # tip/base distance to count a finger as extended
        self.swipe_landmark = 9          # middle finger MCP
        self.swipe_left = 0.4
        self.swipe_right = 0.6
        self.swipe_step = 0.05           # rad per classified frame

        # Detector / camera
        self.camera_index = 0
        self.det_conf = 0.5
        self.track_conf = 0.5
        self.retry_delay = 0.05          # seconds to wait for a decodable frame

        # View
        self.width = 1280
        self.height = 720
        self.fov = 45.0
        self.camera_distance = 25.0
        self.camera_height = 2.0

        self.log_level = "INFO"

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"unknown parameter: {key}")
            setattr(self, key, value)
        self.validate()

    @classmethod
    def from_overrides(cls, overrides=None):
        if overrides is None:
            return cls()
        if isinstance(overrides, dict):
            return cls(**overrides)
        defaults = vars(cls())
        return cls(**{k: _pget(overrides, k, v) for k, v in defaults.items()})

    @property
    def gift_count(self):
        return self.gift_tree_count + self.gift_base_count

    def validate(self):
        if not 0.0 < float(self.smoothing) < 1.0:
            raise ValueError(f"smoothing must be in (0, 1), got {self.smoothing}")
        if self.expand_duration <= 0 or self.collapse_duration <= 0:
            raise ValueError("tween durations must be positive")
        if self.extension_ratio <= 0:
            raise ValueError("extension_ratio must be positive")
        if not self.swipe_left <= self.swipe_right:
            raise ValueError("swipe_left must not exceed swipe_right")
        for name in ("foliage_count", "sequin_count", "sparkle_count", "snowflake_count",
                     "ornament_count", "gold_count", "gift_tree_count", "gift_base_count",
                     "max_photos"):
            if int(getattr(self, name)) < 0:
                raise ValueError(f"{name} must be >= 0")
        return self
