"""Shared fixtures: synthetic hand landmarks."""

import math

import pytest

FINGERS = {  # base, tip landmark indices and the finger's direction in degrees
    "index": (5, 8, -105.0),
    "middle": (9, 12, -90.0),
    "ring": (13, 16, -75.0),
    "pinky": (17, 20, -60.0),
}


def make_hand(extended=("index", "middle", "ring", "pinky"), wrist=(0.5, 0.8), center_x=None):
    """
    Build 21 normalized landmarks. Extended fingers reach 2x their base
    distance from the wrist; curled fingers fold back to 0.9x.
    """
    wx, wy = wrist
    if center_x is not None:
        wx = center_x
    pts = [(wx, wy)] * 21
    pts = list(pts)
    for i in range(1, 5):  # thumb, roughly sideways
        pts[i] = (wx - 0.03 * i, wy - 0.02 * i)
    for name, (base, tip, deg) in FINGERS.items():
        a = math.radians(deg)
        ux, uy = math.cos(a), math.sin(a)
        base_d = 0.15
        tip_d = base_d * (2.0 if name in extended else 0.9)
        pts[base] = (wx + ux * base_d, wy + uy * base_d)
        pts[base + 1] = (wx + ux * base_d * 1.3, wy + uy * base_d * 1.3)
        pts[base + 2] = (wx + ux * base_d * 1.2, wy + uy * base_d * 1.2)
        pts[tip] = (wx + ux * tip_d, wy + uy * tip_d)
    return pts


@pytest.fixture
def open_palm():
    return make_hand()


@pytest.fixture
def closed_fist():
    return make_hand(extended=())
