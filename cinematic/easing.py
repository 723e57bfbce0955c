"""Easing and damping helpers shared by every sequencer component."""
from __future__ import annotations

import math

import numpy as np

MAX_FRAME_DT = 0.1
# Keeps damping_factor strictly below 1 even when exp() underflows.
MAX_DAMPING = 1.0 - 1e-9


def clamp01(value: float) -> float:
    """Clamp a floating point value to the inclusive range [0, 1]."""

    if value <= 0.0:
        return 0.0
    if value >= 1.0:
        return 1.0
    return value


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def inverse_lerp(a: float, b: float, value: float) -> float:
    if a == b:
        return 0.0
    return clamp01((value - a) / (b - a))


def _normalized(edge0: float, edge1: float, x: float) -> float:
    if edge0 == edge1:
        return 0.0 if x < edge0 else 1.0
    return clamp01((x - edge0) / (edge1 - edge0))


def smoothstep(edge0: float, edge1: float, x: float) -> float:
    t = _normalized(edge0, edge1, x)
    return t * t * (3.0 - 2.0 * t)


def smootherstep(edge0: float, edge1: float, x: float) -> float:
    """Ken Perlin's quintic step; zero first and second derivative at both edges."""

    t = _normalized(edge0, edge1, x)
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def ease_out_quint(t: float) -> float:
    p = 1.0 - clamp01(t)
    return 1.0 - p * p * p * p * p


def damping_factor(rate: float, dt: float) -> float:
    """Return the frame-rate independent blend ``1 - exp(-rate * dt)``.

    Applying the factor every frame makes a live value approach its target
    as ``exp(-rate * elapsed)`` regardless of how the elapsed time was split
    into frames. Degenerate inputs yield 0 so the live value simply holds.
    """

    if rate <= 0.0 or dt <= 0.0 or not math.isfinite(dt) or not math.isfinite(rate):
        return 0.0
    return min(1.0 - math.exp(-rate * dt), MAX_DAMPING)


def clamp_dt(dt: float, max_dt: float = MAX_FRAME_DT) -> float:
    if not math.isfinite(dt) or dt <= 0.0:
        return 0.0
    return min(dt, max_dt)


def sanitize_progress(progress: float) -> float:
    if not math.isfinite(progress):
        return 0.0
    return clamp01(progress)


def damp_toward(
    live: np.ndarray, target: np.ndarray, factor: float, scratch: np.ndarray
) -> np.ndarray:
    """Move ``live`` toward ``target`` in place, reusing ``scratch``."""

    np.subtract(target, live, out=scratch)
    scratch *= factor
    live += scratch
    return live
