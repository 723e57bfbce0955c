"""Seeded layout generators for instance fields.

Each generator takes a ``numpy.random.Generator``, an instance count and a
parameter mapping and returns a :class:`Layout`. The same seed always yields
the same layout.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np

TAU = math.pi * 2.0


@dataclass
class Layout:
    positions: np.ndarray
    rotations: Optional[np.ndarray] = None
    sizes: Optional[np.ndarray] = None
    factors: Optional[np.ndarray] = None


def _vec(params: Mapping[str, Any], key: str, default: Sequence[float]) -> np.ndarray:
    value = params.get(key, default)
    array = np.asarray(value, dtype=np.float64)
    if array.shape != (3,):
        raise ValueError(f"Layout parameter {key!r} must be a 3-vector, got {value!r}")
    return array


def _spherical(rng: np.random.Generator, count: int, radius: np.ndarray) -> np.ndarray:
    theta = rng.uniform(0.0, TAU, count)
    phi = (rng.random(count) - 0.5) * math.pi
    points = np.empty((count, 3), dtype=np.float64)
    points[:, 0] = np.cos(theta) * np.cos(phi) * radius
    points[:, 1] = np.sin(phi) * radius
    points[:, 2] = np.sin(theta) * np.cos(phi) * radius
    return points


# ----------------------------------------------------------------------
# Generators
# ----------------------------------------------------------------------
def box_layout(rng: np.random.Generator, count: int, params: Mapping[str, Any]) -> Layout:
    center = _vec(params, "center", (0.0, 0.0, 0.0))
    size = _vec(params, "size", (50.0, 30.0, 40.0))
    positions = (rng.random((count, 3)) - 0.5) * size + center
    return Layout(positions=positions)


def ball_layout(rng: np.random.Generator, count: int, params: Mapping[str, Any]) -> Layout:
    """Sphere biased toward its centre by ``power`` (< 1 pushes points outward)."""

    center = _vec(params, "center", (0.0, 0.0, -10.0))
    squash = _vec(params, "squash", (1.0, 0.6, 1.0))
    radius = float(params.get("radius", 50.0))
    power = float(params.get("power", 0.6))
    r = np.power(rng.random(count), power) * radius
    positions = _spherical(rng, count, r) * squash + center
    return Layout(positions=positions)


def shell_layout(rng: np.random.Generator, count: int, params: Mapping[str, Any]) -> Layout:
    center = _vec(params, "center", (0.0, 5.0, -20.0))
    squash = _vec(params, "squash", (1.0, 0.5, 1.0))
    inner = float(params.get("inner", 40.0))
    outer = float(params.get("outer", 100.0))
    if outer < inner:
        raise ValueError("Shell layout needs outer >= inner")
    r = inner + rng.random(count) * (outer - inner)
    positions = _spherical(rng, count, r) * squash + center
    return Layout(positions=positions)


def grid_layout(rng: np.random.Generator, count: int, params: Mapping[str, Any]) -> Layout:
    center = _vec(params, "center", (0.0, 0.0, -25.0))
    columns = max(1, int(params.get("columns", 30)))
    spacing = float(params.get("spacing", 1.2))
    row_scale = float(params.get("row_scale", 0.6))
    jitter = float(params.get("jitter", 0.3))
    depth_jitter = float(params.get("depth_jitter", 8.0))

    index = np.arange(count)
    cols = index % columns
    rows = index // columns
    row_count = count / columns
    positions = np.empty((count, 3), dtype=np.float64)
    positions[:, 0] = (cols - columns / 2.0) * spacing
    positions[:, 1] = (rows - row_count / 2.0) * spacing * row_scale
    positions[:, 2] = 0.0
    positions[:, :2] += (rng.random((count, 2)) - 0.5) * jitter
    positions[:, 2] += (rng.random(count) - 0.5) * depth_jitter
    positions += center
    return Layout(positions=positions)


DEFAULT_PANELS: List[Dict[str, Any]] = [
    {"min": (-14.0, -2.0, -35.0), "max": (-12.0, 8.0, -20.0), "rotation": (0.0, math.pi / 2, 0.0)},
    {"min": (12.0, -2.0, -35.0), "max": (14.0, 8.0, -20.0), "rotation": (0.0, -math.pi / 2, 0.0)},
    {"min": (-10.0, -2.0, -40.0), "max": (10.0, 8.0, -35.0), "rotation": (0.0, 0.0, 0.0)},
    {"min": (-8.0, 9.0, -34.0), "max": (8.0, 12.0, -22.0), "rotation": (math.pi / 2, 0.0, 0.0)},
]


def walls_layout(rng: np.random.Generator, count: int, params: Mapping[str, Any]) -> Layout:
    """Architectural panels: instance ``i`` lands on panel ``i % len(panels)``."""

    panels = params.get("panels") or DEFAULT_PANELS
    positions = np.empty((count, 3), dtype=np.float64)
    rotations = np.empty((count, 3), dtype=np.float64)
    for i in range(count):
        panel = panels[i % len(panels)]
        low = np.asarray(panel["min"], dtype=np.float64)
        high = np.asarray(panel["max"], dtype=np.float64)
        positions[i] = low + rng.random(3) * (high - low)
        rotations[i] = panel.get("rotation", (0.0, 0.0, 0.0))
    return Layout(positions=positions, rotations=rotations)


DEFAULT_BANDS: List[Dict[str, Any]] = [
    {"z": (4.0, 8.0), "factor": 1.6, "size": (0.08, 0.20)},
    {"z": (8.0, 12.0), "factor": 1.0, "size": (0.04, 0.12)},
    {"z": (12.0, 16.0), "factor": 0.4, "size": (0.02, 0.06)},
]


def bands_layout(rng: np.random.Generator, count: int, params: Mapping[str, Any]) -> Layout:
    """Depth bands, assigned round-robin. Each band carries a parallax factor."""

    bands = params.get("bands") or DEFAULT_BANDS
    spread = params.get("spread", (40.0, 25.0))
    positions = np.empty((count, 3), dtype=np.float64)
    sizes = np.empty(count, dtype=np.float64)
    factors = np.empty(count, dtype=np.float64)
    for i in range(count):
        band = bands[i % len(bands)]
        z_lo, z_hi = band["z"]
        size_lo, size_hi = band.get("size", (0.05, 0.1))
        positions[i, 0] = (rng.random() - 0.5) * spread[0]
        positions[i, 1] = (rng.random() - 0.5) * spread[1]
        positions[i, 2] = z_lo + rng.random() * (z_hi - z_lo)
        sizes[i] = size_lo + rng.random() * (size_hi - size_lo)
        factors[i] = float(band.get("factor", 1.0))
    return Layout(positions=positions, sizes=sizes, factors=factors)


def points_layout(rng: np.random.Generator, count: int, params: Mapping[str, Any]) -> Layout:
    points = params.get("points")
    if not points:
        raise ValueError("Points layout needs a non-empty 'points' list")
    source = np.asarray(points, dtype=np.float64)
    if source.ndim != 2 or source.shape[1] != 3:
        raise ValueError("Points layout entries must be 3-vectors")
    index = np.arange(count) % len(source)
    sizes = None
    if params.get("scales"):
        scales = np.asarray(params["scales"], dtype=np.float64)
        sizes = scales[np.arange(count) % len(scales)]
    return Layout(positions=source[index].copy(), sizes=sizes)


LayoutFn = Callable[[np.random.Generator, int, Mapping[str, Any]], Layout]

LAYOUTS: Dict[str, LayoutFn] = {
    "box": box_layout,
    "ball": ball_layout,
    "shell": shell_layout,
    "grid": grid_layout,
    "walls": walls_layout,
    "bands": bands_layout,
    "points": points_layout,
}


def build_layout(
    name: str, rng: np.random.Generator, count: int, params: Optional[Mapping[str, Any]] = None
) -> Layout:
    try:
        generator = LAYOUTS[name]
    except KeyError as exc:
        raise ValueError(f"Unknown layout: {name}") from exc
    if count <= 0:
        raise ValueError(f"Layout {name!r} needs a positive count, got {count}")
    return generator(rng, count, params or {})
