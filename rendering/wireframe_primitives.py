"""Static wireframe guide meshes for the production stage."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple


Vec3 = Tuple[float, float, float]


@dataclass(frozen=True)
class WireframeMesh:
    """Simple container for line segments connecting vertex indices."""

    vertices: Sequence[Vec3]
    segments: Sequence[Tuple[int, int]]


def create_unit_cube_mesh() -> WireframeMesh:
    """Cube spanning [-0.5, 0.5] on every axis, used for instanced panels."""

    h = 0.5
    vertices: List[Vec3] = [
        (-h, -h, -h), (h, -h, -h), (h, h, -h), (-h, h, -h),
        (-h, -h, h), (h, -h, h), (h, h, h), (-h, h, h),
    ]
    segments = [
        (0, 1), (1, 2), (2, 3), (3, 0),
        (4, 5), (5, 6), (6, 7), (7, 4),
        (0, 4), (1, 5), (2, 6), (3, 7),
    ]
    return WireframeMesh(vertices, segments)


def create_floor_grid_mesh(
    half_size: float = 20.0,
    spacing: float = 2.0,
    near: float = -5.0,
    far: float = -45.0,
    height: float = -2.0,
) -> WireframeMesh:
    """Ground-plane grid: lines along z at each x step, lines along x at each z step."""

    if spacing <= 0.0:
        raise ValueError("Grid spacing must be positive")
    vertices: List[Vec3] = []
    segments: List[Tuple[int, int]] = []

    def add_line(start: Vec3, end: Vec3) -> None:
        index = len(vertices)
        vertices.append(start)
        vertices.append(end)
        segments.append((index, index + 1))

    steps = int(round((2.0 * half_size) / spacing))
    for i in range(steps + 1):
        x = -half_size + i * spacing
        add_line((x, height, near), (x, height, far))

    z_lo, z_hi = min(near, far), max(near, far)
    depth_steps = int(round((z_hi - z_lo) / spacing))
    for i in range(depth_steps + 1):
        z = z_hi - i * spacing
        add_line((-half_size, height, z), (half_size, height, z))

    return WireframeMesh(vertices, segments)


def create_stage_bounds_mesh(
    minimum: Vec3 = (-14.0, -2.0, -40.0),
    maximum: Vec3 = (14.0, 12.0, -18.0),
) -> WireframeMesh:
    """Axis-aligned box outlining the stage volume."""

    cube = create_unit_cube_mesh()
    size = [maximum[axis] - minimum[axis] for axis in range(3)]
    if any(extent <= 0.0 for extent in size):
        raise ValueError("Stage bounds need max > min on every axis")
    vertices = [
        tuple(minimum[axis] + (vertex[axis] + 0.5) * size[axis] for axis in range(3))
        for vertex in cube.vertices
    ]
    return WireframeMesh(vertices, cube.segments)


def create_path_mesh(points: Sequence[Sequence[float]]) -> WireframeMesh:
    """Open polyline through ``points``, e.g. a sampled camera curve."""

    vertices: List[Vec3] = [(float(p[0]), float(p[1]), float(p[2])) for p in points]
    if len(vertices) < 2:
        raise ValueError("A path needs at least two points")
    segments = [(i, i + 1) for i in range(len(vertices) - 1)]
    return WireframeMesh(vertices, segments)
