"""Catmull-Rom curves used for the camera dolly."""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from .easing import clamp01

Vec3 = Tuple[float, float, float]


class CatmullRomCurve:
    """Uniform Catmull-Rom spline through ordered 3D keyframes.

    ``t`` in [0, 1] is spread evenly over the segments, so keyframe ``i`` sits
    at ``t = i / (n - 1)``. End tangents come from mirrored phantom points.
    """

    def __init__(self, points: Sequence[Vec3], tension: float = 0.5) -> None:
        if len(points) < 2:
            raise ValueError("A Catmull-Rom curve needs at least two keyframes")
        self.points = np.array(points, dtype=np.float64)
        if self.points.ndim != 2 or self.points.shape[1] != 3:
            raise ValueError("Keyframes must be 3D points")
        self.tension = float(tension)

        count = len(self.points)
        padded = np.empty((count + 2, 3), dtype=np.float64)
        padded[1:-1] = self.points
        padded[0] = 2.0 * self.points[0] - self.points[1]
        padded[-1] = 2.0 * self.points[-1] - self.points[-2]
        self.tangents = self.tension * (padded[2:] - padded[:-2])

        self._point_rows: List[List[float]] = self.points.tolist()
        self._tangent_rows: List[List[float]] = self.tangents.tolist()

    @property
    def segment_count(self) -> int:
        return len(self._point_rows) - 1

    def point(self, t: float, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Evaluate the curve at ``t``, writing into ``out`` when supplied."""

        if out is None:
            out = np.empty(3, dtype=np.float64)
        segments = self.segment_count
        x = clamp01(t) * segments
        index = min(int(x), segments - 1)
        s = x - index
        s2 = s * s
        s3 = s2 * s
        h00 = 2.0 * s3 - 3.0 * s2 + 1.0
        h10 = s3 - 2.0 * s2 + s
        h01 = -2.0 * s3 + 3.0 * s2
        h11 = s3 - s2

        p1 = self._point_rows[index]
        p2 = self._point_rows[index + 1]
        m1 = self._tangent_rows[index]
        m2 = self._tangent_rows[index + 1]
        for axis in range(3):
            out[axis] = h00 * p1[axis] + h10 * m1[axis] + h01 * p2[axis] + h11 * m2[axis]
        return out

    def sample(self, count: int) -> np.ndarray:
        """Return ``count`` evenly spaced points as an ``(count, 3)`` array."""

        count = max(2, count)
        samples = np.empty((count, 3), dtype=np.float64)
        for i in range(count):
            self.point(i / (count - 1), out=samples[i])
        return samples
