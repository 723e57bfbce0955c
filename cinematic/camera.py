"""3D camera and pose utilities for the cinematic sequencer."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

Vec3 = Tuple[float, float, float]


def _normalize(vec: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(vec)
    if norm == 0:
        return vec
    return vec / norm


def _look_at_matrix(position: np.ndarray, target: np.ndarray, up: Vec3, roll: float = 0.0) -> np.ndarray:
    pos = np.asarray(position, dtype=np.float32)
    tgt = np.asarray(target, dtype=np.float32)
    up_vec = np.array(up, dtype=np.float32)

    forward = _normalize(tgt - pos)
    side = _normalize(np.cross(forward, up_vec))
    true_up = np.cross(side, forward)
    if roll != 0.0:
        # Rotate the basis about the view axis.
        cos_r = math.cos(roll)
        sin_r = math.sin(roll)
        side, true_up = side * cos_r - true_up * sin_r, true_up * cos_r + side * sin_r

    view = np.identity(4, dtype=np.float32)
    view[0, :3] = side
    view[1, :3] = true_up
    view[2, :3] = -forward
    view[0, 3] = -np.dot(side, pos)
    view[1, 3] = -np.dot(true_up, pos)
    view[2, 3] = np.dot(forward, pos)
    return view


def _perspective_matrix(fov_degrees: float, aspect: float, near: float, far: float) -> np.ndarray:
    perspective = np.zeros((4, 4), dtype=np.float32)
    f = 1.0 / math.tan(math.radians(fov_degrees) / 2.0)
    perspective[0, 0] = f / aspect
    perspective[1, 1] = f
    perspective[2, 2] = (far + near) / (near - far)
    perspective[2, 3] = (2 * far * near) / (near - far)
    perspective[3, 2] = -1.0
    return perspective


@dataclass
class Pose:
    """Camera position plus the point it looks at."""

    position: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float64))
    look_at: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float64))

    @classmethod
    def from_points(cls, position: Vec3, look_at: Vec3) -> "Pose":
        return cls(
            position=np.array(position, dtype=np.float64),
            look_at=np.array(look_at, dtype=np.float64),
        )


@dataclass
class Camera3D:
    position: Vec3
    target: Vec3
    viewport_size: Tuple[int, int]
    fov: float = 50.0
    near_clip: float = 0.1
    far_clip: float = 200.0
    up: Vec3 = (0.0, 1.0, 0.0)
    roll: float = 0.0

    def apply_pose(self, pose: Pose, roll: float = 0.0) -> None:
        self.position = (float(pose.position[0]), float(pose.position[1]), float(pose.position[2]))
        self.target = (float(pose.look_at[0]), float(pose.look_at[1]), float(pose.look_at[2]))
        self.roll = roll

    def update_viewport(self, size: Tuple[int, int]) -> None:
        self.viewport_size = size

    def view_matrix(self) -> np.ndarray:
        return _look_at_matrix(np.array(self.position), np.array(self.target), self.up, self.roll)

    def projection_matrix(self) -> np.ndarray:
        width, height = self.viewport_size
        aspect = width / height if height > 0 else 1.0
        return _perspective_matrix(self.fov, aspect, self.near_clip, self.far_clip)

