"""Procedural instance fields.

Each field owns fixed-size structure-of-arrays state allocated once at
construction. ``update`` rewrites every instance in place from elapsed time,
the owning phase weight and progress; only ``DebrisField`` integrates a
velocity between frames.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Type

import numpy as np

from .color import Palette
from .easing import smootherstep
from .frame import FrameContext
from .layouts import Layout, build_layout

logger = logging.getLogger(__name__)

TAU = math.pi * 2.0
# Below this weight a field is treated as invisible and skips its update.
VISIBILITY_EPSILON = 1e-3


@dataclass
class FieldSpec:
    name: str
    kind: str
    count: int
    phase: Optional[str] = None
    seed: int = 0
    opacity: float = 1.0
    size: Tuple[float, float] = (0.02, 0.06)
    palette: Tuple[Tuple[float, str], ...] = ((0.0, "#FFFFFF"),)
    layout: str = "box"
    layout_params: Dict[str, Any] = field(default_factory=dict)
    target_layout: Optional[str] = None
    target_params: Dict[str, Any] = field(default_factory=dict)
    motion: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.count <= 0:
            raise ValueError(f"Field {self.name!r} needs a positive count, got {self.count}")
        if self.size[1] < self.size[0]:
            raise ValueError(f"Field {self.name!r} has an inverted size range")


def _motion_vec(motion: Mapping[str, Any], key: str, default: Tuple[float, float, float]) -> np.ndarray:
    return np.asarray(motion.get(key, default), dtype=np.float64)


class InstanceField:
    """Base class holding the per-instance arrays every kind writes into."""

    kind = "static"

    def __init__(self, spec: FieldSpec) -> None:
        self.spec = spec
        self.name = spec.name
        self.count = spec.count
        self.motion = spec.motion
        rng = np.random.default_rng(spec.seed)
        layout = build_layout(spec.layout, rng, spec.count, spec.layout_params)

        n = spec.count
        self.base_positions = layout.positions
        self.positions = layout.positions.copy()
        self.rotations = np.zeros((n, 3), dtype=np.float64)
        self.scales = np.ones((n, 3), dtype=np.float64)
        self.intensities = np.ones(n, dtype=np.float64)

        lo, hi = spec.size
        self.sizes = layout.sizes if layout.sizes is not None else rng.uniform(lo, hi, n)
        self.phases = rng.uniform(0.0, TAU, n)
        self.indices = np.arange(n, dtype=np.float64)

        self.opacity = 0.0
        self.color = np.zeros(3, dtype=np.float64)
        self.visible = False
        self.weight = 0.0

        self._palette = Palette(spec.palette)
        self._matrices = np.zeros((n, 4, 4), dtype=np.float64)
        self._matrices[:, 3, 3] = 1.0
        self._trig = np.zeros((6, n), dtype=np.float64)
        self._tmp = np.zeros(n, dtype=np.float64)
        self._tmp2 = np.zeros(n, dtype=np.float64)

        self.scales[:] = self.sizes[:, None]
        self.setup(rng, layout)

    def setup(self, rng: np.random.Generator, layout: Layout) -> None:
        """Hook for kinds that need extra per-instance attributes."""

    def update(self, frame: FrameContext, weight: float, camera_position: np.ndarray) -> None:
        self.weight = weight
        self._palette.evaluate(frame.progress, out=self.color)
        if weight <= VISIBILITY_EPSILON:
            self.visible = False
            self.opacity = 0.0
            return
        self.visible = True
        self.opacity = self.spec.opacity * weight
        self.animate(frame, weight, camera_position)

    def animate(self, frame: FrameContext, weight: float, camera_position: np.ndarray) -> None:
        pass

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _wave(self, out: np.ndarray, speed: Any, elapsed: float, phase_scale: float = 1.0,
              fn=np.sin) -> np.ndarray:
        """``out = fn(speed * elapsed + phases * phase_scale)`` without allocating."""

        np.multiply(self.phases, phase_scale, out=out)
        if isinstance(speed, np.ndarray):
            np.multiply(speed, elapsed, out=self._tmp2)
            out += self._tmp2
        else:
            out += speed * elapsed
        fn(out, out=out)
        return out

    def matrices(self) -> np.ndarray:
        """Compose translation, XYZ Euler rotation and scale into ``(N, 4, 4)``."""

        rx = self.rotations[:, 0]
        ry = self.rotations[:, 1]
        rz = self.rotations[:, 2]
        a, b, c, d, e, f = self._trig
        np.cos(rx, out=a)
        np.sin(rx, out=b)
        np.cos(ry, out=c)
        np.sin(ry, out=d)
        np.cos(rz, out=e)
        np.sin(rz, out=f)

        m = self._matrices
        np.multiply(c, e, out=m[:, 0, 0])
        np.multiply(c, f, out=m[:, 0, 1])
        np.negative(m[:, 0, 1], out=m[:, 0, 1])
        m[:, 0, 2] = d

        # row 1: a*f + b*e*d, a*e - b*f*d, -b*c
        np.multiply(b, e, out=m[:, 1, 0])
        m[:, 1, 0] *= d
        np.multiply(a, f, out=self._tmp)
        m[:, 1, 0] += self._tmp
        np.multiply(b, f, out=m[:, 1, 1])
        m[:, 1, 1] *= d
        np.multiply(a, e, out=self._tmp)
        np.subtract(self._tmp, m[:, 1, 1], out=m[:, 1, 1])
        np.multiply(b, c, out=m[:, 1, 2])
        np.negative(m[:, 1, 2], out=m[:, 1, 2])

        # row 2: b*f - a*e*d, b*e + a*f*d, a*c
        np.multiply(a, e, out=m[:, 2, 0])
        m[:, 2, 0] *= d
        np.multiply(b, f, out=self._tmp)
        np.subtract(self._tmp, m[:, 2, 0], out=m[:, 2, 0])
        np.multiply(a, f, out=m[:, 2, 1])
        m[:, 2, 1] *= d
        np.multiply(b, e, out=self._tmp)
        m[:, 2, 1] += self._tmp
        np.multiply(a, c, out=m[:, 2, 2])

        m[:, :3, :3] *= self.scales[:, None, :]
        m[:, :3, 3] = self.positions
        return m


class DriftField(InstanceField):
    """Dust hanging in the air, drifting on per-instance sine paths."""

    kind = "drift"

    def setup(self, rng: np.random.Generator, layout: Layout) -> None:
        speed = _motion_vec(self.motion, "speed", (0.08, 0.04, 0.02))
        self.speeds = (rng.random((self.count, 3)) - 0.5) * speed
        self.amplitude = _motion_vec(self.motion, "amplitude", (1.5, 0.8, 0.0))
        self.rise = float(self.motion.get("rise", 0.015))
        base_y = self.base_positions[:, 1]
        self.rise_floor = float(base_y.min())
        extent = float(base_y.max()) - self.rise_floor
        self.rise_range = max(float(self.motion.get("rise_range", extent)), 1e-6)

    def animate(self, frame: FrameContext, weight: float, camera_position: np.ndarray) -> None:
        elapsed = frame.elapsed
        tmp = self._trig[0]

        # Each mote wraps back to the floor on its own once it passes the top.
        risen = self._tmp
        np.subtract(self.base_positions[:, 1], self.rise_floor, out=risen)
        risen += elapsed * self.rise
        np.mod(risen, self.rise_range, out=risen)
        risen += self.rise_floor

        for axis, fn in ((0, np.sin), (1, np.cos), (2, np.sin)):
            self._wave(tmp, self.speeds[:, axis], elapsed, fn=fn)
            tmp *= self.amplitude[axis] * weight
            source = risen if axis == 1 else self.base_positions[:, axis]
            np.add(source, tmp, out=self.positions[:, axis])


class DebrisField(InstanceField):
    """Nebula debris: integrated velocity wrapped into the layout bounds."""

    kind = "debris"

    def setup(self, rng: np.random.Generator, layout: Layout) -> None:
        velocity = _motion_vec(self.motion, "velocity", (0.18, 0.12, 0.06))
        self.velocities = (rng.random((self.count, 3)) - 0.5) * velocity
        self.current = self.base_positions.copy()
        self.bounds_min = self.base_positions.min(axis=0)
        self.bounds_max = self.base_positions.max(axis=0)
        self.extent = np.maximum(self.bounds_max - self.bounds_min, 1e-6)
        self.wobble = _motion_vec(self.motion, "wobble", (0.02, 0.015, 0.0))
        self.pulse = float(self.motion.get("pulse", 0.15))
        self._step = np.zeros((self.count, 3), dtype=np.float64)

    def animate(self, frame: FrameContext, weight: float, camera_position: np.ndarray) -> None:
        elapsed = frame.elapsed
        if frame.dt > 0.0:
            np.multiply(self.velocities, frame.dt, out=self._step)
            self.current += self._step
            self.current -= self.bounds_min
            np.mod(self.current, self.extent, out=self.current)
            self.current += self.bounds_min

        self.positions[:] = self.current
        tmp = self._trig[0]
        self._wave(tmp, 0.05, elapsed)
        tmp *= self.wobble[0]
        self.positions[:, 0] += tmp
        self._wave(tmp, 0.04, elapsed, phase_scale=1.3, fn=np.cos)
        tmp *= self.wobble[1]
        self.positions[:, 1] += tmp

        self._wave(tmp, 0.2, elapsed)
        tmp *= self.pulse
        tmp += 1.0
        np.multiply(self.sizes, tmp, out=self.scales[:, 0])
        self.scales[:, 1] = self.scales[:, 0]
        self.scales[:, 2] = self.scales[:, 0]


class TwinkleField(InstanceField):
    """Static stars whose brightness twinkles per instance."""

    kind = "twinkle"

    def setup(self, rng: np.random.Generator, layout: Layout) -> None:
        self.speed = float(self.motion.get("speed", 0.8))
        self.floor = float(self.motion.get("floor", 0.7))
        self.depth = float(self.motion.get("depth", 0.3))

    def animate(self, frame: FrameContext, weight: float, camera_position: np.ndarray) -> None:
        self._wave(self.intensities, self.speed, frame.elapsed)
        self.intensities *= self.depth
        self.intensities += self.floor


class AssemblyField(InstanceField):
    """Scattered fragments that lock into an ordered target layout.

    Assembly ``a = smootherstep(assemble_start, assemble_end, progress)``
    blends position, rotation and scale. Wobble and glitch fade out as ``a``
    approaches 1.
    """

    kind = "assembly"

    def setup(self, rng: np.random.Generator, layout: Layout) -> None:
        spec = self.spec
        target = build_layout(spec.target_layout or "grid", rng, self.count, spec.target_params)
        self.target_positions = target.positions
        if target.rotations is not None:
            self.target_rotations = target.rotations
        else:
            self.target_rotations = np.zeros((self.count, 3), dtype=np.float64)

        motion = self.motion
        self.assemble_start = float(motion.get("assemble_start", 0.42))
        self.assemble_end = float(motion.get("assemble_end", 0.60))
        tumble = _motion_vec(motion, "tumble", (math.pi, math.pi, math.pi))
        self.tumble = (rng.random((self.count, 3)) - 0.5) * tumble
        wobble_lo, wobble_hi = motion.get("wobble", (0.3, 0.8))
        self.wobble = rng.uniform(wobble_lo, wobble_hi, self.count)
        self.glitch = float(motion.get("glitch", 0.0))
        self.glitch_offsets = (rng.random((self.count, 3)) - 0.5) * np.array([1.5, 0.8, 0.0])
        target_lo, target_hi = motion.get("target_size", spec.size)
        self.target_sizes = rng.uniform(target_lo, target_hi, self.count)
        self.aspect_start = _motion_vec(motion, "aspect_start", (1.0, 1.0, 1.0))
        self.aspect_end = _motion_vec(motion, "aspect_end", (1.0, 1.0, 1.0))
        self.scale_with_weight = bool(motion.get("scale_with_weight", True))
        self.assembly = 0.0
        self._pulse = np.zeros(self.count, dtype=np.float64)
        self._scratch3 = np.zeros((self.count, 3), dtype=np.float64)

    def animate(self, frame: FrameContext, weight: float, camera_position: np.ndarray) -> None:
        elapsed = frame.elapsed
        a = smootherstep(self.assemble_start, self.assemble_end, frame.progress)
        self.assembly = a
        loose = 1.0 - a

        # position: scattered -> target
        np.subtract(self.target_positions, self.base_positions, out=self.positions)
        self.positions *= a
        self.positions += self.base_positions

        tmp = self._trig[0]
        if loose > 0.0:
            self._wave(tmp, 0.5, elapsed)
            tmp *= self.wobble
            tmp *= loose
            self.positions[:, 0] += tmp
            self._wave(tmp, 0.4, elapsed, phase_scale=1.3, fn=np.cos)
            tmp *= self.wobble
            tmp *= 0.6 * loose
            self.positions[:, 1] += tmp

        glitch = self.glitch * weight * loose
        if glitch > 0.0:
            pulse = self._pulse
            np.multiply(self.indices, 3.7, out=pulse)
            pulse += elapsed * 8.0
            np.sin(pulse, out=pulse)
            # smoothstep(0.92, 1.0, pulse)
            pulse -= 0.92
            pulse /= 0.08
            np.clip(pulse, 0.0, 1.0, out=pulse)
            np.multiply(pulse, pulse, out=tmp)
            pulse *= -2.0
            pulse += 3.0
            pulse *= tmp
            pulse *= glitch
            np.multiply(self.glitch_offsets, pulse[:, None], out=self._scratch3)
            self.positions += self._scratch3

        # rotation: fixed tumble -> locked panel orientation
        np.multiply(self.tumble, loose, out=self.rotations)
        np.multiply(self.target_rotations, a, out=self._scratch3)
        self.rotations += self._scratch3

        # scale: shard -> panel
        np.multiply(self.sizes, loose, out=tmp)
        np.multiply(self.target_sizes, a, out=self._tmp2)
        tmp += self._tmp2
        if self.scale_with_weight:
            tmp *= weight
        for axis in range(3):
            aspect = self.aspect_start[axis] + (self.aspect_end[axis] - self.aspect_start[axis]) * a
            np.multiply(tmp, aspect, out=self.scales[:, axis])


class ParallaxField(InstanceField):
    """Foreground bokeh in depth bands that trail the camera.

    Each band's factor scales its drift and how far it slides against camera
    motion, so near orbs move more than far ones.
    """

    kind = "parallax"

    def setup(self, rng: np.random.Generator, layout: Layout) -> None:
        if layout.factors is not None:
            self.factors = layout.factors
        else:
            self.factors = np.ones(self.count, dtype=np.float64)
        self.speeds = rng.uniform(0.05, 0.17, self.count)
        self.drift_speeds = self.speeds * 0.7
        self.pulse_speeds = rng.uniform(0.3, 0.9, self.count)
        self.follow = float(self.motion.get("follow", 1.0))
        self.parallax = float(self.motion.get("parallax", 0.02))
        self.amplitude = _motion_vec(self.motion, "amplitude", (2.0, 1.0, 0.0))
        self.breathing = float(self.motion.get("breathing", 0.15))
        self._offset = np.zeros(3, dtype=np.float64)

    def animate(self, frame: FrameContext, weight: float, camera_position: np.ndarray) -> None:
        elapsed = frame.elapsed
        tmp = self._trig[0]
        offset = self._offset
        np.multiply(camera_position, self.follow, out=offset)

        for axis in range(3):
            np.multiply(self.factors, -1.0, out=tmp)
            tmp += 1.0
            tmp *= camera_position[axis] * self.parallax
            tmp += offset[axis]
            np.add(self.base_positions[:, axis], tmp, out=self.positions[:, axis])

        self._wave(tmp, self.speeds, elapsed)
        tmp *= self.factors
        tmp *= self.amplitude[0]
        self.positions[:, 0] += tmp
        self._wave(tmp, self.drift_speeds, elapsed, fn=np.cos)
        tmp *= self.factors
        tmp *= self.amplitude[1]
        self.positions[:, 1] += tmp

        self._wave(tmp, self.pulse_speeds, elapsed)
        tmp *= self.breathing
        tmp += 1.0
        np.multiply(self.sizes, tmp, out=self.scales[:, 0])
        self.scales[:, 1] = self.scales[:, 0]
        self.scales[:, 2] = self.scales[:, 0]

        self._wave(self.intensities, 0.5, elapsed)
        self.intensities *= 0.3
        self.intensities += 0.7


class SwayField(InstanceField):
    """Standing silhouettes with a slight rotational sway."""

    kind = "sway"

    def setup(self, rng: np.random.Generator, layout: Layout) -> None:
        self.sway = _motion_vec(self.motion, "sway", (0.015, 0.0, 0.03))

    def animate(self, frame: FrameContext, weight: float, camera_position: np.ndarray) -> None:
        elapsed = frame.elapsed
        rz = self.rotations[:, 2]
        np.multiply(self.indices, 1.7, out=rz)
        rz += elapsed * 0.3
        np.sin(rz, out=rz)
        rz *= self.sway[2] * weight

        rx = self.rotations[:, 0]
        np.multiply(self.indices, 2.3, out=rx)
        rx += elapsed * 0.2
        np.cos(rx, out=rx)
        rx *= self.sway[0] * weight


FIELD_KINDS: Dict[str, Type[InstanceField]] = {
    "static": InstanceField,
    "drift": DriftField,
    "debris": DebrisField,
    "twinkle": TwinkleField,
    "assembly": AssemblyField,
    "parallax": ParallaxField,
    "sway": SwayField,
}


def build_field(spec: FieldSpec) -> InstanceField:
    try:
        field_cls = FIELD_KINDS[spec.kind]
    except KeyError as exc:
        raise ValueError(f"Unknown field kind: {spec.kind}") from exc
    instance_field = field_cls(spec)
    logger.info("Allocated %s field %r with %d instances", spec.kind, spec.name, spec.count)
    return instance_field
