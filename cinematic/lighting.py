"""Adaptive lighting: phase weights drive light and fog targets."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import numpy as np

from .color import mix_colors
from .easing import clamp01, damp_toward, damping_factor, smoothstep, smootherstep
from .frame import FrameContext
from .phases import PhaseTable, PhaseWeights

logger = logging.getLogger(__name__)

Vec3 = Tuple[float, float, float]

LIGHT_KINDS = ("ambient", "directional", "point", "spot")


@dataclass(frozen=True)
class Oscillation:
    frequency: float
    amplitude: float
    phase: float = 0.0

    def value(self, elapsed: float) -> float:
        return self.amplitude * math.sin(self.frequency * elapsed + self.phase)


@dataclass
class LightSpec:
    name: str
    kind: str
    position: Vec3
    color: np.ndarray
    base_intensity: float = 0.0
    contributions: Dict[str, float] = field(default_factory=dict)
    phase_colors: Dict[str, np.ndarray] = field(default_factory=dict)
    rate: float = 4.0
    flicker: Tuple[Oscillation, ...] = ()
    flicker_gate: Tuple[float, float] = (0.5, 0.9)
    distance: float = 0.0

    def __post_init__(self) -> None:
        if self.kind not in LIGHT_KINDS:
            raise ValueError(f"Unknown light kind for {self.name!r}: {self.kind}")


@dataclass
class LightState:
    name: str
    kind: str
    position: np.ndarray
    intensity: float
    color: np.ndarray
    distance: float = 0.0


@dataclass
class FogSpec:
    color: np.ndarray
    near: float
    far: float
    rate: float = 3.0
    stops: Dict[str, Tuple[np.ndarray, float, float]] = field(default_factory=dict)


@dataclass
class FogState:
    color: np.ndarray
    near: float
    far: float


class _LightChannel:
    """A light spec with its phase names resolved to weight indices."""

    def __init__(self, spec: LightSpec, table: PhaseTable) -> None:
        self.spec = spec
        self.contributions = [(table.index(name), coeff) for name, coeff in spec.contributions.items()]
        self.phase_colors = [(table.index(name), color) for name, color in spec.phase_colors.items()]
        self.state = LightState(
            name=spec.name,
            kind=spec.kind,
            position=np.array(spec.position, dtype=np.float64),
            intensity=max(0.0, spec.base_intensity),
            color=spec.color.copy(),
            distance=spec.distance,
        )
        self.target_color = spec.color.copy()
        self.accent = np.zeros(3, dtype=np.float64)

    def target_intensity(self, values: np.ndarray, elapsed: float) -> float:
        spec = self.spec
        target = spec.base_intensity
        activation = 0.0
        for index, coeff in self.contributions:
            target += coeff * values[index]
            activation += values[index]
        if spec.flicker:
            gate = smoothstep(spec.flicker_gate[0], spec.flicker_gate[1], clamp01(activation))
            if gate > 0.0:
                noise = sum(osc.value(elapsed) for osc in spec.flicker)
                target *= 1.0 + noise * gate
        return max(0.0, target)

    def compute_target_color(self, values: np.ndarray) -> np.ndarray:
        self.target_color[:] = self.spec.color
        if not self.phase_colors:
            return self.target_color
        total = 0.0
        self.accent[:] = 0.0
        for index, color in self.phase_colors:
            w = values[index]
            if w > 0.0:
                self.accent += color * w
                total += w
        if total > 0.0:
            self.accent /= total
            mix_colors(self.spec.color, self.accent, clamp01(total), out=self.target_color)
        return self.target_color


class LightingController:
    """Owns every live light and the fog state.

    Targets come only from the phase weight vector and elapsed time; live
    values chase them with ``damping_factor`` using each light's own rate.
    The first update snaps live values onto their targets.
    """

    def __init__(self, lights: Sequence[LightSpec], fog: FogSpec, table: PhaseTable) -> None:
        names = set()
        for spec in lights:
            if spec.name in names:
                raise ValueError(f"Duplicate light name: {spec.name!r}")
            names.add(spec.name)
        self._channels = [_LightChannel(spec, table) for spec in lights]
        self._by_name = {channel.spec.name: channel for channel in self._channels}

        self.fog_spec = fog
        self._fog_stops = [
            (table.index(name), color, near, far) for name, (color, near, far) in fog.stops.items()
        ]
        self.fog = FogState(color=fog.color.copy(), near=fog.near, far=fog.far)
        self._fog_target = fog.color.copy()
        self._fog_accent = np.zeros(3, dtype=np.float64)
        self._scratch = np.zeros(3, dtype=np.float64)
        self._primed = False
        logger.info("Lighting rig ready: %d lights, %d fog stops", len(self._channels), len(self._fog_stops))

    @property
    def lights(self) -> List[LightState]:
        return [channel.state for channel in self._channels]

    def light(self, name: str) -> LightState:
        try:
            return self._by_name[name].state
        except KeyError as exc:
            raise KeyError(f"Unknown light: {name}") from exc

    def update(self, frame: FrameContext, weights: PhaseWeights) -> None:
        values = weights.values
        for channel in self._channels:
            state = channel.state
            target = channel.target_intensity(values, frame.elapsed)
            target_color = channel.compute_target_color(values)
            if not self._primed:
                state.intensity = target
                state.color[:] = target_color
                continue
            factor = damping_factor(channel.spec.rate, frame.dt)
            state.intensity = max(0.0, state.intensity + (target - state.intensity) * factor)
            damp_toward(state.color, target_color, factor, self._scratch)
            np.maximum(state.color, 0.0, out=state.color)

        self._update_fog(frame, values)
        self._primed = True

    # ------------------------------------------------------------------
    # Fog
    # ------------------------------------------------------------------
    def _update_fog(self, frame: FrameContext, values: np.ndarray) -> None:
        spec = self.fog_spec
        target_near = spec.near
        target_far = spec.far
        self._fog_target[:] = spec.color
        if self._fog_stops:
            total = 0.0
            near_acc = 0.0
            far_acc = 0.0
            self._fog_accent[:] = 0.0
            for index, color, near, far in self._fog_stops:
                w = values[index]
                if w <= 0.0:
                    continue
                self._fog_accent += color * w
                near_acc += near * w
                far_acc += far * w
                total += w
            if total > 0.0:
                self._fog_accent /= total
                # Smootherstep hand-over from the base fog to the phase stops.
                blend = smootherstep(0.0, 1.0, clamp01(total))
                mix_colors(spec.color, self._fog_accent, blend, out=self._fog_target)
                target_near = spec.near + (near_acc / total - spec.near) * blend
                target_far = spec.far + (far_acc / total - spec.far) * blend

        fog = self.fog
        if not self._primed:
            fog.color[:] = self._fog_target
            fog.near = target_near
            fog.far = target_far
            return
        factor = damping_factor(spec.rate, frame.dt)
        damp_toward(fog.color, self._fog_target, factor, self._scratch)
        fog.near += (target_near - fog.near) * factor
        fog.far += (target_far - fog.far) * factor
