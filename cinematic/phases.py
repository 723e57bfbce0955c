"""Phase window table and per-frame visibility blending.

Every named world owns a window of scroll progress. Inside the window its
weight rises through a quintic fade-in, holds at 1 on the plateau and falls
through a quintic fade-out, so weights stay continuous however the reader
scrubs. Phases may overlap; where one phase ends exactly where the next one
begins the two fades are merged into a single symmetric crossfade.
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .easing import clamp01, sanitize_progress, smoothstep, smootherstep

Vec3 = Tuple[float, float, float]

CONTIGUOUS_EPSILON = 1e-9


class PhaseConfigError(ValueError):
    """Raised when a phase window cannot produce well-defined weights."""


@dataclass(frozen=True)
class SubShot:
    """Camera keyframe inside a phase-local shot list."""

    position: Vec3
    look_at: Vec3


@dataclass(frozen=True)
class Phase:
    name: str
    start: float
    end: float
    fade_in: float
    fade_out: float
    sub_shots: Tuple[SubShot, ...] = field(default=())

    def __post_init__(self) -> None:
        values = (self.start, self.end, self.fade_in, self.fade_out)
        if not all(math.isfinite(v) for v in values):
            raise PhaseConfigError(f"Phase {self.name!r} has non-finite bounds")
        if self.end <= self.start:
            raise PhaseConfigError(
                f"Phase {self.name!r} ends at {self.end} before it starts at {self.start}"
            )
        if self.fade_in <= 0.0:
            raise PhaseConfigError(f"Phase {self.name!r} needs a positive fade_in")
        if self.fade_out <= 0.0:
            raise PhaseConfigError(f"Phase {self.name!r} needs a positive fade_out")

    @property
    def span(self) -> float:
        return self.end - self.start

    @property
    def opens_timeline(self) -> bool:
        return self.start <= 0.0

    @property
    def closes_timeline(self) -> bool:
        return self.end >= 1.0


def weight_of(phase: Phase, progress: float) -> float:
    """Return the visibility of ``phase`` at ``progress`` in [0, 1]."""

    p = sanitize_progress(progress)
    fade_in = 1.0
    if not phase.opens_timeline:
        fade_in = smootherstep(phase.start, phase.start + phase.fade_in, p)
    fade_out = 1.0
    if not phase.closes_timeline:
        fade_out = 1.0 - smootherstep(phase.end - phase.fade_out, phase.end, p)
    return clamp01(fade_in * fade_out)


def local_progress(phase: Phase, progress: float) -> float:
    return clamp01((sanitize_progress(progress) - phase.start) / phase.span)


def override_blend(phase: Phase, progress: float) -> float:
    """Linear ramp across the fade windows, used for camera hand-over."""

    p = sanitize_progress(progress)
    rise = 1.0 if phase.opens_timeline else clamp01((p - phase.start) / phase.fade_in)
    fall = 1.0 if phase.closes_timeline else clamp01((phase.end - p) / phase.fade_out)
    return rise * fall


def sub_shot_pose(
    phase: Phase,
    local_t: float,
    out_position: np.ndarray,
    out_look: np.ndarray,
) -> bool:
    """Interpolate the phase's shot list at ``local_t``.

    Keyframe ``i`` is held at the centre of segment ``i`` of ``k`` equal
    segments; between neighbouring centres the pose eases with smoothstep.
    Returns ``False`` when the phase has no sub-shots.
    """

    shots = phase.sub_shots
    count = len(shots)
    if count == 0:
        return False
    if count == 1:
        out_position[:] = shots[0].position
        out_look[:] = shots[0].look_at
        return True

    u = clamp01(local_t) * count - 0.5
    u = min(max(u, 0.0), float(count - 1))
    index = min(int(u), count - 2)
    blend = smoothstep(0.0, 1.0, u - index)
    a = shots[index]
    b = shots[index + 1]
    for axis in range(3):
        out_position[axis] = a.position[axis] + (b.position[axis] - a.position[axis]) * blend
        out_look[axis] = a.look_at[axis] + (b.look_at[axis] - a.look_at[axis]) * blend
    return True


class PhaseWeights(Mapping):
    """Read-only ``name -> weight`` view backed by a numpy array."""

    def __init__(self, names: Sequence[str], values: Optional[np.ndarray] = None) -> None:
        self._names = tuple(names)
        self._index = {name: i for i, name in enumerate(self._names)}
        if values is None:
            values = np.zeros(len(self._names), dtype=np.float64)
        self.values = values

    def __getitem__(self, name: str) -> float:
        return float(self.values[self._index[name]])

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def as_dict(self) -> Dict[str, float]:
        return {name: float(self.values[i]) for i, name in enumerate(self._names)}

    def dominant(self) -> Optional[str]:
        """Return the name of the strongest phase, or ``None`` if all are dark."""

        if not self._names:
            return None
        index = int(np.argmax(self.values))
        if self.values[index] <= 0.0:
            return None
        return self._names[index]


def _resolve_crossfades(phases: Sequence[Phase]) -> List[Phase]:
    """Widen contiguous neighbours into one shared crossfade window."""

    resolved: List[Phase] = []
    for phase in phases:
        start, fade_in = phase.start, phase.fade_in
        end, fade_out = phase.end, phase.fade_out
        for other in phases:
            if other is phase:
                continue
            if abs(other.end - phase.start) <= CONTIGUOUS_EPSILON and not phase.opens_timeline:
                start = phase.start - other.fade_out
                fade_in = other.fade_out + phase.fade_in
            if abs(other.start - phase.end) <= CONTIGUOUS_EPSILON and not phase.closes_timeline:
                end = phase.end + other.fade_in
                fade_out = phase.fade_out + other.fade_in
        resolved.append(
            replace(phase, start=start, end=end, fade_in=fade_in, fade_out=fade_out)
        )
    return resolved


class PhaseTable:
    """Immutable schedule of phases, built once at startup."""

    def __init__(self, phases: Sequence[Phase]) -> None:
        if not phases:
            raise PhaseConfigError("A phase table needs at least one phase")
        seen = set()
        for phase in phases:
            if phase.name in seen:
                raise PhaseConfigError(f"Duplicate phase name: {phase.name!r}")
            seen.add(phase.name)

        self.declared: Tuple[Phase, ...] = tuple(phases)
        self.phases: Tuple[Phase, ...] = tuple(_resolve_crossfades(phases))
        self.names: Tuple[str, ...] = tuple(phase.name for phase in self.phases)
        self._index = {name: i for i, name in enumerate(self.names)}

    def __len__(self) -> int:
        return len(self.phases)

    def __iter__(self) -> Iterator[Phase]:
        return iter(self.phases)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def index(self, name: str) -> int:
        try:
            return self._index[name]
        except KeyError as exc:
            raise KeyError(f"Unknown phase: {name}") from exc

    def phase(self, name: str) -> Phase:
        return self.phases[self.index(name)]

    def new_weights(self) -> PhaseWeights:
        return PhaseWeights(self.names)

    def weights(self, progress: float, out: Optional[PhaseWeights] = None) -> PhaseWeights:
        """Compute the weight vector for ``progress``, reusing ``out`` if given."""

        if out is None:
            out = self.new_weights()
        values = out.values
        for i, phase in enumerate(self.phases):
            values[i] = weight_of(phase, progress)
        return out

    def weight(self, name: str, progress: float) -> float:
        return weight_of(self.phase(name), progress)

    def local_progress(self, name: str, progress: float) -> float:
        return local_progress(self.phase(name), progress)

    def override_blend(self, name: str, progress: float) -> float:
        return override_blend(self.phase(name), progress)

    @property
    def sub_shot_phases(self) -> Tuple[Phase, ...]:
        return tuple(phase for phase in self.phases if phase.sub_shots)
