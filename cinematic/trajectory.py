"""Camera trajectory: entry push-in, spline dolly and damped live pose."""
from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from .camera import Pose
from .config import CameraConfig
from .easing import (
    clamp01,
    damp_toward,
    damping_factor,
    ease_out_quint,
    smoothstep,
    smootherstep,
)
from .frame import FrameContext
from .phases import Phase, PhaseTable, local_progress, override_blend, sub_shot_pose
from .spline import CatmullRomCurve

logger = logging.getLogger(__name__)


class CameraState(Enum):
    ENTRY = "entry"
    SCROLL = "scroll"


class CameraTrajectory:
    """Evaluates the target pose each frame and damps the live pose toward it.

    The entry push-in is keyed to frame ``elapsed`` rather than progress and
    runs at most once: after release the trajectory stays scroll-driven for
    the rest of the session.
    """

    def __init__(self, config: CameraConfig, table: PhaseTable) -> None:
        self.config = config
        self.position_curve = CatmullRomCurve(config.positions, config.tension)
        self.look_curve = CatmullRomCurve(config.look_targets, config.tension)
        self._shot_phases: Tuple[Phase, ...] = table.sub_shot_phases

        entry = config.entry
        self._entry_start = np.array(entry.start, dtype=np.float64)
        self._entry_end = np.array(entry.end, dtype=np.float64)
        self._entry_look = np.array(entry.look_at, dtype=np.float64)

        self.target = Pose.from_points(entry.start, entry.look_at)
        self.live = Pose.from_points(entry.start, entry.look_at)
        self.state = CameraState.ENTRY
        self.roll = 0.0
        self.velocity = 0.0

        self._entry_started_at: Optional[float] = None
        self._entry_complete = False
        self._entry_t = 0.0
        self._previous_progress: Optional[float] = None
        self._scratch = np.zeros(3, dtype=np.float64)
        self._shot_position = np.zeros(3, dtype=np.float64)
        self._shot_look = np.zeros(3, dtype=np.float64)

    @property
    def entry_complete(self) -> bool:
        return self._entry_complete

    @property
    def entry_progress(self) -> float:
        return self._entry_t

    # ------------------------------------------------------------------
    # Frame update
    # ------------------------------------------------------------------
    def update(self, frame: FrameContext) -> Pose:
        if self._entry_started_at is None:
            self._entry_started_at = frame.elapsed
            self.live.position[:] = self._entry_start
            self.live.look_at[:] = self._entry_look

        if not self._entry_complete:
            self._entry_t = self._entry_fraction(frame)
            if self._entry_t >= 1.0:
                self._release("push-in finished", frame)
            elif frame.progress > self.config.entry.release_progress:
                self._release("reader scrolled", frame)

        if self.state is CameraState.ENTRY:
            self._evaluate_entry_target()
        else:
            self._evaluate_scroll_target(frame.progress)
        self._apply_drift(frame)

        damp_toward(
            self.live.position,
            self.target.position,
            damping_factor(self.config.position_rate, frame.dt),
            self._scratch,
        )
        damp_toward(
            self.live.look_at,
            self.target.look_at,
            damping_factor(self.config.look_rate, frame.dt),
            self._scratch,
        )
        self._update_roll(frame)
        return self.live

    def _entry_fraction(self, frame: FrameContext) -> float:
        duration = self.config.entry.duration
        if duration <= 0.0:
            return 1.0
        return clamp01((frame.elapsed - self._entry_started_at) / duration)

    def _release(self, reason: str, frame: FrameContext) -> None:
        self._entry_complete = True
        self.state = CameraState.SCROLL
        logger.info(
            "Entry cinematic released (%s) at %.2fs, progress %.3f",
            reason, frame.elapsed, frame.progress,
        )

    # ------------------------------------------------------------------
    # Target evaluation
    # ------------------------------------------------------------------
    def _evaluate_entry_target(self) -> None:
        eased = ease_out_quint(self._entry_t)
        np.subtract(self._entry_end, self._entry_start, out=self.target.position)
        self.target.position *= eased
        self.target.position += self._entry_start
        self.target.look_at[:] = self._entry_look

    def _evaluate_scroll_target(self, progress: float) -> None:
        self.position_curve.point(progress, out=self.target.position)
        self.look_curve.point(progress, out=self.target.look_at)

        for phase in self._shot_phases:
            blend = override_blend(phase, progress)
            if blend <= 0.0:
                continue
            sub_shot_pose(
                phase,
                local_progress(phase, progress),
                self._shot_position,
                self._shot_look,
            )
            damp_toward(self.target.position, self._shot_position, blend, self._scratch)
            damp_toward(self.target.look_at, self._shot_look, blend, self._scratch)

    def _apply_drift(self, frame: FrameContext) -> None:
        drift = self.config.drift
        strength = 1.0 - smootherstep(drift.decay_start, drift.decay_end, frame.progress) * drift.decay_amount
        if self.state is CameraState.ENTRY:
            strength *= smoothstep(0.6, 1.0, self._entry_t)
        if strength <= 0.0:
            return
        for axis in range(3):
            amplitude = drift.amplitude[axis]
            if amplitude == 0.0:
                continue
            wave = math.sin(frame.elapsed * drift.frequency[axis] + drift.phase[axis])
            self.target.position[axis] += wave * amplitude * strength

    # ------------------------------------------------------------------
    # Roll
    # ------------------------------------------------------------------
    def _update_roll(self, frame: FrameContext) -> None:
        roll_config = self.config.roll
        if frame.dt > 0.0 and self._previous_progress is not None:
            raw = (frame.progress - self._previous_progress) / frame.dt
            raw = max(-roll_config.max_velocity, min(roll_config.max_velocity, raw))
            # Roll follows the smoothed velocity, never the raw delta.
            self.velocity += (raw - self.velocity) * damping_factor(roll_config.velocity_rate, frame.dt)
        self._previous_progress = frame.progress

        roll_target = 0.0
        if self.state is CameraState.SCROLL:
            roll_target = self.velocity * roll_config.gain
            roll_target = max(-roll_config.max_roll, min(roll_config.max_roll, roll_target))
        self.roll += (roll_target - self.roll) * damping_factor(roll_config.rate, frame.dt)
