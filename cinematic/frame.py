"""Explicit per-frame timing context handed to every sequencer component."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .easing import MAX_FRAME_DT, clamp_dt, sanitize_progress

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameContext:
    """Inputs sampled once per rendered frame.

    ``progress`` and ``dt`` are already sanitised; the raw values are kept
    for diagnostics only.
    """

    progress: float
    dt: float
    elapsed: float
    raw_progress: float = 0.0
    raw_dt: float = 0.0


class FrameClock:
    """Turns raw (progress, dt) samples into sanitised frame contexts."""

    def __init__(self, max_frame_dt: float = MAX_FRAME_DT) -> None:
        self.max_frame_dt = max_frame_dt
        self._elapsed = 0.0
        self._frame_count = 0

    @property
    def elapsed(self) -> float:
        return self._elapsed

    @property
    def frame_count(self) -> int:
        return self._frame_count

    def advance(self, progress: float, dt: float) -> FrameContext:
        clean_dt = clamp_dt(dt, self.max_frame_dt)
        if clean_dt != dt:
            logger.debug("Clamped frame dt %r to %.4f", dt, clean_dt)
        clean_progress = sanitize_progress(progress)
        if clean_progress != progress:
            logger.debug("Clamped progress %r to %.4f", progress, clean_progress)

        # Elapsed advances by the clamped dt so a stalled tab resumes smoothly.
        self._elapsed += clean_dt
        self._frame_count += 1
        return FrameContext(
            progress=clean_progress,
            dt=clean_dt,
            elapsed=self._elapsed,
            raw_progress=progress,
            raw_dt=dt,
        )

    def reset(self) -> None:
        self._elapsed = 0.0
        self._frame_count = 0
