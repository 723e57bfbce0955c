"""Colour helpers. Everything is blended in linear light."""
from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np

from .easing import smootherstep


def _srgb_to_linear(channel: float) -> float:
    if channel <= 0.04045:
        return channel / 12.92
    return ((channel + 0.055) / 1.055) ** 2.4


def _linear_to_srgb(channel: float) -> float:
    if channel <= 0.0031308:
        return channel * 12.92
    return 1.055 * channel ** (1.0 / 2.4) - 0.055


def parse_color(value: str) -> np.ndarray:
    """Decode ``#RRGGBB`` into a linear RGB array."""

    text = value.strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) != 6:
        raise ValueError(f"Invalid colour: {value!r}")
    try:
        channels = [int(text[i:i + 2], 16) / 255.0 for i in (0, 2, 4)]
    except ValueError as exc:
        raise ValueError(f"Invalid colour: {value!r}") from exc
    return np.array([_srgb_to_linear(c) for c in channels], dtype=np.float64)


def to_srgb(color: np.ndarray) -> Tuple[float, float, float]:
    """Encode a linear colour for display, clamped to [0, 1]."""

    clipped = np.clip(color, 0.0, 1.0)
    return (
        _linear_to_srgb(float(clipped[0])),
        _linear_to_srgb(float(clipped[1])),
        _linear_to_srgb(float(clipped[2])),
    )


def mix_colors(
    a: np.ndarray, b: np.ndarray, t: float, out: Optional[np.ndarray] = None
) -> np.ndarray:
    if out is None:
        out = np.empty(3, dtype=np.float64)
    np.subtract(b, a, out=out)
    out *= t
    out += a
    return out


class Palette:
    """Colour stops keyed by scroll progress.

    Between consecutive stops the colour eases with smootherstep; before the
    first and after the last stop it holds.
    """

    def __init__(self, stops: Sequence[Tuple[float, str]]) -> None:
        if not stops:
            raise ValueError("A palette needs at least one colour stop")
        ordered = sorted(stops, key=lambda stop: stop[0])
        self.positions = [float(at) for at, _ in ordered]
        self.colors = [parse_color(color) for _, color in ordered]

    def __len__(self) -> int:
        return len(self.colors)

    def evaluate(self, progress: float, out: Optional[np.ndarray] = None) -> np.ndarray:
        if out is None:
            out = np.empty(3, dtype=np.float64)
        positions = self.positions
        if progress <= positions[0] or len(positions) == 1:
            out[:] = self.colors[0]
            return out
        if progress >= positions[-1]:
            out[:] = self.colors[-1]
            return out
        for i in range(len(positions) - 1):
            if progress < positions[i + 1]:
                t = smootherstep(positions[i], positions[i + 1], progress)
                return mix_colors(self.colors[i], self.colors[i + 1], t, out)
        out[:] = self.colors[-1]
        return out
