"""OpenGL context helpers for the cinematic preview."""
from __future__ import annotations

from typing import Tuple

from OpenGL import GL as gl

from cinematic.color import to_srgb
from cinematic.lighting import FogState


BACKGROUND_COLOR = (0.04, 0.03, 0.02, 1.0)
LINE_WIDTH = 1.2


def initialize_gl(surface_size: Tuple[int, int]) -> None:
    """Configure OpenGL state for blended 3D points and lines."""
    width, height = surface_size
    gl.glViewport(0, 0, width, height)
    gl.glClearColor(*BACKGROUND_COLOR)

    gl.glMatrixMode(gl.GL_PROJECTION)
    gl.glLoadIdentity()
    gl.glMatrixMode(gl.GL_MODELVIEW)
    gl.glLoadIdentity()

    gl.glDisable(gl.GL_DEPTH_TEST)
    gl.glEnable(gl.GL_BLEND)
    gl.glBlendFunc(gl.GL_SRC_ALPHA, gl.GL_ONE_MINUS_SRC_ALPHA)
    gl.glEnable(gl.GL_POINT_SMOOTH)
    gl.glLineWidth(LINE_WIDTH)

    gl.glEnable(gl.GL_FOG)
    gl.glFogi(gl.GL_FOG_MODE, gl.GL_LINEAR)


def apply_fog(fog: FogState) -> None:
    """Match clear colour and linear fog to the live fog state."""
    r, g, b = to_srgb(fog.color)
    gl.glClearColor(r, g, b, 1.0)
    gl.glFogfv(gl.GL_FOG_COLOR, (r, g, b, 1.0))
    gl.glFogf(gl.GL_FOG_START, fog.near)
    gl.glFogf(gl.GL_FOG_END, max(fog.far, fog.near + 1e-3))


def resize_viewport(surface_size: Tuple[int, int]) -> None:
    """Update the viewport when the window changes size."""
    width, height = surface_size
    gl.glViewport(0, 0, width, height)
