"""Preview renderer: draws sequencer output with fixed-function OpenGL."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from OpenGL import GL as gl

import numpy as np

from cinematic.camera import Camera3D
from cinematic.color import parse_color, to_srgb
from cinematic.config import GuideConfig
from cinematic.fields import InstanceField
from cinematic.lighting import LightState
from cinematic.phases import PhaseTable
from cinematic.sequencer import SceneState
from cinematic.spline import CatmullRomCurve
from .opengl_context import apply_fog
from .wireframe_primitives import (
    WireframeMesh,
    create_floor_grid_mesh,
    create_path_mesh,
    create_stage_bounds_mesh,
    create_unit_cube_mesh,
)

Color = Tuple[float, float, float]

# Fields whose mean instance size exceeds this are drawn as boxes, not points.
PANEL_SIZE_THRESHOLD = 0.3
MIN_POINT_SIZE = 1.0
MAX_POINT_SIZE = 14.0


@dataclass
class Guide:
    name: str
    mesh: WireframeMesh
    phase_index: Optional[int]
    opacity: float
    color: Color


def build_guide(guide: GuideConfig, table: PhaseTable, path: CatmullRomCurve) -> Guide:
    params = guide.params
    if guide.mesh == "floor_grid":
        mesh = create_floor_grid_mesh(
            half_size=float(params.get("half_size", 20.0)),
            spacing=float(params.get("spacing", 2.0)),
            near=float(params.get("near", -5.0)),
            far=float(params.get("far", -45.0)),
            height=float(params.get("height", -2.0)),
        )
    elif guide.mesh == "stage_bounds":
        mesh = create_stage_bounds_mesh(
            tuple(params.get("min", (-14.0, -2.0, -40.0))),
            tuple(params.get("max", (14.0, 12.0, -18.0))),
        )
    elif guide.mesh == "camera_path":
        mesh = create_path_mesh(path.sample(int(params.get("samples", 64))))
    else:
        raise ValueError(f"Unknown guide mesh: {guide.mesh}")

    phase_index = table.index(guide.phase) if guide.phase is not None else None
    return Guide(
        name=guide.name,
        mesh=mesh,
        phase_index=phase_index,
        opacity=guide.opacity,
        color=to_srgb(parse_color(guide.color)),
    )


class SceneRenderer:
    """Draws fields as points or panels, guide meshes and light glows."""

    def __init__(self, guides: Sequence[Guide], point_scale: float = 90.0) -> None:
        self.guides = list(guides)
        self.point_scale = point_scale
        self.cube_mesh = create_unit_cube_mesh()
        self._cube_vertices = np.ones((4, len(self.cube_mesh.vertices)), dtype=np.float64)
        self._cube_vertices[:3] = np.array(self.cube_mesh.vertices, dtype=np.float64).T
        self._cube_segments = np.array(self.cube_mesh.segments, dtype=np.int32).reshape(-1)

    def draw(self, scene: SceneState) -> None:
        apply_fog(scene.fog)
        gl.glClear(gl.GL_COLOR_BUFFER_BIT | gl.GL_DEPTH_BUFFER_BIT)
        self._apply_camera(scene.camera)

        values = scene.weights.values
        for guide in self.guides:
            weight = 1.0 if guide.phase_index is None else float(values[guide.phase_index])
            alpha = guide.opacity * weight
            if alpha > 1e-3:
                self._draw_mesh(guide.mesh, (*guide.color, alpha))

        for instance_field in scene.fields:
            if not instance_field.visible:
                continue
            if float(np.mean(instance_field.scales)) > PANEL_SIZE_THRESHOLD:
                self._draw_panels(instance_field)
            else:
                self._draw_points(instance_field)

        self._draw_lights(scene.lights)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------
    def _apply_camera(self, camera: Camera3D) -> None:
        projection = camera.projection_matrix()
        view = camera.view_matrix()
        gl.glMatrixMode(gl.GL_PROJECTION)
        gl.glLoadMatrixf(np.transpose(projection).flatten())
        gl.glMatrixMode(gl.GL_MODELVIEW)
        gl.glLoadMatrixf(np.transpose(view).flatten())

    def _draw_mesh(self, mesh: WireframeMesh, color: Tuple[float, float, float, float]) -> None:
        gl.glColor4f(*color)
        gl.glBegin(gl.GL_LINES)
        for start_index, end_index in mesh.segments:
            gl.glVertex3f(*mesh.vertices[start_index])
            gl.glVertex3f(*mesh.vertices[end_index])
        gl.glEnd()

    def _point_size(self, instance_field: InstanceField) -> float:
        size = float(np.median(instance_field.scales[:, 0])) * self.point_scale
        return max(MIN_POINT_SIZE, min(MAX_POINT_SIZE, size))

    def _draw_points(self, instance_field: InstanceField) -> None:
        r, g, b = to_srgb(instance_field.color)
        count = instance_field.count
        colors = np.empty((count, 4), dtype=np.float32)
        colors[:, 0] = r
        colors[:, 1] = g
        colors[:, 2] = b
        colors[:, 3] = np.clip(instance_field.intensities * instance_field.opacity, 0.0, 1.0)
        positions = np.ascontiguousarray(instance_field.positions, dtype=np.float32)

        gl.glPointSize(self._point_size(instance_field))
        gl.glEnableClientState(gl.GL_VERTEX_ARRAY)
        gl.glEnableClientState(gl.GL_COLOR_ARRAY)
        gl.glVertexPointer(3, gl.GL_FLOAT, 0, positions)
        gl.glColorPointer(4, gl.GL_FLOAT, 0, colors)
        gl.glDrawArrays(gl.GL_POINTS, 0, count)
        gl.glDisableClientState(gl.GL_COLOR_ARRAY)
        gl.glDisableClientState(gl.GL_VERTEX_ARRAY)

    def _draw_panels(self, instance_field: InstanceField) -> None:
        matrices = instance_field.matrices()
        # (N, 4, 4) @ (4, 8) -> (N, 4, 8); keep xyz, gather both ends of every edge.
        corners = np.matmul(matrices, self._cube_vertices)[:, :3, :]
        lines = corners[:, :, self._cube_segments].transpose(0, 2, 1)
        vertices = np.ascontiguousarray(lines.reshape(-1, 3), dtype=np.float32)

        r, g, b = to_srgb(instance_field.color)
        gl.glColor4f(r, g, b, min(1.0, instance_field.opacity))
        gl.glEnableClientState(gl.GL_VERTEX_ARRAY)
        gl.glVertexPointer(3, gl.GL_FLOAT, 0, vertices)
        gl.glDrawArrays(gl.GL_LINES, 0, len(vertices))
        gl.glDisableClientState(gl.GL_VERTEX_ARRAY)

    def _draw_lights(self, lights: List[LightState]) -> None:
        for light in lights:
            if light.kind == "ambient" or light.intensity <= 1e-3:
                continue
            r, g, b = to_srgb(light.color)
            gl.glPointSize(max(MIN_POINT_SIZE, min(MAX_POINT_SIZE, 4.0 + light.intensity * 8.0)))
            gl.glColor4f(r, g, b, min(1.0, light.intensity))
            gl.glBegin(gl.GL_POINTS)
            gl.glVertex3f(*light.position)
            gl.glEnd()
