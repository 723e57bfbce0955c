"""Top-level per-frame driver."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .camera import Camera3D, Pose
from .config import (
    SequenceConfig,
    build_field_specs,
    build_fog_spec,
    build_light_specs,
    build_phase_table,
    validate_references,
)
from .easing import MAX_FRAME_DT
from .fields import InstanceField, build_field
from .frame import FrameClock, FrameContext
from .lighting import FogState, LightingController, LightState
from .phases import PhaseTable, PhaseWeights
from .trajectory import CameraState, CameraTrajectory

logger = logging.getLogger(__name__)


@dataclass
class SceneState:
    """Everything an external renderer needs for one frame."""

    frame: FrameContext
    weights: PhaseWeights
    camera: Camera3D
    pose: Pose
    roll: float
    camera_state: CameraState
    lights: List[LightState]
    fog: FogState
    fields: Tuple[InstanceField, ...]


class Sequencer:
    """Runs the components once per frame in dependency order.

    weights -> camera trajectory -> lighting -> instance fields. Fields see
    only their own phase weight and the live camera position.
    """

    def __init__(
        self,
        table: PhaseTable,
        trajectory: CameraTrajectory,
        lighting: LightingController,
        fields: Sequence[InstanceField],
        camera: Camera3D,
        max_frame_dt: float = MAX_FRAME_DT,
    ) -> None:
        self.table = table
        self.trajectory = trajectory
        self.lighting = lighting
        self.fields: Tuple[InstanceField, ...] = tuple(fields)
        self.camera = camera
        self.clock = FrameClock(max_frame_dt)
        self.weights = table.new_weights()
        self._field_phases: List[Optional[int]] = [
            table.index(f.spec.phase) if f.spec.phase is not None else None for f in self.fields
        ]
        self._last: Optional[SceneState] = None

    @classmethod
    def from_config(
        cls, config: SequenceConfig, viewport_size: Tuple[int, int] = (1280, 720)
    ) -> "Sequencer":
        table = build_phase_table(config)
        validate_references(config, table)
        logger.info("Phase table built: %s", ", ".join(table.names))

        trajectory = CameraTrajectory(config.camera, table)
        lighting = LightingController(build_light_specs(config), build_fog_spec(config), table)
        fields = [build_field(spec) for spec in build_field_specs(config)]
        entry = config.camera.entry
        camera = Camera3D(
            position=entry.start,
            target=entry.look_at,
            viewport_size=viewport_size,
            fov=config.camera.fov,
            near_clip=config.camera.near,
            far_clip=config.camera.far,
        )
        total = sum(f.count for f in fields)
        logger.info("Sequencer ready: %d fields, %d instances", len(fields), total)
        return cls(table, trajectory, lighting, fields, camera, config.max_frame_dt)

    @property
    def last_state(self) -> Optional[SceneState]:
        return self._last

    def field(self, name: str) -> InstanceField:
        for instance_field in self.fields:
            if instance_field.name == name:
                return instance_field
        raise KeyError(f"Unknown field: {name}")

    def tick(self, progress: float, dt: float) -> SceneState:
        frame = self.clock.advance(progress, dt)
        weights = self.table.weights(frame.progress, out=self.weights)

        pose = self.trajectory.update(frame)
        self.camera.apply_pose(pose, self.trajectory.roll)

        self.lighting.update(frame, weights)

        values = weights.values
        for instance_field, index in zip(self.fields, self._field_phases):
            weight = 1.0 if index is None else float(values[index])
            instance_field.update(frame, weight, pose.position)

        self._last = SceneState(
            frame=frame,
            weights=weights,
            camera=self.camera,
            pose=pose,
            roll=self.trajectory.roll,
            camera_state=self.trajectory.state,
            lights=self.lighting.lights,
            fog=self.lighting.fog,
            fields=self.fields,
        )
        return self._last
