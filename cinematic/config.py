"""Configuration loading for the cinematic sequencer."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

from .color import parse_color
from .fields import FieldSpec
from .lighting import FogSpec, LightSpec, Oscillation
from .phases import Phase, PhaseTable, SubShot

logger = logging.getLogger(__name__)

Vec3 = tuple[float, float, float]

DEFAULT_CONFIG_PATH = Path(__file__).with_name("sequence.yaml")


class SubShotConfig(BaseModel):
    position: Vec3
    look_at: Vec3


class PhaseConfig(BaseModel):
    name: str
    start: float
    end: float
    fade_in: float
    fade_out: float
    sub_shots: list[SubShotConfig] = Field(default_factory=list)


class EntryConfig(BaseModel):
    start: Vec3 = (0.0, 0.5, 26.0)
    end: Vec3 = (0.0, 0.0, 20.0)
    look_at: Vec3 = (0.0, 0.0, 0.0)
    duration: float = 5.0
    release_progress: float = 0.02


class DriftConfig(BaseModel):
    amplitude: Vec3 = (0.08, 0.05, 0.0)
    frequency: Vec3 = (0.06, 0.05, 0.0)
    phase: Vec3 = (0.0, 1.5707963, 0.0)  # cosine on y
    decay_start: float = 0.5
    decay_end: float = 0.95
    decay_amount: float = 0.95


class RollConfig(BaseModel):
    gain: float = 0.015
    max_roll: float = 0.02
    rate: float = 2.0
    velocity_rate: float = 6.0
    max_velocity: float = 5.0


class CameraConfig(BaseModel):
    positions: list[Vec3] = Field(default_factory=lambda: [
        (0.0, 0.0, 20.0), (4.0, -1.0, 6.0), (1.0, 2.0, -4.0),
        (2.0, 4.0, -12.0), (0.0, 10.0, -30.0), (0.0, 1.0, -40.0),
    ])
    look_targets: list[Vec3] = Field(default_factory=lambda: [
        (0.0, 0.0, 0.0), (-2.0, -2.0, -15.0), (0.0, 0.0, -20.0),
        (0.0, -2.0, -25.0), (0.0, -3.0, -42.0), (0.0, 0.0, -50.0),
    ])
    tension: float = 0.5
    position_rate: float = 2.5
    look_rate: float = 3.0
    fov: float = 50.0
    near: float = 0.1
    far: float = 200.0
    entry: EntryConfig = Field(default_factory=EntryConfig)
    drift: DriftConfig = Field(default_factory=DriftConfig)
    roll: RollConfig = Field(default_factory=RollConfig)


class OscillationConfig(BaseModel):
    frequency: float
    amplitude: float
    phase: float = 0.0


class LightConfig(BaseModel):
    name: str
    kind: str = "point"  # ambient | directional | point | spot
    position: Vec3 = (0.0, 0.0, 0.0)
    color: str = "#FFFFFF"
    base_intensity: float = 0.0
    contributions: dict[str, float] = Field(default_factory=dict)
    phase_colors: dict[str, str] = Field(default_factory=dict)
    rate: float = 4.0
    flicker: list[OscillationConfig] = Field(default_factory=list)
    flicker_gate: tuple[float, float] = (0.5, 0.9)
    distance: float = 0.0


class FogStopConfig(BaseModel):
    color: str
    near: float
    far: float


class FogConfig(BaseModel):
    color: str = "#0A0806"
    near: float = 15.0
    far: float = 55.0
    rate: float = 3.0
    phases: dict[str, FogStopConfig] = Field(default_factory=dict)


class PaletteStopConfig(BaseModel):
    at: float
    color: str


class FieldConfig(BaseModel):
    name: str
    kind: str
    phase: Optional[str] = None
    count: int
    seed: int = 0
    opacity: float = 1.0
    size: tuple[float, float] = (0.02, 0.06)
    palette: list[PaletteStopConfig] = Field(
        default_factory=lambda: [PaletteStopConfig(at=0.0, color="#FFFFFF")]
    )
    layout: dict[str, Any] = Field(default_factory=dict)
    target_layout: dict[str, Any] = Field(default_factory=dict)
    motion: dict[str, Any] = Field(default_factory=dict)


class GuideConfig(BaseModel):
    name: str
    mesh: str  # floor_grid | stage_bounds | camera_path
    phase: Optional[str] = None
    opacity: float = 0.15
    color: str = "#2A8F6A"
    params: dict[str, Any] = Field(default_factory=dict)


class PreviewConfig(BaseModel):
    width: int = 1280
    height: int = 720
    fps: int = 60
    wheel_step: float = 0.02
    key_step: float = 0.05
    scroll_rate: float = 6.0
    point_scale: float = 90.0


class SequenceConfig(BaseModel):
    max_frame_dt: float = 0.1
    phases: list[PhaseConfig]
    camera: CameraConfig = Field(default_factory=CameraConfig)
    lights: list[LightConfig] = Field(default_factory=list)
    fog: FogConfig = Field(default_factory=FogConfig)
    fields: list[FieldConfig] = Field(default_factory=list)
    guides: list[GuideConfig] = Field(default_factory=list)
    preview: PreviewConfig = Field(default_factory=PreviewConfig)


def load_config(config_path: Optional[Path] = None) -> SequenceConfig:
    """Load the sequence from YAML. Defaults to the packaged schedule."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        raise FileNotFoundError(f"Sequence config not found: {config_path}")

    raw: dict[str, Any] = yaml.safe_load(config_path.read_text()) or {}
    config = SequenceConfig(**raw)
    logger.info(
        "Loaded %s: %d phases, %d lights, %d fields",
        config_path.name, len(config.phases), len(config.lights), len(config.fields),
    )
    return config


def build_phase_table(config: SequenceConfig) -> PhaseTable:
    """Turn phase configs into a validated table. Raises ``PhaseConfigError``."""
    phases = [
        Phase(
            name=phase.name,
            start=phase.start,
            end=phase.end,
            fade_in=phase.fade_in,
            fade_out=phase.fade_out,
            sub_shots=tuple(
                SubShot(position=shot.position, look_at=shot.look_at)
                for shot in phase.sub_shots
            ),
        )
        for phase in config.phases
    ]
    return PhaseTable(phases)


def validate_references(config: SequenceConfig, table: PhaseTable) -> None:
    """Fail fast when lights, fog, fields or guides name an unknown phase."""
    for light in config.lights:
        for name in light.contributions:
            table.index(name)
        for name in light.phase_colors:
            table.index(name)
    for name in config.fog.phases:
        table.index(name)
    for field_config in config.fields:
        if field_config.phase is not None:
            table.index(field_config.phase)
    for guide in config.guides:
        if guide.phase is not None:
            table.index(guide.phase)


def build_light_specs(config: SequenceConfig) -> list[LightSpec]:
    return [
        LightSpec(
            name=light.name,
            kind=light.kind,
            position=light.position,
            color=parse_color(light.color),
            base_intensity=light.base_intensity,
            contributions=dict(light.contributions),
            phase_colors={name: parse_color(color) for name, color in light.phase_colors.items()},
            rate=light.rate,
            flicker=tuple(
                Oscillation(frequency=osc.frequency, amplitude=osc.amplitude, phase=osc.phase)
                for osc in light.flicker
            ),
            flicker_gate=light.flicker_gate,
            distance=light.distance,
        )
        for light in config.lights
    ]


def build_fog_spec(config: SequenceConfig) -> FogSpec:
    fog = config.fog
    return FogSpec(
        color=parse_color(fog.color),
        near=fog.near,
        far=fog.far,
        rate=fog.rate,
        stops={
            name: (parse_color(stop.color), stop.near, stop.far)
            for name, stop in fog.phases.items()
        },
    )


def _split_layout(layout: dict[str, Any], default: str) -> tuple[str, dict[str, Any]]:
    params = dict(layout)
    shape = params.pop("shape", default)
    return shape, params


def build_field_specs(config: SequenceConfig) -> list[FieldSpec]:
    specs = []
    for field_config in config.fields:
        layout, layout_params = _split_layout(field_config.layout, "box")
        target_layout = None
        target_params: dict[str, Any] = {}
        if field_config.target_layout:
            target_layout, target_params = _split_layout(field_config.target_layout, "grid")
        specs.append(
            FieldSpec(
                name=field_config.name,
                kind=field_config.kind,
                count=field_config.count,
                phase=field_config.phase,
                seed=field_config.seed,
                opacity=field_config.opacity,
                size=field_config.size,
                palette=tuple((stop.at, stop.color) for stop in field_config.palette),
                layout=layout,
                layout_params=layout_params,
                target_layout=target_layout,
                target_params=target_params,
                motion=dict(field_config.motion),
            )
        )
    return specs
