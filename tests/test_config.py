"""Tests for YAML loading and the config-to-spec builders."""

import numpy as np
import pytest
from pydantic import ValidationError

from cinematic.color import parse_color
from cinematic.config import (
    DEFAULT_CONFIG_PATH,
    GuideConfig,
    PhaseConfig,
    build_field_specs,
    build_fog_spec,
    build_light_specs,
    build_phase_table,
    load_config,
    validate_references,
)
from cinematic.phases import PhaseConfigError

MINIMAL_YAML = """
phases:
  - {name: intro, start: 0.0, end: 0.6, fade_in: 0.1, fade_out: 0.1}
  - {name: outro, start: 0.6, end: 1.0, fade_in: 0.1, fade_out: 0.1}
lights:
  - name: key
    color: "#FF8000"
    contributions: {intro: 0.5}
    flicker:
      - {frequency: 3.0, amplitude: 0.1}
fields:
  - name: motes
    kind: drift
    phase: outro
    count: 10
    layout: {shape: ball, radius: 5.0}
"""


class TestLoadConfig:

    def test_packaged_default(self, default_config):
        assert DEFAULT_CONFIG_PATH.exists()
        assert [p.name for p in default_config.phases] == [
            "void", "fracture", "assembly", "insight", "production", "proof", "closing",
        ]
        assert len(default_config.camera.positions) == len(default_config.camera.look_targets)
        assert default_config.max_frame_dt == 0.1

    def test_loads_custom_file(self, tmp_path):
        path = tmp_path / "sequence.yaml"
        path.write_text(MINIMAL_YAML)
        config = load_config(path)
        assert [p.name for p in config.phases] == ["intro", "outro"]
        assert config.lights[0].flicker[0].frequency == 3.0
        assert config.fields[0].layout == {"shape": "ball", "radius": 5.0}
        assert config.preview.fps == 60

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_schema_errors_surface(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("phases:\n  - {name: intro, start: soon}\n")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_empty_file_needs_phases(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_idempotent(self):
        assert load_config() == load_config()


class TestBuilders:

    @pytest.fixture()
    def config(self, tmp_path):
        path = tmp_path / "sequence.yaml"
        path.write_text(MINIMAL_YAML)
        return load_config(path)

    def test_phase_table(self, config):
        table = build_phase_table(config)
        assert table.names == ("intro", "outro")
        assert table.weight("intro", 0.0) == 1.0
        assert table.weight("outro", 1.0) == 1.0

    def test_bad_window_rejected(self, config):
        bad = config.model_copy(update={
            "phases": [PhaseConfig(name="x", start=0.5, end=0.2, fade_in=0.1, fade_out=0.1)],
        })
        with pytest.raises(PhaseConfigError):
            build_phase_table(bad)

    def test_light_specs(self, config):
        (spec,) = build_light_specs(config)
        assert spec.kind == "point"
        np.testing.assert_allclose(spec.color, parse_color("#FF8000"))
        assert spec.contributions == {"intro": 0.5}
        assert spec.flicker[0].amplitude == 0.1

    def test_fog_spec(self, default_config):
        fog = build_fog_spec(default_config)
        assert set(fog.stops) == {"void", "fracture", "insight", "production", "closing"}
        color, near, far = fog.stops["fracture"]
        np.testing.assert_allclose(color, parse_color("#060810"))
        assert (near, far) == (10.0, 45.0)

    def test_field_specs_split_layout(self, config):
        (spec,) = build_field_specs(config)
        assert spec.layout == "ball"
        assert spec.layout_params == {"radius": 5.0}
        assert spec.target_layout is None
        assert spec.phase == "outro"

    def test_field_target_layout_defaults_to_grid(self, default_config):
        specs = {spec.name: spec for spec in build_field_specs(default_config)}
        assert specs["shards"].target_layout == "walls"
        assert specs["insight_points"].target_layout == "grid"
        assert specs["insight_points"].target_params["columns"] == 30

    def test_references_validated(self, config):
        table = build_phase_table(config)
        validate_references(config, table)
        broken = config.model_copy(update={"guides": [GuideConfig(name="floor", mesh="floor_grid", phase="dusk")]})
        with pytest.raises(KeyError, match="Unknown phase: dusk"):
            validate_references(broken, table)

    def test_default_references_resolve(self, default_config):
        validate_references(default_config, build_phase_table(default_config))
