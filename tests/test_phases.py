"""Tests for the phase window table and visibility blending."""

import math

import numpy as np
import pytest

from cinematic.phases import (
    Phase,
    PhaseConfigError,
    PhaseTable,
    SubShot,
    local_progress,
    override_blend,
    sub_shot_pose,
    weight_of,
)


def _phase(**overrides):
    values = dict(name="p", start=0.42, end=0.55, fade_in=0.05, fade_out=0.05)
    values.update(overrides)
    return Phase(**values)


# ---------------------------------------------------------------------------
# weight_of
# ---------------------------------------------------------------------------


class TestWeightOf:

    def test_continuity_at_start(self):
        phase = _phase()
        assert abs(weight_of(phase, 0.420001) - weight_of(phase, 0.419999)) < 1e-3

    @pytest.mark.parametrize("edge", [0.42, 0.47, 0.50, 0.55])
    def test_continuity_at_every_edge(self, edge):
        phase = _phase()
        eps = 1e-7
        assert abs(weight_of(phase, edge + eps) - weight_of(phase, edge - eps)) < 1e-5

    def test_plateau_and_outside(self):
        phase = _phase()
        assert weight_of(phase, 0.30) == 0.0
        assert weight_of(phase, 0.485) == 1.0
        assert weight_of(phase, 0.70) == 0.0

    @pytest.mark.parametrize("progress", [-5.0, -0.1, 0.0, 0.5, 1.0, 1.1, 100.0, math.nan, math.inf])
    def test_bounded(self, progress):
        for phase in (_phase(), _phase(start=0.0, end=1.0)):
            assert 0.0 <= weight_of(phase, progress) <= 1.0

    def test_timeline_edges_have_no_fade(self):
        opening = _phase(start=0.0, end=0.3)
        closing = _phase(start=0.8, end=1.0)
        assert weight_of(opening, 0.0) == 1.0
        assert weight_of(closing, 1.0) == 1.0
        assert weight_of(opening, -3.0) == 1.0


class TestPhaseValidation:

    @pytest.mark.parametrize("overrides", [
        {"fade_in": 0.0},
        {"fade_out": -0.1},
        {"start": 0.6, "end": 0.5},
        {"start": 0.5, "end": 0.5},
        {"start": math.nan},
        {"end": math.inf},
    ])
    def test_rejects_bad_windows(self, overrides):
        with pytest.raises(PhaseConfigError):
            _phase(**overrides)

    def test_rejects_empty_table(self):
        with pytest.raises(PhaseConfigError):
            PhaseTable([])

    def test_rejects_duplicate_names(self):
        with pytest.raises(PhaseConfigError, match="Duplicate"):
            PhaseTable([_phase(name="x"), _phase(name="x")])

    def test_config_error_is_value_error(self):
        assert issubclass(PhaseConfigError, ValueError)

    def test_unknown_phase_lookup(self, scrub_table):
        with pytest.raises(KeyError, match="Unknown phase: nope"):
            scrub_table.index("nope")


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScrubScenario:

    SAMPLES = [0.0, 0.25, 0.48, 0.50, 0.52, 0.75, 1.0]

    def test_a_falls_while_b_rises(self, scrub_table):
        a = [scrub_table.weight("a", p) for p in self.SAMPLES]
        b = [scrub_table.weight("b", p) for p in self.SAMPLES]
        assert a[0] == 1.0 and a[-1] == 0.0
        assert b[0] == 0.0 and b[-1] == 1.0
        assert all(x >= y for x, y in zip(a, a[1:]))
        assert all(x <= y for x, y in zip(b, b[1:]))

    def test_transition_confined_to_window(self, scrub_table):
        assert scrub_table.weight("a", 0.45) == 1.0
        assert scrub_table.weight("b", 0.45) == 0.0
        assert scrub_table.weight("a", 0.55) == 0.0
        assert scrub_table.weight("b", 0.55) == 1.0

    def test_cross_at_midpoint(self, scrub_table):
        assert scrub_table.weight("a", 0.5) == pytest.approx(0.5)
        assert scrub_table.weight("b", 0.5) == pytest.approx(0.5)

    def test_weights_sum_to_one_through_crossfade(self, scrub_table):
        for p in np.linspace(0.0, 1.0, 201):
            weights = scrub_table.weights(p)
            assert weights["a"] + weights["b"] == pytest.approx(1.0)

    def test_declared_windows_are_kept(self, scrub_table):
        assert scrub_table.declared[0].end == 0.5
        assert scrub_table.phase("a").end == pytest.approx(0.55)
        assert scrub_table.phase("b").start == pytest.approx(0.45)


class TestReversalScenario:

    def test_reversal_matches_direct(self, default_config):
        from cinematic.config import build_phase_table

        table = build_phase_table(default_config)
        weights = table.new_weights()
        for p in np.linspace(0.0, 0.6, 50):
            table.weights(p, out=weights)
        for p in np.linspace(0.6, 0.3, 50):
            table.weights(p, out=weights)
        direct = table.weights(0.3)
        np.testing.assert_allclose(weights.values, direct.values, atol=1e-12)


class TestPhaseWeights:

    def test_mapping_view(self, scrub_table):
        weights = scrub_table.weights(0.25)
        assert list(weights) == ["a", "b"]
        assert len(weights) == 2
        assert weights.get("missing") is None
        assert weights.as_dict() == {"a": 1.0, "b": 0.0}
        assert weights.dominant() == "a"

    def test_reuses_output(self, scrub_table):
        out = scrub_table.new_weights()
        values = out.values
        result = scrub_table.weights(0.75, out=out)
        assert result is out
        assert out.values is values
        assert out["b"] == 1.0

    def test_dominant_none_when_dark(self):
        table = PhaseTable([_phase(name="mid", start=0.4, end=0.6)])
        assert table.weights(0.1).dominant() is None


# ---------------------------------------------------------------------------
# Local progress, override blend, sub-shots
# ---------------------------------------------------------------------------


SHOTS = (
    SubShot(position=(0.0, 0.0, 0.0), look_at=(0.0, 0.0, -1.0)),
    SubShot(position=(10.0, 0.0, 0.0), look_at=(10.0, 0.0, -1.0)),
    SubShot(position=(10.0, 10.0, 0.0), look_at=(10.0, 10.0, -1.0)),
)


class TestLocalProgress:

    def test_local_progress(self):
        phase = _phase(start=0.4, end=0.6)
        assert local_progress(phase, 0.3) == 0.0
        assert local_progress(phase, 0.5) == pytest.approx(0.5)
        assert local_progress(phase, 0.9) == 1.0

    def test_override_blend_is_linear_ramp(self):
        phase = _phase(start=0.4, end=0.8, fade_in=0.1, fade_out=0.1)
        assert override_blend(phase, 0.4) == 0.0
        assert override_blend(phase, 0.45) == pytest.approx(0.5)
        assert override_blend(phase, 0.6) == 1.0
        assert override_blend(phase, 0.75) == pytest.approx(0.5)
        assert override_blend(phase, 0.9) == 0.0


class TestSubShots:

    def _pose(self, t):
        phase = _phase(start=0.0, end=1.0, sub_shots=SHOTS)
        position = np.zeros(3)
        look = np.zeros(3)
        assert sub_shot_pose(phase, t, position, look)
        return position, look

    def test_keyframes_held_at_segment_centres(self):
        for i, shot in enumerate(SHOTS):
            position, look = self._pose((i + 0.5) / len(SHOTS))
            np.testing.assert_allclose(position, shot.position, atol=1e-12)
            np.testing.assert_allclose(look, shot.look_at, atol=1e-12)

    def test_constant_outside_centres(self):
        first, _ = self._pose(0.0)
        last, _ = self._pose(1.0)
        np.testing.assert_allclose(first, SHOTS[0].position)
        np.testing.assert_allclose(last, SHOTS[-1].position)

    def test_continuous_across_segment_boundaries(self):
        for boundary in (1.0 / 3.0, 0.5, 2.0 / 3.0):
            before, _ = self._pose(boundary - 1e-7)
            after, _ = self._pose(boundary + 1e-7)
            assert np.linalg.norm(after - before) < 1e-4

    def test_phase_without_shots(self):
        assert not sub_shot_pose(_phase(), 0.5, np.zeros(3), np.zeros(3))

    def test_table_lists_shot_phases(self):
        table = PhaseTable([_phase(name="plain"), _phase(name="shots", sub_shots=SHOTS)])
        assert [p.name for p in table.sub_shot_phases] == ["shots"]


class TestIdempotentLoad:

    def test_two_loads_give_identical_weights(self):
        from cinematic.config import build_phase_table, load_config

        first = build_phase_table(load_config())
        second = build_phase_table(load_config())
        for p in np.linspace(-0.5, 1.5, 97):
            np.testing.assert_array_equal(first.weights(p).values, second.weights(p).values)
