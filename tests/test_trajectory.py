"""Tests for the camera trajectory evaluator and Camera3D."""

import math

import numpy as np

from cinematic.camera import Camera3D, Pose
from cinematic.config import CameraConfig, DriftConfig, EntryConfig
from cinematic.frame import FrameClock
from cinematic.phases import Phase, PhaseTable, SubShot
from cinematic.trajectory import CameraState, CameraTrajectory

STILL = DriftConfig(amplitude=(0.0, 0.0, 0.0))


def _table(*phases):
    if not phases:
        phases = (Phase("all", start=0.0, end=1.0, fade_in=0.1, fade_out=0.1),)
    return PhaseTable(list(phases))


def _run(trajectory, clock, progress, seconds, dt=1.0 / 60.0):
    for _ in range(int(round(seconds / dt))):
        trajectory.update(clock.advance(progress, dt))


# ---------------------------------------------------------------------------
# Entry latch
# ---------------------------------------------------------------------------


class TestEntry:

    def test_first_frame_snaps_to_entry_start(self, camera_config):
        trajectory = CameraTrajectory(camera_config, _table())
        pose = trajectory.update(FrameClock().advance(0.0, 1.0 / 60.0))
        np.testing.assert_allclose(pose.position, camera_config.entry.start, atol=1e-9)
        assert trajectory.state is CameraState.ENTRY

    def test_push_in_releases_after_duration(self, camera_config):
        trajectory = CameraTrajectory(camera_config, _table())
        clock = FrameClock()
        _run(trajectory, clock, 0.0, camera_config.entry.duration + 0.5)
        assert trajectory.state is CameraState.SCROLL
        assert trajectory.entry_complete
        assert trajectory.entry_progress == 1.0

    def test_push_in_moves_toward_entry_end(self):
        config = CameraConfig(drift=STILL)
        trajectory = CameraTrajectory(config, _table())
        clock = FrameClock()
        _run(trajectory, clock, 0.0, 2.5)
        start_gap = abs(config.entry.start[2] - config.entry.end[2])
        gap = abs(trajectory.live.position[2] - config.entry.end[2])
        assert gap < start_gap
        assert trajectory.state is CameraState.ENTRY

    def test_scroll_releases_early(self, camera_config):
        trajectory = CameraTrajectory(camera_config, _table())
        clock = FrameClock()
        _run(trajectory, clock, 0.0, 0.5)
        trajectory.update(clock.advance(0.1, 1.0 / 60.0))
        assert trajectory.state is CameraState.SCROLL
        assert trajectory.entry_progress < 1.0

    def test_latch_is_one_way(self, camera_config):
        trajectory = CameraTrajectory(camera_config, _table())
        clock = FrameClock()
        trajectory.update(clock.advance(0.5, 1.0 / 60.0))
        assert trajectory.state is CameraState.SCROLL
        _run(trajectory, clock, 0.0, 1.0)
        assert trajectory.state is CameraState.SCROLL

    def test_zero_duration_entry_releases_immediately(self):
        config = CameraConfig(entry=EntryConfig(duration=0.0))
        trajectory = CameraTrajectory(config, _table())
        trajectory.update(FrameClock().advance(0.0, 1.0 / 60.0))
        assert trajectory.state is CameraState.SCROLL


# ---------------------------------------------------------------------------
# Scroll tracking
# ---------------------------------------------------------------------------


class TestScroll:

    def test_live_converges_on_spline(self):
        config = CameraConfig(drift=STILL)
        trajectory = CameraTrajectory(config, _table())
        clock = FrameClock()
        _run(trajectory, clock, 1.0, 10.0)
        np.testing.assert_allclose(trajectory.live.position, config.positions[-1], atol=1e-3)
        np.testing.assert_allclose(trajectory.live.look_at, config.look_targets[-1], atol=1e-3)

    def test_large_jump_stays_finite(self, camera_config):
        trajectory = CameraTrajectory(camera_config, _table())
        clock = FrameClock()
        for progress in (0.0, 1.0, 0.0, 1.0, 0.5):
            trajectory.update(clock.advance(progress, 5.0))
            assert np.all(np.isfinite(trajectory.live.position))
            assert np.all(np.isfinite(trajectory.live.look_at))

    def test_sub_shot_overrides_spline(self):
        shot = SubShot(position=(3.0, 4.0, -33.0), look_at=(0.0, 0.0, -40.0))
        table = _table(
            Phase("base", start=0.0, end=1.0, fade_in=0.1, fade_out=0.1),
            Phase("shots", start=0.4, end=0.8, fade_in=0.05, fade_out=0.05, sub_shots=(shot,)),
        )
        trajectory = CameraTrajectory(CameraConfig(drift=STILL), table)
        clock = FrameClock()
        _run(trajectory, clock, 0.6, 0.1)
        np.testing.assert_allclose(trajectory.target.position, shot.position, atol=1e-9)
        np.testing.assert_allclose(trajectory.target.look_at, shot.look_at, atol=1e-9)

    def test_drift_decays_late_in_sequence(self):
        config = CameraConfig()
        trajectory = CameraTrajectory(config, _table())
        clock = FrameClock()
        _run(trajectory, clock, 1.0, 1.0)
        spline = trajectory.position_curve.point(1.0)
        offset = np.abs(trajectory.target.position - spline)
        assert offset[0] <= config.drift.amplitude[0] * 0.05 + 1e-12
        assert offset[1] <= config.drift.amplitude[1] * 0.05 + 1e-12


# ---------------------------------------------------------------------------
# Roll
# ---------------------------------------------------------------------------


class TestRoll:

    def test_roll_follows_scroll_direction(self, camera_config):
        trajectory = CameraTrajectory(camera_config, _table())
        clock = FrameClock()
        progress = 0.1
        for _ in range(120):
            progress += 0.002
            trajectory.update(clock.advance(progress, 1.0 / 60.0))
        assert trajectory.roll > 0.0
        assert trajectory.velocity > 0.0

    def test_roll_is_bounded(self, camera_config):
        trajectory = CameraTrajectory(camera_config, _table())
        clock = FrameClock()
        for i in range(300):
            progress = 1.0 if i % 2 else 0.0
            trajectory.update(clock.advance(progress, 1.0 / 60.0))
            assert abs(trajectory.roll) <= camera_config.roll.max_roll + 1e-12
            assert abs(trajectory.velocity) <= camera_config.roll.max_velocity + 1e-12

    def test_roll_settles_when_still(self, camera_config):
        trajectory = CameraTrajectory(camera_config, _table())
        clock = FrameClock()
        for i in range(60):
            trajectory.update(clock.advance(0.1 + i * 0.003, 1.0 / 60.0))
        _run(trajectory, clock, 0.28, 10.0)
        assert abs(trajectory.roll) < 1e-4


# ---------------------------------------------------------------------------
# Camera3D
# ---------------------------------------------------------------------------


class TestCamera3D:

    def test_apply_pose(self):
        camera = Camera3D(position=(0.0, 0.0, 0.0), target=(0.0, 0.0, -1.0), viewport_size=(1280, 720))
        camera.apply_pose(Pose.from_points((1.0, 2.0, 3.0), (1.0, 2.0, -3.0)), roll=0.01)
        assert camera.position == (1.0, 2.0, 3.0)
        assert camera.target == (1.0, 2.0, -3.0)
        assert camera.roll == 0.01
        np.testing.assert_allclose(-camera.view_matrix()[2, :3], (0.0, 0.0, -1.0), atol=1e-6)

    def test_view_matrix_maps_eye_to_origin(self):
        camera = Camera3D(position=(1.0, 2.0, 3.0), target=(0.0, 0.0, 0.0), viewport_size=(800, 600), roll=0.3)
        eye = camera.view_matrix() @ np.array([1.0, 2.0, 3.0, 1.0])
        np.testing.assert_allclose(eye[:3], 0.0, atol=1e-5)

    def test_roll_rotates_up_axis(self):
        camera = Camera3D(position=(0.0, 0.0, 5.0), target=(0.0, 0.0, 0.0), viewport_size=(800, 600))
        flat = camera.view_matrix()
        camera.roll = math.pi / 2
        rolled = camera.view_matrix()
        np.testing.assert_allclose(rolled[1, :3], flat[0, :3], atol=1e-6)
        np.testing.assert_allclose(rolled[0, :3], -flat[1, :3], atol=1e-6)
