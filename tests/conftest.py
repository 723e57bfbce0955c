"""Shared test fixtures for the cinematic sequencer tests."""

import pytest

from cinematic.config import CameraConfig, PhaseConfig, SequenceConfig, load_config
from cinematic.frame import FrameContext
from cinematic.phases import Phase, PhaseTable


@pytest.fixture()
def scrub_table():
    """Two adjacent phases meeting at 0.5 with 0.05 fades."""
    return PhaseTable([
        Phase("a", start=0.0, end=0.5, fade_in=0.05, fade_out=0.05),
        Phase("b", start=0.5, end=1.0, fade_in=0.05, fade_out=0.05),
    ])


@pytest.fixture()
def default_config():
    """The packaged six-world sequence."""
    return load_config()


@pytest.fixture()
def minimal_config():
    """Single phase, default camera, nothing else."""
    return SequenceConfig(
        phases=[PhaseConfig(name="only", start=0.0, end=1.0, fade_in=0.1, fade_out=0.1)],
    )


@pytest.fixture()
def camera_config():
    return CameraConfig()


@pytest.fixture()
def make_frame():
    """Factory for hand-built frame contexts."""
    def _make(progress=0.0, dt=1.0 / 60.0, elapsed=0.0):
        return FrameContext(progress=progress, dt=dt, elapsed=elapsed, raw_progress=progress, raw_dt=dt)
    return _make
