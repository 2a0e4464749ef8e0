"""Pytest fixtures for strokeform tests."""

import math
import tempfile

import pytest


def _walk(start, end, steps, include_start=False):
    """Evenly spaced points from start to end, end included."""
    first = 0 if include_start else 1
    return [
        [start[0] + (end[0] - start[0]) * k / steps, start[1] + (end[1] - start[1]) * k / steps]
        for k in range(first, steps + 1)
    ]


@pytest.fixture(autouse=True)
def quiet_tracer():
    """Leave the global tracer disabled after every test."""
    yield
    from strokeform.tracer import configure_tracer
    configure_tracer(enabled=False)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def default_config():
    """Create default engine configuration."""
    from strokeform.config import EngineConfig
    return EngineConfig()


@pytest.fixture
def raw_config():
    """Configuration that analyzes strokes exactly as drawn."""
    from strokeform.config import EngineConfig
    config = EngineConfig()
    config.refinement.enabled = False
    return config


@pytest.fixture
def circle_stroke():
    """60 points evenly spaced on a radius-40 circle centered at (100, 100)."""
    return [
        [100 + 40 * math.cos(2 * math.pi * i / 60), 100 + 40 * math.sin(2 * math.pi * i / 60)]
        for i in range(60)
    ]


@pytest.fixture
def rectangle_stroke():
    """
    Closed 120x120 square drawn from the middle of its top edge.

    Corners fall on indices 12, 36, 60 and 84, 97 points in total.
    """
    points = _walk([60, 0], [120, 0], 12, include_start=True)
    points += _walk([120, 0], [120, 120], 24)
    points += _walk([120, 120], [0, 120], 24)
    points += _walk([0, 120], [0, 0], 24)
    points += _walk([0, 0], [60, 0], 12)
    return points


@pytest.fixture
def triangle_stroke():
    """
    Closed triangle (0,0), (120,0), (60,120) drawn from the middle of its base.

    Corners fall on indices 12, 36 and 60, 73 points in total.
    """
    points = _walk([60, 0], [120, 0], 12, include_start=True)
    points += _walk([120, 0], [60, 120], 24)
    points += _walk([60, 120], [0, 0], 24)
    points += _walk([0, 0], [60, 0], 12)
    return points


@pytest.fixture
def line_stroke():
    """Horizontal line from (0, 0) to (50, 0), 11 points."""
    return _walk([0, 0], [50, 0], 10, include_start=True)


@pytest.fixture
def make_component():
    """Factory for bare components with a given type and bounds."""
    from strokeform.models import Component

    def _make(index, comp_type, bounds, recognized_as=None, shape=None):
        return Component(
            index=index,
            recognized_as=comp_type if recognized_as is None else recognized_as,
            type=comp_type,
            bounds=list(bounds),
            shape=shape,
        )

    return _make
