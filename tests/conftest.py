"""
Shared fixtures for the pose overlay tests.
"""
import numpy as np
import pytest

from pose_overlay.models.pose import Observation, Point
from pose_overlay.services.pose import DetectionError, PoseDetector


def make_observation(confidence: float, **joints: tuple[float, float, float]) -> Observation:
    """Observation from joint=(x, y, confidence) keyword arguments."""
    return Observation(
        confidence=confidence,
        joints={name: Point(*values) for name, values in joints.items()},
    )


class FakeDetector(PoseDetector):
    """Returns canned observations; raises DetectionError when told to."""

    def __init__(self, observations=None, fail: bool = False):
        self.observations = observations or []
        self.fail = fail
        self.calls = 0
        self.closed = False

    def name(self) -> str:
        return "fake"

    def detect(self, frame_bgr):
        self.calls += 1
        if self.fail:
            raise DetectionError("model exploded")
        return list(self.observations)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def frame() -> np.ndarray:
    """A 200x100 (W x H) black BGR frame."""
    return np.zeros((100, 200, 3), dtype=np.uint8)


@pytest.fixture
def person() -> Observation:
    return make_observation(
        0.9,
        nose=(0.5, 0.8, 0.9),
        left_wrist=(0.2, 0.5, 0.7),
        right_wrist=(0.8, 0.5, 0.7),
        root=(0.5, 0.4, 0.6),
        left_ankle=(0.4, 0.1, 0.05),
    )
