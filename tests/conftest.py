import sys
import os

# Add project root to sys.path so tests can import from all modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from hypothesis import settings

from models.data_models import FrameLandmarks, LandmarkPoint

# CI profile: more examples for thorough testing
settings.register_profile("ci", max_examples=200)
# Dev profile: fewer examples for faster iteration
settings.register_profile("dev", max_examples=50, deadline=None)
# Default to dev profile
settings.load_profile("dev")


def make_face(skew: float = 0.0) -> FrameLandmarks:
    """构造眼轴水平、眼距 0.4 的人脸，嘴角右侧下移使偏斜分数约为 skew"""
    return FrameLandmarks(
        eye_left=LandmarkPoint(0.7, 0.4),
        eye_right=LandmarkPoint(0.3, 0.4),
        mouth_left=LandmarkPoint(0.35, 0.7),
        mouth_right=LandmarkPoint(0.65, 0.7 + skew * 0.4),
    )


@pytest.fixture
def face():
    return make_face
