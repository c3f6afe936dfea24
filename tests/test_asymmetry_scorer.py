"""偏斜分数计算单元测试"""

import math

import pytest
from hypothesis import assume, given
from hypothesis import strategies as st

from conftest import make_face
from detectors.asymmetry_scorer import calculate_skew, score_landmarks
from models.data_models import FrameLandmarks, LandmarkPoint


def _transform(p: LandmarkPoint, angle: float, scale: float, dx: float, dy: float) -> LandmarkPoint:
    """绕原点旋转、缩放后平移"""
    c, s = math.cos(angle), math.sin(angle)
    return LandmarkPoint(
        scale * (p.x * c - p.y * s) + dx,
        scale * (p.x * s + p.y * c) + dy,
    )


class TestCalculateSkew:
    """测试 calculate_skew()"""

    def test_level_mouth_is_zero(self):
        assert score_landmarks(make_face(0.0)) == 0.0

    def test_known_skew(self):
        assert score_landmarks(make_face(0.1)) == pytest.approx(0.1)
        assert score_landmarks(make_face(-0.25)) == pytest.approx(-0.25)

    def test_normalized_by_eye_distance(self):
        """眼距 0.2、嘴角高差 0.05 → 0.25"""
        skew = calculate_skew(
            LandmarkPoint(0.6, 0.5),
            LandmarkPoint(0.4, 0.5),
            LandmarkPoint(0.45, 0.7),
            LandmarkPoint(0.55, 0.75),
        )
        assert skew == pytest.approx(0.25)

    def test_tilted_head_with_parallel_mouth_is_zero(self):
        """头部倾斜但嘴角连线与眼轴平行时分数为 0"""
        skew = calculate_skew(
            LandmarkPoint(0.7, 0.5),
            LandmarkPoint(0.3, 0.3),
            LandmarkPoint(0.35, 0.6),
            LandmarkPoint(0.55, 0.7),
        )
        assert skew == pytest.approx(0.0, abs=1e-12)

    def test_zero_eye_distance_does_not_raise(self):
        """双眼重合时眼距按 1.0 计算"""
        eye = LandmarkPoint(0.5, 0.4)
        skew = calculate_skew(eye, eye, LandmarkPoint(0.4, 0.7), LandmarkPoint(0.6, 0.75))
        assert math.isfinite(skew)
        # 眼轴角度为 0，垂直分量即嘴角高差
        assert skew == pytest.approx(0.05)

    def test_deterministic(self):
        face = make_face(0.07)
        assert score_landmarks(face) == score_landmarks(face)


coords = st.floats(min_value=0.0, max_value=1.0, allow_nan=False)


class TestSkewInvariance:
    """旋转、缩放、平移不改变偏斜分数"""

    @given(
        ex=coords, ey=coords, rx=coords, ry=coords,
        mlx=coords, mly=coords, mrx=coords, mry=coords,
        angle=st.floats(min_value=-math.pi, max_value=math.pi),
        scale=st.floats(min_value=0.2, max_value=5.0),
        dx=st.floats(min_value=-1.0, max_value=1.0),
        dy=st.floats(min_value=-1.0, max_value=1.0),
    )
    def test_similarity_transform_invariance(self, ex, ey, rx, ry, mlx, mly, mrx, mry, angle, scale, dx, dy):
        assume(math.hypot(ex - rx, ey - ry) > 0.05)
        face = FrameLandmarks(
            LandmarkPoint(ex, ey), LandmarkPoint(rx, ry),
            LandmarkPoint(mlx, mly), LandmarkPoint(mrx, mry),
        )
        moved = FrameLandmarks(*(
            _transform(p, angle, scale, dx, dy)
            for p in (face.eye_left, face.eye_right, face.mouth_left, face.mouth_right)
        ))
        assert score_landmarks(moved) == pytest.approx(score_landmarks(face), abs=1e-7)
